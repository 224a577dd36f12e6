#!/usr/bin/env python3
"""
Utility functions for Splitbill
"""

import mimetypes
import re
from pathlib import Path
from typing import List, Optional

from config import MAX_IMAGE_SIZE_BYTES, PROGRESS_BAR_LENGTH

IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.bmp', '.tiff', '.gif', '.webp'}


def validate_image_path(image_path: str) -> bool:
    """Check that the path points to a readable, reasonably sized image file"""
    if not isinstance(image_path, str) or not image_path.strip():
        print("Image path must be a non-empty string")
        return False

    path = Path(image_path).expanduser()

    if not path.exists():
        print(f"File not found: {image_path}")
        return False

    if not path.is_file():
        print(f"Path is not a file: {image_path}")
        return False

    if path.stat().st_size > MAX_IMAGE_SIZE_BYTES:
        print(f"File too large: {path.stat().st_size} bytes (max: {MAX_IMAGE_SIZE_BYTES})")
        return False

    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        print(f"Unsupported file extension: {path.suffix}")
        return False

    mime_type, _ = mimetypes.guess_type(str(path))
    if mime_type and not mime_type.startswith('image/'):
        print(f"Invalid MIME type: {mime_type}")
        return False

    return True


def try_parse_int(value: str) -> Optional[int]:
    """Safely parse integer from string"""
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return None


def try_parse_float(value: str) -> Optional[float]:
    """Safely parse float from string"""
    try:
        return float(value.strip().replace(',', '.'))
    except (AttributeError, ValueError):
        return None


def parse_number_list(value: str) -> List[int]:
    """'1, 3 4' -> [1, 3, 4]; anything that is not a number is ignored"""
    if not isinstance(value, str):
        return []
    return [int(part) for part in re.split(r'[,\s]+', value) if part.isdigit()]


def create_progress_callback(total_steps: int, description: str = "Processing"):
    """Create a progress callback function for long operations"""
    def progress_callback(step: int, status: str = ""):
        percentage = (step / total_steps) * 100
        bar_length = PROGRESS_BAR_LENGTH
        filled_length = int(bar_length * step // total_steps)
        bar = '█' * filled_length + '░' * (bar_length - filled_length)

        status_text = f" - {status}" if status else ""
        print(f"\r{description}: [{bar}] {percentage:.1f}%{status_text}", end='', flush=True)

        if step >= total_steps:
            print()

    return progress_callback


def clean_text_for_display(text: str, max_length: int = 100) -> str:
    """Clean text for safe display in UI"""
    if not isinstance(text, str):
        return ""

    text = re.sub(r'[\x00-\x1f\x7f-\x9f]', '', text)
    text = ' '.join(text.split())

    if len(text) > max_length:
        text = text[:max_length - 3] + "..."

    return text
