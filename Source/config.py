"""
Centralized configuration for Splitbill with environment
"""

import os
from pathlib import Path


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


# OCR settings
OCR_PSM = _env_int("SPLITBILL_OCR_PSM", 4)
OCR_LANGUAGES = os.getenv("SPLITBILL_OCR_LANGUAGES", "bul+eng")
OCR_MAX_SIDE = _env_int("SPLITBILL_OCR_MAX_SIDE", 2000)
OCR_CONTRAST = _env_float("SPLITBILL_OCR_CONTRAST", 1.35)

# Runtime settings
DEFAULT_MAX_WORKERS = _env_int("SPLITBILL_MAX_WORKERS", 1)
IMAGE_REGION_OVERLAP_PX = _env_int("SPLITBILL_IMAGE_OVERLAP", 50)
MAX_IMAGE_SIZE_BYTES = _env_int("SPLITBILL_MAX_IMAGE_SIZE_BYTES", 50 * 1024 * 1024)
PROGRESS_BAR_LENGTH = _env_int("SPLITBILL_PROGRESS_BAR_LENGTH", 30)

# Price normalization
MAX_PRICE = _env_float("SPLITBILL_MAX_PRICE", 999999.99)

# Display
CURRENCY_LABEL = os.getenv("SPLITBILL_CURRENCY_LABEL", "€")
ZERO_LABEL = os.getenv("SPLITBILL_ZERO_LABEL", "Не дължи")
UNREADABLE_LABEL = os.getenv("SPLITBILL_UNREADABLE_LABEL", "НЕ СЕ ЧЕТЕ")

# Persistence
STATE_KEY = os.getenv("SPLITBILL_STATE_KEY", "splitbill-state")
STATE_FILE = os.getenv(
    "SPLITBILL_STATE_FILE",
    str(Path.home() / ".splitbill" / "state.json"),
)

# Workers bounds
WORKERS_MIN = _env_int("SPLITBILL_WORKERS_MIN", 1)
WORKERS_MAX = _env_int("SPLITBILL_WORKERS_MAX", 16)
