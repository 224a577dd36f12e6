"""
OCR Processing module for Splitbill
Loads a receipt photo, normalizes it and runs Tesseract over it.
Every failure ends in empty text so the wizard can always continue.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Optional, Tuple, Union

import cv2
import numpy as np
import pytesseract
from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from config import (
    DEFAULT_MAX_WORKERS,
    IMAGE_REGION_OVERLAP_PX,
    OCR_CONTRAST,
    OCR_LANGUAGES,
    OCR_MAX_SIDE,
    OCR_PSM,
)
from data_models import ProcessingMetrics
from log_config import get_logger

logger = get_logger(__name__)

StatusCallback = Callable[[str], None]

OCR_ERRORS = (pytesseract.TesseractError, OSError, RuntimeError)


def load_image(image_path) -> Optional[Image.Image]:
    """Open an image file, None when it cannot be read"""
    try:
        image = Image.open(image_path)
        image.load()
        # camera photos carry their rotation in EXIF
        return ImageOps.exif_transpose(image)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.warning("Could not load image %s: %s", image_path, e)
        return None


class ParallelOCRProcessor:
    """Receipt text recognition, optionally over several horizontal bands at once"""

    def __init__(self, num_workers: int = DEFAULT_MAX_WORKERS, languages: str = OCR_LANGUAGES,
                 psm: int = OCR_PSM, max_side: int = OCR_MAX_SIDE, contrast: float = OCR_CONTRAST):
        self.num_workers = max(1, num_workers)
        self.languages = languages
        self.psm = psm
        self.max_side = max_side
        self.contrast = contrast
        self.metrics = ProcessingMetrics()
        self._available_languages: Optional[List[str]] = None
        self._busy = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._busy.locked()

    def _check_languages(self) -> List[str]:
        """Available Tesseract languages"""
        try:
            languages = pytesseract.get_languages(config='')
            logger.debug("Available OCR languages: %s", ', '.join(languages))
            return languages
        except OCR_ERRORS as e:
            logger.warning("Could not check OCR languages: %s", e)
            return ['eng']

    def _get_ocr_language(self) -> str:
        """Configured languages that are actually installed, 'eng' otherwise"""
        if self._available_languages is None:
            self._available_languages = self._check_languages()
        wanted = [lang for lang in self.languages.split('+') if lang]
        usable = [lang for lang in wanted if lang in self._available_languages]
        return '+'.join(usable) if usable else 'eng'

    def _enhance_contrast(self, gray: Image.Image) -> Image.Image:
        """Stretch gray levels around mid gray"""
        pixels = np.asarray(gray, dtype=np.float32)
        pixels = np.clip((pixels - 128.0) * self.contrast + 128.0, 0, 255)
        return Image.fromarray(pixels.astype(np.uint8))

    def preprocess_image(self, image: Image.Image) -> Image.Image:
        """Downscale, grayscale, contrast and denoise; the original image on failure"""
        try:
            width, height = image.size
            longest = max(width, height)
            if self.max_side and longest > self.max_side:
                scale = self.max_side / longest
                image = image.resize((round(width * scale), round(height * scale)))

            processed = image.convert('L')
            processed = self._enhance_contrast(processed)
            processed = processed.filter(ImageFilter.SHARPEN)

            img_array = np.array(processed)
            img_array = cv2.bilateralFilter(img_array, 9, 75, 75)
            return Image.fromarray(img_array)
        except (cv2.error, OSError, ValueError) as e:
            logger.warning("Image normalization failed, using original: %s", e)
            return image

    def split_image_into_regions(self, image: Image.Image) -> List[Tuple[int, Image.Image]]:
        """Split image into overlapping horizontal bands"""
        width, height = image.size
        if self.num_workers == 1:
            return [(0, image)]

        region_height = height // self.num_workers
        regions = []
        for i in range(self.num_workers):
            y_start = i * region_height
            y_end = height if i == self.num_workers - 1 else (i + 1) * region_height + IMAGE_REGION_OVERLAP_PX
            regions.append((i, image.crop((0, y_start, width, min(y_end, height)))))
        return regions

    def process_region(self, region_data: Tuple[int, Image.Image]) -> str:
        """Process a single region with OCR"""
        region_id, region_image = region_data
        try:
            return pytesseract.image_to_string(
                region_image,
                lang=self._get_ocr_language(),
                config=f'--psm {self.psm}',
            )
        except OCR_ERRORS as e:
            logger.warning("OCR failed on region %d: %s", region_id + 1, e)
            return ""

    def _run_regions(self, regions, status: StatusCallback) -> List[str]:
        if len(regions) == 1:
            return [self.process_region(regions[0])]

        results = {}
        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            future_to_region = {
                executor.submit(self.process_region, region): region[0]
                for region in regions
            }
            for done, future in enumerate(as_completed(future_to_region), 1):
                results[future_to_region[future]] = future.result()
                status(f"{done}/{len(regions)}")
        return [results[i] for i in sorted(results)]

    def recognize(self, image: Union[str, Image.Image],
                  status_callback: Optional[StatusCallback] = None) -> str:
        """Best-effort receipt text; empty string on any failure or while busy"""
        status = status_callback or (lambda message: None)

        if not self._busy.acquire(blocking=False):
            logger.warning("Recognition already running, ignoring request")
            return ""
        try:
            start_time = time.time()
            if not isinstance(image, Image.Image):
                image = load_image(image)
                if image is None:
                    return ""

            status("Подготвям снимката...")
            processed = self.preprocess_image(image)
            regions = self.split_image_into_regions(processed)

            status("Извличане на текст от снимката...")
            texts = self._run_regions(regions, status)
            combined_text = '\n'.join(texts)

            self.metrics = ProcessingMetrics(
                workers_used=self.num_workers,
                processing_time=time.time() - start_time,
                regions_processed=len(regions),
                characters=len(combined_text),
            )
            logger.debug("OCR complete in %.2fs", self.metrics.processing_time)
            return combined_text
        except Exception:
            logger.exception("Recognition failed, continuing without text")
            return ""
        finally:
            self._busy.release()
