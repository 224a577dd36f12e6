"""
Receipt Parser module for Splitbill
Turns recognized receipt text into priced line items, line by line
"""

import math
import re
from typing import Iterable, List, Optional

from config import MAX_PRICE, UNREADABLE_LABEL
from constants import (
    CURRENCY_TOKENS,
    MIN_LABEL_LENGTH,
    PRICE_PATTERN,
    QTY_PREFIX_PATTERN,
    QTY_SUFFIX_PATTERN,
    SKIP_PATTERNS,
)
from data_models import ParsedLine
from log_config import get_logger

logger = get_logger(__name__)


class ReceiptParser:
    """Parses recognized text into receipt items.

    The skip patterns and currency tokens default to the Bulgarian receipt
    vocabulary in ``constants`` and can be replaced for other layouts.
    """

    def __init__(
        self,
        skip_patterns: Optional[Iterable[str]] = None,
        currency_tokens: Optional[Iterable[str]] = None,
        max_price: float = MAX_PRICE,
        unreadable_label: str = UNREADABLE_LABEL,
    ):
        patterns = SKIP_PATTERNS if skip_patterns is None else skip_patterns
        tokens = CURRENCY_TOKENS if currency_tokens is None else currency_tokens

        self.skip_patterns = [re.compile(p, re.IGNORECASE) for p in patterns]
        self.price_regex = self._build_price_regex(tokens)
        self.qty_prefix_regex = re.compile(QTY_PREFIX_PATTERN)
        self.qty_suffix_regex = re.compile(QTY_SUFFIX_PATTERN)
        self.max_price = max_price
        self.unreadable_label = unreadable_label

    @staticmethod
    def _build_price_regex(tokens: Iterable[str]) -> "re.Pattern":
        # longest first so "лв." wins over "лв"
        ordered = sorted((t for t in tokens if t), key=len, reverse=True)
        if not ordered:
            return re.compile(PRICE_PATTERN)
        alternatives = '|'.join(re.escape(t) for t in ordered)
        return re.compile(rf'{PRICE_PATTERN}\s*(?:{alternatives})?', re.IGNORECASE)

    def is_skip_line(self, line: str) -> bool:
        """True for totals, payment and footer lines"""
        stripped = line.strip()
        return any(p.search(stripped) for p in self.skip_patterns)

    def find_last_price(self, line: str) -> Optional["re.Match"]:
        """Rightmost price-shaped match on the line"""
        last = None
        for match in self.price_regex.finditer(line):
            last = match
        return last

    def _clean_price(self, match: "re.Match") -> Optional[float]:
        """Normalize a price match to a float, None when out of range"""
        integer_part = re.sub(r'\s', '', match.group(1))
        try:
            price = float(f"{integer_part}.{match.group(2)}")
        except ValueError:
            return None

        if not math.isfinite(price) or price <= 0 or price > self.max_price:
            return None
        return price

    def _extract_quantity(self, label: str):
        """Split a leading "3x " (or trailing " 3x") count off the label"""
        qty_match = self.qty_prefix_regex.match(label)
        if not qty_match:
            qty_match = self.qty_suffix_regex.search(label)
        if not qty_match:
            return label, 1

        try:
            qty = max(1, int(qty_match.group(1)))
        except ValueError:
            qty = 1
        label = (label[:qty_match.start()] + label[qty_match.end():]).strip()
        return label, qty

    def parse_line(self, line: str) -> Optional[ParsedLine]:
        """Parse a single line, None when the line carries no item"""
        line = line.strip()
        if not line:
            return None

        if self.is_skip_line(line):
            logger.debug("Skipping noise line: %r", line)
            return None

        match = self.find_last_price(line)
        if not match:
            return None

        price = self._clean_price(match)
        if price is None:
            logger.debug("Rejected price on line: %r", line)
            return None

        label, qty = self._extract_quantity(line[:match.start()].strip())
        if len(label) < MIN_LABEL_LENGTH:
            label = self.unreadable_label

        return ParsedLine(label=label, price=price, qty=qty)

    def parse(self, ocr_text) -> List[ParsedLine]:
        """Parse recognized text into items, never returning an empty list"""
        if not isinstance(ocr_text, str):
            ocr_text = '' if ocr_text is None else str(ocr_text)

        items = []
        for line in ocr_text.splitlines():
            parsed = self.parse_line(line)
            if parsed is not None:
                items.append(parsed)

        if not items:
            logger.debug("No items found, returning a blank placeholder")
            return [ParsedLine(label='', price=None, qty=1)]

        logger.debug("Parsed %d items from %d characters", len(items), len(ocr_text))
        return items


_default_parser = None


def parse_receipt_text(text) -> List[ParsedLine]:
    """Parse with the default Bulgarian receipt vocabulary"""
    global _default_parser
    if _default_parser is None:
        _default_parser = ReceiptParser()
    return _default_parser.parse(text)
