"""
Token matchers for the surgery and hospitalization conditions.

Both work on whitespace-stripped text so that tokens broken across
extracted lines ("수 술", "11 (0)") still match.
"""

import logging
import re
from typing import Optional

from .aggregator import safe_parse_int

logger = logging.getLogger(__name__)

# "…수술" token followed by a digit (dose columns) or the end of the text
REAL_SURGERY_TOKEN = re.compile(r"([가-힣A-Za-z0-9\[\]/\-]{2,}수술)(?=\d|$)")

# Known false positives: post-surgical dressing, simple dressing
SURGERY_FALSE_POSITIVES = ("수술후처치", "단순처치")

SURGERY_KEYWORD = "수술"

# Characters kept in front of "수술" in an evidence token
SURGERY_TOKEN_WINDOW = 12

# Inpatient(outpatient) days; half-width and full-width parentheses
INOUT_ANYWHERE = re.compile(r"(\d+)[(（](\d+)[)）]")

_WHITESPACE_RE = re.compile(r"\s+")
_CATEGORY_PREFIXES = ("양방", "한방", "치과")


def strip_whitespace(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE_RE.sub("", text)


def has_real_surgery_token(row_text: Optional[str]) -> bool:
    """True when the text names an actual surgery procedure."""
    s = strip_whitespace(row_text)
    if not s:
        return False

    if any(fp in s for fp in SURGERY_FALSE_POSITIVES):
        return False

    return REAL_SURGERY_TOKEN.search(s) is not None


def extract_surgery_token(row_text: Optional[str]) -> Optional[str]:
    """
    Evidence text for a surgery row: the last real surgery token.

    At most SURGERY_TOKEN_WINDOW characters before "수술" are kept, cut after
    any treatment category word and leading separators. The result is always
    a contiguous run of the whitespace-stripped row, so it can be located on
    the page's character stream.
    """
    s = strip_whitespace(row_text)
    if not s or any(fp in s for fp in SURGERY_FALSE_POSITIVES):
        return None

    matches = list(REAL_SURGERY_TOKEN.finditer(s))
    if not matches:
        return None

    body = matches[-1].group(1)[:-len(SURGERY_KEYWORD)]
    body = body[-SURGERY_TOKEN_WINDOW:]
    for prefix in _CATEGORY_PREFIXES:
        idx = body.rfind(prefix)
        if idx >= 0:
            body = body[idx + len(prefix):]
    token = body.lstrip("/-") + SURGERY_KEYWORD

    logger.debug(f"Surgery token extracted: '{token}'")
    return token


def extract_inpatient_days(days_of_stay_or_visit: Optional[str]) -> int:
    """Leading (inpatient) number of an "N(M)" token; 0 when absent or malformed."""
    m = INOUT_ANYWHERE.search(strip_whitespace(days_of_stay_or_visit))
    if not m:
        return 0
    return safe_parse_int(m.group(1))


def has_hospitalization(days_of_stay_or_visit: Optional[str]) -> bool:
    return extract_inpatient_days(days_of_stay_or_visit) > 0


def find_hospitalization_tokens(normalized_page_text: str) -> list[str]:
    """
    All "N(M)" tokens with N > 0 in a page's whitespace-stripped text.

    Tokens are returned exactly as they appear on the page so they can be
    located again; parentheses may be half-width or full-width.
    """
    tokens = []
    for m in INOUT_ANYWHERE.finditer(normalized_page_text or ""):
        if safe_parse_int(m.group(1)) > 0:
            tokens.append(m.group(0))
    return tokens
