from __future__ import annotations

import re

PROMO_CODE_MAX_LENGTH = 50
PROMO_CODE_PATTERN = re.compile(r"[A-Z0-9][A-Z0-9_-]*")


def normalize_promo_code(raw_code: str) -> str:
    """Canonical form used for storage and lookups: trimmed and upper-cased."""
    return raw_code.strip().upper()


def is_valid_promo_code(normalized_code: str) -> bool:
    if not 2 <= len(normalized_code) <= PROMO_CODE_MAX_LENGTH:
        return False
    return PROMO_CODE_PATTERN.fullmatch(normalized_code) is not None
