"""
Size unit conversions and tolerant float comparisons.

Sizes are stored in kilobytes as floats. Megabyte-facing values round up on the
way out (`kb_to_mb`) and convert exactly on the way in (`mb_to_kb`).
"""

from __future__ import annotations

import math

from src.constants import FLOAT_TOLERANCE, KILOBYTES_PER_MEGABYTE


def kb_to_mb(kilobytes: float) -> int:
    """Whole megabytes needed to hold `kilobytes` (rounds up)."""
    return math.ceil(kilobytes / KILOBYTES_PER_MEGABYTE)


def mb_to_kb(megabytes: float) -> float:
    return float(megabytes) * KILOBYTES_PER_MEGABYTE


def round_up_to_nearest_mb(kilobytes: float) -> float:
    """Round a kilobyte value up to the next whole-megabyte boundary, in kilobytes."""
    return mb_to_kb(kb_to_mb(kilobytes))


def differs(left: float, right: float) -> bool:
    """True when the values are further apart than the tolerance."""
    return abs(left - right) > FLOAT_TOLERANCE


def exceeds(left: float, right: float) -> bool:
    """True when `left` is larger than `right` by more than the tolerance."""
    return left - right > FLOAT_TOLERANCE


def normalize_maximum_size(raw_kilobytes: float | None) -> float | None:
    """
    Normalise an engine-reported maximum file size.

    The engine reports "unlimited" as a non-positive number. Returns None for
    that case so callers carry an explicit unrestricted flag instead.
    """
    if raw_kilobytes is None or raw_kilobytes <= 0:
        return None
    return float(raw_kilobytes)
