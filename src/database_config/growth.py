"""
Autogrowth policy for database files.

Purpose
- Describe how a file grows: disabled, by percent or by a fixed amount, with an
  optional cap.
- Compare policies without tripping over fields that are not in use.

Design
- Immutable value object; "copy" is the value itself, edits go through
  `dataclasses.replace` or the `with_*` helpers.
- Sizes are kilobytes. Megabyte views round up.
- The engine's "unlimited" sentinel (a non-positive maximum size) is normalised
  into `is_growth_restricted=False` when reading a handle and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from src.constants import (
    DEFAULT_GROWTH_KB,
    DEFAULT_GROWTH_PERCENT,
    DEFAULT_MAXIMUM_FILE_SIZE_KB,
)
from src.database_config.errors import InvalidGrowthError
from src.database_config.ports import FileHandle
from src.database_config.units import differs, kb_to_mb, mb_to_kb, normalize_maximum_size
from src.enums import GrowthType
from src.logger import LOGGER


@dataclass(frozen=True, slots=True)
class AutogrowthPolicy:
    """How a file grows. Defaults equal `AutogrowthPolicy.reset()`."""

    is_enabled: bool = True
    is_growth_in_percent: bool = True
    growth_in_percent: int = DEFAULT_GROWTH_PERCENT
    growth_in_kb: float = DEFAULT_GROWTH_KB
    is_growth_restricted: bool = False
    maximum_file_size_in_kb: float = DEFAULT_MAXIMUM_FILE_SIZE_KB

    def __post_init__(self) -> None:
        if self.is_growth_in_percent and self.growth_in_percent < 1:
            raise InvalidGrowthError(
                f"Percent growth must be at least 1, got {self.growth_in_percent}."
            )
        if self.is_growth_restricted and self.maximum_file_size_in_kb < 0:
            raise InvalidGrowthError(
                f"Maximum file size must not be negative, got {self.maximum_file_size_in_kb}."
            )

    # ---------- construction ----------

    @classmethod
    def reset(cls) -> AutogrowthPolicy:
        """Fixed defaults: enabled, 10 percent, unrestricted, 100 MB stand-by cap."""
        return cls()

    @classmethod
    def disabled(cls) -> AutogrowthPolicy:
        return cls(is_enabled=False)

    @classmethod
    def from_data_file(cls, handle: FileHandle) -> AutogrowthPolicy:
        """Read the policy of an existing data or filestream file."""
        return cls._from_growth(handle.growth_type, handle.growth, handle.max_size)

    @classmethod
    def from_log_file(cls, handle: FileHandle) -> AutogrowthPolicy:
        """
        Read the policy of an existing log file.

        The growth type of a log file cannot always be read (e.g. on a database
        snapshot); that case yields a disabled policy.
        """
        try:
            growth_type = handle.growth_type
        except Exception as exc:
            LOGGER.warning("Could not read growth type of log file %r: %s", handle.name, exc)
            growth_type = GrowthType.NONE
        if growth_type is GrowthType.NONE:
            return cls.disabled()
        return cls._from_growth(growth_type, handle.growth, handle.max_size)

    @classmethod
    def _from_growth(
        cls, growth_type: GrowthType, growth: float, raw_maximum_size: float | None
    ) -> AutogrowthPolicy:
        if growth_type is GrowthType.NONE:
            return cls.disabled()

        maximum = normalize_maximum_size(raw_maximum_size)
        restriction = {
            "is_growth_restricted": maximum is not None,
            "maximum_file_size_in_kb": (
                maximum if maximum is not None else DEFAULT_MAXIMUM_FILE_SIZE_KB
            ),
        }
        if growth_type is GrowthType.PERCENT:
            return cls(
                is_growth_in_percent=True,
                growth_in_percent=max(1, int(growth)),
                **restriction,
            )
        return cls(is_growth_in_percent=False, growth_in_kb=float(growth), **restriction)

    # ---------- megabyte views ----------

    @property
    def growth_in_mb(self) -> int:
        return kb_to_mb(self.growth_in_kb)

    @property
    def maximum_file_size_in_mb(self) -> int:
        return kb_to_mb(self.maximum_file_size_in_kb)

    def with_growth_in_mb(self, megabytes: float) -> AutogrowthPolicy:
        return replace(self, is_growth_in_percent=False, growth_in_kb=mb_to_kb(megabytes))

    def with_maximum_file_size_in_mb(self, megabytes: float) -> AutogrowthPolicy:
        return replace(
            self, is_growth_restricted=True, maximum_file_size_in_kb=mb_to_kb(megabytes)
        )

    # ---------- engine view ----------

    @property
    def growth_type(self) -> GrowthType:
        if not self.is_enabled:
            return GrowthType.NONE
        return GrowthType.PERCENT if self.is_growth_in_percent else GrowthType.KB

    @property
    def growth_amount(self) -> float:
        """Growth as the engine stores it: percent or KB, 0 when disabled."""
        if not self.is_enabled:
            return 0.0
        if self.is_growth_in_percent:
            return float(self.growth_in_percent)
        return self.growth_in_kb

    @property
    def effective_maximum_size(self) -> float:
        """Cap in KB, 0 when disabled or unrestricted."""
        if self.is_enabled and self.is_growth_restricted:
            return self.maximum_file_size_in_kb
        return 0.0

    @property
    def restricted_maximum_size(self) -> float:
        """Cap in KB whenever growth is restricted, enabled or not; 0 otherwise."""
        return self.maximum_file_size_in_kb if self.is_growth_restricted else 0.0

    # ---------- comparison ----------

    def has_same_value_as(self, other: AutogrowthPolicy) -> bool:
        """
        Compare only the fields that are in effect.

        A percent policy ignores its KB amount and vice versa; an unrestricted
        policy ignores its cap; two disabled policies are always equal.
        """
        if self.is_enabled != other.is_enabled:
            return False
        if not self.is_enabled:
            return True
        if self.is_growth_in_percent != other.is_growth_in_percent:
            return False
        if self.is_growth_restricted != other.is_growth_restricted:
            return False
        if self.is_growth_in_percent:
            if differs(self.growth_in_percent, other.growth_in_percent):
                return False
        elif differs(self.growth_in_kb, other.growth_in_kb):
            return False
        if self.is_growth_restricted and differs(
            self.maximum_file_size_in_kb, other.maximum_file_size_in_kb
        ):
            return False
        return True

    def __str__(self) -> str:
        if not self.is_enabled:
            return "None"
        amount = (
            f"By {self.growth_in_percent} percent"
            if self.is_growth_in_percent
            else f"By {self.growth_in_mb} MB"
        )
        if self.is_growth_restricted:
            return f"{amount}, limited to {self.maximum_file_size_in_mb} MB"
        return f"{amount}, unlimited"
