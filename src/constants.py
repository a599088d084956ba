"""Shared constant values used across the database configuration engine."""

from typing import Final

# Absolute tolerance for comparing sizes (KB) and growth amounts.
FLOAT_TOLERANCE: Final[float] = 1e-6

KILOBYTES_PER_MEGABYTE: Final[int] = 1024

DEFAULT_GROWTH_PERCENT: Final[int] = 10
DEFAULT_GROWTH_KB: Final[float] = 10240.0
DEFAULT_MAXIMUM_FILE_SIZE_KB: Final[float] = 102400.0

DEFAULT_DATA_FILE_SIZE_KB: Final[float] = 5120.0
DEFAULT_LOG_FILE_SIZE_KB: Final[float] = 1024.0
DEFAULT_INITIAL_FILE_SIZE_KB: Final[float] = 1024.0

PRIMARY_FILEGROUP_NAME: Final[str] = "PRIMARY"
TEMPLATE_DATABASE_NAME: Final[str] = "model"
LOG_FILE_NAME_SUFFIX: Final[str] = "_log"
UNAVAILABLE: Final[str] = "unavailable"

# SQL Server "permission denied" error numbers (object and column level).
PERMISSION_DENIED_ERROR_NUMBERS: Final[frozenset[int]] = frozenset({229, 230})
