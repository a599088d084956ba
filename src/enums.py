"""Enumerations used throughout the database configuration engine."""

from enum import StrEnum


class FileKind(StrEnum):
    """Kind of database file."""

    DATA = "Data"
    LOG = "Log"
    FILESTREAM = "FileStream"


class FilegroupKind(StrEnum):
    """Kind of filegroup. Each kind keeps its own default filegroup."""

    ROWS = "RowsFileGroup"
    FILESTREAM = "FileStreamDataFileGroup"
    MEMORY_OPTIMIZED = "MemoryOptimizedDataFileGroup"

    @property
    def file_kind(self) -> FileKind:
        """Kind of the files a filegroup of this kind contains."""
        return FileKind.DATA if self is FilegroupKind.ROWS else FileKind.FILESTREAM


class GrowthType(StrEnum):
    """How a file grows as reported by the engine."""

    KB = "KB"
    PERCENT = "Percent"
    NONE = "None"


class RecoveryModel(StrEnum):
    FULL = "Full"
    BULK_LOGGED = "BulkLogged"
    SIMPLE = "Simple"


class UserAccess(StrEnum):
    MULTIPLE = "Multiple"
    SINGLE = "Single"
    RESTRICTED = "Restricted"


class DatabaseStatus(StrEnum):
    """Database status; INACCESSIBLE stands in when the caller may not read it."""

    NORMAL = "Normal"
    RESTORING = "Restoring"
    RECOVERING = "Recovering"
    RECOVERY_PENDING = "RecoveryPending"
    SUSPECT = "Suspect"
    OFFLINE = "Offline"
    EMERGENCY = "EmergencyMode"
    INACCESSIBLE = "Inaccessible"


class DefaultCursor(StrEnum):
    LOCAL = "Local"
    GLOBAL = "Global"


class ContainmentType(StrEnum):
    NONE = "None"
    PARTIAL = "Partial"


class PageVerify(StrEnum):
    NONE = "None"
    TORN_PAGE_DETECTION = "TornPageDetection"
    CHECKSUM = "Checksum"


class FilestreamNonTransactedAccess(StrEnum):
    OFF = "Off"
    READ_ONLY = "ReadOnly"
    FULL = "Full"


class DelayedDurability(StrEnum):
    DISABLED = "Disabled"
    ALLOWED = "Allowed"
    FORCED = "Forced"


class MirroringSafetyLevel(StrEnum):
    NONE = "None"
    OFF = "Off"
    FULL = "Full"
    UNKNOWN = "Unknown"


class ScopedConfiguration(StrEnum):
    """Value of a database scoped configuration; PRIMARY only applies to secondaries."""

    OFF = "Off"
    ON = "On"
    PRIMARY = "Primary"


class AzureEdition(StrEnum):
    BASIC = "Basic"
    STANDARD = "Standard"
    PREMIUM = "Premium"
    DATA_WAREHOUSE = "DataWarehouse"
    GENERAL_PURPOSE = "GeneralPurpose"
    BUSINESS_CRITICAL = "BusinessCritical"
    HYPERSCALE = "Hyperscale"


class AlterTermination(StrEnum):
    """What the engine does with other sessions' open transactions on ALTER DATABASE."""

    FAIL_ON_OPEN_TRANSACTIONS = "FailOnOpenTransactions"
    ROLLBACK_IMMEDIATELY = "RollbackTransactionsImmediately"
