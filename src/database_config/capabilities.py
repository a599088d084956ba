"""
Capability gating.

The set of database properties a target supports depends on engine version and
edition. Instead of one prototype class per engine generation, the connection is
asked once, at construction, and the answers are frozen in a `CapabilitySet`
that every conditional read and write consults.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol


class PropertyName(StrEnum):
    """Engine property names, as understood by `CapabilityGate.supports`."""

    # identity and status
    NAME = "Name"
    OWNER = "Owner"
    COLLATION = "Collation"
    STATUS = "Status"
    LAST_BACKUP_DATE = "LastBackupDate"
    LAST_LOG_BACKUP_DATE = "LastLogBackupDate"
    IS_SYSTEM_OBJECT = "IsSystemObject"

    # database options
    USER_ACCESS = "UserAccess"
    READ_ONLY = "ReadOnly"
    RECOVERY_MODEL = "RecoveryModel"
    COMPATIBILITY_LEVEL = "CompatibilityLevel"
    CONTAINMENT_TYPE = "ContainmentType"
    PAGE_VERIFY = "PageVerify"
    CLOSE_CURSORS_ON_COMMIT = "CloseCursorsOnCommitEnabled"
    LOCAL_CURSORS_DEFAULT = "LocalCursorsDefault"
    AUTO_CLOSE = "AutoClose"
    AUTO_SHRINK = "AutoShrink"
    AUTO_CREATE_STATISTICS = "AutoCreateStatistics"
    AUTO_CREATE_STATISTICS_INCREMENTAL = "AutoCreateIncrementalStatisticsEnabled"
    AUTO_UPDATE_STATISTICS = "AutoUpdateStatistics"
    AUTO_UPDATE_STATISTICS_ASYNC = "AutoUpdateStatisticsAsync"
    ANSI_NULL_DEFAULT = "AnsiNullDefault"
    ANSI_NULLS = "AnsiNullsEnabled"
    ANSI_PADDING = "AnsiPaddingEnabled"
    ANSI_WARNINGS = "AnsiWarningsEnabled"
    ARITHMETIC_ABORT = "ArithmeticAbortEnabled"
    CONCAT_NULL_YIELDS_NULL = "ConcatenateNullYieldsNull"
    NUMERIC_ROUND_ABORT = "NumericRoundAbortEnabled"
    QUOTED_IDENTIFIER = "QuotedIdentifiersEnabled"
    RECURSIVE_TRIGGERS = "RecursiveTriggersEnabled"
    FULL_TEXT = "IsFullTextEnabled"
    DB_CHAINING = "DatabaseOwnershipChaining"
    TRUSTWORTHY = "Trustworthy"
    DATE_CORRELATION_OPTIMIZATION = "DateCorrelationOptimization"
    BROKER_ENABLED = "BrokerEnabled"
    PARAMETERIZATION_FORCED = "IsParameterizationForced"
    VAR_DECIMAL_STORAGE_FORMAT = "IsVarDecimalStorageFormatEnabled"
    ENCRYPTION_ENABLED = "EncryptionEnabled"
    HONOR_BROKER_PRIORITY = "HonorBrokerPriority"
    DEFAULT_LANGUAGE = "DefaultLanguageLcid"
    DEFAULT_FULLTEXT_LANGUAGE = "DefaultFullTextLanguageLcid"
    TWO_DIGIT_YEAR_CUTOFF = "TwoDigitYearCutoff"
    TARGET_RECOVERY_TIME = "TargetRecoveryTime"
    NESTED_TRIGGERS = "NestedTriggersEnabled"
    TRANSFORM_NOISE_WORDS = "TransformNoiseWords"
    READ_COMMITTED_SNAPSHOT = "IsReadCommittedSnapshotOn"
    SNAPSHOT_ISOLATION = "SnapshotIsolationState"
    FILESTREAM_NON_TRANSACTED_ACCESS = "FilestreamNonTransactedAccess"
    FILESTREAM_DIRECTORY_NAME = "FilestreamDirectoryName"
    DELAYED_DURABILITY = "DelayedDurability"

    # mirroring
    MIRRORING = "IsMirroringEnabled"
    MIRRORING_SAFETY_LEVEL = "MirroringSafetyLevel"
    MIRRORING_WITNESS = "MirroringWitness"

    # database scoped configurations (gated together on MAX_DOP)
    MAX_DOP = "MaxDop"
    MAX_DOP_FOR_SECONDARY = "MaxDopForSecondary"
    LEGACY_CARDINALITY_ESTIMATION = "LegacyCardinalityEstimation"
    LEGACY_CARDINALITY_ESTIMATION_FOR_SECONDARY = "LegacyCardinalityEstimationForSecondary"
    PARAMETER_SNIFFING = "ParameterSniffing"
    PARAMETER_SNIFFING_FOR_SECONDARY = "ParameterSniffingForSecondary"
    QUERY_OPTIMIZER_HOTFIXES = "QueryOptimizerHotfixes"
    QUERY_OPTIMIZER_HOTFIXES_FOR_SECONDARY = "QueryOptimizerHotfixesForSecondary"

    # cloud tier
    MAX_SIZE = "MaxSizeInBytes"
    AZURE_EDITION = "AzureEdition"
    SERVICE_OBJECTIVE = "AzureServiceObjective"

    # filegroup
    AUTOGROW_ALL_FILES = "AutogrowAllFiles"


class CapabilityGate(Protocol):
    """Answers whether the target supports a named property."""

    def supports(self, property_name: str) -> bool: ...


class _ServerTraits(CapabilityGate, Protocol):
    server_major_version: int
    is_sysadmin: bool
    is_cloud: bool
    is_full_text_installed: bool


@dataclass(frozen=True, slots=True)
class CapabilitySet:
    """Supported properties and server traits, resolved once per prototype."""

    supported: frozenset[str] = field(default_factory=frozenset)
    server_major_version: int = 16
    is_sysadmin: bool = False
    is_cloud: bool = False
    is_full_text_installed: bool = False

    @classmethod
    def resolve(cls, connection: _ServerTraits) -> CapabilitySet:
        """Ask the connection about every known property, once."""
        return cls(
            supported=frozenset(name for name in PropertyName if connection.supports(name)),
            server_major_version=connection.server_major_version,
            is_sysadmin=connection.is_sysadmin,
            is_cloud=connection.is_cloud,
            is_full_text_installed=connection.is_full_text_installed,
        )

    @classmethod
    def all_supported(cls, **traits: object) -> CapabilitySet:
        """Every known property supported; `traits` override the server traits."""
        return cls(supported=frozenset(PropertyName), **traits)  # type: ignore[arg-type]

    def supports(self, property_name: str) -> bool:
        return property_name in self.supported

    # ---------- derived gates ----------

    @property
    def supports_scoped_configurations(self) -> bool:
        """Scoped configurations arrived together; MaxDop stands for all of them."""
        return self.supports(PropertyName.MAX_DOP)

    @property
    def can_write_server_level_options(self) -> bool:
        """Full-text and compatibility level need sysadmin (cloud has no such role)."""
        return self.is_sysadmin or self.is_cloud

    @property
    def can_write_full_text(self) -> bool:
        # Full-text indexing is always on from engine version 10.
        return (
            self.can_write_server_level_options
            and self.server_major_version <= 9
            and self.is_full_text_installed
        )

    @property
    def supports_filestream_max_size(self) -> bool:
        return self.server_major_version >= 11
