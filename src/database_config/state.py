"""
Database-level settings and how they are read from a database handle.

`DatabaseState` is the scalar half of a database prototype: identity, status,
options, scoped configurations and cloud-tier settings. Files and filegroups
are tracked separately by the aggregate.

Reading rules
- Only properties the capability set supports are read; the rest keep their
  defaults.
- Status: permission denied reads as `DatabaseStatus.INACCESSIBLE`.
- Full-text: permission denied reads as False.
- Mirroring: permission denied keeps the defaults.
- Owner: any failure reads as "".
- Everything else propagates.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, fields, replace
from datetime import datetime
from typing import Any, Final

from src.constants import TEMPLATE_DATABASE_NAME
from src.database_config.capabilities import CapabilitySet, PropertyName
from src.database_config.catalog import CatalogQueries
from src.database_config.errors import is_permission_denied
from src.database_config.ports import DatabaseHandle, ServerConnection
from src.enums import (
    AzureEdition,
    ContainmentType,
    DatabaseStatus,
    DefaultCursor,
    DelayedDurability,
    FilestreamNonTransactedAccess,
    MirroringSafetyLevel,
    PageVerify,
    RecoveryModel,
    ScopedConfiguration,
    UserAccess,
)
from src.logger import LOGGER


@dataclass(frozen=True, slots=True)
class DatabaseState:
    # identity and status
    name: str = ""
    owner: str = ""
    collation: str = ""
    status: DatabaseStatus = DatabaseStatus.NORMAL
    last_backup_date: datetime | None = None
    last_log_backup_date: datetime | None = None
    is_system_database: bool = False

    # options
    restrict_access: UserAccess = UserAccess.MULTIPLE
    is_read_only: bool = False
    recovery_model: RecoveryModel = RecoveryModel.FULL
    compatibility_level: int = 160
    containment_type: ContainmentType = ContainmentType.NONE
    page_verify: PageVerify = PageVerify.CHECKSUM
    close_cursor_on_commit: bool = False
    default_cursor: DefaultCursor = DefaultCursor.GLOBAL
    auto_close: bool = False
    auto_shrink: bool = False
    auto_create_statistics: bool = True
    auto_create_statistics_incremental: bool = False
    auto_update_statistics: bool = True
    auto_update_statistics_async: bool = False
    ansi_null_default: bool = False
    ansi_nulls: bool = False
    ansi_padding: bool = False
    ansi_warnings: bool = False
    arithmetic_abort: bool = False
    concat_null_yields_null: bool = False
    numeric_round_abort: bool = False
    quoted_identifier: bool = False
    recursive_triggers: bool = False
    full_text_indexing: bool = False
    db_chaining: bool = False
    trustworthy: bool = False
    date_correlation_optimization: bool = False
    broker_enabled: bool = False
    parameterization_forced: bool = False
    var_decimal_storage_format: bool = False
    encryption_enabled: bool = False
    honor_broker_priority: bool = False
    default_language_lcid: int = 1033
    default_fulltext_language_lcid: int = 1033
    two_digit_year_cutoff: int = 2049
    target_recovery_time: int = 60
    nested_triggers: bool = True
    transform_noise_words: bool = False
    is_read_committed_snapshot_on: bool = False
    allow_snapshot_isolation: bool = False
    filestream_non_transacted_access: FilestreamNonTransactedAccess = (
        FilestreamNonTransactedAccess.OFF
    )
    filestream_directory_name: str = ""
    delayed_durability: DelayedDurability = DelayedDurability.DISABLED

    # mirroring
    mirroring_safety_level: MirroringSafetyLevel = MirroringSafetyLevel.FULL
    mirroring_witness: str = ""

    # database scoped configurations
    max_dop: int = 0
    max_dop_for_secondary: int | None = None
    legacy_cardinality_estimation: ScopedConfiguration = ScopedConfiguration.OFF
    legacy_cardinality_estimation_for_secondary: ScopedConfiguration = ScopedConfiguration.PRIMARY
    parameter_sniffing: ScopedConfiguration = ScopedConfiguration.ON
    parameter_sniffing_for_secondary: ScopedConfiguration = ScopedConfiguration.PRIMARY
    query_optimizer_hotfixes: ScopedConfiguration = ScopedConfiguration.OFF
    query_optimizer_hotfixes_for_secondary: ScopedConfiguration = ScopedConfiguration.PRIMARY

    # cloud tier; None means "leave as is"
    azure_edition: AzureEdition | None = None
    service_level_objective: str = ""
    max_size_bytes: int | None = None

    def has_same_value_as(self, other: DatabaseState) -> bool:
        """Field-by-field equality; the filestream directory name ignores case."""
        for f in fields(self):
            mine, theirs = getattr(self, f.name), getattr(other, f.name)
            if f.name == "filestream_directory_name":
                if mine.casefold() != theirs.casefold():
                    return False
            elif mine != theirs:
                return False
        return True

    def changed_fields(self, other: DatabaseState) -> tuple[str, ...]:
        """Names of the fields whose values differ from `other`."""
        return tuple(
            f.name for f in fields(self) if getattr(self, f.name) != getattr(other, f.name)
        )


# ---------- handle binding ----------


@dataclass(frozen=True, slots=True)
class OptionField:
    """How one `DatabaseState` field maps onto an engine property."""

    field: str
    option: PropertyName
    from_remote: Callable[[Any], Any] | None = None
    to_remote: Callable[[Any], Any] | None = None


def _local_cursor_to_default(local: bool) -> DefaultCursor:
    return DefaultCursor.LOCAL if local else DefaultCursor.GLOBAL


def _default_cursor_to_local(cursor: DefaultCursor) -> bool:
    return cursor is DefaultCursor.LOCAL


def _optional_edition(value: Any) -> AzureEdition | None:
    return AzureEdition(value) if value else None


OPTION_FIELDS: Final[tuple[OptionField, ...]] = (
    OptionField("collation", PropertyName.COLLATION),
    OptionField("last_backup_date", PropertyName.LAST_BACKUP_DATE),
    OptionField("last_log_backup_date", PropertyName.LAST_LOG_BACKUP_DATE),
    OptionField("is_system_database", PropertyName.IS_SYSTEM_OBJECT, bool),
    OptionField("restrict_access", PropertyName.USER_ACCESS, UserAccess),
    OptionField("is_read_only", PropertyName.READ_ONLY, bool),
    OptionField("recovery_model", PropertyName.RECOVERY_MODEL, RecoveryModel),
    OptionField("compatibility_level", PropertyName.COMPATIBILITY_LEVEL, int),
    OptionField("containment_type", PropertyName.CONTAINMENT_TYPE, ContainmentType),
    OptionField("page_verify", PropertyName.PAGE_VERIFY, PageVerify),
    OptionField("close_cursor_on_commit", PropertyName.CLOSE_CURSORS_ON_COMMIT, bool),
    OptionField(
        "default_cursor",
        PropertyName.LOCAL_CURSORS_DEFAULT,
        _local_cursor_to_default,
        _default_cursor_to_local,
    ),
    OptionField("auto_close", PropertyName.AUTO_CLOSE, bool),
    OptionField("auto_shrink", PropertyName.AUTO_SHRINK, bool),
    OptionField("auto_create_statistics", PropertyName.AUTO_CREATE_STATISTICS, bool),
    OptionField(
        "auto_create_statistics_incremental",
        PropertyName.AUTO_CREATE_STATISTICS_INCREMENTAL,
        bool,
    ),
    OptionField("auto_update_statistics", PropertyName.AUTO_UPDATE_STATISTICS, bool),
    OptionField("auto_update_statistics_async", PropertyName.AUTO_UPDATE_STATISTICS_ASYNC, bool),
    OptionField("ansi_null_default", PropertyName.ANSI_NULL_DEFAULT, bool),
    OptionField("ansi_nulls", PropertyName.ANSI_NULLS, bool),
    OptionField("ansi_padding", PropertyName.ANSI_PADDING, bool),
    OptionField("ansi_warnings", PropertyName.ANSI_WARNINGS, bool),
    OptionField("arithmetic_abort", PropertyName.ARITHMETIC_ABORT, bool),
    OptionField("concat_null_yields_null", PropertyName.CONCAT_NULL_YIELDS_NULL, bool),
    OptionField("numeric_round_abort", PropertyName.NUMERIC_ROUND_ABORT, bool),
    OptionField("quoted_identifier", PropertyName.QUOTED_IDENTIFIER, bool),
    OptionField("recursive_triggers", PropertyName.RECURSIVE_TRIGGERS, bool),
    OptionField("full_text_indexing", PropertyName.FULL_TEXT, bool),
    OptionField("db_chaining", PropertyName.DB_CHAINING, bool),
    OptionField("trustworthy", PropertyName.TRUSTWORTHY, bool),
    OptionField(
        "date_correlation_optimization", PropertyName.DATE_CORRELATION_OPTIMIZATION, bool
    ),
    OptionField("broker_enabled", PropertyName.BROKER_ENABLED, bool),
    OptionField("parameterization_forced", PropertyName.PARAMETERIZATION_FORCED, bool),
    OptionField("var_decimal_storage_format", PropertyName.VAR_DECIMAL_STORAGE_FORMAT, bool),
    OptionField("encryption_enabled", PropertyName.ENCRYPTION_ENABLED, bool),
    OptionField("honor_broker_priority", PropertyName.HONOR_BROKER_PRIORITY, bool),
    OptionField("default_language_lcid", PropertyName.DEFAULT_LANGUAGE, int),
    OptionField("default_fulltext_language_lcid", PropertyName.DEFAULT_FULLTEXT_LANGUAGE, int),
    OptionField("two_digit_year_cutoff", PropertyName.TWO_DIGIT_YEAR_CUTOFF, int),
    OptionField("target_recovery_time", PropertyName.TARGET_RECOVERY_TIME, int),
    OptionField("nested_triggers", PropertyName.NESTED_TRIGGERS, bool),
    OptionField("transform_noise_words", PropertyName.TRANSFORM_NOISE_WORDS, bool),
    OptionField("is_read_committed_snapshot_on", PropertyName.READ_COMMITTED_SNAPSHOT, bool),
    OptionField("allow_snapshot_isolation", PropertyName.SNAPSHOT_ISOLATION, bool),
    OptionField(
        "filestream_non_transacted_access",
        PropertyName.FILESTREAM_NON_TRANSACTED_ACCESS,
        FilestreamNonTransactedAccess,
    ),
    OptionField("filestream_directory_name", PropertyName.FILESTREAM_DIRECTORY_NAME, str),
    OptionField("delayed_durability", PropertyName.DELAYED_DURABILITY, DelayedDurability),
    OptionField("mirroring_safety_level", PropertyName.MIRRORING_SAFETY_LEVEL, MirroringSafetyLevel),
    OptionField("mirroring_witness", PropertyName.MIRRORING_WITNESS, str),
    OptionField("max_dop", PropertyName.MAX_DOP, int),
    OptionField("max_dop_for_secondary", PropertyName.MAX_DOP_FOR_SECONDARY),
    OptionField(
        "legacy_cardinality_estimation",
        PropertyName.LEGACY_CARDINALITY_ESTIMATION,
        ScopedConfiguration,
    ),
    OptionField(
        "legacy_cardinality_estimation_for_secondary",
        PropertyName.LEGACY_CARDINALITY_ESTIMATION_FOR_SECONDARY,
        ScopedConfiguration,
    ),
    OptionField("parameter_sniffing", PropertyName.PARAMETER_SNIFFING, ScopedConfiguration),
    OptionField(
        "parameter_sniffing_for_secondary",
        PropertyName.PARAMETER_SNIFFING_FOR_SECONDARY,
        ScopedConfiguration,
    ),
    OptionField(
        "query_optimizer_hotfixes", PropertyName.QUERY_OPTIMIZER_HOTFIXES, ScopedConfiguration
    ),
    OptionField(
        "query_optimizer_hotfixes_for_secondary",
        PropertyName.QUERY_OPTIMIZER_HOTFIXES_FOR_SECONDARY,
        ScopedConfiguration,
    ),
    OptionField("azure_edition", PropertyName.AZURE_EDITION, _optional_edition),
    OptionField("service_level_objective", PropertyName.SERVICE_OBJECTIVE, str),
    OptionField("max_size_bytes", PropertyName.MAX_SIZE),
)

OPTION_FIELD_BY_NAME: Final[dict[str, OptionField]] = {f.field: f for f in OPTION_FIELDS}

_PERMISSION_TOLERANT_FIELDS: Final[dict[str, object]] = {
    "full_text_indexing": False,
}
_MIRRORING_FIELDS: Final[frozenset[str]] = frozenset({"mirroring_safety_level", "mirroring_witness"})


# ---------- readers ----------


def read_database_state(
    handle: DatabaseHandle,
    capabilities: CapabilitySet,
    catalog: CatalogQueries | None = None,
) -> DatabaseState:
    """
    Read every supported setting of an existing database.

    On cloud targets a blank service objective is looked up in `catalog`.
    """
    values: dict[str, Any] = {
        "name": handle.name,
        "status": _read_status(handle),
        "owner": _read_owner(handle),
    }
    for option_field in OPTION_FIELDS:
        if not capabilities.supports(option_field.option):
            continue
        if option_field.field in _MIRRORING_FIELDS and not _is_mirrored(handle, capabilities):
            continue
        try:
            raw = handle.read_option(option_field.option)
        except Exception as exc:
            if not is_permission_denied(exc):
                raise
            if option_field.field in _PERMISSION_TOLERANT_FIELDS:
                values[option_field.field] = _PERMISSION_TOLERANT_FIELDS[option_field.field]
            elif option_field.field not in _MIRRORING_FIELDS:
                raise
            continue
        values[option_field.field] = (
            option_field.from_remote(raw) if option_field.from_remote is not None else raw
        )
    if capabilities.is_cloud and catalog is not None and not values.get("service_level_objective"):
        values["service_level_objective"] = _read_service_objective(handle, catalog)
    return DatabaseState(**values)


def template_database_state(
    connection: ServerConnection, capabilities: CapabilitySet
) -> DatabaseState:
    """
    Starting settings for a new database, inherited from the template database.

    Falls back to the built-in defaults when the template cannot be read.
    """
    try:
        template = connection.database(TEMPLATE_DATABASE_NAME)
        state = read_database_state(template, capabilities) if template else DatabaseState()
    except Exception as exc:
        LOGGER.warning("Could not read template database settings, using defaults: %s", exc)
        state = DatabaseState()
    return replace(state, name="", owner="", is_read_only=False, is_system_database=False)


def _read_status(handle: DatabaseHandle) -> DatabaseStatus:
    try:
        return DatabaseStatus(handle.read_option(PropertyName.STATUS))
    except Exception as exc:
        if is_permission_denied(exc):
            return DatabaseStatus.INACCESSIBLE
        raise


def _read_owner(handle: DatabaseHandle) -> str:
    try:
        return handle.read_option(PropertyName.OWNER) or ""
    except Exception as exc:
        LOGGER.warning("Could not read owner of database %r: %s", handle.name, exc)
        return ""


def _read_service_objective(handle: DatabaseHandle, catalog: CatalogQueries) -> str:
    try:
        return catalog.service_objective(handle.name)
    except Exception as exc:
        LOGGER.warning("Could not read service objective of database %r: %s", handle.name, exc)
        return ""


def _is_mirrored(handle: DatabaseHandle, capabilities: CapabilitySet) -> bool:
    if not capabilities.supports(PropertyName.MIRRORING):
        return False
    try:
        return bool(handle.read_option(PropertyName.MIRRORING))
    except Exception as exc:
        if is_permission_denied(exc):
            return False
        raise
