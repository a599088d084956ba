"""
Database option writes.

One table (`OPTION_WRITES`) lists every scalar setting that can be written,
how it is gated and what it is compared against. `apply_database_options`
walks the table once; newer engines simply support more rows. Mirroring and
filestream settings have their own rules and are handled after the table.

Rules per row
- Skipped unless the capability set supports the property (and the row's
  extra gate, if any, passes).
- Written for a new database; for an existing one only when it differs from
  the baseline: the server's current value, or the original prototype state
  for settings the server cannot report back reliably.
- `skip_blank` rows treat None/"" as "leave unchanged".
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Final

from src.database_config.capabilities import CapabilitySet, PropertyName
from src.database_config.ports import DatabaseHandle
from src.database_config.state import OPTION_FIELD_BY_NAME, DatabaseState, OptionField
from src.enums import FilestreamNonTransactedAccess
from src.logger import LOGGER


class Baseline(StrEnum):
    SERVER = "server"
    ORIGINAL = "original"


@dataclass(frozen=True, slots=True)
class OptionWrite:
    field: str
    baseline: Baseline = Baseline.SERVER
    gate: Callable[[CapabilitySet], bool] | None = None
    skip_blank: bool = False

    @property
    def binding(self) -> OptionField:
        return OPTION_FIELD_BY_NAME[self.field]

    def is_allowed(self, capabilities: CapabilitySet) -> bool:
        if not capabilities.supports(self.binding.option):
            return False
        return self.gate is None or self.gate(capabilities)


def _scoped_configurations(capabilities: CapabilitySet) -> bool:
    return capabilities.supports_scoped_configurations


def _server_level(capabilities: CapabilitySet) -> bool:
    return capabilities.can_write_server_level_options


def _full_text(capabilities: CapabilitySet) -> bool:
    return capabilities.can_write_full_text


OPTION_WRITES: Final[tuple[OptionWrite, ...]] = (
    OptionWrite("restrict_access"),
    OptionWrite("is_read_only"),
    OptionWrite("collation", skip_blank=True),
    OptionWrite("containment_type"),
    OptionWrite("close_cursor_on_commit"),
    OptionWrite("default_cursor"),
    OptionWrite("auto_close"),
    OptionWrite("auto_shrink"),
    OptionWrite("auto_create_statistics"),
    OptionWrite("auto_create_statistics_incremental"),
    OptionWrite("auto_update_statistics"),
    OptionWrite("auto_update_statistics_async"),
    OptionWrite("ansi_null_default"),
    OptionWrite("ansi_nulls"),
    OptionWrite("ansi_padding"),
    OptionWrite("ansi_warnings"),
    OptionWrite("arithmetic_abort"),
    OptionWrite("concat_null_yields_null"),
    OptionWrite("numeric_round_abort"),
    OptionWrite("quoted_identifier"),
    OptionWrite("recursive_triggers"),
    OptionWrite("recovery_model"),
    OptionWrite("page_verify"),
    OptionWrite("db_chaining"),
    OptionWrite("trustworthy"),
    OptionWrite("full_text_indexing", gate=_full_text),
    OptionWrite("compatibility_level", gate=_server_level),
    OptionWrite("date_correlation_optimization"),
    OptionWrite("parameterization_forced"),
    OptionWrite("broker_enabled"),
    OptionWrite("honor_broker_priority"),
    OptionWrite("is_read_committed_snapshot_on"),
    OptionWrite("var_decimal_storage_format"),
    OptionWrite("default_language_lcid"),
    OptionWrite("default_fulltext_language_lcid"),
    OptionWrite("two_digit_year_cutoff"),
    OptionWrite("nested_triggers"),
    OptionWrite("transform_noise_words"),
    OptionWrite("target_recovery_time"),
    OptionWrite("delayed_durability"),
    OptionWrite("encryption_enabled", baseline=Baseline.ORIGINAL),
    OptionWrite("max_dop", gate=_scoped_configurations),
    OptionWrite("max_dop_for_secondary", gate=_scoped_configurations),
    OptionWrite("legacy_cardinality_estimation", gate=_scoped_configurations),
    OptionWrite("legacy_cardinality_estimation_for_secondary", gate=_scoped_configurations),
    OptionWrite("parameter_sniffing", gate=_scoped_configurations),
    OptionWrite("parameter_sniffing_for_secondary", gate=_scoped_configurations),
    OptionWrite("query_optimizer_hotfixes", gate=_scoped_configurations),
    OptionWrite("query_optimizer_hotfixes_for_secondary", gate=_scoped_configurations),
    OptionWrite("max_size_bytes", baseline=Baseline.ORIGINAL, skip_blank=True),
    OptionWrite("azure_edition", baseline=Baseline.ORIGINAL, skip_blank=True),
    OptionWrite("service_level_objective", baseline=Baseline.ORIGINAL, skip_blank=True),
)


def apply_database_options(
    handle: DatabaseHandle,
    *,
    original: DatabaseState,
    current: DatabaseState,
    exists: bool,
    capabilities: CapabilitySet,
) -> list[PropertyName]:
    """Stage every option write the current state needs; return the properties written."""
    written: list[PropertyName] = []
    for write in OPTION_WRITES:
        if not write.is_allowed(capabilities):
            continue
        binding = write.binding
        value = getattr(current, write.field)
        if write.skip_blank and value in (None, ""):
            continue
        remote_value = binding.to_remote(value) if binding.to_remote is not None else value
        if exists and not _differs_from_baseline(
            handle, write, remote_value, getattr(original, write.field), value
        ):
            continue
        _write(handle, binding.option, remote_value, written)

    _apply_mirroring(handle, current, exists=exists, capabilities=capabilities, written=written)
    _apply_filestream(handle, current, exists=exists, capabilities=capabilities, written=written)
    return written


# ---------- helpers ----------


def _differs_from_baseline(
    handle: DatabaseHandle, write: OptionWrite, remote_value: Any, original: Any, current: Any
) -> bool:
    if write.baseline is Baseline.ORIGINAL:
        return original != current
    return handle.read_option(write.binding.option) != remote_value


def _write(
    handle: DatabaseHandle, option: PropertyName, value: Any, written: list[PropertyName]
) -> None:
    LOGGER.debug("Setting %s = %r on database %r.", option, value, handle.name)
    handle.write_option(option, value)
    written.append(option)


def _apply_mirroring(
    handle: DatabaseHandle,
    current: DatabaseState,
    *,
    exists: bool,
    capabilities: CapabilitySet,
    written: list[PropertyName],
) -> None:
    """Safety level and witness, only for an existing, mirrored database."""
    if not exists or not capabilities.supports(PropertyName.MIRRORING):
        return
    if not handle.read_option(PropertyName.MIRRORING):
        return

    if handle.read_option(PropertyName.MIRRORING_SAFETY_LEVEL) != current.mirroring_safety_level:
        _write(handle, PropertyName.MIRRORING_SAFETY_LEVEL, current.mirroring_safety_level, written)

    server_witness = handle.read_option(PropertyName.MIRRORING_WITNESS) or ""
    if server_witness.casefold() == current.mirroring_witness.casefold():
        return
    if current.mirroring_witness:
        _write(handle, PropertyName.MIRRORING_WITNESS, current.mirroring_witness, written)
    else:
        LOGGER.debug("Removing mirroring witness of database %r.", handle.name)
        handle.remove_mirroring_witness()
        written.append(PropertyName.MIRRORING_WITNESS)


def _apply_filestream(
    handle: DatabaseHandle,
    current: DatabaseState,
    *,
    exists: bool,
    capabilities: CapabilitySet,
    written: list[PropertyName],
) -> None:
    """A new database only gets non-default filestream settings."""
    if not capabilities.supports(PropertyName.FILESTREAM_DIRECTORY_NAME):
        return

    directory_name = current.filestream_directory_name
    if exists:
        server_directory = handle.read_option(PropertyName.FILESTREAM_DIRECTORY_NAME) or ""
        directory_changed = server_directory.casefold() != directory_name.casefold()
    else:
        directory_changed = bool(directory_name)
    if directory_changed:
        _write(handle, PropertyName.FILESTREAM_DIRECTORY_NAME, directory_name, written)

    access = current.filestream_non_transacted_access
    if exists:
        access_changed = (
            handle.read_option(PropertyName.FILESTREAM_NON_TRANSACTED_ACCESS) != access
        )
    else:
        access_changed = access is not FilestreamNonTransactedAccess.OFF
    if access_changed:
        _write(handle, PropertyName.FILESTREAM_NON_TRANSACTED_ACCESS, access, written)
