from dataclasses import replace

from src.database_config.capabilities import CapabilitySet, PropertyName
from src.database_config.reconcile.properties import OPTION_WRITES, apply_database_options
from src.database_config.state import DatabaseState
from src.enums import (
    AzureEdition,
    DefaultCursor,
    FilestreamNonTransactedAccess,
    MirroringSafetyLevel,
    ScopedConfiguration,
)
from tests.database_config.fakes import FakeDatabase, server_options

# ---------- helpers ----------


def apply(handle, current, *, original=None, exists=True, capabilities=None):
    return apply_database_options(
        handle,
        original=original or DatabaseState(),
        current=current,
        exists=exists,
        capabilities=capabilities or CapabilitySet.all_supported(is_sysadmin=True),
    )


def written_options(log):
    return [entry[1] for entry in log if entry[0] == "write"]


# ---------- tests ----------


def test_every_row_maps_to_a_state_field():
    assert all(write.binding.field == write.field for write in OPTION_WRITES)


def test_existing_database_writes_only_differences(call_log):
    handle = FakeDatabase(call_log, "Sales")

    written = apply(handle, replace(DatabaseState(), auto_close=True))

    assert written == [PropertyName.AUTO_CLOSE]
    assert call_log == [("write", PropertyName.AUTO_CLOSE, True)]


def test_converted_values_are_compared_in_engine_form(call_log):
    handle = FakeDatabase(call_log, "Sales", options=server_options(local_cursors_default=True))

    apply(handle, replace(DatabaseState(), default_cursor=DefaultCursor.LOCAL))

    assert call_log == []


def test_new_database_writes_everything_supported(call_log):
    handle = FakeDatabase(call_log, "Orders", exists=False)

    written = apply(handle, DatabaseState(), exists=False)

    assert PropertyName.RECOVERY_MODEL in written
    assert PropertyName.MAX_DOP in written
    # blank collation and unset cloud tier mean "leave as is"
    assert PropertyName.COLLATION not in written
    assert PropertyName.AZURE_EDITION not in written
    assert PropertyName.MAX_SIZE not in written


def test_unsupported_properties_are_skipped(call_log):
    handle = FakeDatabase(call_log, "Orders", exists=False)
    capabilities = CapabilitySet(
        supported=frozenset({PropertyName.RECOVERY_MODEL, PropertyName.PARAMETER_SNIFFING}),
        is_sysadmin=True,
    )

    written = apply(handle, DatabaseState(), exists=False, capabilities=capabilities)

    # scoped configurations follow MaxDop support as a family
    assert written == [PropertyName.RECOVERY_MODEL]


def test_compatibility_level_needs_sysadmin_or_cloud(call_log):
    handle = FakeDatabase(call_log, "Sales")
    current = replace(DatabaseState(), compatibility_level=150)

    assert apply(handle, current, capabilities=CapabilitySet.all_supported()) == []
    assert apply(handle, current, capabilities=CapabilitySet.all_supported(is_cloud=True)) == [
        PropertyName.COMPATIBILITY_LEVEL
    ]


def test_full_text_only_on_old_servers(call_log):
    handle = FakeDatabase(call_log, "Sales")
    current = replace(DatabaseState(), full_text_indexing=True)
    old = CapabilitySet.all_supported(
        is_sysadmin=True, server_major_version=9, is_full_text_installed=True
    )

    assert apply(handle, current) == []
    assert apply(handle, current, capabilities=old) == [PropertyName.FULL_TEXT]


def test_cloud_settings_compare_against_original(call_log):
    handle = FakeDatabase(call_log, "Sales")
    original = replace(DatabaseState(), azure_edition=AzureEdition.STANDARD, service_level_objective="S0")

    assert apply(handle, original, original=original) == []

    current = replace(original, service_level_objective="S3")
    assert apply(handle, current, original=original) == [PropertyName.SERVICE_OBJECTIVE]


def test_scoped_configuration_change(call_log):
    handle = FakeDatabase(call_log, "Sales")

    written = apply(
        handle,
        replace(DatabaseState(), parameter_sniffing=ScopedConfiguration.OFF, max_dop=4),
    )

    assert written == [PropertyName.MAX_DOP, PropertyName.PARAMETER_SNIFFING]


# ---------- mirroring ----------


def test_mirroring_ignored_for_unmirrored_database(call_log):
    handle = FakeDatabase(call_log, "Sales")

    apply(handle, replace(DatabaseState(), mirroring_witness="TCP://w:5022"))

    assert call_log == []


def test_mirroring_safety_and_witness(call_log):
    options = server_options(mirroring_witness="TCP://old:5022")
    options[PropertyName.MIRRORING] = True
    handle = FakeDatabase(call_log, "Sales", options=options)

    apply(
        handle,
        replace(
            DatabaseState(),
            mirroring_safety_level=MirroringSafetyLevel.OFF,
            mirroring_witness="TCP://new:5022",
        ),
    )

    assert call_log == [
        ("write", PropertyName.MIRRORING_SAFETY_LEVEL, MirroringSafetyLevel.OFF),
        ("write", PropertyName.MIRRORING_WITNESS, "TCP://new:5022"),
    ]


def test_empty_witness_removes_it(call_log):
    options = server_options(mirroring_witness="TCP://old:5022")
    options[PropertyName.MIRRORING] = True
    handle = FakeDatabase(call_log, "Sales", options=options)

    apply(handle, DatabaseState())

    assert call_log == [("remove_mirroring_witness",)]


def test_witness_compares_without_case(call_log):
    options = server_options(mirroring_witness="TCP://Witness:5022")
    options[PropertyName.MIRRORING] = True
    handle = FakeDatabase(call_log, "Sales", options=options)

    apply(handle, replace(DatabaseState(), mirroring_witness="tcp://witness:5022"))

    assert call_log == []


# ---------- filestream ----------


def test_new_database_writes_only_non_default_filestream_settings(call_log):
    handle = FakeDatabase(call_log, "Orders", exists=False)
    capabilities = CapabilitySet(
        supported=frozenset(
            {PropertyName.FILESTREAM_DIRECTORY_NAME, PropertyName.FILESTREAM_NON_TRANSACTED_ACCESS}
        )
    )

    apply(handle, DatabaseState(), exists=False, capabilities=capabilities)
    assert call_log == []

    apply(
        handle,
        replace(
            DatabaseState(),
            filestream_directory_name="docs",
            filestream_non_transacted_access=FilestreamNonTransactedAccess.FULL,
        ),
        exists=False,
        capabilities=capabilities,
    )
    assert written_options(call_log) == [
        PropertyName.FILESTREAM_DIRECTORY_NAME,
        PropertyName.FILESTREAM_NON_TRANSACTED_ACCESS,
    ]


def test_existing_filestream_directory_compares_without_case(call_log):
    handle = FakeDatabase(call_log, "Sales", options=server_options(filestream_directory_name="Docs"))

    apply(handle, replace(DatabaseState(), filestream_directory_name="DOCS"))

    assert call_log == []
