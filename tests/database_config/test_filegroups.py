from src.database_config.capabilities import CapabilitySet, PropertyName
from src.database_config.events import FilegroupDeleted, FilegroupRenamed
from src.database_config.filegroups import FilegroupPrototype
from src.enums import FilegroupKind
from tests.database_config.fakes import FakeDatabase, FakeFilegroup

# ---------- helpers ----------


def existing_filegroup(dispatcher, capabilities, log, **kwargs):
    handle = FakeFilegroup(log, "ARCHIVE", **kwargs)
    return FilegroupPrototype.from_handle(dispatcher, handle, capabilities), handle


# ---------- state ----------


def test_new_filegroup_has_changes(dispatcher):
    filegroup = FilegroupPrototype.new(dispatcher, "FG1")

    assert not filegroup.exists
    assert filegroup.changes_exist()


def test_primary_is_default_rows_filegroup(dispatcher):
    primary = FilegroupPrototype.primary(dispatcher)

    assert primary.is_primary
    assert primary.is_default
    assert primary.kind is FilegroupKind.ROWS


def test_existing_filegroup_without_edits_has_no_changes(dispatcher, capabilities, call_log):
    filegroup, _ = existing_filegroup(dispatcher, capabilities, call_log)

    assert filegroup.exists
    assert not filegroup.changes_exist()


def test_autogrow_all_files_ignored_when_unsupported(dispatcher, call_log):
    unsupported = CapabilitySet(supported=frozenset())
    filegroup, _ = existing_filegroup(dispatcher, unsupported, call_log, autogrow_all_files=True)

    assert not filegroup.is_autogrow_all_files


def test_rename_publishes_event_before_creation(dispatcher):
    filegroup = FilegroupPrototype.new(dispatcher, "FG1")
    seen = []
    dispatcher.subscribe(FilegroupRenamed, seen.append)

    filegroup.name = "FG2"

    assert filegroup.name == "FG2"
    assert seen == [FilegroupRenamed(filegroup, "FG1")]


def test_existing_filegroup_cannot_be_renamed(dispatcher, capabilities, call_log):
    filegroup, _ = existing_filegroup(dispatcher, capabilities, call_log)

    filegroup.name = "OTHER"

    assert filegroup.name == "ARCHIVE"


def test_notify_deleted_only_flags_existing_filegroups(dispatcher, capabilities, call_log):
    planned = FilegroupPrototype.new(dispatcher, "FG1")
    existing, _ = existing_filegroup(dispatcher, capabilities, call_log)
    seen = []
    dispatcher.subscribe(FilegroupDeleted, seen.append)

    planned.notify_deleted(None)
    existing.notify_deleted(None)

    assert not planned.removed
    assert existing.removed
    assert len(seen) == 2


# ---------- apply ----------


def test_apply_creates_new_filegroup(dispatcher, capabilities, call_log):
    database = FakeDatabase(call_log, "Sales", exists=False)
    filegroup = FilegroupPrototype.new(dispatcher, "FG1", FilegroupKind.FILESTREAM)

    filegroup.apply_changes(database, capabilities)

    assert call_log[0] == ("new_filegroup", "FG1", FilegroupKind.FILESTREAM)
    assert ("alter_filegroup", "FG1") not in call_log


def test_apply_alters_only_changed_existing_filegroup(dispatcher, capabilities, call_log):
    filegroup, handle = existing_filegroup(dispatcher, capabilities, call_log)
    database = FakeDatabase(call_log, "Sales", filegroups=[handle])

    filegroup.apply_changes(database, capabilities)
    assert call_log == []

    filegroup.is_read_only = True
    filegroup.apply_changes(database, capabilities)

    assert call_log == [
        ("set", "filegroup:ARCHIVE", "read_only", True),
        ("alter_filegroup", "ARCHIVE"),
    ]


def test_apply_skips_autogrow_all_files_without_support(dispatcher, call_log):
    capabilities = CapabilitySet(supported=frozenset({PropertyName.READ_ONLY}))
    database = FakeDatabase(call_log, "Sales", exists=False)

    FilegroupPrototype.new(dispatcher, "FG1").apply_changes(database, capabilities)

    assert not any(entry[:3] == ("set", "filegroup:FG1", "autogrow_all_files") for entry in call_log)


def test_apply_drops_removed_existing_filegroup(dispatcher, capabilities, call_log):
    filegroup, handle = existing_filegroup(dispatcher, capabilities, call_log)
    database = FakeDatabase(call_log, "Sales", filegroups=[handle])

    filegroup.notify_deleted(None)
    filegroup.apply_changes(database, capabilities)

    assert call_log == [("drop_filegroup", "ARCHIVE")]


def test_accept_changes_clears_differences(dispatcher, capabilities, call_log):
    filegroup = FilegroupPrototype.new(dispatcher, "FG1")
    filegroup.apply_changes(FakeDatabase(call_log, "Sales", exists=False), capabilities)

    filegroup.accept_changes()

    assert filegroup.exists
    assert not filegroup.changes_exist()
