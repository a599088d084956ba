"""
File prototype: desired state of one data, filestream or log file.

Purpose
- Track original vs current state of a file and apply the difference.
- Follow its filegroup through deletion: move to the fallback default while
  the file is only a plan, or be removed along with it once it exists.

Notes
- Sizes are kilobytes; `initial_size_mb` is a rounded-up view.
- The physical path is fixed at creation. Renames of existing files are
  issued before any other change.
- Growth and size writes compare three values (original prototype, current
  prototype, server) with a 1e-6 tolerance so float noise never causes a write.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Protocol

from src.constants import DEFAULT_INITIAL_FILE_SIZE_KB, UNAVAILABLE
from src.database_config.capabilities import CapabilitySet
from src.database_config.errors import InvalidRemovalError
from src.database_config.events import FilegroupDeleted, FilegroupEventDispatcher
from src.database_config.growth import AutogrowthPolicy
from src.database_config.naming import file_suffix, make_disk_file_name, split_disk_file_name
from src.database_config.ports import DatabaseHandle, FileHandle
from src.database_config.units import differs, exceeds, kb_to_mb, mb_to_kb
from src.enums import FileKind, GrowthType
from src.logger import LOGGER

if TYPE_CHECKING:
    from src.database_config.defaults import TemplateDefaults
    from src.database_config.filegroups import FilegroupPrototype


class FileOwner(Protocol):
    """What a file needs from the aggregate that owns it."""

    dispatcher: FilegroupEventDispatcher
    capabilities: CapabilitySet
    defaults: TemplateDefaults

    @property
    def files(self) -> tuple[FilePrototype, ...]: ...

    @property
    def log_file_count(self) -> int: ...

    def remove_file(self, file: FilePrototype) -> None: ...


@dataclass(frozen=True, slots=True)
class FileState:
    name: str = ""
    physical_name: str = ""
    folder: str = ""
    kind: FileKind = FileKind.DATA
    filegroup: FilegroupPrototype | None = None
    initial_size_kb: float = DEFAULT_INITIAL_FILE_SIZE_KB
    autogrowth: AutogrowthPolicy = field(default_factory=AutogrowthPolicy)
    is_primary_file: bool = False


class FilePrototype:
    """One database file with its original (server) and current (edited) state."""

    def __init__(self, owner: FileOwner, state: FileState, *, exists: bool = False) -> None:
        self._owner = owner
        self.original_state: FileState = state
        self.current_state: FileState = state
        self._exists = exists
        self._removed = False
        self._using_default_folder = (
            not exists and state.folder == owner.defaults.folder_for(state.kind)
        )
        if state.filegroup is not None:
            self._subscribe(state.filegroup)

    # ---------- construction ----------

    @classmethod
    def new(
        cls,
        owner: FileOwner,
        kind: FileKind = FileKind.DATA,
        *,
        name: str = "",
        filegroup: FilegroupPrototype | None = None,
        is_primary_file: bool = False,
    ) -> FilePrototype:
        """A file to be created, seeded with the server's defaults for its kind."""
        defaults = owner.defaults
        state = FileState(
            name=name,
            folder=defaults.folder_for(kind),
            kind=kind,
            filegroup=None if kind is FileKind.LOG else filegroup,
            initial_size_kb=defaults.size_for(kind),
            autogrowth=defaults.autogrowth_for(kind),
            is_primary_file=is_primary_file,
        )
        return cls(owner, state, exists=False)

    @classmethod
    def from_data_file(
        cls, owner: FileOwner, handle: FileHandle, filegroup: FilegroupPrototype
    ) -> FilePrototype:
        """An existing data or filestream file; the kind follows the filegroup."""
        folder, physical_name = split_disk_file_name(handle.file_name)
        state = FileState(
            name=handle.name,
            physical_name=physical_name,
            folder=folder,
            kind=filegroup.kind.file_kind,
            filegroup=filegroup,
            initial_size_kb=float(handle.size),
            autogrowth=AutogrowthPolicy.from_data_file(handle),
            is_primary_file=handle.is_primary_file,
        )
        return cls(owner, state, exists=True)

    @classmethod
    def from_log_file(cls, owner: FileOwner, handle: FileHandle) -> FilePrototype:
        """
        An existing log file.

        Log file details are not readable in every database state; unreadable
        path and size are reported as "unavailable" and 0.
        """
        try:
            folder, physical_name = split_disk_file_name(handle.file_name)
            size = float(handle.size)
        except Exception as exc:
            LOGGER.warning("Could not read details of log file %r: %s", handle.name, exc)
            folder = physical_name = UNAVAILABLE
            size = 0.0
        state = FileState(
            name=handle.name,
            physical_name=physical_name,
            folder=folder,
            kind=FileKind.LOG,
            initial_size_kb=size,
            autogrowth=AutogrowthPolicy.from_log_file(handle),
        )
        return cls(owner, state, exists=True)

    # ---------- properties ----------

    @property
    def name(self) -> str:
        return self.current_state.name

    @name.setter
    def name(self, value: str) -> None:
        self.current_state = replace(self.current_state, name=value)

    @property
    def physical_name(self) -> str:
        return self.current_state.physical_name

    @physical_name.setter
    def physical_name(self, value: str) -> None:
        if self._ignore_when_existing("physical name"):
            return
        self.current_state = replace(self.current_state, physical_name=value)

    @property
    def folder(self) -> str:
        return self.current_state.folder

    @folder.setter
    def folder(self, value: str) -> None:
        if self._ignore_when_existing("folder"):
            return
        self.current_state = replace(self.current_state, folder=value)
        self._using_default_folder = value == self._owner.defaults.folder_for(self.kind)

    @property
    def kind(self) -> FileKind:
        return self.current_state.kind

    @kind.setter
    def kind(self, value: FileKind) -> None:
        if self._ignore_when_existing("kind"):
            return
        if self._is_last_log_file() and value is not FileKind.LOG:
            raise InvalidRemovalError("A database needs at least one log file.")
        changes: dict[str, object] = {"kind": value}
        if self._using_default_folder:
            changes["folder"] = self._owner.defaults.folder_for(value)
        if value is FileKind.LOG and self.filegroup is not None:
            self._unsubscribe(self.filegroup)
            changes["filegroup"] = None
        self.current_state = replace(self.current_state, **changes)  # type: ignore[arg-type]

    @property
    def filegroup(self) -> FilegroupPrototype | None:
        return self.current_state.filegroup

    @filegroup.setter
    def filegroup(self, value: FilegroupPrototype) -> None:
        if self._ignore_when_existing("filegroup"):
            return
        if self.kind is FileKind.LOG:
            LOGGER.warning("Log file %r cannot belong to a filegroup.", self.name)
            return
        self._move_to(value)

    @property
    def initial_size_kb(self) -> float:
        return self.current_state.initial_size_kb

    @initial_size_kb.setter
    def initial_size_kb(self, value: float) -> None:
        self.current_state = replace(self.current_state, initial_size_kb=float(value))

    @property
    def initial_size_mb(self) -> int:
        return kb_to_mb(self.initial_size_kb)

    @initial_size_mb.setter
    def initial_size_mb(self, value: float) -> None:
        self.initial_size_kb = mb_to_kb(value)

    @property
    def autogrowth(self) -> AutogrowthPolicy:
        return self.current_state.autogrowth

    @autogrowth.setter
    def autogrowth(self, value: AutogrowthPolicy) -> None:
        self.current_state = replace(self.current_state, autogrowth=value)

    @property
    def is_primary_file(self) -> bool:
        return self.current_state.is_primary_file

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def removed(self) -> bool:
        return self._removed

    @property
    def disk_file_name(self) -> str:
        """Server-side path used when the file is created; validates the names."""
        suffix = file_suffix(self.kind, is_primary_file=self.is_primary_file)
        return make_disk_file_name(self.folder, self.name, self.physical_name, suffix)

    # ---------- lifecycle ----------

    def changes_exist(self) -> bool:
        original, current = self.original_state, self.current_state
        return (
            not self._exists
            or self._removed
            or original.kind != current.kind
            or original.filegroup is not current.filegroup
            or original.is_primary_file != current.is_primary_file
            or differs(original.initial_size_kb, current.initial_size_kb)
            or not original.autogrowth.has_same_value_as(current.autogrowth)
            or original.name != current.name
            or original.folder != current.folder
        )

    def validate(self) -> None:
        """Raise `InvalidNameError` if the file would be created with an invalid name."""
        if not self._exists and not self._removed:
            _ = self.disk_file_name

    def mark_removed(self) -> None:
        """Detach from the filegroup; only an existing file is flagged for a drop."""
        if self.filegroup is not None:
            self._unsubscribe(self.filegroup)
        self._removed = self._exists

    def accept_changes(self) -> None:
        self.original_state = self.current_state
        self._exists = True
        self._using_default_folder = False

    # ---------- apply ----------

    def apply_changes(self, database: DatabaseHandle) -> None:
        """Create, alter or drop the file on `database` as needed."""
        if not self.changes_exist():
            return
        if self._removed:
            self._drop(database)
        elif self.kind is FileKind.DATA:
            self._create_or_alter_data_file(database)
        elif self.kind is FileKind.LOG:
            self._create_or_alter_log_file(database)
        else:
            self._create_or_alter_filestream_file(database)

    def _drop(self, database: DatabaseHandle) -> None:
        if not self._exists:
            return
        if self.kind is FileKind.LOG:
            handle = database.log_file(self.original_state.name)
        else:
            filegroup = self.original_state.filegroup
            if filegroup is not None and filegroup.removed:
                # dropped together with its filegroup
                return
            handle = self._find_data_file(database)
        if handle is not None:
            LOGGER.debug("Dropping file %r.", self.original_state.name)
            handle.drop()

    def _create_or_alter_data_file(self, database: DatabaseHandle) -> None:
        handle = self._resolve_data_file(database)
        if self.is_primary_file and not self._exists:
            handle.is_primary_file = True
        if not self._exists:
            handle.file_name = self.disk_file_name
        self._apply_size(handle)
        self._apply_growth(handle)

    def _create_or_alter_log_file(self, database: DatabaseHandle) -> None:
        if self._exists:
            handle = database.log_file(self.original_state.name)
            if handle is None:
                raise LookupError(f"Log file {self.original_state.name!r} was not found.")
            self._rename_if_needed(handle)
        else:
            LOGGER.debug("Adding log file %r.", self.name)
            handle = database.new_log_file(self.name)
            handle.file_name = self.disk_file_name
        self._apply_size(handle)
        self._apply_growth(handle)

    def _create_or_alter_filestream_file(self, database: DatabaseHandle) -> None:
        handle = self._resolve_data_file(database)
        if not self._exists:
            handle.file_name = self.disk_file_name
        if not self._owner.capabilities.supports_filestream_max_size:
            return
        if not self._exists:
            if self.autogrowth.is_growth_restricted:
                handle.max_size = self.autogrowth.maximum_file_size_in_kb
        else:
            self._apply_maximum_size(handle, filestream=True)

    # ---------- apply helpers ----------

    def _resolve_data_file(self, database: DatabaseHandle) -> FileHandle:
        filegroup = self.filegroup
        if filegroup is None:
            raise LookupError(f"File {self.name!r} has no filegroup.")
        filegroup_handle = database.filegroup(filegroup.name)
        if filegroup_handle is None:
            raise LookupError(f"Filegroup {filegroup.name!r} was not found.")
        if not self._exists:
            LOGGER.debug("Adding file %r to filegroup %r.", self.name, filegroup.name)
            return filegroup_handle.new_file(self.name)
        handle = filegroup_handle.file(self.original_state.name)
        if handle is None:
            raise LookupError(f"File {self.original_state.name!r} was not found.")
        self._rename_if_needed(handle)
        return handle

    def _find_data_file(self, database: DatabaseHandle) -> FileHandle | None:
        filegroup = self.original_state.filegroup
        if filegroup is None:
            return None
        filegroup_handle = database.filegroup(filegroup.name)
        if filegroup_handle is None:
            return None
        return filegroup_handle.file(self.original_state.name)

    def _rename_if_needed(self, handle: FileHandle) -> None:
        if handle.name != self.name:
            LOGGER.debug("Renaming file %r to %r.", handle.name, self.name)
            handle.rename(self.name)

    def _apply_size(self, handle: FileHandle) -> None:
        """Grow when clearly larger than before and on the server, shrink when clearly smaller."""
        new_size = self.current_state.initial_size_kb
        original_size = self.original_state.initial_size_kb
        if not self._exists or (
            exceeds(new_size, original_size) and exceeds(new_size, handle.size)
        ):
            handle.size = new_size
        elif exceeds(original_size, new_size) and exceeds(handle.size, new_size):
            handle.shrink(kb_to_mb(new_size))

    def _apply_growth(self, handle: FileHandle) -> None:
        policy = self.current_state.autogrowth
        if not self._exists:
            if not policy.is_enabled:
                handle.growth_type = GrowthType.NONE
                return
            if policy.is_growth_restricted:
                handle.max_size = policy.maximum_file_size_in_kb
            handle.growth_type = policy.growth_type
            handle.growth = policy.growth_amount
            return

        original = self.original_state.autogrowth
        if policy.growth_type != original.growth_type and handle.growth_type != policy.growth_type:
            handle.growth_type = policy.growth_type
        if differs(policy.growth_amount, original.growth_amount) and differs(
            policy.growth_amount, handle.growth
        ):
            handle.growth = policy.growth_amount
        self._apply_maximum_size(handle)

    def _apply_maximum_size(self, handle: FileHandle, *, filestream: bool = False) -> None:
        # 0 is "unlimited" on both sides of the comparison; filestream caps
        # follow the restricted flag alone
        new_policy, original_policy = self.current_state.autogrowth, self.original_state.autogrowth
        if filestream:
            new_maximum = new_policy.restricted_maximum_size
            original_maximum = original_policy.restricted_maximum_size
        else:
            new_maximum = new_policy.effective_maximum_size
            original_maximum = original_policy.effective_maximum_size
        server_maximum = max(handle.max_size, 0.0)
        if differs(original_maximum, new_maximum) and differs(server_maximum, new_maximum):
            handle.max_size = new_maximum

    # ---------- filegroup events ----------

    def _subscribe(self, filegroup: FilegroupPrototype) -> None:
        self._owner.dispatcher.subscribe(
            FilegroupDeleted, self._on_filegroup_deleted, source=filegroup
        )

    def _unsubscribe(self, filegroup: FilegroupPrototype) -> None:
        self._owner.dispatcher.unsubscribe(
            FilegroupDeleted, self._on_filegroup_deleted, source=filegroup
        )

    def _move_to(self, filegroup: FilegroupPrototype) -> None:
        previous = self.filegroup
        if previous is filegroup:
            return
        if previous is not None:
            self._unsubscribe(previous)
        self.current_state = replace(self.current_state, filegroup=filegroup)
        self._subscribe(filegroup)

    def _on_filegroup_deleted(self, event: FilegroupDeleted) -> None:
        self._unsubscribe(event.filegroup)
        if self._exists or event.fallback_default is None:
            self._owner.remove_file(self)
        else:
            LOGGER.debug(
                "Moving file %r from deleted filegroup %r to %r.",
                self.name,
                event.filegroup.name,
                event.fallback_default.name,
            )
            self._move_to(event.fallback_default)

    # ---------- helpers ----------

    def _ignore_when_existing(self, what: str) -> bool:
        if self._exists:
            LOGGER.warning("Ignoring change of %s for existing file %r.", what, self.name)
        return self._exists

    def _is_last_log_file(self) -> bool:
        return (
            self.kind is FileKind.LOG
            and self._owner.log_file_count <= 1
            and self in self._owner.files
        )

    def __repr__(self) -> str:
        return (
            f"FilePrototype(name={self.name!r}, kind={self.kind.name}, "
            f"exists={self._exists}, removed={self._removed})"
        )
