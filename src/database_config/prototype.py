"""
Database configuration prototype: the aggregate root.

`DatabaseConfigPrototype` owns the database-level settings, the ordered
filegroup and file collections, and the lists of filegroups and files
removed while editing. It wires the filegroup event dispatcher: it keeps one
default filegroup per kind, and files follow or leave deleted filegroups.

Build one with `load` (existing database) or `new` (seeded from the server's
template database), edit it, then call `apply_changes`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from typing import Any, Final

from src.constants import LOG_FILE_NAME_SUFFIX
from src.database_config.adapters.sqlalchemy_queries import default_catalog
from src.database_config.capabilities import CapabilitySet
from src.database_config.catalog import CatalogQueries
from src.database_config.defaults import TemplateDefaults
from src.database_config.errors import InvalidNameError, InvalidRemovalError
from src.database_config.events import FilegroupDefaultChanged, FilegroupEventDispatcher
from src.database_config.filegroups import FilegroupPrototype
from src.database_config.files import FilePrototype
from src.database_config.naming import RESERVED_PATH_CHARACTERS, is_valid_directory_name
from src.database_config.ports import DatabaseHandle, ServerConnection
from src.database_config.reconcile.reconciler import Reconciler
from src.database_config.state import DatabaseState, read_database_state, template_database_state
from src.enums import FileKind, FilegroupKind
from src.logger import LOGGER

# Settings that can only change while no other session is connected.
EXCLUSIVE_ACCESS_FIELDS: Final[tuple[str, ...]] = (
    "is_read_only",
    "filestream_directory_name",
    "filestream_non_transacted_access",
    "restrict_access",
    "date_correlation_optimization",
    "is_read_committed_snapshot_on",
)

ChangeListener = Callable[["DatabaseConfigPrototype"], None]


class DatabaseConfigPrototype:
    """Desired configuration of one database, with its filegroups and files."""

    def __init__(
        self,
        connection: ServerConnection,
        state: DatabaseState,
        *,
        exists: bool,
        capabilities: CapabilitySet | None = None,
        defaults: TemplateDefaults | None = None,
        catalog: CatalogQueries | None = None,
    ) -> None:
        self.connection: ServerConnection = connection
        self.capabilities: CapabilitySet = capabilities or CapabilitySet.resolve(connection)
        self.catalog: CatalogQueries = catalog or default_catalog(connection)
        self.defaults: TemplateDefaults = defaults or TemplateDefaults(connection)
        self.dispatcher: FilegroupEventDispatcher = FilegroupEventDispatcher()
        self.original_state: DatabaseState = state
        self.current_state: DatabaseState = state
        self._exists = exists
        self._filegroups: list[FilegroupPrototype] = []
        self._files: list[FilePrototype] = []
        self._removed_filegroups: list[FilegroupPrototype] = []
        self._removed_files: list[FilePrototype] = []
        self._listeners: list[ChangeListener] = []
        self.dispatcher.subscribe(FilegroupDefaultChanged, self._on_default_changed)

    # ---------- construction ----------

    @classmethod
    def load(
        cls,
        connection: ServerConnection,
        name: str,
        *,
        capabilities: CapabilitySet | None = None,
        catalog: CatalogQueries | None = None,
    ) -> DatabaseConfigPrototype:
        """Prototype of an existing database, with its filegroups and files."""
        handle = connection.database(name)
        if handle is None:
            raise LookupError(f"Database {name!r} was not found on the server.")
        capabilities = capabilities or CapabilitySet.resolve(connection)
        catalog = catalog or default_catalog(connection)
        state = read_database_state(handle, capabilities, catalog)
        prototype = cls(
            connection, state, exists=True, capabilities=capabilities, catalog=catalog
        )
        prototype._load_storage(handle)
        LOGGER.info(
            "Loaded database %r: %d filegroup(s), %d file(s).",
            name,
            len(prototype.filegroups),
            len(prototype.files),
        )
        return prototype

    @classmethod
    def new(
        cls,
        connection: ServerConnection,
        name: str = "",
        *,
        capabilities: CapabilitySet | None = None,
        catalog: CatalogQueries | None = None,
    ) -> DatabaseConfigPrototype:
        """Prototype of a database to create, seeded from the template database."""
        capabilities = capabilities or CapabilitySet.resolve(connection)
        state = replace(template_database_state(connection, capabilities), name=name)
        prototype = cls(
            connection, state, exists=False, capabilities=capabilities, catalog=catalog
        )
        prototype.reset_storage()
        return prototype

    def _load_storage(self, handle: DatabaseHandle) -> None:
        for filegroup_handle in handle.filegroups:
            filegroup = FilegroupPrototype.from_handle(
                self.dispatcher, filegroup_handle, self.capabilities
            )
            self.add_filegroup(filegroup)
            for file_handle in filegroup_handle.files:
                self.add_file(FilePrototype.from_data_file(self, file_handle, filegroup))
        for log_handle in handle.log_files:
            self.add_file(FilePrototype.from_log_file(self, log_handle))

    def reset_storage(self) -> None:
        """Start over with PRIMARY, a primary data file and one log file."""
        for file in self._files:
            file.mark_removed()
        self._filegroups.clear()
        self._files.clear()
        self._removed_filegroups.clear()
        self._removed_files.clear()

        primary = FilegroupPrototype.primary(self.dispatcher)
        self.add_filegroup(primary)
        self.add_file(
            FilePrototype.new(
                self, FileKind.DATA, name=self.name, filegroup=primary, is_primary_file=True
            )
        )
        self.add_file(FilePrototype.new(self, FileKind.LOG, name=self.name + LOG_FILE_NAME_SUFFIX))

    # ---------- settings ----------

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def name(self) -> str:
        return self.current_state.name

    @name.setter
    def name(self, value: str) -> None:
        if self._exists:
            LOGGER.warning("Ignoring rename of existing database %r to %r.", self.name, value)
            return
        self.update(name=value)

    @property
    def owner(self) -> str:
        return self.current_state.owner

    @owner.setter
    def owner(self, value: str) -> None:
        self.update(owner=value)

    def update(self, **changes: Any) -> None:
        """Change database-level settings, e.g. `update(recovery_model=RecoveryModel.SIMPLE)`."""
        if self._exists and "name" in changes and changes["name"] != self.name:
            LOGGER.warning("Ignoring rename of existing database %r.", self.name)
            changes.pop("name")
        self.current_state = replace(self.current_state, **changes)
        self._notify()

    def add_listener(self, listener: ChangeListener) -> None:
        """Call `listener(prototype)` after every structural or settings change."""
        self._listeners.append(listener)

    # ---------- collections ----------

    @property
    def filegroups(self) -> tuple[FilegroupPrototype, ...]:
        return tuple(self._filegroups)

    @property
    def files(self) -> tuple[FilePrototype, ...]:
        return tuple(self._files)

    @property
    def removed_filegroups(self) -> tuple[FilegroupPrototype, ...]:
        return tuple(self._removed_filegroups)

    @property
    def removed_files(self) -> tuple[FilePrototype, ...]:
        return tuple(self._removed_files)

    @property
    def log_file_count(self) -> int:
        return sum(1 for file in self._files if file.kind is FileKind.LOG)

    @property
    def primary_filegroup(self) -> FilegroupPrototype:
        for filegroup in self._filegroups:
            if filegroup.is_primary:
                return filegroup
        raise LookupError("The database has no PRIMARY filegroup.")

    @property
    def default_filegroup(self) -> FilegroupPrototype:
        """The default rows filegroup; PRIMARY when none is marked."""
        return self.default_filegroup_for(FilegroupKind.ROWS) or self.primary_filegroup

    def default_filegroup_for(self, kind: FilegroupKind) -> FilegroupPrototype | None:
        return next((fg for fg in self._filegroups if fg.kind is kind and fg.is_default), None)

    def add_filegroup(self, filegroup: FilegroupPrototype) -> None:
        if filegroup.is_primary:
            self._filegroups.insert(0, filegroup)
        else:
            self._filegroups.append(filegroup)
        if filegroup.is_default:
            self._clear_other_defaults(filegroup)
        self._notify()

    def add_file(self, file: FilePrototype) -> None:
        if file.is_primary_file:
            self._files.insert(0, file)
        else:
            self._files.append(file)
        self._notify()

    def remove_filegroup(self, filegroup: FilegroupPrototype) -> None:
        """
        Remove a filegroup and cascade to its files.

        A removed default hands its role to PRIMARY (rows) or to another
        filegroup of the same kind. Not-yet-created member files move to the
        default; existing ones are removed with the filegroup.
        """
        if filegroup.is_primary:
            raise InvalidRemovalError("The PRIMARY filegroup cannot be removed.")
        if filegroup not in self._filegroups:
            raise ValueError(f"Filegroup {filegroup.name!r} does not belong to this database.")

        if filegroup.kind is FilegroupKind.ROWS:
            if filegroup.is_default:
                self.primary_filegroup.is_default = True
            fallback: FilegroupPrototype | None = self.default_filegroup
        else:
            successor = next(
                (fg for fg in self._filegroups if fg is not filegroup and fg.kind is filegroup.kind),
                None,
            )
            if filegroup.is_default and successor is not None:
                successor.is_default = True
            fallback = next(
                (
                    fg
                    for fg in self._filegroups
                    if fg is not filegroup and fg.kind is filegroup.kind and fg.is_default
                ),
                successor,
            )

        filegroup.notify_deleted(fallback)
        self._filegroups.remove(filegroup)
        if filegroup.exists:
            self._removed_filegroups.append(filegroup)
        self._notify()

    def remove_file(self, file: FilePrototype) -> None:
        if file.is_primary_file:
            raise InvalidRemovalError("The primary data file cannot be removed.")
        if file not in self._files:
            raise ValueError(f"File {file.name!r} does not belong to this database.")
        if file.kind is FileKind.LOG and self.log_file_count <= 1:
            raise InvalidRemovalError("A database needs at least one log file.")

        self._files.remove(file)
        file.mark_removed()
        if file.exists:
            self._removed_files.append(file)
        self._notify()

    # ---------- diff ----------

    def changes_exist(self) -> bool:
        return (
            not self._exists
            or self._file_changes_exist()
            or self._filegroup_changes_exist()
            or not self.original_state.has_same_value_as(self.current_state)
        )

    def exclusive_access_changes(self) -> tuple[str, ...]:
        """Changed settings that need every other session disconnected."""
        changed = self.original_state.changed_fields(self.current_state)
        return tuple(field for field in EXCLUSIVE_ACCESS_FIELDS if field in changed)

    def validate(self) -> None:
        """Raise a validation error for anything the server is certain to reject."""
        if not self._exists and not self.name.strip():
            raise InvalidNameError(self.name, kind="database")
        for file in self._files:
            file.validate()
        directory_name = self.current_state.filestream_directory_name
        if directory_name and not is_valid_directory_name(directory_name):
            offending = next(
                (c for c in directory_name if c in RESERVED_PATH_CHARACTERS or ord(c) < 32),
                None,
            )
            raise InvalidNameError(directory_name, offending, kind="filestream directory")

    def _file_changes_exist(self) -> bool:
        return bool(self._removed_files) or any(f.changes_exist() for f in self._files)

    def _filegroup_changes_exist(self) -> bool:
        return bool(self._removed_filegroups) or any(
            fg.changes_exist() for fg in self._filegroups
        )

    # ---------- apply ----------

    def apply_changes(self, *, force_disconnect: bool = False) -> DatabaseHandle | None:
        """
        Converge the server to the current state.

        Returns the database handle, or None when there was nothing to do.
        Raises `PreconditionConflictError` when other sessions block the change
        and `force_disconnect` is False.
        """
        return Reconciler(self.connection, self.capabilities, self.catalog).apply(
            self, force_disconnect=force_disconnect
        )

    def accept_changes(self) -> None:
        """Adopt the current state as the server state after a successful apply."""
        self.original_state = self.current_state
        self._exists = True
        for filegroup in self._filegroups:
            filegroup.accept_changes()
        for file in self._files:
            file.accept_changes()
        self._removed_filegroups.clear()
        self._removed_files.clear()

    # ---------- events ----------

    def _on_default_changed(self, event: FilegroupDefaultChanged) -> None:
        if event.filegroup.is_default:
            self._clear_other_defaults(event.filegroup)
        self._notify()

    def _clear_other_defaults(self, filegroup: FilegroupPrototype) -> None:
        for other in self._filegroups:
            if other is not filegroup and other.kind is filegroup.kind and other.is_default:
                other.is_default = False

    def _notify(self) -> None:
        for listener in self._listeners:
            listener(self)

    def __repr__(self) -> str:
        return f"DatabaseConfigPrototype(name={self.name!r}, exists={self._exists})"
