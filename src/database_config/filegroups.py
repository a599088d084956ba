"""Filegroup prototype: desired state of one filegroup and how to apply it."""

from __future__ import annotations

from dataclasses import dataclass, replace

from src.constants import PRIMARY_FILEGROUP_NAME
from src.database_config.capabilities import CapabilitySet, PropertyName
from src.database_config.events import (
    FilegroupDefaultChanged,
    FilegroupDeleted,
    FilegroupEventDispatcher,
    FilegroupRenamed,
)
from src.database_config.ports import DatabaseHandle, FilegroupHandle
from src.enums import FilegroupKind
from src.logger import LOGGER


@dataclass(frozen=True, slots=True)
class FilegroupState:
    name: str = ""
    is_read_only: bool = False
    is_default: bool = False
    is_autogrow_all_files: bool = False
    kind: FilegroupKind = FilegroupKind.ROWS


class FilegroupPrototype:
    """
    One filegroup with its original (server) and current (edited) state.

    Names can only change before the filegroup exists. Changing `is_default`
    publishes `FilegroupDefaultChanged`; the owning aggregate keeps one default
    per kind.
    """

    def __init__(
        self,
        dispatcher: FilegroupEventDispatcher,
        state: FilegroupState,
        *,
        exists: bool = False,
    ) -> None:
        self._dispatcher = dispatcher
        self.original_state: FilegroupState = state
        self.current_state: FilegroupState = state
        self._exists = exists
        self._removed = False

    # ---------- construction ----------

    @classmethod
    def new(
        cls,
        dispatcher: FilegroupEventDispatcher,
        name: str = "",
        kind: FilegroupKind = FilegroupKind.ROWS,
        *,
        is_default: bool = False,
        is_read_only: bool = False,
    ) -> FilegroupPrototype:
        state = FilegroupState(
            name=name, kind=kind, is_default=is_default, is_read_only=is_read_only
        )
        return cls(dispatcher, state, exists=False)

    @classmethod
    def primary(cls, dispatcher: FilegroupEventDispatcher) -> FilegroupPrototype:
        return cls.new(dispatcher, PRIMARY_FILEGROUP_NAME, FilegroupKind.ROWS, is_default=True)

    @classmethod
    def from_handle(
        cls,
        dispatcher: FilegroupEventDispatcher,
        handle: FilegroupHandle,
        capabilities: CapabilitySet,
    ) -> FilegroupPrototype:
        autogrow_all_files = (
            handle.autogrow_all_files
            if capabilities.supports(PropertyName.AUTOGROW_ALL_FILES)
            else False
        )
        state = FilegroupState(
            name=handle.name,
            is_read_only=handle.read_only,
            is_default=handle.is_default,
            is_autogrow_all_files=autogrow_all_files,
            kind=handle.kind,
        )
        return cls(dispatcher, state, exists=True)

    # ---------- properties ----------

    @property
    def name(self) -> str:
        return self.current_state.name

    @name.setter
    def name(self, value: str) -> None:
        if self._exists:
            LOGGER.warning("Ignoring rename of existing filegroup %r to %r.", self.name, value)
            return
        previous = self.current_state.name
        if value == previous:
            return
        self.current_state = replace(self.current_state, name=value)
        self._dispatcher.publish(FilegroupRenamed(self, previous))

    @property
    def is_default(self) -> bool:
        return self.current_state.is_default

    @is_default.setter
    def is_default(self, value: bool) -> None:
        if value == self.current_state.is_default:
            return
        self.current_state = replace(self.current_state, is_default=value)
        self._dispatcher.publish(FilegroupDefaultChanged(self))

    @property
    def is_read_only(self) -> bool:
        return self.current_state.is_read_only

    @is_read_only.setter
    def is_read_only(self, value: bool) -> None:
        self.current_state = replace(self.current_state, is_read_only=value)

    @property
    def is_autogrow_all_files(self) -> bool:
        return self.current_state.is_autogrow_all_files

    @is_autogrow_all_files.setter
    def is_autogrow_all_files(self, value: bool) -> None:
        self.current_state = replace(self.current_state, is_autogrow_all_files=value)

    @property
    def kind(self) -> FilegroupKind:
        return self.current_state.kind

    @property
    def is_filestream(self) -> bool:
        return self.kind is FilegroupKind.FILESTREAM

    @property
    def is_memory_optimized(self) -> bool:
        return self.kind is FilegroupKind.MEMORY_OPTIMIZED

    @property
    def is_primary(self) -> bool:
        return self.kind is FilegroupKind.ROWS and self.name == PRIMARY_FILEGROUP_NAME

    @property
    def exists(self) -> bool:
        return self._exists

    @property
    def removed(self) -> bool:
        return self._removed

    # ---------- diff / apply ----------

    def changes_exist(self) -> bool:
        # Names only change before creation, which `not exists` already covers.
        original, current = self.original_state, self.current_state
        return (
            not self._exists
            or self._removed
            or original.is_default != current.is_default
            or original.is_read_only != current.is_read_only
            or original.is_autogrow_all_files != current.is_autogrow_all_files
        )

    def notify_deleted(self, fallback_default: FilegroupPrototype | None) -> None:
        """
        Mark this filegroup for removal and tell member files where to go.

        A filegroup that was never created is simply forgotten, so only an
        existing one is flagged as removed.
        """
        self._removed = self._exists
        self._dispatcher.publish(FilegroupDeleted(self, fallback_default))

    def apply_changes(self, database: DatabaseHandle, capabilities: CapabilitySet) -> None:
        """Create, alter or drop the filegroup on `database` as needed."""
        if not self.changes_exist():
            return

        if self._removed:
            if self._exists:
                LOGGER.debug("Dropping filegroup %r.", self.original_state.name)
                self._existing_handle(database).drop()
            return

        if self._exists:
            handle = self._existing_handle(database)
        else:
            LOGGER.debug("Adding filegroup %r (%s).", self.name, self.kind)
            handle = database.new_filegroup(self.name, self.kind)

        changed = False
        if not self._exists or handle.read_only != self.is_read_only:
            handle.read_only = self.is_read_only
            changed = True

        if capabilities.supports(PropertyName.AUTOGROW_ALL_FILES) and (
            not self._exists or handle.autogrow_all_files != self.is_autogrow_all_files
        ):
            handle.autogrow_all_files = self.is_autogrow_all_files
            changed = True

        if self._exists and changed:
            handle.alter()

    def accept_changes(self) -> None:
        """Treat the current state as what the server now holds."""
        self.original_state = self.current_state
        self._exists = True

    # ---------- helpers ----------

    def _existing_handle(self, database: DatabaseHandle) -> FilegroupHandle:
        handle = database.filegroup(self.original_state.name)
        if handle is None:
            raise LookupError(f"Filegroup {self.original_state.name!r} was not found on the server.")
        return handle

    def __repr__(self) -> str:
        return (
            f"FilegroupPrototype(name={self.name!r}, kind={self.kind.name}, "
            f"exists={self._exists}, removed={self._removed})"
        )
