"""
Reconciliation of a database prototype with the server.

`Reconciler.apply` converges one database in a fixed order:
  1) Precondition check (other sessions vs. exclusive-access settings)
  2) Filegroups, in collection order
  3) Files, in collection order
  4) Database options
  5) Create or alter the database
  6) Default filegroup pointers
  7) Queued removals
  8) Settings that need the database to exist (snapshot isolation, owner)

Validation and precondition errors are raised before anything is written.
Remote failures propagate unchanged and abort the remaining steps; the
prototype's original state is then left as it was.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

from src.database_config.adapters.sqlalchemy_queries import default_catalog
from src.database_config.capabilities import CapabilitySet, PropertyName
from src.database_config.catalog import CatalogQueries
from src.database_config.errors import (
    FilestreamDirectoryConflictError,
    OwnerTransferError,
    PreconditionConflictError,
)
from src.database_config.ports import DatabaseHandle, ServerConnection
from src.database_config.reconcile.properties import apply_database_options
from src.enums import AlterTermination, FilegroupKind
from src.logger import LOGGER

if TYPE_CHECKING:
    from src.database_config.filegroups import FilegroupPrototype
    from src.database_config.prototype import DatabaseConfigPrototype

# Kinds whose default is set with `set_default_filestream_filegroup`.
STREAM_FILEGROUP_KINDS: Final[tuple[FilegroupKind, ...]] = (
    FilegroupKind.FILESTREAM,
    FilegroupKind.MEMORY_OPTIMIZED,
)


class Reconciler:
    """Applies a `DatabaseConfigPrototype` to the server behind `connection`."""

    def __init__(
        self,
        connection: ServerConnection,
        capabilities: CapabilitySet | None = None,
        catalog: CatalogQueries | None = None,
    ) -> None:
        self.connection: ServerConnection = connection
        self.capabilities: CapabilitySet = capabilities or CapabilitySet.resolve(connection)
        self.catalog: CatalogQueries = catalog or default_catalog(connection)

    # ---------- public API ----------

    def apply(
        self, prototype: DatabaseConfigPrototype, *, force_disconnect: bool = False
    ) -> DatabaseHandle | None:
        """
        Converge the server to `prototype.current_state`.

        Returns the database handle, or None when nothing changed. On success
        (and outside script-only mode) the prototype accepts its changes, so a
        second call performs no writes.
        """
        if not prototype.changes_exist():
            LOGGER.info("No changes for database %r.", prototype.name)
            return None

        prototype.validate()
        LOGGER.info(
            "Applying changes to %s database %r.",
            "existing" if prototype.exists else "new",
            prototype.name,
        )
        handle = self._resolve_handle(prototype)
        termination = self._check_preconditions(prototype, handle, force_disconnect)
        self._apply_filegroups(prototype, handle)
        self._apply_files(prototype, handle)
        self._apply_properties(prototype, handle)
        self._create_or_alter(prototype, handle, termination)
        self._apply_default_pointers(prototype, handle)
        self._apply_removals(prototype, handle)
        self._apply_post_create(prototype, handle)

        if not self.connection.script_only:
            prototype.accept_changes()
        LOGGER.info("Database %r is up to date.", prototype.name)
        return handle

    # ---------- steps ----------

    def _resolve_handle(self, prototype: DatabaseConfigPrototype) -> DatabaseHandle:
        if not prototype.exists:
            return self.connection.new_database(prototype.name)
        name = prototype.original_state.name
        handle = self.connection.database(name)
        if handle is None:
            raise LookupError(f"Database {name!r} was not found on the server.")
        return handle

    def _check_preconditions(
        self,
        prototype: DatabaseConfigPrototype,
        handle: DatabaseHandle,
        force_disconnect: bool,
    ) -> AlterTermination:
        """Step 1: refuse exclusive-access changes while others are connected."""
        if not prototype.exists or self.connection.script_only:
            return AlterTermination.FAIL_ON_OPEN_TRANSACTIONS
        changed = prototype.exclusive_access_changes()
        if not changed:
            return AlterTermination.FAIL_ON_OPEN_TRANSACTIONS

        active = self._active_connections(handle)
        if active == 0:
            return AlterTermination.FAIL_ON_OPEN_TRANSACTIONS
        if not force_disconnect:
            raise PreconditionConflictError(prototype.name, active, changed)
        LOGGER.warning(
            "Rolling back open transactions of %d session(s) on database %r to change %s.",
            active,
            prototype.name,
            ", ".join(changed),
        )
        return AlterTermination.ROLLBACK_IMMEDIATELY

    def _apply_filegroups(self, prototype: DatabaseConfigPrototype, handle: DatabaseHandle) -> None:
        LOGGER.info("Applying %d filegroup(s).", len(prototype.filegroups))
        for filegroup in prototype.filegroups:
            filegroup.apply_changes(handle, self.capabilities)

    def _apply_files(self, prototype: DatabaseConfigPrototype, handle: DatabaseHandle) -> None:
        LOGGER.info("Applying %d file(s).", len(prototype.files))
        for file in prototype.files:
            file.apply_changes(handle)

    def _apply_properties(self, prototype: DatabaseConfigPrototype, handle: DatabaseHandle) -> None:
        written = apply_database_options(
            handle,
            original=prototype.original_state,
            current=prototype.current_state,
            exists=prototype.exists,
            capabilities=self.capabilities,
        )
        LOGGER.info("Staged %d database option(s).", len(written))

    def _create_or_alter(
        self,
        prototype: DatabaseConfigPrototype,
        handle: DatabaseHandle,
        termination: AlterTermination,
    ) -> None:
        if prototype.exists:
            LOGGER.info("Altering database %r (%s).", prototype.name, termination)
            handle.alter(termination)
            return
        self._check_filestream_directory(prototype)
        LOGGER.info("Creating database %r.", prototype.name)
        handle.create()

    def _apply_default_pointers(
        self, prototype: DatabaseConfigPrototype, handle: DatabaseHandle
    ) -> None:
        """Step 6: defaults can only point at filegroups the server already has."""
        rows_default = prototype.default_filegroup
        if _needs_default_pointer(rows_default):
            LOGGER.info("Setting default filegroup to %r.", rows_default.name)
            handle.set_default_filegroup(rows_default.name)

        for kind in STREAM_FILEGROUP_KINDS:
            stream_default = prototype.default_filegroup_for(kind)
            if stream_default is not None and _needs_default_pointer(stream_default):
                LOGGER.info("Setting default %s filegroup to %r.", kind, stream_default.name)
                handle.set_default_filestream_filegroup(stream_default.name)

    def _apply_removals(self, prototype: DatabaseConfigPrototype, handle: DatabaseHandle) -> None:
        """Step 7: filegroups first; a stream kind's server default goes last."""
        filegroups = sorted(prototype.removed_filegroups, key=_is_stream_default)
        files = prototype.removed_files
        if not filegroups and not files:
            return
        LOGGER.info("Removing %d filegroup(s) and %d file(s).", len(filegroups), len(files))
        for filegroup in filegroups:
            filegroup.apply_changes(handle, self.capabilities)
        for file in files:
            file.apply_changes(handle)

    def _apply_post_create(self, prototype: DatabaseConfigPrototype, handle: DatabaseHandle) -> None:
        """Step 8: only for a database present on the server, never while scripting."""
        if self.connection.script_only or not handle.exists:
            return
        original, current = prototype.original_state, prototype.current_state

        if (
            self.capabilities.supports(PropertyName.SNAPSHOT_ISOLATION)
            and original.allow_snapshot_isolation != current.allow_snapshot_isolation
        ):
            LOGGER.info(
                "Setting snapshot isolation of database %r to %s.",
                prototype.name,
                current.allow_snapshot_isolation,
            )
            handle.set_snapshot_isolation(current.allow_snapshot_isolation)

        owner = current.owner
        if owner and (not prototype.exists or owner != original.owner):
            LOGGER.info("Transferring ownership of database %r to %r.", prototype.name, owner)
            try:
                handle.set_owner(owner)
            except Exception as exc:
                raise OwnerTransferError(owner) from exc

    # ---------- helpers ----------

    def _active_connections(self, handle: DatabaseHandle) -> int:
        """
        Other sessions on the database.

        The handle's count is tried first, then the catalog. When neither can be
        read the database is taken as busy.
        """
        try:
            return int(handle.active_connections)
        except Exception as exc:
            LOGGER.debug("Connection count of %r not on handle: %s", handle.name, exc)
        try:
            return self.catalog.active_connection_count(handle.name)
        except Exception as exc:
            LOGGER.warning(
                "Could not count connections to database %r, assuming it is in use: %s",
                handle.name,
                exc,
            )
            return 1

    def _check_filestream_directory(self, prototype: DatabaseConfigPrototype) -> None:
        directory_name = prototype.current_state.filestream_directory_name
        if not directory_name or not self.capabilities.supports(
            PropertyName.FILESTREAM_DIRECTORY_NAME
        ):
            return
        try:
            in_use_by = self.catalog.filestream_directory_in_use(directory_name, prototype.name)
        except Exception as exc:
            LOGGER.warning(
                "Could not check whether filestream directory %r is in use: %s",
                directory_name,
                exc,
            )
            return
        if in_use_by:
            raise FilestreamDirectoryConflictError(directory_name, prototype.name)


def _needs_default_pointer(filegroup: FilegroupPrototype) -> bool:
    if not filegroup.exists:
        # a new database starts with PRIMARY as its default
        return not filegroup.is_primary
    return not filegroup.original_state.is_default


def _is_stream_default(filegroup: FilegroupPrototype) -> bool:
    return filegroup.kind is not FilegroupKind.ROWS and filegroup.original_state.is_default
