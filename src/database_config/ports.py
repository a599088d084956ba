"""
Ports to the remote engine.

- ServerConnection: session to a server; answers capability questions, hands
  out database handles and runs direct queries.
- DatabaseHandle / FilegroupHandle / FileHandle: the engine's object model.
  Attribute writes are staged on the handle and committed by `create()` /
  `alter()` on the owning database; `drop()`, `rename()`, `shrink()` and the
  `set_*` calls act immediately.

Sizes are kilobytes. A non-positive `FileHandle.max_size` means "unlimited".
Any of these members may raise the driver's exception; permission failures are
recognised with `errors.is_permission_denied`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from src.enums import AlterTermination, FilegroupKind, GrowthType


class FileHandle(Protocol):
    """A data, filestream or log file."""

    name: str
    file_name: str  # full server-side path
    size: float
    growth_type: GrowthType
    growth: float  # percent or KB depending on growth_type
    max_size: float
    is_primary_file: bool

    def rename(self, new_name: str) -> None: ...

    def shrink(self, target_size_mb: int) -> None: ...

    def drop(self) -> None: ...


class FilegroupHandle(Protocol):
    name: str
    kind: FilegroupKind
    read_only: bool
    autogrow_all_files: bool
    is_default: bool
    files: Sequence[FileHandle]

    def file(self, name: str) -> FileHandle | None: ...

    def new_file(self, name: str) -> FileHandle: ...

    def alter(self) -> None: ...

    def drop(self) -> None: ...


class DatabaseHandle(Protocol):
    """
    A database on the server, or a staged one before `create()`.

    `exists` is True once the database is present on the server; it stays False
    for a created database while the connection only captures script.
    """

    name: str
    exists: bool
    active_connections: int
    filegroups: Sequence[FilegroupHandle]
    log_files: Sequence[FileHandle]

    def filegroup(self, name: str) -> FilegroupHandle | None: ...

    def new_filegroup(self, name: str, kind: FilegroupKind) -> FilegroupHandle: ...

    def log_file(self, name: str) -> FileHandle | None: ...

    def new_log_file(self, name: str) -> FileHandle: ...

    def read_option(self, option: str) -> Any: ...

    def write_option(self, option: str, value: Any) -> None: ...

    def create(self) -> None: ...

    def alter(self, termination: AlterTermination) -> None: ...

    def set_default_filegroup(self, name: str) -> None: ...

    def set_default_filestream_filegroup(self, name: str) -> None: ...

    def set_snapshot_isolation(self, enabled: bool) -> None: ...

    def set_owner(self, owner: str) -> None: ...

    def remove_mirroring_witness(self) -> None: ...


class QueryExecutor(Protocol):
    """Runs a direct, parameterised query and returns the rows as mappings."""

    def execute_query(
        self, sql: str, parameters: Mapping[str, Any] | None = None
    ) -> Sequence[Mapping[str, Any]]: ...


class ServerConnection(QueryExecutor, Protocol):
    """Session to a server instance."""

    script_only: bool
    server_major_version: int
    is_sysadmin: bool
    is_cloud: bool
    is_full_text_installed: bool
    default_data_folder: str
    default_log_folder: str
    master_data_path: str
    master_log_path: str

    def supports(self, property_name: str) -> bool: ...

    def database(self, name: str) -> DatabaseHandle | None: ...

    def new_database(self, name: str) -> DatabaseHandle: ...
