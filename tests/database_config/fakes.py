"""
Recording fakes for the engine object model.

Every fake appends to one shared `log` list so tests can assert on the order of
remote calls. Entries are tuples whose first item is the operation name, e.g.
("new_filegroup", "FG1", FilegroupKind.ROWS) or ("set", "file:Sales", "size", 2048.0).
"""

from __future__ import annotations

from typing import Any

from src.database_config.capabilities import PropertyName
from src.database_config.state import OPTION_FIELDS, DatabaseState
from src.enums import FilegroupKind, GrowthType

ALL_PROPERTIES = frozenset(PropertyName)


class PermissionDenied(Exception):
    """Mimics a driver error carrying SQL Server error number 229."""

    number = 229


class _Recording:
    """Logs writes to tracked attributes once construction is finished."""

    _tracked: tuple[str, ...] = ()

    def __setattr__(self, attr: str, value: Any) -> None:
        if attr in self._tracked and self.__dict__.get("_ready"):
            self.log.append(("set", self.label, attr, value))
        object.__setattr__(self, attr, value)


class FakeFile(_Recording):
    _tracked = ("file_name", "size", "growth_type", "growth", "max_size", "is_primary_file")

    def __init__(
        self,
        log: list,
        name: str,
        *,
        file_name: str = "",
        size: float = 8192.0,
        growth_type: GrowthType = GrowthType.KB,
        growth: float = 65536.0,
        max_size: float = -1.0,
        is_primary_file: bool = False,
    ) -> None:
        self.log = log
        self.name = name
        self.file_name = file_name
        self.size = size
        self.growth_type = growth_type
        self.growth = growth
        self.max_size = max_size
        self.is_primary_file = is_primary_file
        self._ready = True

    @property
    def label(self) -> str:
        return f"file:{self.name}"

    def rename(self, new_name: str) -> None:
        self.log.append(("rename", self.name, new_name))
        object.__setattr__(self, "name", new_name)

    def shrink(self, target_size_mb: int) -> None:
        self.log.append(("shrink", self.name, target_size_mb))

    def drop(self) -> None:
        self.log.append(("drop_file", self.name))


class FakeFilegroup(_Recording):
    _tracked = ("read_only", "autogrow_all_files")

    def __init__(
        self,
        log: list,
        name: str,
        kind: FilegroupKind = FilegroupKind.ROWS,
        *,
        files: list[FakeFile] | None = None,
        read_only: bool = False,
        autogrow_all_files: bool = False,
        is_default: bool = False,
    ) -> None:
        self.log = log
        self.name = name
        self.kind = kind
        self.files = files or []
        self.read_only = read_only
        self.autogrow_all_files = autogrow_all_files
        self.is_default = is_default
        self._ready = True

    @property
    def label(self) -> str:
        return f"filegroup:{self.name}"

    def file(self, name: str) -> FakeFile | None:
        return next((f for f in self.files if f.name == name), None)

    def new_file(self, name: str) -> FakeFile:
        self.log.append(("new_file", self.name, name))
        file = FakeFile(self.log, name)
        self.files.append(file)
        return file

    def alter(self) -> None:
        self.log.append(("alter_filegroup", self.name))

    def drop(self) -> None:
        self.log.append(("drop_filegroup", self.name))


def server_options(**overrides: Any) -> dict[str, Any]:
    """Engine-side option values matching `DatabaseState()` defaults."""
    state = DatabaseState()
    options: dict[str, Any] = {
        PropertyName.STATUS: "Normal",
        PropertyName.OWNER: "sa",
        PropertyName.MIRRORING: False,
    }
    for option_field in OPTION_FIELDS:
        value = getattr(state, option_field.field)
        if option_field.to_remote is not None:
            value = option_field.to_remote(value)
        options[option_field.option] = value
    options.update({PropertyName[key.upper()]: value for key, value in overrides.items()})
    return options


class FakeDatabase:
    def __init__(
        self,
        log: list,
        name: str,
        *,
        exists: bool = True,
        script_only: bool = False,
        options: dict[str, Any] | None = None,
        filegroups: list[FakeFilegroup] | None = None,
        log_files: list[FakeFile] | None = None,
        active_connections: int | BaseException = 0,
        read_errors: dict[str, BaseException] | None = None,
        owner_error: BaseException | None = None,
    ) -> None:
        self.log = log
        self.name = name
        self.exists = exists
        self.script_only = script_only
        self.options = options if options is not None else server_options()
        self.filegroups = filegroups or []
        self.log_files = log_files or []
        self._active_connections = active_connections
        self.read_errors = read_errors or {}
        self.owner_error = owner_error

    @property
    def active_connections(self) -> int:
        if isinstance(self._active_connections, BaseException):
            raise self._active_connections
        return self._active_connections

    def filegroup(self, name: str) -> FakeFilegroup | None:
        return next((fg for fg in self.filegroups if fg.name == name), None)

    def new_filegroup(self, name: str, kind: FilegroupKind) -> FakeFilegroup:
        self.log.append(("new_filegroup", name, kind))
        filegroup = FakeFilegroup(self.log, name, kind)
        self.filegroups.append(filegroup)
        return filegroup

    def log_file(self, name: str) -> FakeFile | None:
        return next((f for f in self.log_files if f.name == name), None)

    def new_log_file(self, name: str) -> FakeFile:
        self.log.append(("new_log_file", name))
        file = FakeFile(self.log, name)
        self.log_files.append(file)
        return file

    def read_option(self, option: str) -> Any:
        if option in self.read_errors:
            raise self.read_errors[option]
        return self.options.get(option)

    def write_option(self, option: str, value: Any) -> None:
        self.log.append(("write", option, value))
        self.options[option] = value

    def create(self) -> None:
        self.log.append(("create", self.name))
        self.exists = not self.script_only

    def alter(self, termination: Any) -> None:
        self.log.append(("alter", self.name, termination))

    def set_default_filegroup(self, name: str) -> None:
        self.log.append(("set_default_filegroup", name))

    def set_default_filestream_filegroup(self, name: str) -> None:
        self.log.append(("set_default_filestream_filegroup", name))

    def set_snapshot_isolation(self, enabled: bool) -> None:
        self.log.append(("set_snapshot_isolation", enabled))

    def set_owner(self, owner: str) -> None:
        if self.owner_error is not None:
            raise self.owner_error
        self.log.append(("set_owner", owner))

    def remove_mirroring_witness(self) -> None:
        self.log.append(("remove_mirroring_witness",))


class FakeConnection:
    def __init__(
        self,
        *,
        databases: list[FakeDatabase] | None = None,
        supported: frozenset[str] = ALL_PROPERTIES,
        script_only: bool = False,
        server_major_version: int = 16,
        is_sysadmin: bool = True,
        is_cloud: bool = False,
        is_full_text_installed: bool = True,
        default_data_folder: str = "D:\\Data",
        default_log_folder: str = "L:\\Logs",
        query_rows: list[dict[str, Any]] | None = None,
        query_error: BaseException | None = None,
        log: list | None = None,
    ) -> None:
        self.log = log if log is not None else []
        self.databases = {db.name: db for db in databases or []}
        self.supported = supported
        self.script_only = script_only
        self.server_major_version = server_major_version
        self.is_sysadmin = is_sysadmin
        self.is_cloud = is_cloud
        self.is_full_text_installed = is_full_text_installed
        self.default_data_folder = default_data_folder
        self.default_log_folder = default_log_folder
        self.master_data_path = "C:\\Master\\Data"
        self.master_log_path = "C:\\Master\\Log"
        self.query_rows = query_rows or []
        self.query_error = query_error
        self.queries: list[tuple[str, dict[str, Any]]] = []

    def supports(self, property_name: str) -> bool:
        return property_name in self.supported

    def database(self, name: str) -> FakeDatabase | None:
        return self.databases.get(name)

    def new_database(self, name: str) -> FakeDatabase:
        self.log.append(("new_database", name))
        database = FakeDatabase(self.log, name, exists=False, script_only=self.script_only)
        self.databases[name] = database
        return database

    def execute_query(self, sql: str, parameters: dict[str, Any] | None = None) -> list:
        self.queries.append((sql, dict(parameters or {})))
        if self.query_error is not None:
            raise self.query_error
        return self.query_rows


# ---------- builders ----------


def model_database(log: list) -> FakeDatabase:
    """Template database: 8 MB files growing by 64 MB, unlimited."""
    return FakeDatabase(
        log,
        "model",
        options=server_options(is_system_object=True),
        filegroups=[
            FakeFilegroup(
                log,
                "PRIMARY",
                files=[FakeFile(log, "modeldev", file_name="C:\\Master\\Data\\model.mdf",
                                is_primary_file=True)],
                is_default=True,
            )
        ],
        log_files=[FakeFile(log, "modellog", file_name="C:\\Master\\Log\\modellog.ldf")],
    )


def sales_database(log: list, **kwargs: Any) -> FakeDatabase:
    """Existing database with PRIMARY (default), an archive filegroup and one log file."""
    return FakeDatabase(
        log,
        "Sales",
        filegroups=[
            FakeFilegroup(
                log,
                "PRIMARY",
                files=[FakeFile(log, "Sales", file_name="D:\\Data\\Sales.mdf",
                                is_primary_file=True)],
                is_default=True,
            ),
            FakeFilegroup(
                log,
                "ARCHIVE",
                files=[FakeFile(log, "Sales_archive", file_name="D:\\Data\\Sales_archive.ndf")],
            ),
        ],
        log_files=[FakeFile(log, "Sales_log", file_name="L:\\Logs\\Sales_log.ldf")],
        **kwargs,
    )
