"""
Per-kind defaults for new files, inherited from the server and the template database.

Every value is optional server state: a failure to read it (usually a
permission problem on `model`) is logged and replaced with a fixed fallback.
Each value is read at most once per `TemplateDefaults` instance.
"""

from __future__ import annotations

from dataclasses import replace
from functools import cached_property

from src.constants import (
    DEFAULT_DATA_FILE_SIZE_KB,
    DEFAULT_LOG_FILE_SIZE_KB,
    PRIMARY_FILEGROUP_NAME,
    TEMPLATE_DATABASE_NAME,
)
from src.database_config.growth import AutogrowthPolicy
from src.database_config.naming import normalize_folder
from src.database_config.ports import DatabaseHandle, FileHandle, ServerConnection
from src.database_config.units import round_up_to_nearest_mb
from src.enums import FileKind
from src.logger import LOGGER


class TemplateDefaults:
    """Default folder, size and autogrowth for each file kind."""

    def __init__(self, connection: ServerConnection) -> None:
        self._connection = connection

    # ---------- public ----------

    def folder_for(self, kind: FileKind) -> str:
        return self.log_folder if kind is FileKind.LOG else self.data_folder

    def size_for(self, kind: FileKind) -> float:
        if kind is FileKind.LOG:
            return self.log_size_kb
        if kind is FileKind.FILESTREAM:
            return 0.0
        return self.data_size_kb

    def autogrowth_for(self, kind: FileKind) -> AutogrowthPolicy:
        if kind is FileKind.LOG:
            return self.log_autogrowth
        if kind is FileKind.FILESTREAM:
            return AutogrowthPolicy.reset()
        return self.data_autogrowth

    # ---------- folders ----------

    @cached_property
    def _folders(self) -> tuple[str, str]:
        try:
            data = self._connection.default_data_folder or self._connection.master_data_path
            log = self._connection.default_log_folder or self._connection.master_log_path
        except Exception as exc:
            LOGGER.warning("Could not read default file folders: %s", exc)
            return "", ""
        return normalize_folder(data or ""), normalize_folder(log or "")

    @property
    def data_folder(self) -> str:
        return self._folders[0]

    @property
    def log_folder(self) -> str:
        return self._folders[1]

    # ---------- sizes ----------

    @cached_property
    def data_size_kb(self) -> float:
        try:
            return round_up_to_nearest_mb(self._template_data_file().size)
        except Exception as exc:
            LOGGER.warning(
                "Could not read default data file size, using %s KB: %s",
                DEFAULT_DATA_FILE_SIZE_KB,
                exc,
            )
            return DEFAULT_DATA_FILE_SIZE_KB

    @cached_property
    def log_size_kb(self) -> float:
        try:
            return round_up_to_nearest_mb(self._template_log_file().size)
        except Exception as exc:
            LOGGER.warning(
                "Could not read default log file size, using %s KB: %s",
                DEFAULT_LOG_FILE_SIZE_KB,
                exc,
            )
            return DEFAULT_LOG_FILE_SIZE_KB

    # ---------- autogrowth ----------

    @cached_property
    def data_autogrowth(self) -> AutogrowthPolicy:
        try:
            return self._template_autogrowth(self._template_data_file())
        except Exception as exc:
            LOGGER.warning("Could not read default data file autogrowth: %s", exc)
            return AutogrowthPolicy.reset()

    @cached_property
    def log_autogrowth(self) -> AutogrowthPolicy:
        try:
            return self._template_autogrowth(self._template_log_file())
        except Exception as exc:
            LOGGER.warning("Could not read default log file autogrowth: %s", exc)
            return AutogrowthPolicy.reset()

    # ---------- template lookups ----------

    def _template_database(self) -> DatabaseHandle:
        database = self._connection.database(TEMPLATE_DATABASE_NAME)
        if database is None:
            raise LookupError(f"Template database {TEMPLATE_DATABASE_NAME!r} is not visible.")
        return database

    def _template_data_file(self) -> FileHandle:
        filegroup = self._template_database().filegroup(PRIMARY_FILEGROUP_NAME)
        if filegroup is None or not filegroup.files:
            raise LookupError("Template database has no primary data file.")
        return filegroup.files[0]

    def _template_log_file(self) -> FileHandle:
        log_files = self._template_database().log_files
        if not log_files:
            raise LookupError("Template database has no log file.")
        return log_files[0]

    @staticmethod
    def _template_autogrowth(handle: FileHandle) -> AutogrowthPolicy:
        policy = AutogrowthPolicy.from_data_file(handle)
        if policy.is_enabled and not policy.is_growth_in_percent:
            policy = replace(policy, growth_in_kb=round_up_to_nearest_mb(policy.growth_in_kb))
        return policy
