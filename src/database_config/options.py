"""
Flat option-bag view of a database prototype.

Callers that talk to a UI or a wire protocol exchange a flat `dict` with
camelCase keys; indexed collections use `<collection>.<i>.<key>` keys plus a
`<collection>Count` entry.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from typing import Any, Final

from src.database_config.prototype import DatabaseConfigPrototype
from src.database_config.units import kb_to_mb

NEVER_BACKED_UP: Final[str] = "Never"
MIN_BACKUP_YEAR: Final[int] = 1900

FILE_GROUPS: Final[str] = "fileGroups"
DATABASE_FILES: Final[str] = "databaseFiles"


def to_option_bag(prototype: DatabaseConfigPrototype) -> dict[str, Any]:
    """Current values of the prototype, keyed for the option-mapping layer."""
    state = prototype.current_state
    bag: dict[str, Any] = {
        "name": state.name,
        "owner": state.owner,
        "collation": state.collation,
        "databaseState": str(state.status),
        "recoveryModel": str(state.recovery_model),
        "isSystemDB": state.is_system_database,
        "ansiNulls": state.ansi_nulls,
        "compatibilityLevel": state.compatibility_level,
        "lastBackupDate": _backup_date(state.last_backup_date),
        "lastLogBackupDate": _backup_date(state.last_log_backup_date),
    }

    filegroups = prototype.filegroups
    bag[f"{FILE_GROUPS}Count"] = len(filegroups)
    for i, filegroup in enumerate(filegroups):
        prefix = f"{FILE_GROUPS}.{i}."
        bag[prefix + "name"] = filegroup.name
        bag[prefix + "isMemoryOptimized"] = filegroup.is_memory_optimized
        bag[prefix + "isReadOnly"] = filegroup.is_read_only
        bag[prefix + "isFileStream"] = filegroup.is_filestream
        bag[prefix + "isDefault"] = filegroup.is_default
        bag[prefix + "fileGroupType"] = str(filegroup.kind)

    files = prototype.files
    bag[f"{DATABASE_FILES}Count"] = len(files)
    for i, file in enumerate(files):
        prefix = f"{DATABASE_FILES}.{i}."
        bag[prefix + "name"] = file.name
        bag[prefix + "physicalName"] = file.physical_name
        bag[prefix + "autogrowth"] = str(file.autogrowth)
        bag[prefix + "databaseFileType"] = str(file.kind)
        bag[prefix + "folder"] = file.folder
        bag[prefix + "size"] = kb_to_mb(prototype.defaults.size_for(file.kind))
        bag[prefix + "fileGroup"] = file.filegroup.name if file.filegroup is not None else ""
        bag[prefix + "initialSize"] = file.initial_size_mb
        bag[prefix + "isPrimaryFile"] = file.is_primary_file

    if prototype.capabilities.is_cloud:
        bag["azureEdition"] = str(state.azure_edition) if state.azure_edition else ""
        bag["serviceLevelObjective"] = state.service_level_objective
    return bag


def apply_option_bag(
    bag: Mapping[str, Any], prototype: DatabaseConfigPrototype
) -> DatabaseConfigPrototype:
    """
    Take the database name from `bag` and name the files after it.

    A blank file name becomes the database name; a name that is only a suffix
    (such as "_log") gets the database name in front.
    """
    name = bag.get("name")
    if name is None:
        return prototype
    prototype.name = name
    for file in prototype.files:
        if not file.name.strip():
            file.name = prototype.name
        elif file.name.startswith("_") and not file.exists:
            file.name = prototype.name + file.name
    return prototype


def _backup_date(value: datetime | None) -> str:
    if value is None or value.year < MIN_BACKUP_YEAR:
        return NEVER_BACKED_UP
    return value.isoformat(sep=" ", timespec="seconds")
