"""Direct queries against the server catalog.

Parameterised statements (`:name` bind style) for the few values the engine
object model does not expose. Each returns named columns so rows can be read as
mappings.
"""

from __future__ import annotations

from typing import Final

ACTIVE_CONNECTION_COUNT: Final[str] = """
    SELECT COUNT(*) AS active_connections
    FROM sys.dm_exec_sessions AS s
    JOIN sys.databases AS d
      ON d.database_id = s.database_id
    WHERE d.name = :database_name
"""

# Directory names are unique per instance, compared without case.
FILESTREAM_DIRECTORY_IN_USE: Final[str] = """
    SELECT d.name AS database_name
    FROM sys.database_filestream_options AS o
    JOIN sys.databases AS d
      ON d.database_id = o.database_id
    WHERE UPPER(o.directory_name) = UPPER(:directory_name)
      AND d.name <> :database_name
"""

SERVICE_OBJECTIVE: Final[str] = """
    SELECT o.service_objective AS service_objective
    FROM sys.database_service_objectives AS o
    JOIN sys.databases AS d
      ON d.database_id = o.database_id
    WHERE d.name = :database_name
"""


def filestream_directory_parameters(directory_name: str, database_name: str) -> dict[str, str]:
    return {"directory_name": directory_name, "database_name": database_name}


def database_parameters(database_name: str) -> dict[str, str]:
    return {"database_name": database_name}
