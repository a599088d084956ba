"""Configuration values sourced from environment variables."""

import os
from typing import Final

LOG_LEVEL: Final[str] = os.getenv(key="LOG_LEVEL", default="INFO")
LOGGER_NAME: Final[str] = os.getenv(key="LOGGER_NAME", default="database-config")
LOG_COLOUR_ENABLED: Final[bool] = bool(
    os.getenv(key="LOG_COLOUR_ENABLED", default="True").upper() == "TRUE"
)
SQLSERVER_URL: Final[str | None] = os.getenv(key="SQLSERVER_URL")
SQLSERVER_QUERY_TIMEOUT: Final[int] = int(os.getenv(key="SQLSERVER_QUERY_TIMEOUT", default="30"))
