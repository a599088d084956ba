"""
Error types raised by the database configuration engine.

Validation errors (`InvalidNameError`, `InvalidGrowthError`, ...) are raised
before any remote write and also subclass `ValueError`. `PreconditionConflictError`
is the only cancellable error: the caller may retry with `force_disconnect=True`.
Remote failures are never wrapped here, except ownership transfer.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence

from src.constants import PERMISSION_DENIED_ERROR_NUMBERS

_ERROR_NUMBER_IN_MESSAGE = re.compile(r"\((\d{3,6})\)")


class DatabaseConfigError(Exception):
    """Base class for errors raised by this package."""


class InvalidNameError(DatabaseConfigError, ValueError):
    """A file, directory or database name that the engine would reject."""

    def __init__(self, name: str, character: str | None = None, *, kind: str = "file") -> None:
        self.name = name
        self.character = character
        self.kind = kind
        if character is None:
            message = f"The {kind} name {name!r} must not be blank."
        else:
            message = f"The {kind} name {name!r} contains the invalid character {character!r}."
        super().__init__(message)


class InvalidGrowthError(DatabaseConfigError, ValueError):
    """An autogrowth configuration that can never be applied."""


class InvalidRemovalError(DatabaseConfigError, ValueError):
    """Removing a structural element the database cannot live without."""


class FilestreamDirectoryConflictError(DatabaseConfigError, ValueError):
    """The filestream directory name is already used by another database."""

    def __init__(self, directory_name: str, database_name: str) -> None:
        self.directory_name = directory_name
        self.database_name = database_name
        super().__init__(
            f"Filestream directory {directory_name!r} for database {database_name!r} "
            "is already in use on this server."
        )


class PreconditionConflictError(DatabaseConfigError):
    """Other sessions are connected and the pending change needs exclusive access."""

    def __init__(
        self, database_name: str, active_connections: int, changed_settings: Sequence[str]
    ) -> None:
        self.database_name = database_name
        self.active_connections = active_connections
        self.changed_settings = tuple(changed_settings)
        super().__init__(
            f"Database {database_name!r} has {active_connections} other connection(s); "
            f"changing {', '.join(self.changed_settings)} requires closing them. "
            "Retry with force_disconnect=True to roll back their transactions."
        )


class OwnerTransferError(DatabaseConfigError):
    """Setting the database owner failed."""

    def __init__(self, owner: str) -> None:
        self.owner = owner
        super().__init__(f"Unable to set the database owner to {owner!r}.")


# ---------- permission detection ----------


def _exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield `exc` and everything it wraps, without revisiting."""
    seen: set[int] = set()
    pending: list[BaseException] = [exc]
    while pending:
        current = pending.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for linked in (
            getattr(current, "orig", None),  # sqlalchemy DBAPIError
            current.__cause__,
            current.__context__,
        ):
            if isinstance(linked, BaseException):
                pending.append(linked)


def _error_numbers(exc: BaseException) -> set[int]:
    numbers: set[int] = set()
    number = getattr(exc, "number", None)
    if isinstance(number, int):
        numbers.add(number)
    for arg in exc.args:
        if isinstance(arg, int):
            numbers.add(arg)
        elif isinstance(arg, str | bytes):
            text = arg.decode(errors="replace") if isinstance(arg, bytes) else arg
            numbers.update(int(match) for match in _ERROR_NUMBER_IN_MESSAGE.findall(text))
    return numbers


def is_permission_denied(exc: BaseException) -> bool:
    """True when any exception in the chain carries a SQL Server permission error number."""
    return any(
        _error_numbers(linked) & PERMISSION_DENIED_ERROR_NUMBERS
        for linked in _exception_chain(exc)
    )
