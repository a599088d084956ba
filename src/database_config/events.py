"""
Filegroup events and the dispatcher that delivers them.

The aggregate owns one `FilegroupEventDispatcher`. Filegroups publish to it;
files and the aggregate subscribe, either to one filegroup (`source=`) or to
every filegroup (`source=None`). Delivery is synchronous, in subscription
order, and handlers may unsubscribe while being called.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from src.database_config.filegroups import FilegroupPrototype


@dataclass(frozen=True, slots=True)
class FilegroupRenamed:
    filegroup: FilegroupPrototype
    previous_name: str


@dataclass(frozen=True, slots=True)
class FilegroupDefaultChanged:
    filegroup: FilegroupPrototype


@dataclass(frozen=True, slots=True)
class FilegroupDeleted:
    """`fallback_default` is where not-yet-created member files should move."""

    filegroup: FilegroupPrototype
    fallback_default: FilegroupPrototype | None


FilegroupEvent = FilegroupRenamed | FilegroupDefaultChanged | FilegroupDeleted
Handler = Callable[[Any], None]


class FilegroupEventDispatcher:
    """Synchronous, explicit publish/subscribe for filegroup events."""

    def __init__(self) -> None:
        self._handlers: defaultdict[tuple[type, object], list[Handler]] = defaultdict(list)

    def subscribe(
        self, event_type: type, handler: Handler, *, source: FilegroupPrototype | None = None
    ) -> None:
        self._handlers[(event_type, source)].append(handler)

    def unsubscribe(
        self, event_type: type, handler: Handler, *, source: FilegroupPrototype | None = None
    ) -> None:
        """Remove one registration; unknown handlers are ignored."""
        handlers = self._handlers.get((event_type, source))
        if handlers and handler in handlers:
            handlers.remove(handler)

    def publish(self, event: FilegroupEvent) -> None:
        """Call handlers registered for this filegroup, then those registered for all."""
        event_type = type(event)
        for key in ((event_type, event.filegroup), (event_type, None)):
            for handler in list(self._handlers.get(key, ())):
                handler(event)
