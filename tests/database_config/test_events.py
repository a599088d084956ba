from src.database_config.events import (
    FilegroupDefaultChanged,
    FilegroupDeleted,
    FilegroupEventDispatcher,
)
from src.database_config.filegroups import FilegroupPrototype


def test_source_handlers_only_see_their_filegroup(dispatcher):
    first = FilegroupPrototype.new(dispatcher, "FG1")
    second = FilegroupPrototype.new(dispatcher, "FG2")
    seen = []
    dispatcher.subscribe(FilegroupDeleted, seen.append, source=first)

    dispatcher.publish(FilegroupDeleted(second, None))
    dispatcher.publish(FilegroupDeleted(first, None))

    assert [event.filegroup for event in seen] == [first]


def test_wildcard_handlers_see_every_filegroup(dispatcher):
    seen = []
    dispatcher.subscribe(FilegroupDefaultChanged, seen.append)

    filegroup = FilegroupPrototype.new(dispatcher, "FG1")
    filegroup.is_default = True

    assert seen == [FilegroupDefaultChanged(filegroup)]


def test_source_handlers_run_before_wildcard_handlers(dispatcher):
    filegroup = FilegroupPrototype.new(dispatcher, "FG1")
    order = []
    dispatcher.subscribe(FilegroupDeleted, lambda e: order.append("any"))
    dispatcher.subscribe(FilegroupDeleted, lambda e: order.append("source"), source=filegroup)

    dispatcher.publish(FilegroupDeleted(filegroup, None))

    assert order == ["source", "any"]


def test_handler_may_unsubscribe_during_delivery():
    dispatcher = FilegroupEventDispatcher()
    filegroup = FilegroupPrototype.new(dispatcher, "FG1")
    calls = []

    def once(event):
        calls.append(event)
        dispatcher.unsubscribe(FilegroupDeleted, once, source=filegroup)

    dispatcher.subscribe(FilegroupDeleted, once, source=filegroup)
    dispatcher.publish(FilegroupDeleted(filegroup, None))
    dispatcher.publish(FilegroupDeleted(filegroup, None))

    assert len(calls) == 1


def test_unsubscribing_unknown_handler_is_ignored(dispatcher):
    filegroup = FilegroupPrototype.new(dispatcher, "FG1")
    seen = []
    dispatcher.subscribe(FilegroupDeleted, seen.append)

    dispatcher.unsubscribe(FilegroupDeleted, print)
    dispatcher.publish(FilegroupDeleted(filegroup, None))

    assert len(seen) == 1
