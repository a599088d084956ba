import pytest

from src import settings
from src.database_config.capabilities import CapabilitySet
from src.database_config.events import FilegroupEventDispatcher
from tests.database_config.fakes import FakeConnection, model_database, sales_database


@pytest.fixture(autouse=True)
def no_configured_server(monkeypatch):
    """Catalog queries go through the fake connection unless a test sets a URL."""
    monkeypatch.setattr(settings, "SQLSERVER_URL", None)


@pytest.fixture
def call_log() -> list:
    """Shared, ordered record of every remote call the fakes receive."""
    return []


@pytest.fixture
def connection(call_log) -> FakeConnection:
    """Server with a template `model` database and an existing `Sales` database."""
    return FakeConnection(
        databases=[model_database(call_log), sales_database(call_log)],
        log=call_log,
    )


@pytest.fixture
def capabilities() -> CapabilitySet:
    return CapabilitySet.all_supported(is_sysadmin=True, is_full_text_installed=True)


@pytest.fixture
def dispatcher() -> FilegroupEventDispatcher:
    return FilegroupEventDispatcher()
