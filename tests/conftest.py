"""
Shared pytest fixtures - in-memory collaborators + FastAPI TestClient.
"""
import pytest
from fastapi.testclient import TestClient

from apps.api.dependencies import get_session
from apps.api.main import app
from packages.common.config import Settings
from packages.common.database import DEFAULT_SETTINGS_ROWS, LEDGER_HEADER, RULES_HEADER
from packages.common.session import SessionContext
from tests.fakes import FakeMailbox, FakeModel, FakeStore


@pytest.fixture()
def store():
    return FakeStore({
        "Settings": DEFAULT_SETTINGS_ROWS,
        "Gastos": [LEDGER_HEADER],
        "Rules": [RULES_HEADER],
        "Mapping_Cache": [],
    })


@pytest.fixture()
def mailbox():
    return FakeMailbox()


@pytest.fixture()
def model():
    return FakeModel()


@pytest.fixture()
def settings():
    return Settings(TICKET_ID_STRATEGY="random", NORMALIZATION_BATCH_SIZE=30)


@pytest.fixture()
def session(mailbox, store, model, settings):
    return SessionContext(
        mailbox=mailbox,
        store=store,
        model=model,
        spreadsheet_id="sheet-1",
        settings=settings,
    )


@pytest.fixture()
def client(session):
    async def _override():
        return session

    app.dependency_overrides[get_session] = _override
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
