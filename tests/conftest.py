import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from api.features.conversation.repository import ConversationStore
from api.shared.entities.registry import BaseEntity
from core.settings import PgDbSettings, Settings
from infra.resources import DatabaseResource


class ScriptedProducer:
    """Completion producer that replays a fixed list of deltas.

    ``fail_after`` raises once that many deltas were yielded; ``delay`` sleeps
    before every delta.
    """

    def __init__(
        self,
        deltas: Optional[List[str]] = None,
        fail_after: Optional[int] = None,
        delay: float = 0.0,
    ) -> None:
        self.deltas = list(deltas or [])
        self.fail_after = fail_after
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.closed = 0

    async def stream(self, messages, *, model, params=None):
        self.calls.append(
            {
                "messages": [dict(m) for m in messages],
                "model": model,
                "params": dict(params or {}),
            }
        )
        try:
            for i, delta in enumerate(self.deltas):
                if self.fail_after is not None and i >= self.fail_after:
                    break
                if self.delay:
                    await asyncio.sleep(self.delay)
                yield delta
            if self.fail_after is not None:
                raise RuntimeError("upstream exploded")
        finally:
            self.closed += 1


def parse_frames(body: str) -> List[Dict[str, Any]]:
    frames = []
    for block in body.split("\n\n"):
        if block.startswith("data: "):
            frames.append(json.loads(block[len("data: "):]))
    return frames


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}"


@pytest.fixture
async def database(anyio_backend, database_url):
    db = DatabaseResource(database_url)
    await db.init()
    await db.create_schema(BaseEntity.metadata)
    yield db
    await db.shutdown()


@pytest.fixture
def store(database):
    return ConversationStore(database)


@pytest.fixture
def producer():
    return ScriptedProducer(["Hello", " world"])


@pytest.fixture
def app(database_url, producer):
    from api.main import create_fastapi_app

    settings = Settings(DATABASE=PgDbSettings(DATABASE_URL=database_url))
    _app = create_fastapi_app(settings)
    _app.container.infrastructure.completion_producer.override(
        providers.Object(producer)
    )
    yield _app
    _app.container.infrastructure.completion_producer.reset_override()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
