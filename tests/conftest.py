"""Shared pytest setup: local SQLite storage and engines switched off."""

from __future__ import annotations

from contextlib import asynccontextmanager
import os
from pathlib import Path
import sys
import tempfile

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

_SCRATCH = Path(tempfile.mkdtemp(prefix="speakwise-tests-"))

# Settings are read once at import time, so these must be in place first.
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_SCRATCH / 'app.db'}")
os.environ.setdefault("TRANSCRIBE_ENABLED", "false")
os.environ.setdefault("BEDROCK_ENABLED", "false")
os.environ.setdefault("PIPELINE_UPLOAD_DIR", str(_SCRATCH / "uploads"))
os.environ.setdefault("LOG_FILE", str(_SCRATCH / "logs" / "app.log"))
os.environ.setdefault("PIPELINE_LOG_FILE", str(_SCRATCH / "logs" / "pipeline.log"))
os.environ.setdefault("TRANSCRIPT_LOG_FILE", str(_SCRATCH / "logs" / "transcripts.log"))

from app.database import (  # noqa: E402
    build_session_factory,
    create_engine,
    dispose_engine,
    init_models,
)
from app.services.engines import EngineHandles  # noqa: E402
from app.services.evaluation import build_evaluation_service  # noqa: E402
from app.services.record_store import EvaluationRecordStore  # noqa: E402


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'records.db'}"


@asynccontextmanager
async def _session_factory_for(url: str):
    engine = create_engine(url)
    await init_models(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await dispose_engine(engine)


@pytest.fixture
def open_store(database_url: str):
    """Return an async context manager yielding a store on a fresh database.

    Use it inside the coroutine passed to ``asyncio.run`` so the engine and
    its connections belong to that event loop.
    """

    @asynccontextmanager
    async def _open():
        async with _session_factory_for(database_url) as factory:
            yield EvaluationRecordStore(factory)

    return _open


@pytest.fixture
def open_service(database_url: str):
    """Like ``open_store`` but yields a fully wired evaluation service."""

    @asynccontextmanager
    async def _open(engines: EngineHandles | None = None):
        async with _session_factory_for(database_url) as factory:
            service = build_evaluation_service(
                engines or EngineHandles(),
                session_factory=factory,
            )
            try:
                yield service
            finally:
                await service.drain()

    return _open


@pytest.fixture
def audio_file(tmp_path: Path) -> Path:
    path = tmp_path / "recording.webm"
    path.write_bytes(b"\x1a\x45\xdf\xa3fake-webm-payload")
    return path
