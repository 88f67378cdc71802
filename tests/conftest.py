from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from core.config import settings
from db.base import Base
from models.audit_model import AuditEvent  # noqa: F401
from models.device_status_model import DeviceStatus  # noqa: F401
from models.monitoring_model import MonitoringSession, Segment
from models.recording_model import RecordingArtifact  # noqa: F401
from services.object_store import ObjectStoreClient, Signer

NOW = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)
BUCKET = "gravacoes"
ENDPOINT = "https://acct.r2.cloudflarestorage.com"


class FakeBucket:
    """Bucket S3 em memória servido por httpx.MockTransport."""

    def __init__(self):
        self.objects: dict[str, bytes] = {}
        self.requests: list[httpx.Request] = []
        self.fail_puts = 0
        self.drop_puts = False
        self.error_keys: set[str] = set()
        self.explode_keys: set[str] = set()
        self.on_request = None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        prefix = f"/{BUCKET}/"
        assert request.url.path.startswith(prefix)
        key = request.url.path[len(prefix):]
        if self.on_request is not None:
            self.on_request(request.method, key)

        if key in self.explode_keys:
            raise ValueError(f"unexpected failure for {key}")
        if key in self.error_keys:
            return httpx.Response(500)

        if request.method == "GET":
            if key not in self.objects:
                return httpx.Response(404)
            return httpx.Response(200, content=self.objects[key])
        if request.method == "HEAD":
            return httpx.Response(200 if key in self.objects else 404)
        if request.method == "PUT":
            if self.fail_puts:
                self.fail_puts -= 1
                return httpx.Response(503)
            if not self.drop_puts:
                self.objects[key] = request.read()
            return httpx.Response(200)
        if request.method == "DELETE":
            if key not in self.objects:
                return httpx.Response(404)
            del self.objects[key]
            return httpx.Response(204)
        return httpx.Response(405)

    def methods(self, method: str) -> list[str]:
        return [r.url.path for r in self.requests if r.method == method]


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "LOG_FILE", str(tmp_path / "app.log"))
    monkeypatch.setattr(settings, "PROCESSING_URL", "")
    monkeypatch.setattr(settings, "MAINTENANCE_TOKEN", "")
    monkeypatch.setattr(settings, "R2_PUBLIC_URL", "")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def bucket():
    return FakeBucket()


@pytest.fixture
def store(bucket):
    client = ObjectStoreClient(ENDPOINT, BUCKET, Signer("AKID", "SECRET"),
                               transport=httpx.MockTransport(bucket.handle))
    yield client
    client.close()


@pytest.fixture
def make_session(db):
    def _make(user_id="user-1", status="active", created_ago=timedelta(minutes=1), closed_ago=None,
              window_end_in=None, device_id="device-1", finalized_ago=None):
        session = MonitoringSession(
            user_id=user_id,
            device_id=device_id,
            origin="agendamento",
            status=status,
            created_at=NOW - created_ago,
            closed_at=NOW - closed_ago if closed_ago is not None else None,
            finalized_at=NOW - finalized_ago if finalized_ago is not None else None,
            window_end_at=NOW + window_end_in if window_end_in is not None else None,
        )
        db.add(session)
        db.commit()
        return session.id
    return _make


@pytest.fixture
def add_segment(db, bucket):
    def _add(session_id, index, data=b"", duration=30.0, user_id="user-1", upload=True, storage_path=None):
        path = storage_path if storage_path is not None else f"segments/{session_id}/{index}.m4a"
        segment = Segment(session_id=session_id, user_id=user_id, storage_path=path,
                          duration_seconds=duration, segment_index=index)
        db.add(segment)
        db.commit()
        if upload and path:
            bucket.objects[path] = data
        return segment.id
    return _add
