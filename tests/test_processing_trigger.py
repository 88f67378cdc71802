from __future__ import annotations

import json

import httpx

from core.config import settings
from services.processing_trigger import trigger_recording_processing


def test_trigger_posts_artifact_id_with_bearer(monkeypatch):
    monkeypatch.setattr(settings, "PROCESSING_URL", "https://proc.example.com/functions/v1/process-recording")
    monkeypatch.setattr(settings, "PROCESSING_TOKEN", "service-key")
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(202)

    assert trigger_recording_processing("art-1", transport=httpx.MockTransport(handler)) is True

    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == "https://proc.example.com/functions/v1/process-recording"
    assert request.headers["authorization"] == "Bearer service-key"
    assert json.loads(request.content) == {"gravacao_id": "art-1"}


def test_trigger_failure_is_only_logged(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "PROCESSING_URL", "https://proc.example.com/process")

    def refuse(request):
        raise httpx.ConnectError("down", request=request)

    assert trigger_recording_processing("art-1", transport=httpx.MockTransport(refuse)) is False
    assert trigger_recording_processing(
        "art-1", transport=httpx.MockTransport(lambda request: httpx.Response(500))
    ) is False
    assert "art-1" in (tmp_path / "app.log").read_text()


def test_trigger_disabled_without_url():
    def fail(request):
        raise AssertionError("no request expected")

    assert trigger_recording_processing("art-1", transport=httpx.MockTransport(fail)) is False
