from __future__ import annotations

import httpx
import pytest

from services.object_store import (
    DeleteError,
    DownloadError,
    ObjectStoreClient,
    Signer,
    UNSIGNED_PAYLOAD,
    UploadError,
)
from tests.conftest import BUCKET, ENDPOINT

EXAMPLE_SECRET = "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY"
EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_signing_key_matches_published_vector():
    signer = Signer("AKIDEXAMPLE", EXAMPLE_SECRET, region="us-east-1", service="iam")
    assert signer.signing_key("20120215").hex() == (
        "f4780e2d9f65fa895f9c67b32ce1baf0b0d8a43505a000a1a9e090d414db404d"
    )


def test_signature_matches_get_vanilla_vector():
    signer = Signer("AKIDEXAMPLE", EXAMPLE_SECRET, region="us-east-1", service="service")
    headers = {"Host": "example.amazonaws.com", "X-Amz-Date": "20150830T123600Z"}

    authorization = signer.sign("GET", "/", headers, "20150830T123600Z", payload_hash=EMPTY_SHA256)

    assert authorization == (
        "AWS4-HMAC-SHA256 Credential=AKIDEXAMPLE/20150830/us-east-1/service/aws4_request, "
        "SignedHeaders=host;x-amz-date, "
        "Signature=5fa00fa31553b73ebf1942676e86291e8372ff2a2260956d9b8aae1d763fbf31"
    )


def test_requests_carry_signed_headers(store, bucket):
    store.put("a/b.audio", b"abc", "application/octet-stream")
    store.get("a/b.audio")

    put_request, get_request = bucket.requests
    assert put_request.headers["x-amz-content-sha256"] == UNSIGNED_PAYLOAD
    assert put_request.headers["host"] == "acct.r2.cloudflarestorage.com"
    assert "SignedHeaders=content-type;host;x-amz-content-sha256;x-amz-date," in put_request.headers["authorization"]
    assert "SignedHeaders=host;x-amz-content-sha256;x-amz-date," in get_request.headers["authorization"]

    scope_date = get_request.headers["x-amz-date"][:8]
    assert f"Credential=AKID/{scope_date}/auto/s3/aws4_request" in get_request.headers["authorization"]


def test_put_get_head_round_trip(store, bucket):
    store.put("user/2026-10-17/s.audio", b"\x00\x01audio", "application/octet-stream")

    assert bucket.objects["user/2026-10-17/s.audio"] == b"\x00\x01audio"
    assert store.get("user/2026-10-17/s.audio") == b"\x00\x01audio"
    assert store.head("user/2026-10-17/s.audio") is True


def test_get_missing_object_returns_none(store):
    assert store.get("nope.m4a") is None


def test_head_missing_object_is_false(store):
    assert store.head("nope.m4a") is False


def test_delete_is_idempotent(store, bucket):
    bucket.objects["seg.m4a"] = b"x"

    store.delete("seg.m4a")
    store.delete("seg.m4a")

    assert "seg.m4a" not in bucket.objects
    assert len(bucket.methods("DELETE")) == 2


def test_server_errors_raise_typed_errors(store, bucket):
    bucket.error_keys.add("broken.m4a")

    with pytest.raises(DownloadError) as download:
        store.get("broken.m4a")
    assert download.value.status_code == 500

    with pytest.raises(UploadError):
        store.put("broken.m4a", b"x")

    with pytest.raises(DeleteError):
        store.delete("broken.m4a")

    assert store.head("broken.m4a") is False


def test_transport_failures_are_wrapped():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = ObjectStoreClient(ENDPOINT, BUCKET, Signer("AKID", "SECRET"), transport=httpx.MockTransport(refuse))
    try:
        with pytest.raises(DownloadError):
            client.get("seg.m4a")
        with pytest.raises(UploadError):
            client.put("seg.m4a", b"x")
        assert client.head("seg.m4a") is False
    finally:
        client.close()


def test_keys_are_percent_encoded_in_path(store, bucket):
    store.put("user 1/seg ç.m4a", b"x")

    request = bucket.requests[0]
    assert request.url.raw_path.decode("ascii") == f"/{BUCKET}/user%201/seg%20%C3%A7.m4a"
    assert bucket.objects["user 1/seg ç.m4a"] == b"x"
