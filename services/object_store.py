"""
Cliente mínimo para um bucket compatível com S3 (Cloudflare R2).

As requisições são assinadas com AWS Signature V4 sem SDK: a assinatura cobre
o método, o caminho canônico e os cabeçalhos, e o corpo é declarado como
UNSIGNED-PAYLOAD.
"""
import hashlib
import hmac
from datetime import datetime, timezone
from urllib.parse import quote

import httpx

from core.config import settings
from services.logger import log_event

ALGORITHM = "AWS4-HMAC-SHA256"
UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"
SCOPE_TERMINATOR = "aws4_request"


class ObjectStoreError(Exception):
    def __init__(self, key: str, message: str, status_code: int | None = None):
        super().__init__(f"{message} ({key})")
        self.key = key
        self.status_code = status_code


class DownloadError(ObjectStoreError):
    pass


class UploadError(ObjectStoreError):
    pass


class DeleteError(ObjectStoreError):
    pass


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


class Signer:
    """Gera o cabeçalho Authorization de uma requisição (SigV4)."""

    def __init__(self, access_key_id: str, secret_access_key: str, region: str = "auto", service: str = "s3"):
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.service = service

    def credential_scope(self, short_date: str) -> str:
        return f"{short_date}/{self.region}/{self.service}/{SCOPE_TERMINATOR}"

    def signing_key(self, short_date: str) -> bytes:
        k_date = _hmac_sha256(f"AWS4{self.secret_access_key}".encode("utf-8"), short_date)
        k_region = _hmac_sha256(k_date, self.region)
        k_service = _hmac_sha256(k_region, self.service)
        return _hmac_sha256(k_service, SCOPE_TERMINATOR)

    def sign(self, method: str, canonical_uri: str, headers: dict, amz_date: str,
             payload_hash: str = UNSIGNED_PAYLOAD) -> str:
        normalized = {name.lower(): " ".join(str(value).split()) for name, value in headers.items()}
        signed_header_names = sorted(normalized)
        signed_headers = ";".join(signed_header_names)
        canonical_headers = "".join(f"{name}:{normalized[name]}\n" for name in signed_header_names)

        canonical_request = "\n".join([
            method.upper(),
            canonical_uri,
            "",
            canonical_headers,
            signed_headers,
            payload_hash,
        ])

        short_date = amz_date[:8]
        scope = self.credential_scope(short_date)
        string_to_sign = "\n".join([
            ALGORITHM,
            amz_date,
            scope,
            hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
        ])
        signature = hmac.new(self.signing_key(short_date), string_to_sign.encode("utf-8"),
                             hashlib.sha256).hexdigest()

        return (
            f"{ALGORITHM} Credential={self.access_key_id}/{scope}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )


class ObjectStoreClient:
    def __init__(self, endpoint: str, bucket: str, signer: Signer, timeout: float = 30.0,
                 transport: httpx.BaseTransport | None = None):
        self.endpoint = endpoint.rstrip("/")
        self.bucket = bucket
        self.signer = signer
        self.host = httpx.URL(self.endpoint).netloc.decode("ascii")
        self._client = httpx.Client(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(cls, transport: httpx.BaseTransport | None = None) -> "ObjectStoreClient":
        signer = Signer(settings.R2_ACCESS_KEY_ID, settings.R2_SECRET_ACCESS_KEY, region=settings.R2_REGION)
        return cls(settings.R2_ENDPOINT_URL, settings.R2_BUCKET_NAME, signer,
                   timeout=settings.R2_TIMEOUT_SECONDS, transport=transport)

    def close(self):
        self._client.close()

    def _canonical_uri(self, key: str) -> str:
        return "/" + quote(f"{self.bucket}/{key}", safe="/-_.~")

    def _request(self, method: str, key: str, content: bytes | None = None,
                 content_type: str | None = None) -> httpx.Response:
        canonical_uri = self._canonical_uri(key)
        amz_date = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

        headers = {
            "host": self.host,
            "x-amz-date": amz_date,
            "x-amz-content-sha256": UNSIGNED_PAYLOAD,
        }
        if content_type:
            headers["content-type"] = content_type
        headers["Authorization"] = self.signer.sign(method, canonical_uri, headers, amz_date)

        return self._client.request(method, f"{self.endpoint}{canonical_uri}", headers=headers, content=content)

    def get(self, key: str) -> bytes | None:
        try:
            response = self._request("GET", key)
        except httpx.HTTPError as e:
            raise DownloadError(key, f"Falha de rede ao baixar objeto: {e}") from e

        if response.status_code == 404:
            return None
        if not response.is_success:
            raise DownloadError(key, "Download recusado pelo storage", response.status_code)
        return response.content

    def put(self, key: str, data: bytes, content_type: str = "application/octet-stream"):
        try:
            response = self._request("PUT", key, content=data, content_type=content_type)
        except httpx.HTTPError as e:
            raise UploadError(key, f"Falha de rede ao enviar objeto: {e}") from e

        if not response.is_success:
            raise UploadError(key, "Upload recusado pelo storage", response.status_code)

    def head(self, key: str) -> bool:
        try:
            response = self._request("HEAD", key)
        except httpx.HTTPError as e:
            log_event(f"Erro ao verificar objeto {key}: {e}", to_file=True)
            return False
        return response.is_success

    def delete(self, key: str):
        try:
            response = self._request("DELETE", key)
        except httpx.HTTPError as e:
            raise DeleteError(key, f"Falha de rede ao remover objeto: {e}") from e

        # 404: o objeto já não existe, o que satisfaz a remoção
        if not (response.is_success or response.status_code == 404):
            raise DeleteError(key, "Remoção recusada pelo storage", response.status_code)
