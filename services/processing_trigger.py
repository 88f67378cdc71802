import httpx

from core.config import settings
from services.logger import log_event


def trigger_recording_processing(artifact_id: str, transport: httpx.BaseTransport | None = None) -> bool:
    """Dispara o processamento (transcrição e análise) da gravação. Nunca lança exceção."""
    if not settings.PROCESSING_URL:
        log_event(f"PROCESSING_URL não configurada; gravação {artifact_id} aguardará reconciliação.")
        return False

    headers = {"Content-Type": "application/json"}
    if settings.PROCESSING_TOKEN:
        headers["Authorization"] = f"Bearer {settings.PROCESSING_TOKEN}"

    try:
        with httpx.Client(timeout=settings.PROCESSING_TIMEOUT_SECONDS, transport=transport) as client:
            response = client.post(settings.PROCESSING_URL, json={"gravacao_id": artifact_id}, headers=headers)
        response.raise_for_status()
    except httpx.HTTPError as e:
        log_event(f"Erro ao disparar processamento da gravação {artifact_id}: {e}", to_file=True)
        return False

    log_event(f"Processamento da gravação {artifact_id} disparado.")
    return True
