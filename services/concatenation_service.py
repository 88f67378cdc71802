"""
Concatenação dos segmentos de uma sessão em uma única gravação.

Cada ponto de falha deixa a sessão em awaiting_finalization, sem gravação e sem
limpeza parcial, para que a próxima varredura repita a sequência inteira.
"""
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings, ARTIFACT_CONTENT_TYPE, ARTIFACT_EXTENSION
from repository import recording_repository, session_repository
from services import audit_service
from services.logger import log_event
from services.object_store import DeleteError, DownloadError, ObjectStoreClient, UploadError
from services.processing_trigger import trigger_recording_processing


class ConcatenationAborted(Exception):
    def __init__(self, cause: str, action: str):
        super().__init__(cause)
        self.cause = cause
        self.action = action


@dataclass
class SegmentRef:
    id: str
    path: str | None
    duration_seconds: float | None


def resolve_segment_path(storage_path: str | None, file_url: str | None) -> str | None:
    return storage_path or file_url or None


def total_duration(segments: list[SegmentRef]) -> float:
    default = settings.DEFAULT_SEGMENT_DURATION_SECONDS
    return sum(seg.duration_seconds or default for seg in segments)


def build_artifact_key(user_id: str, session_id: str, day) -> str:
    return f"{user_id}/{day.strftime('%Y-%m-%d')}/{session_id}{ARTIFACT_EXTENSION}"


def build_file_url(key: str) -> str:
    if settings.R2_PUBLIC_URL:
        return f"{settings.R2_PUBLIC_URL.rstrip('/')}/{key}"
    return key


def _call_now(func, *args):
    func(*args)


def _download_all(store: ObjectStoreClient, segments: list[SegmentRef]) -> list[bytes]:
    buffers = []
    for seg in segments:
        if not seg.path:
            log_event(f"Segmento {seg.id} sem storage_path ou file_url", to_file=True)
            raise ConcatenationAborted("segment_download_failed", "download_error")

        try:
            data = store.get(seg.path)
        except DownloadError as e:
            log_event(f"Falha ao baixar segmento {seg.id}: {e}", to_file=True)
            raise ConcatenationAborted("segment_download_failed", "download_error") from e

        if data is None:
            log_event(f"Segmento {seg.id} não encontrado no storage ({seg.path})", to_file=True)
            raise ConcatenationAborted("segment_download_failed", "download_error")
        buffers.append(data)
    return buffers


def _cleanup_segments(db: Session, store: ObjectStoreClient, segments: list[SegmentRef]) -> int:
    count = 0
    for seg in segments:
        if seg.path:
            try:
                store.delete(seg.path)
            except DeleteError as e:
                log_event(f"Falha ao remover arquivo do segmento {seg.id}: {e}", to_file=True)
        try:
            session_repository.delete_segment(db, seg.id)
        except SQLAlchemyError as e:
            db.rollback()
            log_event(f"Falha ao remover registro do segmento {seg.id}: {e}", to_file=True)
            continue
        count += 1
    return count


def finalize_session(db: Session, store: ObjectStoreClient, session_id: str, token: str,
                     schedule=None) -> dict | None:
    """
    Finaliza uma sessão já reivindicada por `token`.

    Retorna o item de resultado da varredura, ou None quando não havia nada a
    fazer (segmentos chegaram entre a consulta e o descarte).
    """
    schedule = schedule or _call_now
    session = session_repository.get_session(db, session_id)
    if session is None:
        return None

    user_id = session.user_id
    device_id = session.device_id
    day = session.closed_at or session.finalized_at or session.created_at

    segments = [
        SegmentRef(seg.id, resolve_segment_path(seg.storage_path, seg.file_url), seg.duration_seconds)
        for seg in session_repository.list_segments_ordered(db, session_id)
    ]

    if not segments:
        if not session_repository.discard(db, session_id, token=token):
            session_repository.release_claim(db, session_id, token)
            return None

        log_event(f"Sessão vazia {session_id} descartada (0 segmentos)")
        audit_service.record_event(db, user_id, audit_service.SESSION_DISCARDED_SHORT, True,
                                   {"session_id": session_id, "reason": "zero_segments_maintenance"})
        return {"action": "discarded_empty", "session_id": session_id}

    try:
        buffers = _download_all(store, segments)
        merged = b"".join(buffers)
        duration = total_duration(segments)

        key = build_artifact_key(user_id, session_id, day)
        try:
            store.put(key, merged, ARTIFACT_CONTENT_TYPE)
        except UploadError as e:
            log_event(f"Falha ao enviar gravação final {key}: {e}", to_file=True)
            raise ConcatenationAborted("final_upload_failed", "upload_error") from e

        if not store.head(key):
            log_event(f"Gravação final {key} não encontrada após upload", to_file=True)
            raise ConcatenationAborted("final_file_not_found_after_upload", "verify_error")

        try:
            artifact = recording_repository.create_for_session(
                db, session_id=session_id, user_id=user_id, device_id=device_id,
                storage_path=key, file_url=build_file_url(key), duration_seconds=duration,
            )
        except SQLAlchemyError as e:
            db.rollback()
            log_event(f"Falha ao inserir gravação da sessão {session_id}: {e}", to_file=True)
            raise ConcatenationAborted("gravacao_insert_failed", "insert_error") from e
    except ConcatenationAborted as aborted:
        audit_service.record_event(db, user_id, audit_service.SESSION_CONCATENATION_ERROR, False,
                                   {"session_id": session_id, "error": aborted.cause})
        session_repository.release_claim(db, session_id, token)
        return {"action": aborted.action, "session_id": session_id}

    artifact_id = artifact.id
    if not session_repository.complete_merge(db, session_id, artifact_id, len(segments), duration, token=token):
        raise RuntimeError(f"sessão {session_id} deixou de pertencer a esta varredura antes do merge")

    audit_service.record_event(db, user_id, audit_service.SESSION_CONCATENATED, True, {
        "session_id": session_id,
        "final_gravacao_id": artifact_id,
        "total_segments": len(segments),
        "total_duration": duration,
    })
    log_event(f"Sessão {session_id} concatenada: {len(segments)} segmentos, {duration}s")

    cleaned = _cleanup_segments(db, store, segments)
    audit_service.record_event(db, user_id, audit_service.SEGMENTS_CLEANUP_DONE, True,
                               {"session_id": session_id, "count": cleaned})

    schedule(trigger_recording_processing, artifact_id)

    return {
        "action": "concatenated",
        "session_id": session_id,
        "artifact_id": artifact_id,
        "segments": len(segments),
        "duration": duration,
    }
