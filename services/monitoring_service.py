import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings, SEALED_ORPHAN, SEALED_WINDOW_EXPIRED
from repository import device_status_repository, session_repository
from services import audit_service
from services.concatenation_service import finalize_session
from services.logger import log_event
from services.object_store import ObjectStoreClient


def seal_session(db: Session, session_id: str, user_id: str, reason: str, now: datetime) -> bool:
    """
    Sela uma sessão ativa, desliga os indicadores do dispositivo e registra a auditoria.
    Retorna False se outra varredura já havia selado a sessão.
    """
    if not session_repository.seal(db, session_id, reason, now):
        return False

    device_status_repository.reset_flags(db, user_id)
    audit_service.record_event(db, user_id, audit_service.SESSION_SEALED, True,
                               {"session_id": session_id, "sealed_reason": reason})
    return True


def _seal_each(db: Session, candidates: list[tuple[str, str]], reason: str, action: str, now: datetime,
               results: list[dict]):
    for session_id, user_id in candidates:
        try:
            sealed = seal_session(db, session_id, user_id, reason, now)
        except SQLAlchemyError as e:
            db.rollback()
            log_event(f"Erro ao selar sessão {session_id}: {e}", to_file=True)
            results.append({"action": "error", "session_id": session_id, "error": str(e)})
            continue

        if sealed:
            log_event(f"Sessão {session_id} selada ({reason})")
            results.append({"action": action, "session_id": session_id})


def _seal_orphans(db: Session, now: datetime, results: list[dict]):
    older_than = now - timedelta(minutes=settings.ORPHAN_GRACE_MINUTES)
    candidates = [(s.id, s.user_id) for s in session_repository.find_orphans(db, older_than)]
    _seal_each(db, candidates, SEALED_ORPHAN, "orphan_expired", now, results)


def _seal_expired_windows(db: Session, now: datetime, results: list[dict]):
    candidates = [(s.id, s.user_id) for s in session_repository.find_window_expired(db, now)]
    _seal_each(db, candidates, SEALED_WINDOW_EXPIRED, "expired", now, results)


def _utcnow():
    return datetime.now(timezone.utc)


def _finalize_pending(db: Session, store: ObjectStoreClient, now: datetime, results: list[dict], schedule=None,
                     clock=_utcnow):
    cutoff = now - timedelta(seconds=settings.FINALIZATION_TOLERANCE_SECONDS)
    lease = timedelta(minutes=settings.CLAIM_LEASE_MINUTES)
    pending = [(s.id, s.user_id) for s in session_repository.find_finalizable(db, cutoff)]

    for session_id, user_id in pending:
        token = str(uuid.uuid4())
        try:
            claimed = session_repository.claim_for_finalization(db, session_id, token, clock(), lease)
        except SQLAlchemyError as e:
            db.rollback()
            log_event(f"Erro ao reivindicar sessão {session_id}: {e}", to_file=True)
            results.append({"action": "error", "session_id": session_id, "error": str(e)})
            continue

        if not claimed:
            continue

        try:
            result = finalize_session(db, store, session_id, token, schedule=schedule)
        except Exception as e:
            db.rollback()
            log_event(f"Erro ao processar sessão {session_id}: {e}", to_file=True)
            audit_service.record_event(db, user_id, audit_service.SESSION_MAINTENANCE_ERROR, False,
                                       {"session_id": session_id, "error": str(e)})
            try:
                session_repository.release_claim(db, session_id, token)
            except SQLAlchemyError as release_error:
                db.rollback()
                log_event(f"Falha ao liberar sessão {session_id}: {release_error}", to_file=True)
            result = {"action": "error", "session_id": session_id, "error": str(e)}

        if result is not None:
            results.append(result)


def run_maintenance(db: Session, store: ObjectStoreClient, now: datetime | None = None, schedule=None,
                    clock=_utcnow) -> list[dict]:
    """
    Executa uma varredura completa: sela sessões órfãs, sela janelas expiradas
    e finaliza as sessões aguardando finalização.

    Cada etapa é isolada; a falha de uma não impede as seguintes.
    `schedule(func, *args)` recebe o disparo do processamento das gravações.
    `now` define os cortes da varredura; `clock` carimba cada reivindicação no
    instante em que ela acontece.
    """
    now = now or _utcnow()
    results = []

    for name, step in (("orphans", _seal_orphans), ("expired_windows", _seal_expired_windows)):
        try:
            step(db, now, results)
        except SQLAlchemyError as e:
            db.rollback()
            log_event(f"Etapa '{name}' da manutenção falhou: {e}", to_file=True)
            results.append({"action": "error", "session_id": None, "error": f"{name}: {e}"})

    try:
        _finalize_pending(db, store, now, results, schedule=schedule, clock=clock)
    except SQLAlchemyError as e:
        db.rollback()
        log_event(f"Etapa 'finalization' da manutenção falhou: {e}", to_file=True)
        results.append({"action": "error", "session_id": None, "error": f"finalization: {e}"})

    return results
