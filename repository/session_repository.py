from datetime import datetime, timedelta

from sqlalchemy import and_, exists, or_
from sqlalchemy.orm import Session

from core.config import SESSION_ACTIVE, SESSION_AWAITING_FINALIZATION, SESSION_MERGED
from models.monitoring_model import MonitoringSession, Segment


def get_session(db: Session, session_id: str) -> MonitoringSession | None:
    return db.query(MonitoringSession).filter(MonitoringSession.id == session_id).first()


def count_segments(db: Session, session_id: str) -> int:
    return db.query(Segment).filter(Segment.session_id == session_id).count()


def find_orphans(db: Session, older_than: datetime) -> list[MonitoringSession]:
    """Sessões ativas sem nenhum segmento criadas antes de `older_than`."""
    has_segments = exists().where(Segment.session_id == MonitoringSession.id)
    return db.query(MonitoringSession).filter(
        MonitoringSession.status == SESSION_ACTIVE,
        MonitoringSession.created_at < older_than,
        ~has_segments,
    ).all()


def find_window_expired(db: Session, now: datetime) -> list[MonitoringSession]:
    return db.query(MonitoringSession).filter(
        MonitoringSession.status == SESSION_ACTIVE,
        MonitoringSession.window_end_at != None,
        MonitoringSession.window_end_at < now,
    ).all()


def find_finalizable(db: Session, cutoff: datetime) -> list[MonitoringSession]:
    """
    Sessões aguardando finalização seladas antes de `cutoff`.
    Usa closed_at e, na falta dele, finalized_at.
    """
    return db.query(MonitoringSession).filter(
        MonitoringSession.status == SESSION_AWAITING_FINALIZATION,
        or_(
            MonitoringSession.closed_at < cutoff,
            and_(MonitoringSession.closed_at == None, MonitoringSession.finalized_at < cutoff),
        ),
    ).order_by(MonitoringSession.created_at).all()


# As atualizações em lote são sempre seguidas de commit, que expira a identity map


def seal(db: Session, session_id: str, reason: str, now: datetime) -> bool:
    """Transição active -> awaiting_finalization. Retorna False se a sessão não estava ativa."""
    updated = db.query(MonitoringSession).filter(
        MonitoringSession.id == session_id,
        MonitoringSession.status == SESSION_ACTIVE,
    ).update({
        MonitoringSession.status: SESSION_AWAITING_FINALIZATION,
        MonitoringSession.closed_at: now,
        MonitoringSession.finalized_at: now,
        MonitoringSession.sealed_reason: reason,
    }, synchronize_session=False)
    db.commit()
    return updated == 1


def claim_for_finalization(db: Session, session_id: str, token: str, claimed_at: datetime,
                           lease: timedelta) -> bool:
    """
    Reivindica a sessão com um UPDATE condicional, carimbado com o instante da reivindicação.
    Outra varredura só consegue reivindicá-la depois que o lease expirar.
    """
    updated = db.query(MonitoringSession).filter(
        MonitoringSession.id == session_id,
        MonitoringSession.status == SESSION_AWAITING_FINALIZATION,
        or_(MonitoringSession.claimed_at == None, MonitoringSession.claimed_at < claimed_at - lease),
    ).update({
        MonitoringSession.claim_token: token,
        MonitoringSession.claimed_at: claimed_at,
    }, synchronize_session=False)
    db.commit()
    return updated == 1


def release_claim(db: Session, session_id: str, token: str):
    db.query(MonitoringSession).filter(
        MonitoringSession.id == session_id,
        MonitoringSession.claim_token == token,
    ).update({
        MonitoringSession.claim_token: None,
        MonitoringSession.claimed_at: None,
    }, synchronize_session=False)
    db.commit()


def list_segments_ordered(db: Session, session_id: str) -> list[Segment]:
    return db.query(Segment).filter(
        Segment.session_id == session_id
    ).order_by(Segment.segment_index.asc()).all()


def discard(db: Session, session_id: str, token: str | None = None) -> bool:
    """Remove uma sessão sem segmentos. Não é uma transição de status: a linha desaparece."""
    if count_segments(db, session_id) > 0:
        return False

    query = db.query(MonitoringSession).filter(MonitoringSession.id == session_id)
    if token is not None:
        query = query.filter(MonitoringSession.claim_token == token)
    deleted = query.delete(synchronize_session=False)
    db.commit()
    return deleted == 1


def complete_merge(db: Session, session_id: str, artifact_id: str, segment_count: int,
                   total_duration: float, token: str | None = None) -> bool:
    query = db.query(MonitoringSession).filter(
        MonitoringSession.id == session_id,
        MonitoringSession.status == SESSION_AWAITING_FINALIZATION,
    )
    if token is not None:
        query = query.filter(MonitoringSession.claim_token == token)
    updated = query.update({
        MonitoringSession.status: SESSION_MERGED,
        MonitoringSession.final_artifact_id: artifact_id,
        MonitoringSession.total_segments: segment_count,
        MonitoringSession.total_duration_seconds: total_duration,
        MonitoringSession.claim_token: None,
        MonitoringSession.claimed_at: None,
    }, synchronize_session=False)
    db.commit()
    return updated == 1


def delete_segment(db: Session, segment_id: str):
    db.query(Segment).filter(Segment.id == segment_id).delete(synchronize_session=False)
    db.commit()
