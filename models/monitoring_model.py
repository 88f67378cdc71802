from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from db.base import Base
import datetime
import uuid


def _utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


def _new_id():
    return str(uuid.uuid4())


class MonitoringSession(Base):
    __tablename__ = "monitoring_sessions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False, index=True)
    device_id = Column(String, nullable=True)
    origin = Column(String, nullable=True)  # Ex: "agendamento", "panico", "manual"
    status = Column(String, nullable=False, default="active", index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    window_start_at = Column(DateTime(timezone=True), nullable=True)
    window_end_at = Column(DateTime(timezone=True), nullable=True)  # nulo: encerrada apenas por sinal explícito
    closed_at = Column(DateTime(timezone=True), nullable=True)
    finalized_at = Column(DateTime(timezone=True), nullable=True)

    sealed_reason = Column(String, nullable=True)
    total_segments = Column(Integer, nullable=False, default=0)
    total_duration_seconds = Column(Float, nullable=False, default=0)
    final_artifact_id = Column(String(36), nullable=True)

    # Reivindicação da finalização por uma varredura
    claim_token = Column(String(36), nullable=True)
    claimed_at = Column(DateTime(timezone=True), nullable=True)

    segments = relationship("Segment", back_populates="session", order_by="Segment.segment_index")


class Segment(Base):
    __tablename__ = "session_segments"
    __table_args__ = (UniqueConstraint("session_id", "segment_index", name="uq_segment_session_index"),)

    id = Column(String(36), primary_key=True, default=_new_id)
    session_id = Column(String(36), ForeignKey("monitoring_sessions.id"), nullable=False, index=True)
    user_id = Column(String(36), nullable=False)
    storage_path = Column(String, nullable=True)
    file_url = Column(String, nullable=True)
    duration_seconds = Column(Float, nullable=True)
    segment_index = Column(Integer, nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    session = relationship("MonitoringSession", back_populates="segments")
