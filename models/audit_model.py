from sqlalchemy import Column, Integer, String, DateTime, Boolean, JSON
from db.base import Base
from models.monitoring_model import _utcnow


class AuditEvent(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=True, index=True)
    action_type = Column(String, nullable=False)  # Ex: "session_sealed", "session_concatenated"
    success = Column(Boolean, nullable=False, default=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
