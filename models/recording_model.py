from sqlalchemy import Column, String, DateTime, Float
from db.base import Base
from models.monitoring_model import _new_id, _utcnow


class RecordingArtifact(Base):
    """Gravação final produzida a partir dos segmentos de uma sessão."""
    __tablename__ = "recordings"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), nullable=False, index=True)
    device_id = Column(String, nullable=True)
    storage_path = Column(String, nullable=False)
    file_url = Column(String, nullable=True)
    duration_seconds = Column(Float, nullable=False, default=0)
    status = Column(String, nullable=False, default="pending")  # avançado pelo pipeline de transcrição
    source_session_id = Column(String(36), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
