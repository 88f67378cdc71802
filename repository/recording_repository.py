from sqlalchemy.orm import Session

from core.config import RECORDING_PENDING
from models.recording_model import RecordingArtifact


def get_by_session(db: Session, session_id: str) -> RecordingArtifact | None:
    return db.query(RecordingArtifact).filter(
        RecordingArtifact.source_session_id == session_id
    ).first()


def create_for_session(db: Session, session_id: str, user_id: str, device_id: str | None,
                       storage_path: str, file_url: str, duration_seconds: float) -> RecordingArtifact:
    """
    Cria a gravação da sessão com status pending.
    Se uma tentativa anterior já criou a linha, ela é reaproveitada.
    """
    artifact = get_by_session(db, session_id)
    if artifact is None:
        artifact = RecordingArtifact(source_session_id=session_id, user_id=user_id)
        db.add(artifact)

    artifact.device_id = device_id
    artifact.storage_path = storage_path
    artifact.file_url = file_url
    artifact.duration_seconds = duration_seconds
    artifact.status = RECORDING_PENDING
    db.commit()
    db.refresh(artifact)
    return artifact
