from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.audit_model import AuditEvent
from services.logger import log_event

SESSION_SEALED = "session_sealed"
SESSION_DISCARDED_SHORT = "session_discarded_short"
SESSION_CONCATENATED = "session_concatenated"
SESSION_CONCATENATION_ERROR = "session_concatenation_error"
SEGMENTS_CLEANUP_DONE = "segments_cleanup_done"
SESSION_MAINTENANCE_ERROR = "session_maintenance_error"


def record_event(db: Session, user_id: str | None, action_type: str, success: bool, details: dict) -> bool:
    """
    Registra um evento de auditoria. Falhas são apenas logadas:
    a operação principal já foi persistida e não deve ser afetada.
    """
    try:
        db.add(AuditEvent(user_id=user_id, action_type=action_type, success=success, details=details))
        db.commit()
        return True
    except SQLAlchemyError as e:
        db.rollback()
        log_event(f"Falha ao registrar auditoria '{action_type}' do usuário {user_id}: {e}", to_file=True)
        return False
