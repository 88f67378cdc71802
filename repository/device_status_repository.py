from sqlalchemy.orm import Session

from models.device_status_model import DeviceStatus


def reset_flags(db: Session, user_id: str) -> int:
    """Desliga os indicadores de gravação e monitoramento dos dispositivos do usuário."""
    updated = db.query(DeviceStatus).filter(DeviceStatus.user_id == user_id).update({
        DeviceStatus.is_recording: False,
        DeviceStatus.is_monitoring: False,
    }, synchronize_session=False)
    db.commit()
    return updated
