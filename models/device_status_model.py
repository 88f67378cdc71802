from sqlalchemy import Column, Integer, String, DateTime, Boolean
from db.base import Base
from models.monitoring_model import _utcnow


class DeviceStatus(Base):
    __tablename__ = "device_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(36), nullable=False, index=True)
    device_id = Column(String, nullable=False)
    is_recording = Column(Boolean, nullable=False, default=False)
    is_monitoring = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
