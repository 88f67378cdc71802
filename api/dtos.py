from pydantic import BaseModel
from datetime import datetime
from typing import List


class SweepResult(BaseModel):
    action: str  # orphan_expired | expired | discarded_empty | concatenated | *_error | error
    session_id: str | None = None
    artifact_id: str | None = None
    segments: int | None = None
    duration: float | None = None
    error: str | None = None


class SweepResponse(BaseModel):
    success: bool
    processed: int
    results: List[SweepResult]
    timestamp: datetime


class SessionSealResponse(BaseModel):
    session_id: str
    status: str
    sealed_reason: str
    closed_at: datetime
