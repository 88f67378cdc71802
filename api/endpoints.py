from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session

from api.dtos import SweepResponse, SessionSealResponse
from core.config import SESSION_ACTIVE, SEALED_MANUAL_STOP
from core.dependencies import get_object_store, verify_maintenance_token
from db.session import get_db
from repository import session_repository
from services import monitoring_service
from services.logger import log_event
from services.object_store import ObjectStoreClient

router = APIRouter()

maintenance_router = APIRouter(
    prefix="/manutencao",
    tags=["Manutenção"],
    dependencies=[Depends(verify_maintenance_token)],
)


@maintenance_router.post("/sessoes", response_model=SweepResponse, response_model_exclude_none=True)
def executar_manutencao(
        background_tasks: BackgroundTasks,
        db: Session = Depends(get_db),
        store: ObjectStoreClient = Depends(get_object_store)
):
    """
    Executa uma varredura das sessões de monitoramento.
    Deve ser chamada periodicamente pelo agendador; não recebe corpo.
    """
    results = monitoring_service.run_maintenance(db, store, schedule=background_tasks.add_task)
    log_event(f"Manutenção concluída: {len(results)} sessões processadas")

    return SweepResponse(
        success=True,
        processed=len(results),
        results=results,
        timestamp=datetime.now(timezone.utc),
    )


@maintenance_router.post("/sessoes/{session_id}/encerrar", response_model=SessionSealResponse)
def encerrar_sessao(session_id: str, db: Session = Depends(get_db)):
    """Sela uma sessão ativa a pedido do dispositivo (sinal explícito de parada)."""
    session = session_repository.get_session(db, session_id)
    if not session:
        raise HTTPException(status_code=404, detail="Sessão de monitoramento não encontrada.")
    if session.status != SESSION_ACTIVE:
        raise HTTPException(status_code=409, detail="Sessão de monitoramento já foi encerrada.")

    user_id = session.user_id
    now = datetime.now(timezone.utc)
    if not monitoring_service.seal_session(db, session_id, user_id, SEALED_MANUAL_STOP, now):
        raise HTTPException(status_code=409, detail="Sessão de monitoramento já foi encerrada.")

    log_event(f"Sessão {session_id} encerrada pelo dispositivo do usuário {user_id}.")
    session = session_repository.get_session(db, session_id)
    return SessionSealResponse(
        session_id=session.id,
        status=session.status,
        sealed_reason=session.sealed_reason,
        closed_at=session.closed_at,
    )


router.include_router(maintenance_router)
