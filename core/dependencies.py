import hmac

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from core.config import settings
from services.object_store import ObjectStoreClient

maintenance_scheme = HTTPBearer(auto_error=False)


def verify_maintenance_token(credentials: HTTPAuthorizationCredentials | None = Depends(maintenance_scheme)):
    if not settings.MAINTENANCE_TOKEN:
        return

    token = credentials.credentials if credentials else ""
    if not hmac.compare_digest(token, settings.MAINTENANCE_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token de manutenção inválido",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_object_store():
    store = ObjectStoreClient.from_settings()
    try:
        yield store
    finally:
        store.close()
