import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_DB: str = "monitoramento"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: str = "5432"

    POSTGRES_USER: str = os.environ.get("DB_USER", "")
    POSTGRES_PASSWORD: str = os.environ.get("DB_PASSWORD", "")

    # Quando definido, substitui a URL montada a partir das variáveis POSTGRES_*
    DATABASE_URL: str = ""

    R2_ACCOUNT_ID: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = ""
    R2_PUBLIC_URL: str = ""
    R2_ENDPOINT: str = ""
    R2_REGION: str = "auto"
    R2_TIMEOUT_SECONDS: float = 30.0

    ORPHAN_GRACE_MINUTES: int = 10
    FINALIZATION_TOLERANCE_SECONDS: int = 30
    DEFAULT_SEGMENT_DURATION_SECONDS: int = 30
    CLAIM_LEASE_MINUTES: int = 15

    PROCESSING_URL: str = ""
    PROCESSING_TOKEN: str = ""
    PROCESSING_TIMEOUT_SECONDS: float = 10.0

    MAINTENANCE_TOKEN: str = ""

    LOG_FILE: str = "app.log"

    @property
    def SQLALCHEMY_DATABASE_URL(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def R2_ENDPOINT_URL(self):
        if self.R2_ENDPOINT:
            return self.R2_ENDPOINT.rstrip("/")
        return f"https://{self.R2_ACCOUNT_ID}.r2.cloudflarestorage.com"

    class Config:
        env_file = ".env"


settings = Settings()

SESSION_ACTIVE = "active"
SESSION_AWAITING_FINALIZATION = "awaiting_finalization"
SESSION_MERGED = "merged"

SEALED_WINDOW_EXPIRED = "window_expired"
SEALED_ORPHAN = "orphan_no_segments"
SEALED_MANUAL_STOP = "manual_stop"

RECORDING_PENDING = "pending"

ARTIFACT_EXTENSION = ".audio"
ARTIFACT_CONTENT_TYPE = "application/octet-stream"
