from typing import List, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "Stock Ledger"
    API_V1_STR: str = "/api/v1"

    # CORS
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # Database
    SQLITE_DATABASE_URI: str = "sqlite:///./stockledger.db"
    DB_BUSY_TIMEOUT: float = Field(default=30.0, description="Seconds a writer waits for the database lock")
    TX_RETRY_ATTEMPTS: int = Field(default=3, ge=1, description="Reruns of a unit of work after a stale version")

    # Stock policy
    # on_create: purchases increment stock when recorded
    # on_receipt: purchases increment stock when they reach RECEIVED
    STOCK_RECEIPT_POLICY: str = "on_create"
    ALLOW_NEGATIVE_STOCK: bool = False
    LOW_STOCK_THRESHOLD: int = 5

    # Nightly audit of counters against the movement log
    STOCK_AUDIT_ENABLED: bool = True
    STOCK_AUDIT_HOUR: int = 2
    STOCK_AUDIT_MINUTE: int = 30

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    @validator("STOCK_RECEIPT_POLICY")
    def check_receipt_policy(cls, v: str) -> str:
        if v not in ("on_create", "on_receipt"):
            raise ValueError("STOCK_RECEIPT_POLICY must be on_create or on_receipt")
        return v

    class Config:
        case_sensitive = True
        env_file = ".env"


settings = Settings()
logger.info(f"Loaded settings: API_V1_STR={settings.API_V1_STR}, receipt policy={settings.STOCK_RECEIPT_POLICY}")
