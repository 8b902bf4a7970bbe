from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "info"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks", "unverified"] = "hs256"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None
    JWT_AUDIENCE: str | None = None
    JWT_ISSUER: str | None = None

    ANONYMOUS_SUBJECT_ID: str = "anonymous"
    PUBLIC_ROLE: str = "public"
    REGISTRAR_ROLE: str = "registrar"
    DIAGNOSTICS_ROLE: str = "admin"

    DELIVERY_QUEUE_CAPACITY: int = 256
    DELIVERY_FLUSH_TIMEOUT: float = 2.0

    WS_HEARTBEAT_SECONDS: int = 25

    REDIS_ENABLED: bool = True
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_PUBSUB_CHANNEL: str = "notify.publish"

    ACK_AUDIT_STREAM: str = "notify.acks"
    ACK_AUDIT_MAXLEN: int = 100_000

    CORS_ORIGINS: list[str] = [
        "https://admin.healthflow.tech",
        "https://enroll.healthflow.tech",
        "https://dashboard.healthflow.tech",
        "https://search.healthflow.tech",
        "http://localhost:3000",
        "http://localhost:4200",
        "http://localhost:4201",
        "http://localhost:4202",
    ]

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()
