"""
tezedge_stacks.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for the CLI, API and services.
- Hide secrets from repr/logging (e.g., JWT secret).
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Tool settings only. Values interpolated into the compose descriptors
    (TEZOS_NETWORK, NODE_HOSTNAME_OR_IP, ...) are read from the process
    environment and `env_file`, exactly like `docker compose` does.
    """

    model_config = SettingsConfigDict(env_prefix="TZS_", case_sensitive=False)

    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "tezedge-stacks"
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "json"

    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Auth
    jwt_alg: str = "HS256"
    jwt_issuer: str = "tezedge-stacks"
    jwt_audience: str = "tezedge-stacks-api"
    jwt_secret: str = Field(default="dev-secret-change-me", repr=False)

    # Persistence (deployment event log)
    database_url: str = "sqlite+aiosqlite:///./tezedge_stacks.db"

    # Compose runtime
    docker_binary: str = "docker"
    compose_project_prefix: str = "tezedge"
    output_dir: str = "./deploy"
    env_file: str | None = ".env"
    compose_timeout_s: float = 600.0

    # Readiness probes
    probe_host: str = "localhost"
    probe_timeout_s: float = 3.0
    probe_interval_s: float = 2.0
    startup_deadline_s: float = 120.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Every other module depends on this one; keep field names stable since they are
# part of the operator-facing environment contract (TZS_*).
