from __future__ import annotations

import os

import asyncpg
from fastapi import Depends, Header

from apps.api.adapters.memory_feedback_store import InMemoryFeedbackStore
from apps.api.adapters.postgres_feedback_store import PostgresFeedbackStore, apply_schema
from apps.api.services.chat_service import ChatService
from apps.api.services.feedback_service import FeedbackKeys, FeedbackService
from apps.api.services.health_service import HealthService
from apps.api.services.llm_client import ClaudeClient, GeminiClient, ProviderConfig, build_clients
from apps.api.services.observability import setup_observability
from apps.api.services.ports import FeedbackStore
from apps.api.services.prompt_service import PromptService


def setup_app(app) -> None:
    # Observabilidad (OTLP si está configurado por env) + logging
    setup_observability()


def _database_url() -> str:
    return os.getenv("DATABASE_URL", "")


async def get_db_pool() -> asyncpg.Pool:
    # Singleton por proceso. Si create_pool o el esquema fallan, el siguiente intento reintenta.
    if not hasattr(get_db_pool, "_pool"):
        pool = await asyncpg.create_pool(
            dsn=_database_url(),
            min_size=1,
            max_size=10,
        )
        # Una vez por pool: una DB nueva no tiene las tablas kv_*.
        try:
            await apply_schema(pool)
        except Exception:
            await pool.close()
            raise
        get_db_pool._pool = pool  # type: ignore[attr-defined]
    return get_db_pool._pool  # type: ignore[attr-defined]


def get_feedback_store() -> FeedbackStore:
    # Sin DATABASE_URL: store en memoria (DEV), compartido dentro del proceso.
    if _database_url():
        return PostgresFeedbackStore(get_db_pool)
    if not hasattr(get_feedback_store, "_memory"):
        get_feedback_store._memory = InMemoryFeedbackStore()  # type: ignore[attr-defined]
    return get_feedback_store._memory  # type: ignore[attr-defined]


def get_provider_config() -> ProviderConfig:
    # Se resuelve por request: rotar una key en el entorno no requiere reinicio.
    return ProviderConfig.from_env()


def get_providers(cfg: ProviderConfig = Depends(get_provider_config)) -> tuple[ClaudeClient, GeminiClient]:
    return build_clients(cfg)


def get_chat_service(
    providers: tuple[ClaudeClient, GeminiClient] = Depends(get_providers),
) -> ChatService:
    claude, gemini = providers
    return ChatService(claude=claude, gemini=gemini, prompts=PromptService())


def get_feedback_service(store: FeedbackStore = Depends(get_feedback_store)) -> FeedbackService:
    ttl_days = int(os.getenv("FEEDBACK_TTL_DAYS", "30"))
    return FeedbackService(store=store, keys=FeedbackKeys(ttl_s=ttl_days * 24 * 60 * 60))


def get_health_service(
    providers: tuple[ClaudeClient, GeminiClient] = Depends(get_providers),
) -> HealthService:
    claude, gemini = providers
    return HealthService(claude=claude, gemini=gemini)


async def get_session_id(
    x_forwarded_for: str | None = Header(default=None, alias="X-Forwarded-For"),
) -> str | None:
    """Sesión aproximada: la IP reenviada por el proxy (si la hay)."""
    return x_forwarded_for or None
