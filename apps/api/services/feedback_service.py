import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import uuid4

from packages.shared.schemas.common import isoformat_z, utcnow
from packages.shared.schemas.feedback import (
    MAX_RESPONSE_CHARS,
    MAX_USER_MESSAGE_CHARS,
    NEUTRAL_RATING,
    FeedbackRecord,
    FeedbackRequest,
)

from .observability import get_meter, get_tracer
from .ports import FeedbackStore

logger = logging.getLogger(__name__)

UNKNOWN_SESSION = "unknown"


@dataclass(slots=True, frozen=True)
class FeedbackKeys:
    log_key: str = "feedback"
    ttl_s: int = 60 * 60 * 24 * 30
    prefix: str = "analytics:"

    def counters_for(self, rating: int) -> list[str]:
        """Contadores a incrementar para un rating: total, por rating y bucket de preferencia."""
        if rating < NEUTRAL_RATING:
            bucket = "prefer_claude"
        elif rating > NEUTRAL_RATING:
            bucket = "prefer_gemini"
        else:
            bucket = "neutral"
        return [
            f"{self.prefix}total_feedback",
            f"{self.prefix}rating_{rating}",
            f"{self.prefix}{bucket}",
        ]


def _truncate(value: str | None, limit: int) -> str | None:
    # Vacío o ausente se guarda como null, no como "".
    if not value:
        return None
    return value[:limit]


class FeedbackService:
    def __init__(
        self,
        *,
        store: FeedbackStore,
        keys: FeedbackKeys = FeedbackKeys(),
        id_factory: Callable[[], str] = lambda: uuid4().hex,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._keys = keys
        self._id_factory = id_factory
        self._clock = clock

        self._tracer = get_tracer("apps.api.feedback")
        self._meter = get_meter("apps.api.feedback")

        self._records = self._meter.create_counter(
            "feedback_records_total",
            description="Feedback aceptado por rating",
        )
        self._store_errors = self._meter.create_counter(
            "feedback_store_errors_total",
            description="Fallos del store (append/expire/incr), suprimidos",
        )

    def build_record(self, req: FeedbackRequest, *, session_id: str | None) -> FeedbackRecord:
        return FeedbackRecord(
            id=self._id_factory(),
            timestamp=isoformat_z(self._clock()),
            user_message=req.user_message[:MAX_USER_MESSAGE_CHARS],
            claude_response=_truncate(req.claude_response, MAX_RESPONSE_CHARS),
            gemini_response=_truncate(req.gemini_response, MAX_RESPONSE_CHARS),
            preference_rating=req.preference_rating,
            session_id=session_id or UNKNOWN_SESSION,
        )

    async def record(self, req: FeedbackRequest, *, session_id: str | None) -> FeedbackRecord:
        """Construye y persiste el registro.

        Los errores del store se registran y se suprimen: el log y cada
        contador fallan de forma independiente y nunca llegan al caller.
        """
        record = self.build_record(req, session_id=session_id)
        attrs = {"feedback.rating": record.preference_rating}
        self._records.add(1, attributes={"rating": record.preference_rating})

        with self._tracer.start_as_current_span("feedback.record", attributes=attrs):
            await self._append(record)
            for name in self._keys.counters_for(record.preference_rating):
                await self._incr(name)

        return record

    async def _append(self, record: FeedbackRecord) -> None:
        with self._tracer.start_as_current_span("feedback.store.append"):
            try:
                await self._store.append(self._keys.log_key, record.model_dump_json())
                await self._store.expire(self._keys.log_key, self._keys.ttl_s)
            except Exception:
                self._store_errors.add(1, attributes={"op": "append"})
                logger.warning(
                    "Feedback storage failed, logging feedback: %s",
                    record.model_dump_json(),
                    exc_info=True,
                )

    async def _incr(self, name: str) -> None:
        try:
            await self._store.incr(name)
        except Exception:
            self._store_errors.add(1, attributes={"op": "incr"})
            logger.warning("Analytics update failed for %s", name, exc_info=True)
