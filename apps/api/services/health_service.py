import asyncio
import logging
from datetime import datetime
from typing import Callable

from packages.shared.schemas.common import isoformat_z, utcnow
from packages.shared.schemas.health import ProbeResponse

from .observability import get_tracer
from .ports import ProviderClient

logger = logging.getLogger(__name__)


class HealthService:
    """Comprueba si cada proveedor está configurado y responde (HTTP 200)."""

    def __init__(
        self,
        *,
        claude: ProviderClient,
        gemini: ProviderClient,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._claude = claude
        self._gemini = gemini
        self._clock = clock
        self._tracer = get_tracer("apps.api.health")

    async def probe(self) -> ProbeResponse:
        with self._tracer.start_as_current_span("probe.run") as span:
            claude_ok, gemini_ok = await asyncio.gather(
                self._probe_one(self._claude),
                self._probe_one(self._gemini),
            )
            span.set_attribute("claude.working", claude_ok)
            span.set_attribute("gemini.working", gemini_ok)

        return ProbeResponse(claude=claude_ok, gemini=gemini_ok, timestamp=isoformat_z(self._clock()))

    async def _probe_one(self, client: ProviderClient) -> bool:
        # Un proveedor roto no debe tumbar el probe del otro.
        try:
            return bool(await client.probe())
        except Exception:
            logger.warning("%s health check failed", client.name.value, exc_info=True)
            return False
