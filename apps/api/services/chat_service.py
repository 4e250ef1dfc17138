import asyncio
import logging
import time
from typing import Any

from packages.shared.schemas.chat import ChatRequest, ChatResponse, ProviderOutcome

from .observability import get_meter, get_tracer
from .ports import ProviderClient
from .prompt_service import PromptService

logger = logging.getLogger(__name__)


def settle(label: str, result: Any) -> ProviderOutcome:
    """Convierte el resultado de una rama de gather(return_exceptions=True) en ProviderOutcome."""
    if isinstance(result, ProviderOutcome):
        return result
    if isinstance(result, BaseException):
        logger.warning("%s call raised: %r", label, result)
        return ProviderOutcome.failed(str(result) or f"{label} failed")
    return ProviderOutcome.failed(f"Invalid response from {label}")


class ChatService:
    """Envía el mensaje a Claude y Gemini en paralelo y junta ambos resultados.

    Espera a que las dos ramas terminen (settle-all): el fallo de una nunca
    cancela ni afecta a la otra.
    """

    def __init__(
        self,
        *,
        claude: ProviderClient,
        gemini: ProviderClient,
        prompts: PromptService,
    ) -> None:
        self._claude = claude
        self._gemini = gemini
        self._prompts = prompts

        # Observabilidad
        self._tracer = get_tracer("apps.api.chat")
        self._meter = get_meter("apps.api.chat")

        self._chat_requests = self._meter.create_counter(
            "compare_requests_total",
            description="Total de requests de comparación",
        )
        self._provider_outcomes = self._meter.create_counter(
            "provider_outcomes_total",
            description="Resultados por proveedor (success true/false)",
        )
        self._chat_latency_ms = self._meter.create_histogram(
            "compare_latency_ms",
            unit="ms",
            description="Latencia total de compare()",
        )

    async def compare(self, req: ChatRequest) -> ChatResponse:
        t0 = time.perf_counter()
        self._chat_requests.add(1)

        system = self._prompts.system_prompt()

        with self._tracer.start_as_current_span(
            "compare.run", attributes={"chat.message_chars": len(req.message)}
        ) as span:
            claude_res, gemini_res = await asyncio.gather(
                self._generate(self._claude, system=system, user=req.message),
                self._generate(self._gemini, system=system, user=req.message),
                return_exceptions=True,
            )

            res = ChatResponse(
                claude=settle("Claude API", claude_res),
                gemini=settle("Gemini API", gemini_res),
            )

            span.set_attribute("claude.success", res.claude.success)
            span.set_attribute("gemini.success", res.gemini.success)

        # Desde el resultado ya normalizado: incluye las ramas que lanzaron.
        for provider, outcome in (("claude", res.claude), ("gemini", res.gemini)):
            self._provider_outcomes.add(1, attributes={"provider": provider, "success": outcome.success})

        self._chat_latency_ms.record(int((time.perf_counter() - t0) * 1000))
        return res

    async def _generate(self, client: ProviderClient, *, system: str, user: str) -> ProviderOutcome:
        provider = str(client.name.value)
        with self._tracer.start_as_current_span(
            "provider.generate",
            attributes={"provider": provider, "provider.configured": bool(client.configured)},
        ) as span:
            outcome = await client.generate(system=system, user=user)
            span.set_attribute("provider.success", outcome.success)

        return outcome
