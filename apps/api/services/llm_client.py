from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any

import httpx

from packages.shared.schemas.chat import ProviderOutcome
from packages.shared.schemas.common import ProviderName

from .prompt_service import PROBE_PROMPT, PromptService

logger = logging.getLogger(__name__)

CLAUDE_API_URL = "https://api.anthropic.com/v1/messages"
CLAUDE_API_VERSION = "2023-06-01"
GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"

DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash-latest"

# Errores al construir o enviar el request: transporte, URL mal formada, cabecera no ASCII.
_SEND_ERRORS = (httpx.RequestError, httpx.InvalidURL, ValueError)


@dataclass(slots=True, frozen=True)
class ProviderConfig:
    claude_api_key: str = ""
    gemini_api_key: str = ""
    claude_model: str = DEFAULT_CLAUDE_MODEL
    gemini_model: str = DEFAULT_GEMINI_MODEL
    claude_api_url: str = CLAUDE_API_URL
    gemini_api_base: str = GEMINI_API_BASE
    max_tokens: int = 100
    probe_max_tokens: int = 10
    temperature: float = 0.9
    timeout_s: float = 60.0

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        return cls(
            claude_api_key=os.getenv("CLAUDE_API_KEY", ""),
            gemini_api_key=os.getenv("GEMINI_API_KEY", ""),
            claude_model=os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
            claude_api_url=os.getenv("CLAUDE_API_URL", CLAUDE_API_URL),
            gemini_api_base=os.getenv("GEMINI_API_BASE", GEMINI_API_BASE),
            timeout_s=float(os.getenv("PROVIDER_TIMEOUT_S", "60")),
        )


class LLMClient:
    """Cliente HTTP de un proveedor.

    Las subclases solo describen el request (url, headers, payload) y dónde
    está el texto en la respuesta. La clasificación del resultado es común:
    sin credencial / fallo de transporte / status != 2xx / cuerpo inválido / ok.
    """

    name: ProviderName
    label: str

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        max_tokens: int = 100,
        probe_max_tokens: int = 10,
        timeout_s: float | None = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._max_tokens = max_tokens
        self._probe_max_tokens = probe_max_tokens
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    # --- a implementar por proveedor ---
    def _url(self) -> str:
        raise NotImplementedError

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    def _params(self) -> dict[str, str] | None:
        return None

    def _generate_payload(self, *, system: str, user: str) -> dict[str, Any]:
        raise NotImplementedError

    def _probe_payload(self) -> dict[str, Any]:
        raise NotImplementedError

    def _extract_text(self, data: Any) -> str | None:
        raise NotImplementedError

    # --- API pública ---
    async def generate(self, *, system: str, user: str) -> ProviderOutcome:
        if not self.configured:
            return ProviderOutcome.failed(f"{self.label} key not configured")

        try:
            resp = await self._post(self._generate_payload(system=system, user=user))
        except _SEND_ERRORS as e:
            logger.warning("%s call failed: %r", self.label, e)
            return ProviderOutcome.failed(f"Failed to connect to {self.label}")

        if not resp.is_success:
            logger.warning("%s error: %s %s", self.label, resp.status_code, resp.text[:500])
            return ProviderOutcome.failed(f"{self.label} error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            data = None

        text = (self._extract_text(data) or "").strip()
        if not text:
            return ProviderOutcome.failed(f"Invalid response from {self.label}")

        return ProviderOutcome.ok(text)

    async def probe(self) -> bool:
        if not self.configured:
            return False

        try:
            resp = await self._post(self._probe_payload())
        except _SEND_ERRORS as e:
            logger.warning("%s health check failed: %r", self.label, e)
            return False

        return resp.status_code == 200

    async def _post(self, payload: dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport) as client:
            return await client.post(self._url(), headers=self._headers(), params=self._params(), json=payload)


class ClaudeClient(LLMClient):
    name = ProviderName.claude
    label = "Claude API"

    def __init__(self, *, api_url: str = CLAUDE_API_URL, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._api_url = api_url

    def _url(self) -> str:
        return self._api_url

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": CLAUDE_API_VERSION,
        }

    def _generate_payload(self, *, system: str, user: str) -> dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": user}],
        }

    def _probe_payload(self) -> dict[str, Any]:
        return {
            "model": self._model,
            "max_tokens": self._probe_max_tokens,
            "messages": [{"role": "user", "content": PROBE_PROMPT}],
        }

    def _extract_text(self, data: Any) -> str | None:
        # { content: [ { type: "text", text: "..." } ] }
        try:
            text = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None


class GeminiClient(LLMClient):
    name = ProviderName.gemini
    label = "Gemini API"

    def __init__(
        self,
        *,
        api_base: str = GEMINI_API_BASE,
        temperature: float = 0.9,
        prompts: PromptService | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._api_base = api_base.rstrip("/")
        self._temperature = temperature
        self._prompts = prompts or PromptService()

    def _url(self) -> str:
        return f"{self._api_base}/{self._model}:generateContent"

    def _params(self) -> dict[str, str] | None:
        # Gemini recibe la credencial como parámetro de URL.
        return {"key": self._api_key}

    def _generate_payload(self, *, system: str, user: str) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": self._prompts.inline(system=system, user=user)}]}],
            "generationConfig": {
                "maxOutputTokens": self._max_tokens,
                "temperature": self._temperature,
            },
        }

    def _probe_payload(self) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": PROBE_PROMPT}]}],
            "generationConfig": {"maxOutputTokens": self._probe_max_tokens},
        }

    def _extract_text(self, data: Any) -> str | None:
        # { candidates: [ { content: { parts: [ { text: "..." } ] } } ] }
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            return None
        return text if isinstance(text, str) else None


def build_clients(
    cfg: ProviderConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[ClaudeClient, GeminiClient]:
    cfg = cfg or ProviderConfig.from_env()
    common: dict[str, Any] = {
        "max_tokens": cfg.max_tokens,
        "probe_max_tokens": cfg.probe_max_tokens,
        "timeout_s": cfg.timeout_s,
        "transport": transport,
    }
    claude = ClaudeClient(
        api_key=cfg.claude_api_key,
        model=cfg.claude_model,
        api_url=cfg.claude_api_url,
        **common,
    )
    gemini = GeminiClient(
        api_key=cfg.gemini_api_key,
        model=cfg.gemini_model,
        api_base=cfg.gemini_api_base,
        temperature=cfg.temperature,
        **common,
    )
    return claude, gemini
