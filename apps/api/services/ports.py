from __future__ import annotations

from typing import Protocol

from packages.shared.schemas.chat import ProviderOutcome
from packages.shared.schemas.common import ProviderName


class ProviderClient(Protocol):
    name: ProviderName

    @property
    def configured(self) -> bool:
        ...

    async def generate(self, *, system: str, user: str) -> ProviderOutcome:
        """Nunca lanza por errores esperados: los normaliza en ProviderOutcome."""
        ...

    async def probe(self) -> bool:
        """True solo si una llamada mínima devuelve exactamente HTTP 200."""
        ...


class FeedbackStore(Protocol):
    """Almacén clave/valor externo. Cada operación es atómica por sí sola."""

    async def append(self, key: str, value: str) -> None:
        """Añade al log ordenado bajo `key` (más reciente primero)."""
        ...

    async def expire(self, key: str, ttl_s: int) -> None:
        """(Re)programa la expiración de `key` a ahora + ttl_s."""
        ...

    async def incr(self, name: str) -> int:
        """Incrementa el contador `name` (crea en 0 si no existe). Devuelve el nuevo valor."""
        ...

    async def health(self) -> bool:
        ...
