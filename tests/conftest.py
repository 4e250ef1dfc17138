import pytest

from packages.shared.schemas.chat import ProviderOutcome
from packages.shared.schemas.common import ProviderName


class _FakeProvider:
    def __init__(
        self,
        name: ProviderName,
        *,
        outcome: ProviderOutcome | None = None,
        error: Exception | None = None,
        working: bool = True,
        configured: bool = True,
    ):
        self.name = name
        self.configured = configured
        self._outcome = outcome or ProviderOutcome.ok(f"{name.value}-ok")
        self._error = error
        self._working = working
        self.calls: list[tuple[str, str]] = []
        self.probes = 0

    async def generate(self, *, system: str, user: str) -> ProviderOutcome:
        self.calls.append((system, user))
        if self._error is not None:
            raise self._error
        return self._outcome

    async def probe(self) -> bool:
        self.probes += 1
        if self._error is not None:
            raise self._error
        return self._working


@pytest.fixture
def make_provider():
    def _make(name: str, **kwargs) -> _FakeProvider:
        return _FakeProvider(ProviderName(name), **kwargs)

    return _make


@pytest.fixture
def no_provider_keys(monkeypatch):
    for var in ("CLAUDE_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(var, raising=False)
