from datetime import datetime, timezone

import pytest

from apps.api.services.health_service import HealthService


@pytest.mark.asyncio
async def test_probe_reports_each_provider_independently(make_provider):
    claude = make_provider("claude", working=True)
    gemini = make_provider("gemini", error=RuntimeError("dns failure"))
    svc = HealthService(
        claude=claude,
        gemini=gemini,
        clock=lambda: datetime(2024, 5, 6, 7, 8, 9, 123000, tzinfo=timezone.utc),
    )

    res = await svc.probe()

    assert res.claude is True
    assert res.gemini is False
    assert res.timestamp == "2024-05-06T07:08:09.123Z"
    assert claude.probes == 1
    assert gemini.probes == 1


@pytest.mark.asyncio
async def test_probe_not_working_providers(make_provider):
    svc = HealthService(
        claude=make_provider("claude", working=False),
        gemini=make_provider("gemini", working=False),
    )

    res = await svc.probe()

    assert (res.claude, res.gemini) == (False, False)
