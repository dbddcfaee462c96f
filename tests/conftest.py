"""Pytest configuration for test discovery and shared fixtures.

This file ensures that:
- `src/` is importable
- tests never pick up a developer's real `conf/secrets.yml`
- polling code can be driven by a fake clock instead of real sleeps
"""

from __future__ import annotations

import sys
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from parasut_mcp.auth import Credentials  # noqa: E402
from parasut_mcp.transport import HttpTransport, TransportConfig  # noqa: E402

BASE_URL = "https://api.parasut.test/v4"
COMPANY_ID = 1001


class FakeClock:
    """Monotonic clock that only advances when ``sleep`` is awaited."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PARASUT_CONFIG_PATH", raising=False)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(
        company_id=COMPANY_ID,
        client_id="client-id",
        client_secret="client-secret",
        username="user@example.com",
        password="hunter2",
        base_url=BASE_URL,
        token_url="https://api.parasut.test/oauth/token",
    )


@pytest_asyncio.fixture
async def transport():
    async with httpx.AsyncClient() as client:
        yield HttpTransport(TransportConfig(base_url=BASE_URL), client=client)


def resource_json(type_: str, id_: int | str, **attributes: object) -> dict[str, object]:
    return {"id": str(id_), "type": type_, "attributes": attributes}


def list_json(
    items: list[dict[str, object]],
    *,
    total_count: int | None = None,
    current_page: int = 1,
    total_pages: int = 1,
    included: list[dict[str, object]] | None = None,
) -> dict[str, object]:
    body: dict[str, object] = {
        "data": items,
        "meta": {
            "total_count": len(items) if total_count is None else total_count,
            "current_page": current_page,
            "total_pages": total_pages,
        },
    }
    if included is not None:
        body["included"] = included
    return body
