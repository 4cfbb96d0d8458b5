from __future__ import annotations

import json
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from opsdesk.core.config import Settings
from opsdesk.core.storage.api_repo import ApiClient

Handler = Callable[[httpx.Request], httpx.Response]


class FakeApi:
    """Routes (méthode, chemin) -> réponse ; garde la trace des requêtes reçues."""

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Any] = {}
        self.calls: List[httpx.Request] = []

    def on(self, method: str, path: str, body: Any = None, status: int = 200,
           handler: Optional[Handler] = None) -> None:
        self.routes[(method.upper(), path)] = handler or (status, body)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        key = (request.method, request.url.path)
        route = self.routes.get(key)
        if route is None:
            return httpx.Response(404, json={"message": f"No route {key}"})
        if callable(route):
            return route(request)
        status, body = route
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)

    def calls_to(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    @staticmethod
    def json_of(request: httpx.Request) -> Any:
        return json.loads(request.content or b"null")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("OPSDESK_API_URL", "OPSDESK_TIMEOUT", "OPSDESK_DATA_DIR", "OPSDESK_PAGE_SIZE",
                 "OPSDESK_CATALOG_PAGE_SIZE", "OPSDESK_CURRENCY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(api_url="http://api.test/api", data_dir=tmp_path)


@pytest.fixture
def fake_api() -> FakeApi:
    return FakeApi()


@pytest.fixture
def client(settings, fake_api):
    c = ApiClient(settings, transport=httpx.MockTransport(fake_api))
    yield c
    c.close()
