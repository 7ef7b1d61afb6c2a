"""Shared fixtures for the dad jokes server tests."""

from __future__ import annotations

import random
from typing import Any, Callable

import pytest
from fastapi.testclient import TestClient

from dadjokes.catalog import build_catalog
from dadjokes.jokes import JokeProvider
from dadjokes.main import create_app
from dadjokes.mcp.dispatcher import Dispatcher, ServerInfo
from dadjokes.settings import ServerSettings, Settings, WidgetSettings


class SpyProvider(JokeProvider):
    """Provider that records every access to the corpus."""

    def __init__(self, jokes, **kwargs):
        super().__init__(jokes, **kwargs)
        self.get_calls: list[int] = []
        self.random_calls = 0

    def get(self, index: int) -> str:
        self.get_calls.append(index)
        return super().get(index)

    def random(self) -> str:
        self.random_calls += 1
        return super().random()


@pytest.fixture
def provider() -> SpyProvider:
    return SpyProvider(["a", "b", "c"], rng=random.Random(7))


@pytest.fixture
def registry(provider):
    return build_catalog(provider)


@pytest.fixture
def dispatcher(registry) -> Dispatcher:
    return Dispatcher(registry, ServerInfo(name="dadjokes", version="1.0.0"))


def make_settings(**server_overrides: Any) -> Settings:
    server = {
        "name": "dadjokes",
        "version": "1.0.0",
        "host": "127.0.0.1",
        "port": 3000,
        "mcp_path": "/mcp",
        "json_response": True,
        "cors_allow_origins": ("*",),
    }
    server.update(server_overrides)
    return Settings(
        server=ServerSettings(**server),
        widget=WidgetSettings(
            uri="ui://widget/joke4.html",
            signal_mode="immediate",
            fallback_text="Wait for it...",
        ),
    )


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    return make_settings


@pytest.fixture
def client(settings, provider) -> TestClient:
    return TestClient(create_app(settings, provider=provider))


@pytest.fixture
def rpc() -> Callable[..., dict[str, Any]]:
    def _build(method: str, params: dict[str, Any] | None = None, id: Any = 1) -> dict[str, Any]:
        envelope: dict[str, Any] = {"jsonrpc": "2.0", "id": id, "method": method}
        if params is not None:
            envelope["params"] = params
        return envelope

    return _build
