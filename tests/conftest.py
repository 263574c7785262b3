"""Pytest configuration for materials gateway tests.

Provides a fake Materials Project service served through
``httpx.MockTransport`` so no test touches the network.
"""

from __future__ import annotations

import json
from typing import Any, Awaitable, Callable

import httpx
import pytest

from materials_gateway.settings import GatewaySettings

BASE_URL = "https://mp.test/"

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]


class FakeMaterialsProject:
    """Routes upstream requests by path and records every request."""

    def __init__(self) -> None:
        self.routes: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        path: str,
        data: Any = None,
        status: int = 200,
        meta: dict[str, Any] | None = None,
        text: str | None = None,
    ) -> None:
        """Answer `path` with a JSON envelope, or raw text when given."""

        async def handler(request: httpx.Request) -> httpx.Response:
            if text is not None:
                return httpx.Response(status, text=text)
            body: dict[str, Any] = {"data": data if data is not None else []}
            if meta is not None:
                body["meta"] = meta
            return httpx.Response(status, content=json.dumps(body))

        self.routes[path] = handler

    def add_handler(self, path: str, handler: Handler) -> None:
        self.routes[path] = handler

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.lstrip("/")
        handler = self.routes.get(path)
        if handler is None:
            return httpx.Response(404, text=f"no route for {path}")
        return await handler(request)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def paths(self) -> list[str]:
        return [request.url.path.lstrip("/") for request in self.requests]

    def params_for(self, path: str) -> dict[str, str]:
        """Query parameters of the first request made to `path`."""
        for request in self.requests:
            if request.url.path.lstrip("/") == path:
                return dict(request.url.params)
        raise AssertionError(f"no request made to {path}")


@pytest.fixture(autouse=True)
def reset_settings_singleton():
    """Keep the settings singleton from leaking between tests."""
    GatewaySettings.reset_instance()
    yield
    GatewaySettings.reset_instance()


@pytest.fixture
def settings() -> GatewaySettings:
    return GatewaySettings(
        mp_api_key="test-key",
        api_base_url=BASE_URL,
        request_timeout_seconds=5.0,
    )


@pytest.fixture
def settings_without_key() -> GatewaySettings:
    return GatewaySettings(mp_api_key=None, api_base_url=BASE_URL)


@pytest.fixture
def upstream() -> FakeMaterialsProject:
    return FakeMaterialsProject()


@pytest.fixture
def summary_doc() -> dict[str, Any]:
    return {
        "material_id": "mp-19017",
        "formula_pretty": "LiFePO4",
        "elements": ["Fe", "Li", "O", "P"],
        "nelements": 4,
        "nsites": 28,
        "energy_above_hull": 0.0,
        "formation_energy_per_atom": -2.55,
        "band_gap": 3.7,
        "density": 3.5,
        "volume": 300.2,
        "total_magnetization": 16.0,
        "is_stable": True,
        "theoretical": False,
        "has_props": {"elasticity": True, "dielectric": False, "thermo": True},
        "calc_types": {"mp-1234": "GGA+U Structure Optimization"},
        "symmetry": {"crystal_system": "Orthorhombic", "symbol": "Pnma", "number": 62},
        "last_updated": "2023-11-01 12:00:00",
        "unexpected_field": "ignored",
    }
