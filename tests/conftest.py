"""Pytest configuration and fixtures for indieauth-client tests."""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from indieauth_client import ClientConfig, IndieAuthClient


class FakeWeb:
    """Serves canned responses through an httpx.MockTransport and records requests."""

    def __init__(self):
        self.routes: Dict[tuple, Any] = {}
        self.requests: List[httpx.Request] = []

    def add(
        self,
        method: str,
        url: str,
        status_code: int = 200,
        headers: Optional[Dict[str, Any]] = None,
        text: str = "",
        json_data: Any = None,
    ):
        if json_data is not None:
            text = json.dumps(json_data)
            headers = {"Content-Type": "application/json", **(headers or {})}
        self.routes[(method, url)] = (status_code, headers or {}, text)

    def add_page(self, url: str, html: str = "", links: Optional[List[str]] = None):
        """Serve a profile page for both HEAD and GET."""
        headers = [("Link", link) for link in links or []]
        self.routes[("HEAD", url)] = (200, headers, "")
        self.routes[("GET", url)] = (200, headers, html)

    def add_handler(self, method: str, url: str, handler):
        self.routes[(method, url)] = handler

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, text="Not Found")
        if callable(route):
            return route(request)
        status_code, headers, text = route
        return httpx.Response(status_code, headers=headers, text=text)

    def client(self) -> httpx.Client:
        return httpx.Client(
            transport=httpx.MockTransport(self.handler), follow_redirects=True
        )

    def calls(self, method: str, url: Optional[str] = None) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and (url is None or str(r.url) == url)
        ]

    @staticmethod
    def form(request: httpx.Request) -> Dict[str, str]:
        return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture
def fake_web() -> FakeWeb:
    """Return an empty fake web."""
    return FakeWeb()


@pytest.fixture
def client_config() -> ClientConfig:
    """Return a fully configured client config."""
    return ClientConfig(
        client_id="https://app.example.org/",
        redirect_uri="https://app.example.org/callback",
    )


@pytest.fixture
def auth_client(fake_web, client_config) -> IndieAuthClient:
    """Return a client whose HTTP requests go to the fake web."""
    return IndieAuthClient(config=client_config, http_client=fake_web.client())


@pytest.fixture
def session() -> Dict[str, Any]:
    """Return an empty session mapping."""
    return {}


@pytest.fixture
def sample_metadata() -> Dict[str, Any]:
    """Return a sample IndieAuth server metadata document."""
    return {
        "issuer": "https://example.com/",
        "authorization_endpoint": "https://example.com/auth",
        "token_endpoint": "https://example.com/token",
        "revocation_endpoint": "https://example.com/revoke",
        "code_challenge_methods_supported": ["S256"],
    }
