"""Shared fixtures for the validator tests."""

import json
from pathlib import Path

import httpx
import pytest

from agentmanifest.config import ValidatorConfig
from agentmanifest.credentials import HmacCredentialIssuer
from agentmanifest.probes import ManifestProber
from agentmanifest.validator import ManifestValidator

FIXTURES_DIR = Path(__file__).resolve().parents[2] / "fixtures"

BASE_URL = "https://api.example.com"
MANIFEST_URL = f"{BASE_URL}/.well-known/agent-manifest.json"
TEST_SECRET = "test-secret"


def load_fixture(name: str) -> dict:
    with open(FIXTURES_DIR / name, encoding="utf-8") as f:
        return json.load(f)


class MockSite:
    """Routes (METHOD, url) to canned httpx responses and records requests.

    A route value may be an httpx.Response, an exception instance to raise,
    or a callable taking the request. Unrouted requests get a 404.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, text="not found")
        if isinstance(route, Exception):
            if isinstance(route, httpx.RequestError):
                route.request = request
            raise route
        if callable(route):
            return route(request)
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requested(self, method: str, url: str) -> bool:
        return any(r.method == method and str(r.url) == url for r in self.requests)


@pytest.fixture
def v02_manifest():
    return load_fixture("v02-valid.json")


@pytest.fixture
def v02_prepaid_manifest():
    return load_fixture("v02-prepaid.json")


@pytest.fixture
def v03_free_manifest():
    return load_fixture("v03-free-valid.json")


@pytest.fixture
def v03_paid_manifest():
    return load_fixture("v03-paid-valid.json")


@pytest.fixture
def config():
    return ValidatorConfig(jwt_secret=TEST_SECRET, environment="testing")


@pytest.fixture
def issuer():
    return HmacCredentialIssuer(TEST_SECRET)


@pytest.fixture
def make_validator(config):
    """Build a validator whose probes hit the given MockSite"""

    def _make(site=None, validator_config=None):
        cfg = validator_config or config
        site = site or MockSite()
        prober = ManifestProber.from_config(cfg, transport=site.transport)
        return ManifestValidator(config=cfg, prober=prober)

    return _make
