import httpx
import pytest
from fastapi.testclient import TestClient
from stockapi.auth import TokenManager
from stockapi.cache import TTLCache
from stockapi.config import Credentials
from stockapi.main import app, get_stock_client
from stockapi.stocks import StockDataClient

BASE_URL = "http://upstream.test/evaluation-service"

CREDS = Credentials(client_id="cid", client_secret="secret", email="dev@example.com",
                    name="Test User", roll_no="R001", access_code="abc123")


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeUpstream:
    """Stands in for the evaluation service; records every request."""

    def __init__(self):
        self.requests = []
        self.directory = {"stocks": {
            "Apple Inc.": "AAPL",
            "Microsoft Corporation": "MSFT",
            "Nvidia Corporation": "NVDA",
            "Tesla, Inc.": "TSLA",
            "PayPal Holdings, Inc.": "PYPL",
            "Amazon.com, Inc.": "AMZN",
        }}
        self.prices = {}
        self.fail = {}
        self.broken = {}
        self.expires_in = 300

    def count(self, path):
        return sum(1 for r in self.requests if self._path(r) == path)

    @staticmethod
    def _path(request):
        return request.url.path[len("/evaluation-service"):]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = self._path(request)
        mode = self.broken.get(path)
        if mode == "connect":
            raise httpx.ConnectError("connection refused", request=request)
        if mode == "garbage":
            return httpx.Response(200, content=b"not json")
        if path in self.fail:
            return httpx.Response(self.fail[path], json={"message": "upstream failure"})
        if path == "/auth":
            n = self.count("/auth")
            return httpx.Response(201, json={"token_type": "Bearer",
                                             "access_token": f"token-{n}",
                                             "expires_in": self.expires_in})
        if not request.headers.get("Authorization", "").startswith("Bearer token-"):
            return httpx.Response(401, json={"message": "unauthorized"})
        if path == "/stocks":
            return httpx.Response(200, json=self.directory)
        ticker = path.rsplit("/", 1)[-1]
        if ticker not in self.prices:
            return httpx.Response(404, json={"message": "unknown ticker"})
        return httpx.Response(200, json=self.prices[ticker])


def points(*prices):
    return [{"price": p, "lastUpdatedAt": f"2025-05-08T04:{i:02d}:00.000000Z"}
            for i, p in enumerate(prices)]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def upstream():
    return FakeUpstream()


def make_client(upstream, clock, credentials=CREDS):
    http = httpx.AsyncClient(base_url=BASE_URL,
                             transport=httpx.MockTransport(upstream.handler))
    tokens = TokenManager(http, credentials, clock=clock)
    return StockDataClient(http, tokens, TTLCache(300, clock=clock))


@pytest.fixture
def stock_client(upstream, clock):
    return make_client(upstream, clock)


@pytest.fixture
def api(stock_client):
    app.dependency_overrides[get_stock_client] = lambda: stock_client
    yield TestClient(app)
    app.dependency_overrides.clear()
