from __future__ import annotations

import httpx
import pytest

from robinhood_export.api import RobinhoodClient
from robinhood_export.config import ApiConfig
from robinhood_export.engine import CancelToken, aggregate
from robinhood_export.errors import ApiError, FetchCancelled

API = "https://api.robinhood.com"

INSTRUMENT = {
    "url": f"{API}/instruments/aapl/",
    "id": "aapl",
    "symbol": "AAPL",
    "name": "Apple Inc. Common Stock",
    "simple_name": "Apple",
    "market": f"{API}/markets/XNAS/",
    "tradeable": True,
    "country": "US",
}


def make_client(handler, **config) -> RobinhoodClient:
    return RobinhoodClient(ApiConfig(**config), transport=httpx.MockTransport(handler))


def test_list_page_follows_next_url() -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        if "cursor" in request.url.params:
            return httpx.Response(200, json={"results": [{"n": 2}], "next": None})
        return httpx.Response(200, json={"results": [{"n": 1}], "next": f"{API}/positions/?cursor=abc"})

    with make_client(handler) as client:
        items = aggregate(lambda token, cursor: client.list_page(token, "/positions/", cursor))
    assert items == [{"n": 1}, {"n": 2}]
    assert requested == [f"{API}/positions/", f"{API}/positions/?cursor=abc"]


def test_bearer_token_header_is_sent() -> None:
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(request.headers)
        return httpx.Response(200, json=INSTRUMENT)

    with make_client(handler, access_token="secret-token", user_agent="exporter/1") as client:
        client.get_instrument(CancelToken(), "aapl")
    assert seen["authorization"] == "Bearer secret-token"
    assert seen["user-agent"] == "exporter/1"


@pytest.mark.parametrize(
    ("identifier", "expected"),
    [
        ("aapl", f"{API}/instruments/aapl/"),
        (f"{API}/instruments/aapl/", f"{API}/instruments/aapl/"),
    ],
)
def test_get_instrument_accepts_id_or_url(identifier: str, expected: str) -> None:
    requested: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(str(request.url))
        return httpx.Response(200, json=INSTRUMENT)

    with make_client(handler) as client:
        instrument = client.get_instrument(CancelToken(), identifier)
    assert requested == [expected]
    assert instrument.symbol == "AAPL"
    assert instrument.display_name == "Apple"


def test_get_market_parses_record() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/markets/XNAS/"
        return httpx.Response(
            200, json={"url": f"{API}/markets/XNAS/", "mic": "XNAS", "acronym": "NASDAQ", "name": "Nasdaq"}
        )

    with make_client(handler) as client:
        market = client.get_market(CancelToken(), "XNAS")
    assert market.acronym == "NASDAQ"


def test_failure_status_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"detail": "Not found."})

    with make_client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.get_market(CancelToken(), "NOPE")
    assert excinfo.value.status_code == 404
    assert "404" in str(excinfo.value)


def test_transport_error_is_chained() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with make_client(handler) as client:
        with pytest.raises(ApiError) as excinfo:
            client.get(CancelToken(), "/positions/")
    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)


def test_malformed_record_raises_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"results": [{"url": "x"}], "next": None})

    with make_client(handler) as client:
        with pytest.raises(ApiError, match="Malformed Position"):
            client.list_positions(CancelToken(), "")


def test_cancelled_token_skips_request() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=INSTRUMENT)

    token = CancelToken()
    token.cancel()
    with make_client(handler) as client:
        with pytest.raises(FetchCancelled):
            client.get_instrument(token, "aapl")
    assert calls == []
