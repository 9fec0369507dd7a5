"""Pytest fixtures shared across the suite."""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Iterable

import pytest

from robinhood_export.config import ConfigLocator, ConfigRepository, ExportConfig
from robinhood_export.engine import CancelToken
from robinhood_export.errors import ApiError
from robinhood_export.models import Instrument, Market, Order, Position

API = "https://api.robinhood.com"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ROBINHOOD_EXPORT_TOKEN", raising=False)
    monkeypatch.delenv("ROBINHOOD_EXPORT_HOME", raising=False)


@pytest.fixture
def temp_config_repository(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterable[ConfigRepository]:
    monkeypatch.setenv("ROBINHOOD_EXPORT_HOME", str(tmp_path))
    yield ConfigRepository(ConfigLocator(project_root=tmp_path))


@pytest.fixture
def sample_config() -> Callable[..., ExportConfig]:
    def _builder(**overrides: Any) -> ExportConfig:
        base: dict[str, Any] = {"max_concurrency": 2, "output_format": "csv"}
        base.update(overrides)
        return ExportConfig(**base)

    return _builder


class FakeClient:
    """In-memory stand-in for ``RobinhoodClient`` with two-page listings."""

    def __init__(self) -> None:
        self.markets = {
            f"{API}/markets/XNAS/": Market(url=f"{API}/markets/XNAS/", mic="XNAS", acronym="NASDAQ"),
            f"{API}/markets/XNYS/": Market(url=f"{API}/markets/XNYS/", mic="XNYS", acronym="NYSE"),
        }
        self.instruments = {
            f"{API}/instruments/aapl/": Instrument(
                url=f"{API}/instruments/aapl/",
                id="aapl",
                symbol="AAPL",
                name="Apple Inc. Common Stock",
                simple_name="Apple",
                market=f"{API}/markets/XNAS/",
            ),
            f"{API}/instruments/msft/": Instrument(
                url=f"{API}/instruments/msft/",
                id="msft",
                symbol="MSFT",
                name="Microsoft",
                market=f"{API}/markets/XNAS/",
            ),
            f"{API}/instruments/ko/": Instrument(
                url=f"{API}/instruments/ko/",
                id="ko",
                symbol="KO",
                name="Coca-Cola",
                market=f"{API}/markets/XNYS/",
            ),
        }
        self.position_pages = {
            "": (
                [
                    _position("aapl", "10", "150.5"),
                    _position("msft", "0", "0"),
                ],
                "page-2",
            ),
            "page-2": ([_position("ko", "3.5", "61")], ""),
        }
        self.order_pages = {
            "": (
                [
                    _order("o1", "aapl", "buy", "2"),
                    _order("o2", "ko", "sell", "1"),
                    _order("o3", "aapl", "buy", "1"),
                ],
                "",
            ),
        }
        self.instrument_calls: list[str] = []
        self.market_calls: list[str] = []
        self.fail_instrument: str | None = None

    def list_positions(self, token: CancelToken, cursor: str) -> tuple[list[Position], str]:
        return self.position_pages[cursor]

    def list_orders(self, token: CancelToken, cursor: str) -> tuple[list[Order], str]:
        return self.order_pages[cursor]

    def get_instrument(self, token: CancelToken, instrument_id: str) -> Instrument:
        self.instrument_calls.append(instrument_id)
        if instrument_id == self.fail_instrument:
            raise ApiError("Unexpected response", status_code=500, url=instrument_id)
        return self.instruments[instrument_id]

    def get_market(self, token: CancelToken, market_id: str) -> Market:
        self.market_calls.append(market_id)
        return self.markets[market_id]


def _position(instrument: str, quantity: str, price: str) -> Position:
    return Position(
        url=f"{API}/positions/acc/{instrument}/",
        instrument=f"{API}/instruments/{instrument}/",
        quantity=Decimal(quantity),
        average_buy_price=Decimal(price),
    )


def _order(order_id: str, instrument: str, side: str, quantity: str) -> Order:
    return Order(
        id=order_id,
        url=f"{API}/orders/{order_id}/",
        instrument=f"{API}/instruments/{instrument}/",
        side=side,
        type="market",
        state="filled",
        quantity=Decimal(quantity),
        average_price=Decimal("100.25"),
        created_at="2024-03-01T15:30:00Z",
    )


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()
