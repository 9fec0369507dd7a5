"""Export pipeline: list, resolve cross-references, flatten, write."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Literal, Protocol

import structlog

from .config import ExportConfig
from .engine import CancelToken, ConcurrentFetcher, PageAggregator, collect_unique, index_by
from .exporter import FileExporter
from .models import Instrument, Market, Order, Position

ExportKind = Literal["positions", "orders"]
EXPORT_KINDS: tuple[str, ...] = ("positions", "orders")


class Client(Protocol):
    def list_positions(self, token: CancelToken, cursor: str) -> tuple[list[Position], str]: ...

    def list_orders(self, token: CancelToken, cursor: str) -> tuple[list[Order], str]: ...

    def get_instrument(self, token: CancelToken, instrument_id: str) -> Instrument: ...

    def get_market(self, token: CancelToken, market_id: str) -> Market: ...


def instrument_ids(records: Iterable[Position | Order]) -> list[str]:
    return collect_unique(records, lambda record: record.instrument)


def market_ids(instruments: Iterable[Instrument]) -> list[str]:
    return collect_unique(instruments, lambda instrument: instrument.market)


def load_instruments(
    client: Client, fetcher: ConcurrentFetcher, ids: list[str], token: CancelToken | None = None
) -> list[Instrument]:
    return fetcher.fetch_all(ids, client.get_instrument, token)


def load_markets(
    client: Client, fetcher: ConcurrentFetcher, ids: list[str], token: CancelToken | None = None
) -> list[Market]:
    return fetcher.fetch_all(ids, client.get_market, token)


def instruments_by_url(instruments: Iterable[Instrument]) -> dict[str, Instrument]:
    return index_by(instruments, lambda instrument: instrument.url)


def markets_by_url(markets: Iterable[Market]) -> dict[str, Market]:
    return index_by(markets, lambda market: market.url)


def _decimal_text(value: Decimal | None) -> str:
    return "" if value is None else format(value, "f")


@dataclass(slots=True)
class ExportSummary:
    kind: str
    rows: int
    path: Path


class Exporter:
    """Central coordinator turning API listings into flat export rows."""

    def __init__(
        self,
        client: Client,
        config: ExportConfig,
        fetcher: ConcurrentFetcher | None = None,
        logger: structlog.BoundLogger | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.fetcher = fetcher or ConcurrentFetcher(config.max_concurrency, name="details")
        self.logger = logger or structlog.get_logger("robinhood_export").bind(component="pipeline")
        self._pages = PageAggregator()

    # ------------------------------------------------------------------
    def collect_positions(self, token: CancelToken | None = None) -> list[dict]:
        token = token or CancelToken()
        positions: list[Position] = self._pages.aggregate(self.client.list_positions, token)
        listed = len(positions)
        if not self.config.include_closed_positions:
            positions = [position for position in positions if position.is_open]
        self.logger.info("positions_listed", listed=listed, kept=len(positions))
        instruments, markets = self._resolve(positions, token)

        rows = []
        for position in positions:
            instrument = instruments[position.instrument]
            market = markets[instrument.market]
            rows.append(
                {
                    "symbol": instrument.symbol,
                    "name": instrument.display_name,
                    "quantity": _decimal_text(position.quantity),
                    "average_buy_price": _decimal_text(position.average_buy_price),
                    "market": market.acronym,
                    "mic": market.mic,
                    "instrument_url": instrument.url,
                }
            )
        return rows

    def collect_orders(self, token: CancelToken | None = None) -> list[dict]:
        token = token or CancelToken()
        orders: list[Order] = self._pages.aggregate(self.client.list_orders, token)
        self.logger.info("orders_listed", listed=len(orders))
        instruments, markets = self._resolve(orders, token)

        rows = []
        for order in orders:
            instrument = instruments[order.instrument]
            market = markets[instrument.market]
            rows.append(
                {
                    "created_at": order.created_at.isoformat(),
                    "symbol": instrument.symbol,
                    "side": order.side,
                    "type": order.type,
                    "state": order.state,
                    "quantity": _decimal_text(order.quantity),
                    "price": _decimal_text(order.price),
                    "average_price": _decimal_text(order.average_price),
                    "market": market.acronym,
                    "order_id": order.id,
                }
            )
        return rows

    def export(
        self,
        kind: ExportKind,
        output_dir: Path,
        fmt: str | None = None,
        run_tag: str | None = None,
        token: CancelToken | None = None,
    ) -> ExportSummary:
        if kind == "positions":
            rows = self.collect_positions(token)
        elif kind == "orders":
            rows = self.collect_orders(token)
        else:
            raise ValueError(f"Unknown export kind: {kind}")

        run_tag = run_tag or datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        exporter = FileExporter(output_dir, kind, fmt or self.config.output_format, run_tag=run_tag)
        try:
            count = exporter.export_many(rows)
            exporter.flush()
        finally:
            exporter.close()
        self.logger.info("export_written", kind=kind, rows=count, path=str(exporter.path))
        return ExportSummary(kind=kind, rows=count, path=exporter.path)

    # ------------------------------------------------------------------
    def _resolve(
        self, records: list[Position] | list[Order], token: CancelToken
    ) -> tuple[dict[str, Instrument], dict[str, Market]]:
        """Fetch the instruments referenced by ``records`` and their markets."""

        instruments = load_instruments(self.client, self.fetcher, instrument_ids(records), token)
        markets = load_markets(self.client, self.fetcher, market_ids(instruments), token)
        self.logger.debug("references_resolved", instruments=len(instruments), markets=len(markets))
        return instruments_by_url(instruments), markets_by_url(markets)


__all__ = [
    "EXPORT_KINDS",
    "ExportSummary",
    "Exporter",
    "instrument_ids",
    "instruments_by_url",
    "load_instruments",
    "load_markets",
    "market_ids",
    "markets_by_url",
]
