"""Pydantic records returned by the Robinhood REST API."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Instrument(_Record):
    url: str
    id: str
    symbol: str
    name: str = ""
    simple_name: str | None = None
    market: str
    type: str | None = None
    tradeable: bool = True

    @property
    def display_name(self) -> str:
        return self.simple_name or self.name


class Market(_Record):
    url: str
    mic: str
    acronym: str = ""
    name: str = ""
    country: str | None = None
    timezone: str | None = None


class Position(_Record):
    url: str
    instrument: str
    quantity: Decimal
    average_buy_price: Decimal = Decimal("0")

    @property
    def is_open(self) -> bool:
        return self.quantity != 0


class Order(_Record):
    id: str
    url: str
    instrument: str
    side: str
    type: str = ""
    state: str = ""
    quantity: Decimal
    price: Decimal | None = None
    average_price: Decimal | None = None
    created_at: datetime


__all__ = ["Instrument", "Market", "Order", "Position"]
