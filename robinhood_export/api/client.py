"""Thin httpx client for the Robinhood REST endpoints used by the exporter."""

from __future__ import annotations

from typing import Any, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from ..config import ApiConfig
from ..engine import CancelToken
from ..errors import ApiError
from ..models import Instrument, Market, Order, Position

POSITIONS_PATH = "/positions/"
ORDERS_PATH = "/orders/"
INSTRUMENTS_PATH = "/instruments/"
MARKETS_PATH = "/markets/"

ModelT = TypeVar("ModelT", bound=BaseModel)


class RobinhoodClient:
    """Issue authenticated GET requests and decode paged listings.

    Every call takes the cancellation token of the surrounding batch and refuses to
    start a request once it has fired. Retries are left to the caller.
    """

    def __init__(
        self,
        config: ApiConfig,
        logger: structlog.BoundLogger | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.logger = logger or structlog.get_logger("robinhood_export.api")
        headers = {"Accept": "application/json"}
        if config.access_token:
            headers["Authorization"] = f"Bearer {config.access_token}"
        if config.user_agent:
            headers["User-Agent"] = config.user_agent
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            headers=headers,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RobinhoodClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------
    def get(self, token: CancelToken, url: str) -> dict:
        token.raise_if_cancelled()
        try:
            response = self._client.get(url)
        except httpx.HTTPError as exc:
            self.logger.warning("request_error", url=url, error=str(exc))
            raise ApiError(f"Request failed: {exc}", url=url) from exc
        if self._is_failure(response):
            self.logger.warning("request_failed", url=url, status=response.status_code)
            raise ApiError(
                "Unexpected response", status_code=response.status_code, url=str(response.url)
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise ApiError("Response is not JSON", status_code=response.status_code, url=url) from exc
        if not isinstance(payload, dict):
            raise ApiError("Response is not a JSON object", status_code=response.status_code, url=url)
        return payload

    def list_page(self, token: CancelToken, path: str, cursor: str) -> tuple[list[dict], str]:
        """Fetch one listing page; ``cursor`` is the previous page's ``next`` URL."""

        payload = self.get(token, cursor or path)
        results = payload.get("results") or []
        if not isinstance(results, list):
            raise ApiError("Listing has no results array", url=cursor or path)
        return results, payload.get("next") or ""

    # ------------------------------------------------------------------
    # Typed endpoints
    # ------------------------------------------------------------------
    def list_positions(self, token: CancelToken, cursor: str) -> tuple[list[Position], str]:
        results, next_cursor = self.list_page(token, POSITIONS_PATH, cursor)
        return [_parse(Position, item, cursor or POSITIONS_PATH) for item in results], next_cursor

    def list_orders(self, token: CancelToken, cursor: str) -> tuple[list[Order], str]:
        results, next_cursor = self.list_page(token, ORDERS_PATH, cursor)
        return [_parse(Order, item, cursor or ORDERS_PATH) for item in results], next_cursor

    def get_instrument(self, token: CancelToken, instrument_id: str) -> Instrument:
        url = self._resource_url(INSTRUMENTS_PATH, instrument_id)
        return _parse(Instrument, self.get(token, url), url)

    def get_market(self, token: CancelToken, market_id: str) -> Market:
        url = self._resource_url(MARKETS_PATH, market_id)
        return _parse(Market, self.get(token, url), url)

    @staticmethod
    def _resource_url(collection: str, identifier: str) -> str:
        if identifier.startswith(("http://", "https://")):
            return identifier
        return f"{collection}{identifier.strip('/')}/"

    @staticmethod
    def _is_failure(response: httpx.Response) -> bool:
        return not 200 <= response.status_code < 300


def _parse(model: type[ModelT], payload: Any, url: str) -> ModelT:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise ApiError(f"Malformed {model.__name__} record: {exc.error_count()} error(s)", url=url) from exc


__all__ = ["RobinhoodClient"]
