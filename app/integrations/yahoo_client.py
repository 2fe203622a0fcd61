"""
Yahoo Finance chart client for stock quotes.

Requests can optionally be relayed through an allorigins-style proxy, which
wraps the upstream body as a JSON string in its ``contents`` field.
"""

import json
from typing import Any, Optional
from urllib.parse import quote

import requests

from .base_client import APIError, BaseClient, DEFAULT_TIMEOUT, NotFoundError

BASE_URL = "https://query1.finance.yahoo.com"
USER_AGENT = "Mozilla/5.0 (compatible; SmartWealth/1.0)"


class YahooFinanceClient(BaseClient):
    """Per-ticker regular market price lookups."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None,
                 proxy_url: Optional[str] = None, base_url: str = BASE_URL):
        super().__init__(
            "yahoo",
            base_url,
            timeout=timeout,
            session=session,
            retry_total=1,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        )
        self.proxy_url = proxy_url or None

    def chart_url(self, ticker: str) -> str:
        return f"{self.base_url}/v8/finance/chart/{quote(ticker, safe='')}?interval=1d&range=1d"

    def _fetch_chart(self, ticker: str) -> Any:
        url = self.chart_url(ticker)
        if not self.proxy_url:
            return self.get_json(url)

        wrapper = self.get_json(f"{self.proxy_url}{quote(url, safe='')}")
        contents = wrapper.get("contents") if isinstance(wrapper, dict) else None
        if isinstance(contents, dict):
            return contents
        if not isinstance(contents, str) or not contents.strip():
            raise APIError(f"proxy returned no contents for {ticker}")
        try:
            return json.loads(contents)
        except ValueError as e:
            raise APIError(f"proxy contents for {ticker} are not JSON: {e}")

    def get_regular_market_price(self, ticker: str) -> float:
        """
        Fetch the regular market price for a ticker.

        Raises:
            NotFoundError: If Yahoo has no positive price for the ticker
            IntegrationError: For request or payload failures
        """
        data = self._fetch_chart(ticker)
        try:
            meta = data["chart"]["result"][0]["meta"]
            price = meta["regularMarketPrice"]
        except (KeyError, IndexError, TypeError):
            raise NotFoundError(f"no quote for {ticker}")

        if isinstance(price, bool) or not isinstance(price, (int, float)) or price <= 0:
            raise NotFoundError(f"no positive price for {ticker}: {price!r}")

        return float(price)
