"""
CoinGecko simple-price client.
"""

from typing import Dict, List, Optional

import requests

from .base_client import APIError, BaseClient, DEFAULT_TIMEOUT

BASE_URL = "https://api.coingecko.com/api/v3"


class CoinGeckoClient(BaseClient):
    """Batched USD quotes keyed by CoinGecko coin id."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, session: Optional[requests.Session] = None,
                 base_url: str = BASE_URL):
        super().__init__(
            "coingecko",
            base_url,
            timeout=timeout,
            session=session,
            retry_total=2,
            headers={"Accept": "application/json"},
        )

    def get_simple_prices(self, coin_ids: List[str], vs_currency: str = "usd") -> Dict[str, float]:
        """
        Fetch prices for all coin ids in one request.

        Returns:
            Mapping of coin id to positive price; ids without a usable quote are omitted

        Raises:
            IntegrationError: If the request fails or the payload is not an object
        """
        unique_ids = list(dict.fromkeys(coin_id for coin_id in coin_ids if coin_id))
        if not unique_ids:
            return {}

        data = self.get_json(
            "/simple/price",
            params={"ids": ",".join(unique_ids), "vs_currencies": vs_currency},
        )
        if not isinstance(data, dict):
            raise APIError("coingecko returned an unexpected payload")

        prices = {}
        for coin_id in unique_ids:
            quote = data.get(coin_id)
            if not isinstance(quote, dict):
                continue
            price = quote.get(vs_currency)
            if isinstance(price, (int, float)) and not isinstance(price, bool) and price > 0:
                prices[coin_id] = float(price)
            else:
                self.logger.debug(f"No usable {vs_currency} quote for {coin_id}: {price!r}")

        self.logger.info(f"Fetched {len(prices)}/{len(unique_ids)} crypto prices")
        return prices
