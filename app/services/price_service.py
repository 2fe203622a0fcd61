"""
Market price enrichment for assets and option underlyings.

Crypto quotes come from one batched CoinGecko request, stock quotes from one
Yahoo request per ticker run concurrently, with an optional Gemini lookup for
whatever Yahoo could not price. Every failure degrades to "no price for that
subset": the public functions never raise.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Optional

from app.integrations.base_client import IntegrationError
from app.integrations.coingecko_client import CoinGeckoClient
from app.integrations.gemini_client import GeminiClient
from app.integrations.yahoo_client import YahooFinanceClient
from app.models.asset import Asset, AssetType
from app.utils.validators import DataValidator

logger = logging.getLogger(__name__)

COINGECKO_IDS: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "USDT": "tether",
    "USDC": "usd-coin",
    "BNB": "binancecoin",
    "DOGE": "dogecoin",
    "XRP": "ripple",
    "ADA": "cardano",
    "AVAX": "avalanche-2",
    "DOT": "polkadot",
    "LINK": "chainlink",
}

MAX_STOCK_WORKERS = 8

TickerClassifier = Callable[[str], AssetType]


def classify_ticker(ticker: str) -> AssetType:
    """Best-effort guess: tickers in the CoinGecko table are crypto, everything else is a stock."""
    return AssetType.CRYPTO if ticker.upper() in COINGECKO_IDS else AssetType.STOCK


def coingecko_id_for(asset: Asset) -> str:
    """Canonical CoinGecko id for an asset, falling back to its lowercased name."""
    ticker = (asset.ticker or asset.name).upper()
    return COINGECKO_IDS.get(ticker) or asset.name.lower()


def match_price_key(assets: Iterable[Asset], returned_ticker: str) -> str:
    """
    Resolve the result key for a ticker returned by a quote source.

    Precedence, all case-insensitive:
      1. an asset whose ticker equals ``returned_ticker``
      2. an asset whose name equals ``returned_ticker``
      3. ``returned_ticker`` itself, so the price is kept even if unattributed
    The key of a matched asset is its ticker, or its name when it has none.
    """
    wanted = returned_ticker.upper()
    assets = list(assets)
    for asset in assets:
        if asset.ticker and asset.ticker.upper() == wanted:
            return asset.display_key
    for asset in assets:
        if asset.name.upper() == wanted:
            return asset.display_key
    return returned_ticker


def lookup_price(prices: Dict[str, float], key: str) -> Optional[float]:
    """Case-insensitive lookup of a positive price."""
    wanted = key.lower()
    for price_key, price in prices.items():
        if price_key.lower() == wanted and price and price > 0:
            return price
    return None


def apply_prices(assets: List[Asset], prices: Dict[str, float], now: Optional[datetime] = None) -> List[Asset]:
    """
    Return copies of ``assets`` with refreshed prices.

    Assets without a matching positive price are returned unchanged.
    """
    stamp = (now or datetime.now()).strftime("%H:%M:%S")
    updated = []
    for asset in assets:
        price = lookup_price(prices, asset.display_key)
        if price is None:
            updated.append(asset)
        else:
            updated.append(replace(asset, current_price=price, last_updated=stamp))
    return updated


class PriceService:
    """Fetches market prices from the configured quote sources."""

    def __init__(self, coingecko: CoinGeckoClient, yahoo: YahooFinanceClient,
                 gemini: Optional[GeminiClient] = None, max_workers: int = MAX_STOCK_WORKERS):
        self.coingecko = coingecko
        self.yahoo = yahoo
        self.gemini = gemini
        self.max_workers = max_workers

    @classmethod
    def from_settings(cls, settings) -> "PriceService":
        """Build the service and its clients from AppSettings."""
        gemini = None
        if settings.gemini_api_key:
            gemini = GeminiClient(settings.gemini_api_key, model=settings.gemini_model,
                                  timeout=settings.request_timeout * 3)
        return cls(
            coingecko=CoinGeckoClient(timeout=settings.request_timeout),
            yahoo=YahooFinanceClient(timeout=settings.request_timeout, proxy_url=settings.proxy_url),
            gemini=gemini,
        )

    def fetch_market_prices(self, assets: List[Asset]) -> Dict[str, float]:
        """
        Look up current prices for crypto and stock assets.

        Returns:
            Mapping of ``ticker or name`` to a positive price. Assets that could
            not be priced are absent. Cash is never looked up.
        """
        prices: Dict[str, float] = {}
        crypto_assets = [a for a in assets if a.type == AssetType.CRYPTO]
        stock_assets = [a for a in assets if a.type == AssetType.STOCK]

        try:
            prices.update(self._fetch_crypto_prices(crypto_assets))
        except Exception as e:
            logger.error(f"Crypto price fetch failed: {DataValidator.sanitize_for_logging(str(e))}")

        try:
            prices.update(self._fetch_stock_prices(stock_assets))
        except Exception as e:
            logger.error(f"Stock price fetch failed: {DataValidator.sanitize_for_logging(str(e))}")

        logger.info(f"Priced {len(prices)} of {len(crypto_assets) + len(stock_assets)} assets")
        return prices

    def fetch_prices_for_tickers(self, tickers: List[str],
                                 classifier: TickerClassifier = classify_ticker) -> Dict[str, float]:
        """
        Look up prices for bare tickers, e.g. option underlyings.

        Each ticker is classified with ``classifier`` before fetching.
        """
        unique = list(dict.fromkeys(t.strip().upper() for t in tickers if t and t.strip()))
        if not unique:
            return {}

        temporary_assets = []
        for ticker in unique:
            try:
                asset_type = classifier(ticker)
            except Exception as e:
                logger.error(f"Could not classify {ticker}: {e}")
                continue
            temporary_assets.append(Asset(
                id=ticker,
                name=ticker,
                ticker=ticker,
                type=asset_type,
                quantity=0,
                current_price=0,
            ))
        return self.fetch_market_prices(temporary_assets)

    def _fetch_crypto_prices(self, assets: List[Asset]) -> Dict[str, float]:
        if not assets:
            return {}

        try:
            quotes = self.coingecko.get_simple_prices([coingecko_id_for(a) for a in assets])
        except IntegrationError as e:
            logger.error(f"CoinGecko lookup failed: {e}")
            return {}

        prices = {}
        for asset in assets:
            price = quotes.get(coingecko_id_for(asset))
            if price:
                prices[asset.display_key] = price
        return prices

    def _fetch_stock_prices(self, assets: List[Asset]) -> Dict[str, float]:
        tickers = list(dict.fromkeys((a.ticker or a.name).upper() for a in assets))
        if not tickers:
            return {}

        quotes = self._fan_out_yahoo(tickers)

        missing = [t for t in tickers if t not in quotes]
        if missing and self.gemini is not None and self.gemini.enabled:
            quotes.update(self._fetch_gemini_prices(missing))

        return {match_price_key(assets, ticker): price for ticker, price in quotes.items()}

    def _fan_out_yahoo(self, tickers: List[str]) -> Dict[str, float]:
        """Fetch every ticker concurrently; one failure never affects the others."""
        quotes: Dict[str, float] = {}
        workers = max(1, min(self.max_workers, len(tickers)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="quote") as executor:
            futures = {executor.submit(self.yahoo.get_regular_market_price, t): t for t in tickers}
            done, _ = wait(futures)
            for future in done:
                ticker = futures[future]
                try:
                    quotes[ticker] = future.result()
                except Exception as e:
                    logger.warning(f"Yahoo quote for {ticker} failed: {DataValidator.sanitize_for_logging(str(e))}")
        return quotes

    def _fetch_gemini_prices(self, tickers: List[str]) -> Dict[str, float]:
        try:
            found = self.gemini.lookup_prices(tickers)
        except IntegrationError as e:
            logger.error(f"Gemini price lookup failed: {DataValidator.sanitize_for_logging(str(e))}")
            return {}

        wanted = set(tickers)
        quotes = {}
        for ticker, price in found.items():
            if ticker.upper() in wanted:
                quotes[ticker.upper()] = price
            else:
                logger.debug(f"Ignoring unrequested ticker {ticker} from Gemini")
        logger.info(f"Gemini priced {len(quotes)} of {len(tickers)} tickers")
        return quotes
