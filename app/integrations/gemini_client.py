"""
Gemini generateContent client used as a search-grounded price fallback.
"""

import json
import re
from typing import Any, Dict, List, Optional

import requests

from .base_client import APIError, BaseClient, DEFAULT_TIMEOUT

BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash"

_FENCE_PATTERN = re.compile(r"^\s*```[a-zA-Z]*\s*|\s*```\s*$")
_OBJECT_PATTERN = re.compile(r"\{.*\}", re.DOTALL)

PRICE_PROMPT = (
    "Find the latest market price in USD for each of these stock tickers: {tickers}. "
    "Reply with only a JSON object mapping each ticker to its price as a number, "
    'for example {{"AAPL": 189.5}}. Omit tickers you cannot find.'
)


def strip_code_fences(text: str) -> str:
    """Remove a leading ```/```json fence and a trailing ``` fence."""
    return _FENCE_PATTERN.sub("", text.strip())


def parse_price_json(text: str) -> Dict[str, float]:
    """
    Extract a ticker -> price mapping from a model reply.

    Surrounding code fences and prose are ignored; non-numeric or non-positive
    values are dropped.

    Raises:
        APIError: If no JSON object can be parsed
    """
    cleaned = strip_code_fences(text or "")
    match = _OBJECT_PATTERN.search(cleaned)
    if not match:
        raise APIError("reply does not contain a JSON object")
    try:
        data = json.loads(match.group(0))
    except ValueError as e:
        raise APIError(f"reply JSON could not be parsed: {e}")
    if not isinstance(data, dict):
        raise APIError("reply JSON is not an object")

    prices = {}
    for ticker, value in data.items():
        if isinstance(value, bool):
            continue
        if isinstance(value, str):
            try:
                value = float(value.replace(",", "").replace("$", "").strip())
            except ValueError:
                continue
        if isinstance(value, (int, float)) and value > 0:
            prices[str(ticker)] = float(value)
    return prices


class GeminiClient(BaseClient):
    """Minimal client for the Gemini generateContent endpoint."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT * 3,
                 session: Optional[requests.Session] = None, base_url: str = BASE_URL):
        super().__init__(
            "gemini",
            base_url,
            timeout=timeout,
            session=session,
            headers={"Content-Type": "application/json"},
        )
        self.api_key = api_key or ""
        self.model = model

    @property
    def enabled(self) -> bool:
        return bool(self.api_key.strip())

    def generate_text(self, prompt: str, use_search: bool = True) -> str:
        """Send a prompt and return the concatenated text parts of the first candidate."""
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if use_search:
            body["tools"] = [{"google_search": {}}]

        response = self._request(
            "POST",
            f"/models/{self.model}:generateContent",
            params={"key": self.api_key},
            json=body,
        )
        data = self._json(response)
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise APIError("gemini reply has no candidates")
        return "".join(part.get("text", "") for part in parts if isinstance(part, dict))

    def lookup_prices(self, tickers: List[str]) -> Dict[str, float]:
        """Ask the model for current prices of ``tickers``."""
        if not tickers:
            return {}
        text = self.generate_text(PRICE_PROMPT.format(tickers=", ".join(tickers)))
        return parse_price_json(text)
