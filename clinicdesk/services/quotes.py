"""
Motivational quote for the admin dashboard.
"""

from __future__ import annotations

import logging
import random

import httpx

logger = logging.getLogger(__name__)

DEFAULT_QUOTE = "Time to crush your goals!"

FALLBACK_QUOTES = [
    "Time to crush your goals!",
    "Make today amazing!",
    "You are capable of amazing things!",
    "Success is the sum of small efforts repeated day in and day out.",
    "Believe you can and you're halfway there!",
]


class QuoteClient:
    """Fetches a random quote; any failure yields a local fallback."""

    def __init__(
        self,
        api_url: str = "https://api.quotable.io",
        http_client: httpx.Client | None = None,
        rng: random.Random | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client()
        self._rng = rng or random.Random()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def fallback(self) -> str:
        return self._rng.choice(FALLBACK_QUOTES)

    def fetch(self) -> str:
        try:
            response = self._http.get(
                f"{self.api_url}/random",
                params={"tags": "motivational|inspirational"},
            )
            response.raise_for_status()
            content = response.json().get("content")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.debug("Quote fetch failed, using fallback: %s", e)
            return self.fallback()

        if not content:
            return self.fallback()
        return content
