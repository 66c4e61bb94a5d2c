# fetcher.py
"""
Upstream page retrieval.

Two interchangeable strategies are provided:
- CloudScraperStrategy: cloudscraper session able to answer Cloudflare's
  JavaScript challenge. It is synchronous, so requests run in a worker thread.
- HttpxStrategy: plain httpx.AsyncClient with a fixed per-attempt timeout.

The strategy is picked once at startup (see build_fetcher) and wrapped in a
Fetcher, which retries failed attempts with a linear backoff and raises
FetchError once every attempt has failed.
"""
from httpx import AsyncClient, HTTPStatusError, RequestError
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
import logging
import asyncio
import threading
from typing import Awaitable, Callable, Dict, List, Mapping, Optional

import cloudscraper
import requests
from cloudscraper.exceptions import CloudflareException

import config

logger = logging.getLogger(__name__)

class FetchErrorKind(str, Enum):
    NETWORK = "NetworkError"
    UPSTREAM_BLOCKED = "UpstreamBlocked"
    UPSTREAM_ERROR = "UpstreamError"

class FetchError(Exception):
    """Raised when the upstream page could not be retrieved."""

    def __init__(self, kind: FetchErrorKind, message: str, status_code: Optional[int] = None,
                 headers: Optional[Mapping[str, str]] = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.headers = dict(headers) if headers is not None else None

    @property
    def cloudflare(self) -> bool:
        if not self.headers:
            return False
        server = next((v for k, v in self.headers.items() if k.lower() == "server"), "")
        return server.lower() == "cloudflare"

    def __repr__(self):
        return f"FetchError(kind={self.kind.value}, status_code={self.status_code}, message={self.message!r})"

def classify_status(status_code: int, url: str, reason: str = "",
                    headers: Optional[Mapping[str, str]] = None) -> FetchError:
    """Map a non-2xx upstream status to a FetchError. 403 is treated as an anti-bot rejection."""
    message = f"Request failed with status code {status_code}"
    if reason:
        message = f"{message} ({reason})"
    if status_code == 403:
        return FetchError(FetchErrorKind.UPSTREAM_BLOCKED, f"{message} for {url}", status_code, headers)
    return FetchError(FetchErrorKind.UPSTREAM_ERROR, f"{message} for {url}", status_code, headers)

class FetchStrategy(ABC):
    """Interface shared by the retrieval strategies."""

    name: str = ""

    @abstractmethod
    async def get(self, url: str) -> str:
        """Return the page body, raising FetchError on failure."""

    async def aclose(self) -> None:
        return None

class CloudScraperStrategy(FetchStrategy):
    name = config.FETCH_METHOD_CLOUDSCRAPER

    def __init__(self, headers: Optional[Dict[str, str]] = None, session=None):
        self.headers = dict(headers or config.DEFAULT_HEADERS)
        self.session = session or cloudscraper.create_scraper(
            browser={"browser": "chrome", "platform": "windows", "desktop": True},
        )
        # cloudscraper keeps challenge state and cookies on the session; one request at a time
        self._lock = threading.Lock()

    def _get_sync(self, url: str) -> str:
        logger.info(f"[cloudscraper] Bypassing Cloudflare: {url}")
        try:
            with self._lock:
                response = self.session.get(url, headers=self.headers)
            response.raise_for_status()
        except requests.HTTPError as e:
            response = e.response
            raise classify_status(response.status_code, url, response.reason or "", response.headers) from e
        except CloudflareException as e:
            raise FetchError(FetchErrorKind.UPSTREAM_BLOCKED, f"Cloudflare challenge not solved for {url}: {e}") from e
        except requests.RequestException as e:
            raise FetchError(FetchErrorKind.NETWORK, f"Network error for {url}: {e}") from e
        logger.info(f"[cloudscraper] Success ({response.status_code})")
        return response.text

    async def get(self, url: str) -> str:
        return await asyncio.to_thread(self._get_sync, url)

    async def aclose(self) -> None:
        self.session.close()

class HttpxStrategy(FetchStrategy):
    name = config.FETCH_METHOD_HTTPX

    def __init__(self, headers: Optional[Dict[str, str]] = None, timeout: float = config.HTTP_TIMEOUT,
                 client: Optional[AsyncClient] = None):
        self.client = client or AsyncClient(
            headers=dict(headers or config.DEFAULT_HEADERS),
            timeout=timeout,
            follow_redirects=True
        )

    async def get(self, url: str) -> str:
        logger.info(f"[httpx] Trying: {url}")
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except HTTPStatusError as e:
            response = e.response
            raise classify_status(response.status_code, url, response.reason_phrase, response.headers) from e
        except RequestError as e:
            raise FetchError(FetchErrorKind.NETWORK, f"Network error for {url}: {e!r}") from e
        logger.info(f"[httpx] Response received ({response.status_code})")
        return response.text

    async def aclose(self) -> None:
        await self.client.aclose()

@dataclass
class FetchAttempt:
    index: int
    backoff: float
    error: Optional[FetchError] = None

class Fetcher:
    """Runs a strategy with a bounded number of attempts and linear backoff."""

    def __init__(self, strategy: FetchStrategy, retries: int = config.FETCH_RETRIES,
                 backoff: float = config.RETRY_BACKOFF,
                 sleep: Callable[[float], Awaitable[None]] = asyncio.sleep):
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.strategy = strategy
        self.retries = retries
        self.backoff = backoff
        self._sleep = sleep

    @property
    def method(self) -> str:
        return self.strategy.name

    async def fetch(self, url: str) -> str:
        attempts: List[FetchAttempt] = []
        for i in range(self.retries):
            attempt = FetchAttempt(index=i, backoff=self.backoff * i)
            attempts.append(attempt)
            if i > 0:
                logger.info(f"Attempt {i + 1}/{self.retries} in {attempt.backoff:.0f}s")
                await self._sleep(attempt.backoff)
            try:
                return await self.strategy.get(url)
            except FetchError as e:
                attempt.error = e
                logger.warning(f"Attempt {i + 1} failed: {e.message}")
                if e.status_code == 403:
                    logger.warning("Blocked by Cloudflare: the challenge-aware client or a headless browser is required")
            except Exception as e:
                attempt.error = FetchError(FetchErrorKind.NETWORK, f"Request to {url} failed: {e!r}")
                attempt.error.__cause__ = e
                logger.warning(f"Attempt {i + 1} failed unexpectedly: {e!r}")
        raise attempts[-1].error

    async def aclose(self) -> None:
        await self.strategy.aclose()

def build_strategy(method: str = config.FETCH_METHOD) -> FetchStrategy:
    if method == config.FETCH_METHOD_CLOUDSCRAPER:
        return CloudScraperStrategy()
    if method == config.FETCH_METHOD_HTTPX:
        return HttpxStrategy()
    raise ValueError(f"Unknown fetch method '{method}'. Supported: {', '.join(config.FETCH_METHODS)}")

def build_fetcher(method: str = config.FETCH_METHOD) -> Fetcher:
    strategy = build_strategy(method)
    logger.info(f"Fetch strategy selected: {strategy.name}")
    return Fetcher(strategy)
