# =============================================================================
# POLYGON CTF SCANNER
# Module: gamma/client.py
# Purpose: HTTP client for the Polymarket Gamma API with retries and timeouts
# =============================================================================
#
# DESIGN:
# - Read-only access to market metadata (conditionId, questionID, clobTokenIds)
# - Exponential backoff for retries
# - Client errors (4xx) are not retried, except 429 (rate limit)
#
# API REFERENCE:
# Base URL: https://gamma-api.polymarket.com
# Endpoints: /markets
#
# =============================================================================

import json
import time
import logging
from typing import Any, Dict, List, Optional

import requests

from chain.utils import BytesLike, to_hex32

logger = logging.getLogger(__name__)


class GammaApiError(Exception):
    """Gamma API request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


def parse_clob_token_ids(market: Dict[str, Any]) -> List[int]:
    """
    Decode clobTokenIds of a Gamma market.

    The API ships the list as a JSON-encoded string ('["123", "456"]'),
    occasionally as a real list.

    Returns:
        Token IDs as ints, empty list if absent or malformed
    """
    raw = market.get("clobTokenIds")
    if not raw:
        return []

    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning(f"Malformed clobTokenIds: {raw[:80]}")
            return []

    if not isinstance(raw, list):
        return []

    token_ids = []
    for value in raw:
        text = str(value).strip()
        try:
            token_ids.append(int(text, 16) if text.lower().startswith("0x") else int(text))
        except ValueError:
            logger.warning(f"Unparseable token ID in clobTokenIds: {value!r}")
            return []
    return token_ids


class GammaClient:
    """
    HTTP client for Polymarket Gamma API.

    Features:
    - Exponential backoff retry logic
    - Configurable timeouts
    - Pagination support
    """

    BASE_URL = "https://gamma-api.polymarket.com"
    DEFAULT_TIMEOUT = 30  # seconds
    MAX_RETRIES = 3
    INITIAL_BACKOFF = 1.0  # seconds
    MAX_BACKOFF = 30.0  # seconds

    # Delay between paginated API requests (seconds)
    API_DELAY_SECONDS = 0.5

    def __init__(
        self,
        base_url: str = BASE_URL,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = MAX_RETRIES,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the Gamma API client.

        Args:
            base_url: API root
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "PolygonCtfScanner/1.0",
            "Accept": "application/json",
        })

    def fetch_market_by_condition_id(self, condition_id: BytesLike) -> Optional[Dict[str, Any]]:
        """
        Look up a market by its condition ID.

        Returns:
            Raw market dict, or None if the API does not know the condition
        """
        condition_hex = to_hex32(condition_id)
        markets = self._request("/markets", {"condition_ids": condition_hex})

        for market in markets:
            if str(market.get("conditionId", "")).lower() == condition_hex:
                return market

        if markets:
            logger.warning(
                f"Gamma returned {len(markets)} markets for {condition_hex}, none matching"
            )
        return None

    def fetch_market_by_slug(self, slug: str) -> Optional[Dict[str, Any]]:
        """Look up a market by its URL slug."""
        markets = self._request("/markets", {"slug": slug})
        return markets[0] if markets else None

    def fetch_markets(
        self,
        limit: int = 100,
        offset: int = 0,
        closed: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch one page of markets.

        Args:
            limit: Maximum number of markets (max 100 per request)
            offset: Pagination offset
            closed: Filter by closed status (None = all)
        """
        params: Dict[str, Any] = {
            "limit": min(limit, 100),  # API max is 100
            "offset": offset,
        }

        if closed is not None:
            params["closed"] = str(closed).lower()

        return self._request("/markets", params)

    def fetch_all_markets(
        self,
        max_markets: int = 200,
        closed: Optional[bool] = None,
    ) -> List[Dict[str, Any]]:
        """Fetch pages of markets up to max_markets."""
        all_markets: List[Dict[str, Any]] = []
        offset = 0
        page_size = 100

        while len(all_markets) < max_markets:
            limit = min(page_size, max_markets - len(all_markets))
            logger.info(f"Fetching markets: offset={offset}, limit={limit}")

            markets = self.fetch_markets(limit=limit, offset=offset, closed=closed)
            if not markets:
                break

            all_markets.extend(markets)
            offset += len(markets)

            if len(markets) < limit:
                break

            time.sleep(self.API_DELAY_SECONDS)

        logger.info(f"Total markets fetched: {len(all_markets)}")
        return all_markets

    def _request(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        GET with retry logic.

        Returns:
            Parsed JSON response, always as a list of objects

        Raises:
            GammaApiError: On client errors or when all retries fail
        """
        url = f"{self.base_url}{endpoint}"
        backoff = self.INITIAL_BACKOFF
        last_error: Optional[BaseException] = None

        for attempt in range(self.max_retries):
            try:
                logger.debug(f"Request attempt {attempt + 1}: {url} {params}")
                response = self.session.get(url, params=params, timeout=self.timeout)

                status = response.status_code
                if 400 <= status < 500 and status != 429:
                    raise GammaApiError(f"Client error: {status} {response.reason}", status)
                response.raise_for_status()

                return self._unwrap(response.json())

            except GammaApiError:
                raise

            except requests.HTTPError as e:
                last_error = e
                logger.warning(f"HTTP error on attempt {attempt + 1}: {e}")

            except requests.RequestException as e:
                last_error = e
                logger.warning(f"Request error on attempt {attempt + 1}: {e}")

            except ValueError as e:
                last_error = e
                logger.warning(f"JSON decode error on attempt {attempt + 1}: {e}")

            if attempt < self.max_retries - 1:
                sleep_time = min(backoff, self.MAX_BACKOFF)
                logger.info(f"Retrying in {sleep_time:.1f}s...")
                time.sleep(sleep_time)
                backoff *= 2

        raise GammaApiError(
            f"All {self.max_retries} retry attempts failed. Last error: {last_error}"
        )

    @staticmethod
    def _unwrap(result: Any) -> List[Dict[str, Any]]:
        # API may return list directly or wrapped in object
        if isinstance(result, list):
            return result
        if isinstance(result, dict):
            for key in ["data", "markets", "results"]:
                if key in result and isinstance(result[key], list):
                    return result[key]
            return [result]

        logger.warning(f"Unexpected response type: {type(result)}")
        return []
