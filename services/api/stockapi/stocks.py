import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Sequence
import httpx
from pydantic import ValidationError as SchemaError
from .auth import TokenManager
from .cache import TTLCache
from .config import DIRECTORY_TTL_SEC
from .errors import UpstreamError
from .metrics import DIRECTORY_CACHE, UPSTREAM, UPSTREAM_ERRORS
from .schemas import PricePoint, StockEnvelope, TickerDirectory, upstream_prices

log = logging.getLogger("api.stocks")

ALL_STOCKS_KEY = "all_stocks"


class StockDataClient:
    """Reads tickers and price series from the evaluation service.

    Token state lives in ``tokens`` and the ticker directory is memoized in
    ``cache``; both are owned by this client rather than module globals.
    Price series are never cached.
    """

    def __init__(self, http: httpx.AsyncClient, tokens: TokenManager,
                 cache: Optional[TTLCache] = None):
        self.http = http
        self.tokens = tokens
        self.cache = cache if cache is not None else TTLCache(DIRECTORY_TTL_SEC)

    async def _authorized_get(self, path: str, endpoint: str,
                              params: Optional[Dict[str, Any]] = None) -> Any:
        token = await self.tokens.get_token()
        t0 = time.perf_counter()
        try:
            r = await self.http.get(path, params=params,
                                    headers={"Authorization": f"Bearer {token}"})
            r.raise_for_status()
            return r.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            UPSTREAM_ERRORS.labels(endpoint, str(status)).inc()
            if status == 401:
                self.tokens.invalidate()
            log.error("GET %s failed status=%s", path, status)
            raise UpstreamError(
                f"Request to {path} failed with status code {status}", status_code=status) from e
        except httpx.RequestError as e:
            UPSTREAM_ERRORS.labels(endpoint, "transport").inc()
            log.error("GET %s failed: %s", path, e)
            raise UpstreamError(f"Request to {path} failed: {e}") from e
        except ValueError as e:
            UPSTREAM_ERRORS.labels(endpoint, "decode").inc()
            raise UpstreamError(f"Invalid JSON from {path}") from e
        finally:
            UPSTREAM.labels(endpoint).observe((time.perf_counter() - t0) * 1000)

    async def get_all_stocks(self) -> TickerDirectory:
        cached = self.cache.get(ALL_STOCKS_KEY)
        if cached is not None:
            DIRECTORY_CACHE.labels("hit").inc()
            return cached
        DIRECTORY_CACHE.labels("miss").inc()

        body = await self._authorized_get("/stocks", "/stocks")
        try:
            directory = TickerDirectory.model_validate(body)
        except SchemaError as e:
            raise UpstreamError("Invalid response format for stock directory") from e
        self.cache.set(ALL_STOCKS_KEY, directory)
        log.info("Cached ticker directory (%d tickers)", len(directory.stocks))
        return directory

    async def get_stock_prices(self, ticker: str,
                               minutes: Optional[int] = None) -> List[PricePoint]:
        if not ticker:
            raise UpstreamError("Stock ticker is required", status_code=400)

        params = {"minutes": minutes} if minutes else None
        body = await self._authorized_get(f"/stocks/{ticker}", "/stocks/{ticker}", params)
        try:
            parsed = upstream_prices.validate_python(body)
        except SchemaError as e:
            raise UpstreamError(f"Invalid response format for ticker {ticker}") from e
        if isinstance(parsed, StockEnvelope):
            return [parsed.stock]
        return parsed

    async def get_many_stock_prices(self, tickers: Sequence[str],
                                    minutes: Optional[int] = None) -> List[List[PricePoint]]:
        # all-or-nothing: the first failure propagates
        return list(await asyncio.gather(
            *(self.get_stock_prices(t, minutes) for t in tickers)))
