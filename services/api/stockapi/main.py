import logging
import math
from typing import List, Optional
import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from . import config
from .auth import TokenManager
from .errors import InternalError, NotFoundError, StockApiError, ValidationError
from .metrics import REQS
from .schemas import (AverageStockPriceResponse, CorrelationMatrixResponse, ErrorBody,
                      StockCorrelationResponse, StockStats, StockSummary, TickerDirectory)
from .stats import average_price, correlate, correlation_matrix, standard_deviation
from .stocks import StockDataClient

logging.basicConfig(level=config.LOG_LEVEL)
log = logging.getLogger("api")

app = FastAPI(title="Stock Analytics API", version="1.0.0")


class OperationFailed(Exception):
    """Wraps an error with the name of the operation that failed."""

    def __init__(self, route: str, title: str, cause: StockApiError):
        super().__init__(cause.message)
        self.route = route
        self.title = title
        self.cause = cause


def _error_response(route: str, title: str, exc: StockApiError) -> JSONResponse:
    REQS.labels(route, str(exc.status_code)).inc()
    body = ErrorBody(error=title, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(OperationFailed)
async def _operation_failed(request: Request, exc: OperationFailed):
    return _error_response(exc.route, exc.title, exc.cause)


@app.exception_handler(StockApiError)
async def _stock_api_error(request: Request, exc: StockApiError):
    route = getattr(request.scope.get("route"), "path", request.url.path)
    log.error("%s %s: %s", request.method, route, exc.message)
    return _error_response(route, "Request failed", exc)


def _fail(route: str, title: str, e: Exception) -> OperationFailed:
    if isinstance(e, StockApiError):
        if e.status_code >= 500:
            log.error("%s: %s", title, e.message)
        else:
            log.warning("%s: %s", title, e.message)
        return OperationFailed(route, title, e)
    log.exception("%s: unexpected error", title)
    return OperationFailed(route, title, InternalError(str(e) or "Unknown error"))


@app.on_event("startup")
async def _startup():
    missing = config.missing_env_vars()
    if missing:
        log.error("Missing required environment variables: %s", ", ".join(missing))
        log.error("Please add these variables to your .env file")
    if getattr(app.state, "stocks", None) is None:
        opts = {"timeout": config.UPSTREAM_TIMEOUT_SEC} if config.UPSTREAM_TIMEOUT_SEC else {}
        http = httpx.AsyncClient(base_url=config.UPSTREAM_BASE_URL, **opts)
        tokens = TokenManager(http, config.load_credentials())
        app.state.stocks = StockDataClient(http, tokens)
    log.info("Upstream %s; health check at /health", config.UPSTREAM_BASE_URL)


@app.on_event("shutdown")
async def _shutdown():
    stocks = getattr(app.state, "stocks", None)
    if stocks is not None:
        await stocks.http.aclose()
        app.state.stocks = None


def get_stock_client(request: Request) -> StockDataClient:
    stocks = getattr(request.app.state, "stocks", None)
    if stocks is None:
        raise InternalError("Stock service is not initialized")
    return stocks


def parse_minutes(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw == "":
        return None
    # plain ASCII digits only; int() would also take "5_0", "+5" or " 5"
    if not (raw.isascii() and raw.isdigit()) or int(raw) <= 0:
        raise ValidationError("Minutes parameter must be a positive number")
    return int(raw)


def _finite(value: float, what: str) -> float:
    if not math.isfinite(value):
        raise InternalError(f"{what} is out of numeric range")
    return value


def parse_ticker_pair(request: Request) -> List[str]:
    """Accepts ``ticker=A&ticker=B``, ``ticker[0]=A&ticker[1]=B`` or one ``ticker``."""
    q = request.query_params
    tickers = q.getlist("ticker")
    if len(tickers) > 1:
        return tickers
    if q.get("ticker[0]") and q.get("ticker[1]"):
        return [q["ticker[0]"], q["ticker[1]"]]
    return tickers


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/metrics")
async def metrics():
    return PlainTextResponse(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/stocks", response_model=TickerDirectory)
async def all_stocks(stocks: StockDataClient = Depends(get_stock_client)):
    try:
        directory = await stocks.get_all_stocks()
        if not directory.stocks:
            raise NotFoundError("No stocks found")
    except Exception as e:
        raise _fail("/stocks", "Failed to fetch stocks", e) from e
    REQS.labels("/stocks", "200").inc()
    return directory


@app.get("/stocks/{ticker}", response_model=AverageStockPriceResponse)
async def stock_average(ticker: str, minutes: Optional[str] = None,
                        stocks: StockDataClient = Depends(get_stock_client)):
    route = "/stocks/{ticker}"
    try:
        ticker = ticker.strip()
        if not ticker:
            raise ValidationError("Ticker is required")
        n = parse_minutes(minutes)
        prices = await stocks.get_stock_prices(ticker, n)
        if not prices:
            raise NotFoundError(f"No price data found for ticker: {ticker}")
        average = _finite(average_price(prices), "Average price")
    except Exception as e:
        raise _fail(route, "Failed to fetch stock prices", e) from e

    log.debug("ticker=%s minutes=%s points=%d", ticker, n, len(prices))
    REQS.labels(route, "200").inc()
    return AverageStockPriceResponse(averageStockPrice=average, priceHistory=prices)


@app.get("/stockcorrelation", response_model=StockCorrelationResponse)
async def stock_correlation(request: Request,
                            stocks: StockDataClient = Depends(get_stock_client)):
    route = "/stockcorrelation"
    try:
        tickers = parse_ticker_pair(request)
        log.debug("Processed ticker list: %s", tickers)
        if len(tickers) != 2:
            raise ValidationError(
                f"Exactly 2 tickers are required, received {len(tickers)}")
        n = parse_minutes(request.query_params.get("minutes"))
        prices_a, prices_b = await stocks.get_many_stock_prices(tickers, n)
        if not prices_a or not prices_b:
            raise NotFoundError(
                f"Could not retrieve price data for one or both tickers: {', '.join(tickers)}")
        result = correlate(prices_a, prices_b)
        summaries = {
            t: StockSummary(averagePrice=_finite(average_price(p), f"Average price of {t}"),
                            priceHistory=p)
            for t, p in zip(tickers, (prices_a, prices_b))}
    except Exception as e:
        raise _fail(route, "Failed to calculate correlation", e) from e

    REQS.labels(route, "200").inc()
    return StockCorrelationResponse(correlation=result.coefficient, stocks=summaries)


@app.get("/stockcorrelation/matrix", response_model=CorrelationMatrixResponse)
async def stock_correlation_matrix(request: Request,
                                   stocks: StockDataClient = Depends(get_stock_client)):
    route = "/stockcorrelation/matrix"
    limit = config.MATRIX_MAX_TICKERS
    try:
        tickers = list(dict.fromkeys(request.query_params.getlist("ticker")))
        if not tickers:
            directory = await stocks.get_all_stocks()
            if not directory.stocks:
                raise NotFoundError("No stocks found")
            tickers = list(directory.stocks.values())[:limit]
        if len(tickers) < 2 or len(tickers) > limit:
            raise ValidationError(f"Between 2 and {limit} distinct tickers are required")
        n = parse_minutes(request.query_params.get("minutes"))
        series = dict(zip(tickers, await stocks.get_many_stock_prices(tickers, n)))
        empty = [t for t, s in series.items() if not s]
        if empty:
            raise NotFoundError(f"No price data found for tickers: {', '.join(empty)}")
        matrix = correlation_matrix(series)
        stats = {t: StockStats(averagePrice=_finite(average_price(s), f"Average price of {t}"),
                               stdDev=_finite(standard_deviation(s), f"Standard deviation of {t}"))
                 for t, s in series.items()}
    except Exception as e:
        raise _fail(route, "Failed to calculate correlation matrix", e) from e

    REQS.labels(route, "200").inc()
    return CorrelationMatrixResponse(tickers=tickers, matrix=matrix, stats=stats)


def run():
    import uvicorn
    uvicorn.run(app, host=config.HOST, port=config.PORT)
