import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence
from .schemas import PricePoint


@dataclass(frozen=True)
class CorrelationResult:
    coefficient: float
    series_a: Sequence[PricePoint]
    series_b: Sequence[PricePoint]


def _prices(series: Sequence[PricePoint]) -> List[float]:
    return [p.price for p in series]


def average_price(series: Sequence[PricePoint]) -> float:
    if not series:
        return 0.0
    return sum(_prices(series)) / len(series)


def standard_deviation(series: Sequence[PricePoint]) -> float:
    """Sample standard deviation (n - 1); 0 for fewer than two points."""
    n = len(series)
    if n <= 1:
        return 0.0
    mean = average_price(series)
    return math.sqrt(sum((x - mean) * (x - mean) for x in _prices(series)) / (n - 1))


def correlation(series_a: Sequence[PricePoint], series_b: Sequence[PricePoint]) -> float:
    """Pearson coefficient over the common prefix of both series.

    Returns 0 when fewer than two aligned points exist. A zero variance is
    replaced by 1 so constant series give a finite value instead of NaN, and
    prices large enough to overflow a float likewise yield 0; in both cases the
    result is then not a meaningful correlation.
    """
    n = min(len(series_a), len(series_b))
    if n <= 1:
        return 0.0

    xs = _prices(series_a[:n])
    ys = _prices(series_b[:n])
    mean_x = sum(xs) / n
    mean_y = sum(ys) / n

    var_x = sum((x - mean_x) * (x - mean_x) for x in xs) / (n - 1) or 1.0
    var_y = sum((y - mean_y) * (y - mean_y) for y in ys) / (n - 1) or 1.0
    cov = sum((x - mean_x) * (y - mean_y) for x, y in zip(xs, ys)) / (n - 1)

    r = cov / math.sqrt(var_x * var_y)
    return r if math.isfinite(r) else 0.0


def correlate(series_a: Sequence[PricePoint], series_b: Sequence[PricePoint]) -> CorrelationResult:
    return CorrelationResult(correlation(series_a, series_b), series_a, series_b)


def correlation_matrix(series_by_ticker: Mapping[str, Sequence[PricePoint]]) -> Dict[str, Dict[str, float]]:
    tickers = list(series_by_ticker)
    matrix: Dict[str, Dict[str, float]] = {t: {t: 1.0} for t in tickers}
    for i, a in enumerate(tickers):
        for b in tickers[i + 1:]:
            r = correlation(series_by_ticker[a], series_by_ticker[b])
            matrix[a][b] = r
            matrix[b][a] = r
    return matrix
