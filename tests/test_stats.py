import statistics
import pytest
from stockapi.schemas import PricePoint
from stockapi.stats import (average_price, correlate, correlation, correlation_matrix,
                            standard_deviation)


def series(*prices):
    return [PricePoint(price=p, lastUpdatedAt=f"t{i}") for i, p in enumerate(prices)]


def test_average_price():
    assert average_price(series(100, 120)) == 110
    assert average_price(series(3.5)) == 3.5


def test_average_price_empty_is_zero():
    assert average_price([]) == 0


def test_correlation_with_itself_is_one():
    a = series(10, 12, 9, 15, 14)
    assert correlation(a, a) == pytest.approx(1.0)


def test_correlation_inverse():
    assert correlation(series(1, 2, 3), series(3, 2, 1)) == pytest.approx(-1.0)


def test_correlation_symmetric():
    a = series(101.2, 99.8, 103.4, 104.0, 98.1)
    b = series(55.0, 54.2, 56.9, 57.5, 53.3)
    assert correlation(a, b) == correlation(b, a)


def test_correlation_matches_pearson():
    a = [101.2, 99.8, 103.4, 104.0, 98.1]
    b = [55.0, 51.2, 56.9, 50.5, 53.3]
    assert correlation(series(*a), series(*b)) == pytest.approx(statistics.correlation(a, b))


@pytest.mark.parametrize("a,b", [
    ([], []),
    ([1.0], [2.0, 3.0]),
    ([1.0, 2.0, 3.0], [4.0]),
    ([5.0], [5.0]),
])
def test_correlation_short_series_is_zero(a, b):
    assert correlation(series(*a), series(*b)) == 0


def test_correlation_uses_common_prefix():
    a = series(1, 2, 3, 10, -40)
    b = series(2, 4, 7)
    assert correlation(a, b) == correlation(a[:3], b)
    assert correlation(a, b) == pytest.approx(statistics.correlation([1, 2, 3], [2, 4, 7]))


def test_correlation_constant_series_is_finite():
    flat = series(50, 50, 50)
    assert correlation(flat, series(1, 2, 3)) == 0
    assert correlation(flat, flat) == 0


def test_correlate_keeps_inputs():
    a, b = series(1, 2, 3), series(2, 4, 6)
    result = correlate(a, b)
    assert result.coefficient == pytest.approx(1.0)
    assert result.series_a is a and result.series_b is b


def test_standard_deviation():
    assert standard_deviation(series(2, 4, 4, 4, 5, 5, 7, 9)) == pytest.approx(
        statistics.stdev([2, 4, 4, 4, 5, 5, 7, 9]))
    assert standard_deviation(series(7, 7, 7)) == 0
    assert standard_deviation(series(7)) == 0
    assert standard_deviation([]) == 0


def test_correlation_matrix_symmetric_unit_diagonal():
    m = correlation_matrix({
        "A": series(1, 2, 3, 4),
        "B": series(4, 3, 2, 1),
        "C": series(1, 3, 2, 5),
    })
    assert list(m) == ["A", "B", "C"]
    for t in m:
        assert m[t][t] == 1.0
        for u in m:
            assert m[t][u] == m[u][t]
    assert m["A"]["B"] == pytest.approx(-1.0)


def test_correlation_huge_prices_stays_finite():
    a = series(1e200, -1e200, 3e200)
    b = series(2e200, 1e200, -2e200)
    assert correlation(a, b) == 0
    assert correlation(b, a) == 0


def test_standard_deviation_huge_prices_does_not_raise():
    assert standard_deviation(series(1e200, -1e200, 3e200)) == float("inf")
