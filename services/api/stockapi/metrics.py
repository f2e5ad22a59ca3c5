from prometheus_client import Counter, Histogram

REQS = Counter("requests_total", "Total requests", ["route", "status"])
UPSTREAM = Histogram("upstream_latency_ms", "Evaluation service latency (ms)", ["endpoint"],
                     buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000))
UPSTREAM_ERRORS = Counter("upstream_errors_total",
                          "Failed evaluation service calls", ["endpoint", "status"])
AUTH_REFRESH = Counter("auth_refresh_total", "Bearer token refreshes", ["outcome"])
DIRECTORY_CACHE = Counter("directory_cache_total",
                          "Ticker directory cache lookups", ["result"])
