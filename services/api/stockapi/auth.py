import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional
import httpx
from .config import Credentials
from .errors import AuthError
from .metrics import AUTH_REFRESH, UPSTREAM
from .schemas import AuthResponse

log = logging.getLogger("api.auth")


@dataclass
class AuthToken:
    value: str
    expires_at: float


class TokenManager:
    """Caches the evaluation service bearer token until it expires.

    Concurrent callers that find the token expired each refresh it; the last
    response to arrive wins. /auth is idempotent so no lock is taken.
    """

    def __init__(self, http: httpx.AsyncClient, credentials: Credentials,
                 clock: Callable[[], float] = time.time):
        self._http = http
        self._credentials = credentials
        self._clock = clock
        self.token: Optional[AuthToken] = None

    async def get_token(self) -> str:
        if self.token is not None and self._clock() < self.token.expires_at:
            return self.token.value

        if not self._credentials.is_complete():
            AUTH_REFRESH.labels("missing_credentials").inc()
            raise AuthError(
                "Missing authentication credentials. Check your environment variables.")

        t0 = time.perf_counter()
        try:
            r = await self._http.post("/auth", json=self._credentials.auth_payload())
            r.raise_for_status()
            body = AuthResponse.model_validate(r.json())
        except httpx.HTTPStatusError as e:
            AUTH_REFRESH.labels("rejected").inc()
            log.error("auth rejected status=%s", e.response.status_code)
            raise AuthError(
                "Failed to authenticate with the stock service. Check your credentials.",
                status_code=e.response.status_code) from e
        except (httpx.RequestError, ValueError) as e:
            AUTH_REFRESH.labels("error").inc()
            log.error("auth request failed: %s", e)
            raise AuthError(
                "Failed to authenticate with the stock service.") from e
        finally:
            UPSTREAM.labels("/auth").observe((time.perf_counter() - t0) * 1000)

        self.token = AuthToken(body.access_token,
                               self._clock() + body.expires_in)
        AUTH_REFRESH.labels("ok").inc()
        log.info("Obtained bearer token, expires_in=%s", body.expires_in)
        return self.token.value

    def invalidate(self) -> None:
        self.token = None
