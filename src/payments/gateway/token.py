"""Bearer token cache with refresh-before-expiry and a single refresher."""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

REFRESH_MARGIN = timedelta(minutes=5)


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: datetime
    token_type: str = "access_token"

    def needs_refresh(self, now: datetime, margin: timedelta = REFRESH_MARGIN) -> bool:
        return now >= self.expires_at - margin


class TokenCache:
    """Process-wide token holder.

    Callers get a valid token value; a token within ``REFRESH_MARGIN`` of its
    expiry is replaced first. Concurrent callers that find the token stale
    wait on one refresh instead of each fetching their own.
    """

    def __init__(self, fetch: Callable[[], AccessToken], clock: Callable[[], datetime] | None = None) -> None:
        self._fetch = fetch
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = threading.Lock()
        self._token: AccessToken | None = None
        self.refresh_count = 0

    @property
    def current(self) -> AccessToken | None:
        return self._token

    def get(self) -> str:
        token = self._token
        if token is not None and not token.needs_refresh(self._clock()):
            return token.value

        with self._lock:
            # Another caller may have refreshed while we waited for the lock
            token = self._token
            if token is None or token.needs_refresh(self._clock()):
                token = self._fetch()
                self._token = token
                self.refresh_count += 1
            return token.value

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
