from collections import deque
from time import monotonic

from fastapi import HTTPException, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from portfolio.shared import Config, Logger, load_config
from portfolio.shared.http import error_response

logger = Logger(__name__).get_logger()
config: Config = load_config()
config_rate_limit = config.network.rate_limit


class RateLimit(BaseHTTPMiddleware):
    """Rate Limit middleware for FastApi endpoints
    Based loosely on sliding window rate limiting.
    Keyed on the client address.
    """

    def __init__(
        self,
        app,
        dispatch=None,
        timeout_period_s=config_rate_limit.timeout_period,
        max_per_second=config_rate_limit.ip_rate_limit,
    ):
        super().__init__(app, dispatch)

        # Params
        self.__max_per_second = max_per_second
        self.__timeout_period_s = timeout_period_s

        # Checks
        self.__bucket: dict[str, deque[float]] = {}
        self.__timeout_club: dict[str, float] = {}

        # Time
        self.__now = monotonic()
        self.__last_sweep = self.__now

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        # Skip rate limiting for OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        key = request.client.host if request.client else "unknown"
        try:
            self.__now = monotonic()
            self.__sweep()
            self.__check(key)
        except HTTPException as e:
            logger.warning("Rate limited %s on %s", key, request.url.path)
            return error_response(e.status_code, str(e.detail))

        return await call_next(request)

    def __check(self, key: str):
        # reject while the key sits in timeout,
        # then record the timestamp and lazily prune
        # anything older than one second; more than
        # `max_per_second` left means a new timeout

        self.__create_deque(key)
        self.__timeout_check(key)

        queue = self.__bucket[key]
        queue.append(self.__now)

        while self.__now - queue[0] > 1:
            queue.popleft()

        if len(queue) > self.__max_per_second:
            self.__timeout(key)
            raise HTTPException(status_code=429, detail="Too many requests.")

    def __create_deque(self, key: str):
        if key not in self.__bucket:
            self.__bucket[key] = deque()

    def __timeout_check(self, key: str):
        if key not in self.__timeout_club:
            return

        timeout_timestamp = self.__timeout_club[key]

        if self.__now - timeout_timestamp > self.__timeout_period_s:
            del self.__timeout_club[key]
        else:
            raise HTTPException(status_code=429, detail="Too many requests.")

    def __timeout(self, key: str):
        self.__timeout_club[key] = monotonic()

    @property
    def tracked_clients(self) -> int:
        return len(self.__bucket)

    def __sweep(self):
        # drop idle clients at most once per second
        if self.__now - self.__last_sweep < 1:
            return
        self.__last_sweep = self.__now

        idle = [
            key
            for key, queue in self.__bucket.items()
            if not queue or self.__now - queue[-1] > 1
        ]
        for key in idle:
            if key not in self.__timeout_club:
                del self.__bucket[key]

        expired = [
            key
            for key, timestamp in self.__timeout_club.items()
            if self.__now - timestamp > self.__timeout_period_s
        ]
        for key in expired:
            del self.__timeout_club[key]
