"""Logging setup and lightweight request instrumentation."""

import logging
from time import perf_counter
from typing import AsyncIterator

from fastapi import Request

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once for the service process."""

    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


class RequestTimer:
    """Router dependency that logs how long each request took to handle.

    Slow requests (over ``slow_ms``) are logged at WARNING so render stalls
    stand out from routine traffic.
    """

    def __init__(self, logger_name: str, *, slow_ms: float = 30_000.0) -> None:
        self.logger = logging.getLogger(logger_name)
        self.slow_ms = slow_ms

    async def __call__(self, request: Request) -> AsyncIterator[None]:
        started = perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (perf_counter() - started) * 1000
            level = logging.WARNING if elapsed_ms >= self.slow_ms else logging.INFO
            self.logger.log(
                level,
                "%s %s handled in %.1f ms",
                request.method,
                request.url.path,
                elapsed_ms,
            )


__all__ = ["RequestTimer", "configure_logging"]
