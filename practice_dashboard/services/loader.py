# page loader: idle -> loading -> loaded | failed
# a response is applied only if no newer load started while it was in flight

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from practice_dashboard.services.gateway import GatewayError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LoadState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class PageLoader(Generic[T]):
    """explicit lifecycle for one page's main data fetch"""

    def __init__(self):
        self.state = LoadState.IDLE
        self.params: Any = None
        self.data: Optional[T] = None
        self.error: Optional[GatewayError] = None
        self.generation = 0

    def _start(self, params: Any) -> int:
        self.generation += 1
        self.state = LoadState.LOADING
        self.params = params
        self.data = None
        self.error = None
        return self.generation

    def _is_current(self, generation: int, params: Any) -> bool:
        return generation == self.generation and params == self.params

    async def load(self, params: Any, fetch: Callable[[], Awaitable[T]]) -> "PageLoader[T]":
        """run one fetch for ``params``; stale outcomes are discarded"""
        generation = self._start(params)
        try:
            result = await fetch()
        except GatewayError as e:
            if not self._is_current(generation, params):
                logger.debug(f"Discarding stale failure for {params!r}: {e.message}")
                return self
            self.state = LoadState.FAILED
            self.error = e
            return self

        if not self._is_current(generation, params):
            logger.debug(f"Discarding stale response for {params!r}")
            return self
        self.state = LoadState.LOADED
        self.data = result
        return self

    @property
    def loaded(self) -> bool:
        return self.state == LoadState.LOADED

    @property
    def failed(self) -> bool:
        return self.state == LoadState.FAILED
