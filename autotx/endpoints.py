"""
RPC endpoint selection.

Every configured URL is probed for its latest block. Candidates whose head is
older than MAX_STALENESS seconds are ineligible; among the rest the lowest
round-trip latency wins, ties going to configuration order. The choice is
cached for CACHE_TTL seconds.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional

from web3 import LegacyWebSocketProvider, Web3

from .config import FALLBACK_FAIL, FALLBACK_FIRST
from .errors import NoHealthyEndpoint

logger = logging.getLogger(__name__)

MAX_STALENESS = 30
CACHE_TTL = 60
PROBE_TIMEOUT = 10


def connect(url: str, timeout: float = PROBE_TIMEOUT) -> Web3:
    if url.startswith("ws://") or url.startswith("wss://"):
        return Web3(LegacyWebSocketProvider(url, websocket_timeout=timeout))
    return Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": timeout}))


@dataclass
class Endpoint:
    url: str
    web3: Web3
    latency: Optional[float] = None
    staleness: Optional[float] = None

    @property
    def latency_ms(self) -> Optional[int]:
        return None if self.latency is None else int(self.latency * 1000)


def head_staleness(w3, now: float) -> float:
    """Seconds between `now` and the timestamp of the latest block."""
    block = w3.eth.get_block("latest")
    return now - int(block["timestamp"])


class EndpointSelector:
    def __init__(
        self,
        urls: List[str],
        connect: Callable[[str], Web3] = connect,
        fallback: str = FALLBACK_FIRST,
        ttl: float = CACHE_TTL,
        max_staleness: float = MAX_STALENESS,
        clock: Callable[[], float] = time.time,
        timer: Callable[[], float] = time.perf_counter,
    ):
        if not urls:
            raise ValueError("At least one RPC URL is required")
        if fallback not in (FALLBACK_FIRST, FALLBACK_FAIL):
            raise ValueError(f"Unknown fallback policy: {fallback}")
        self.urls = list(urls)
        self._connect = connect
        self.fallback = fallback
        self.ttl = ttl
        self.max_staleness = max_staleness
        self._clock = clock
        self._timer = timer

        self._selected: Optional[Endpoint] = None
        self._selected_at: Optional[float] = None

    @property
    def cached(self) -> Optional[Endpoint]:
        """The cached endpoint, or None when absent or expired."""
        if self._selected is None or self._selected_at is None:
            return None
        if self._clock() - self._selected_at >= self.ttl:
            return None
        return self._selected

    def invalidate(self) -> None:
        self._selected = None
        self._selected_at = None

    def select(self) -> Endpoint:
        cached = self.cached
        if cached is not None:
            return cached

        best = None
        for url in self.urls:
            candidate = self.probe(url)
            if candidate is None:
                continue
            if best is None or candidate.latency < best.latency:
                best = candidate

        if best is None:
            if self.fallback == FALLBACK_FAIL:
                raise NoHealthyEndpoint(f"None of {len(self.urls)} RPC endpoints is synchronized")
            best = Endpoint(url=self.urls[0], web3=self._connect(self.urls[0]))
            logger.warning(f"No suitable RPC found. Using fallback: {best.url}")
        else:
            logger.info(f"Selected stable RPC: {best.url} (latency {best.latency_ms}ms)")

        self._selected = best
        self._selected_at = self._clock()
        return best

    def probe(self, url: str) -> Optional[Endpoint]:
        """Measure one candidate. Returns None when it errors or lags behind."""
        try:
            w3 = self._connect(url)
            start = self._timer()
            block = w3.eth.get_block("latest")
            latency = self._timer() - start
            staleness = self._clock() - int(block["timestamp"])
        except Exception as e:
            logger.warning(f"RPC {url} error: {e}")
            return None

        if staleness > self.max_staleness:
            logger.warning(f"RPC {url} is not synchronized (block time difference {int(staleness)} seconds).")
            return None
        return Endpoint(url=url, web3=w3, latency=latency, staleness=staleness)
