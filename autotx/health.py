import logging
import time

from web3 import Web3

from .endpoints import MAX_STALENESS, head_staleness
from .errors import HealthTimeout

logger = logging.getLogger(__name__)

POLL_INTERVAL = 10
MIN_BALANCE = Web3.to_wei(0.01, 'ether')


class HealthGate:
    """Blocks sends until the head is fresh and the account is funded.

    Unbounded unless `max_polls` or `timeout` is given, in which case
    HealthTimeout is raised when the bound is hit.
    """

    def __init__(
        self,
        context,
        min_balance=MIN_BALANCE,
        max_staleness=MAX_STALENESS,
        interval=POLL_INTERVAL,
        clock=time.time,
        sleep=time.sleep,
    ):
        self.context = context
        self.min_balance = min_balance
        self.max_staleness = max_staleness
        self.interval = interval
        self._clock = clock
        self._sleep = sleep

    def check(self):
        try:
            w3 = self.context.web3
            staleness = head_staleness(w3, self._clock())
            if staleness > self.max_staleness:
                logger.warning(f"Blockchain is not updating quickly (head is {int(staleness)} seconds old).")
                return False
            if self.context.balance() < self.min_balance:
                logger.warning("Wallet balance is insufficient.")
                return False
        except Exception as e:
            logger.error(f"Error monitoring network: {e}")
            return False
        return True

    def wait(self, max_polls=None, timeout=None):
        deadline = None if timeout is None else self._clock() + timeout
        polls = 0
        while not self.check():
            polls += 1
            if max_polls is not None and polls >= max_polls:
                raise HealthTimeout(f"Network still unhealthy after {polls} checks")
            if deadline is not None and self._clock() >= deadline:
                raise HealthTimeout(f"Network still unhealthy after {timeout} seconds")
            logger.warning(f"RPC/network conditions are not normal, waiting {self.interval} seconds...")
            self._sleep(self.interval)
