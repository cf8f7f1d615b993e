import logging
import random
import time
from dataclasses import dataclass, field
from typing import List, Tuple

from .ledger import QuotaExhausted
from .log import success

logger = logging.getLogger(__name__)

DELAY_WINDOW = (10, 60)


@dataclass
class BatchResult:
    attempted: int = 0
    confirmed: int = 0
    failed: List[str] = field(default_factory=list)
    skipped: int = 0


class BatchRunner:
    """Sends one transaction per recipient under the daily quota.

    Recipients already paid today are skipped, the work list is capped at the
    remaining quota, every send waits on the health gate, and successive
    sends are separated by a random pause.
    """

    def __init__(self, submitter, ledger, gate, delay_window: Tuple[float, float] = DELAY_WINDOW,
                 rng=random, sleep=time.sleep):
        self.submitter = submitter
        self.ledger = ledger
        self.gate = gate
        self.delay_window = delay_window
        self.rng = rng
        self._sleep = sleep

    def plan(self, recipients):
        processed = self.ledger.processed()
        seen = set()
        pending = []
        for recipient in recipients:
            key = recipient.lower()
            if key in processed or key in seen:
                continue
            seen.add(key)
            pending.append(recipient)
        return pending[:self.ledger.remaining_quota()]

    def run(self, recipients, payload, delay_window=None):
        lo, hi = delay_window or self.delay_window
        if lo < 0 or hi < lo:
            raise ValueError(f"Invalid delay window {lo}-{hi}")

        result = BatchResult()
        if not recipients:
            logger.warning("No recipient addresses to process.")
            return result
        processed = self.ledger.processed()
        unprocessed = [r for r in recipients if r.lower() not in processed]
        result.skipped = len(recipients) - len(unprocessed)
        if not unprocessed:
            logger.info("All addresses have been processed for today. Processing will continue tomorrow.")
            return result
        if self.ledger.remaining_quota() <= 0:
            logger.error(f"Daily limit of {self.ledger.limit} transactions reached. Please try again tomorrow.")
            return result

        work = self.plan(unprocessed)
        logger.info(f"Starting to send {len(work)} transactions...")

        for i, recipient in enumerate(work):
            self.gate.wait()
            result.attempted += 1
            logger.info(f"Transaction {i + 1}/{len(work)}: {recipient}")
            try:
                self.submitter.submit(payload(recipient))
            except Exception as e:
                result.failed.append(recipient)
                logger.error(f"Transfer to {recipient} failed: {e}")
            else:
                result.confirmed += 1
                try:
                    self.ledger.record_sent(recipient)
                except (OSError, QuotaExhausted) as e:
                    logger.error(f"Transfer to {recipient} confirmed but not recorded: {e}")
                else:
                    success(logger, "Transfer successful.")

            if i < len(work) - 1:
                pause = self.rng.uniform(lo, hi)
                logger.info(f"Waiting {pause:.2f} seconds before the next transaction...")
                self._sleep(pause)

        success(logger, f"Completed sending {result.confirmed} out of {len(work)} transactions.")
        return result

    def run_generated(self, count, payload, store, delay_window=None):
        """Fund `count` freshly generated wallets (bounded by the remaining quota)."""
        count = min(count, self.ledger.remaining_quota())
        if count <= 0:
            logger.error(f"Daily limit of {self.ledger.limit} transactions reached. Please try again tomorrow.")
            return BatchResult()
        recipients = store.generate(count)
        return self.run(recipients, payload, delay_window)
