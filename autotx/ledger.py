"""
Daily quota bookkeeping.

Two JSON files live in the state directory and are rewritten whole on every
update:

    daily_counter.json        {"date": "YYYY-MM-DD", "count": 12}
    processed_addresses.json  {"date": "YYYY-MM-DD", "addresses": ["0xab...", ...]}

A file whose date is not today reads as empty. One process per state
directory; there is no locking.
"""
import datetime
import json
import logging
import os
import tempfile
from pathlib import Path

from .config import DAILY_LIMIT
from .errors import AutoTxError

logger = logging.getLogger(__name__)

COUNTER_FILE = "daily_counter.json"
PROCESSED_FILE = "processed_addresses.json"


class QuotaExhausted(AutoTxError):
    pass


def write_json(path, data):
    """Replace `path` with `data` via a temp file in the same directory."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, path)
    except BaseException:
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise


def read_json(path):
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path) as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Ignoring unreadable state file {path}: {e}")
        return None


class QuotaLedger:
    def __init__(self, state_dir=".", limit=DAILY_LIMIT, today=datetime.date.today):
        self.state_dir = Path(state_dir)
        self.limit = limit
        self._today = today

    @property
    def counter_path(self):
        return self.state_dir / COUNTER_FILE

    @property
    def processed_path(self):
        return self.state_dir / PROCESSED_FILE

    def today(self):
        return self._today().isoformat()

    def _load(self, path, key, empty):
        today = self.today()
        data = read_json(path)
        if not isinstance(data, dict) or data.get("date") != today or key not in data:
            return {"date": today, key: empty}
        return data

    def count(self):
        return int(self._load(self.counter_path, "count", 0)["count"])

    def remaining_quota(self):
        return max(0, self.limit - self.count())

    def processed(self):
        data = self._load(self.processed_path, "addresses", [])
        return {address.lower() for address in data["addresses"]}

    def is_processed(self, recipient):
        return recipient.lower() in self.processed()

    def record_sent(self, recipient):
        """Count one confirmed transaction to `recipient` against today's quota."""
        counter = self._load(self.counter_path, "count", 0)
        if counter["count"] >= self.limit:
            raise QuotaExhausted(f"Daily limit of {self.limit} transactions reached")
        processed = self._load(self.processed_path, "addresses", [])

        previous = list(processed["addresses"])
        address = recipient.lower()
        if address not in processed["addresses"]:
            processed["addresses"].append(address)
        counter["count"] = int(counter["count"]) + 1

        write_json(self.processed_path, processed)
        try:
            write_json(self.counter_path, counter)
        except OSError:
            # both files move together or not at all
            processed["addresses"] = previous
            write_json(self.processed_path, processed)
            raise
        return counter["count"]
