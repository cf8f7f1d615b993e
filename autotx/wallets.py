import json
import logging
from pathlib import Path

from eth_account import Account
from web3 import Web3

logger = logging.getLogger(__name__)

RECIPIENTS_FILE = "verified_addresses.txt"
GENERATED_WALLETS_FILE = "generated_wallets.jsonl"


def read_recipients(path):
    """Newline-delimited addresses; blank lines and `#` comments are skipped."""
    path = Path(path)
    if not path.exists():
        return []
    recipients = []
    with open(path) as f:
        for lineno, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            if not Web3.is_address(line):
                logger.warning(f"{path}:{lineno}: skipping invalid address {line!r}")
                continue
            recipients.append(line)
    return recipients


class WalletStore:
    """Append-only store of wallets generated as recipients.

    One JSON record per line: {"address": ..., "privateKey": ...}. These
    wallets only ever receive funds.
    """

    def __init__(self, path):
        self.path = Path(path)

    def load(self):
        if not self.path.exists():
            return []
        records = []
        with open(self.path) as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning(f"Skipping malformed wallet record in {self.path}")
        return records

    def addresses(self):
        return {record['address'].lower() for record in self.load() if 'address' in record}

    def generate(self, count, create=Account.create):
        """Create `count` new wallets, persist them, and return their addresses."""
        known = self.addresses()
        created = []
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'a') as f:
            while len(created) < count:
                account = create()
                if account.address.lower() in known:
                    continue
                known.add(account.address.lower())
                record = {'address': account.address, 'privateKey': Web3.to_hex(account.key)}
                f.write(json.dumps(record) + '\n')
                created.append(account.address)
        logger.info(f"Generated {len(created)} wallets, saved to {self.path}")
        return created
