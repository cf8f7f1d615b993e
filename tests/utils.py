import itertools

from hexbytes import HexBytes
from web3 import Web3

from autotx.account import AccountContext

# Well-known development key (hardhat/anvil account #0).
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SENDER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
START = 1_700_000_000.0


def address(i):
    return Web3.to_checksum_address(f"0x{i:040x}")


class FakeClock:
    def __init__(self, now=START):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingSleep:
    def __init__(self, clock=None):
        self.calls = []
        self.clock = clock

    def __call__(self, seconds):
        self.calls.append(seconds)
        if self.clock is not None:
            self.clock.advance(seconds)


class FakeProvider:
    def __init__(self, url):
        self.endpoint_uri = url


class FakeEth:
    """Just enough of `web3.eth` for probing, health checks and submission."""

    def __init__(self, clock, head_age=0, latency=0.05):
        self.clock = clock
        self.head_age = head_age
        self.latency = latency
        self.block_error = None
        self.balances = {}
        self.default_balance = Web3.to_wei(10, 'ether')
        self.nonce = 0
        self.gas_price_value = Web3.to_wei(1, 'gwei')
        self.gas_price_calls = 0
        self.chain_id = 10218
        self.send_errors = []
        self.nonce_bump_on_error = 0
        self.sent = []
        self.receipt_status = 1
        self.contract_address = None
        self.block_calls = 0
        self._hashes = itertools.count(1)

    def get_block(self, identifier):
        self.block_calls += 1
        self.clock.advance(self.latency)
        if self.block_error is not None:
            raise self.block_error
        return {'number': 100, 'timestamp': int(self.clock() - self.head_age)}

    def get_balance(self, addr):
        return self.balances.get(addr, self.default_balance)

    def get_transaction_count(self, addr, block_identifier='latest'):
        return self.nonce

    @property
    def gas_price(self):
        self.gas_price_calls += 1
        return self.gas_price_value

    def estimate_gas(self, tx):
        return 21000 if not tx.get('data') else 50000

    def send_raw_transaction(self, raw):
        if self.send_errors:
            self.nonce += self.nonce_bump_on_error
            raise self.send_errors.pop(0)
        self.sent.append(raw)
        self.nonce += 1
        return next(self._hashes).to_bytes(32, 'big')

    def wait_for_transaction_receipt(self, tx_hash, timeout=120, poll_latency=0.1):
        return {
            'status': self.receipt_status,
            'blockNumber': 101,
            'transactionHash': HexBytes(tx_hash),
            'contractAddress': self.contract_address,
        }

    def get_transaction(self, tx_hash):
        return {'from': SENDER, 'to': address(1), 'input': '0x', 'value': 0, 'gas': 21000, 'gasPrice': 1}

    def call(self, tx, block_identifier='latest'):
        raise ValueError("execution reverted: balance exceeded")


class FakeWeb3:
    def __init__(self, url, clock, **kwargs):
        self.provider = FakeProvider(url)
        self.eth = FakeEth(clock, **kwargs)


class RecordingContext(AccountContext):
    """Keeps every transaction dict handed to the signer."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.signed = []

    def sign(self, tx):
        self.signed.append(dict(tx))
        return super().sign(tx)


