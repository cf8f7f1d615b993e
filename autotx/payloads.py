"""What each batch send carries: a function of the recipient returning tx params."""
import logging
import random

from web3 import Web3

from . import token

logger = logging.getLogger(__name__)

MIN_NATIVE_AMOUNT = 0.001
MAX_NATIVE_AMOUNT = 0.01


class NativeTransfer:
    """Random native amount in [min_amount, max_amount], rounded to 4 decimals."""

    def __init__(self, min_amount=MIN_NATIVE_AMOUNT, max_amount=MAX_NATIVE_AMOUNT, symbol="TEA", rng=random):
        if min_amount <= 0 or max_amount < min_amount:
            raise ValueError(f"Invalid amount range {min_amount}-{max_amount}")
        self.min_amount = min_amount
        self.max_amount = max_amount
        self.symbol = symbol
        self.rng = rng

    def amount(self):
        return round(self.rng.uniform(self.min_amount, self.max_amount), 4)

    def __call__(self, recipient):
        amount = self.amount()
        logger.info(f"Sending {amount} {self.symbol} to {recipient}...")
        return {'to': Web3.to_checksum_address(recipient), 'value': Web3.to_wei(amount, 'ether')}


class ContractNativeTransfer(NativeTransfer):
    """Pays out of the token contract's own native balance via sendNative().

    Falls back to a plain wallet transfer when the contract cannot cover the amount.
    """

    def __init__(self, context, contract_address, abi=token.TOKEN_ABI, **kwargs):
        super().__init__(**kwargs)
        self.context = context
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.abi = abi

    def __call__(self, recipient):
        tx = super().__call__(recipient)
        contract_balance = self.context.web3.eth.get_balance(self.contract_address)
        if contract_balance < tx['value']:
            logger.warning("Contract native balance insufficient. Using main wallet...")
            return tx
        data = token.call_data(self.contract_address, 'sendNative', [tx['to'], tx['value']], self.abi)
        return {'to': self.contract_address, 'value': 0, 'data': data}


class TokenTransfer:
    """Fixed token amount (already in smallest units) via transfer()."""

    def __init__(self, contract_address, amount_units, symbol="", abi=token.TOKEN_ABI):
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.amount_units = int(amount_units)
        self.symbol = symbol
        self.abi = abi

    def __call__(self, recipient):
        recipient = Web3.to_checksum_address(recipient)
        logger.info(f"Sending {self.amount_units} units of {self.symbol or 'token'} to {recipient}...")
        data = token.call_data(self.contract_address, 'transfer', [recipient, self.amount_units], self.abi)
        return {'to': self.contract_address, 'value': 0, 'data': data}
