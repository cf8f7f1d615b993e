"""ABI access for the CustomToken contract deployed by this tool."""
from decimal import Decimal, InvalidOperation

from web3 import Web3

TOKEN_ABI = [
    {"type": "constructor", "stateMutability": "nonpayable", "inputs": [
        {"name": "name_", "type": "string"},
        {"name": "symbol_", "type": "string"},
        {"name": "decimals_", "type": "uint8"},
        {"name": "totalSupply_", "type": "uint256"},
    ]},
    {"type": "function", "name": "name", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"type": "function", "name": "symbol", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "string"}]},
    {"type": "function", "name": "decimals", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "uint8"}]},
    {"type": "function", "name": "totalSupply", "stateMutability": "view", "inputs": [],
     "outputs": [{"name": "", "type": "uint256"}]},
    {"type": "function", "name": "balanceOf", "stateMutability": "view",
     "inputs": [{"name": "account", "type": "address"}],
     "outputs": [{"name": "", "type": "uint256"}]},
    {"type": "function", "name": "transfer", "stateMutability": "nonpayable",
     "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
     "outputs": [{"name": "", "type": "bool"}]},
    {"type": "function", "name": "sendNative", "stateMutability": "nonpayable",
     "inputs": [{"name": "to", "type": "address"}, {"name": "amount", "type": "uint256"}],
     "outputs": []},
    {"type": "receive", "stateMutability": "payable"},
]

# Encoding calldata needs no connection.
_offline = Web3()


def token_abi(artifact=None):
    """ABI from a compiled artifact when one is available, else the bundled one."""
    if artifact is not None and artifact.abi:
        return artifact.abi
    return TOKEN_ABI


def encoder(address, abi=TOKEN_ABI):
    return _offline.eth.contract(address=Web3.to_checksum_address(address), abi=abi)


def bind(w3, address, abi=TOKEN_ABI):
    return w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)


def call_data(address, fn_name, args, abi=TOKEN_ABI):
    return encoder(address, abi).encode_abi(fn_name, args=args)


def to_units(amount, decimals):
    """Decimal string/number -> integer smallest units, without float rounding.

    Raises ValueError for amounts that are not positive or carry more
    fractional digits than `decimals` allows.
    """
    try:
        units = Decimal(str(amount).strip()) * (Decimal(10) ** int(decimals))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount}")
    if not units.is_finite():
        raise ValueError(f"Invalid amount: {amount}")
    if units <= 0:
        raise ValueError(f"Amount must be greater than 0, got {amount}")
    if units != units.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
    return int(units)


def creation_data(abi, bytecode, args):
    """Bytecode with ABI-encoded constructor arguments appended."""
    return _offline.eth.contract(abi=abi, bytecode=bytecode).constructor(*args).data_in_transaction
