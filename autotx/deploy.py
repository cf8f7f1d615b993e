"""
Token deployment.

    COLLECT_PARAMETERS -> COMPILE -> SUBMIT_CREATION -> AWAIT_CONFIRMATION
        -> PERSIST_ADDRESS -> VERIFY -> DONE | UNVERIFIED

Hardhat is installed and configured before COMPILE; declining that setup
or anything failing up to and including AWAIT_CONFIRMATION aborts with
DeploymentError. Verification is best effort and never aborts a deployed
contract.
"""
import enum
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional

from web3 import Web3

from . import token
from .config import persist_env
from .errors import BuildError, DeploymentError
from .hardhat import InstallFailed
from .log import success

logger = logging.getLogger(__name__)


class DeployState(enum.Enum):
    COLLECT_PARAMETERS = "collect-parameters"
    COMPILE = "compile"
    SUBMIT_CREATION = "submit-creation"
    AWAIT_CONFIRMATION = "await-confirmation"
    PERSIST_ADDRESS = "persist-address"
    VERIFY = "verify"
    DONE = "done"
    UNVERIFIED = "unverified"


@dataclass
class TokenParams:
    name: str
    symbol: str
    decimals: int
    total_supply: str

    @classmethod
    def parse(cls, name, symbol, decimals, total_supply):
        name, symbol = name.strip(), symbol.strip()
        if not name or not symbol:
            raise ValueError("Contract name and symbol are required")
        try:
            decimals = int(str(decimals).strip() or 18)
            supply = Decimal(str(total_supply).strip())
        except (ValueError, InvalidOperation):
            raise ValueError("Decimals and total supply must be valid numbers")
        if not 0 < decimals <= 255:
            raise ValueError("Decimals must be between 1 and 255")
        if not supply.is_finite() or supply <= 0:
            raise ValueError("Total supply must be greater than 0")
        token.to_units(supply, decimals)
        return cls(name=name, symbol=symbol, decimals=decimals, total_supply=str(total_supply).strip())

    @property
    def supply_units(self):
        return token.to_units(self.total_supply, self.decimals)

    def constructor_args(self):
        return [self.name, self.symbol, self.decimals, self.supply_units]


@dataclass
class DeploymentResult:
    params: TokenParams
    state: DeployState
    address: Optional[str] = None
    tx_hash: Optional[str] = None

    @property
    def verified(self):
        return self.state is DeployState.DONE


class DeploymentFlow:
    def __init__(self, settings, submitter, hardhat, confirm=lambda question: True, persist=persist_env):
        self.settings = settings
        self.submitter = submitter
        self.hardhat = hardhat
        self.confirm = confirm
        self.persist = persist
        self.state = DeployState.COLLECT_PARAMETERS

    def _enter(self, state):
        logger.debug(f"Deployment: {self.state.value} -> {state.value}")
        self.state = state

    def run(self, params: TokenParams) -> DeploymentResult:
        self._enter(DeployState.COMPILE)
        logger.info("Preparing to deploy contract...")
        try:
            if not self.hardhat.ensure_ready(self.confirm):
                raise DeploymentError("Hardhat is required to compile the contract")
            self.hardhat.write_config()
            artifact = self.hardhat.compile()
        except InstallFailed:
            raise
        except (BuildError, OSError) as e:
            raise DeploymentError(str(e)) from e

        self._enter(DeployState.SUBMIT_CREATION)
        logger.info("Sending deploy transaction...")
        try:
            data = token.creation_data(artifact.abi, artifact.bytecode, params.constructor_args())
            receipt = self.submitter.submit({'data': data, 'value': 0})
        except Exception as e:
            raise DeploymentError(f"Deployment transaction failed: {e}") from e

        self._enter(DeployState.AWAIT_CONFIRMATION)
        address = receipt.get('contractAddress')
        if not address:
            raise DeploymentError("Deployment receipt carries no contract address")
        address = Web3.to_checksum_address(address)
        tx_hash = Web3.to_hex(receipt['transactionHash'])
        success(logger, f"Contract deployed at address: {address}")

        self._enter(DeployState.PERSIST_ADDRESS)
        self.settings.contract_address = address
        try:
            self.persist(self.settings.env_file, "CONTRACT_ADDRESS", address)
        except OSError as e:
            logger.error(f"Could not save CONTRACT_ADDRESS={address} to {self.settings.env_file}: {e}")

        self._enter(DeployState.VERIFY)
        logger.info("Automatically verifying contract with Hardhat...")
        try:
            verified = self.hardhat.verify(address, params.constructor_args())
        except (BuildError, OSError) as e:
            logger.error(f"Contract verification failed: {e}")
            verified = False
        if verified:
            success(logger, "Contract verified successfully.")
            self._enter(DeployState.DONE)
        else:
            logger.warning("Contract not auto-verified. Please verify manually if necessary.")
            self._enter(DeployState.UNVERIFIED)

        result = DeploymentResult(params=params, state=self.state, address=address, tx_hash=tx_hash)
        log_summary(result, self.settings.tx_url(tx_hash))
        return result


def log_summary(result: DeploymentResult, tx_url=None):
    p = result.params
    logger.info(
        "Contract Details:\n"
        f"- Name: {p.name}\n"
        f"- Symbol: {p.symbol}\n"
        f"- Decimals: {p.decimals}\n"
        f"- Total Supply: {p.total_supply} (equivalent to {p.supply_units} smallest units)\n"
        f"- Address: {result.address}\n"
        f"- Deploy Tx: {tx_url or result.tx_hash}\n"
        f"- Verification Status: {'Verified' if result.verified else 'Not Verified'}"
    )
