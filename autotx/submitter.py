"""
Single-transaction submission with retries.

A send is built from the account's pending nonce and the current gas price,
signed locally and pushed as a raw transaction, then awaited until it is
mined. Failures are classified (see errors.classify):

    nonce too low    -> wait NONCE_DELAY, retry with a fresh nonce
    fee/gas too low  -> refresh gas price, bump by GAS_BUMP_PERCENT, retry
    network          -> wait NETWORK_DELAY, re-select endpoint, retry
    anything else    -> raise at once

Each retry consumes one of `max_retries` attempts. Once a transaction has
been accepted by the node it is never re-sent: confirmation failures are
terminal.
"""
import logging
import time
from dataclasses import dataclass
from typing import Optional

from web3 import Web3
from web3.exceptions import TimeExhausted

from .errors import ErrorKind, SubmissionFailed, TransactionReverted, classify
from .revert import revert_reason

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
NONCE_DELAY = 5
NETWORK_DELAY = 10
GAS_BUMP_PERCENT = 120
GAS_BUFFER_PERCENT = 120

TRANSFER_GAS_LIMIT = 40000
CALL_GAS_LIMIT = 200000
CREATE_GAS_LIMIT = 3000000


@dataclass
class PendingTransaction:
    to: Optional[str]
    value: int
    data: Optional[str] = None
    gas_price: Optional[int] = None
    nonce: Optional[int] = None
    attempts: int = 0

    @property
    def label(self):
        return self.to or "contract creation"


def fallback_gas_limit(tx):
    if not tx.get('to'):
        return CREATE_GAS_LIMIT
    if tx.get('data'):
        return CALL_GAS_LIMIT
    return TRANSFER_GAS_LIMIT


class TransactionSubmitter:
    def __init__(
        self,
        context,
        chain_id=None,
        explorer_url=None,
        confirmation_timeout=600,
        poll_latency=2,
        sleep=time.sleep,
    ):
        self.context = context
        self.chain_id = chain_id
        self.explorer_url = explorer_url.rstrip('/') if explorer_url else None
        self.confirmation_timeout = confirmation_timeout
        self.poll_latency = poll_latency
        self._sleep = sleep

    def submit(self, tx_params, max_retries=MAX_RETRIES, gas_price=None):
        """Send `tx_params` ({'to', 'value', 'data'}) and return the mined receipt."""
        pending = PendingTransaction(
            to=tx_params.get('to'),
            value=tx_params.get('value', 0),
            data=tx_params.get('data'),
            gas_price=gas_price,
        )
        last_error = None

        while pending.attempts < max_retries:
            try:
                return self._send(pending, tx_params.get('gas'))
            except (SubmissionFailed, TransactionReverted, TimeExhausted):
                raise
            except Exception as e:
                kind = classify(e)
                if kind is ErrorKind.UNCLASSIFIED:
                    raise
                pending.attempts += 1
                last_error = e
                remaining = max_retries - pending.attempts

                if kind is ErrorKind.NONCE_TOO_LOW:
                    logger.warning(f"Nonce {pending.nonce} is too low, fetching the latest nonce... ({pending.attempts}/{max_retries})")
                    if remaining:
                        self._sleep(NONCE_DELAY)
                elif kind is ErrorKind.UNDERPRICED:
                    if remaining:
                        pending.gas_price = self._bumped_gas_price(pending.gas_price)
                        logger.warning(f"Fee is too low, increasing gas price to {pending.gas_price} wei ({pending.attempts}/{max_retries})")
                else:
                    logger.warning(f"Transaction failed due to server/DNS error: {e}. Retrying ({pending.attempts}/{max_retries})...")
                    if remaining:
                        self._sleep(NETWORK_DELAY)
                        self.context.selector.invalidate()

        raise SubmissionFailed(
            f"Transaction to {pending.label} failed after {pending.attempts} attempts: {last_error}",
            attempts=pending.attempts,
            last_error=last_error,
        )

    def _send(self, pending, gas=None):
        w3 = self.context.web3
        if pending.gas_price is None:
            pending.gas_price = self.context.gas_price()
        pending.nonce = self.context.pending_nonce()

        tx = {
            'nonce': pending.nonce,
            'value': pending.value,
            'gasPrice': pending.gas_price,
            'chainId': self.chain_id or w3.eth.chain_id,
        }
        if pending.to:
            tx['to'] = Web3.to_checksum_address(pending.to)
        if pending.data:
            tx['data'] = pending.data
        tx['gas'] = gas or self.estimate_gas(w3, tx)

        signed = self.context.sign(tx)
        tx_hash = Web3.to_hex(w3.eth.send_raw_transaction(signed.raw_transaction))
        logger.info(f"Tx Hash: {tx_hash}")
        if self.explorer_url:
            logger.info(f"Explorer: {self.explorer_url}/tx/{tx_hash}")

        logger.info("Waiting for transaction confirmation...")
        try:
            receipt = w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.confirmation_timeout, poll_latency=self.poll_latency
            )
        except TimeExhausted:
            raise
        except Exception as e:
            raise SubmissionFailed(f"Lost track of {tx_hash} while waiting for confirmation: {e}", last_error=e) from e
        if receipt['status'] == 0:
            raise TransactionReverted(tx_hash, revert_reason(w3, tx_hash, receipt['blockNumber']))
        return receipt

    def _bumped_gas_price(self, previous):
        try:
            current = self.context.gas_price()
        except Exception as e:
            logger.warning(f"Could not refresh gas price ({e}), bumping the previous one")
            current = previous
        return current * GAS_BUMP_PERCENT // 100

    def estimate_gas(self, w3, tx):
        call = {k: v for k, v in tx.items() if k in ('to', 'value', 'data')}
        call['from'] = self.context.address
        try:
            estimated_gas = w3.eth.estimate_gas(call)
            return estimated_gas * GAS_BUFFER_PERCENT // 100  # Add 20% buffer to avoid out-of-gas errors
        except Exception as e:
            limit = fallback_gas_limit(tx)
            logger.debug(f"Gas estimation failed ({e}), using {limit}")
            return limit
