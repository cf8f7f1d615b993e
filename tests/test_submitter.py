import logging

import pytest
import requests
from web3 import Web3
from web3.exceptions import Web3RPCError

from autotx.errors import SubmissionFailed, TransactionReverted
from utils import address

GWEI = Web3.to_wei(1, 'gwei')


def test_submit_signs_with_pending_nonce_and_network_gas_price(submitter, context, chain, caplog):
    caplog.set_level(logging.INFO)
    chain.eth.nonce = 7

    receipt = submitter.submit({'to': address(1), 'value': 10})

    assert receipt['status'] == 1
    tx = context.signed[0]
    assert tx['nonce'] == 7
    assert tx['gasPrice'] == GWEI
    assert tx['chainId'] == 10218
    assert tx['gas'] == 25200, "Gas estimate should carry a 20% buffer"
    assert tx['to'] == address(1)
    assert "https://explorer.test/tx/0x" in caplog.text


def test_caller_gas_price_override_skips_network_price(submitter, context, chain):
    submitter.submit({'to': address(1), 'value': 1}, gas_price=5 * GWEI)
    assert context.signed[0]['gasPrice'] == 5 * GWEI
    assert chain.eth.gas_price_calls == 0


def test_nonce_too_low_retries_with_fresh_nonce(submitter, context, chain, sleep):
    chain.eth.nonce = 3
    chain.eth.nonce_bump_on_error = 1
    chain.eth.send_errors = [ValueError({'code': -32000, 'message': 'nonce too low'})]

    submitter.submit({'to': address(1), 'value': 1})

    assert [tx['nonce'] for tx in context.signed] == [3, 4]
    assert sleep.calls == [5]
    assert len(chain.eth.sent) == 1


def test_nonce_too_low_raises_only_after_max_retries(submitter, context, chain, sleep):
    chain.eth.send_errors = [ValueError("nonce too low") for _ in range(3)]

    with pytest.raises(SubmissionFailed) as exc_info:
        submitter.submit({'to': address(1), 'value': 1}, max_retries=3)

    assert exc_info.value.attempts == 3
    assert "nonce too low" in str(exc_info.value.last_error)
    assert len(context.signed) == 3
    assert sleep.calls == [5, 5]


def test_structured_rpc_error_is_classified(submitter, context, chain):
    error = Web3RPCError(
        "{'code': -32000, 'message': 'nonce too low: next nonce 4, tx nonce 3'}",
        rpc_response={'jsonrpc': '2.0', 'id': 1, 'error': {'code': -32000, 'message': 'nonce too low: next nonce 4, tx nonce 3'}},
    )
    chain.eth.send_errors = [error]

    submitter.submit({'to': address(1), 'value': 1})
    assert len(context.signed) == 2


def test_underpriced_bumps_gas_price_by_twenty_percent(submitter, context, chain, sleep):
    chain.eth.send_errors = [ValueError("replacement transaction underpriced")]
    chain.eth.gas_price_value = 10 * GWEI

    submitter.submit({'to': address(1), 'value': 1})

    assert [tx['gasPrice'] for tx in context.signed] == [10 * GWEI, 12 * GWEI]
    assert sleep.calls == []


def test_underpriced_bump_survives_gas_price_refresh_failure(submitter, context, chain, monkeypatch):
    chain.eth.send_errors = [ValueError("transaction underpriced")]
    prices = iter([10 * GWEI])

    def gas_price():
        try:
            return next(prices)
        except StopIteration:
            raise requests.exceptions.ConnectionError("Connection refused")
    monkeypatch.setattr(context, "gas_price", gas_price)

    submitter.submit({'to': address(1), 'value': 1})

    assert [tx['gasPrice'] for tx in context.signed] == [10 * GWEI, 12 * GWEI]


def test_fee_too_low_is_underpriced(submitter, context, chain):
    chain.eth.send_errors = [ValueError("max fee per gas too low")]
    submitter.submit({'to': address(1), 'value': 1})
    assert context.signed[1]['gasPrice'] == GWEI * 120 // 100


def test_network_error_waits_and_reselects_endpoint(submitter, chain, sleep):
    chain.eth.send_errors = [requests.exceptions.ConnectionError("Max retries exceeded")]

    submitter.submit({'to': address(1), 'value': 1})

    assert sleep.calls == [10]
    assert chain.eth.block_calls == 2, "The endpoint should be re-probed after a transport failure"


def test_gateway_status_is_transient(submitter, chain, sleep):
    response = requests.Response()
    response.status_code = 502
    chain.eth.send_errors = [requests.exceptions.HTTPError("502 Server Error: Bad Gateway", response=response)]

    submitter.submit({'to': address(1), 'value': 1})
    assert sleep.calls == [10]


def test_unclassified_error_raises_without_retry(submitter, context, chain, sleep):
    chain.eth.send_errors = [ValueError("insufficient funds for gas * price + value")]

    with pytest.raises(ValueError, match="insufficient funds"):
        submitter.submit({'to': address(1), 'value': 1})

    assert len(context.signed) == 1
    assert sleep.calls == []


def test_reverted_receipt_raises_with_reason(submitter, context, chain):
    chain.eth.receipt_status = 0

    with pytest.raises(TransactionReverted) as exc_info:
        submitter.submit({'to': address(1), 'value': 1})

    assert "balance exceeded" in exc_info.value.reason
    assert len(context.signed) == 1


def test_contract_creation_has_no_recipient(submitter, context):
    submitter.submit({'data': '0x6080', 'value': 0})
    tx = context.signed[0]
    assert 'to' not in tx
    assert tx['data'] == '0x6080'
    assert tx['gas'] == 60000


def test_failed_estimate_falls_back_to_fixed_limit(submitter, context, chain, monkeypatch):
    def broken(tx):
        raise ValueError("execution reverted")

    monkeypatch.setattr(chain.eth, 'estimate_gas', broken)
    submitter.submit({'to': address(1), 'value': 1})
    assert context.signed[0]['gas'] == 40000


def test_confirmation_failure_is_not_resent(submitter, chain, sleep, monkeypatch):
    def lost(tx_hash, timeout=120, poll_latency=0.1):
        raise requests.exceptions.ConnectionError("connection reset")

    monkeypatch.setattr(chain.eth, 'wait_for_transaction_receipt', lost)
    with pytest.raises(SubmissionFailed, match="waiting for confirmation"):
        submitter.submit({'to': address(1), 'value': 1})

    assert len(chain.eth.sent) == 1
    assert sleep.calls == []
