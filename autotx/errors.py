import enum
import re

import requests
from web3.exceptions import Web3RPCError


class AutoTxError(Exception):
    pass


class ConfigError(AutoTxError):
    """Required configuration is missing or malformed."""


class NoHealthyEndpoint(AutoTxError):
    """No RPC candidate passed the freshness check and fallback is disabled."""


class SubmissionFailed(AutoTxError):
    def __init__(self, message, attempts=0, last_error=None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


class TransactionReverted(AutoTxError):
    def __init__(self, tx_hash, reason=None):
        super().__init__(f"Transaction {tx_hash} reverted: {reason or 'unknown reason'}")
        self.tx_hash = tx_hash
        self.reason = reason


class HealthTimeout(AutoTxError):
    """The network health gate gave up after its configured bound."""


class BuildError(AutoTxError):
    """Hardhat compilation failed or produced no artifact."""


class DeploymentError(AutoTxError):
    pass


class ErrorKind(enum.Enum):
    NONCE_TOO_LOW = "nonce-too-low"
    UNDERPRICED = "underpriced"
    NETWORK = "network"
    UNCLASSIFIED = "unclassified"


_GATEWAY_STATUSES = (502, 503, 504)
_GATEWAY_CODE = re.compile(r"\b50[234]\b")
_NETWORK_MARKERS = (
    "gateway",
    "enotfound",
    "name or service not known",
    "temporary failure in name resolution",
    "nodename nor servname provided",
)


def error_message(exc):
    """Best human-readable message, preferring the JSON-RPC error body."""
    if isinstance(exc, Web3RPCError):
        response = getattr(exc, "rpc_response", None) or {}
        error = response.get("error") if isinstance(response, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    if exc.args and isinstance(exc.args[0], dict) and "message" in exc.args[0]:
        return str(exc.args[0]["message"])
    return str(exc)


def classify(exc):
    """Map a submission failure to the remediation the submitter applies."""
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return ErrorKind.NETWORK
    if isinstance(exc, requests.exceptions.HTTPError):
        response = exc.response
        if response is not None and response.status_code in _GATEWAY_STATUSES:
            return ErrorKind.NETWORK

    # Fallback: match on the node's wording.
    msg = error_message(exc).lower()
    if "nonce" in msg and "too low" in msg:
        return ErrorKind.NONCE_TOO_LOW
    if ("fee" in msg or "gas" in msg) and "too low" in msg:
        return ErrorKind.UNDERPRICED
    if "underpriced" in msg:
        return ErrorKind.UNDERPRICED
    if _GATEWAY_CODE.search(msg) or any(marker in msg for marker in _NETWORK_MARKERS):
        return ErrorKind.NETWORK
    return ErrorKind.UNCLASSIFIED
