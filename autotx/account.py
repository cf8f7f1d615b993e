import logging

from eth_account import Account

logger = logging.getLogger(__name__)


class AccountContext:
    """The single signing key, bound to whichever endpoint is currently selected.

    The binding is rebuilt lazily: every access goes through the selector, and
    when the selector hands back a different endpoint the account is rebound.
    """

    def __init__(self, private_key, selector):
        self.account = Account.from_key(private_key)
        self.selector = selector
        self._endpoint = None

    @property
    def address(self):
        return self.account.address

    @property
    def endpoint(self):
        endpoint = self.selector.select()
        if endpoint is not self._endpoint:
            if self._endpoint is not None:
                logger.debug(f"Rebinding {self.address} from {self._endpoint.url} to {endpoint.url}")
            self._endpoint = endpoint
        return endpoint

    @property
    def web3(self):
        return self.endpoint.web3

    def pending_nonce(self):
        return self.web3.eth.get_transaction_count(self.address, "pending")

    def balance(self):
        return self.web3.eth.get_balance(self.address)

    def gas_price(self):
        return self.web3.eth.gas_price

    def sign(self, tx):
        return self.account.sign_transaction(tx)
