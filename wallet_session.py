import logging

from eth_account import Account
from web3 import Web3

from chain_client import translate_provider_error, PROVIDER_ERRORS
from errors import ProviderUnavailable, WrongNetwork

logger = logging.getLogger(__name__)

CONNECTED = 'connected'
DISCONNECTED = 'disconnected'
WRONG_NETWORK = 'wrong_network'


class Signer:
    """Sends value-bearing contract calls on behalf of one account.

    With a local key the transaction is built, signed and broadcast as a raw
    transaction; otherwise the node holding the account signs it.
    """

    def __init__(self, web3, address, account=None, chain_id=None):
        self.web3 = web3
        self.address = address
        self.account = account
        self.chain_id = chain_id

    def send(self, contract_function, value_wei):
        try:
            if self.account is not None:
                tx = contract_function.build_transaction({
                    'from': self.address,
                    'value': value_wei,
                    'nonce': self.web3.eth.get_transaction_count(self.address, 'pending'),
                    'chainId': self.chain_id,
                })
                signed = self.account.sign_transaction(tx)
                tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
            else:
                tx_hash = contract_function.transact({'from': self.address, 'value': value_wei})
        except PROVIDER_ERRORS as e:
            raise translate_provider_error(e)
        return Web3.to_hex(tx_hash)


class WalletSession:
    """Connected account and network state for the configured provider.

    Built once per application and shared by the views and the tracker.
    """

    def __init__(self, web3=None, expected_chain_id=1, private_key=None):
        self.web3 = web3
        self.expected_chain_id = expected_chain_id
        self.account = Account.from_key(private_key) if private_key else None
        self.address = None
        self.network_status = DISCONNECTED
        # Set by disconnect(); only an explicit connect() clears it
        self.user_disconnected = False

    @property
    def provider_available(self):
        return self.web3 is not None

    @property
    def is_connected(self):
        return self.address is not None and self.network_status == CONNECTED

    def _accounts(self, interactive):
        if self.account is not None:
            return [self.account.address]
        method = 'eth_requestAccounts' if interactive else 'eth_accounts'
        return list(self.web3.manager.request_blocking(method, []) or [])

    def _apply_accounts(self, accounts):
        if not accounts:
            self.address = None
            self.network_status = DISCONNECTED
            return self.network_status

        self.address = accounts[0]
        chain_id = self.web3.eth.chain_id
        if chain_id == self.expected_chain_id:
            self.network_status = CONNECTED
        else:
            self.network_status = WRONG_NETWORK
            logger.warning(f'Wallet {self.address} is on chain {chain_id}, expected {self.expected_chain_id}')
        return self.network_status

    def connect(self):
        if not self.provider_available:
            raise ProviderUnavailable('No wallet provider detected')

        try:
            accounts = self._accounts(interactive=True)
            status = self._apply_accounts(accounts)
        except PROVIDER_ERRORS as e:
            logger.error(f'Error connecting wallet: {e}')
            raise translate_provider_error(e)

        self.user_disconnected = False
        logger.info(f'Wallet connect: {self.address} ({status})')
        return status

    def check_connection(self):
        """Restore an already-authorized session without prompting."""
        if self.user_disconnected or not self.provider_available:
            return self.network_status

        try:
            return self._apply_accounts(self._accounts(interactive=False))
        except PROVIDER_ERRORS as e:
            logger.error(f'Error checking connection: {e}')
            return self.network_status

    def disconnect(self):
        self.user_disconnected = True
        self.address = None
        self.network_status = DISCONNECTED

    def network_warning(self):
        if self.network_status != WRONG_NETWORK:
            return None
        return WrongNetwork(f'Please switch your wallet to chain {self.expected_chain_id}')

    def get_signer(self):
        if not self.provider_available or not self.address:
            return None
        return Signer(self.web3, self.address, account=self.account, chain_id=self.expected_chain_id)
