from flask import current_app

from api_client import ApiClient
from chain_client import ChainClient, make_web3
from storage import Storage
from transaction_tracker import TransactionTracker
from wallet_session import WalletSession

EXTENSION_KEY = 'greetmint'


class Services:
    """Application-wide singletons, built once by the app factory."""

    def __init__(self, wallet, chain, api, tracker):
        self.wallet = wallet
        self.chain = chain
        self.api = api
        self.tracker = tracker

    @classmethod
    def from_config(cls, config, web3=None, api_session=None):
        if web3 is None and config.get('RPC_URL'):
            web3 = make_web3(config['RPC_URL'])

        wallet = WalletSession(
            web3,
            expected_chain_id=config['EXPECTED_CHAIN_ID'],
            private_key=config.get('WALLET_PRIVATE_KEY'),
        )
        chain = None
        if web3 is not None:
            chain = ChainClient(
                web3,
                config['GREETER_CONTRACT_ADDRESS'],
                config['NFT_CONTRACT_ADDRESS'],
                confirmation_timeout=config['CONFIRMATION_TIMEOUT'],
            )
        api = ApiClient(
            config['API_BASE_URL'],
            session=api_session,
            timeout=config['API_TIMEOUT'],
            cache_ttl=config['API_CACHE_TTL'],
        )
        tracker = TransactionTracker(
            wallet, chain, api,
            greeting_fee=config['GREETING_FEE'],
            minting_fee=config['NFT_MINTING_FEE'],
        )
        return cls(wallet, chain, api, tracker)


def get_services():
    return current_app.extensions[EXTENSION_KEY]


def get_storage():
    return Storage()
