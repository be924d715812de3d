from copy import deepcopy
from itertools import count
from types import SimpleNamespace
from urllib.parse import urlsplit

import pytest

from app import create_app
from chain_client import ChainClient, current_day
from errors import Conflict, EventNotFound, NotFound, TransactionReverted
from services import EXTENSION_KEY, Services
from transaction_tracker import TransactionTracker
from wallet_session import WalletSession

ACCOUNT = '0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1'
OTHER_ACCOUNT = '0xFFcf8FDEE72ac11b5c542428B35EEF5769C409f0'
GREETING_FEE = '0.001'
MINTING_FEE = '0.01'


@pytest.fixture
def app():
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite://',
        'RPC_URL': None,
        'API_BASE_URL': 'http://testserver',
    })
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_context(app):
    with app.app_context():
        yield


class FlaskClientResponse:
    def __init__(self, response):
        self._response = response
        self.status_code = response.status_code
        self.ok = response.status_code < 400

    def json(self):
        data = self._response.get_json()
        if data is None:
            raise ValueError('No JSON body')
        return data


class FlaskClientSession:
    """Routes ApiClient calls into the Flask test client instead of the network."""

    def __init__(self, client):
        self.client = client
        self.calls = []

    def request(self, method, url, json=None, timeout=None):
        path = urlsplit(url).path
        self.calls.append((method, path))
        return FlaskClientResponse(self.client.open(path, method=method, json=json))


class FakeManager:
    def __init__(self, accounts=None, error=None):
        self.accounts = accounts or []
        self.error = error
        self.requests = []

    def request_blocking(self, method, params):
        self.requests.append(method)
        if self.error:
            raise self.error
        return list(self.accounts)


def fake_web3(accounts=None, chain_id=1, error=None):
    return SimpleNamespace(manager=FakeManager(accounts, error), eth=SimpleNamespace(chain_id=chain_id))


class FakeChain:
    """In-memory stand-in for ChainClient."""

    greeting_status = ChainClient.greeting_status

    def __init__(self, last_day=None, token_id='1', mined_status=1, confirm_error=None):
        self.last_day = last_day
        self.token_id = token_id
        self.mined_status = mined_status
        self.confirm_error = confirm_error
        self.receipts = {}
        self.submitted = []
        self._hashes = count(1)

    def _next_hash(self):
        return '0x' + format(next(self._hashes), '064x')

    def get_last_greeting_day(self, address):
        return self.last_day

    def submit_greeting(self, signer, message, fee_eth):
        tx_hash = self._next_hash()
        self.submitted.append(('greet', signer.address, message, fee_eth, tx_hash))
        return tx_hash

    def mint_nft(self, signer, owner_address, token_uri, fee_eth):
        tx_hash = self._next_hash()
        self.submitted.append(('mint', owner_address, token_uri, fee_eth, tx_hash))
        return tx_hash

    def await_mined(self, tx_hash, timeout=None):
        if self.confirm_error:
            raise self.confirm_error
        if self.mined_status != 1:
            raise TransactionReverted(f'Transaction {tx_hash} failed on-chain')
        receipt = {'status': 1, 'transactionHash': tx_hash, 'logs': []}
        self.receipts[tx_hash] = receipt
        return receipt

    def get_receipt(self, tx_hash):
        return self.receipts.get(tx_hash)

    def extract_minted_token_id(self, receipt):
        if self.token_id is None:
            raise EventNotFound('No NFTMinted event in receipt')
        return self.token_id


class FakeApi:
    """In-memory stand-in for ApiClient with the same return shapes."""

    def __init__(self):
        self.transactions = []
        self.nfts = []
        self.invalidated = []
        self._ids = count(1)

    def list_transactions(self, address):
        return [deepcopy(t) for t in self.transactions if t['userAddress'].lower() == address.lower()]

    def create_transaction(self, record):
        if any(t['txHash'] == record['txHash'] for t in self.transactions):
            raise Conflict(f"Transaction {record['txHash']} already exists")
        created = dict(record, id=next(self._ids))
        self.transactions.append(created)
        return deepcopy(created)

    def update_transaction_status(self, tx_hash, status):
        for txn in self.transactions:
            if txn['txHash'] == tx_hash:
                txn['status'] = status
                return deepcopy(txn)
        raise NotFound(f'Transaction {tx_hash} not found')

    def list_nfts(self, address):
        return [deepcopy(n) for n in self.nfts if n['ownerAddress'].lower() == address.lower()]

    def create_nft(self, record):
        if any(n['tokenId'] == record['tokenId'] for n in self.nfts):
            raise Conflict(f"NFT {record['tokenId']} already exists")
        created = dict(record, id=next(self._ids))
        self.nfts.append(created)
        return deepcopy(created)

    def update_nft_token_uri(self, token_id, uri):
        for nft in self.nfts:
            if nft['tokenId'] == token_id:
                nft['tokenURI'] = uri
                return deepcopy(nft)
        raise NotFound(f'NFT {token_id} not found')

    def invalidate_transactions(self, address):
        self.invalidated.append(('transactions', address))

    def invalidate_nfts(self, address):
        self.invalidated.append(('nfts', address))


@pytest.fixture
def connected_wallet():
    wallet = WalletSession(fake_web3([ACCOUNT]), expected_chain_id=1)
    wallet.connect()
    return wallet


@pytest.fixture
def fake_chain():
    return FakeChain()


@pytest.fixture
def fake_api():
    return FakeApi()


@pytest.fixture
def tracker(connected_wallet, fake_chain, fake_api):
    return TransactionTracker(connected_wallet, fake_chain, fake_api, GREETING_FEE, MINTING_FEE)


@pytest.fixture
def wired_app(app, connected_wallet, fake_chain, fake_api, tracker):
    """App whose views run against the in-memory chain and API fakes."""
    app.extensions[EXTENSION_KEY] = Services(connected_wallet, fake_chain, fake_api, tracker)
    return app


@pytest.fixture
def today():
    return current_day()
