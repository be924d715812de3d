import logging
import time
from datetime import datetime, timezone
from decimal import Decimal

import requests
from eth_abi.exceptions import DecodingError
from web3 import Web3
from web3.exceptions import TimeExhausted, TransactionNotFound, Web3Exception

from errors import (
    ConfirmationTimeout,
    EventNotFound,
    InsufficientFunds,
    RpcError,
    TransactionRejected,
    TransactionReverted,
)

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000

# EIP-1193 "user rejected request"
USER_REJECTED_CODE = 4001

PROVIDER_ERRORS = (Web3Exception, ValueError, requests.exceptions.RequestException)

GREETER_ABI = [
    {
        "inputs": [{"internalType": "address", "name": "user", "type": "address"}],
        "name": "getLastGreetingDay",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "string", "name": "message", "type": "string"}],
        "name": "greet",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    }
]

NFT_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "string", "name": "tokenURI", "type": "string"}
        ],
        "name": "mintNFT",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "payable",
        "type": "function"
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "tokenId", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "owner", "type": "address"},
            {"indexed": False, "internalType": "string", "name": "tokenURI", "type": "string"}
        ],
        "name": "NFTMinted",
        "type": "event"
    }
]

NFT_MINTED_EVENT = 'NFTMinted'
# The token id is the first argument of the mint event
NFT_MINTED_TOKEN_ARG = next(
    entry['inputs'][0]['name'] for entry in NFT_ABI
    if entry['type'] == 'event' and entry['name'] == NFT_MINTED_EVENT
)


def make_web3(rpc_url, timeout=60):
    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={'timeout': timeout}))


def _rpc_error_payload(exc):
    response = getattr(exc, 'rpc_response', None)
    if isinstance(response, dict) and isinstance(response.get('error'), dict):
        return response['error']
    if exc.args and isinstance(exc.args[0], dict):
        return exc.args[0]
    return {}


def translate_provider_error(exc):
    """Map a provider/web3 exception onto the chain error taxonomy."""
    if isinstance(exc, TimeExhausted):
        return ConfirmationTimeout(str(exc))

    payload = _rpc_error_payload(exc)
    code = payload.get('code')
    message = payload.get('message') or str(exc)
    lowered = message.lower()

    if code == USER_REJECTED_CODE or 'user rejected' in lowered or 'user denied' in lowered:
        return TransactionRejected(message)
    if 'insufficient funds' in lowered:
        return InsufficientFunds(message)
    return RpcError(message)


def current_day(now_ms=None):
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms // DAY_MS


def day_to_date(day):
    return datetime.fromtimestamp(day * DAY_MS / 1000, tz=timezone.utc).date().isoformat()


def can_send_greeting_today(last_day, today=None):
    """One greeting per UTC day: allowed if never sent or last sent before today."""
    if today is None:
        today = current_day()
    return last_day is None or last_day < today


class ChainClient:
    def __init__(self, web3, greeter_address, nft_address, confirmation_timeout=180):
        self.web3 = web3
        self.greeter_address = Web3.to_checksum_address(greeter_address)
        self.nft_address = Web3.to_checksum_address(nft_address)
        self.confirmation_timeout = confirmation_timeout
        self.greeter = web3.eth.contract(address=self.greeter_address, abi=GREETER_ABI)
        self.nft = web3.eth.contract(address=self.nft_address, abi=NFT_ABI)

    def get_last_greeting_day(self, address):
        try:
            day = self.greeter.functions.getLastGreetingDay(Web3.to_checksum_address(address)).call()
        except PROVIDER_ERRORS as e:
            logger.error(f'Error checking last greeting for {address}: {e}')
            raise translate_provider_error(e)
        # The registry stores 0 for accounts that never greeted
        return int(day) or None

    def greeting_status(self, address, now_ms=None):
        last_day = self.get_last_greeting_day(address)
        return {
            'lastGreetingDay': last_day,
            'lastGreetingDate': day_to_date(last_day) if last_day is not None else None,
            'canSendGreetingToday': can_send_greeting_today(last_day, current_day(now_ms)),
        }

    def submit_greeting(self, signer, message, fee_eth):
        value = Web3.to_wei(Decimal(str(fee_eth)), 'ether')
        tx_hash = signer.send(self.greeter.functions.greet(message), value)
        logger.info(f'Greeting submitted by {signer.address}: {tx_hash}')
        return tx_hash

    def mint_nft(self, signer, owner_address, token_uri, fee_eth):
        value = Web3.to_wei(Decimal(str(fee_eth)), 'ether')
        fn = self.nft.functions.mintNFT(Web3.to_checksum_address(owner_address), token_uri)
        tx_hash = signer.send(fn, value)
        logger.info(f'Mint submitted by {signer.address}: {tx_hash}')
        return tx_hash

    def await_mined(self, tx_hash, timeout=None):
        try:
            receipt = self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout or self.confirmation_timeout)
        except PROVIDER_ERRORS as e:
            raise translate_provider_error(e)

        if receipt['status'] != 1:
            raise TransactionReverted(f'Transaction {tx_hash} failed on-chain')
        return receipt

    def get_receipt(self, tx_hash):
        try:
            return self.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except PROVIDER_ERRORS as e:
            raise translate_provider_error(e)

    def extract_minted_token_id(self, receipt):
        event = getattr(self.nft.events, NFT_MINTED_EVENT)()
        for log in receipt['logs']:
            if str(log.get('address', '')).lower() != self.nft_address.lower():
                continue
            try:
                decoded = event.process_log(log)
            except (Web3Exception, DecodingError, ValueError):
                continue
            return str(decoded['args'][NFT_MINTED_TOKEN_ARG])

        raise EventNotFound(f'No {NFT_MINTED_EVENT} event in receipt')
