import logging
from datetime import datetime

from chain_client import can_send_greeting_today, current_day, day_to_date
from config import GREETING_MAX_LENGTH
from errors import Conflict, EventNotFound, SigningUnavailable, TransactionFailed, TransactionReverted
from formatting import create_nft_metadata

logger = logging.getLogger(__name__)

GREETING = 'greeting'
MINT = 'mint'

_FAILURE_MESSAGES = {
    GREETING: 'Failed to send greeting',
    MINT: 'Failed to mint NFT',
}


def greeting_message_valid(message):
    return bool(message) and len(message) <= GREETING_MAX_LENGTH


class TransactionTracker:
    """Runs the submit, record, confirm flow for greetings and mints.

    Holds no durable state: every record lives behind the persistence client.
    """

    def __init__(self, wallet, chain, api, greeting_fee, minting_fee):
        self.wallet = wallet
        self.chain = chain
        self.api = api
        self.fees = {GREETING: str(greeting_fee), MINT: str(minting_fee)}
        self.last_greeting_day = {}

    def _payload_ready(self, kind, payload):
        if kind == GREETING:
            return greeting_message_valid(payload.get('message'))
        return bool(payload.get('content'))

    def greeting_status(self, address):
        status = self.chain.greeting_status(address)
        # A greeting confirmed here may not be visible to the node yet
        sent_day = self.last_greeting_day.get(address.lower())
        if sent_day is not None and (status['lastGreetingDay'] is None or sent_day > status['lastGreetingDay']):
            status['lastGreetingDay'] = sent_day
            status['lastGreetingDate'] = day_to_date(sent_day)
            status['canSendGreetingToday'] = can_send_greeting_today(sent_day, current_day())
        return status

    def _submit(self, kind, payload, signer):
        fee = self.fees[kind]
        if kind == GREETING:
            message = payload['message']
            tx_hash = self.chain.submit_greeting(signer, message, fee)
            return tx_hash, {'message': message}, None

        title = payload.get('title') or ''
        content = payload['content']
        token_uri = create_nft_metadata(title, content)
        tx_hash = self.chain.mint_nft(signer, self.wallet.address, token_uri, fee)
        return tx_hash, {'title': title, 'content': content}, token_uri

    def _record_nft(self, receipt, account, tx_hash, metadata, token_uri):
        try:
            token_id = self.chain.extract_minted_token_id(receipt)
        except EventNotFound:
            logger.warning(f'Mint {tx_hash} confirmed without a mint event; skipping NFT record')
            return None

        return self.api.create_nft({
            'tokenId': token_id,
            'ownerAddress': account,
            'title': metadata['title'],
            'content': metadata['content'],
            'txHash': tx_hash,
            'createdAt': datetime.utcnow().isoformat(),
            'tokenURI': token_uri,
        })

    def execute(self, kind, payload):
        if kind not in self.fees:
            raise ValueError(f'Unknown transaction kind: {kind}')
        if not self.wallet.is_connected or not self._payload_ready(kind, payload):
            return None

        account = self.wallet.address
        record = None
        try:
            if kind == GREETING and not self.greeting_status(account)['canSendGreetingToday']:
                logger.info(f'{account} already greeted today; not submitting')
                return None

            signer = self.wallet.get_signer()
            if signer is None:
                raise SigningUnavailable('Failed to get signer')

            tx_hash, metadata, token_uri = self._submit(kind, payload, signer)

            # Recorded before confirmation so the history shows it immediately
            record = self.api.create_transaction({
                'txHash': tx_hash,
                'userAddress': account,
                'type': kind,
                'status': 'pending',
                'amount': self.fees[kind],
                'timestamp': datetime.utcnow().isoformat(),
                'metadata': metadata,
            })

            try:
                receipt = self.chain.await_mined(tx_hash)
            except TransactionReverted:
                self.api.update_transaction_status(tx_hash, 'failed')
                raise

            self.api.update_transaction_status(tx_hash, 'confirmed')

            if kind == MINT:
                self._record_nft(receipt, account, tx_hash, metadata, token_uri)
            else:
                self.last_greeting_day[account.lower()] = current_day()

            logger.info(f'{kind} {tx_hash} confirmed for {account}')
            return record
        except Exception as e:
            logger.error(f'Error running {kind} for {account}: {e}')
            raise TransactionFailed(_FAILURE_MESSAGES[kind], cause=e, record=record)
        finally:
            if record is not None:
                self.api.invalidate_transactions(account)
                self.api.invalidate_nfts(account)

    def send_greeting(self, message):
        return self.execute(GREETING, {'message': message})

    def mint_nft(self, title, content):
        return self.execute(MINT, {'title': title, 'content': content})

    def reconcile_pending(self, address):
        """Resolve records left pending by an interrupted flow.

        Looks up the receipt for every pending transaction of ``address`` and
        records the mined outcome. Transactions still unmined stay pending.
        """
        self.api.invalidate_transactions(address)
        resolved = []

        for txn in self.api.list_transactions(address):
            if txn['status'] != 'pending':
                continue

            tx_hash = txn['txHash']
            receipt = self.chain.get_receipt(tx_hash)
            if receipt is None:
                logger.info(f'{tx_hash} still not mined')
                continue

            status = 'confirmed' if receipt['status'] == 1 else 'failed'
            resolved.append(self.api.update_transaction_status(tx_hash, status))

            if status == 'confirmed' and txn['type'] == MINT:
                try:
                    self._record_nft(receipt, txn['userAddress'], tx_hash, txn['metadata'], None)
                except Conflict:
                    logger.info(f'NFT for {tx_hash} already recorded')

        if resolved:
            self.api.invalidate_transactions(address)
            self.api.invalidate_nfts(address)
        return resolved
