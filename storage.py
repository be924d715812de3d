import logging

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from errors import Conflict, NotFound, StoreError
from models import Nft, Transaction, db

logger = logging.getLogger(__name__)


def normalize_address(address):
    return address.strip().lower()


class Storage:
    """Transactions and NFTs, keyed by owner address, tx hash or token id."""

    def __init__(self, session=None):
        self.session = session or db.session

    def _commit(self):
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise Conflict(f'Uniqueness constraint violated: {e.orig}')
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f'Store commit failed: {e}')
            raise StoreError('Failed to write to the store')

    # Transactions

    def list_transactions(self, address):
        try:
            return (Transaction.query
                    .filter_by(user_address=normalize_address(address))
                    .order_by(Transaction.id)
                    .all())
        except SQLAlchemyError as e:
            logger.error(f'Failed to list transactions for {address}: {e}')
            raise StoreError('Failed to fetch transactions')

    def get_transaction(self, tx_hash):
        return Transaction.query.filter_by(tx_hash=tx_hash).first()

    def create_transaction(self, record):
        if self.get_transaction(record.txHash):
            raise Conflict(f'Transaction {record.txHash} already exists')

        txn = Transaction(
            tx_hash=record.txHash,
            user_address=normalize_address(record.userAddress),
            type=record.type,
            status=record.status,
            amount=record.amount,
            meta=record.metadata.model_dump(),
        )
        if record.timestamp:
            txn.timestamp = record.timestamp

        self.session.add(txn)
        self._commit()
        logger.info(f'Recorded {txn.type} transaction {txn.tx_hash} as {txn.status}')
        return txn

    def update_transaction_status(self, tx_hash, status):
        txn = self.get_transaction(tx_hash)
        if not txn:
            raise NotFound(f'Transaction {tx_hash} not found')

        txn.status = status
        self._commit()
        logger.info(f'Transaction {tx_hash} marked {status}')
        return txn

    # NFTs

    def list_nfts(self, owner_address):
        try:
            return (Nft.query
                    .filter_by(owner_address=normalize_address(owner_address))
                    .order_by(Nft.id)
                    .all())
        except SQLAlchemyError as e:
            logger.error(f'Failed to list NFTs for {owner_address}: {e}')
            raise StoreError('Failed to fetch NFTs')

    def get_nft(self, token_id):
        return Nft.query.filter_by(token_id=str(token_id)).first()

    def create_nft(self, record):
        if self.get_nft(record.tokenId):
            raise Conflict(f'NFT {record.tokenId} already exists')

        nft = Nft(
            token_id=record.tokenId,
            owner_address=normalize_address(record.ownerAddress),
            title=record.title,
            content=record.content,
            tx_hash=record.txHash,
            token_uri=record.tokenURI,
        )
        if record.createdAt:
            nft.created_at = record.createdAt

        self.session.add(nft)
        self._commit()
        logger.info(f'Recorded NFT {nft.token_id} for {nft.owner_address}')
        return nft

    def update_nft_token_uri(self, token_id, uri):
        nft = self.get_nft(token_id)
        if not nft:
            raise NotFound(f'NFT {token_id} not found')

        nft.token_uri = uri
        self._commit()
        return nft
