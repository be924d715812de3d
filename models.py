from flask_sqlalchemy import SQLAlchemy
from datetime import datetime

db = SQLAlchemy()

TRANSACTION_KINDS = ('greeting', 'mint')
TRANSACTION_STATUSES = ('pending', 'confirmed', 'failed')


def _isoformat(value):
    return value.isoformat() if value else None


class Transaction(db.Model):
    __tablename__ = 'transactions'

    id = db.Column(db.Integer, primary_key=True)
    tx_hash = db.Column(db.String(66), nullable=False, unique=True)
    user_address = db.Column(db.String(42), nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False)  # greeting, mint
    status = db.Column(db.String(20), nullable=False, default='pending')  # pending, confirmed, failed
    amount = db.Column(db.String(40), nullable=False)
    timestamp = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    meta = db.Column('metadata', db.JSON)

    def to_dict(self):
        return {
            'id': self.id,
            'txHash': self.tx_hash,
            'userAddress': self.user_address,
            'type': self.type,
            'status': self.status,
            'amount': self.amount,
            'timestamp': _isoformat(self.timestamp),
            'metadata': self.meta,
        }

    def __repr__(self):
        return f'<Transaction {self.tx_hash} {self.status}>'


class Nft(db.Model):
    __tablename__ = 'nfts'

    id = db.Column(db.Integer, primary_key=True)
    token_id = db.Column(db.String(78), nullable=False, unique=True)
    owner_address = db.Column(db.String(42), nullable=False, index=True)
    title = db.Column(db.String(200))
    content = db.Column(db.Text, nullable=False)
    tx_hash = db.Column(db.String(66), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    token_uri = db.Column(db.Text)

    def to_dict(self):
        return {
            'id': self.id,
            'tokenId': self.token_id,
            'ownerAddress': self.owner_address,
            'title': self.title,
            'content': self.content,
            'txHash': self.tx_hash,
            'createdAt': _isoformat(self.created_at),
            'tokenURI': self.token_uri,
        }

    def __repr__(self):
        return f'<Nft {self.token_id}>'
