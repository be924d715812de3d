"""Request payload schemas for the REST surface.

Transaction metadata is a tagged variant keyed by the transaction ``type``:
greetings carry a ``message``, mints carry ``title`` and ``content``.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from errors import ValidationFailed

TransactionStatus = Literal['pending', 'confirmed', 'failed']


def _naive_utc(value):
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class GreetingMetadata(BaseModel):
    message: str = Field(min_length=1)


class MintMetadata(BaseModel):
    title: Optional[str] = None
    content: str = Field(min_length=1)


class _TransactionBase(BaseModel):
    txHash: str = Field(min_length=1)
    userAddress: str = Field(min_length=1)
    status: TransactionStatus
    amount: str
    timestamp: Optional[datetime] = None

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: str) -> str:
        try:
            parsed = Decimal(v)
        except InvalidOperation:
            raise ValueError('Amount must be a decimal string')
        if not parsed.is_finite() or parsed < 0:
            raise ValueError('Amount must be a non-negative decimal')
        return v

    @field_validator('timestamp')
    @classmethod
    def normalize_timestamp(cls, v):
        return _naive_utc(v)


class GreetingTransactionIn(_TransactionBase):
    type: Literal['greeting']
    metadata: GreetingMetadata


class MintTransactionIn(_TransactionBase):
    type: Literal['mint']
    metadata: MintMetadata


TransactionIn = Annotated[
    Union[GreetingTransactionIn, MintTransactionIn],
    Field(discriminator='type'),
]


class NftIn(BaseModel):
    tokenId: str = Field(min_length=1)
    ownerAddress: str = Field(min_length=1)
    title: Optional[str] = None
    content: str = Field(min_length=1)
    txHash: str = Field(min_length=1)
    createdAt: Optional[datetime] = None
    tokenURI: Optional[str] = None

    @field_validator('tokenId', mode='before')
    @classmethod
    def coerce_token_id(cls, v):
        # Token ids are uint256 on chain; clients may send them as numbers
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator('createdAt')
    @classmethod
    def normalize_created_at(cls, v):
        return _naive_utc(v)


class StatusUpdate(BaseModel):
    status: TransactionStatus


class TokenUriUpdate(BaseModel):
    tokenURI: str = Field(min_length=1)


_transaction_adapter = TypeAdapter(TransactionIn)


def _errors(exc: ValidationError):
    return exc.errors(include_url=False, include_context=False, include_input=False)


def parse_transaction(data) -> Union[GreetingTransactionIn, MintTransactionIn]:
    try:
        return _transaction_adapter.validate_python(data)
    except ValidationError as e:
        raise ValidationFailed('Invalid transaction data', details=_errors(e))


def parse_nft(data) -> NftIn:
    try:
        return NftIn.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed('Invalid NFT data', details=_errors(e))


def parse_status_update(data) -> StatusUpdate:
    try:
        return StatusUpdate.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed('Status is required', details=_errors(e))


def parse_token_uri_update(data) -> TokenUriUpdate:
    try:
        return TokenUriUpdate.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed('Token ID and token URI are required', details=_errors(e))
