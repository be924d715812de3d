class GreetMintError(Exception):
    status_code = 500
    code = 'INTERNAL_ERROR'

    def __init__(self, message=None, details=None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details or {}

    def to_dict(self):
        payload = {'message': self.message, 'code': self.code}
        if self.details:
            payload['errors'] = self.details
        return payload


# Persistence

class ValidationFailed(GreetMintError):
    status_code = 400
    code = 'VALIDATION_FAILED'


class NotFound(GreetMintError):
    status_code = 404
    code = 'NOT_FOUND'


class Conflict(GreetMintError):
    status_code = 409
    code = 'CONFLICT'


class StoreError(GreetMintError):
    status_code = 500
    code = 'STORE_ERROR'


# Wallet

class ProviderUnavailable(GreetMintError):
    status_code = 503
    code = 'PROVIDER_UNAVAILABLE'


class WrongNetwork(GreetMintError):
    """Advisory only: the session still holds the account."""
    status_code = 400
    code = 'WRONG_NETWORK'


class SigningUnavailable(GreetMintError):
    status_code = 400
    code = 'SIGNING_UNAVAILABLE'


# Chain

class ChainError(GreetMintError):
    status_code = 502
    code = 'CHAIN_ERROR'


class TransactionRejected(ChainError):
    status_code = 400
    code = 'TRANSACTION_REJECTED'


class InsufficientFunds(ChainError):
    status_code = 400
    code = 'INSUFFICIENT_FUNDS'


class RpcError(ChainError):
    code = 'RPC_ERROR'


class ConfirmationTimeout(RpcError):
    code = 'CONFIRMATION_TIMEOUT'


class TransactionReverted(ChainError):
    code = 'TRANSACTION_REVERTED'


class EventNotFound(ChainError):
    code = 'EVENT_NOT_FOUND'


# Flow boundary

class TransactionFailed(GreetMintError):
    """Raised by the tracker when a submit-and-confirm flow aborts."""
    code = 'TRANSACTION_FAILED'

    def __init__(self, message, cause=None, record=None):
        super().__init__(message)
        self.cause = cause
        self.record = record
