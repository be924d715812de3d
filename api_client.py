import logging
from time import monotonic

import requests

from errors import Conflict, NotFound, StoreError, ValidationFailed

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {
    400: ValidationFailed,
    404: NotFound,
    409: Conflict,
}


class ApiClient:
    """HTTP client for the persistence endpoints.

    List responses are cached per request path until invalidated or until
    ``cache_ttl`` seconds pass, so repeated renders of the same address do not
    refetch. At most ``cache_size`` paths are kept; the oldest goes first.
    """

    def __init__(self, base_url, session=None, timeout=30, cache_ttl=30, cache_size=256):
        self.base_url = base_url.rstrip('/')
        self.session = session or requests.Session()
        self.timeout = timeout
        self.cache_ttl = cache_ttl
        self.cache_size = cache_size
        self._cache = {}

    def _request(self, method, path, payload=None):
        try:
            response = self.session.request(
                method,
                f'{self.base_url}{path}',
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f'{method} {path} failed: {e}')
            raise StoreError(f'Persistence service unreachable: {e}')

        if not response.ok:
            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {}
            message = body.get('message') or f'{method} {path} returned {response.status_code}'
            error_cls = _STATUS_ERRORS.get(response.status_code, StoreError)
            logger.error(f'{method} {path} returned {response.status_code}: {message}')
            raise error_cls(message, details=body.get('errors'))

        return response.json()

    def _cached_get(self, path):
        now = monotonic()
        entry = self._cache.get(path)
        if entry is not None and now - entry[0] < self.cache_ttl:
            return entry[1]

        data = self._request('GET', path)
        self._cache.pop(path, None)
        if len(self._cache) >= self.cache_size:
            del self._cache[next(iter(self._cache))]
        self._cache[path] = (now, data)
        return data

    @staticmethod
    def transactions_path(address):
        return f'/api/transactions/{address.lower()}'

    @staticmethod
    def nfts_path(address):
        return f'/api/nfts/{address.lower()}'

    def list_transactions(self, address):
        return self._cached_get(self.transactions_path(address))

    def create_transaction(self, record):
        return self._request('POST', '/api/transactions', record)

    def update_transaction_status(self, tx_hash, status):
        return self._request('PATCH', f'/api/transactions/{tx_hash}', {'status': status})

    def list_nfts(self, address):
        return self._cached_get(self.nfts_path(address))

    def create_nft(self, record):
        return self._request('POST', '/api/nfts', record)

    def update_nft_token_uri(self, token_id, uri):
        return self._request('PATCH', f'/api/nfts/{token_id}', {'tokenURI': uri})

    def invalidate_transactions(self, address):
        self._cache.pop(self.transactions_path(address), None)

    def invalidate_nfts(self, address):
        self._cache.pop(self.nfts_path(address), None)
