"""Display helpers shared by the views and the tracker."""
import json
from datetime import datetime, timedelta, timezone

from web3 import Web3


def format_address(address):
    """Shorten an address to ``0x1234...5678``; short strings pass through."""
    if not address:
        return ''
    if len(address) < 10:
        return address
    return f'{address[:6]}...{address[-4:]}'


def _to_datetime(value):
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    raise TypeError(f'Unsupported date value: {value!r}')


def format_date(value, now=None):
    """Human readable date relative to ``now`` (UTC)."""
    if value is None or value == '':
        return ''

    date = _to_datetime(value)
    now = now or datetime.utcnow()
    clock = date.strftime('%H:%M')

    if date.date() == now.date():
        return f'Today at {clock}'
    if date.date() == (now - timedelta(days=1)).date():
        return f'Yesterday at {clock}'
    return f"{date.strftime('%B')} {date.day}, {date.year} {clock}"


def wei_to_eth(wei):
    return str(Web3.from_wei(int(wei), 'ether'))[:8]


def create_nft_metadata(title, content, created=None):
    created = created or datetime.utcnow()
    metadata = {
        'name': title,
        'description': content,
        'attributes': [
            {'trait_type': 'Type', 'value': 'Text'},
            {'trait_type': 'Created', 'value': created.isoformat()},
        ],
    }
    return json.dumps(metadata)
