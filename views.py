import math

from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for

from config import GREETING_MAX_LENGTH, TRANSACTIONS_PAGE_SIZE
from errors import GreetMintError, ProviderUnavailable, TransactionFailed
from formatting import format_address, format_date
from services import get_services
from transaction_tracker import greeting_message_valid

views = Blueprint('views', __name__)

TABS = ('greetings', 'create', 'collection', 'transactions')
LAST_TRANSACTION_KEY = 'last_transaction'


@views.app_template_filter('short_address')
def short_address_filter(address):
    return format_address(address)


@views.app_template_filter('friendly_date')
def friendly_date_filter(value):
    return format_date(value)


def paginate(items, page, per_page=TRANSACTIONS_PAGE_SIZE):
    total = len(items)
    total_pages = max(1, math.ceil(total / per_page))
    page = min(max(1, page), total_pages)
    start = (page - 1) * per_page
    return {
        'rows': items[start:start + per_page],
        'page': page,
        'total_pages': total_pages,
        'first': start + 1 if total else 0,
        'last': min(start + per_page, total),
        'total': total,
    }


def filter_nfts(nfts, query='', sort='all'):
    query = (query or '').strip().lower()
    if query:
        nfts = [
            nft for nft in nfts
            if query in (nft.get('title') or '').lower() or query in nft['content'].lower()
        ]
    if sort == 'latest':
        return sorted(nfts, key=lambda nft: nft['createdAt'], reverse=True)
    if sort == 'oldest':
        return sorted(nfts, key=lambda nft: nft['createdAt'])
    return list(nfts)


def _tab_context(tab, services):
    wallet = services.wallet
    context = {}
    if not wallet.address:
        return context

    if tab == 'greetings' and wallet.is_connected and services.chain is not None:
        context['greeting'] = services.tracker.greeting_status(wallet.address)
    elif tab == 'collection':
        context['nfts'] = filter_nfts(
            services.api.list_nfts(wallet.address),
            request.args.get('q', ''),
            request.args.get('sort', 'all'),
        )
    elif tab == 'transactions':
        transactions = sorted(
            services.api.list_transactions(wallet.address),
            key=lambda txn: txn['timestamp'] or '',
            reverse=True,
        )
        context['pagination'] = paginate(transactions, request.args.get('page', 1, type=int))
    return context


@views.route('/')
def index():
    return redirect(url_for('views.tab', name='greetings'))


@views.route('/tab/<name>')
def tab(name):
    if name not in TABS:
        return redirect(url_for('views.tab', name='greetings'))

    services = get_services()
    wallet = services.wallet
    wallet.check_connection()

    context = {}
    try:
        context = _tab_context(name, services)
    except GreetMintError as e:
        current_app.logger.error(f'Error loading {name} tab: {e.message}')
        flash(e.message, 'error')

    warning = wallet.network_warning()
    return render_template(
        f'{name}.html',
        tabs=TABS,
        active_tab=name,
        wallet=wallet,
        network_warning=warning.message if warning else None,
        max_length=GREETING_MAX_LENGTH,
        greeting_fee=current_app.config['GREETING_FEE'],
        minting_fee=current_app.config['NFT_MINTING_FEE'],
        last_transaction=session.pop(LAST_TRANSACTION_KEY, None),
        **context,
    )


@views.route('/connect', methods=['POST'])
def connect():
    wallet = get_services().wallet
    try:
        wallet.connect()
    except ProviderUnavailable:
        flash('Wallet provider not detected. Please install or configure a wallet to continue.', 'error')
    except GreetMintError as e:
        current_app.logger.error(f'Error connecting wallet: {e.message}')
        flash('Failed to connect to wallet', 'error')
    else:
        warning = wallet.network_warning()
        if warning:
            flash(warning.message, 'warning')
    return redirect(request.referrer or url_for('views.index'))


@views.route('/disconnect', methods=['POST'])
def disconnect():
    get_services().wallet.disconnect()
    return redirect(url_for('views.index'))


def _run(flow, *args, success, failure, tab_name):
    try:
        record = flow(*args)
    except TransactionFailed as e:
        current_app.logger.error(f'{failure}: {e.cause}')
        flash(failure, 'error')
        return redirect(url_for('views.tab', name=tab_name))

    if record is None:
        flash('Connect your wallet to the correct network first', 'warning')
    else:
        session[LAST_TRANSACTION_KEY] = record
        flash(success, 'success')
    return redirect(url_for('views.tab', name=tab_name))


@views.route('/greetings', methods=['POST'])
def send_greeting():
    message = request.form.get('message', '').strip()
    if not greeting_message_valid(message):
        flash(f'Greeting must be 1 to {GREETING_MAX_LENGTH} characters', 'error')
        return redirect(url_for('views.tab', name='greetings'))

    services = get_services()
    wallet = services.wallet
    if wallet.is_connected and services.chain is not None:
        try:
            status = services.tracker.greeting_status(wallet.address)
        except GreetMintError as e:
            current_app.logger.error(f'Error checking greeting eligibility: {e.message}')
            flash('Failed to check greeting eligibility', 'error')
            return redirect(url_for('views.tab', name='greetings'))
        if not status['canSendGreetingToday']:
            flash('You already sent a greeting today. Come back tomorrow!', 'warning')
            return redirect(url_for('views.tab', name='greetings'))

    return _run(services.tracker.send_greeting, message,
                success='Your greeting has been sent',
                failure='Failed to send greeting',
                tab_name='greetings')


@views.route('/create', methods=['POST'])
def mint_nft():
    title = request.form.get('title', '').strip()
    content = request.form.get('content', '').strip()
    if not content:
        flash('NFT content is required', 'error')
        return redirect(url_for('views.tab', name='create'))

    tracker = get_services().tracker
    return _run(tracker.mint_nft, title, content,
                success='Your NFT has been minted',
                failure='Failed to mint NFT',
                tab_name='create')
