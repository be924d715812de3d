import os

import click
from flask import Blueprint, Flask, current_app, jsonify, request

from config import Config, DEFAULT_DB_PATH
from errors import GreetMintError, ValidationFailed
from models import db
from schemas import parse_nft, parse_status_update, parse_token_uri_update, parse_transaction
from services import EXTENSION_KEY, Services, get_services, get_storage
from views import views

api = Blueprint('api', __name__, url_prefix='/api')


def _error(error):
    return jsonify(error.to_dict()), error.status_code


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        raise ValidationFailed('Missing JSON data')
    return data


# Transactions

@api.route('/transactions/<address>', methods=['GET'])
def get_transactions(address):
    if not address.strip():
        return jsonify({'message': 'Address is required'}), 400

    try:
        transactions = get_storage().list_transactions(address)
        return jsonify([txn.to_dict() for txn in transactions])
    except Exception as e:
        current_app.logger.error(f'Error fetching transactions: {str(e)}')
        return jsonify({'message': 'Failed to fetch transactions'}), 500


@api.route('/transactions', methods=['POST'])
def create_transaction():
    try:
        record = parse_transaction(_json_body())
        created = get_storage().create_transaction(record)
        return jsonify(created.to_dict()), 201
    except GreetMintError as e:
        current_app.logger.warning(f'Rejected transaction: {e.message}')
        return _error(e)
    except Exception as e:
        current_app.logger.error(f'Error creating transaction: {str(e)}')
        return jsonify({'message': 'Failed to create transaction'}), 500


@api.route('/transactions/<tx_hash>', methods=['PATCH'])
def update_transaction_status(tx_hash):
    try:
        update = parse_status_update(_json_body())
        updated = get_storage().update_transaction_status(tx_hash, update.status)
        return jsonify(updated.to_dict())
    except GreetMintError as e:
        return _error(e)
    except Exception as e:
        current_app.logger.error(f'Error updating transaction: {str(e)}')
        return jsonify({'message': 'Failed to update transaction'}), 500


# NFTs

@api.route('/nfts/<address>', methods=['GET'])
def get_nfts(address):
    if not address.strip():
        return jsonify({'message': 'Address is required'}), 400

    try:
        nfts = get_storage().list_nfts(address)
        return jsonify([nft.to_dict() for nft in nfts])
    except Exception as e:
        current_app.logger.error(f'Error fetching NFTs: {str(e)}')
        return jsonify({'message': 'Failed to fetch NFTs'}), 500


@api.route('/nfts', methods=['POST'])
def create_nft():
    try:
        record = parse_nft(_json_body())
        created = get_storage().create_nft(record)
        return jsonify(created.to_dict()), 201
    except GreetMintError as e:
        current_app.logger.warning(f'Rejected NFT: {e.message}')
        return _error(e)
    except Exception as e:
        current_app.logger.error(f'Error creating NFT: {str(e)}')
        return jsonify({'message': 'Failed to create NFT'}), 500


@api.route('/nfts/<token_id>', methods=['PATCH'])
def update_nft(token_id):
    try:
        update = parse_token_uri_update(_json_body())
        updated = get_storage().update_nft_token_uri(token_id, update.tokenURI)
        return jsonify(updated.to_dict())
    except GreetMintError as e:
        return _error(e)
    except Exception as e:
        current_app.logger.error(f'Error updating NFT: {str(e)}')
        return jsonify({'message': 'Failed to update NFT'}), 500


# Chain reads

@api.route('/greeting/<address>', methods=['GET'])
def greeting_status(address):
    services = get_services()
    if services.chain is None:
        return jsonify({'message': 'Chain client not configured'}), 503

    try:
        return jsonify(services.tracker.greeting_status(address))
    except GreetMintError as e:
        return _error(e)
    except Exception as e:
        current_app.logger.error(f'Error checking last greeting: {str(e)}')
        return jsonify({'message': 'Failed to check last greeting'}), 500


def register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create the transactions and NFTs tables."""
        db.create_all()
        click.echo('Database initialized')

    @app.cli.command('reconcile-pending')
    @click.argument('address')
    def reconcile_pending(address):
        """Settle pending transactions for ADDRESS from their receipts."""
        resolved = get_services().tracker.reconcile_pending(address)
        for txn in resolved:
            click.echo(f"{txn['txHash']} -> {txn['status']}")
        click.echo(f'{len(resolved)} transaction(s) reconciled')


def create_app(overrides=None, web3=None, api_session=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    if app.config['SQLALCHEMY_DATABASE_URI'] == f'sqlite:///{DEFAULT_DB_PATH}':
        os.makedirs(os.path.dirname(DEFAULT_DB_PATH), exist_ok=True)

    db.init_app(app)
    app.register_blueprint(api)
    app.register_blueprint(views)
    register_commands(app)

    app.extensions[EXTENSION_KEY] = Services.from_config(app.config, web3=web3, api_session=api_session)

    @app.route('/health')
    def health_check():
        return jsonify({'status': 'healthy'})

    with app.app_context():
        try:
            db.create_all()
        except Exception as e:
            app.logger.error(f'Database initialization error: {str(e)}')
            raise

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=app.config['PORT'], debug=app.config['DEBUG'])
