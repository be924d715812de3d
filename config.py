import os

BASE_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_DB_PATH = os.path.join(BASE_DIR, 'instance', 'greetmint.db')

# Ethereum Mainnet
MAINNET_CHAIN_ID = 1

GREETING_MAX_LENGTH = 20
TRANSACTIONS_PAGE_SIZE = 5


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'greetmint-dev-key')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', f'sqlite:///{DEFAULT_DB_PATH}')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    RPC_URL = os.getenv('RPC_URL', 'http://127.0.0.1:8545')
    EXPECTED_CHAIN_ID = int(os.getenv('EXPECTED_CHAIN_ID', MAINNET_CHAIN_ID))
    GREETER_CONTRACT_ADDRESS = os.getenv('GREETER_CONTRACT_ADDRESS', '0x5FbDB2315678afecb367f032d93F642f64180aa3')
    NFT_CONTRACT_ADDRESS = os.getenv('NFT_CONTRACT_ADDRESS', '0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512')

    # Fees in ether, sent as msg.value
    GREETING_FEE = os.getenv('GREETING_FEE', '0.001')
    NFT_MINTING_FEE = os.getenv('NFT_MINTING_FEE', '0.01')

    # Optional: sign locally instead of through node-managed accounts
    WALLET_PRIVATE_KEY = os.getenv('WALLET_PRIVATE_KEY')

    API_BASE_URL = os.getenv('API_BASE_URL', 'http://127.0.0.1:5000')
    API_TIMEOUT = int(os.getenv('API_TIMEOUT', 30))
    API_CACHE_TTL = int(os.getenv('API_CACHE_TTL', 30))
    CONFIRMATION_TIMEOUT = int(os.getenv('CONFIRMATION_TIMEOUT', 180))

    DEBUG = os.environ.get('FLASK_DEBUG', 'False').lower() == 'true'
    PORT = int(os.environ.get('PORT', 5000))
