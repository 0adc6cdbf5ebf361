"""
Application configuration.
This module defines the configuration settings for the transparency API, including the chain connection,
the display currency and the local catalog database. It uses environment variables for deployment-specific
values and defaults for a local development chain. In production, make sure to set the RPC endpoint,
the ledger addresses and (for the write path) the signer key.
"""

import json
import os
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

# Network profiles: which chain to target is configuration, not a code fork.
NETWORKS = {
    "development": "http://127.0.0.1:8545",
    "testnet": os.environ.get("TESTNET_RPC_URL", "https://rpc-amoy.polygon.technology"),
}

# Addresses produced by a fresh local devnet deployment (first two contracts of the default account).
DEFAULT_CONTRACT_ADDRESSES = {
    "GovernmentSpending": "0x5FbDB2315678afecb367f032d93F642f64180aa3",
    "CitizenFeedback": "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512",
}


def _contract_addresses(path: str) -> dict:
    """Read deployed addresses from the deployment JSON, falling back to devnet defaults."""
    addresses = dict(DEFAULT_CONTRACT_ADDRESSES)
    file_path = Path(path)
    if file_path.is_file():
        with file_path.open(encoding="utf-8") as fh:
            addresses.update(json.load(fh))
    return addresses


class Config:
    """Base configuration shared by all environments."""

    # Database: SQLite for development (department catalog + write audit log)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'transparency.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Chain connection
    CHAIN_NETWORK = os.environ.get("CHAIN_NETWORK", "development")
    CHAIN_RPC_URL = os.environ.get("CHAIN_RPC_URL") or NETWORKS.get(CHAIN_NETWORK, NETWORKS["development"])

    CONTRACTS_FILE = os.environ.get("CONTRACTS_FILE", str(BASE_DIR / "contracts.json"))
    _addresses = _contract_addresses(CONTRACTS_FILE)
    SPENDING_LEDGER_ADDRESS = os.environ.get("SPENDING_LEDGER_ADDRESS", _addresses["GovernmentSpending"])
    FEEDBACK_LEDGER_ADDRESS = os.environ.get("FEEDBACK_LEDGER_ADDRESS", _addresses["CitizenFeedback"])

    # Optional: without a key the write path rejects every submission
    SIGNER_PRIVATE_KEY = os.environ.get("SIGNER_PRIVATE_KEY")

    # Display currency: one native token unit == DISPLAY_CURRENCY_RATE display units
    DISPLAY_CURRENCY_RATE = Decimal(os.environ.get("DISPLAY_CURRENCY_RATE", "3.0"))
    DISPLAY_CURRENCY_SYMBOL = os.environ.get("DISPLAY_CURRENCY_SYMBOL", "RM")

    # Upper bound of the "all transactions" scan used by the analytics aggregators
    FULL_SCAN_LIMIT = int(os.environ.get("FULL_SCAN_LIMIT", "1000"))

    POLL_INTERVAL_SECONDS = float(os.environ.get("POLL_INTERVAL_SECONDS", "30"))

    # IMPORTANT: set this in production, otherwise admin writes are open
    ADMIN_API_TOKEN = os.environ.get("ADMIN_API_TOKEN")


class TestConfig(Config):
    """In-memory database and a fixed admin token for the test-suite."""

    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    CHAIN_NETWORK = "development"
    ADMIN_API_TOKEN = "test-admin-token"
    LOG_LEVEL = "DEBUG"
