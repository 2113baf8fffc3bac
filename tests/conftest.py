"""
Test bootstrap:
- Make tests/ importable so test modules can use `helpers`
- Shared fixtures for keypairs, configuration and registries
"""
import sys
import pathlib

import pytest

TESTS_DIR = pathlib.Path(__file__).parent
if str(TESTS_DIR) not in sys.path:
    sys.path.insert(0, str(TESTS_DIR))

from helpers import mk_exported_keypair, mk_config  # noqa: E402

from account_vault.accounts import AccountRegistry  # noqa: E402
from account_vault.keys import EphemeralStore, MemoryAccountStore  # noqa: E402


@pytest.fixture
def exported_keypair():
    """Deterministic ED25519 exported keypair."""
    return mk_exported_keypair(seed=1001)


@pytest.fixture
def secp256k1_keypair():
    """Deterministic Secp256k1 exported keypair."""
    return mk_exported_keypair(seed=2001, scheme="Secp256k1")


@pytest.fixture
def vault_config():
    return mk_config()


@pytest.fixture
def ephemeral_store():
    return EphemeralStore()


@pytest.fixture
def account_store():
    return MemoryAccountStore()


@pytest.fixture
def registry(account_store, ephemeral_store, vault_config):
    """Registry over in-memory stores with fast key derivation."""
    return AccountRegistry(store=account_store, ephemeral=ephemeral_store, config=vault_config)
