"""Shared fixtures: RSA key pairs are slow to generate, so build them once."""

import sys
from pathlib import Path

import pytest


def _ensure_repo_root_on_path() -> None:
    root = Path(__file__).resolve().parent.parent
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))


_ensure_repo_root_on_path()

from multikey import keys  # noqa: E402


@pytest.fixture(scope="session")
def key_pairs():
    """Ten (private, public) RSA-2048 key pairs."""
    return [keys.generate_key_pair(2048) for _ in range(10)]


@pytest.fixture(scope="session")
def private_keys(key_pairs):
    return [priv for priv, _ in key_pairs]


@pytest.fixture(scope="session")
def public_keys(key_pairs):
    return [pub for _, pub in key_pairs]


@pytest.fixture(scope="session")
def stranger():
    """A key pair that no test secret is encrypted to."""
    return keys.generate_key_pair(2048)
