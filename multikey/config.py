"""Runtime settings for multikey (key size, OAEP hash, envelope armour, logging)."""

import os
from dataclasses import dataclass, field

_RSA_BITS_ENV = "MULTIKEY_RSA_BITS"
_OAEP_HASH_ENV = "MULTIKEY_OAEP_HASH"
_LOG_LEVEL_ENV = "MULTIKEY_LOG_LEVEL"


@dataclass(frozen=True)
class CryptoDefaults:
    """Parameters for the RSA collaborator."""

    rsa_key_bits: int = 2048
    oaep_hash: str = "SHA512"


@dataclass(frozen=True)
class EnvelopeDefaults:
    pem_label: str = "MULTIKEY ENCRYPTED SECRET"
    line_width: int = 64


@dataclass(frozen=True)
class Settings:
    crypto: CryptoDefaults = field(default_factory=CryptoDefaults)
    envelope: EnvelopeDefaults = field(default_factory=EnvelopeDefaults)
    log_level: str = "warning"


def load_settings(environ=None) -> Settings:
    """
    Build settings from the environment.

    Recognised variables:
        MULTIKEY_RSA_BITS: default RSA modulus size for generated keys
        MULTIKEY_OAEP_HASH: SHA1, SHA256 or SHA512
        MULTIKEY_LOG_LEVEL: critical, error, warning, info or debug
    """
    env = os.environ if environ is None else environ

    bits = env.get(_RSA_BITS_ENV)
    try:
        rsa_key_bits = int(bits) if bits else CryptoDefaults.rsa_key_bits
    except ValueError:
        raise ValueError(f"{_RSA_BITS_ENV} must be an integer, got {bits!r}")

    oaep_hash = (env.get(_OAEP_HASH_ENV) or CryptoDefaults.oaep_hash).upper()
    log_level = (env.get(_LOG_LEVEL_ENV) or Settings.log_level).lower()

    return Settings(
        crypto=CryptoDefaults(rsa_key_bits=rsa_key_bits, oaep_hash=oaep_hash),
        log_level=log_level,
    )


SETTINGS = load_settings()

__all__ = ["CryptoDefaults", "EnvelopeDefaults", "Settings", "SETTINGS", "load_settings"]
