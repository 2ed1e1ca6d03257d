"""
RSA key handling — key generation, PEM encoding, fingerprints and
RSA-OAEP encryption of individual shares.

Keys are `cryptography` RSA key objects. PEM blocks use the PKCS#1
"RSA PRIVATE KEY" / "RSA PUBLIC KEY" labels.
"""

import hashlib
from typing import Optional, Tuple

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from .config import SETTINGS
from .errors import CryptoError, FormatError


PUBLIC_EXPONENT = 65537

_PRIVATE_LABEL = b"RSA PRIVATE KEY"
_PUBLIC_LABEL = b"RSA PUBLIC KEY"


def generate_key_pair(bits: Optional[int] = None) -> Tuple[rsa.RSAPrivateKey, rsa.RSAPublicKey]:
    """Generate an RSA key pair and return (private, public)."""
    priv = rsa.generate_private_key(
        public_exponent=PUBLIC_EXPONENT,
        key_size=bits or SETTINGS.crypto.rsa_key_bits,
    )
    return priv, priv.public_key()


def fingerprint(pub: rsa.RSAPublicKey) -> str:
    """
    Fingerprint of a public key: MD5 over its PKCS#1 DER encoding,
    as colon-separated hex octets (e.g. "3f:0a:...").

    Only used to match shares with keys, not as a security boundary.
    """
    der = pub.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1,
    )
    digest = hashlib.md5(der).digest()
    return ':'.join(f"{b:02x}" for b in digest)


def encode_private_pem(priv: rsa.RSAPrivateKey) -> bytes:
    return priv.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def encode_public_pem(pub: rsa.RSAPublicKey) -> bytes:
    return pub.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.PKCS1,
    )


def decode_private_pem(pem: bytes) -> rsa.RSAPrivateKey:
    """Decode a PKCS#1 PEM private key. Raises FormatError on anything else."""
    if _PRIVATE_LABEL not in pem:
        raise FormatError("Failed to decode PEM block containing private key")
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise FormatError(f"Failed to decode PEM block containing private key: {e}")
    if not isinstance(key, rsa.RSAPrivateKey):
        raise FormatError("PEM block does not contain an RSA private key")
    return key


def decode_public_pem(pem: bytes) -> rsa.RSAPublicKey:
    """Decode a PKCS#1 PEM public key. Raises FormatError on anything else."""
    if _PUBLIC_LABEL not in pem:
        raise FormatError("Failed to decode PEM block containing public key")
    try:
        key = serialization.load_pem_public_key(pem)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise FormatError(f"Failed to decode PEM block containing public key: {e}")
    if not isinstance(key, rsa.RSAPublicKey):
        raise FormatError("PEM block does not contain an RSA public key")
    return key


def _hash_alg(name: str) -> hashes.HashAlgorithm:
    n = name.upper()
    if n == "SHA1":
        return hashes.SHA1()
    if n == "SHA256":
        return hashes.SHA256()
    if n == "SHA512":
        return hashes.SHA512()
    raise ValueError(f"Unsupported OAEP hash: {name}")


def _oaep(hash_name: Optional[str]) -> padding.OAEP:
    h = _hash_alg(hash_name or SETTINGS.crypto.oaep_hash)
    return padding.OAEP(mgf=padding.MGF1(algorithm=h), algorithm=h, label=None)


def max_plaintext_size(pub: rsa.RSAPublicKey, hash_name: Optional[str] = None) -> int:
    """Largest message RSA-OAEP can carry under this key."""
    digest_size = _hash_alg(hash_name or SETTINGS.crypto.oaep_hash).digest_size
    return pub.key_size // 8 - 2 * digest_size - 2


def encrypt_message(plaintext: bytes, pub: rsa.RSAPublicKey,
                    hash_name: Optional[str] = None) -> bytes:
    """
    Encrypt a message with RSA-OAEP.

    Raises:
        CryptoError: if the key is unusable or the message is too long
    """
    try:
        return pub.encrypt(plaintext, _oaep(hash_name))
    except (ValueError, TypeError, AttributeError) as e:
        raise CryptoError(f"Could not encrypt message: {e}")


def decrypt_message(ciphertext: bytes, priv: rsa.RSAPrivateKey,
                    hash_name: Optional[str] = None) -> bytes:
    """
    Decrypt an RSA-OAEP ciphertext.

    Raises:
        CryptoError: wrong key, tampered or truncated ciphertext
    """
    try:
        return priv.decrypt(ciphertext, _oaep(hash_name))
    except (ValueError, TypeError, AttributeError) as e:
        raise CryptoError(f"Could not decrypt message: {str(e) or 'decryption error'}")


def encrypt_message_with_pem(plaintext: bytes, pub_pem: bytes) -> bytes:
    return encrypt_message(plaintext, decode_public_pem(pub_pem))


def decrypt_message_with_pem(ciphertext: bytes, priv_pem: bytes) -> bytes:
    return decrypt_message(ciphertext, decode_private_pem(priv_pem))
