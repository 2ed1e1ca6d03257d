"""Multikey — encrypt a secret so that any T of N RSA keys can decrypt it."""

from .multikey import encrypt_secret, decrypt_secret, recover_shards, combine_recovered
from .multikey import EncryptedSecret, RecoveryReport
from .shard import EncryptedShare, PlainShard, HelperShard
from .shamir import split, combine, RawShare
from .keys import generate_key_pair, fingerprint
from .envelope import encode_text, decode_text, encode_pem, decode_pem
from .errors import (
    MultikeyError, ValidationError, FieldError, CryptoError,
    KeyMismatchError, CombineError, FormatError,
)

__all__ = [
    'encrypt_secret', 'decrypt_secret', 'recover_shards', 'combine_recovered',
    'EncryptedSecret', 'RecoveryReport',
    'EncryptedShare', 'PlainShard', 'HelperShard',
    'split', 'combine', 'RawShare',
    'generate_key_pair', 'fingerprint',
    'encode_text', 'decode_text', 'encode_pem', 'decode_pem',
    'MultikeyError', 'ValidationError', 'FieldError', 'CryptoError',
    'KeyMismatchError', 'CombineError', 'FormatError',
]
