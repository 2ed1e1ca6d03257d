"""
Shards — one Shamir share bound to one recipient key.

A decrypted shard is either a PlainShard (ordinary T-of-N share) or a
HelperShard, which also carries the helper piece that every recipient
receives when a secret is encrypted with threshold 1. Sealing a shard
RSA-encrypts its pieces under the recipient's public key and produces an
EncryptedShare tagged with that key's fingerprint.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Optional, Union

from . import keys
from .errors import CryptoError, FormatError, KeyMismatchError, ValidationError


@dataclass(frozen=True)
class PlainShard:
    value: bytes

    def __post_init__(self):
        if not self.value:
            raise ValidationError("Shard can not have empty value")


@dataclass(frozen=True)
class HelperShard:
    value: bytes
    helper: bytes

    def __post_init__(self):
        if not self.value:
            raise ValidationError("Shard can not have empty value")
        if not self.helper:
            raise ValidationError("Helper piece can not be empty")


Shard = Union[PlainShard, HelperShard]


@dataclass(frozen=True)
class EncryptedShare:
    """An encrypted shard and the fingerprint of the key that can open it."""
    value: bytes
    key_id: str
    helper: Optional[bytes] = None

    @property
    def has_helper(self) -> bool:
        return bool(self.helper)

    def open(self, priv) -> Shard:
        """
        Decrypt with a private key.

        Raises:
            KeyMismatchError: the key's fingerprint is not this share's key_id
            CryptoError: the value or helper does not decrypt
        """
        if keys.fingerprint(priv.public_key()) != self.key_id:
            raise KeyMismatchError(
                "The provided key does not match the shard's encryption key's fingerprint"
            )
        value = keys.decrypt_message(self.value, priv)
        if self.has_helper:
            return HelperShard(value=value, helper=keys.decrypt_message(self.helper, priv))
        return PlainShard(value=value)

    def to_dict(self) -> dict:
        d = {
            'value': base64.b64encode(self.value).decode('ascii'),
            'key_id': self.key_id,
        }
        if self.has_helper:
            d['h'] = base64.b64encode(self.helper).decode('ascii')
        return d

    @classmethod
    def from_dict(cls, data: dict) -> 'EncryptedShare':
        try:
            value = base64.b64decode(data['value'], validate=True)
            key_id = data['key_id']
            helper = data.get('h')
            helper = base64.b64decode(helper, validate=True) if helper else None
        except (KeyError, TypeError, binascii.Error) as e:
            raise FormatError(f"Invalid encrypted share: {e}")
        if not value or not key_id:
            raise FormatError("Encrypted share needs a value and a key id")
        return cls(value=value, key_id=key_id, helper=helper)


def seal(shard: Shard, pub) -> EncryptedShare:
    """
    Encrypt a shard for one recipient.

    Raises:
        CryptoError: if the key cannot encrypt the shard's pieces
    """
    try:
        key_id = keys.fingerprint(pub)
    except (AttributeError, TypeError, ValueError) as e:
        raise CryptoError(f"Could not fingerprint recipient key: {e}")

    value = keys.encrypt_message(shard.value, pub)
    helper = None
    if isinstance(shard, HelperShard):
        helper = keys.encrypt_message(shard.helper, pub)
    return EncryptedShare(value=value, key_id=key_id, helper=helper)
