"""
Multikey — encrypt a secret so that any T of N RSA keys can decrypt it.

A multikey secret is:
1. The secret split via Shamir's Secret Sharing into N shares (T threshold)
2. Each share RSA-OAEP encrypted to exactly one recipient's public key
3. Each encrypted share tagged with the recipient key's fingerprint

Shamir's scheme cannot express T = 1, so for "any one of N" the secret is
split 2-of-(N+1): the first share becomes a helper piece handed to every
recipient alongside their own share, and any single recipient holds two
distinct points of the same line.
"""

import json
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from . import keys
from . import shamir
from .errors import CombineError, CryptoError, FormatError, ValidationError
from .log import get_logger
from .shard import EncryptedShare, HelperShard, PlainShard, seal


log = get_logger(__name__)

VERSION = 'multikey_v1'

# one extra x-coordinate goes to the helper piece
MAX_SINGLE_KEY_RECIPIENTS = shamir.MAX_PARTS - 1


@dataclass(frozen=True)
class EncryptedSecret:
    """The durable form of a secret: one encrypted share per recipient."""
    shares: Tuple[EncryptedShare, ...]
    name: Optional[str] = None

    @property
    def key_ids(self) -> List[str]:
        return [s.key_id for s in self.shares]

    @property
    def single_key(self) -> bool:
        """True when the secret was encrypted with threshold 1."""
        return any(s.has_helper for s in self.shares)

    def decrypt(self, private_keys: Iterable) -> bytes:
        return decrypt_secret(self, private_keys)

    def to_dict(self) -> dict:
        d = {
            'version': VERSION,
            'shards': [s.to_dict() for s in self.shares],
        }
        if self.name:
            d['name'] = self.name
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> 'EncryptedSecret':
        if data.get('version') != VERSION:
            raise FormatError(f"Unknown secret version: {data.get('version')}")
        shards = data.get('shards')
        if not shards:
            raise FormatError("Secret has no shards")
        return cls(
            shares=tuple(EncryptedShare.from_dict(s) for s in shards),
            name=data.get('name'),
        )

    @classmethod
    def from_json(cls, text: str) -> 'EncryptedSecret':
        try:
            data = json.loads(text)
        except ValueError as e:
            raise FormatError(f"Invalid secret JSON: {e}")
        if not isinstance(data, dict):
            raise FormatError("Secret JSON must be an object")
        return cls.from_dict(data)


@dataclass
class RecoveryReport:
    """Outcome of trying a set of private keys against an encrypted secret."""
    total: int
    shards: List[bytes] = field(default_factory=list)
    helper: Optional[HelperShard] = None
    unmatched: int = 0
    failures: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def recovered(self) -> int:
        return len(self.shards) + (1 if self.helper else 0)

    @property
    def short_circuit(self) -> bool:
        return self.helper is not None


def encrypt_secret(data: bytes, public_keys: Sequence, threshold: int,
                   name: Optional[str] = None) -> EncryptedSecret:
    """
    Encrypt a secret so that `threshold` of `public_keys` can recover it.

    Args:
        data: The secret (must fit, plus one byte, in one RSA-OAEP block)
        public_keys: Recipient RSA public keys, one share each
        threshold: Number of distinct keys needed to decrypt (>= 1)
        name: Optional label, stored in the clear

    Raises:
        ValidationError: Bad threshold or key count, duplicate keys, empty secret
        CryptoError: A share could not be encrypted for its recipient
    """
    pubs = list(public_keys)
    if not pubs:
        raise ValidationError("At least one public key is required")
    if threshold < 1:
        raise ValidationError("Threshold must be at least 1")
    if threshold > len(pubs):
        raise ValidationError(
            "Threshold must be less than or equal to the amount of keys provided"
        )
    if threshold == 1 and len(pubs) > MAX_SINGLE_KEY_RECIPIENTS:
        raise ValidationError(
            f"Threshold 1 supports at most {MAX_SINGLE_KEY_RECIPIENTS} keys, "
            f"got {len(pubs)}"
        )
    if len(pubs) > shamir.MAX_PARTS:
        raise ValidationError(f"At most {shamir.MAX_PARTS} keys are supported, got {len(pubs)}")

    key_ids = []
    for i, pub in enumerate(pubs):
        try:
            key_ids.append(keys.fingerprint(pub))
        except (AttributeError, TypeError, ValueError) as e:
            raise CryptoError(
                f"Error encrypting shard {i + 1} of {len(pubs)}: "
                f"could not fingerprint recipient key: {e}"
            ) from e
    if len(set(key_ids)) != len(key_ids):
        raise ValidationError("Duplicate recipient key")

    if threshold == 1:
        # 2-of-(N+1): parts[0] is the helper every recipient receives
        parts = shamir.split(data, len(pubs) + 1, 2)
        helper = parts[0].to_bytes()
        shards = [HelperShard(value=p.to_bytes(), helper=helper) for p in parts[1:]]
    else:
        parts = shamir.split(data, len(pubs), threshold)
        shards = [PlainShard(value=p.to_bytes()) for p in parts]

    sealed = []
    for i, (shard, pub) in enumerate(zip(shards, pubs)):
        try:
            sealed.append(seal(shard, pub))
        except CryptoError as e:
            raise CryptoError(f"Error encrypting shard {i + 1} of {len(pubs)}: {e}") from e

    log.debug("secret_encrypted", shards=len(sealed), threshold=threshold, name=name)
    return EncryptedSecret(shares=tuple(sealed), name=name)


def recover_shards(secret: EncryptedSecret, private_keys: Iterable) -> RecoveryReport:
    """
    Open every share that one of `private_keys` can open.

    Shares without a matching key are counted as unmatched. A matched share
    that fails to decrypt is recorded in `failures` and skipped. The first
    helper-bearing shard ends collection, it alone reconstructs the secret.
    """
    by_id: Dict[str, object] = {}
    for priv in private_keys:
        by_id.setdefault(keys.fingerprint(priv.public_key()), priv)

    report = RecoveryReport(total=len(secret.shares))
    for share in secret.shares:
        priv = by_id.get(share.key_id)
        if priv is None:
            report.unmatched += 1
            continue

        try:
            shard = share.open(priv)
        except (CryptoError, ValidationError) as e:
            log.warning("shard_skipped", key_id=share.key_id, error=str(e))
            report.failures.append((share.key_id, str(e)))
            continue

        if isinstance(shard, HelperShard):
            report.helper = shard
            break
        report.shards.append(shard.value)

    return report


def decrypt_secret(secret: EncryptedSecret, private_keys: Iterable) -> bytes:
    """
    Decrypt a multikey secret with whichever private keys are available.

    Note the scheme carries no integrity check: with fewer keys than the
    threshold the result is wrong bytes, not an error.

    Raises:
        CombineError: No share could be recovered, or the recovered shares
            are inconsistent
    """
    return combine_recovered(recover_shards(secret, private_keys))


def combine_recovered(report: RecoveryReport) -> bytes:
    """Reconstruct the secret from the shards collected in `report`."""
    if report.short_circuit:
        pieces = [report.helper.value, report.helper.helper]
    else:
        pieces = report.shards

    if not pieces:
        raise CombineError(
            f"No shares recovered: {report.unmatched} of {report.total} unmatched, "
            f"{len(report.failures)} failed to decrypt"
        )

    try:
        plaintext = shamir.combine(pieces)
    except ValidationError as e:
        raise CombineError(f"Could not combine recovered shares: {e}") from e

    log.debug(
        "secret_combined",
        recovered=report.recovered,
        total=report.total,
        failed=len(report.failures),
        helper=report.short_circuit,
    )
    return plaintext
