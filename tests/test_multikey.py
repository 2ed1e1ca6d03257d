"""
Multikey — shard sealing and the encrypt/decrypt pipeline.

For a secret encrypted with T required keys, any T of the recipient keys
are sufficient to decrypt it and fewer are not.
"""

import dataclasses
import itertools
import json
import random

import pytest

from multikey import keys, multikey, shamir
from multikey.errors import (
    CombineError, CryptoError, KeyMismatchError, ValidationError,
)
from multikey.multikey import EncryptedSecret
from multikey.shard import EncryptedShare, HelperShard, PlainShard, seal


SECRET = b"test secret value"


# ==========================================================================
# Shards
# ==========================================================================

def test_plain_shard_empty_value():
    """A shard must carry a value."""
    with pytest.raises(ValidationError, match="empty value"):
        PlainShard(value=b"")


def test_helper_shard_empty_helper():
    """A helper shard must carry the helper piece."""
    with pytest.raises(ValidationError):
        HelperShard(value=b"\x80\x80", helper=b"")


def test_seal_and_open(key_pairs):
    """Sealing encrypts to the key and tags the share with its fingerprint."""
    priv, pub = key_pairs[0]
    shard = PlainShard(value=b"\x80\x80\x80\x80")

    enc = seal(shard, pub)
    assert enc.value != shard.value
    assert enc.key_id == keys.fingerprint(pub)
    assert enc.helper is None
    assert enc.open(priv) == shard


def test_seal_and_open_with_helper(key_pairs):
    """The helper piece travels with the share and comes back intact."""
    priv, pub = key_pairs[0]
    shard = HelperShard(value=b"\x80\x80\x80\x80", helper=b"\x01\x02\x03\x04")

    enc = seal(shard, pub)
    assert enc.has_helper
    opened = enc.open(priv)
    assert isinstance(opened, HelperShard)
    assert opened == shard


def test_seal_bad_key():
    """Something that is not an RSA key can not seal a shard."""
    with pytest.raises(CryptoError):
        seal(PlainShard(value=b"\x80"), object())


def test_open_wrong_key(key_pairs):
    """A fingerprint mismatch fails before any decryption is attempted."""
    _, pub = key_pairs[0]
    other, _ = key_pairs[1]
    enc = seal(PlainShard(value=b"this is a secret"), pub)

    with pytest.raises(KeyMismatchError, match="fingerprint"):
        enc.open(other)


def test_open_not_encrypted(key_pairs):
    """Bytes that are not OAEP ciphertext fail to open."""
    priv, pub = key_pairs[0]
    enc = EncryptedShare(value=b"thisisbase64", key_id=keys.fingerprint(pub))
    with pytest.raises(CryptoError):
        enc.open(priv)


def test_share_dict_round_trip(key_pairs):
    """The dict form keeps value, key id and helper."""
    _, pub = key_pairs[0]
    enc = seal(HelperShard(value=b"\x10\x20", helper=b"\x30\x40"), pub)
    d = enc.to_dict()
    assert set(d) == {'value', 'key_id', 'h'}
    assert EncryptedShare.from_dict(d) == enc


# ==========================================================================
# Encrypt validation
# ==========================================================================

def test_threshold_too_big(public_keys):
    """The threshold can not exceed the number of keys."""
    with pytest.raises(ValidationError, match="less than or equal"):
        multikey.encrypt_secret(SECRET, public_keys[:3], 4)


def test_threshold_zero(public_keys):
    """The threshold must be at least 1."""
    with pytest.raises(ValidationError):
        multikey.encrypt_secret(SECRET, public_keys[:3], 0)


def test_no_keys():
    """At least one recipient is needed."""
    with pytest.raises(ValidationError):
        multikey.encrypt_secret(SECRET, [], 1)


def test_empty_secret(public_keys):
    """An empty secret is rejected."""
    with pytest.raises(ValidationError):
        multikey.encrypt_secret(b"", public_keys[:3], 2)


def test_secret_too_large_for_key(public_keys):
    """A secret that overflows the OAEP block fails on the first shard."""
    limit = keys.max_plaintext_size(public_keys[0])
    with pytest.raises(CryptoError, match="shard 1"):
        multikey.encrypt_secret(b"x" * limit, public_keys[:3], 2)


def test_one_bad_key_aborts(public_keys):
    """A single unusable key aborts the whole encryption and names its shard."""
    with pytest.raises(CryptoError, match="shard 3"):
        multikey.encrypt_secret(SECRET, public_keys[:2] + [object()], 2)


def test_duplicate_recipient_key(public_keys):
    """The same key twice would let one holder count as two."""
    pub_a, pub_b = public_keys[:2]
    with pytest.raises(ValidationError, match="Duplicate"):
        multikey.encrypt_secret(SECRET, [pub_a, pub_a, pub_b], 2)


def test_duplicate_recipient_key_threshold_one(public_keys):
    """Duplicates are rejected on the helper path too."""
    pub_a, pub_b = public_keys[:2]
    with pytest.raises(ValidationError, match="Duplicate"):
        multikey.encrypt_secret(SECRET, [pub_a, pub_a, pub_b], 1)


def test_threshold_one_key_limit(public_keys):
    """The helper piece takes one of the 255 x-coordinates."""
    with pytest.raises(ValidationError, match="at most 254 keys"):
        multikey.encrypt_secret(SECRET, [public_keys[0]] * 255, 1)


def test_key_limit(public_keys):
    """No more keys than nonzero field elements."""
    with pytest.raises(ValidationError, match="At most 255 keys"):
        multikey.encrypt_secret(SECRET, [public_keys[0]] * 256, 2)


def test_library_logging_stays_off_stdout(capsys, private_keys, public_keys):
    """Debug events never reach stdout, which carries command output."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:3], 2)
    assert multikey.decrypt_secret(secret, private_keys[:2]) == SECRET
    assert capsys.readouterr().out == ""


# ==========================================================================
# Threshold 1
# ==========================================================================

def test_any_one_key_decrypts(private_keys, public_keys):
    """Every recipient alone can decrypt a threshold 1 secret."""
    secret = multikey.encrypt_secret(SECRET, public_keys, 1, name="test secret name")

    assert len(secret.shares) == len(public_keys)
    assert secret.single_key
    assert all(s.has_helper for s in secret.shares)
    assert secret.key_ids == [keys.fingerprint(p) for p in public_keys]

    for priv in private_keys:
        assert multikey.decrypt_secret(secret, [priv]) == SECRET


def test_single_key_threshold_one(key_pairs):
    """A lone recipient with threshold 1 still gets one share."""
    priv, pub = key_pairs[3]
    secret = multikey.encrypt_secret(SECRET, [pub], 1)
    assert len(secret.shares) == 1
    assert secret.decrypt([priv]) == SECRET


def test_helper_short_circuit(private_keys, public_keys):
    """The first helper shard ends collection."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:4], 1)
    report = multikey.recover_shards(secret, private_keys[:4])
    assert report.short_circuit
    assert report.recovered == 1
    assert report.shards == []
    assert multikey.combine_recovered(report) == SECRET


def test_helper_shards_are_distinct_points(private_keys, public_keys):
    """Helper and recipient shares are distinct points of one line."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:3], 1)
    opened = [s.open(p) for s, p in zip(secret.shares, private_keys[:3])]

    helpers = {o.helper for o in opened}
    assert len(helpers) == 1
    xs = {o.value[-1] for o in opened} | {opened[0].helper[-1]}
    assert len(xs) == 4


# ==========================================================================
# Threshold >= 2
# ==========================================================================

def test_encrypt_decrypt_all_thresholds(private_keys, public_keys):
    """T keys are necessary and sufficient for every T in 2..10, in any order."""
    n = len(public_keys)
    for t in range(2, n + 1):
        secret = multikey.encrypt_secret(SECRET, public_keys, t)
        assert not secret.single_key
        rng = random.Random(t)

        for d in range(1, t):
            for subset in (private_keys[:d], rng.sample(private_keys, d)):
                try:
                    plain = multikey.decrypt_secret(secret, subset)
                except CombineError:
                    plain = None
                assert plain != SECRET, f"t={t} decrypted with only {d} keys"

        for d in range(t, n + 1):
            assert multikey.decrypt_secret(secret, private_keys[:d]) == SECRET
            assert multikey.decrypt_secret(secret, rng.sample(private_keys, d)) == SECRET


def test_any_subset_at_threshold(private_keys, public_keys):
    """Every 3-subset of 5 keys decrypts."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:5], 3)
    for combo in itertools.combinations(private_keys[:5], 3):
        assert secret.decrypt(combo) == SECRET


def test_no_matching_keys(public_keys, stranger):
    """Keys that match no share give a counted error."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:3], 2)
    with pytest.raises(CombineError, match="3 of 3 unmatched"):
        multikey.decrypt_secret(secret, [stranger[0]])


def test_extra_keys_ignored(private_keys, public_keys, stranger):
    """Keys that match no share are counted and otherwise ignored."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:3], 2)
    report = multikey.recover_shards(secret, [stranger[0]] + private_keys[:2])
    assert report.recovered == 2
    assert report.unmatched == 1
    assert report.failures == []


def test_corrupted_share_skipped(private_keys, public_keys):
    """A share that fails to decrypt is skipped, enough good ones remain."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:4], 3)
    broken = dataclasses.replace(secret.shares[0], value=b"\x00" * 256)
    tampered = dataclasses.replace(secret, shares=(broken,) + secret.shares[1:])

    report = multikey.recover_shards(tampered, private_keys[:4])
    assert report.recovered == 3
    assert len(report.failures) == 1
    assert report.failures[0][0] == secret.shares[0].key_id

    assert multikey.decrypt_secret(tampered, private_keys[:4]) == SECRET


def test_all_shares_corrupted(private_keys, public_keys):
    """With every share broken there is nothing to combine."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:2], 2)
    broken = tuple(dataclasses.replace(s, value=b"\x01" * 256) for s in secret.shares)
    tampered = dataclasses.replace(secret, shares=broken)

    with pytest.raises(CombineError, match="2 failed"):
        multikey.decrypt_secret(tampered, private_keys[:2])


def test_mixed_secrets_rejected(private_keys, public_keys):
    """Shares of two different-length secrets can not be combined."""
    a = multikey.encrypt_secret(b"short", public_keys[:2], 2)
    b = multikey.encrypt_secret(b"much longer secret", public_keys[:2], 2)
    mixed = EncryptedSecret(shares=(a.shares[0], b.shares[1]))

    with pytest.raises(CombineError, match="same length"):
        multikey.decrypt_secret(mixed, private_keys[:2])


def test_shares_are_raw_shamir_parts(private_keys, public_keys):
    """Opened shares are plain Shamir parts, x byte last."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:3], 3)
    parts = [s.open(p).value for s, p in zip(secret.shares, private_keys[:3])]
    assert all(len(p) == len(SECRET) + 1 for p in parts)
    assert shamir.combine(parts) == SECRET


# ==========================================================================
# Serialization
# ==========================================================================

def test_json_round_trip(private_keys, public_keys):
    """The JSON form keeps version, name and shards."""
    secret = multikey.encrypt_secret(SECRET, public_keys[:3], 1, name="json-test")

    data = json.loads(secret.to_json())
    assert data['version'] == 'multikey_v1'
    assert data['name'] == 'json-test'
    assert len(data['shards']) == 3

    restored = EncryptedSecret.from_json(secret.to_json())
    assert restored == secret
    assert restored.decrypt(private_keys[2:3]) == SECRET
