"""
Envelope — text and PEM serialization of encrypted secrets.

Text form, one line per share:

    <key_id>(<value_b64>)
    <key_id>(<value_b64>)(<helper_b64>)

PEM form wraps the base64 of the text form in an armour block, with the
secret's name (if any) as a "Name:" header:

    -----BEGIN MULTIKEY ENCRYPTED SECRET-----
    Name: deploy-key

    <base64, 64 columns>
    -----END MULTIKEY ENCRYPTED SECRET-----
"""

import base64
import binascii
import re
import textwrap
from typing import Optional

from .config import SETTINGS
from .errors import FormatError
from .multikey import EncryptedSecret
from .shard import EncryptedShare


_B64 = r'[A-Za-z0-9+/]+={0,2}'
_TOKEN = re.compile(rf'^([^()\s]+)\(({_B64})\)(?:\(({_B64})\))?$')
_NAME_HEADER = 'Name'


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def _unb64(text: str, what: str, lineno: int) -> bytes:
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Line {lineno}: invalid base64 in {what}: {e}")


def format_share(share: EncryptedShare) -> str:
    token = f"{share.key_id}({_b64(share.value)})"
    if share.has_helper:
        token += f"({_b64(share.helper)})"
    return token


def parse_share(token: str, lineno: int = 1) -> EncryptedShare:
    """Parse one KEYID(VALUE) or KEYID(VALUE)(HELPER) token."""
    m = _TOKEN.match(token.strip())
    if not m:
        raise FormatError(f"Line {lineno}: malformed share token")
    key_id, value, helper = m.groups()
    return EncryptedShare(
        value=_unb64(value, 'value', lineno),
        key_id=key_id,
        helper=_unb64(helper, 'helper', lineno) if helper else None,
    )


def encode_text(secret: EncryptedSecret) -> str:
    if not secret.shares:
        raise FormatError("Cannot encode a secret with no shares")
    return '\n'.join(format_share(s) for s in secret.shares)


def decode_text(text: str, name: Optional[str] = None) -> EncryptedSecret:
    """
    Parse the text form. Blank lines are ignored; any malformed line fails
    the whole decode.
    """
    if not text or not text.strip():
        raise FormatError("Empty envelope")

    shares = []
    for lineno, line in enumerate(text.splitlines(), 1):
        if not line.strip():
            continue
        shares.append(parse_share(line, lineno))
    return EncryptedSecret(shares=tuple(shares), name=name)


def encode_pem(secret: EncryptedSecret, label: Optional[str] = None) -> str:
    label = label or SETTINGS.envelope.pem_label
    body = _b64(encode_text(secret).encode('ascii'))

    lines = [f"-----BEGIN {label}-----"]
    if secret.name:
        if '\n' in secret.name or '\r' in secret.name:
            raise FormatError("Secret name can not span lines")
        lines.append(f"{_NAME_HEADER}: {secret.name}")
        lines.append('')
    lines.extend(textwrap.wrap(body, SETTINGS.envelope.line_width))
    lines.append(f"-----END {label}-----")
    return '\n'.join(lines) + '\n'


def decode_pem(text: str, label: Optional[str] = None) -> EncryptedSecret:
    """
    Parse a PEM armoured secret.

    Raises:
        FormatError: Missing or mismatched armour lines, wrong label, bad
            headers, bad base64 body, or a malformed share inside it
    """
    label = label or SETTINGS.envelope.pem_label
    begin = f"-----BEGIN {label}-----"
    end = f"-----END {label}-----"

    if not text or not text.strip():
        raise FormatError("Empty envelope")

    lines = [line.strip() for line in text.strip().splitlines()]
    if lines[0] != begin:
        raise FormatError(f"Expected '{begin}'")
    if lines[-1] != end:
        raise FormatError(f"Expected '{end}'")
    inner = lines[1:-1]

    name = None
    if inner and ':' in inner[0]:
        key, _, value = inner[0].partition(':')
        if key.strip() != _NAME_HEADER:
            raise FormatError(f"Unknown PEM header: {key.strip()}")
        name = value.strip() or None
        inner = inner[1:]
        if inner and inner[0] == '':
            inner = inner[1:]

    body = ''.join(inner)
    if not body:
        raise FormatError("PEM block has no body")
    try:
        raw = base64.b64decode(body, validate=True)
        content = raw.decode('ascii')
    except (binascii.Error, ValueError) as e:
        raise FormatError(f"Invalid PEM body: {e}")

    return decode_text(content, name=name)
