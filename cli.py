#!/usr/bin/env python3
"""
Multikey CLI — encrypt a secret so that any T of N RSA keys can decrypt it.

Usage:
    cli.py keygen --name alice [--output ./keys/] [--bits 2048]
    cli.py fingerprint --key alice.pub.pem
    cli.py encrypt --message "secret" --keys a.pub.pem b.pub.pem c.pub.pem -t 2 [--output s.pem]
    cli.py decrypt --secret s.pem --keys a.pem c.pem [--output secret.bin]
    cli.py inspect --secret s.pem
"""

import argparse
import os
import sys

from multikey import envelope, keys, multikey
from multikey.errors import MultikeyError
from multikey.log import configure_logging


def _read_key_files(paths, loader):
    loaded = []
    for p in paths:
        if not os.path.exists(p):
            raise FileNotFoundError(f"key file not found: {p}")
        with open(p, 'rb') as f:
            loaded.append(loader(f.read()))
    return loaded


def _load_secret(path):
    if not os.path.exists(path):
        raise FileNotFoundError(f"secret not found: {path}")
    with open(path) as f:
        return envelope.decode_pem(f.read())


def cmd_keygen(args):
    """Generate an RSA key pair as PEM files."""
    out = args.output or '.'
    os.makedirs(out, exist_ok=True)

    priv, pub = keys.generate_key_pair(args.bits)
    priv_path = os.path.join(out, f"{args.name}.pem")
    pub_path = os.path.join(out, f"{args.name}.pub.pem")

    with open(priv_path, 'wb') as f:
        f.write(keys.encode_private_pem(priv))
    os.chmod(priv_path, 0o600)
    with open(pub_path, 'wb') as f:
        f.write(keys.encode_public_pem(pub))

    print(f"Private key: {priv_path}")
    print(f"Public key:  {pub_path}")
    print(f"Fingerprint: {keys.fingerprint(pub)}")
    return 0


def cmd_fingerprint(args):
    """Print the fingerprint of a public or private key."""
    with open(args.key, 'rb') as f:
        pem = f.read()
    if b'PRIVATE KEY' in pem:
        pub = keys.decode_private_pem(pem).public_key()
    else:
        pub = keys.decode_public_pem(pem)
    print(keys.fingerprint(pub))
    return 0


def cmd_encrypt(args):
    """Encrypt a secret to a set of public keys."""
    if args.message:
        payload = args.message.encode('utf-8')
    elif args.file:
        if not os.path.exists(args.file):
            print(f"Error: file not found: {args.file}", file=sys.stderr)
            return 1
        with open(args.file, 'rb') as f:
            payload = f.read()
    else:
        payload = sys.stdin.buffer.read()

    if not payload:
        print("Error: empty secret", file=sys.stderr)
        return 1

    pubs = _read_key_files(args.keys, keys.decode_public_pem)
    secret = multikey.encrypt_secret(payload, pubs, args.threshold, name=args.name)
    pem = envelope.encode_pem(secret)

    if args.output:
        with open(args.output, 'w') as f:
            f.write(pem)
        print(f"Encrypted {len(payload)} bytes to {len(pubs)} keys "
              f"({args.threshold}-of-{len(pubs)}): {args.output}", file=sys.stderr)
    else:
        sys.stdout.write(pem)
    return 0


def cmd_decrypt(args):
    """Decrypt a secret with whichever private keys are available."""
    secret = _load_secret(args.secret)
    privs = _read_key_files(args.keys, keys.decode_private_pem)

    report = multikey.recover_shards(secret, privs)
    print(f"Recovered {report.recovered} of {report.total} shards", file=sys.stderr)
    for key_id, err in report.failures:
        print(f"  ⚠️  {key_id}: {err}", file=sys.stderr)

    try:
        plaintext = multikey.combine_recovered(report)
    except MultikeyError as e:
        print(f"Decryption FAILED: {e}", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, 'wb') as f:
            f.write(plaintext)
        print(f"Saved to: {args.output}", file=sys.stderr)
    else:
        sys.stdout.buffer.write(plaintext)
    return 0


def cmd_inspect(args):
    """Show the recipients of an encrypted secret."""
    secret = _load_secret(args.secret)

    print(f"Name:      {secret.name or '(none)'}")
    print(f"Shards:    {len(secret.shares)}")
    print(f"Any-one:   {'yes' if secret.single_key else 'no'}")
    print("Key IDs:")
    for s in secret.shares:
        print(f"  {s.key_id}{'  (+helper)' if s.has_helper else ''}")
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description='Multikey — encrypt a secret so that any T of N RSA keys can decrypt it.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Three recipients
  %(prog)s keygen --name alice --output ./keys/
  %(prog)s keygen --name bob --output ./keys/
  %(prog)s keygen --name carol --output ./keys/

  # Any 2 of the 3 can decrypt
  %(prog)s encrypt -m "hunter2" -k keys/*.pub.pem -t 2 -o secret.pem

  # Decrypt with Alice and Carol
  %(prog)s decrypt -s secret.pem -k keys/alice.pem keys/carol.pem
        """
    )
    parser.add_argument('--log-level', default=None,
                        help='critical, error, warning, info or debug')

    sub = parser.add_subparsers(dest='command', help='Command')

    p_keygen = sub.add_parser('keygen', help='Generate an RSA key pair')
    p_keygen.add_argument('--name', '-n', required=True, help='Base name for the key files')
    p_keygen.add_argument('--output', '-o', help='Output directory (default: current)')
    p_keygen.add_argument('--bits', '-b', type=int, default=None, help='RSA modulus size')

    p_fp = sub.add_parser('fingerprint', help='Print a key fingerprint')
    p_fp.add_argument('--key', '-k', required=True, help='Public or private PEM file')

    p_encrypt = sub.add_parser('encrypt', help='Encrypt a secret to public keys')
    p_encrypt.add_argument('--message', '-m', help='Text secret')
    p_encrypt.add_argument('--file', '-f', help='File holding the secret')
    p_encrypt.add_argument('--keys', '-k', nargs='+', required=True, help='Recipient public PEM files')
    p_encrypt.add_argument('--threshold', '-t', type=int, required=True, help='Keys needed to decrypt')
    p_encrypt.add_argument('--name', '-l', help='Label stored with the secret')
    p_encrypt.add_argument('--output', '-o', help='Output file (default: stdout)')

    p_decrypt = sub.add_parser('decrypt', help='Decrypt a secret with private keys')
    p_decrypt.add_argument('--secret', '-s', required=True, help='Encrypted secret PEM file')
    p_decrypt.add_argument('--keys', '-k', nargs='+', required=True, help='Private PEM files')
    p_decrypt.add_argument('--output', '-o', help='Output file (default: stdout)')

    p_inspect = sub.add_parser('inspect', help='Inspect an encrypted secret')
    p_inspect.add_argument('--secret', '-s', required=True, help='Encrypted secret PEM file')

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(args.log_level)

    handlers = {
        'keygen': cmd_keygen,
        'fingerprint': cmd_fingerprint,
        'encrypt': cmd_encrypt,
        'decrypt': cmd_decrypt,
        'inspect': cmd_inspect,
    }

    try:
        return handlers[args.command](args)
    except (MultikeyError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
