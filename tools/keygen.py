#!/usr/bin/env python3
"""
keygen.py - Generate Fernet keys for encrypted tests and checkpoints.

Usage:
    python tools/keygen.py --out TEST1.key
    python tools/keygen.py --out checkpoints.key

Note: Tests can also be encrypted with a password (build_test.py --password);
      checkpoints always need a key, passed to the runner via
      --checkpoint-key or PROCTOR_CHECKPOINT_KEY.
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.crypto import generate_key


def write_key(output_file: str) -> bytes:
    """Generate a new Fernet key and save it to file."""
    key = generate_key()
    Path(output_file).parent.mkdir(parents=True, exist_ok=True)
    with open(output_file, 'wb') as f:
        f.write(key)
    return key


def main():
    parser = argparse.ArgumentParser(
        description="Generate a new Fernet key for tests or checkpoints.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python tools/keygen.py --out TEST1.key
  python tools/keygen.py --out checkpoints.key

Security Notes:
  - Store keys in a secure password manager
  - Never distribute keys with encrypted tests
  - Use a different key for checkpoints than for tests
        """
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output file path for the key (e.g., TEST1.key)"
    )

    args = parser.parse_args()
    try:
        key = write_key(args.out)
    except OSError as e:
        print(f"[ERROR] Error writing key: {e}", file=sys.stderr)
        sys.exit(1)

    print("[OK] Success: Encryption key generated")
    print(f"  Output: {args.out}")
    print(f"  Key (base64): {key.decode('utf-8')}")
    print("\n[!] SECURITY: Store this key securely. Never commit to version control.")


if __name__ == "__main__":
    main()
