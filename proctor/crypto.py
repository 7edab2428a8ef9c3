"""
Key handling for encrypted test bundles and checkpoints.

Two formats are supported:
- key file: the payload is a plain Fernet token
- password: b'SALT' + 16-byte salt + Fernet token, key derived with PBKDF2
"""

import base64
import os
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


SALT_PREFIX = b'SALT'
SALT_SIZE = 16


def derive_key_from_password(password: str, salt: bytes) -> bytes:
    """Derive a Fernet key from a password using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=480000,  # OWASP recommendation for 2024
    )
    key_material = kdf.derive(password.encode('utf-8'))
    return base64.urlsafe_b64encode(key_material)


def is_password_based(data: bytes) -> bool:
    return data.startswith(SALT_PREFIX)


def encrypt_payload(plaintext: bytes, key: Optional[bytes] = None, password: Optional[str] = None) -> bytes:
    """
    Encrypt a payload with either a Fernet key or a password.

    Raises:
        ValueError: If neither or both of key and password are given
    """
    if (key is None) == (password is None):
        raise ValueError("Exactly one of key or password is required")

    if password is not None:
        salt = os.urandom(SALT_SIZE)
        fernet = Fernet(derive_key_from_password(password, salt))
        return SALT_PREFIX + salt + fernet.encrypt(plaintext)

    return Fernet(key).encrypt(plaintext)


def decrypt_payload(data: bytes, key_input: Union[str, bytes]) -> bytes:
    """
    Decrypt a payload produced by encrypt_payload.

    key_input is interpreted as a password when the payload carries a salt
    prefix, and as a base64 Fernet key otherwise.

    Raises:
        InvalidToken: If the key/password is wrong or the data is corrupted
    """
    if is_password_based(data):
        salt = data[len(SALT_PREFIX):len(SALT_PREFIX) + SALT_SIZE]
        token = data[len(SALT_PREFIX) + SALT_SIZE:]
        password = key_input.decode('utf-8') if isinstance(key_input, bytes) else key_input
        key = derive_key_from_password(password, salt)
    else:
        token = data
        key = key_input.encode('utf-8') if isinstance(key_input, str) else key_input

    try:
        fernet = Fernet(key)
    except (ValueError, TypeError) as e:
        raise InvalidToken(f"Malformed key: {e}") from e
    return fernet.decrypt(token)


def generate_key() -> bytes:
    return Fernet.generate_key()
