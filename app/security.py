"""
Security utilities: password hashing, JWT tokens, and Fernet encryption.

This module centralizes all cryptographic operations so they're easy to
audit and update. Three concerns are handled here:

1. PASSWORD HASHING (Argon2)
   - Passwords are never stored in plaintext
   - passlib's CryptContext drives Argon2id hashing and verification

2. JWT TOKENS
   - After login, the user receives a signed JWT containing their user ID
   - The token is signed with SECRET_KEY using HS256
   - Tokens expire after ACCESS_TOKEN_EXPIRE_MINUTES (default: 30 min)

3. FERNET ENCRYPTION (AES-128-CBC + HMAC-SHA256)
   - Used for encrypting payment card numbers and CVVs at rest
   - Fernet is authenticated: a tampered or foreign token fails to decrypt
     instead of returning garbage
   - Each encryption uses a fresh IV, so the same card number never produces
     the same ciphertext twice; decryption always recovers the plaintext
   - Keys form a ring (MultiFernet): the current key encrypts, the current
     and any retired keys decrypt. rotate_value() moves a token onto the
     current key.
"""

from datetime import datetime, timedelta, timezone

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from jose import jwt
from passlib.context import CryptContext

from app.config import settings
from app.exceptions import DecryptionError


# ---------------------------------------------------------------------------
# 1. Password Hashing (Argon2)
# ---------------------------------------------------------------------------

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    """Hash a plaintext password using Argon2id."""
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plaintext password against a stored Argon2 hash."""
    return pwd_context.verify(plain_password, hashed_password)


# ---------------------------------------------------------------------------
# 2. JWT Tokens
# ---------------------------------------------------------------------------


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    """
    Create a signed JWT access token.

    Args:
        data: Dictionary of claims to encode (must include "sub").
        expires_delta: Optional custom expiration time. Defaults to
                       ACCESS_TOKEN_EXPIRE_MINUTES from settings.

    Returns:
        An encoded JWT string.
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> dict:
    """
    Decode and verify a JWT access token.

    Raises:
        JWTError: If the token is expired, tampered with, or invalid.
    """
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


# ---------------------------------------------------------------------------
# 3. Fernet Encryption (for payment card data at rest)
# ---------------------------------------------------------------------------

# The first key encrypts; every key in the ring is tried on decrypt.
_fernet = MultiFernet(
    [
        Fernet(key.encode())
        for key in [settings.PAYMENT_ENCRYPTION_KEY, *settings.PAYMENT_ENCRYPTION_PREVIOUS_KEYS]
    ]
)


def encrypt_value(plaintext: str) -> str:
    """
    Encrypt a string value with the current payment encryption key.

    Args:
        plaintext: The sensitive value to encrypt (e.g., "4111111111111111").

    Returns:
        The Fernet token as URL-safe base64 text, suitable for a String column.
    """
    return _fernet.encrypt(plaintext.encode()).decode()


def decrypt_value(ciphertext: str) -> str:
    """
    Decrypt a Fernet token back to plaintext.

    Args:
        ciphertext: The token text read from the database.

    Returns:
        The original plaintext string.

    Raises:
        DecryptionError: If the token is corrupted or was encrypted with a
            key that is no longer in the key ring.
    """
    try:
        return _fernet.decrypt(ciphertext.encode()).decode()
    except InvalidToken as exc:
        raise DecryptionError() from exc


def rotate_value(ciphertext: str) -> str:
    """
    Re-encrypt a token under the current key, keeping its plaintext.

    Raises:
        DecryptionError: If no key in the ring can decrypt the token.
    """
    try:
        return _fernet.rotate(ciphertext.encode()).decode()
    except InvalidToken as exc:
        raise DecryptionError() from exc
