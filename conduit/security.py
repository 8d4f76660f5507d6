"""
Password hashing and verification (bcrypt, adaptive cost).

Plaintext passwords only ever live in request memory: they are hashed on
registration/update and compared by ``verify_password`` on login.
"""
import bcrypt

from conduit.config import settings

# bcrypt only looks at the first 72 bytes; longer inputs are refused upstream.
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")


def verify_password(stored_hash: str, candidate: str) -> bool:
    """
    Return True when *candidate* matches *stored_hash*.

    Any failure (wrong password, empty or malformed hash, over-long
    candidate) yields False; callers treat it as bad credentials, never
    as a server error.
    """
    if not stored_hash or candidate is None:
        return False
    try:
        return bcrypt.checkpw(candidate.encode("utf-8"), stored_hash.encode("ascii"))
    except (ValueError, TypeError):
        return False
