"""Utility functions shared across the service."""

import hashlib

ID_LENGTH = 10


def hash_email(email: str) -> str:
    """Derive a user's document id from their email.

    First 10 hex characters of the SHA-256 digest. The value must never
    change for a given email, since it is the storage key.
    """
    return hashlib.sha256(email.encode("utf-8")).hexdigest()[:ID_LENGTH]
