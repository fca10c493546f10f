"""
Digest utilities for the EVDB login handshake.

The login is a challenge/response exchange: the server hands out a
nonce, and the client answers with a digest computed from the nonce
and the (digested) password.  The password itself never goes over
the wire.
"""

from __future__ import annotations

import hashlib


def password_digest(password: str) -> str:
    """
    Digest the password the way the server stores it.

    Args:
        password: Clear text password.

    Returns:
        Lowercase hex MD5 of the UTF-8 encoded password.

    Example:
        >>> password_digest("secret")
        '5ebe2294ecd0e0f08eab7690d2a6ee69'
    """
    if isinstance(password, str):
        password = password.encode("utf-8")
    return hashlib.md5(password).hexdigest()


def response_digest(nonce: str, password_md5: str) -> str:
    """
    Compute the answer to a login challenge.

    Args:
        nonce: The nonce delivered by the server in the first login round.
        password_md5: The password digest, as returned by password_digest.

    Returns:
        Lowercase hex MD5 of "<nonce>:<password_md5>".
    """
    return hashlib.md5(f"{nonce}:{password_md5}".encode("utf-8")).hexdigest()
