"""Verification token generation.

Tokens are the only secret in a verification link. Callers never check them
for uniqueness, so the entropy size below is the sole guard against reuse.
"""

import secrets

# 32 random bytes = 256 bits, encoded as 43 URL-safe characters (no padding)
TOKEN_BYTES = 32
TOKEN_LENGTH = 43


def generate_token() -> str:
    """Generate a fresh URL-safe verification token.

    Returns:
        Random token drawn from the OS CSPRNG.
    """
    return secrets.token_urlsafe(TOKEN_BYTES)
