"""Short token generation.

Tokens are drawn uniformly from a 62-symbol alphabet with a non-cryptographic
PRNG. Nothing here guarantees uniqueness: the ``urls.short_token`` unique
constraint catches collisions and the shorten workflow reports them as a
failed creation.
"""

import string

from nanoid import non_secure_generate

from shortener.config import get_settings

__all__ = ["ALPHABET", "generate_token"]

settings = get_settings()

ALPHABET = string.ascii_lowercase + string.ascii_uppercase + string.digits


def generate_token(length: int = settings.SHORT_TOKEN_LENGTH) -> str:
    assert isinstance(length, int) and length > 0, f"length must be a positive integer, got {length!r}"
    return non_secure_generate(ALPHABET, length)
