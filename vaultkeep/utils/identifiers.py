"""
Random identifiers embedded in archive filenames.
"""

import string
import secrets


ID_ALPHABET = string.ascii_uppercase + string.digits


class RandomSourceError(Exception):
    """Raised when the operating system entropy source fails."""
    pass


def generate_id(length: int = 6) -> str:
    """
    Generate a random identifier from uppercase letters and digits.

    Uses the OS cryptographic random source. There is no fallback to a
    weaker generator: if the source fails the caller gets an error.

    Args:
        length: Number of characters

    Returns:
        Identifier string

    Raises:
        ValueError: If length is less than 1
        RandomSourceError: If the entropy source is unavailable
    """
    if length < 1:
        raise ValueError(f"Identifier length must be positive, got {length}")

    try:
        return ''.join(secrets.choice(ID_ALPHABET) for _ in range(length))
    except (OSError, NotImplementedError) as e:
        raise RandomSourceError(f"Random source unavailable: {e}") from e
