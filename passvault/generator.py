"""
Password Generator — Random passwords for new vault items.
"""
import secrets
import string

from .vault.errors import ValidationError

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
LOOKALIKES = "0O1lI"

MIN_LENGTH = 4
MAX_LENGTH = 128


def generate_password(
    length: int = 16,
    uppercase: bool = True,
    lowercase: bool = True,
    digits: bool = True,
    symbols: bool = True,
    exclude_lookalikes: bool = True,
) -> str:
    """Generate a random password from the selected character classes.

    Characters are drawn with ``secrets.choice``.

    Raises:
        ValidationError: If no character class is selected or ``length`` is
            outside the allowed range.
    """
    if not MIN_LENGTH <= length <= MAX_LENGTH:
        raise ValidationError(
            f"Password length must be between {MIN_LENGTH} and {MAX_LENGTH}",
            field="length",
        )
    chars = ""
    if uppercase:
        chars += UPPERCASE
    if lowercase:
        chars += LOWERCASE
    if digits:
        chars += DIGITS
    if symbols:
        chars += SYMBOLS
    if exclude_lookalikes:
        chars = "".join(c for c in chars if c not in LOOKALIKES)
    if not chars:
        raise ValidationError("Select at least one character type")
    return "".join(secrets.choice(chars) for _ in range(length))
