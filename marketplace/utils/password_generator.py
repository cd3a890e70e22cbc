"""
Temporary password generation

Customer and vendor identities sign in without a password, but the identity
provider still requires one at registration. These passwords are used once
and discarded.
"""

import secrets
import string

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
DIGITS = string.digits
SPECIAL = "!@#$%^&*()"

TEMPORARY_PASSWORD_LENGTH = 12


def generate_temporary_password(length: int = TEMPORARY_PASSWORD_LENGTH) -> str:
    """
    Generate a random password with at least one character of each class

    Args:
        length: Password length (minimum 4)

    Returns:
        str: Generated password
    """
    if length < 4:
        raise ValueError("Password length must be at least 4")

    all_chars = UPPERCASE + LOWERCASE + DIGITS + SPECIAL

    # One from each class first, rest from the combined alphabet
    password = [
        secrets.choice(UPPERCASE),
        secrets.choice(LOWERCASE),
        secrets.choice(DIGITS),
        secrets.choice(SPECIAL),
    ]
    password.extend(secrets.choice(all_chars) for _ in range(length - 4))

    # Shuffle so the guaranteed characters aren't in fixed positions
    secrets.SystemRandom().shuffle(password)

    return ''.join(password)
