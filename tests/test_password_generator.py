"""
Tests for temporary password generation
"""

import pytest

from marketplace.utils.password_generator import (
    DIGITS,
    LOWERCASE,
    SPECIAL,
    UPPERCASE,
    generate_temporary_password,
)


class TestGenerateTemporaryPassword:
    """Test generate_temporary_password"""

    def test_thousand_passwords_have_every_class(self):
        """Every generated password is 12 chars with all four classes"""
        for _ in range(1000):
            password = generate_temporary_password()

            assert len(password) == 12
            assert any(c in UPPERCASE for c in password)
            assert any(c in LOWERCASE for c in password)
            assert any(c in DIGITS for c in password)
            assert any(c in SPECIAL for c in password)

    def test_only_known_characters(self):
        alphabet = set(UPPERCASE + LOWERCASE + DIGITS + SPECIAL)
        for _ in range(200):
            assert set(generate_temporary_password()) <= alphabet

    def test_guaranteed_characters_are_not_fixed(self):
        """Shuffling moves the guaranteed uppercase away from position 0"""
        first_chars = {generate_temporary_password()[0] for _ in range(200)}
        assert not first_chars <= set(UPPERCASE)

    def test_passwords_differ(self):
        passwords = {generate_temporary_password() for _ in range(100)}
        assert len(passwords) == 100

    def test_custom_length(self):
        assert len(generate_temporary_password(20)) == 20

    def test_too_short_rejected(self):
        with pytest.raises(ValueError):
            generate_temporary_password(3)
