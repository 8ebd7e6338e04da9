"""Tests for password hashing, verification and the strength predicate."""

import pytest

from crm.core.exceptions import EmptyPassword, PasswordTooLong, WeakPassword
from crm.core.security import check_password_strength, hash_password, verify_password


def test_hash_is_salted_and_verifiable():
    first = hash_password("Password123")
    second = hash_password("Password123")

    assert first != "Password123"
    assert first != second
    assert verify_password("Password123", first)
    assert verify_password("Password123", second)


def test_hash_rejects_empty_password():
    with pytest.raises(EmptyPassword) as exc:
        hash_password("")
    assert exc.value.message == "Password can not be empty"


def test_verify_wrong_password():
    hashed = hash_password("Password123")
    assert verify_password("password123", hashed) is False
    assert verify_password("", hashed) is False


@pytest.mark.parametrize("password", ["Aa1" + "x" * 100, "A\u00e91" * 30])
def test_hash_rejects_password_over_72_bytes(password):
    with pytest.raises(PasswordTooLong):
        hash_password(password)


def test_hash_accepts_exactly_72_bytes():
    password = "Aa1" + "x" * 69
    assert verify_password(password, hash_password(password))


def test_verify_long_plaintext_is_false():
    hashed = hash_password("Password123")
    assert verify_password("Password123" + "x" * 100, hashed) is False


def test_verify_against_missing_or_garbage_hash():
    assert verify_password("Password123", None) is False
    assert verify_password("Password123", "not-a-bcrypt-hash") is False


@pytest.mark.parametrize("password", [
    "",
    "123456",
    "Pass123",          # too short
    "password123",      # no uppercase
    "PASSWORD123",      # no lowercase
    "Passwordabc",      # no digit
])
def test_weak_passwords_are_rejected(password):
    with pytest.raises(WeakPassword) as exc:
        check_password_strength(password)
    assert exc.value.message.startswith("Must contain at least one number")


@pytest.mark.parametrize("password", ["Password123", "aB3defgh", "Zz9Zz9Zz9Zz9", "Abcdefgh\n1"])
def test_strong_passwords_pass(password):
    check_password_strength(password)


def test_strength_checks_whole_multiline_value():
    with pytest.raises(WeakPassword):
        check_password_strength("abcdefgh\n1")
