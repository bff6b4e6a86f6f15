"""
Password hashing tests
"""

from portal.security import hash_password, verify_password


def test_hash_is_argon2id_and_salted():
    first = hash_password("secret")
    second = hash_password("secret")
    assert first.startswith("$argon2id$")
    assert first != second


def test_verify():
    hashed = hash_password("secret")
    assert verify_password("secret", hashed) is True
    assert verify_password("Secret", hashed) is False


def test_malformed_hash_is_a_mismatch():
    assert verify_password("secret", "not-a-hash") is False
