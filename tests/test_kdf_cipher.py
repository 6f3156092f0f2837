# Tests for KeyDerivation and AEADCipher
# Covers: PBKDF2 parameters, input validation, AES-256-GCM seal/open,
#         tamper detection, secure-context gating

import os

import pytest

from credential_vault.vault import (
    AEADCipher,
    AuthenticationFailure,
    ExecutionContext,
    InsecureContext,
    KeyDerivation,
    KeyDerivationError,
)

ITERATIONS = 1_000


@pytest.fixture
def salt():
    return KeyDerivation.generate_salt()


@pytest.fixture
def key(salt):
    return KeyDerivation.derive("4242", salt, ITERATIONS)


# ── KeyDerivation ────────────────────────────────────────────────────


class TestKeyDerivation:
    def test_parameters(self):
        assert KeyDerivation.ALGORITHM == "PBKDF2-HMAC-SHA256"
        assert KeyDerivation.DEFAULT_ITERATIONS == 100_000
        assert KeyDerivation.KEY_LENGTH == 32
        assert KeyDerivation.SALT_LENGTH == 16

    def test_salt_is_random(self):
        a, b = KeyDerivation.generate_salt(), KeyDerivation.generate_salt()
        assert len(a) == 16
        assert a != b

    def test_derive_is_deterministic(self, salt):
        k1 = KeyDerivation.derive("4242", salt, ITERATIONS)
        k2 = KeyDerivation.derive("4242", salt, ITERATIONS)
        assert k1 == k2
        assert len(k1) == 32

    def test_default_work_factor(self, salt):
        assert KeyDerivation.derive("4242", salt) == KeyDerivation.derive(
            "4242", salt, 100_000
        )

    def test_different_pin_different_key(self, salt):
        assert KeyDerivation.derive("4242", salt, ITERATIONS) != KeyDerivation.derive(
            "0000", salt, ITERATIONS
        )

    def test_different_salt_different_key(self):
        s1, s2 = KeyDerivation.generate_salt(), KeyDerivation.generate_salt()
        assert KeyDerivation.derive("4242", s1, ITERATIONS) != KeyDerivation.derive(
            "4242", s2, ITERATIONS
        )

    def test_str_and_utf8_bytes_agree(self, salt):
        assert KeyDerivation.derive("pïn✓", salt, ITERATIONS) == KeyDerivation.derive(
            "pïn✓".encode("utf-8"), salt, ITERATIONS
        )

    def test_empty_pin_rejected(self, salt):
        with pytest.raises(KeyDerivationError):
            KeyDerivation.derive("", salt, ITERATIONS)

    @pytest.mark.parametrize("bad_salt", [b"", b"short", os.urandom(32)])
    def test_salt_length_enforced(self, bad_salt):
        with pytest.raises(KeyDerivationError):
            KeyDerivation.derive("4242", bad_salt, ITERATIONS)

    @pytest.mark.parametrize("bad_iterations", [0, -5, True, 10_000_001, 2 ** 70])
    def test_iterations_must_be_positive(self, salt, bad_iterations):
        with pytest.raises(KeyDerivationError):
            KeyDerivation.derive("4242", salt, bad_iterations)

    def test_derivation_error_is_value_error(self, salt):
        with pytest.raises(ValueError):
            KeyDerivation.derive("", salt, ITERATIONS)

    @pytest.mark.asyncio
    async def test_derive_async_matches_sync(self, salt):
        derived = await KeyDerivation.derive_async("4242", salt, ITERATIONS)
        assert derived == KeyDerivation.derive("4242", salt, ITERATIONS)


# ── AEADCipher ───────────────────────────────────────────────────────


class TestAEADCipher:
    def test_encrypt_decrypt(self, key):
        cipher = AEADCipher()
        nonce = cipher.new_nonce()
        ct = cipher.encrypt(key, nonce, b"sk-test-123")
        assert ct != b"sk-test-123"
        assert len(ct) == len(b"sk-test-123") + AEADCipher.TAG_LENGTH
        assert cipher.decrypt(key, nonce, ct) == b"sk-test-123"

    def test_nonce_is_random(self):
        n1, n2 = AEADCipher.new_nonce(), AEADCipher.new_nonce()
        assert len(n1) == 12
        assert n1 != n2

    def test_wrong_key_fails(self, key, salt):
        cipher = AEADCipher()
        nonce = cipher.new_nonce()
        ct = cipher.encrypt(key, nonce, b"secret")
        wrong = KeyDerivation.derive("0000", salt, ITERATIONS)
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(wrong, nonce, ct)

    def test_tampered_ciphertext_fails(self, key):
        cipher = AEADCipher()
        nonce = cipher.new_nonce()
        ct = bytearray(cipher.encrypt(key, nonce, b"secret"))
        ct[0] ^= 0x01
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(key, nonce, bytes(ct))

    def test_wrong_nonce_fails(self, key):
        cipher = AEADCipher()
        ct = cipher.encrypt(key, cipher.new_nonce(), b"secret")
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(key, cipher.new_nonce(), ct)

    def test_malformed_inputs_fail_as_authentication(self, key):
        cipher = AEADCipher()
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(key, b"short", b"x" * 32)
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(key, cipher.new_nonce(), b"tiny")
        with pytest.raises(AuthenticationFailure):
            cipher.decrypt(b"k" * 16, cipher.new_nonce(), b"x" * 32)

    def test_encrypt_rejects_bad_lengths(self, key):
        cipher = AEADCipher()
        with pytest.raises(ValueError):
            cipher.encrypt(b"k" * 16, cipher.new_nonce(), b"secret")
        with pytest.raises(ValueError):
            cipher.encrypt(key, b"n" * 8, b"secret")

    def test_same_plaintext_differs_per_nonce(self, key):
        cipher = AEADCipher()
        a = cipher.encrypt(key, cipher.new_nonce(), b"secret")
        b = cipher.encrypt(key, cipher.new_nonce(), b"secret")
        assert a != b


class TestExecutionContext:
    @pytest.mark.parametrize("context", [
        ExecutionContext.local(),
        ExecutionContext(scheme="https", host="vault.example.com"),
        ExecutionContext(scheme="wss", host="vault.example.com"),
        ExecutionContext(scheme="http", host="localhost"),
        ExecutionContext(scheme="http", host="127.0.0.1"),
        ExecutionContext(scheme="http", host="127.8.0.2"),
        ExecutionContext(scheme="http", host="[::1]"),
        ExecutionContext(scheme="http", host="app.localhost"),
    ])
    def test_secure(self, context):
        assert context.is_secure()

    @pytest.mark.parametrize("context", [
        ExecutionContext(scheme="http", host="vault.example.com"),
        ExecutionContext(scheme="http", host="192.168.1.20"),
        ExecutionContext(scheme="http", host=None),
        ExecutionContext(scheme="ws", host="10.0.0.1"),
    ])
    def test_insecure(self, context):
        assert not context.is_secure()

    def test_encrypt_refused_outside_secure_context(self, key):
        cipher = AEADCipher(ExecutionContext(scheme="http", host="vault.example.com"))
        with pytest.raises(InsecureContext):
            cipher.encrypt(key, cipher.new_nonce(), b"secret")

    def test_decrypt_refused_outside_secure_context(self, key):
        ct = AEADCipher().encrypt(key, b"n" * 12, b"secret")
        cipher = AEADCipher(ExecutionContext(scheme="http", host="vault.example.com"))
        with pytest.raises(InsecureContext):
            cipher.decrypt(key, b"n" * 12, ct)


@pytest.mark.parametrize("pin1,pin2", [
    ("4242", "0000"),
    ("4242", "4242 "),
    ("1234", "12345"),
    ("pïn1", "pin1"),
])
def test_wrong_pin_fails_authentication(salt, pin1, pin2):
    cipher = AEADCipher()
    nonce = cipher.new_nonce()
    ct = cipher.encrypt(KeyDerivation.derive(pin1, salt, ITERATIONS), nonce, b"secret")
    with pytest.raises(AuthenticationFailure):
        cipher.decrypt(KeyDerivation.derive(pin2, salt, ITERATIONS), nonce, ct)
