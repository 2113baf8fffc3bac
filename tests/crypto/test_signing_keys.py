"""Tests for the Ed25519 and SECP256K1 signing key wrappers."""

import hashlib

import pytest

from account_vault.crypto.ed25519 import Ed25519PrivateKey, Ed25519PublicKey, Ed25519Error
from account_vault.crypto.secp256k1 import Secp256k1PrivateKey, Secp256k1PublicKey, Secp256k1Error

# RFC 8032 section 7.1, TEST 1
RFC8032_SECRET = "9d61b19deffd5a60ba844af492ec2cc44449c5697b326919703bac031cae7f60"
RFC8032_PUBLIC = "d75a980182b10ab7d54bfed3c964073a0ee172f3daa62325af021a68f707511a"
RFC8032_SIGNATURE = (
    "e5564300c360ac729086e2cc806e828a84877f1eb8e5d974d873e065"
    "224901555fb8821590a33bacc61e39701cf9b46bd25bf5f0595bbe24655141438e7a100b"
)

SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141


class TestEd25519:

    def test_rfc8032_vector(self):
        key = Ed25519PrivateKey(bytes.fromhex(RFC8032_SECRET))
        assert key.public_key().to_hex() == RFC8032_PUBLIC
        signature = key.sign(b"")
        assert signature.hex() == RFC8032_SIGNATURE
        assert key.public_key().verify(signature, b"")

    def test_verify_rejects_other_message(self):
        key = Ed25519PrivateKey.generate()
        signature = key.sign(b"message")
        assert not key.public_key().verify(signature, b"other")
        assert not key.public_key().verify(signature[:-1], b"message")

    def test_legacy_64_byte_secret_key(self):
        key = Ed25519PrivateKey(bytes.fromhex(RFC8032_SECRET))
        legacy = key.to_bytes() + key.public_key().to_bytes()
        assert Ed25519PrivateKey.from_secret_key(legacy).to_bytes() == key.to_bytes()

    def test_legacy_secret_key_with_wrong_public_key(self):
        legacy = bytes.fromhex(RFC8032_SECRET) + b"\x00" * 32
        with pytest.raises(Ed25519Error, match="does not match"):
            Ed25519PrivateKey.from_secret_key(legacy)

    @pytest.mark.parametrize("length", [0, 31, 33, 63, 65])
    def test_invalid_lengths(self, length):
        with pytest.raises(Ed25519Error):
            Ed25519PrivateKey.from_secret_key(b"\x01" * length)

    def test_repr_hides_private_key(self):
        key = Ed25519PrivateKey(bytes.fromhex(RFC8032_SECRET))
        assert RFC8032_SECRET not in repr(key)
        assert RFC8032_SECRET not in str(key)
        assert RFC8032_PUBLIC in repr(key)

    def test_public_key_equality(self):
        a = Ed25519PublicKey(bytes.fromhex(RFC8032_PUBLIC))
        b = Ed25519PublicKey(bytes.fromhex(RFC8032_PUBLIC))
        assert a == b
        assert hash(a) == hash(b)


class TestSecp256k1:

    def test_sign_and_verify(self):
        key = Secp256k1PrivateKey((7).to_bytes(32, 'big'))
        signature = key.sign(b"hello")
        assert len(signature) == 64
        assert key.public_key().verify(signature, b"hello")
        assert not key.public_key().verify(signature, b"hello!")

    def test_signatures_are_deterministic_and_low_s(self):
        key = Secp256k1PrivateKey(hashlib.sha256(b"seed").digest())
        signature = key.sign(b"data")
        assert signature == key.sign(b"data")
        s = int.from_bytes(signature[32:], 'big')
        assert s <= SECP256K1_ORDER // 2

    def test_compressed_public_key(self):
        key = Secp256k1PrivateKey((1).to_bytes(32, 'big'))
        public_bytes = key.public_key().to_bytes()
        assert len(public_bytes) == 33
        # Generator point G
        assert public_bytes.hex() == "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"
        assert Secp256k1PublicKey(public_bytes) == key.public_key()

    @pytest.mark.parametrize("scalar", [0, SECP256K1_ORDER])
    def test_out_of_range_scalar(self, scalar):
        with pytest.raises(Secp256k1Error):
            Secp256k1PrivateKey(scalar.to_bytes(32, 'big'))

    def test_wrong_length(self):
        with pytest.raises(Secp256k1Error, match="32 bytes"):
            Secp256k1PrivateKey(b"\x01" * 31)

    def test_repr_hides_private_key(self):
        secret = hashlib.sha256(b"seed").digest()
        key = Secp256k1PrivateKey(secret)
        assert secret.hex() not in repr(key)
