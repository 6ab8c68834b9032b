import base64
import hashlib
import json
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from scalecodec.utils.ss58 import ss58_decode

from core.errors import WalletError
from wallet import PBKDF2_ITERATIONS, SS58_FORMAT, load_wallet, load_wallet_from_keyfile

from conftest import TEST_KEY

TEST_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"
PASSWORD = "TestPassword123"
FAST_ITERATIONS = 1000


def _b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _seal(plaintext: str, password: str, iterations: int = FAST_ITERATIONS) -> dict:
    """Key file in the sealed layout: separate GCM tag, base64 fields."""
    salt = os.urandom(32)
    iv = os.urandom(12)
    key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations, dklen=32)
    sealed = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)
    return {
        "version": "1",
        "salt": _b64(salt),
        "iv": _b64(iv),
        "ciphertext": _b64(sealed[:-16]),
        "authTag": _b64(sealed[-16:]),
    }


def _write_sealed(tmp_path, plaintext: str = TEST_KEY, **overrides):
    data = _seal(plaintext, PASSWORD)
    data.update(overrides)
    path = tmp_path / "private-key.txt"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


class _Passwords:
    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.asked = 0

    def __call__(self, prompt: str) -> str:
        self.asked += 1
        return self.answers.pop(0)


def test_load_from_private_key() -> None:
    assert load_wallet(private_key=TEST_KEY).address == TEST_ADDRESS
    assert load_wallet(private_key=TEST_KEY[2:]).address == TEST_ADDRESS


def test_private_key_wins_over_other_sources(tmp_path) -> None:
    wallet = load_wallet(private_key=TEST_KEY, keyfile=str(tmp_path / "missing.txt"))
    assert wallet.address == TEST_ADDRESS


def test_invalid_sources() -> None:
    with pytest.raises(WalletError):
        load_wallet(private_key="0x1234")
    with pytest.raises(WalletError):
        load_wallet(mnemonic="not a valid phrase")
    with pytest.raises(WalletError):
        load_wallet()


def test_keyfile_with_plain_key(tmp_path) -> None:
    path = tmp_path / "private-key.txt"
    path.write_text(TEST_KEY + "\n", encoding="utf-8")

    assert load_wallet_from_keyfile(str(path)).address == TEST_ADDRESS


def test_keyfile_errors(tmp_path) -> None:
    with pytest.raises(WalletError, match="No private key found"):
        load_wallet_from_keyfile(str(tmp_path / "missing.txt"))

    empty = tmp_path / "empty.txt"
    empty.write_text("  \n", encoding="utf-8")
    with pytest.raises(WalletError, match="not found"):
        load_wallet_from_keyfile(str(empty))

    partial = tmp_path / "partial.txt"
    partial.write_text(json.dumps({"iv": "00", "salt": "00", "ciphertext": "ff"}), encoding="utf-8")
    with pytest.raises(WalletError, match="missing: version, authTag"):
        load_wallet_from_keyfile(str(partial))


def test_sealed_keyfile_opens_with_password(tmp_path) -> None:
    path = _write_sealed(tmp_path)
    passwords = _Passwords(PASSWORD)

    wallet = load_wallet_from_keyfile(str(path), passwords, iterations=FAST_ITERATIONS)

    assert wallet.address == TEST_ADDRESS
    assert passwords.asked == 1


def test_sealed_keyfile_retries_wrong_password(tmp_path, capsys) -> None:
    path = _write_sealed(tmp_path)
    passwords = _Passwords("wrong", PASSWORD)

    wallet = load_wallet_from_keyfile(str(path), passwords, iterations=FAST_ITERATIONS)

    assert wallet.address == TEST_ADDRESS
    assert passwords.asked == 2
    assert "Wrong password. 2 attempts remaining." in capsys.readouterr().err


def test_sealed_keyfile_gives_up_after_three_attempts(tmp_path) -> None:
    path = _write_sealed(tmp_path)
    passwords = _Passwords("a", "b", "c", PASSWORD)

    with pytest.raises(WalletError, match="Maximum password attempts"):
        load_wallet_from_keyfile(str(path), passwords, iterations=FAST_ITERATIONS)
    assert passwords.asked == 3


def test_sealed_keyfile_with_unknown_version_is_not_prompted(tmp_path) -> None:
    path = _write_sealed(tmp_path, version="2")
    passwords = _Passwords(PASSWORD)

    with pytest.raises(WalletError, match="Unsupported"):
        load_wallet_from_keyfile(str(path), passwords, iterations=FAST_ITERATIONS)
    assert passwords.asked == 0


def test_sealed_keyfile_key_derivation_strength() -> None:
    assert PBKDF2_ITERATIONS == 600000


def test_ss58_address_mirrors_evm_address() -> None:
    wallet = load_wallet(private_key=TEST_KEY)
    expected = hashlib.blake2b(b"evm:" + bytes.fromhex(TEST_ADDRESS[2:]), digest_size=32).hexdigest()

    ss58 = wallet.ss58_address()

    assert ss58.startswith("5")
    assert len(ss58) == 48
    assert ss58_decode(ss58, valid_ss58_format=SS58_FORMAT) == expected
    assert ss58 == load_wallet(private_key=TEST_KEY[2:]).ss58_address()
