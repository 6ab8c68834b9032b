"""Wallet management for EVM signing using eth-account."""

import base64
import getpass
import hashlib
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from eth_account import Account
from eth_account.signers.local import LocalAccount
from scalecodec.utils.ss58 import ss58_encode

from core.errors import WalletError

logger = logging.getLogger(__name__)

# Bittensor uses the generic Substrate address format
SS58_FORMAT = 42

# Key file encryption: AES-256-GCM under a PBKDF2-SHA256 password key
ENCRYPTION_VERSION = "1"
ENCRYPTED_FIELDS = ("version", "salt", "iv", "ciphertext", "authTag")
PBKDF2_ITERATIONS = 600000
KEY_LENGTH = 32
MAX_PASSWORD_ATTEMPTS = 3


@dataclass
class Wallet:
    """EVM wallet. Key material stays inside the account object."""
    address: str  # EIP-55 checksummed
    account: LocalAccount

    def sign_transaction(self, tx: dict):
        return self.account.sign_transaction(tx)

    async def get_balance(self, node) -> int:
        """Native balance on the node's chain, in wei."""
        return await node.get_native_balance(self.address)

    def ss58_address(self) -> str:
        """Bittensor account mirroring this EVM address.

        Sending TAO to it on Bittensor funds the EVM address.
        """
        account_id = hashlib.blake2b(b"evm:" + bytes.fromhex(self.address[2:]), digest_size=32).digest()
        return ss58_encode(account_id, ss58_format=SS58_FORMAT)


@dataclass
class EncryptedKeyFile:
    """Password-sealed key or phrase, as stored in ``private-key.txt``."""
    salt: bytes
    iv: bytes
    ciphertext: bytes
    auth_tag: bytes

    @staticmethod
    def matches(data: Any) -> bool:
        return isinstance(data, dict) and all(name in data for name in ENCRYPTED_FIELDS)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedKeyFile":
        """Parse the JSON layout.

        Raises:
            WalletError: If the version is unknown or a field is not base64
        """
        if str(data["version"]) != ENCRYPTION_VERSION:
            raise WalletError(f"Unsupported key file encryption version: {data['version']}")
        try:
            return cls(
                salt=base64.b64decode(data["salt"], validate=True),
                iv=base64.b64decode(data["iv"], validate=True),
                ciphertext=base64.b64decode(data["ciphertext"], validate=True),
                auth_tag=base64.b64decode(data["authTag"], validate=True),
            )
        except (TypeError, ValueError) as e:
            raise WalletError(f"Corrupted encrypted key file: {e}")

    def decrypt(self, password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
        """Recover the key or phrase.

        Raises:
            WalletError: On a wrong password or corrupted data
        """
        key = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), self.salt, iterations, dklen=KEY_LENGTH)
        try:
            plaintext = AESGCM(key).decrypt(self.iv, self.ciphertext + self.auth_tag, None)
        except (InvalidTag, ValueError):
            raise WalletError("Decryption failed. Wrong password or corrupted data.")
        return plaintext.decode("utf-8")


def unlock_keyfile(
    sealed: EncryptedKeyFile,
    password_prompt: Callable[[str], str] = getpass.getpass,
    max_attempts: int = MAX_PASSWORD_ATTEMPTS,
    iterations: int = PBKDF2_ITERATIONS,
) -> str:
    """Ask for the password until the key file opens.

    Raises:
        WalletError: After ``max_attempts`` wrong passwords
    """
    for attempt in range(1, max_attempts + 1):
        password = password_prompt("Enter wallet password: ")
        try:
            return sealed.decrypt(password, iterations)
        except WalletError:
            remaining = max_attempts - attempt
            logger.warning(f"Wrong wallet password, {remaining} attempts remaining")
            if remaining:
                print(f"Wrong password. {remaining} attempts remaining.", file=sys.stderr)
    raise WalletError("Maximum password attempts reached. Access denied.")


def load_wallet_from_key(private_key: str) -> Wallet:
    """Load wallet from a hex private key.

    Raises:
        WalletError: If the key is invalid
    """
    try:
        account = Account.from_key(private_key.strip())
    except Exception as e:
        raise WalletError(f"Invalid private key: {e}")

    logger.info(f"Loaded wallet with address: {account.address}")
    return Wallet(address=account.address, account=account)


def load_wallet_from_mnemonic(mnemonic: str) -> Wallet:
    """Load wallet from a BIP-39 phrase (path m/44'/60'/0'/0/0).

    Raises:
        WalletError: If the phrase is invalid
    """
    if not mnemonic or not mnemonic.strip():
        raise WalletError("Mnemonic cannot be empty")

    Account.enable_unaudited_hdwallet_features()
    try:
        account = Account.from_mnemonic(" ".join(mnemonic.split()))
    except Exception as e:
        raise WalletError(f"Invalid mnemonic phrase: {e}")

    logger.info(f"Loaded wallet with address: {account.address}")
    return Wallet(address=account.address, account=account)


def _looks_like_key(text: str) -> bool:
    body = text[2:] if text.startswith("0x") else text
    return len(body) == 64 and all(c in "0123456789abcdefABCDEF" for c in body)


def load_wallet_from_keyfile(
    keyfile_path: str,
    password_prompt: Callable[[str], str] = getpass.getpass,
    iterations: int = PBKDF2_ITERATIONS,
) -> Wallet:
    """Load wallet from a key file holding a key or a phrase.

    The file is either plaintext or the password-sealed JSON layout; a sealed
    file is unlocked with ``password_prompt``.

    Raises:
        WalletError: If the file is missing, empty, cannot be unlocked or is invalid
    """
    path = Path(keyfile_path)
    if not path.exists():
        raise WalletError(
            f"No private key found at {keyfile_path}. Add your private key or passphrase "
            "for an EVM compatible wallet, or set PRIVATE_KEY / MNEMONIC"
        )

    logger.info(f"Loading wallet from keyfile: {keyfile_path}")
    content = path.read_text(encoding="utf-8").strip()
    if not content:
        raise WalletError(f"Private key not found in {keyfile_path}")

    try:
        data = json.loads(content)
    except ValueError:
        data = None
    if EncryptedKeyFile.matches(data):
        sealed = EncryptedKeyFile.from_dict(data)
        content = unlock_keyfile(sealed, password_prompt, iterations=iterations).strip()
        logger.info(f"Unlocked encrypted keyfile: {keyfile_path}")
    elif isinstance(data, dict):
        missing = ", ".join(name for name in ENCRYPTED_FIELDS if name not in data)
        raise WalletError(f"{keyfile_path} looks encrypted but is missing: {missing}")

    if _looks_like_key(content):
        return load_wallet_from_key(content)
    return load_wallet_from_mnemonic(content)


def load_wallet(
    private_key: Optional[str] = None,
    mnemonic: Optional[str] = None,
    keyfile: Optional[str] = None,
    password_prompt: Callable[[str], str] = getpass.getpass,
) -> Wallet:
    """Load wallet from a key, a phrase or a key file, in that order.

    Raises:
        WalletError: If no source is given or the source is invalid
    """
    if private_key:
        return load_wallet_from_key(private_key)
    elif mnemonic:
        return load_wallet_from_mnemonic(mnemonic)
    elif keyfile:
        return load_wallet_from_keyfile(keyfile, password_prompt)
    else:
        raise WalletError("Must provide a private key, mnemonic or key file")
