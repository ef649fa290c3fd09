"""
Ed25519 Key Management for the VEX harness.

NEAR access keys are ed25519 key pairs written as ``ed25519:<base58>``.
The secret part is either the 64-byte expanded form (seed + public key)
used by near-cli / wallet exports, or a bare 32-byte seed.

Keys never live in source.  They are read from the environment:

    VEX_OWNER_ACCOUNT_ID / VEX_OWNER_PRIVATE_KEY
    VEX_USER_ACCOUNT_ID  / VEX_USER_PRIVATE_KEY

after loading ``~/.vexharness/.env`` (or the file named by VEX_ENV_FILE)
when it exists.

Dependencies: base58 for the text encoding, cryptography for ed25519.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import base58
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519
from dotenv import load_dotenv

from ..config import ConfigError


# Default config directory
VEX_DIR = Path.home() / ".vexharness"
VEX_ENV = VEX_DIR / ".env"

KEY_PREFIX = "ed25519:"
SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64


class KeyFormatError(ValueError):
    exit_code: int = 3


def _public_bytes(seed: bytes) -> bytes:
    private = ed25519.Ed25519PrivateKey.from_private_bytes(seed)
    return private.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


@dataclass(frozen=True)
class KeyPair:
    """An ed25519 key pair in NEAR's 64-byte secret layout."""

    raw: bytes

    @property
    def seed(self) -> bytes:
        return self.raw[:SEED_LENGTH]

    @property
    def public_bytes(self) -> bytes:
        return self.raw[SEED_LENGTH:]

    @property
    def secret_key(self) -> str:
        return KEY_PREFIX + base58.b58encode(self.raw).decode("ascii")

    @property
    def public_key(self) -> str:
        return KEY_PREFIX + base58.b58encode(self.public_bytes).decode("ascii")

    def __repr__(self) -> str:
        return f"KeyPair(public_key={self.public_key!r})"


def parse_key_pair(text: str) -> KeyPair:
    """
    Parse ``ed25519:<base58>`` secret key material.

    Args:
        text: Secret key string (64-byte secret or 32-byte seed)

    Returns:
        KeyPair

    Raises:
        KeyFormatError: If the string is not a well-formed ed25519 secret
    """
    if not isinstance(text, str) or not text.strip():
        raise KeyFormatError("Key material is empty")

    text = text.strip()
    curve, sep, encoded = text.partition(":")
    if not sep:
        raise KeyFormatError(f"Key must be prefixed with {KEY_PREFIX!r}")
    if curve != "ed25519":
        raise KeyFormatError(f"Unsupported key curve: {curve!r}")

    try:
        raw = base58.b58decode(encoded)
    except ValueError as exc:
        raise KeyFormatError(f"Key is not valid base58: {exc}") from exc

    if len(raw) == SEED_LENGTH:
        return KeyPair(raw + _public_bytes(raw))

    if len(raw) != SECRET_KEY_LENGTH:
        raise KeyFormatError(
            f"Key must decode to {SEED_LENGTH} or {SECRET_KEY_LENGTH} bytes, got {len(raw)}"
        )

    # The trailing half must be the public key of the leading seed
    if _public_bytes(raw[:SEED_LENGTH]) != raw[SEED_LENGTH:]:
        raise KeyFormatError("Key public half does not match its seed")

    return KeyPair(raw)


def generate_key_pair() -> KeyPair:
    """Generate a fresh ed25519 key pair."""
    private = ed25519.Ed25519PrivateKey.generate()
    seed = private.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return KeyPair(seed + _public_bytes(seed))


class KeyStore:
    """In-memory key store scoped by (network, account)."""

    def __init__(self) -> None:
        self._keys: dict[tuple[str, str], KeyPair] = {}

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        self._keys[(network_id, account_id)] = key_pair

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        return self._keys.get((network_id, account_id))

    def remove_key(self, network_id: str, account_id: str) -> None:
        self._keys.pop((network_id, account_id), None)

    def accounts(self, network_id: str) -> list[str]:
        return sorted(acc for net, acc in self._keys if net == network_id)

    def __len__(self) -> int:
        return len(self._keys)


# ============ Environment ============


def _env_var(role: str, suffix: str) -> str:
    return f"VEX_{role.upper()}_{suffix}"


def load_env(env_path: Optional[Path] = None) -> Optional[Path]:
    """
    Load the harness .env file into the environment, if present.

    Variables already set in the process environment win.
    """
    if env_path is None:
        override = os.environ.get("VEX_ENV_FILE")
        env_path = Path(override).expanduser() if override else VEX_ENV

    if env_path.exists():
        load_dotenv(env_path, override=False)
        return env_path
    return None


def save_private_key(
    role: str,
    private_key: str,
    account_id: Optional[str] = None,
    env_path: Optional[Path] = None,
) -> Path:
    """
    Save a role's key (and optionally its account id) to the .env file.

    Args:
        role: Participant role ("owner", "user")
        private_key: ``ed25519:...`` secret key
        account_id: Account the key controls
        env_path: Path to .env file (default: ~/.vexharness/.env)

    Returns:
        Path to the saved .env file
    """
    parse_key_pair(private_key)

    env_path = env_path or VEX_ENV
    env_path.parent.mkdir(parents=True, exist_ok=True)

    # Read existing .env content or start fresh
    existing = {}
    if env_path.exists():
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                k, v = line.split("=", 1)
                existing[k.strip()] = v.strip()

    existing[_env_var(role, "PRIVATE_KEY")] = private_key
    if account_id:
        existing[_env_var(role, "ACCOUNT_ID")] = account_id

    lines = [f"{k}={v}" for k, v in existing.items()]
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path


def load_private_key(role: str, env_path: Optional[Path] = None) -> str:
    """
    Load the private key configured for a participant role.

    Args:
        role: Participant role ("owner", "user")
        env_path: Path to .env file (default: ~/.vexharness/.env)

    Returns:
        ``ed25519:...`` secret key string (not yet validated)

    Raises:
        ConfigError: If no key is configured for the role
    """
    load_env(env_path)

    name = _env_var(role, "PRIVATE_KEY")
    private_key = os.environ.get(name)
    if not private_key:
        raise ConfigError(f"{name} not set. Export it or add it to {env_path or VEX_ENV}")

    return private_key.strip()


def load_account_id(
    role: str,
    default: Optional[str] = None,
    env_path: Optional[Path] = None,
) -> str:
    """
    Load the account id configured for a participant role.

    Raises:
        ConfigError: If neither the environment nor ``default`` provides one
    """
    load_env(env_path)

    name = _env_var(role, "ACCOUNT_ID")
    account_id = os.environ.get(name) or default
    if not account_id:
        raise ConfigError(f"{name} not set")

    return account_id.strip()
