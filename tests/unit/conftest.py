"""Shared fixtures for unit tests: RSA key material and isolated settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from wharf.config import SecurityConfig, Settings, StorageConfig


def _generate_pem_pair() -> tuple[bytes, bytes]:
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@pytest.fixture(scope="session")
def key_pair() -> tuple[bytes, bytes]:
    """(private_pem, public_pem) generated together."""
    return _generate_pem_pair()


@pytest.fixture(scope="session")
def other_key_pair() -> tuple[bytes, bytes]:
    """An unrelated key pair."""
    return _generate_pem_pair()


@pytest.fixture
def key_dir(tmp_path: Path, key_pair: tuple[bytes, bytes]) -> Path:
    """Public key directory; every configured identity shares one key."""
    directory = tmp_path / "keys"
    directory.mkdir()
    _, public_pem = key_pair
    (directory / "alice_public_key.pem").write_bytes(public_pem)
    (directory / "bob_public_key.pem").write_bytes(public_pem)
    (directory / "nobody_public_key.pem").write_bytes(public_pem)
    return directory


@pytest.fixture
def settings(tmp_path: Path, key_dir: Path) -> Settings:
    """Settings rooted in a per-test temp directory."""
    s = Settings(
        storage=StorageConfig(
            upload_dir=str(tmp_path / "uploads"),
            temp_dir=str(tmp_path / "temp"),
        ),
        security=SecurityConfig(
            public_key_dir=str(key_dir),
            authorized_users={
                "alice": ["deployments/alice"],
                "bob": ["deployments/bob"],
                "nobody": [],
            },
        ),
    )
    s.ensure_directories()
    return s
