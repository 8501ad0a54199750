"""Private-key proof of possession.

A client proves its identity by uploading the private key that belongs to
the public key stored server-side as ``<public_key_dir>/<name><suffix>``.
The server signs a fixed challenge with the uploaded private key
(RSA PKCS#1 v1.5, deterministic), recovers the signed payload with the
stored public key, and compares it byte-for-byte with the expected digest.

Every failure (missing name, missing public key file, unparsable key,
non-RSA key, mismatched pair) surfaces as the same UnauthorizedError.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import os
import re
from pathlib import Path

import structlog
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from wharf.config import SecurityConfig
from wharf.errors import UnauthorizedError
from wharf.storage.archive import discard

logger = structlog.get_logger()

CHALLENGE = b"test_data"

# Identities become part of a filename; keep them to one safe path segment
_IDENTITY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._@-]{0,127}$")


def validate_keys(private_key_pem: bytes, public_key_pem: bytes) -> bool:
    """Check that the private key is the counterpart of the public key."""
    try:
        private_key = serialization.load_pem_private_key(private_key_pem, password=None)
        public_key = serialization.load_pem_public_key(public_key_pem)
        if not isinstance(private_key, rsa.RSAPrivateKey) or not isinstance(
            public_key, rsa.RSAPublicKey
        ):
            return False

        signature = private_key.sign(CHALLENGE, padding.PKCS1v15(), hashes.SHA256())
        recovered = public_key.recover_data_from_signature(
            signature, padding.PKCS1v15(), hashes.SHA256()
        )
        return hmac.compare_digest(recovered, hashlib.sha256(CHALLENGE).digest())
    except (ValueError, TypeError, InvalidSignature, UnsupportedAlgorithm):
        return False


class KeyAuthenticator:
    """Authenticates identities against stored public keys."""

    def __init__(self, config: SecurityConfig) -> None:
        self._config = config
        self._log = logger.bind(service="key_auth")

    def public_key_path(self, identity: str) -> Path | None:
        """Deterministic public key location for an identity."""
        if not self._config.public_key_dir or not _IDENTITY_RE.match(identity or ""):
            return None
        return Path(self._config.public_key_dir) / f"{identity}{self._config.public_key_suffix}"

    def _verify_sync(self, identity: str, private_key_pem: bytes) -> bool:
        key_path = self.public_key_path(identity)
        if key_path is None:
            return False
        try:
            public_key_pem = key_path.read_bytes()
        except OSError:
            return False
        return validate_keys(private_key_pem, public_key_pem)

    async def authenticate(self, identity: str | None, private_key_pem: bytes | None) -> str:
        """Verify an identity / private key pair.

        Returns:
            The authenticated identity

        Raises:
            UnauthorizedError: On any failure, with one fixed message
        """
        if not identity or not private_key_pem:
            self._log.info("auth.failed", identity=identity, reason="missing_credentials")
            raise UnauthorizedError()

        ok = await asyncio.to_thread(self._verify_sync, identity, private_key_pem)
        if not ok:
            self._log.info("auth.failed", identity=identity)
            raise UnauthorizedError()

        self._log.debug("auth.success", identity=identity)
        return identity

    async def authenticate_file(
        self, identity: str | None, private_key_path: str | os.PathLike[str]
    ) -> str:
        """Authenticate with a key held in a temp file, then discard the file.

        The file is deleted on every outcome so key material never lingers
        in temp storage.
        """
        path = Path(private_key_path)
        try:
            try:
                private_key_pem = await asyncio.to_thread(path.read_bytes)
            except OSError:
                private_key_pem = None
            return await self.authenticate(identity, private_key_pem)
        finally:
            discard(path)
