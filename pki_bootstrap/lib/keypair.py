"""Standalone RSA keypair for service-account token signing."""

from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm

from .cert_utils import (
    deserialize_private_key,
    deserialize_public_key,
    generate_private_key,
    public_keys_match,
    serialize_public_key,
    serialize_rsa_private_key,
)
from .errors import CryptoError
from .fs_utils import all_exist, read_file, set_owner, write_file_atomic
from .logging_config import LOGGER

SA_KEY_SIZE = 2048
PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644


def keypair_paths(cert_root: Path, name: str) -> tuple[Path, Path]:
    return cert_root / f"{name}.key", cert_root / f"{name}.pub"


def _check_existing(name: str, key_path: Path, pub_path: Path) -> None:
    try:
        key = deserialize_private_key(read_file(key_path))
        public_key = deserialize_public_key(read_file(pub_path))
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"failed to load keypair {name}: {e}") from e
    if not public_keys_match(key.public_key(), public_key):
        raise CryptoError(f"keypair {name}: {pub_path.name} does not match {key_path.name}")


def ensure_key_pair(cert_root: Path, name: str, owner: str | None = None) -> bool:
    """Create <name>.key (PKCS1) and <name>.pub (PKIX) unless both exist.

    The keypair has no certificate and no relation to the CAs; the apiserver
    signs service-account tokens with it and verifies them with the public key.
    An existing pair is kept but must still belong together.

    Args:
        cert_root: Directory holding the keypair
        name: File stem of the keypair (e.g. 'sa')
        owner: System user that should own newly written files

    Returns:
        True if the keypair was created, False if it already existed

    Raises:
        StorageError: If the files cannot be read or written
        CryptoError: If key generation or encoding fails, or an existing
            public key does not match its private key
    """
    key_path, pub_path = keypair_paths(cert_root, name)
    if all_exist(key_path, pub_path):
        _check_existing(name, key_path, pub_path)
        LOGGER.debug("Keypair %s exists, skipping", name)
        return False

    try:
        key = generate_private_key(SA_KEY_SIZE)
        private_pem = serialize_rsa_private_key(key)
        public_pem = serialize_public_key(key.public_key())
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        raise CryptoError(f"failed to generate keypair {name}: {e}") from e

    write_file_atomic(key_path, private_pem, PRIVATE_KEY_MODE)
    write_file_atomic(pub_path, public_pem, PUBLIC_KEY_MODE)
    if owner is not None:
        set_owner(key_path, owner)
        set_owner(pub_path, owner)
    LOGGER.info("Created keypair %s", name)
    return True
