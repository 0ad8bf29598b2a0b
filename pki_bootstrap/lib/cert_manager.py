"""Filesystem-backed certificate manager: CA provisioning and leaf issuance."""

from typing import Protocol

from cryptography.exceptions import UnsupportedAlgorithm

from .cert_utils import (
    build_csr,
    deserialize_certificate,
    deserialize_private_key,
    generate_private_key,
    get_certificate_serial_hex,
    get_common_name,
    get_organization,
    public_keys_match,
    serialize_certificate,
    serialize_private_key,
)
from .certificate_builder import CertificateBuilder
from .config import DistinguishedName, PKIConfig
from .errors import CryptoError
from .fs_utils import all_exist, read_file, set_owner, write_file_atomic
from .logging_config import LOGGER
from .models import CertificateRequest, IssuedCertificate
from .san_resolver import split_sans

CA_KEY_MODE = 0o600
KEY_MODE = 0o640
CERT_MODE = 0o644


class CertificateAuthority(Protocol):
    """Capability the bootstrap needs from a signing backend."""

    def ensure_ca(self, name: str, common_name: str) -> bool: ...

    def ensure_certificate(self, request: CertificateRequest, owner: str) -> IssuedCertificate: ...


class CertificateManager:
    """Local CA backend writing PEM files under config.cert_root."""

    def __init__(self, config: PKIConfig) -> None:
        """Initialize certificate manager with configuration.

        Args:
            config: Bootstrap configuration with cert root, key size and validity
        """
        self.config = config

    def ensure_ca(self, name: str, common_name: str) -> bool:
        """Create the CA called name unless its cert and key already exist.

        A provisioned CA is never regenerated; doing so would invalidate
        every certificate it has signed.

        Args:
            name: CA file stem (e.g. 'ca', 'front-proxy-ca')
            common_name: Subject CN for a newly created CA

        Returns:
            True if the CA was created, False if it already existed

        Raises:
            StorageError: If the files cannot be written
            CryptoError: If key generation or signing fails
        """
        cert_path, key_path = self.config.ca_paths(name)
        if all_exist(cert_path, key_path):
            LOGGER.debug("CA %s exists, skipping", name)
            return False

        try:
            key = generate_private_key(self.config.key_size)
            cert = CertificateBuilder.build_ca(
                subject_dn=DistinguishedName(common_name=common_name),
                private_key=key,
                validity_years=self.config.ca_validity_years,
            )
            key_pem = serialize_private_key(key)
            cert_pem = serialize_certificate(cert)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"failed to generate CA {name}: {e}") from e

        write_file_atomic(key_path, key_pem, CA_KEY_MODE)
        write_file_atomic(cert_path, cert_pem, CERT_MODE)

        LOGGER.info("Created CA %s (serial %s)", name, get_certificate_serial_hex(cert))
        return True

    def ensure_certificate(self, request: CertificateRequest, owner: str) -> IssuedCertificate:
        """Return the certificate for request, issuing it if missing.

        Existing material is read back rather than re-signed, so callers
        always get the PEM blobs (e.g. to embed into a kubeconfig).

        Args:
            request: Identity, issuing CA and SANs of the certificate
            owner: System user that should own the written files

        Returns:
            IssuedCertificate with PEM text and file paths

        Raises:
            StorageError: If files cannot be read or written
            CryptoError: If the CA cannot be loaded, signing fails, or an
                existing certificate does not match its key
        """
        cert_path, key_path = self.config.cert_paths(request.name)
        if all_exist(cert_path, key_path):
            LOGGER.debug("Certificate %s exists, loading", request.name)
            cert_pem = read_file(cert_path)
            key_pem = read_file(key_path)
            self._check_existing(request, cert_pem, key_pem)
            return IssuedCertificate(
                cert=cert_pem.decode(),
                key=key_pem.decode(),
                cert_path=cert_path,
                key_path=key_path,
            )

        ca_cert_pem = read_file(request.ca_cert)
        ca_key_pem = read_file(request.ca_key)

        try:
            ca_cert = deserialize_certificate(ca_cert_pem)
            ca_key = deserialize_private_key(ca_key_pem)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"failed to load CA {request.ca_cert} for {request.name}") from e

        try:
            key = generate_private_key(self.config.key_size)
            csr = build_csr(
                DistinguishedName(common_name=request.cn, organization=request.o),
                key,
                split_sans(list(request.hostnames)),
            )
            cert = CertificateBuilder.build_leaf_certificate(
                csr=csr,
                issuer_cert=ca_cert,
                issuer_key=ca_key,
                validity_days=self.config.leaf_validity_days,
            )
            key_pem = serialize_private_key(key)
            cert_pem = serialize_certificate(cert)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"failed to issue certificate {request.name}: {e}") from e

        write_file_atomic(key_path, key_pem, KEY_MODE)
        write_file_atomic(cert_path, cert_pem, CERT_MODE)
        set_owner(key_path, owner)
        set_owner(cert_path, owner)

        LOGGER.info(
            "Issued certificate %s (CN=%s, O=%s, serial %s)",
            request.name,
            request.cn,
            request.o,
            get_certificate_serial_hex(cert),
        )
        return IssuedCertificate(
            cert=cert_pem.decode(),
            key=key_pem.decode(),
            cert_path=cert_path,
            key_path=key_path,
            created=True,
        )

    def _check_existing(self, request: CertificateRequest, cert_pem: bytes, key_pem: bytes) -> None:
        """Reject a stored cert/key pair that does not belong together.

        A subject that differs from the request is only logged: the file was
        issued earlier and is kept as is.
        """
        try:
            cert = deserialize_certificate(cert_pem)
            key = deserialize_private_key(key_pem)
            cn, o = get_common_name(cert), get_organization(cert)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"failed to load existing certificate {request.name}: {e}") from e

        if not public_keys_match(cert.public_key(), key.public_key()):
            raise CryptoError(f"certificate {request.name} does not match its key")
        if (cn, o) != (request.cn, request.o):
            LOGGER.warning(
                "Existing certificate %s has subject CN=%s, O=%s; expected CN=%s, O=%s",
                request.name,
                cn,
                o,
                request.cn,
                request.o,
            )
