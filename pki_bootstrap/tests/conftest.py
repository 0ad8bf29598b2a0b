"""Test fixtures for pki_bootstrap tests."""

from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from pki_bootstrap.lib.cert_manager import CertificateManager
from pki_bootstrap.lib.cert_utils import (
    build_csr,
    generate_private_key,
    serialize_certificate,
    serialize_private_key,
)
from pki_bootstrap.lib.certificate_builder import CertificateBuilder
from pki_bootstrap.lib.cluster import APISpec, ClusterSpec, NetworkSpec
from pki_bootstrap.lib.config import DistinguishedName, PKIConfig


@pytest.fixture
def cert_root(tmp_path: Path) -> Path:
    """Return an empty certificate root directory."""
    root = tmp_path / "pki"
    root.mkdir()
    return root


@pytest.fixture
def pki_config(cert_root: Path) -> PKIConfig:
    """Return bootstrap configuration with short validity periods."""
    return PKIConfig(
        cert_root=cert_root,
        key_size=2048,
        ca_validity_years=1,
        leaf_validity_days=30,
    )


@pytest.fixture
def cluster_spec() -> ClusterSpec:
    """Return cluster config with one extra SAN."""
    return ClusterSpec(
        api=APISpec(address="10.0.0.5", sans=["foo.example.com"]),
        network=NetworkSpec(service_cidr="10.96.0.0/12"),
    )


@pytest.fixture
def manager(pki_config: PKIConfig) -> CertificateManager:
    return CertificateManager(pki_config)


@pytest.fixture
def ca_key() -> RSAPrivateKey:
    """Generate RSA private key for a CA."""
    return generate_private_key(key_size=2048)


@pytest.fixture
def ca_cert(ca_key: RSAPrivateKey) -> x509.Certificate:
    """Generate self-signed CA certificate."""
    return CertificateBuilder.build_ca(
        subject_dn=DistinguishedName(common_name="Test CA"),
        private_key=ca_key,
        validity_years=1,
    )


@pytest.fixture
def client_key() -> RSAPrivateKey:
    return generate_private_key(key_size=2048)


@pytest.fixture
def client_csr(client_key: RSAPrivateKey) -> x509.CertificateSigningRequest:
    """Generate CSR for a client identity without SANs."""
    return build_csr(
        DistinguishedName(common_name="kubernetes-admin", organization="system:masters"),
        client_key,
    )


@pytest.fixture
def ca_files_on_disk(
    cert_root: Path,
    ca_key: RSAPrivateKey,
    ca_cert: x509.Certificate,
) -> Path:
    """Write ca.crt and ca.key into the cert root and return the root."""
    (cert_root / "ca.crt").write_bytes(serialize_certificate(ca_cert))
    (cert_root / "ca.key").write_bytes(serialize_private_key(ca_key))
    return cert_root
