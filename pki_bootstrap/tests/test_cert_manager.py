"""Tests for CertificateManager: CA provisioning and leaf issuance."""

import stat
from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest
from cryptography import x509

from pki_bootstrap.lib.cert_manager import CertificateManager
from pki_bootstrap.lib.cert_utils import (
    deserialize_certificate,
    deserialize_private_key,
    generate_private_key,
    get_common_name,
    get_organization,
    public_keys_match,
    serialize_private_key,
)
from pki_bootstrap.lib.config import PKIConfig
from pki_bootstrap.lib.errors import CryptoError, StorageError
from pki_bootstrap.lib.logging_config import LOGGER
from pki_bootstrap.lib.models import CertificateRequest


def admin_request(cert_root: Path, hostnames: tuple[str, ...] = ()) -> CertificateRequest:
    return CertificateRequest(
        name="admin",
        cn="kubernetes-admin",
        o="system:masters",
        ca_cert=cert_root / "ca.crt",
        ca_key=cert_root / "ca.key",
        hostnames=hostnames,
    )


class TestEnsureCA:
    """Tests for ensure_ca()."""

    def test_creates_cert_and_key(self, manager: CertificateManager, cert_root: Path) -> None:
        assert manager.ensure_ca("ca", "kubernetes-ca") is True

        cert = deserialize_certificate((cert_root / "ca.crt").read_bytes())
        key = deserialize_private_key((cert_root / "ca.key").read_bytes())

        assert get_common_name(cert) == "kubernetes-ca"
        assert public_keys_match(cert.public_key(), key.public_key())  # type: ignore[arg-type]
        cert.verify_directly_issued_by(cert)

    def test_key_is_private(self, manager: CertificateManager, cert_root: Path) -> None:
        manager.ensure_ca("ca", "kubernetes-ca")
        mode = stat.S_IMODE((cert_root / "ca.key").stat().st_mode)
        assert mode == 0o600

    def test_existing_ca_not_regenerated(
        self, manager: CertificateManager, cert_root: Path
    ) -> None:
        manager.ensure_ca("ca", "kubernetes-ca")
        cert_before = (cert_root / "ca.crt").read_bytes()
        key_before = (cert_root / "ca.key").read_bytes()

        assert manager.ensure_ca("ca", "kubernetes-ca") is False

        assert (cert_root / "ca.crt").read_bytes() == cert_before
        assert (cert_root / "ca.key").read_bytes() == key_before

    def test_half_present_ca_is_regenerated(
        self, manager: CertificateManager, cert_root: Path
    ) -> None:
        """Only a complete cert+key pair counts as provisioned."""
        manager.ensure_ca("ca", "kubernetes-ca")
        (cert_root / "ca.key").unlink()
        old_cert = (cert_root / "ca.crt").read_bytes()

        assert manager.ensure_ca("ca", "kubernetes-ca") is True
        assert (cert_root / "ca.key").exists()
        assert (cert_root / "ca.crt").read_bytes() != old_cert

    def test_distinct_names_are_independent(
        self, manager: CertificateManager, cert_root: Path
    ) -> None:
        manager.ensure_ca("ca", "kubernetes-ca")
        manager.ensure_ca("front-proxy-ca", "kubernetes-front-proxy-ca")

        root = deserialize_certificate((cert_root / "ca.crt").read_bytes())
        proxy = deserialize_certificate((cert_root / "front-proxy-ca.crt").read_bytes())
        assert get_common_name(proxy) == "kubernetes-front-proxy-ca"
        assert root.serial_number != proxy.serial_number

    def test_no_temporary_files_left(self, manager: CertificateManager, cert_root: Path) -> None:
        manager.ensure_ca("ca", "kubernetes-ca")
        assert sorted(p.name for p in cert_root.iterdir()) == ["ca.crt", "ca.key"]

    def test_unwritable_root_raises_storage_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        manager = CertificateManager(PKIConfig(cert_root=blocker / "pki"))

        with pytest.raises(StorageError, match="ca.key"):
            manager.ensure_ca("ca", "kubernetes-ca")


class TestEnsureCertificate:
    """Tests for ensure_certificate()."""

    def test_issues_signed_certificate(
        self, manager: CertificateManager, ca_files_on_disk: Path, ca_cert: x509.Certificate
    ) -> None:
        issued = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")

        assert issued.created is True
        cert = deserialize_certificate(issued.cert.encode())
        cert.verify_directly_issued_by(ca_cert)
        assert get_common_name(cert) == "kubernetes-admin"
        assert get_organization(cert) == "system:masters"

    def test_returns_material_written_to_disk(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        issued = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")

        assert issued.cert_path == ca_files_on_disk / "admin.crt"
        assert issued.key_path == ca_files_on_disk / "admin.key"
        assert issued.cert_path.read_text() == issued.cert
        assert issued.key_path.read_text() == issued.key

    def test_existing_certificate_is_read_back(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        first = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        second = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")

        assert second.created is False
        assert second.cert == first.cert
        assert second.key == first.key

    def test_existing_certificate_does_not_need_ca(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        """Reusing a certificate does not read the CA."""
        manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        (ca_files_on_disk / "ca.key").unlink()

        issued = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        assert issued.created is False

    def test_server_certificate_has_sans(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        request = CertificateRequest(
            name="server",
            cn="kubernetes",
            o="kubernetes",
            ca_cert=ca_files_on_disk / "ca.crt",
            ca_key=ca_files_on_disk / "ca.key",
            hostnames=("kubernetes", "127.0.0.1", "10.96.0.1"),
        )
        issued = manager.ensure_certificate(request, "kube-apiserver")

        cert = deserialize_certificate(issued.cert.encode())
        san = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        assert san.get_values_for_type(x509.DNSName) == ["kubernetes"]
        assert [str(ip) for ip in san.get_values_for_type(x509.IPAddress)] == [
            "127.0.0.1",
            "10.96.0.1",
        ]

    def test_key_matches_certificate(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        issued = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        cert = deserialize_certificate(issued.cert.encode())
        key = deserialize_private_key(issued.key.encode())
        assert public_keys_match(cert.public_key(), key.public_key())  # type: ignore[arg-type]

    def test_existing_certificate_with_foreign_key_raises(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        (ca_files_on_disk / "admin.key").write_bytes(serialize_private_key(generate_private_key()))

        with pytest.raises(CryptoError, match="does not match its key"):
            manager.ensure_certificate(admin_request(ca_files_on_disk), "root")

    def test_corrupt_existing_certificate_raises_crypto_error(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        (ca_files_on_disk / "admin.crt").write_text("garbage")

        with pytest.raises(CryptoError, match="admin"):
            manager.ensure_certificate(admin_request(ca_files_on_disk), "root")

    def test_existing_certificate_with_other_subject_is_kept(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        first = manager.ensure_certificate(admin_request(ca_files_on_disk), "root")
        request = replace(admin_request(ca_files_on_disk), cn="someone-else")

        with patch.object(LOGGER, "warning") as warning:
            second = manager.ensure_certificate(request, "root")

        assert second.created is False
        assert second.cert == first.cert
        warning.assert_called_once()

    def test_unknown_owner_does_not_fail(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        issued = manager.ensure_certificate(
            admin_request(ca_files_on_disk), "no-such-user-for-pki-tests"
        )
        assert issued.cert_path.exists()

    def test_missing_ca_raises_storage_error(
        self, manager: CertificateManager, cert_root: Path
    ) -> None:
        with pytest.raises(StorageError, match="ca.crt"):
            manager.ensure_certificate(admin_request(cert_root), "root")
        assert not (cert_root / "admin.crt").exists()

    def test_corrupt_ca_key_raises_crypto_error(
        self, manager: CertificateManager, ca_files_on_disk: Path
    ) -> None:
        (ca_files_on_disk / "ca.key").write_text("not a key")

        with pytest.raises(CryptoError, match="admin") as excinfo:
            manager.ensure_certificate(admin_request(ca_files_on_disk), "root")

        assert "not a key" not in str(excinfo.value)
        assert not (ca_files_on_disk / "admin.key").exists()
