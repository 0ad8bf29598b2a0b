"""Certificate builder for X.509 certificate construction."""

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from .cert_utils import extract_csr_public_key, generate_serial_number, validate_csr_signature
from .config import DistinguishedName


class CertificateBuilder:
    """Builds X.509 certificates for the CA pair and component leaf certificates."""

    @staticmethod
    def build_ca(
        subject_dn: DistinguishedName,
        private_key: RSAPrivateKey,
        validity_years: int,
    ) -> x509.Certificate:
        """Build self-signed CA certificate.

        Args:
            subject_dn: Distinguished name for certificate subject and issuer
            private_key: RSA private key for signing
            validity_years: Certificate validity period in years

        Returns:
            Self-signed X.509 certificate with CA extensions
        """
        subject = subject_dn.to_x509_name()
        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_years * 365)

        builder = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(subject)
            .public_key(private_key.public_key())
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=True, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=True,
                    crl_sign=True,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
                critical=False,
            )
        )

        return builder.sign(private_key, hashes.SHA256())

    @staticmethod
    def build_leaf_certificate(
        csr: x509.CertificateSigningRequest,
        issuer_cert: x509.Certificate,
        issuer_key: RSAPrivateKey,
        validity_days: int,
    ) -> x509.Certificate:
        """Build end-entity certificate from CSR, signed by a CA.

        The subject and public key come from the CSR. A SAN extension on the
        CSR is copied over and marks the certificate as a server certificate
        (serverAuth is added next to clientAuth).

        Args:
            csr: Certificate signing request for the component identity
            issuer_cert: CA certificate (issuer)
            issuer_key: CA private key for signing
            validity_days: Certificate validity period in days

        Returns:
            X.509 end-entity certificate signed by the CA

        Raises:
            ValueError: If CSR signature is invalid
        """
        if not validate_csr_signature(csr):
            raise ValueError("CSR signature validation failed")

        public_key = extract_csr_public_key(csr)

        try:
            san = csr.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
        except x509.ExtensionNotFound:
            san = None

        usages = [ExtendedKeyUsageOID.CLIENT_AUTH]
        if san is not None:
            usages.insert(0, ExtendedKeyUsageOID.SERVER_AUTH)

        not_before = datetime.now(timezone.utc)
        not_after = not_before + timedelta(days=validity_days)

        builder = (
            x509.CertificateBuilder()
            .subject_name(csr.subject)
            .issuer_name(issuer_cert.subject)
            .public_key(public_key)
            .serial_number(generate_serial_number())
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .add_extension(
                x509.BasicConstraints(ca=False, path_length=None),
                critical=True,
            )
            .add_extension(
                x509.KeyUsage(
                    digital_signature=True,
                    content_commitment=False,
                    key_encipherment=True,
                    data_encipherment=False,
                    key_agreement=False,
                    key_cert_sign=False,
                    crl_sign=False,
                    encipher_only=False,
                    decipher_only=False,
                ),
                critical=True,
            )
            .add_extension(x509.ExtendedKeyUsage(usages), critical=False)
            .add_extension(
                x509.SubjectKeyIdentifier.from_public_key(public_key),
                critical=False,
            )
            .add_extension(
                x509.AuthorityKeyIdentifier.from_issuer_public_key(issuer_key.public_key()),
                critical=False,
            )
        )
        if san is not None:
            builder = builder.add_extension(san, critical=False)

        return builder.sign(issuer_key, hashes.SHA256())
