"""Certificate utility functions for key generation, serialization, and subject inspection."""

import uuid

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .config import DistinguishedName


def generate_private_key(key_size: int = 2048) -> RSAPrivateKey:
    """Generate RSA private key with specified size."""
    return rsa.generate_private_key(
        public_exponent=65537,
        key_size=key_size,
    )


def serialize_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS8, no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def serialize_rsa_private_key(key: RSAPrivateKey) -> bytes:
    """Serialize private key to PEM format (PKCS1 "RSA PRIVATE KEY", no encryption)."""
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def serialize_public_key(key: RSAPublicKey) -> bytes:
    """Serialize public key to PEM format (PKIX SubjectPublicKeyInfo)."""
    return key.public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def deserialize_private_key(pem_data: bytes) -> RSAPrivateKey:
    """Deserialize private key from PEM bytes (PKCS1 or PKCS8)."""
    key = serialization.load_pem_private_key(pem_data, password=None)
    if not isinstance(key, RSAPrivateKey):
        raise ValueError("expected RSA private key")
    return key


def deserialize_public_key(pem_data: bytes) -> RSAPublicKey:
    """Deserialize PKIX public key from PEM bytes."""
    key = serialization.load_pem_public_key(pem_data)
    if not isinstance(key, RSAPublicKey):
        raise ValueError("expected RSA public key")
    return key


def serialize_certificate(cert: x509.Certificate) -> bytes:
    """Serialize certificate to PEM format."""
    return cert.public_bytes(serialization.Encoding.PEM)


def deserialize_certificate(pem_data: bytes) -> x509.Certificate:
    """Deserialize certificate from PEM bytes."""
    return x509.load_pem_x509_certificate(pem_data)


def generate_serial_number() -> int:
    """Generate certificate serial number from UUID4.

    UUID v4 gives 128-bit values with ~122 bits of CSPRNG entropy, above the
    64-bit CA/Browser Forum minimum.
    """
    return uuid.uuid4().int


def get_certificate_serial_hex(cert: x509.Certificate) -> str:
    """Return certificate serial number as hex with colons (e.g., 3A:F2:B1:...)."""
    serial_hex = f"{cert.serial_number:X}"
    if len(serial_hex) % 2 != 0:
        serial_hex = "0" + serial_hex
    return ":".join(serial_hex[i : i + 2] for i in range(0, len(serial_hex), 2))


def build_csr(
    subject_dn: DistinguishedName,
    private_key: RSAPrivateKey,
    alternative_names: list[x509.GeneralName] | None = None,
) -> x509.CertificateSigningRequest:
    """Build and self-sign a CSR, adding a SAN extension when names are given."""
    builder = x509.CertificateSigningRequestBuilder().subject_name(subject_dn.to_x509_name())
    if alternative_names:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(alternative_names),
            critical=False,
        )
    return builder.sign(private_key, hashes.SHA256())


def validate_csr_signature(csr: x509.CertificateSigningRequest) -> bool:
    """Verify CSR self-signature to prove private key possession."""
    try:
        return csr.is_signature_valid
    except Exception:
        return False


def extract_csr_public_key(csr: x509.CertificateSigningRequest) -> RSAPublicKey:
    """Extract public key from CSR.

    Raises:
        ValueError: If public key is not RSA type
    """
    public_key = csr.public_key()
    if not isinstance(public_key, RSAPublicKey):
        raise ValueError("CSR public key must be RSA type")
    return public_key


def get_subject_attribute(name: x509.Name, attribute: x509.ObjectIdentifier) -> str | None:
    """Return the first value of attribute in name, or None when absent."""
    values = name.get_attributes_for_oid(attribute)
    if not values:
        return None
    value = values[0].value
    if not isinstance(value, str):
        raise ValueError(f"{attribute.dotted_string} must be string")
    return value


def get_common_name(cert: x509.Certificate) -> str | None:
    return get_subject_attribute(cert.subject, x509.NameOID.COMMON_NAME)


def get_organization(cert: x509.Certificate) -> str | None:
    return get_subject_attribute(cert.subject, x509.NameOID.ORGANIZATION_NAME)


def public_keys_match(left: RSAPublicKey, right: RSAPublicKey) -> bool:
    """Return True when both keys have the same modulus and exponent."""
    return left.public_numbers() == right.public_numbers()
