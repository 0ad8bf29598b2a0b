"""Bootstrap configuration dataclasses."""

from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.x509 import oid

OWNER_ROLES = (
    "apiserver_user",
    "controller_manager_user",
    "scheduler_user",
    "admin_user",
    "mke_api_user",
)


@dataclass
class PKIConfig:
    """Bootstrap configuration; every path is derived from cert_root."""

    cert_root: Path
    key_size: int = 2048
    ca_validity_years: int = 10
    leaf_validity_days: int = 365
    apiserver_port: int = 6443
    apiserver_user: str = "kube-apiserver"
    controller_manager_user: str = "kube-controller-manager"
    scheduler_user: str = "kube-scheduler"
    admin_user: str = "root"
    mke_api_user: str | None = None

    def __post_init__(self) -> None:
        self.cert_root = Path(self.cert_root)
        # mke-api files belong to the apiserver user unless configured otherwise
        if self.mke_api_user is None:
            self.mke_api_user = self.apiserver_user

    @property
    def api_url(self) -> str:
        """Local API endpoint written into every kubeconfig."""
        return f"https://localhost:{self.apiserver_port}"

    def ca_paths(self, name: str) -> tuple[Path, Path]:
        """Return (cert_path, key_path) for the CA called name."""
        return self.cert_paths(name)

    def cert_paths(self, name: str) -> tuple[Path, Path]:
        """Return (cert_path, key_path) for a certificate called name."""
        return self.cert_root / f"{name}.crt", self.cert_root / f"{name}.key"

    def kubeconfig_path(self, name: str) -> Path:
        return self.cert_root / f"{name}.conf"

    def owner(self, role: str) -> str:
        """Resolve an owner role (e.g. 'apiserver_user') to a user name."""
        if role not in OWNER_ROLES:
            raise ValueError(f"unknown owner role: {role}")
        return getattr(self, role)


@dataclass
class DistinguishedName:
    """X.509 Subject Distinguished Name.

    Kubernetes maps CN to the user name and O to group membership, so the
    attribute set is kept to exactly these two.
    """

    common_name: str
    organization: str | None = None

    def to_x509_name(self) -> x509.Name:
        """Convert to cryptography x509.Name for certificate generation."""
        attributes = [x509.NameAttribute(oid.NameOID.COMMON_NAME, self.common_name)]
        if self.organization:
            attributes.append(x509.NameAttribute(oid.NameOID.ORGANIZATION_NAME, self.organization))
        return x509.Name(attributes)
