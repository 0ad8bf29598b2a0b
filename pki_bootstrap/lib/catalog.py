"""Control-plane certificate catalog.

Each entry is one authenticated identity. CN is the Kubernetes user name and
O the RBAC group, so a typo here changes who the component is to the
apiserver. Entries are issued in the order listed.
"""

from dataclasses import dataclass

from .config import PKIConfig
from .errors import ConfigurationError
from .models import CertificateRequest

ROOT_CA = "ca"
FRONT_PROXY_CA = "front-proxy-ca"

# CA file stem -> subject common name
CERTIFICATE_AUTHORITIES = {
    ROOT_CA: "kubernetes-ca",
    FRONT_PROXY_CA: "kubernetes-front-proxy-ca",
}


@dataclass(frozen=True)
class CatalogEntry:
    """Declarative description of one leaf certificate.

    server entries get the full SAN set; kubeconfig names the <stem>.conf
    written right after issuance; owner is a PKIConfig owner attribute.
    """

    name: str
    cn: str
    o: str
    ca: str = ROOT_CA
    server: bool = False
    kubeconfig: str | None = None
    owner: str = "apiserver_user"

    def to_request(self, config: PKIConfig, hostnames: list[str]) -> CertificateRequest:
        ca_cert, ca_key = config.ca_paths(self.ca)
        return CertificateRequest(
            name=self.name,
            cn=self.cn,
            o=self.o,
            ca_cert=ca_cert,
            ca_key=ca_key,
            hostnames=tuple(hostnames) if self.server else (),
        )


CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        name="front-proxy-client",
        cn="front-proxy-client",
        o="front-proxy-client",
        ca=FRONT_PROXY_CA,
    ),
    CatalogEntry(
        name="admin",
        cn="kubernetes-admin",
        o="system:masters",
        kubeconfig="admin",
        owner="admin_user",
    ),
    CatalogEntry(
        name="ccm",
        cn="system:kube-controller-manager",
        o="system:kube-controller-manager",
        kubeconfig="ccm",
        owner="controller_manager_user",
    ),
    CatalogEntry(
        name="scheduler",
        cn="system:kube-scheduler",
        o="system:kube-scheduler",
        kubeconfig="scheduler",
        owner="scheduler_user",
    ),
    CatalogEntry(
        name="apiserver-kubelet-client",
        cn="apiserver-kubelet-client",
        o="system:masters",
    ),
    CatalogEntry(
        name="server",
        cn="kubernetes",
        o="kubernetes",
        server=True,
    ),
    CatalogEntry(
        name="mke-api",
        cn="mke-api",
        o="kubernetes",
        server=True,
        owner="mke_api_user",
    ),
)


def validate_catalog(entries: tuple[CatalogEntry, ...], config: PKIConfig) -> None:
    """Reject catalogs that would overwrite one identity with another.

    Raises:
        ConfigurationError: On duplicate output names, unknown CAs, or owner roles
    """
    seen: dict[str, CatalogEntry] = {}
    for entry in entries:
        if entry.name in seen:
            raise ConfigurationError(f"duplicate certificate name in catalog: {entry.name}")
        if entry.name in CERTIFICATE_AUTHORITIES:
            raise ConfigurationError(f"certificate {entry.name} would overwrite a CA")
        if entry.ca not in CERTIFICATE_AUTHORITIES:
            raise ConfigurationError(f"certificate {entry.name} references unknown CA {entry.ca}")
        try:
            config.owner(entry.owner)
        except ValueError as e:
            raise ConfigurationError(f"certificate {entry.name}: {e}") from e
        seen[entry.name] = entry
