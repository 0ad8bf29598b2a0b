"""Subject Alternative Name aggregation for API server certificates."""

import ipaddress

from cryptography import x509

from .cluster import ClusterSpec
from .errors import ConfigurationError

# Names the apiserver is reached by from inside the node and the cluster
KUBERNETES_SANS = (
    "kubernetes",
    "kubernetes.default",
    "kubernetes.default.svc",
    "kubernetes.default.svc.cluster",
    "kubernetes.svc.cluster.local",
    "127.0.0.1",
    "localhost",
)


def resolve_sans(cluster_spec: ClusterSpec) -> list[str]:
    """Return the ordered SAN list for server certificates.

    Order: well-known Kubernetes names, advertise address, extra SANs,
    internal API service address. Duplicates are kept.

    Raises:
        ConfigurationError: If the internal API address cannot be computed
    """
    hostnames = list(KUBERNETES_SANS)
    hostnames.append(cluster_spec.api.address)
    hostnames.extend(cluster_spec.api.sans)
    hostnames.append(cluster_spec.network.internal_api_address())
    return hostnames


def split_sans(hostnames: list[str]) -> list[x509.GeneralName]:
    """Convert hostname/IP strings to x509 general names.

    IP literals become IPAddress entries, everything else DNSName. Order is
    preserved and exact duplicates are dropped.

    Raises:
        ConfigurationError: If a name cannot be encoded (e.g. non-ASCII DNS name)
    """
    names: list[x509.GeneralName] = []
    for hostname in dict.fromkeys(hostnames):
        try:
            names.append(x509.IPAddress(ipaddress.ip_address(hostname)))
        except ValueError:
            try:
                names.append(x509.DNSName(hostname))
            except ValueError as e:
                raise ConfigurationError(f"invalid SAN {hostname!r}: {e}") from e
    return names
