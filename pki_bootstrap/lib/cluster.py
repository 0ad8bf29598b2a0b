"""Cluster configuration consumed by the PKI bootstrap."""

import ipaddress
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError, StorageError

DEFAULT_SERVICE_CIDR = "10.96.0.0/12"
DEFAULT_API_PORT = 6443


@dataclass
class APISpec:
    """API server advertise settings."""

    address: str
    sans: list[str] = field(default_factory=list)
    port: int = DEFAULT_API_PORT


@dataclass
class NetworkSpec:
    """Cluster network settings."""

    service_cidr: str = DEFAULT_SERVICE_CIDR

    def internal_api_address(self) -> str:
        """Return the in-cluster address of the `kubernetes` service.

        This is the first host address of the service CIDR, e.g. 10.96.0.1
        for 10.96.0.0/12.

        Raises:
            ConfigurationError: If the CIDR is malformed or has no first host
        """
        try:
            network = ipaddress.ip_network(self.service_cidr, strict=False)
        except ValueError as e:
            raise ConfigurationError(f"invalid service CIDR {self.service_cidr!r}: {e}") from e

        try:
            address = network.network_address + 1
        except ValueError as e:
            # network address is the last one of its family
            raise ConfigurationError(
                f"service CIDR {self.service_cidr!r} has no room for the API service address"
            ) from e
        if address not in network:
            raise ConfigurationError(
                f"service CIDR {self.service_cidr!r} has no room for the API service address"
            )
        return str(address)


@dataclass
class ClusterSpec:
    api: APISpec
    network: NetworkSpec = field(default_factory=NetworkSpec)


def cluster_spec_from_dict(data: dict[str, Any]) -> ClusterSpec:
    """Build ClusterSpec from a parsed cluster document.

    Accepts either the full `spec:`-wrapped document or the bare spec mapping.

    Raises:
        ConfigurationError: If required fields are missing or mistyped
    """
    if not isinstance(data, dict):
        raise ConfigurationError("cluster config must be a mapping")
    spec = data.get("spec", data)
    if not isinstance(spec, dict):
        raise ConfigurationError("cluster config 'spec' must be a mapping")

    api = spec.get("api") or {}
    network = spec.get("network") or {}
    if not isinstance(api, dict) or not isinstance(network, dict):
        raise ConfigurationError("cluster config 'api' and 'network' must be mappings")

    address = api.get("address")
    if not address or not isinstance(address, str):
        raise ConfigurationError("cluster config is missing api.address")

    sans = api.get("sans") or []
    if not isinstance(sans, list) or not all(isinstance(s, str) for s in sans):
        raise ConfigurationError("cluster config api.sans must be a list of strings")

    port = api.get("port", DEFAULT_API_PORT)
    if not isinstance(port, int) or isinstance(port, bool):
        raise ConfigurationError("cluster config api.port must be an integer")

    service_cidr = network.get("serviceCIDR", DEFAULT_SERVICE_CIDR)
    if not isinstance(service_cidr, str):
        raise ConfigurationError("cluster config network.serviceCIDR must be a string")

    return ClusterSpec(
        api=APISpec(address=address, sans=list(sans), port=port),
        network=NetworkSpec(service_cidr=service_cidr),
    )


def load_cluster_spec(path: Path) -> ClusterSpec:
    """Load ClusterSpec from a YAML file.

    Raises:
        StorageError: If the file cannot be read
        ConfigurationError: If the file is not valid YAML or misses fields
    """
    try:
        text = path.read_text()
    except OSError as e:
        raise StorageError(f"failed to read cluster config {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"cluster config {path} is not valid YAML: {e}") from e

    return cluster_spec_from_dict(data or {})
