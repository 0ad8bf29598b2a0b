"""Ordered PKI bootstrap for a control-plane node."""

import threading
from collections.abc import Callable
from dataclasses import dataclass

from .catalog import CATALOG, CERTIFICATE_AUTHORITIES, ROOT_CA, CatalogEntry, validate_catalog
from .cert_manager import CertificateAuthority, CertificateManager
from .cluster import ClusterSpec
from .config import PKIConfig
from .errors import BootstrapCancelled, PKIError
from .fs_utils import read_file
from .keypair import ensure_key_pair, keypair_paths
from .kubeconfig import write_kubeconfig
from .logging_config import LOGGER
from .models import BootstrapResult, IssuedCertificate
from .san_resolver import resolve_sans, split_sans

SERVICE_ACCOUNT_KEYPAIR = "sa"
# The service-account keypair is generated right after this catalog entry
SERVICE_ACCOUNT_AFTER = "admin"


@dataclass
class _Step:
    description: str
    action: Callable[[], None]


class CertificateBootstrap:
    """Creates or reuses every PKI artifact the control plane needs.

    Each step is existence-gated, so the whole run can be repeated after a
    failure or restart; only missing artifacts are produced.
    """

    def __init__(
        self,
        config: PKIConfig,
        cluster_spec: ClusterSpec,
        manager: CertificateAuthority | None = None,
        catalog: tuple[CatalogEntry, ...] = CATALOG,
    ) -> None:
        self.config = config
        self.cluster_spec = cluster_spec
        self.manager = manager if manager is not None else CertificateManager(config)
        self.catalog = catalog
        self.ca_cert: str | None = None
        self.issued: dict[str, IssuedCertificate] = {}

    def run(self, cancel: threading.Event | None = None) -> BootstrapResult:
        """Run every bootstrap step in order, stopping at the first error.

        Configuration is validated and SANs are resolved before anything is
        written, so a bad cluster config leaves the cert root untouched.

        Args:
            cancel: Checked before each step; when set the run stops there

        Returns:
            BootstrapResult listing created and reused artifacts

        Raises:
            ConfigurationError: Invalid catalog or cluster config
            StorageError: Filesystem failure
            CryptoError: Key generation or signing failure
            BootstrapCancelled: cancel was set
        """
        validate_catalog(self.catalog, self.config)
        hostnames = resolve_sans(self.cluster_spec)
        # unencodable SANs must fail before the first write
        split_sans(hostnames)
        LOGGER.debug("Resolved API SANs: %s", ", ".join(hostnames))

        result = BootstrapResult()
        for step in self._steps(hostnames, result):
            if cancel is not None and cancel.is_set():
                raise BootstrapCancelled(f"bootstrap cancelled before: {step.description}")
            LOGGER.debug("Running step: %s", step.description)
            step.action()

        LOGGER.info(
            "PKI bootstrap complete: %d created, %d reused",
            len(result.created),
            len(result.reused),
        )
        return result

    def stop(self) -> None:
        """Generated PKI outlives the process; nothing to tear down."""

    def _steps(self, hostnames: list[str], result: BootstrapResult) -> list[_Step]:
        steps = [
            _Step(f"ensure CA {name}", self._ensure_ca_action(name, common_name, result))
            for name, common_name in CERTIFICATE_AUTHORITIES.items()
        ]
        steps.append(_Step("load root CA certificate", self._load_ca_cert))

        for entry in self.catalog:
            steps.append(
                _Step(
                    f"ensure certificate {entry.name}",
                    self._issue_action(entry, hostnames, result),
                )
            )
            if entry.kubeconfig is not None:
                steps.append(
                    _Step(
                        f"write kubeconfig {entry.kubeconfig}",
                        self._kubeconfig_action(entry, entry.kubeconfig, result),
                    )
                )
            if entry.name == SERVICE_ACCOUNT_AFTER:
                steps.append(
                    _Step(
                        f"ensure keypair {SERVICE_ACCOUNT_KEYPAIR}",
                        self._keypair_action(result),
                    )
                )
        return steps

    def _ensure_ca_action(
        self, name: str, common_name: str, result: BootstrapResult
    ) -> Callable[[], None]:
        def action() -> None:
            created = self.manager.ensure_ca(name, common_name)
            result.record(created, *self.config.ca_paths(name))

        return action

    def _load_ca_cert(self) -> None:
        # Kubeconfigs embed the root CA, so it must be readable before any of them
        cert_path, _ = self.config.ca_paths(ROOT_CA)
        self.ca_cert = read_file(cert_path).decode()

    def _issue_action(
        self, entry: CatalogEntry, hostnames: list[str], result: BootstrapResult
    ) -> Callable[[], None]:
        def action() -> None:
            request = entry.to_request(self.config, hostnames)
            issued = self.manager.ensure_certificate(request, self.config.owner(entry.owner))
            result.record(issued.created, issued.cert_path, issued.key_path)
            self.issued[entry.name] = issued

        return action

    def _kubeconfig_action(
        self, entry: CatalogEntry, kubeconfig: str, result: BootstrapResult
    ) -> Callable[[], None]:
        def action() -> None:
            if self.ca_cert is None:
                raise PKIError(f"root CA certificate not loaded before writing {kubeconfig}.conf")
            issued = self.issued[entry.name]
            dest = self.config.kubeconfig_path(kubeconfig)
            written = write_kubeconfig(
                dest,
                self.config.api_url,
                self.ca_cert,
                issued.cert,
                issued.key,
                owner=self.config.owner(entry.owner),
            )
            result.record(written, dest)

        return action

    def _keypair_action(self, result: BootstrapResult) -> Callable[[], None]:
        def action() -> None:
            created = ensure_key_pair(
                self.config.cert_root,
                SERVICE_ACCOUNT_KEYPAIR,
                owner=self.config.apiserver_user,
            )
            result.record(created, *keypair_paths(self.config.cert_root, SERVICE_ACCOUNT_KEYPAIR))

        return action
