#!/usr/bin/env python3
"""Bootstrap control-plane PKI: CAs, component certificates, kubeconfigs, SA keypair."""

import argparse
import sys
from pathlib import Path

from pki_bootstrap.lib.cluster import (
    DEFAULT_SERVICE_CIDR,
    APISpec,
    ClusterSpec,
    NetworkSpec,
    load_cluster_spec,
)
from pki_bootstrap.lib.config import PKIConfig
from pki_bootstrap.lib.errors import ConfigurationError, PKIError
from pki_bootstrap.lib.logging_config import LOGGER, set_verbose
from pki_bootstrap.lib.orchestrator import CertificateBootstrap


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Create or reuse control-plane CAs, certificates, kubeconfigs and SA keypair"
    )
    parser.add_argument(
        "--cert-root",
        type=Path,
        default=Path("/var/lib/mke/pki"),
        help="Directory holding all PKI artifacts (default: /var/lib/mke/pki)",
    )
    parser.add_argument(
        "--cluster-config",
        type=Path,
        help="YAML cluster config with spec.api and spec.network",
    )
    parser.add_argument("--api-address", help="API advertise address (overrides config file)")
    parser.add_argument(
        "--api-san",
        action="append",
        default=[],
        help="Extra API server SAN, may be repeated (appended to config file SANs)",
    )
    parser.add_argument("--service-cidr", help=f"Service CIDR (default: {DEFAULT_SERVICE_CIDR})")
    parser.add_argument("--apiserver-port", type=int, help="API server port (default: 6443)")
    parser.add_argument(
        "--mke-api-user",
        help="Owner of the mke-api certificate files (default: the apiserver user)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def resolve_cluster_spec(args: argparse.Namespace) -> ClusterSpec:
    """Merge the optional cluster file with command-line overrides.

    Raises:
        ConfigurationError: If no API address is available
    """
    if args.cluster_config is not None:
        cluster_spec = load_cluster_spec(args.cluster_config)
    else:
        if not args.api_address:
            raise ConfigurationError("--api-address is required without --cluster-config")
        cluster_spec = ClusterSpec(api=APISpec(address=args.api_address), network=NetworkSpec())

    if args.api_address:
        cluster_spec.api.address = args.api_address
    cluster_spec.api.sans.extend(args.api_san)
    if args.service_cidr:
        cluster_spec.network.service_cidr = args.service_cidr
    if args.apiserver_port is not None:
        cluster_spec.api.port = args.apiserver_port
    return cluster_spec


def main(argv: list[str] | None = None) -> int:
    """Run the PKI bootstrap.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    args = build_parser().parse_args(argv)
    set_verbose(args.verbose)

    try:
        cluster_spec = resolve_cluster_spec(args)
        config = PKIConfig(
            cert_root=args.cert_root,
            apiserver_port=cluster_spec.api.port,
            mke_api_user=args.mke_api_user,
        )

        LOGGER.info("Bootstrapping PKI in %s", config.cert_root)
        result = CertificateBootstrap(config, cluster_spec).run()

        for path in result.created:
            LOGGER.info("  Created: %s", path)
        for path in result.reused:
            LOGGER.debug("  Reused: %s", path)
        return 0

    except PKIError as e:
        LOGGER.error("PKI bootstrap failed: %s", e)
        return 1
    except Exception as e:
        LOGGER.exception("PKI bootstrap failed unexpectedly: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
