"""Request and result models for PKI bootstrap operations."""

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True)
class CertificateRequest:
    """One leaf certificate to issue.

    name selects the output files (<name>.crt, <name>.key); cn and o are the
    Kubernetes user and group the certificate authenticates as. hostnames is
    non-empty only for server certificates.
    """

    name: str
    cn: str
    o: str
    ca_cert: Path
    ca_key: Path
    hostnames: tuple[str, ...] = ()


@dataclass
class IssuedCertificate:
    """PEM material of an issued (or previously issued) certificate."""

    cert: str
    key: str
    cert_path: Path
    key_path: Path
    created: bool = False


@dataclass
class BootstrapResult:
    """Artifacts touched by one bootstrap run, in step order."""

    created: list[Path] = field(default_factory=list)
    reused: list[Path] = field(default_factory=list)

    def record(self, created: bool, *paths: Path) -> None:
        (self.created if created else self.reused).extend(paths)
