"""Kubeconfig rendering for component client certificates."""

import base64
from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import ConfigurationError
from .fs_utils import file_exists, read_file, set_owner, write_file_atomic
from .logging_config import LOGGER

KUBECONFIG_MODE = 0o600
CLUSTER_NAME = "local"
CONTEXT_NAME = "Default"
USER_NAME = "user"


@dataclass
class KubeconfigCredentials:
    """Decoded PEM material embedded in a kubeconfig."""

    server: str
    ca_cert: str
    client_cert: str
    client_key: str


def _b64(pem: str) -> str:
    return base64.b64encode(pem.encode()).decode("ascii")


def render_kubeconfig(api_url: str, ca_cert: str, client_cert: str, client_key: str) -> str:
    """Render the single-cluster, single-user kubeconfig document."""
    document = {
        "apiVersion": "v1",
        "clusters": [
            {
                "cluster": {
                    "server": api_url,
                    "certificate-authority-data": _b64(ca_cert),
                },
                "name": CLUSTER_NAME,
            }
        ],
        "contexts": [
            {
                "context": {
                    "cluster": CLUSTER_NAME,
                    "namespace": "default",
                    "user": USER_NAME,
                },
                "name": CONTEXT_NAME,
            }
        ],
        "current-context": CONTEXT_NAME,
        "kind": "Config",
        "preferences": {},
        "users": [
            {
                "name": USER_NAME,
                "user": {
                    "client-certificate-data": _b64(client_cert),
                    "client-key-data": _b64(client_key),
                },
            }
        ],
    }
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False, width=float("inf"))


def write_kubeconfig(
    dest: Path,
    api_url: str,
    ca_cert: str,
    client_cert: str,
    client_key: str,
    owner: str | None = None,
) -> bool:
    """Write a kubeconfig to dest unless a file is already there.

    An existing file is left untouched without looking at its content, so
    operator edits survive re-runs. A new file is readable only by owner
    (the component user the credentials belong to).

    Returns:
        True if the file was written, False if it already existed

    Raises:
        StorageError: If the file cannot be written
    """
    if file_exists(dest):
        LOGGER.debug("Kubeconfig %s exists, skipping", dest)
        return False

    content = render_kubeconfig(api_url, ca_cert, client_cert, client_key)
    write_file_atomic(dest, content.encode(), KUBECONFIG_MODE)
    if owner is not None:
        set_owner(dest, owner)
    LOGGER.info("Wrote kubeconfig %s", dest)
    return True


def load_kubeconfig_credentials(path: Path) -> KubeconfigCredentials:
    """Read a kubeconfig written by write_kubeconfig and decode its PEM blobs.

    Raises:
        StorageError: If the file cannot be read
        ConfigurationError: If the document does not have the expected shape
    """
    try:
        document = yaml.safe_load(read_file(path))
        cluster = document["clusters"][0]["cluster"]
        user = document["users"][0]["user"]
        return KubeconfigCredentials(
            server=cluster["server"],
            ca_cert=base64.b64decode(cluster["certificate-authority-data"]).decode(),
            client_cert=base64.b64decode(user["client-certificate-data"]).decode(),
            client_key=base64.b64decode(user["client-key-data"]).decode(),
        )
    except (yaml.YAMLError, KeyError, IndexError, TypeError, ValueError) as e:
        raise ConfigurationError(f"kubeconfig {path} is malformed: {e}") from e
