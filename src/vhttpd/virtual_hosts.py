"""
=============================================================================
VIRTUAL HOSTING
=============================================================================

One server, one port, many websites. The client's Host header picks the
website; each website has its own document root.

    ┌───────────────────────────────────────────────────────────────────┐
    │   GET /index.html HTTP/1.1                                         │
    │   Host: website1          ──► /srv/docroot_dirs/htdocs1/index.html │
    │                                                                     │
    │   GET /index.html HTTP/1.1                                         │
    │   Host: website2          ──► /srv/docroot_dirs/htdocs2/index.html │
    │                                                                     │
    │   GET /index.html HTTP/1.1                                         │
    │   Host: nobody-home       ──► 404 Not Found                        │
    └───────────────────────────────────────────────────────────────────┘

=============================================================================
CONFIGURATION FILE
=============================================================================

    # virtual_hosts.yaml
    virtual_hosts:
      - hostName: website1
        docRoot: htdocs1
      - hostName: website2
        docRoot: htdocs2

docRoot is relative to the --docroot directory given on the command
line. Every docroot is checked at startup: a typo should stop the server
before it binds, not turn into a stream of 404s.

The mapping is built once and never changes, so all connection threads
share it without locks.

=============================================================================
"""

import os
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

import yaml


logger = logging.getLogger(__name__)


class VirtualHostConfigError(Exception):
    """The virtual host configuration cannot be used."""


class VirtualHosts(Mapping[str, str]):
    """
    Read-only hostname → absolute docroot mapping.

    Behaves like a dict for reading (vh["website1"], len(vh), iteration)
    and has no way to mutate it after construction.
    """

    def __init__(self, hosts: Mapping[str, str]):
        self._hosts = MappingProxyType(dict(hosts))

    def __getitem__(self, host: str) -> str:
        return self._hosts[host]

    def __iter__(self) -> Iterator[str]:
        return iter(self._hosts)

    def __len__(self) -> int:
        return len(self._hosts)

    def __repr__(self) -> str:
        return f"VirtualHosts({dict(self._hosts)!r})"

    def resolve(self, host: str) -> Optional[str]:
        """
        Docroot for host, or None if the host is not configured.

        Never raises: an unknown host is a normal request-time outcome
        (the response builder turns it into 404).
        """
        return self._hosts.get(host)

    def validate(self) -> None:
        """
        Check every docroot exists and is a directory.

        Raises:
            VirtualHostConfigError: First docroot that fails.
        """
        for host, docroot in self._hosts.items():
            if not os.path.exists(docroot):
                raise VirtualHostConfigError(
                    f"Docroot {docroot} for host {host!r} does not exist"
                )
            if not os.path.isdir(docroot):
                raise VirtualHostConfigError(
                    f"Docroot {docroot} for host {host!r} is not a directory"
                )


def load_virtual_hosts(config_path: str | Path, docroot_dir: str | Path) -> VirtualHosts:
    """
    Load the virtual host map from a YAML file.

    Args:
        config_path: Path to virtual_hosts.yaml.
        docroot_dir: Directory the docRoot entries are relative to.

    Returns:
        Validated VirtualHosts with absolute, normalized docroots.

    Raises:
        VirtualHostConfigError: Unreadable file, invalid YAML, wrong shape,
                                or a docroot that is missing / not a dir.
    """
    config_path = Path(config_path)
    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except OSError as e:
        raise VirtualHostConfigError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e
    except yaml.YAMLError as e:
        raise VirtualHostConfigError(
            f"Failed to parse YAML in {config_path}: {e}"
        ) from e

    if not isinstance(data, dict):
        raise VirtualHostConfigError(f"{config_path} must be a YAML mapping")

    entries = data.get("virtual_hosts")
    if not isinstance(entries, list):
        raise VirtualHostConfigError(f"{config_path}: virtual_hosts must be a list")

    hosts: dict[str, str] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise VirtualHostConfigError("each virtual host must be a mapping")

        host_name = entry.get("hostName")
        doc_root = entry.get("docRoot")
        if not host_name or not doc_root:
            raise VirtualHostConfigError(
                f"virtual host entry needs hostName and docRoot: {entry!r}"
            )

        docroot_path = os.path.normpath(
            os.path.abspath(os.path.join(str(docroot_dir), str(doc_root)))
        )
        if str(host_name) in hosts:
            logger.warning(f"Duplicate virtual host {host_name!r}, last entry wins")
        hosts[str(host_name)] = docroot_path

    virtual_hosts = VirtualHosts(hosts)
    virtual_hosts.validate()

    for host, docroot in virtual_hosts.items():
        logger.debug(f"Virtual host {host} → {docroot}")

    return virtual_hosts
