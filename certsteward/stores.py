"""Interfaces to the collaborators certsteward reads from, and their filesystem implementations.

Filesystem layout below ``apps-dir``::

    <app>/domains                    one domain per line, in order
    <app>/certsteward.yml            app configuration layer (optional)
    <app>/tls/server.crt             installed certificate
    <app>/tls/server.key             installed key
    <app>/certsteward/<digest>/      partition, config + files written by the ACME client
    <app>/certsteward/current        symlink to the partition holding the active issuance
"""

import abc
import logging
import os
import tempfile
import typing
from pathlib import Path

import yaml

from .errors import ConfigurationUnreadable, PartitionWriteError

logger = logging.getLogger(f"certsteward.{__name__}")

PARTITION_CONFIG_FILE = "config"
PARTITION_CERTIFICATE_FILE = "cert.pem"
CURRENT_PARTITION = "current"


class PartitionHandle(typing.NamedTuple):
    """Where a partition lives."""

    key: str
    location: str


class PartitionStore(abc.ABC):
    """Content addressed store of request configurations, keyed by digest."""

    @abc.abstractmethod
    def put(self, key: str, blob: str) -> PartitionHandle:
        """Create the partition if needed and write blob as its config. Idempotent."""

    @abc.abstractmethod
    def get(self, key: str) -> typing.Optional[str]:
        """Return the config stored in the partition, or None."""

    @abc.abstractmethod
    def keys(self) -> typing.List[str]:
        """Return the keys of all partitions."""

    @abc.abstractmethod
    def activate(self, key: str) -> None:
        """Mark the partition as holding the active issuance."""

    @abc.abstractmethod
    def current(self) -> typing.Optional[str]:
        """Return the key of the active partition, or None."""

    @abc.abstractmethod
    def read_certificate(self, key: typing.Optional[str] = None) -> typing.Optional[bytes]:
        """Return the certificate in the partition (default the active one), or None."""


class FilesystemPartitionStore(PartitionStore):
    """Partitions as directories below root."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def put(self, key: str, blob: str) -> PartitionHandle:
        """Create root/key/ and atomically write the config file in it.

        Raises:
            PartitionWriteError: If the filesystem operation fails
        """
        path = self.root / key
        try:
            path.mkdir(parents=True, exist_ok=True)
            fd, tmppath = tempfile.mkstemp(prefix=f".{PARTITION_CONFIG_FILE}.", dir=path)
            try:
                with os.fdopen(fd, "w") as f:
                    f.write(blob)
                os.replace(tmppath, path / PARTITION_CONFIG_FILE)
            except OSError:
                Path(tmppath).unlink(missing_ok=True)
                raise
        except OSError as E:
            raise PartitionWriteError(f"Unable to write partition {path}: {E}") from E
        logger.debug(f"Wrote {len(blob)} bytes config to partition {path}")
        return PartitionHandle(key=key, location=str(path))

    def get(self, key: str) -> typing.Optional[str]:
        try:
            return (self.root / key / PARTITION_CONFIG_FILE).read_text()
        except OSError:
            return None

    def keys(self) -> typing.List[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            p.name for p in self.root.iterdir() if p.is_dir() and not p.is_symlink()
        )

    def activate(self, key: str) -> None:
        """Point the current symlink at the partition, replacing any old link atomically.

        Raises:
            PartitionWriteError: If the partition does not exist or the link can not be written
        """
        if not (self.root / key).is_dir():
            raise PartitionWriteError(f"Partition {self.root / key} does not exist")
        tmplink = self.root / f".{CURRENT_PARTITION}.{os.getpid()}"
        try:
            tmplink.unlink(missing_ok=True)
            tmplink.symlink_to(key)
            os.replace(tmplink, self.root / CURRENT_PARTITION)
        except OSError as E:
            raise PartitionWriteError(f"Unable to activate partition {key}: {E}") from E
        logger.debug(f"Partition {key} is now current in {self.root}")

    def current(self) -> typing.Optional[str]:
        link = self.root / CURRENT_PARTITION
        if not link.is_symlink():
            return None
        return Path(os.readlink(link)).name

    def read_certificate(self, key: typing.Optional[str] = None) -> typing.Optional[bytes]:
        key = key or self.current()
        if not key:
            return None
        try:
            return (self.root / key / PARTITION_CERTIFICATE_FILE).read_bytes()
        except OSError as E:
            logger.debug(f"Unable to read certificate from partition {key}: {E}")
            return None


class MemoryPartitionStore(PartitionStore):
    """Partitions kept in a dict. Certificates can be placed in ``self.certificates``."""

    def __init__(self) -> None:
        self.configs: typing.Dict[str, str] = {}
        self.certificates: typing.Dict[str, bytes] = {}
        self.active: typing.Optional[str] = None

    def put(self, key: str, blob: str) -> PartitionHandle:
        self.configs[key] = blob
        return PartitionHandle(key=key, location=f"memory:{key}")

    def get(self, key: str) -> typing.Optional[str]:
        return self.configs.get(key)

    def keys(self) -> typing.List[str]:
        return sorted(self.configs)

    def activate(self, key: str) -> None:
        if key not in self.configs:
            raise PartitionWriteError(f"Partition {key} does not exist")
        self.active = key

    def current(self) -> typing.Optional[str]:
        return self.active

    def read_certificate(self, key: typing.Optional[str] = None) -> typing.Optional[bytes]:
        key = key or self.active
        if not key:
            return None
        return self.certificates.get(key)


class ApplicationRegistry(abc.ABC):
    """Enumerates apps, their domains, TLS state and app configuration."""

    @abc.abstractmethod
    def list_applications(self) -> typing.List[str]:
        """Return all app names."""

    @abc.abstractmethod
    def list_domains(self, app: str) -> typing.List[str]:
        """Return the domains of the app in their configured order."""

    @abc.abstractmethod
    def is_tls_enabled(self, app: str) -> bool:
        """Return True if TLS is enabled for the app."""

    @abc.abstractmethod
    def read_app_config(self, app: str) -> typing.Dict[str, typing.Any]:
        """Return the app configuration layer."""


class CertificateStore(abc.ABC):
    """Gives access to installed and issued certificates."""

    @abc.abstractmethod
    def read_installed_certificate(self, app: str) -> typing.Optional[bytes]:
        """Return the certificate installed for the app, or None."""

    @abc.abstractmethod
    def read_issuance_certificate(self, app: str) -> typing.Optional[bytes]:
        """Return the certificate most recently issued for the app, or None."""

    @abc.abstractmethod
    def partition_store(self, app: str) -> PartitionStore:
        """Return the partition store of the app."""


class FilesystemRegistry(ApplicationRegistry):
    """Apps are the subdirectories of apps_dir."""

    def __init__(self, apps_dir: Path) -> None:
        self.apps_dir = apps_dir

    def list_applications(self) -> typing.List[str]:
        if not self.apps_dir.is_dir():
            logger.warning(f"Apps dir {self.apps_dir} not found")
            return []
        return sorted(
            p.name for p in self.apps_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
        )

    def list_domains(self, app: str) -> typing.List[str]:
        """Read the domains file, skipping blank lines and comments."""
        path = self.apps_dir / app / "domains"
        try:
            lines = path.read_text().splitlines()
        except FileNotFoundError:
            return []
        except OSError as E:
            raise ConfigurationUnreadable(f"Unable to read domains for app {app}: {E}") from E
        domains = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            domains.append(line)
        return domains

    def is_tls_enabled(self, app: str) -> bool:
        """Check that both tls/server.crt and tls/server.key exist.

        Raises:
            ConfigurationUnreadable: If the tls dir can not be inspected
        """
        tls = self.apps_dir / app / "tls"
        try:
            return (tls / "server.crt").is_file() and (tls / "server.key").is_file()
        except OSError as E:
            raise ConfigurationUnreadable(f"Unable to check TLS files for app {app}: {E}") from E

    def read_app_config(self, app: str) -> typing.Dict[str, typing.Any]:
        """Parse <app>/certsteward.yml. A missing file is an empty layer.

        Raises:
            ConfigurationUnreadable: If the file can not be read or is not a YAML mapping
        """
        path = self.apps_dir / app / "certsteward.yml"
        try:
            with path.open() as f:
                config = yaml.load(f, Loader=yaml.SafeLoader)
        except FileNotFoundError:
            return {}
        except (OSError, yaml.YAMLError) as E:
            raise ConfigurationUnreadable(f"Unable to parse YAML config file {path}") from E
        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigurationUnreadable(f"YAML config file {path} is not a mapping")
        return config


class FilesystemCertificateStore(CertificateStore):
    """Installed certificates in <app>/tls, issued certificates in the app partitions."""

    def __init__(self, apps_dir: Path) -> None:
        self.apps_dir = apps_dir

    def read_installed_certificate(self, app: str) -> typing.Optional[bytes]:
        try:
            return (self.apps_dir / app / "tls" / "server.crt").read_bytes()
        except OSError as E:
            logger.debug(f"Unable to read installed certificate for app {app}: {E}")
            return None

    def read_issuance_certificate(self, app: str) -> typing.Optional[bytes]:
        return self.partition_store(app).read_certificate()

    def partition_store(self, app: str) -> FilesystemPartitionStore:
        return FilesystemPartitionStore(self.apps_dir / app / "certsteward")
