"""Detect whether the certificate installed for an app is the one certsteward issued.

Identity is decided by comparing content digests only.
"""

import enum
import hashlib
import logging
import typing

if typing.TYPE_CHECKING:
    from .stores import ApplicationRegistry, CertificateStore

logger = logging.getLogger(f"certsteward.{__name__}")

DigestFunction = typing.Callable[[bytes], str]


class ManagedStatus(enum.Enum):
    """Why an app is or is not managed."""

    MANAGED = "managed"
    TLS_DISABLED = "tls disabled"
    NO_CERTIFICATE = "no certificate installed"
    NO_ISSUED_CERTIFICATE = "no issued certificate"
    FOREIGN_CERTIFICATE = "installed certificate was not issued by certsteward"


def sha256_digest(data: bytes) -> str:
    """Return the hex SHA-256 digest of data."""
    return hashlib.sha256(data).hexdigest()


def content_digest(
    data: typing.Optional[bytes], digest: DigestFunction = sha256_digest
) -> typing.Optional[str]:
    """Return the digest of data, or None when there is no data."""
    if not data:
        return None
    return digest(data)


def is_managed(
    app: str,
    registry: "ApplicationRegistry",
    certificates: "CertificateStore",
    digest: DigestFunction = sha256_digest,
) -> typing.Tuple[bool, ManagedStatus]:
    """Check if the certificate installed for the app is the one from the issuance store.

    - Apps without TLS enabled or without an installed certificate are not managed.
    - Unreadable certificates digest to None, and None never matches anything.
    - The app is managed only if both digests exist and are equal.

    Args:
        app: The app name
        registry: The application registry
        certificates: The certificate store
        digest: The digest function to use

    Returns:
        A tuple of (managed, status)
    """
    if not registry.is_tls_enabled(app):
        logger.debug(f"TLS is not enabled for app {app}")
        return False, ManagedStatus.TLS_DISABLED

    installed = content_digest(certificates.read_installed_certificate(app), digest)
    if installed is None:
        logger.debug(f"No certificate installed for app {app}")
        return False, ManagedStatus.NO_CERTIFICATE

    issued = content_digest(certificates.read_issuance_certificate(app), digest)
    if issued is None:
        logger.debug(f"No issued certificate found for app {app}")
        return False, ManagedStatus.NO_ISSUED_CERTIFICATE

    if installed != issued:
        logger.debug(f"Installed certificate digest {installed} differs from issued {issued} for app {app}")
        return False, ManagedStatus.FOREIGN_CERTIFICATE

    return True, ManagedStatus.MANAGED
