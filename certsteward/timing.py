"""Expiry, renewal window and duration helpers for certsteward."""

import logging
import typing

import cryptography.x509
from cryptography.hazmat.backends import default_backend

from .errors import CertificateMissing, CertificateParseError, ConfigurationUnreadable
from .settings import lookup

logger = logging.getLogger(f"certsteward.{__name__}")

SECONDS_PER_DAY = 86400
DEFAULT_GRACE_PERIOD = 30 * SECONDS_PER_DAY

# unit suffix and size in seconds, largest first
UNITS = (
    ("d", SECONDS_PER_DAY),
    ("h", 3600),
    ("m", 60),
    ("s", 1),
)


def format_duration(seconds: int) -> str:
    """Format a signed number of seconds as a human readable string.

    Only nonzero units are included, largest first, like ``1d, 2h, 3s``.
    Negative input is formatted as the absolute value followed by ``ago``.
    Zero seconds is the empty string.

    Args:
        seconds: The number of seconds to format

    Returns:
        The formatted string
    """
    remaining = abs(seconds)
    parts = []
    for suffix, size in UNITS:
        value, remaining = divmod(remaining, size)
        if value:
            parts.append(f"{value}{suffix}")
    result = ", ".join(parts)
    if seconds < 0:
        return f"{result} ago"
    return result


class Duration(typing.NamedTuple):
    """A signed number of seconds."""

    seconds: int

    @property
    def overdue(self) -> bool:
        """True when the point in time has passed."""
        return self.seconds < 0

    def __str__(self) -> str:
        return format_duration(self.seconds)


class RenewalWindow(typing.NamedTuple):
    """Timing of a certificate relative to now."""

    expiry: int
    grace_period: int
    now: int
    time_to_expiry: Duration
    time_to_renewal: Duration


def read_expiry(certificate: typing.Optional[bytes]) -> int:
    """Return the "not after" of a PEM certificate as epoch seconds.

    If the input is a chain only the first certificate is considered.

    Args:
        certificate: The bytes of the PEM certificate, or None if no certificate is installed

    Returns:
        The expiry of the certificate in seconds since the epoch (UTC)

    Raises:
        CertificateMissing: If there is no certificate
        CertificateParseError: If the bytes are not a valid PEM certificate
    """
    if not certificate:
        raise CertificateMissing("No certificate installed")
    try:
        parsed = cryptography.x509.load_pem_x509_certificate(certificate, default_backend())
    except ValueError as E:
        logger.debug(f"Unable to parse certificate: {E}")
        raise CertificateParseError("Unable to parse, this is not a valid PEM formatted certificate.") from E
    return int(parsed.not_valid_after_utc.timestamp())


def compute_window(expiry: int, grace_period: int, now: int) -> RenewalWindow:
    """Compute time to expiry and time to renewal.

    Both may be negative, meaning the certificate has expired or is due for renewal.
    """
    time_to_expiry = expiry - now
    return RenewalWindow(
        expiry=expiry,
        grace_period=grace_period,
        now=now,
        time_to_expiry=Duration(time_to_expiry),
        time_to_renewal=Duration(time_to_expiry - grace_period),
    )


def resolve_grace_period(
    app_layer: typing.Mapping[str, typing.Any],
    global_layer: typing.Mapping[str, typing.Any],
) -> int:
    """Return the grace period in seconds, app setting first, then global, then 30 days.

    Args:
        app_layer: The app configuration
        global_layer: The global configuration

    Returns:
        The grace period in seconds

    Raises:
        ConfigurationUnreadable: If the configured value is not an integer
    """
    value = lookup("grace-period", app_layer, global_layer)
    if value is None:
        return DEFAULT_GRACE_PERIOD
    try:
        return int(value)
    except ValueError as E:
        raise ConfigurationUnreadable(f"grace-period must be a number of seconds, not '{value}'") from E
