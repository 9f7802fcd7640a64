"""Certsteward exceptions.

Every error is terminal for the single application being processed, but never
for a whole fleet scan.
"""


class CertstewardError(Exception):
    """Base class for all certsteward errors."""


class MissingContactEmail(CertstewardError):
    """No contact email is configured for the app or globally."""

    def __init__(self, app: str) -> None:
        """Build an actionable message naming the setting to configure."""
        self.app = app
        super().__init__(
            f"No acme-email configured for app {app}. Set acme-email in the app config file "
            "or globally with --acme-email / CERTSTEWARD_ACME_EMAIL before requesting a certificate."
        )


class CertificateMissing(CertstewardError):
    """No certificate is installed."""


class CertificateParseError(CertstewardError):
    """The certificate bytes are not a well formed PEM certificate."""


class ConfigurationUnreadable(CertstewardError):
    """A configuration layer could not be read or contains invalid values."""


class PartitionWriteError(CertstewardError):
    """Creating or writing a partition failed."""


class AcmeClientError(CertstewardError):
    """The external ACME client returned a non-zero exit code."""
