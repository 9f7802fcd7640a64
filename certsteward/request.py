"""Assemble ACME request configurations and map them to partitions.

A request configuration is hashed into a digest, and the digest names the
partition the ACME client keeps its state in. Identical requests share a
partition, any difference (including the order of domains) gets a new one.
"""

import logging
import shlex
import types
import typing

from .errors import MissingContactEmail
from .identity import DigestFunction, sha256_digest
from .settings import lookup
from .stores import PartitionHandle, PartitionStore

logger = logging.getLogger(f"certsteward.{__name__}")

PRODUCTION_SERVER_URL = "https://acme-v02.api.letsencrypt.org/directory"
STAGING_SERVER_URL = "https://acme-staging-v02.api.letsencrypt.org/directory"

# read-only, configuration can not add or change aliases
SERVER_ALIASES: typing.Mapping[str, str] = types.MappingProxyType(
    {
        "default": PRODUCTION_SERVER_URL,
        "staging": STAGING_SERVER_URL,
    }
)

# sha256 of the terms of service document agreed to when no tos-digest is configured
DEFAULT_TOS_DIGEST = "6373439b9f29d67a5cd4d18cbc7f264809342dbf21cb2ba2fc7588df987a6221"

KEY_SIZE = 4096


class RequestConfig(typing.NamedTuple):
    """The parameters of a certificate request, in canonical order."""

    server: str
    email: str
    tos_digest: str
    domains: typing.Tuple[str, ...]
    key_size: int = KEY_SIZE

    def args(self) -> typing.List[str]:
        """Return the ACME client arguments for this request.

        Field order is server, email, tos digest, domains, key size.
        """
        args = [
            "--server",
            self.server,
            "--email",
            self.email,
            "--tos-sha256",
            self.tos_digest,
        ]
        for domain in self.domains:
            args += ["-d", domain]
        args += ["--cert-key-size", str(self.key_size)]
        return args

    def canonical_text(self) -> str:
        """Return the text which is hashed and stored in the partition.

        Arguments are shell quoted, so a value containing whitespace can not
        pass for several arguments.
        """
        return shlex.join(self.args())


class ResolvedRequest(typing.NamedTuple):
    """The result of resolving a request for an app."""

    config: RequestConfig
    digest: str
    partition: PartitionHandle


def server_url(alias: typing.Optional[str]) -> str:
    """Map a server alias to a directory URL.

    None and ``default`` map to production, ``staging`` to staging,
    anything else is returned unchanged as a custom URL.
    """
    if alias is None:
        return PRODUCTION_SERVER_URL
    return SERVER_ALIASES.get(alias, alias)


def check_email(
    app_layer: typing.Mapping[str, typing.Any],
    global_layer: typing.Mapping[str, typing.Any],
) -> bool:
    """Return True if a contact email is configured for the app or globally."""
    return lookup("acme-email", app_layer, global_layer) is not None


def build_request_config(
    app: str,
    app_layer: typing.Mapping[str, typing.Any],
    global_layer: typing.Mapping[str, typing.Any],
    domains: typing.Sequence[str],
) -> RequestConfig:
    """Assemble the request configuration for the app from the configuration layers.

    Args:
        app: The app name
        app_layer: The app configuration
        global_layer: The global configuration
        domains: The domains of the app, in enumeration order

    Returns:
        The RequestConfig

    Raises:
        MissingContactEmail: If no acme-email is configured
    """
    email = lookup("acme-email", app_layer, global_layer)
    if email is None:
        raise MissingContactEmail(app)
    return RequestConfig(
        server=server_url(lookup("acme-server", app_layer, global_layer)),
        email=email,
        tos_digest=lookup("tos-digest", app_layer, global_layer) or DEFAULT_TOS_DIGEST,
        domains=tuple(domains),
    )


def resolve(
    app: str,
    app_layer: typing.Mapping[str, typing.Any],
    global_layer: typing.Mapping[str, typing.Any],
    domains: typing.Sequence[str],
    store: PartitionStore,
    digest: DigestFunction = sha256_digest,
) -> ResolvedRequest:
    """Resolve the request configuration for the app and make sure its partition exists.

    Nothing is written to the store if the configuration is incomplete.

    Args:
        app: The app name
        app_layer: The app configuration
        global_layer: The global configuration
        domains: The domains of the app, in enumeration order
        store: The partition store of the app
        digest: The digest function used to derive the partition key

    Returns:
        The ResolvedRequest with config, digest and partition handle

    Raises:
        MissingContactEmail: If no acme-email is configured
        PartitionWriteError: If the partition can not be written
    """
    config = build_request_config(app, app_layer, global_layer, domains)
    text = config.canonical_text()
    key = digest(text.encode("utf-8"))
    partition = store.put(key, text)
    logger.debug(f"Resolved request for app {app} to partition {partition.location}")
    return ResolvedRequest(config=config, digest=key, partition=partition)
