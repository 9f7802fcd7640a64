#!/usr/bin/env python
"""Certsteward module.

Keeps track of which apps run certificates issued by certsteward, when those
certificates expire and when they are due for renewal, and renews them by
calling an external ACME client.
"""
import argparse
import datetime
import logging
import logging.handlers
import os
import random
import shlex
import subprocess
import sys
import time
import typing
from pathlib import Path
from pprint import pprint

import pydantic
import yaml
from pid import PidFile  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import AcmeClientError, CertstewardError, MissingContactEmail
from .identity import DigestFunction, ManagedStatus, is_managed, sha256_digest
from .request import ResolvedRequest, check_email, resolve
from .stores import (
    ApplicationRegistry,
    CertificateStore,
    FilesystemCertificateStore,
    FilesystemRegistry,
)
from .timing import (
    Duration,
    RenewalWindow,
    compute_window,
    read_expiry,
    resolve_grace_period,
)

logger = logging.getLogger(f"certsteward.{__name__}")
__version__ = "0.1.0"


class Config(BaseSettings):
    """The Certsteward settings class.

    Defines default settings, supports env overrides.
    """

    model_config = SettingsConfigDict(env_prefix="certsteward_")

    acme_client_command: str = "/usr/local/bin/acme-client"
    acme_email: typing.Optional[str] = None
    acme_server: typing.Optional[str] = None
    apps_dir: Path = Path("/var/lib/certsteward/apps")
    config_file: typing.Optional[Path] = None
    grace_period: typing.Optional[int] = None
    log_level: typing.Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    periodic_sleep_minutes: int = 60
    pid_dir: Path = Path("/tmp")  # noqa: S108
    post_renew_hooks: typing.List[str] = []
    post_renew_hooks_dir: typing.Optional[Path] = None
    post_renew_hooks_dir_runner: typing.Optional[str] = None
    syslog_facility: typing.Optional[str] = None
    syslog_socket: typing.Optional[str] = None
    tos_digest: typing.Optional[str] = None


class ReportRow(typing.NamedTuple):
    """One line of the renewal status report."""

    app: str
    expiry: int
    grace_period: int
    time_to_expiry: Duration
    time_to_renewal: Duration

    def as_line(self) -> str:
        """Return the row as tab separated fields, all times in seconds."""
        return "\t".join(
            [
                self.app,
                str(self.expiry),
                str(self.grace_period),
                str(self.time_to_expiry.seconds),
                str(self.time_to_renewal.seconds),
            ]
        )

    def describe(self) -> str:
        """Return the row as a sentence for humans."""
        if self.time_to_expiry.overdue:
            expiry = f"expired {self.time_to_expiry}"
        else:
            expiry = f"expires in {self.time_to_expiry}"
        if self.time_to_renewal.overdue:
            renewal = f"renewal was due {self.time_to_renewal}"
        elif not self.time_to_renewal.seconds:
            renewal = "renewal due now"
        else:
            renewal = f"renewal due in {self.time_to_renewal}"
        return f"App {self.app} certificate {expiry}, {renewal}"


class Certsteward:
    """The Certsteward class."""

    # save version as a class attribute
    __version__ = __version__

    def __init__(
        self,
        userconfig: typing.Optional[typing.Dict[str, typing.Any]] = None,
        registry: typing.Optional[ApplicationRegistry] = None,
        certificates: typing.Optional[CertificateStore] = None,
        digest: DigestFunction = sha256_digest,
        clock: typing.Callable[[], float] = time.time,
    ) -> None:
        """Merge userconfig with defaults, configure logging and the collaborators.

        Args:
            userconfig: A dict of configuration to merge with default config
            registry: The application registry to use instead of the filesystem one
            certificates: The certificate store to use instead of the filesystem one
            digest: The digest function used for certificate identity and partition keys
            clock: A function returning the current time in epoch seconds

        Returns:
            None
        """
        if userconfig is None:
            userconfig = {}
        # convert dashes to underscores in config keys
        self.conf = Config(**{key.replace("-", "_"): value for key, value in userconfig.items()})

        # define the log format used for stdout depending on the requested loglevel
        if self.conf.log_level == "DEBUG":
            console_logformat = (
                "%(asctime)s certsteward %(levelname)s %(module)s.%(funcName)s():%(lineno)i:  %(message)s"
            )
        else:
            console_logformat = "%(asctime)s certsteward %(levelname)s %(message)s"

        # configure the log format used for console
        logging.basicConfig(
            level=getattr(logging, self.conf.log_level),
            format=console_logformat,
            datefmt="%Y-%m-%d %H:%M:%S %z",
        )

        # connect to syslog?
        if self.conf.syslog_socket and self.conf.syslog_facility:
            facility: int = getattr(logging.handlers.SysLogHandler, self.conf.syslog_facility)
            syslog_handler = logging.handlers.SysLogHandler(address=self.conf.syslog_socket, facility=facility)
            syslog_format = logging.Formatter("certsteward: %(message)s")
            syslog_handler.setFormatter(syslog_format)
            logging.getLogger("certsteward").addHandler(syslog_handler)
            # usually SysLogHandler is lazy and doesn't connect the socket until
            # a message has to be sent. Call _connect_unixsocket() now to force
            # an exception now if we can't connect to the socket
            syslog_handler._connect_unixsocket(self.conf.syslog_socket)  # type: ignore
            logger.debug(
                f"Connected to syslog-socket {self.conf.syslog_socket}, logging to facility {self.conf.syslog_facility}"
            )
        else:
            logger.debug("Not configuring syslog")

        self.registry = registry or FilesystemRegistry(self.conf.apps_dir)
        self.certificates = certificates or FilesystemCertificateStore(self.conf.apps_dir)
        self.digest = digest
        self.clock = clock

        # apps which got a new certificate during this run
        self.renewed: typing.List[str] = []

        # this is set to True if an error occurs
        self.error: bool = False

        logger.debug(f"Certsteward {__version__} configured OK - running with config: {self.conf}")

    @property
    def global_layer(self) -> typing.Dict[str, typing.Any]:
        """The global configuration layer, keyed like the app config files."""
        return {
            "acme-email": self.conf.acme_email,
            "acme-server": self.conf.acme_server,
            "tos-digest": self.conf.tos_digest,
            "grace-period": self.conf.grace_period,
        }

    def now(self) -> int:
        """Return the current time in epoch seconds."""
        return int(self.clock())

    # STATUS METHODS

    def is_managed(self, app: str) -> typing.Tuple[bool, ManagedStatus]:
        """Check if the app runs the certificate certsteward issued for it."""
        return is_managed(app, self.registry, self.certificates, self.digest)

    def get_window(self, app: str) -> RenewalWindow:
        """Compute the renewal window of the certificate installed for the app.

        Args:
            app: The app name

        Returns:
            The RenewalWindow

        Raises:
            CertificateMissing: If no certificate is installed
            CertificateParseError: If the installed certificate can not be parsed
            ConfigurationUnreadable: If the app configuration can not be read
        """
        expiry = read_expiry(self.certificates.read_installed_certificate(app))
        grace_period = resolve_grace_period(self.registry.read_app_config(app), self.global_layer)
        return compute_window(expiry=expiry, grace_period=grace_period, now=self.now())

    def scan(self) -> typing.Iterator[ReportRow]:
        """Yield a report row for each managed app.

        Apps which are not managed are skipped. Errors are logged and the app
        is skipped, so one broken app never hides the rest.
        """
        for app in self.registry.list_applications():
            try:
                managed, status = self.is_managed(app)
                if not managed:
                    logger.debug(f"Skipping app {app}: {status.value}")
                    continue
                window = self.get_window(app)
            except CertstewardError as E:
                logger.warning(f"Skipping app {app}: {E}")
                continue
            yield ReportRow(
                app=app,
                expiry=window.expiry,
                grace_period=window.grace_period,
                time_to_expiry=window.time_to_expiry,
                time_to_renewal=window.time_to_renewal,
            )

    # ISSUANCE METHODS

    def resolve(self, app: str) -> ResolvedRequest:
        """Resolve the request configuration and partition for the app.

        Raises:
            MissingContactEmail: If no acme-email is configured
            ConfigurationUnreadable: If the app configuration can not be read
            PartitionWriteError: If the partition can not be written
        """
        return resolve(
            app=app,
            app_layer=self.registry.read_app_config(app),
            global_layer=self.global_layer,
            domains=self.registry.list_domains(app),
            store=self.certificates.partition_store(app),
            digest=self.digest,
        )

    def get_acme_client_command(self, resolved: ResolvedRequest) -> typing.List[str]:
        """Put the ACME client command together.

        Start with ``self.conf.acme_client_command``, then the request arguments,
        then the partition location.

        Args:
            resolved: The resolved request

        Returns:
            The command as a list
        """
        command = shlex.split(self.conf.acme_client_command)
        command += resolved.config.args()
        command += ["--path", resolved.partition.location]
        logger.debug(f"Returning ACME client command: {command}")
        return command

    def run_acme_client(self, command: typing.List[str], app: str) -> None:
        """Call the ACME client and check the exit code.

        Args:
            command: A list of ACME client command elements
            app: The app the certificate is for, passed as env CERTSTEWARD_APP

        Returns:
            None

        Raises:
            AcmeClientError: If the command can not be run or returns non-zero
        """
        env = os.environ.copy()
        env.update({"CERTSTEWARD_APP": app})
        logger.debug(f"Running ACME client command: {command}")
        try:
            p = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=subprocess.PIPE, env=env)  # noqa: S603
        except OSError as E:
            raise AcmeClientError(f"Unable to run ACME client command {command}: {E}") from E
        stdout, stderr = p.communicate()
        if p.returncode != 0:
            logger.error("ACME client stderr:")
            for line in stderr.strip().decode("utf-8", errors="replace").split("\n"):
                logger.error(line)
            raise AcmeClientError(f"ACME client command returned non-zero exit code {p.returncode}")
        logger.debug(f"ACME client returned exit code 0 with {len(stdout)} bytes output")

    def renew(self, app: str) -> bool:
        """Get a new certificate for the app, regardless of the state of the current one.

        Resolves the partition, calls the ACME client to issue into it, and makes
        the partition current so its certificate is considered the issued one.

        Args:
            app: The app name

        Returns:
            True if a new certificate was issued, False otherwise
        """
        logger.info(f"Getting new certificate for app {app} ...")
        try:
            resolved = self.resolve(app)
            self.run_acme_client(self.get_acme_client_command(resolved), app)
            self.certificates.partition_store(app).activate(resolved.digest)
        except CertstewardError as E:
            logger.error(f"Failed getting a new certificate for app {app}: {E}")
            self.error = True
            return False

        logger.info(f"Success! Got new certificate for app {app} in partition {resolved.partition.location}")
        self.renewed.append(app)
        return True

    def auto_renew(self) -> bool:
        """Renew the certificates of all managed apps which are due for renewal.

        Returns:
            False if one or more renewals failed, True otherwise
        """
        success = True
        for row in list(self.scan()):
            if not row.time_to_renewal.overdue:
                logger.debug(row.describe())
                continue
            logger.info(row.describe())
            if not self.renew(row.app):
                success = False
        return success

    # POST RENEW HOOK METHODS

    def run_post_renew_hooks(self) -> bool:
        """Run configured post-renew-hooks and executables in post-renew-hooks-dir.

        Returns:
            True if all hooks returned exit code 0, False otherwise
        """
        success = True
        if not self.conf.post_renew_hooks:
            logger.debug("No post-renew-hooks found in config")
        else:
            for hook in self.conf.post_renew_hooks:
                success &= self.run_post_renew_hook(shlex.split(hook), self.renewed)

        if not self.conf.post_renew_hooks_dir:
            logger.debug("No post-renew-hooks-dir found in config")
        else:
            # loop over files in the hooks dir, skip directories and files not executable by the current user
            for hook in sorted(self.conf.post_renew_hooks_dir.iterdir()):
                if not hook.is_file() or not os.access(hook, os.X_OK):
                    continue
                if self.conf.post_renew_hooks_dir_runner:
                    # use the configured hook runner
                    command = [*shlex.split(self.conf.post_renew_hooks_dir_runner), str(hook)]
                else:
                    command = [str(hook)]
                success &= self.run_post_renew_hook(command, self.renewed)

        return success

    @staticmethod
    def run_post_renew_hook(hook: typing.List[str], apps: typing.List[str]) -> bool:
        """Run a specific post renew hook.

        Args:
            hook: A list of string components of the command and arguments
            apps: The apps which got new certificates, passed as env CERTSTEWARD_APPS

        Returns:
            True if exit code was 0, False otherwise
        """
        logger.info(f"Running post renew hook: {hook}")
        env = os.environ.copy()
        env.update({"CERTSTEWARD_APPS": ",".join(apps)})
        start = datetime.datetime.now()
        try:
            p = subprocess.Popen(hook, env=env)  # noqa: S603
        except OSError as E:
            logger.error(f"Unable to run post_renew_hook {hook}: {E}")
            return False
        exitcode = p.wait()
        runtime = datetime.datetime.now() - start
        if exitcode != 0:
            logger.error(
                f"Got exit code {exitcode} when running post_renew_hook {hook} - hook runtime was {runtime}"
            )
            return False
        logger.info(f"Post renew hook {hook} ended with exit code 0, good. Hook runtime was {runtime}")
        return True

    # COMMAND METHODS

    def show_status_command(self) -> None:
        """The ``show status`` subcommand method, outputs the report as tab separated lines."""
        for row in self.scan():
            logger.debug(row.describe())
            print(row.as_line())  # noqa: T201

    def show_active_command(self, app: str) -> None:
        """The ``show active`` subcommand method, outputs if the app is managed and why."""
        managed, status = self.is_managed(app)
        logger.info(f"App {app} is {'' if managed else 'not '}managed: {status.value}")
        print(f"{app}\t{str(managed).lower()}\t{status.name.lower()}")  # noqa: T201

    def show_partition_command(self, app: str) -> None:
        """The ``show partition`` subcommand method, outputs the digest and location of the partition."""
        try:
            resolved = self.resolve(app)
        except CertstewardError as E:
            logger.error(str(E))
            self.error = True
            return
        logger.info(f"Request config for app {app}: {resolved.config.canonical_text()}")
        print(f"{resolved.digest}\t{resolved.partition.location}")  # noqa: T201

    def check_email_command(self, app: str) -> None:
        """The ``check email`` subcommand method, sets self.error if no contact email is configured."""
        try:
            app_layer = self.registry.read_app_config(app)
        except CertstewardError as E:
            logger.error(str(E))
            self.error = True
            return
        if not check_email(app_layer, self.global_layer):
            logger.error(str(MissingContactEmail(app)))
            self.error = True
            return
        logger.info(f"Contact email is configured for app {app}, good.")

    def check_certificates_command(self) -> None:
        """The ``check certificates`` subcommand method, sets self.error if any certificate is due for renewal."""
        for row in self.scan():
            if row.time_to_renewal.overdue:
                logger.warning(row.describe())
                self.error = True
            else:
                logger.info(row.describe())

    def get_certificate_command(self, app: str) -> None:
        """The ``get certificate`` subcommand method."""
        self.renew(app)

    def periodic_command(self) -> None:
        """The ``periodic`` command method, sleeps for a random period and then renews as needed.

        Meant to be called from cron or similar.
        """
        if self.conf.periodic_sleep_minutes:
            sleep = random.randint(0, self.conf.periodic_sleep_minutes)  # noqa: S311
            logger.debug(f"Sleeping for {sleep} minutes before doing periodic...")
            time.sleep(sleep * 60)
        if not self.auto_renew():
            logger.error("One or more certificates could not be renewed")
            self.error = True

    def grind(self, args: argparse.Namespace) -> None:
        """Call the method for the requested command, run hooks if needed, and exit."""
        logger.debug(f"Certsteward {__version__} running")
        method = getattr(self, args.method)
        if hasattr(args, "app"):
            method(args.app)
        else:
            method()

        # do we need to run post-renew hooks?
        if self.renewed:
            logger.info(f"{len(self.renewed)} certificate(s) renewed, running post renew hooks...")
            if not self.run_post_renew_hooks():
                self.error = True

        if self.error:
            logger.error("One or more errors were encountered, exit code 1")
            sys.exit(1)

        logger.debug("All done, exiting cleanly")
        sys.exit(0)


def get_parser() -> argparse.ArgumentParser:
    """Create and return the argparse object."""
    parser = argparse.ArgumentParser(
        description=f"Certsteward version {__version__}. Tracks and renews ACME certificates for a fleet of apps."
    )
    # add topmost subparser for main command
    subparsers = parser.add_subparsers(help="Command (required)", dest="command", required=True)

    # "check" command
    check_parser = subparsers.add_parser(
        "check",
        help='Use the "check" command to check certificates and configuration. Returns exit code 0 if all is well, and 1 if something needs attention.',
    )
    check_subparsers = check_parser.add_subparsers(
        help="Specify what to check using one of the available check sub-commands.",
        dest="subcommand",
        required=True,
    )

    # "check certificates" subcommand
    check_certificates_parser = check_subparsers.add_parser(
        "certificates",
        help="Check all managed certificates. Returns exit code 1 if any certificate is due for renewal.",
    )
    check_certificates_parser.set_defaults(method="check_certificates_command")

    # "check email" subcommand
    check_email_parser = check_subparsers.add_parser(
        "email",
        help="Check that a contact email is configured for the app. Returns exit code 1 if not.",
    )
    check_email_parser.set_defaults(method="check_email_command")
    check_email_parser.add_argument("app", help="The app name")

    # "get" command
    get_parser = subparsers.add_parser("get", help='Use the "get" command to get certificates')
    get_subparsers = get_parser.add_subparsers(
        help="Specify what to get using one of the available get sub-commands",
        dest="subcommand",
        required=True,
    )

    # "get certificate" subcommand
    get_cert_parser = get_subparsers.add_parser(
        "certificate",
        help="Get a new certificate for the app, regardless of the state of the current one. Rarely needed, use 'periodic' command instead.",
    )
    get_cert_parser.set_defaults(method="get_certificate_command")
    get_cert_parser.add_argument("app", help="The app name")

    # "help" command
    subparsers.add_parser("help", help='The "help" command just outputs the usage help')

    # "periodic" command
    periodic_parser = subparsers.add_parser(
        "periodic",
        help='The "periodic" command renews all managed certificates which are due for renewal. Meant to be run from cron or similar daily.',
    )
    periodic_parser.set_defaults(method="periodic_command")

    # "show" command
    show_parser = subparsers.add_parser(
        "show",
        help='Use the "show" command to show renewal status, partitions or configuration.',
    )
    show_subparsers = show_parser.add_subparsers(
        help="Specify what to show using one of the available show sub-commands",
        dest="subcommand",
        required=True,
    )

    # "show active" subcommand
    show_active_parser = show_subparsers.add_parser(
        "active", help="Tell certsteward to output whether the app runs a certificate issued by certsteward."
    )
    show_active_parser.set_defaults(method="show_active_command")
    show_active_parser.add_argument("app", help="The app name")

    # "show configuration" subcommand
    show_subparsers.add_parser("configuration", help="Tell certsteward to output the current configuration")

    # "show partition" subcommand
    show_partition_parser = show_subparsers.add_parser(
        "partition", help="Tell certsteward to output the partition digest and location for the app."
    )
    show_partition_parser.set_defaults(method="show_partition_command")
    show_partition_parser.add_argument("app", help="The app name")

    # "show status" subcommand
    show_status_parser = show_subparsers.add_parser(
        "status",
        help="Tell certsteward to output one tab separated line per managed app: app, expiry, grace period, time to expiry, time to renewal.",
    )
    show_status_parser.set_defaults(method="show_status_command")

    # "version" command
    subparsers.add_parser("version", help='The "version" command just outputs the version of Certsteward')

    # optional arguments
    parser.add_argument(
        "--acme-client-command",
        dest="acme-client-command",
        help="The ACME client command to call. The request arguments and --path <partition> are appended.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--acme-email",
        dest="acme-email",
        help="The contact email for the ACME account. Can be overridden per app.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--acme-server",
        dest="acme-server",
        help="The ACME server to use, 'default', 'staging' or a directory URL. Can be overridden per app.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--apps-dir",
        dest="apps-dir",
        help="The directory containing one directory per app.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-c",
        "--config-file",
        dest="config-file",
        help="The path to the certsteward.yml config file to use",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_const",
        dest="log-level",
        const="DEBUG",
        help="Debug mode. Equal to setting --log-level=DEBUG.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-g",
        "--grace-period",
        dest="grace-period",
        type=int,
        help="A certificate is renewed when it has less than this many seconds of lifetime left. Default: 2592000 (30 days)",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-l",
        "--log-level",
        dest="log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level. One of DEBUG, INFO, WARNING, ERROR, CRITICAL. Defaults to INFO.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--now",
        dest="periodic-sleep-minutes",
        action="store_const",
        const=0,
        help="Run periodic command without delay. Equal to setting --periodic-sleep-minutes 0.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--periodic-sleep-minutes",
        dest="periodic-sleep-minutes",
        type=int,
        help="Sleep for a random number of minutes between 0 and this number before doing anything when the periodic command is used. Set to 0 to disable sleeping.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-p",
        "--pid-dir",
        dest="pid-dir",
        help="The directory to store the PID file in",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--post-renew-hooks",
        action="append",
        dest="post-renew-hooks",
        help="A command to run after one or more certificates are renewed. Can be specified multiple times.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--post-renew-hooks-dir",
        dest="post-renew-hooks-dir",
        help="Path to a folder containing executables to run after one or more certificates are renewed.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--post-renew-hooks-dir-runner",
        dest="post-renew-hooks-dir-runner",
        help="Path to an executable like sudo to be used to run each of the executables in the post renew hooks dir.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_const",
        dest="log-level",
        const="WARNING",
        help="Quiet mode. No output at all if there is nothing to do, and no errors are encountered. Equal to setting --log-level=WARNING.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-s",
        "--staging",
        dest="acme-server",
        action="store_const",
        const="staging",
        help="Staging mode. Equal to setting --acme-server staging.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--syslog-facility",
        dest="syslog-facility",
        help="The syslog facility to use. Set this and syslog-socket to enable logging to syslog.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--syslog-socket",
        dest="syslog-socket",
        help="The syslog socket to connect to. Set this and syslog-facility to enable logging to syslog.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "--tos-digest",
        dest="tos-digest",
        help="The sha256 digest of the ACME terms of service to agree to.",
        default=argparse.SUPPRESS,
    )
    parser.add_argument(
        "-v",
        "--version",
        dest="version",
        action="store_true",
        help="Show version and exit.",
        default=argparse.SUPPRESS,
    )
    return parser


def parse_args(
    mockargs: typing.Optional[typing.List[str]] = None,
) -> typing.Tuple[argparse.ArgumentParser, argparse.Namespace]:
    """Create an argparse monster and parse mockargs or sys.argv[1:]."""
    parser = get_parser()
    args = parser.parse_args(mockargs if mockargs else sys.argv[1:])
    return parser, args


def main(mockargs: typing.Optional[typing.List[str]] = None) -> None:
    """Initialise script and ``Certsteward()`` object, then call ``certsteward.grind()``.

    Parse command-line arguments, read config file if needed, configure logging,
    and then call ``certsteward.grind()`` method inside a pid file lock.
    """
    # get parser and parse args
    parser, args = parse_args(mockargs)

    # handle a couple of special cases before reading config
    if args.command == "version" or hasattr(args, "version"):
        print(f"Certsteward version {__version__}")  # noqa: T201
        sys.exit(0)
    if args.command == "help":
        parser.print_help()
        sys.exit(0)

    # read and parse the config file
    if hasattr(args, "config-file"):
        with Path(getattr(args, "config-file")).open() as f:
            try:
                config = yaml.load(f, Loader=yaml.SafeLoader) or {}
            except Exception:
                logger.exception(f"Unable to parse YAML config file {getattr(args, 'config-file')} - bailing out.")
                sys.exit(1)
    else:
        # we have no config file
        config = {}

    # command line arguments override config file settings
    config.update(vars(args))

    # remove argparse internals from config
    for key in ["command", "subcommand", "method", "app"]:
        if key in config:
            del config[key]

    try:
        certsteward = Certsteward(userconfig=config)
    except pydantic.ValidationError as E:
        logger.error(f"Invalid configuration: {E}")
        sys.exit(1)

    # if the command is "show configuration" just output certsteward.conf and exit now
    if args.command == "show" and args.subcommand == "configuration":
        logger.info("Current certsteward configuration:")
        pprint(certsteward.conf.model_dump())  # noqa: T203
        sys.exit(0)

    with PidFile("certsteward", piddir=str(certsteward.conf.pid_dir)):
        certsteward.grind(args)


def init() -> None:
    """This is here just as a testable way of calling main()."""
    if __name__ == "__main__":
        main()


init()
