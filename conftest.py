"""pytest configuration file for Certsteward project."""
import datetime
import pathlib
import typing

import pytest
import yaml
from cryptography import x509
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

# a fixed point in time used as "now" by the tests
NOW = 1760000000
DAY = 86400


@pytest.fixture(scope="session")
def private_key():
    """Generate and return an EC private key, shared by the whole session."""
    return ec.generate_private_key(ec.SECP384R1(), default_backend())


@pytest.fixture(scope="session")
def make_certificate(private_key) -> typing.Callable[..., bytes]:
    """Return a function which creates a selfsigned PEM certificate expiring at NOW + days."""

    def _make_certificate(days: int = 90, cn: str = "example.com") -> bytes:
        name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, cn)])
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(private_key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(datetime.datetime.fromtimestamp(NOW - DAY, tz=datetime.timezone.utc))
            .not_valid_after(datetime.datetime.fromtimestamp(NOW + days * DAY, tz=datetime.timezone.utc))
            .add_extension(x509.SubjectAlternativeName([x509.DNSName(cn)]), critical=False)
            .sign(private_key, hashes.SHA256(), default_backend())
        )
        return cert.public_bytes(serialization.Encoding.PEM)

    return _make_certificate


@pytest.fixture
def apps_dir(tmp_path_factory) -> pathlib.Path:
    """Return an empty apps dir."""
    return tmp_path_factory.mktemp("apps")


@pytest.fixture
def make_app(apps_dir) -> typing.Callable[..., pathlib.Path]:
    """Return a function which creates an app directory below apps_dir.

    ``installed`` is written as the installed certificate (with a key, so TLS is enabled),
    ``issued`` is written as the certificate of the current partition.
    """

    def _make_app(
        name: str,
        domains: typing.Optional[typing.List[str]] = None,
        installed: typing.Optional[bytes] = None,
        issued: typing.Optional[bytes] = None,
        config: typing.Optional[typing.Dict[str, typing.Any]] = None,
    ) -> pathlib.Path:
        appdir = apps_dir / name
        appdir.mkdir()
        if domains is not None:
            (appdir / "domains").write_text("\n".join(domains) + "\n")
        if installed is not None:
            (appdir / "tls").mkdir()
            (appdir / "tls" / "server.crt").write_bytes(installed)
            (appdir / "tls" / "server.key").write_text("not a real key\n")
        if issued is not None:
            partition = appdir / "certsteward" / "0123abcd"
            partition.mkdir(parents=True)
            (partition / "cert.pem").write_bytes(issued)
            (appdir / "certsteward" / "current").symlink_to("0123abcd")
        if config is not None:
            with (appdir / "certsteward.yml").open("w") as f:
                yaml.dump(config, f)
        return appdir

    return _make_app


@pytest.fixture
def certsteward_configfile(tmp_path_factory, apps_dir):
    """Write a certsteward.yml config file."""
    confpath = tmp_path_factory.mktemp("conf") / "certsteward.yml"
    conf = {
        "acme-email": "certstewardtest@invalid",
        "acme-client-command": "true",
        "apps-dir": str(apps_dir),
        "periodic-sleep-minutes": 0,
        "pid-dir": str(tmp_path_factory.mktemp("pid")),
    }
    with open(confpath, "w") as f:
        yaml.dump(conf, f)
    return confpath


@pytest.fixture
def certsteward_broken_yaml_configfile(tmp_path_factory):
    """Write a certsteward.yml file with invalid yml."""
    confpath = tmp_path_factory.mktemp("conf") / "certsteward.yml"
    with open(confpath, "w") as f:
        f.write("foo:\nbar")
    return confpath


@pytest.fixture
def deny_is_file(monkeypatch) -> typing.Callable[[pathlib.Path], None]:
    """Return a function which makes Path.is_file() fail with EACCES below a directory."""
    real_is_file = pathlib.Path.is_file

    def _deny_is_file(directory: pathlib.Path) -> None:
        def is_file(self, *args, **kwargs):
            if self.parent == directory:
                raise PermissionError(13, "Permission denied", str(self))
            return real_is_file(self, *args, **kwargs)

        monkeypatch.setattr(pathlib.Path, "is_file", is_file)

    return _deny_is_file
