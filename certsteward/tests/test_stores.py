"""stores.py tests.

Runs with pytest.
"""
import os

import pytest

from certsteward.errors import ConfigurationUnreadable, PartitionWriteError
from certsteward.stores import (
    FilesystemCertificateStore,
    FilesystemPartitionStore,
    FilesystemRegistry,
    MemoryPartitionStore,
)


def test_filesystem_partition_store(tmp_path):
    """Test put(), get(), keys(), activate() and current()."""
    store = FilesystemPartitionStore(tmp_path)
    assert store.current() is None
    assert store.read_certificate() is None
    handle = store.put("abc", "--server foo")
    assert handle.key == "abc"
    assert handle.location == str(tmp_path / "abc")
    assert store.get("abc") == "--server foo"
    assert store.get("nope") is None
    store.put("def", "--server bar")
    store.activate("abc")
    assert store.current() == "abc"
    store.activate("def")
    assert store.current() == "def"
    # the current link is not a partition
    assert store.keys() == ["abc", "def"]
    # no temp files are left behind
    assert sorted(os.listdir(tmp_path / "abc")) == ["config"]


def test_filesystem_partition_store_certificate(tmp_path):
    """read_certificate() reads the certificate of the current partition."""
    store = FilesystemPartitionStore(tmp_path)
    store.put("abc", "config")
    store.activate("abc")
    assert store.read_certificate() is None
    (tmp_path / "abc" / "cert.pem").write_bytes(b"certificate")
    assert store.read_certificate() == b"certificate"
    assert store.read_certificate("abc") == b"certificate"


def test_filesystem_partition_store_activate_missing(tmp_path):
    """Activating a partition which does not exist fails."""
    store = FilesystemPartitionStore(tmp_path)
    with pytest.raises(PartitionWriteError, match="does not exist"):
        store.activate("abc")


def test_filesystem_partition_store_write_error(tmp_path):
    """Filesystem errors are reported as PartitionWriteError."""
    (tmp_path / "file").write_text("in the way")
    store = FilesystemPartitionStore(tmp_path / "file")
    with pytest.raises(PartitionWriteError, match="Unable to write partition"):
        store.put("abc", "config")


def test_memory_partition_store():
    """Test the in-memory partition store."""
    store = MemoryPartitionStore()
    handle = store.put("abc", "config")
    assert handle.location == "memory:abc"
    assert store.get("abc") == "config"
    assert store.keys() == ["abc"]
    with pytest.raises(PartitionWriteError):
        store.activate("nope")
    store.activate("abc")
    assert store.current() == "abc"
    assert store.read_certificate() is None
    store.certificates["abc"] = b"certificate"
    assert store.read_certificate() == b"certificate"


def test_registry(apps_dir, make_app, make_certificate):
    """Test the filesystem application registry."""
    make_app("shop", domains=["shop.example.com", "# old name", "", "  www.shop.example.com  "])
    make_app("blog")
    make_app("api", installed=make_certificate())
    (apps_dir / ".hidden").mkdir()
    (apps_dir / "notanapp").write_text("")
    registry = FilesystemRegistry(apps_dir)
    assert registry.list_applications() == ["api", "blog", "shop"]
    assert registry.list_domains("shop") == ["shop.example.com", "www.shop.example.com"]
    assert registry.list_domains("blog") == []
    assert registry.is_tls_enabled("api") is True
    assert registry.is_tls_enabled("blog") is False


def test_registry_no_apps_dir(tmp_path, caplog):
    """A missing apps dir has no apps."""
    assert FilesystemRegistry(tmp_path / "nope").list_applications() == []
    assert "Apps dir" in caplog.text


def test_registry_tls_needs_key(apps_dir, make_app, make_certificate):
    """TLS is only enabled with both certificate and key."""
    appdir = make_app("api", installed=make_certificate())
    (appdir / "tls" / "server.key").unlink()
    assert FilesystemRegistry(apps_dir).is_tls_enabled("api") is False


def test_registry_tls_permission_denied(apps_dir, make_app, make_certificate, deny_is_file):
    """A tls dir which can not be inspected is a configuration error."""
    appdir = make_app("api", installed=make_certificate())
    deny_is_file(appdir / "tls")
    with pytest.raises(ConfigurationUnreadable, match="Unable to check TLS files for app api"):
        FilesystemRegistry(apps_dir).is_tls_enabled("api")


def test_registry_app_config(apps_dir, make_app):
    """Test reading the app configuration layer."""
    make_app("shop", config={"acme-email": "shop@example.com", "grace-period": 86400})
    make_app("blog")
    registry = FilesystemRegistry(apps_dir)
    assert registry.read_app_config("shop") == {"acme-email": "shop@example.com", "grace-period": 86400}
    assert registry.read_app_config("blog") == {}


@pytest.mark.parametrize("content", ["foo:\nbar", "- a list\n- of things\n"])
def test_registry_broken_app_config(apps_dir, make_app, content):
    """Broken app configuration raises ConfigurationUnreadable."""
    appdir = make_app("shop")
    (appdir / "certsteward.yml").write_text(content)
    with pytest.raises(ConfigurationUnreadable):
        FilesystemRegistry(apps_dir).read_app_config("shop")


def test_certificate_store(apps_dir, make_app, make_certificate):
    """Test the filesystem certificate store."""
    installed = make_certificate()
    issued = make_certificate()
    make_app("shop", installed=installed, issued=issued)
    make_app("blog")
    store = FilesystemCertificateStore(apps_dir)
    assert store.read_installed_certificate("shop") == installed
    assert store.read_issuance_certificate("shop") == issued
    assert store.read_installed_certificate("blog") is None
    assert store.read_issuance_certificate("blog") is None
    assert store.partition_store("shop").root == apps_dir / "shop" / "certsteward"
