"""settings.py tests.

Runs with pytest.
"""
import pytest

from certsteward.settings import lookup


@pytest.mark.parametrize(
    "app_layer,global_layer,expected",
    [
        ({"acme-email": "app@example.com"}, {"acme-email": "ops@example.com"}, "app@example.com"),
        ({}, {"acme-email": "ops@example.com"}, "ops@example.com"),
        ({"acme-email": None}, {"acme-email": "ops@example.com"}, "ops@example.com"),
        ({"acme-email": ""}, {"acme-email": "ops@example.com"}, "ops@example.com"),
        ({}, {}, None),
        ({"acme-email": ""}, {"acme-email": None}, None),
    ],
)
def test_lookup(app_layer, global_layer, expected):
    """The app layer wins, unset and empty values fall through."""
    assert lookup("acme-email", app_layer, global_layer) == expected


def test_lookup_stringifies():
    """Values from YAML are returned as strings."""
    assert lookup("grace-period", {"grace-period": 86400}, {}) == "86400"
