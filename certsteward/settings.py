"""Layered configuration lookup.

Settings are looked up in the app layer first, then the global layer.
"""

import typing


def lookup(
    key: str,
    app_layer: typing.Mapping[str, typing.Any],
    global_layer: typing.Mapping[str, typing.Any],
) -> typing.Optional[str]:
    """Return the value of key from the app layer, falling back to the global layer.

    Empty values count as unset.

    Args:
        key: The setting name, like ``acme-email``
        app_layer: The app configuration
        global_layer: The global configuration

    Returns:
        The value as a string, or None if the key is unset in both layers
    """
    for layer in (app_layer, global_layer):
        value = layer.get(key)
        if value is not None and value != "":
            return str(value)
    return None
