"""`federated-issues config` commands.

Keys are the run settings (``required-label``, ``close-issues-on-parent-close``
and so on) plus the GitHub connection keys. Boolean settings are stored as
YAML booleans so that ``Settings.load`` reads them back unchanged.
"""

import sys
from dataclasses import fields
from typing import Any

from cyclopts import App

from federated_issues.config import get_config
from federated_issues.errors import ConfigurationError
from federated_issues.settings import Settings, parse_bool

config_app = App(name="config", help="Manage stored defaults for federation runs")

GITHUB_KEYS = {"github.token", "github.base-url"}
SECRET_KEYS = {"github.token"}
BOOLEAN_SETTINGS = {Settings.setting_name(f.name) for f in fields(Settings) if f.type is bool}
SETTING_KEYS = {Settings.setting_name(f.name) for f in fields(Settings)}


def _scope(global_: bool) -> str:
    return "global" if global_ else "local"


def _display(key: str, value: Any) -> str:
    if key in SECRET_KEYS and value:
        return "********"
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


def _check_key(key: str) -> None:
    if key not in SETTING_KEYS and key not in GITHUB_KEYS:
        known = ", ".join(sorted(SETTING_KEYS | GITHUB_KEYS))
        print(f"Unknown configuration key: {key}\nKnown keys: {known}", file=sys.stderr)
        sys.exit(1)


@config_app.command
def set(key: str, value: str, global_: bool = False) -> None:
    """Store a default.

    Args:
        key: Setting name, e.g. required-label or github.token
        value: Value to store (true/false for boolean settings)
        global_: Store in ~/.federated-issues instead of the current directory
    """
    _check_key(key)
    stored: Any = value
    if key in BOOLEAN_SETTINGS:
        try:
            stored = parse_bool(value, key)
        except ConfigurationError as e:
            print(str(e), file=sys.stderr)
            sys.exit(1)

    get_config(use_global=global_).set(key, stored)
    print(f"{key} = {_display(key, stored)} saved to {_scope(global_)} config")


@config_app.command
def unset(key: str, global_: bool = False) -> None:
    """Remove a stored default."""
    get_config(use_global=global_).unset(key)
    print(f"{key} removed from {_scope(global_)} config")


@config_app.command
def get(key: str, global_: bool = False) -> None:
    """Print a stored default."""
    value = get_config(use_global=global_).get(key)
    print(f"{key} is not set" if value is None else f"{key} = {_display(key, value)}")


@config_app.command(name="list")
def list_config(global_: bool = False) -> None:
    """Print every stored default."""
    stored = get_config(use_global=global_).list()
    if not stored:
        print(f"No {_scope(global_)} configuration settings")
        return

    for key, value in sorted(stored.items()):
        print(f"{key} = {_display(key, value)}")


@config_app.command
def show() -> None:
    """Print the settings a run would use, after action inputs and stored defaults are applied."""
    settings = Settings.load(get_config())
    defaults = Settings()
    for f in fields(settings):
        key = Settings.setting_name(f.name)
        value = getattr(settings, f.name)
        marker = " (default)" if value == getattr(defaults, f.name) else ""
        print(f"{key} = {_display(key, value)}{marker}")
