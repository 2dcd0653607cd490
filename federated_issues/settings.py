"""Run settings for a federation run.

Each setting is resolved from, in order of precedence: an explicit value
(CLI option), the GitHub Actions input environment variable
(``INPUT_REQUIRED-LABEL`` and so on), the YAML config, then the default.
Empty values count as unset.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any

import structlog

from federated_issues.config import Config
from federated_issues.errors import ConfigurationError, MissingCredentialError
from federated_issues.templating import BODY_PLACEHOLDER, TITLE_PLACEHOLDER

logger = structlog.get_logger()

DEFAULT_CONFIG_PATH = ".github/federated-issue-action-config.json"
DEFAULT_REQUIRED_LABEL = "federated"

_TRUE_VALUES = {"true", "yes", "1", "on"}
_FALSE_VALUES = {"false", "no", "0", "off"}


def parse_bool(value: Any, name: str) -> bool:
    """Parse a boolean setting given as a bool or a string."""
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: '{value}'")


# Input names used by existing workflow files
INPUT_ALIASES = {
    "child-issue-title-template": ["child-issue-title"],
    "child-issue-body-template": ["child-issue-body"],
}


def _input_env_names(name: str) -> list[str]:
    env_names = []
    for input_name in [name, *INPUT_ALIASES.get(name, [])]:
        upper = input_name.upper()
        env_names.extend([f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}"])
    return env_names


def _lookup(name: str, config: Config | None, environ: Mapping[str, str]) -> Any:
    for env_name in _input_env_names(name):
        value = environ.get(env_name)
        if value not in (None, ""):
            logger.debug("Setting read from action input", name=name, env=env_name)
            return value
    if config is not None:
        value = config.get(name)
        if value not in (None, ""):
            logger.debug("Setting read from config", name=name)
            return value
    return None


@dataclass
class Settings:
    """Settings that shape a federation run."""

    required_label: str = DEFAULT_REQUIRED_LABEL
    config_path: str = DEFAULT_CONFIG_PATH
    notify_missing_permissions: bool = True
    close_issues_on_parent_close: bool = True
    child_issue_title_template: str = TITLE_PLACEHOLDER
    child_issue_body_template: str = BODY_PLACEHOLDER
    restrict_to_selected_repositories: bool = True

    @staticmethod
    def setting_name(field_name: str) -> str:
        """External name of a field, e.g. ``required-label``."""
        return field_name.replace("_", "-")

    @classmethod
    def load(
        cls,
        config: Config | None = None,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> "Settings":
        """Resolve settings from overrides, action inputs, config and defaults.

        Args:
            config: YAML config to read defaults from
            environ: Environment to read action inputs from (defaults to os.environ)
            **overrides: Explicit values by field name; None means unset

        Raises:
            ConfigurationError: A boolean setting has an unrecognized value.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for f in fields(cls):
            explicit = overrides.get(f.name)
            value = explicit if explicit not in (None, "") else _lookup(cls.setting_name(f.name), config, environ)
            if value is None:
                continue
            if f.type is bool:
                value = parse_bool(value, cls.setting_name(f.name))
            values[f.name] = value if isinstance(value, bool) else str(value)

        settings = cls(**values)
        logger.debug("Settings resolved", **{f.name: getattr(settings, f.name) for f in fields(settings)})
        return settings


def resolve_token(
    token: str | None = None, config: Config | None = None, environ: Mapping[str, str] | None = None
) -> str:
    """Find the GitHub token.

    Raises:
        MissingCredentialError: No token is available.
    """
    environ = os.environ if environ is None else environ
    candidates = [
        token,
        environ.get("INPUT_GITHUB-TOKEN"),
        environ.get("INPUT_GITHUB_TOKEN"),
        environ.get("GITHUB_TOKEN"),
        config.get("github.token") if config is not None else None,
    ]
    for candidate in candidates:
        if candidate:
            return candidate
    raise MissingCredentialError(
        "GitHub token required. Pass --token, set GITHUB_TOKEN, or run:\n"
        "  federated-issues config set github.token <token>"
    )
