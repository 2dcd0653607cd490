"""Exceptions raised by the federation engine."""


class FederationError(Exception):
    """Base class for errors that abort a federation run."""


class ConfigurationError(FederationError):
    """The configuration document is missing, unparsable or invalid."""


class UnsupportedSelectorError(ConfigurationError):
    """A target repository selector uses a method this engine does not know."""


class MissingCredentialError(FederationError):
    """No GitHub token was provided."""


class GraphQLError(FederationError):
    """A GraphQL response carried an ``errors`` array."""

    def __init__(self, errors: list[dict]) -> None:
        self.errors = errors
        messages = "; ".join(str(error.get("message", error)) for error in errors)
        super().__init__(f"GraphQL request failed: {messages}")
