"""Exception and warning types raised by cliperf.

Every fatal error derives from :class:`CliperfError` so the CLI can turn
it into a one-line ``Error: ...`` message and a non-zero exit status
before any build process is spawned.
"""

from __future__ import annotations


class CliperfError(Exception):
    """Base class for all fatal cliperf errors."""


class CatalogueError(CliperfError):
    """A declared benchmark variant is internally inconsistent."""


class ProfileError(CliperfError):
    """A YAML selection profile could not be loaded or is malformed."""


class SelectionError(CliperfError):
    """A user-supplied selection filter could not be parsed.

    Attributes:
        token: The offending filter token, as the user wrote it.
    """

    def __init__(self, message: str, token: str) -> None:
        super().__init__(message)
        self.token = token


class FilterSyntaxError(SelectionError):
    """A ``dimension=value|value`` token is malformed."""


class UnknownDimensionError(SelectionError):
    """A filter names a dimension that is not in the registry."""

    def __init__(self, dimension: str, token: str | None = None) -> None:
        message = f"Unknown dimension '{dimension}'"
        if token and token != dimension:
            message += f" in filter '{token}'"
        super().__init__(message, token or dimension)
        self.dimension = dimension


class InvalidValueError(SelectionError):
    """A filter value is outside the dimension's domain."""

    def __init__(
        self,
        dimension: str,
        value: str,
        allowed: list[str],
        token: str | None = None,
    ) -> None:
        token = token or f"{dimension}={value}"
        super().__init__(
            f"Invalid value '{value}' for dimension '{dimension}' in filter '{token}' "
            f"(expected one of: {', '.join(allowed)})",
            token,
        )
        self.dimension = dimension
        self.value = value


class EmptySelectionWarning(UserWarning):
    """No variant matched the request.

    Not an error: an overly narrow filter is a valid request that simply
    has nothing to run.
    """
