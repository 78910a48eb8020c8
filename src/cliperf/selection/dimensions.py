"""Dimension registry: the named parameter axes benchmark variants differ on.

Each dimension has a typed domain, either boolean or a closed set of
strings.  The registry is the single authority used to validate
user-supplied filter values; variants carry already-typed values, so
nothing downstream ever casts a loosely-typed string.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Union

from cliperf.errors import InvalidValueError, UnknownDimensionError

Value = Union[bool, str]

# Dimension names.
SDK_VERSION = "sdk-version"
RESTORE = "restore"
PARALLEL = "parallel"
MSBUILD_FLAVOR = "msbuild-flavor"
MSBUILD_VERSION = "msbuild-version"
TARGET_FRAMEWORK = "target-framework"
RAZOR_COMPILE_ON_BUILD = "razor-compile-on-build"
NODE_REUSE = "node-reuse"
SOURCE_CHANGE_SCOPE = "source-change-scope"

# Shared sentinel for "this axis means nothing for this variant".
NOT_APPLICABLE = "not-applicable"

FLAVOR_CORE = "core"
FLAVOR_FRAMEWORK = "framework"

LEAF_FILE_CHANGED = "leaf-file-changed"
ROOT_FILE_CHANGED = "root-file-changed"

_BOOL_WORDS = {"true": True, "false": False}


@dataclass(frozen=True)
class Dimension:
    """A named axis with a typed, closed domain."""

    name: str
    kind: str  # "bool" or "choice"
    choices: tuple[str, ...] = ()
    description: str = ""

    def __post_init__(self) -> None:
        if self.kind not in ("bool", "choice"):
            raise ValueError(f"Unknown dimension kind '{self.kind}' for '{self.name}'")
        if self.kind == "choice" and not self.choices:
            raise ValueError(f"Choice dimension '{self.name}' needs at least one choice")

    @property
    def domain(self) -> tuple[Value, ...]:
        """All legal values, in enumeration order."""
        if self.kind == "bool":
            return (False, True)
        return self.choices

    def contains(self, value: Value) -> bool:
        """Whether *value* is a member of the domain (type-strict)."""
        if self.kind == "bool":
            return isinstance(value, bool)
        return isinstance(value, str) and value in self.choices

    def parse(self, raw: str, *, token: str | None = None) -> Value:
        """Parse a user-supplied string into a domain value.

        Matching is case-insensitive.  Choice values come back in their
        canonical spelling.

        Raises:
            InvalidValueError: If *raw* is not in the domain.
        """
        text = raw.strip()
        if self.kind == "bool":
            if text.lower() in _BOOL_WORDS:
                return _BOOL_WORDS[text.lower()]
        else:
            for choice in self.choices:
                if choice.lower() == text.lower():
                    return choice
        raise InvalidValueError(self.name, text, self.allowed_text(), token=token)

    def format(self, value: Value) -> str:
        """Render a domain value the way a user would type it."""
        if isinstance(value, bool):
            return "true" if value else "false"
        return value

    def allowed_text(self) -> list[str]:
        return [self.format(v) for v in self.domain]


class DimensionRegistry:
    """Read-only catalogue of dimensions, looked up case-insensitively."""

    def __init__(self, dimensions: Iterable[Dimension]) -> None:
        self._dimensions: dict[str, Dimension] = {}
        for dim in dimensions:
            key = dim.name.lower()
            if key in self._dimensions:
                raise ValueError(f"Duplicate dimension '{dim.name}'")
            self._dimensions[key] = dim

    def get(self, name: str, *, token: str | None = None) -> Dimension:
        """Return the dimension called *name*.

        Raises:
            UnknownDimensionError: If no such dimension is registered.
        """
        dim = self._dimensions.get(name.strip().lower())
        if dim is None:
            raise UnknownDimensionError(name.strip(), token=token)
        return dim

    def domain(self, name: str) -> tuple[Value, ...]:
        return self.get(name).domain

    def parse_value(self, name: str, raw: str, *, token: str | None = None) -> Value:
        """Validate *raw* against dimension *name* and return the typed value."""
        return self.get(name, token=token).parse(raw, token=token)

    @property
    def names(self) -> list[str]:
        return [d.name for d in self._dimensions.values()]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.strip().lower() in self._dimensions

    def __iter__(self) -> Iterator[Dimension]:
        return iter(self._dimensions.values())

    def __len__(self) -> int:
        return len(self._dimensions)


DIMENSIONS: tuple[Dimension, ...] = (
    Dimension(
        SDK_VERSION,
        "choice",
        ("2.0.2", "2.1.4", "2.1.300", "2.2.0-preview1-007622"),
        description=".NET Core SDK version pinned through global.json.",
    ),
    Dimension(RESTORE, "bool", description="Run package restore as part of the build."),
    Dimension(PARALLEL, "bool", description="Build projects in parallel (otherwise /m:1)."),
    Dimension(
        MSBUILD_FLAVOR,
        "choice",
        (FLAVOR_CORE, FLAVOR_FRAMEWORK),
        description="Which MSBuild drives the build: the SDK's Core MSBuild or desktop MSBuild.",
    ),
    Dimension(
        MSBUILD_VERSION,
        "choice",
        (NOT_APPLICABLE, "15.6", "15.7"),
        description="Desktop MSBuild version; only meaningful for the framework flavor.",
    ),
    Dimension(TARGET_FRAMEWORK, "choice", ("2.0", "2.1"), description="App target framework."),
    Dimension(
        RAZOR_COMPILE_ON_BUILD,
        "bool",
        description="Precompile Razor views during build using the Razor build server.",
    ),
    Dimension(NODE_REUSE, "bool", description="Keep MSBuild worker nodes alive between builds."),
    Dimension(
        SOURCE_CHANGE_SCOPE,
        "choice",
        (NOT_APPLICABLE, LEAF_FILE_CHANGED, ROOT_FILE_CHANGED),
        description="Which source file an incremental build edits first.",
    ),
)

REGISTRY = DimensionRegistry(DIMENSIONS)
