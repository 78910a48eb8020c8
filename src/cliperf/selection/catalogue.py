"""Variant catalogue: every benchmark case cliperf knows how to run.

The catalogue is built from an explicit table of :class:`VariantDescriptor`
entries.  Each descriptor names a scenario type, the operations it
exercises, the category it belongs to, and the dimensions it varies over.
Expanding a descriptor yields one :class:`Variant` per operation per
point in the cross-product of its dimension domains.

Categories are declared, never inferred from a type's name: a type called
``WebLargeCore`` is a core variant because its descriptor says so.
"""

from __future__ import annotations

import enum
import functools
import itertools
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from cliperf.errors import CatalogueError
from cliperf.logging import get_logger
from cliperf.selection.dimensions import (
    LEAF_FILE_CHANGED,
    MSBUILD_VERSION,
    NODE_REUSE,
    NOT_APPLICABLE,
    PARALLEL,
    REGISTRY,
    RESTORE,
    ROOT_FILE_CHANGED,
    SOURCE_CHANGE_SCOPE,
    DimensionRegistry,
    Value,
)

log = get_logger("catalogue")


# ---------------------------------------------------------------------------
# Categories and operations
# ---------------------------------------------------------------------------


class Tool(enum.Enum):
    """Which build tool family a scenario type exercises."""

    CORE = "core"  # .NET Core SDK (the modern tool)
    FRAMEWORK = "framework"  # desktop MSBuild (the legacy tool)
    EXTERNAL = "external"  # neither, e.g. a Gradle reference app


@dataclass(frozen=True)
class Category:
    """Explicit classification attached to a scenario type."""

    tool: Tool
    large: bool = False

    @property
    def is_core(self) -> bool:
        return self.tool is Tool.CORE

    @property
    def is_framework(self) -> bool:
        return self.tool is Tool.FRAMEWORK

    @property
    def label(self) -> str:
        return f"{self.tool.value}/{'large' if self.large else 'small'}"


BUILD = "Build"
NO_CHANGES = "NoChanges"
SOURCE_CHANGED = "SourceChanged"
OPERATIONS: tuple[str, ...] = (BUILD, NO_CHANGES, SOURCE_CHANGED)

REQUIRED_DIMENSIONS: dict[Tool, frozenset[str]] = {
    Tool.CORE: frozenset(REGISTRY.names),
    Tool.FRAMEWORK: frozenset(
        {RESTORE, PARALLEL, MSBUILD_VERSION, NODE_REUSE, SOURCE_CHANGE_SCOPE}
    ),
    Tool.EXTERNAL: frozenset({SOURCE_CHANGE_SCOPE}),
}


# ---------------------------------------------------------------------------
# Variant
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Variant:
    """One concrete, fully-parameterized benchmark case."""

    type_name: str
    operation: str
    category: Category
    values: Mapping[str, Value] = field(default_factory=dict)
    scenario: str = ""
    source_file: str = ""  # Edited before each SourceChanged build

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))

    def __hash__(self) -> int:
        return hash(self.identity)

    @property
    def identity(self) -> tuple[str, str, tuple[tuple[str, Value], ...]]:
        """What makes two variants the same benchmark case."""
        return (self.type_name, self.operation, tuple(sorted(self.values.items())))

    @property
    def name(self) -> str:
        return f"{self.type_name}.{self.operation}"

    def has(self, dimension: str) -> bool:
        return dimension in self.values

    def get(self, dimension: str) -> Value | None:
        """The variant's value for *dimension*, or None if not applicable."""
        return self.values.get(dimension)

    def describe(self, registry: DimensionRegistry = REGISTRY) -> str:
        """Render as ``Type.Operation(dim=value, ...)`` in registry order."""
        parts = [
            f"{dim.name}={dim.format(self.values[dim.name])}"
            for dim in registry
            if dim.name in self.values
        ]
        return f"{self.name}({', '.join(parts)})"


# ---------------------------------------------------------------------------
# Descriptors
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VariantDescriptor:
    """Declaration of a scenario type and the axes it varies over.

    ``restrict`` narrows a dimension to a subset of its domain for this
    type only; undeclared dimensions are not applicable to the type.
    ``sources`` maps a source-change scope to the file (relative to the
    scenario directory) that a SourceChanged build edits.
    """

    type_name: str
    category: Category
    scenario: str
    dimensions: tuple[str, ...]
    operations: tuple[str, ...] = OPERATIONS
    restrict: Mapping[str, tuple[Value, ...]] = field(default_factory=dict, hash=False)
    sources: Mapping[str, str] = field(default_factory=dict, hash=False)


_CORE_DIMENSIONS = tuple(REGISTRY.names)
_FRAMEWORK_DIMENSIONS = (RESTORE, PARALLEL, MSBUILD_VERSION, NODE_REUSE, SOURCE_CHANGE_SCOPE)

_SMALL_MVC_SOURCES = {NOT_APPLICABLE: "Controllers/HomeController.cs"}
_LARGE_MVC_SOURCES = {
    LEAF_FILE_CHANGED: "ClassLib125/Class001.cs",
    ROOT_FILE_CHANGED: "mvc/Controllers/HomeController.cs",
}

DESCRIPTORS: tuple[VariantDescriptor, ...] = (
    VariantDescriptor(
        "WebSmallCore",
        Category(Tool.CORE),
        "web/small/core/mvc",
        _CORE_DIMENSIONS,
        sources=_SMALL_MVC_SOURCES,
    ),
    VariantDescriptor(
        "WebLargeCore",
        Category(Tool.CORE, large=True),
        "web/large/core",
        _CORE_DIMENSIONS,
        sources=_LARGE_MVC_SOURCES,
    ),
    VariantDescriptor(
        "WebSmallFramework",
        Category(Tool.FRAMEWORK),
        "web/small/framework/mvc",
        _FRAMEWORK_DIMENSIONS,
        sources=_SMALL_MVC_SOURCES,
    ),
    VariantDescriptor(
        "WebLargeFramework",
        Category(Tool.FRAMEWORK, large=True),
        "web/large/framework",
        _FRAMEWORK_DIMENSIONS,
        sources=_LARGE_MVC_SOURCES,
    ),
    VariantDescriptor(
        "WebLargeGradle",
        Category(Tool.EXTERNAL, large=True),
        "web/large/gradle",
        (SOURCE_CHANGE_SCOPE,),
        sources={
            LEAF_FILE_CHANGED: "mvc/src/main/java/hello/Home009Controller.java",
            ROOT_FILE_CHANGED: "mvc/src/main/java/hello/Home076Controller.java",
        },
    ),
)


# ---------------------------------------------------------------------------
# Expansion
# ---------------------------------------------------------------------------


def _check_descriptor(desc: VariantDescriptor, registry: DimensionRegistry) -> None:
    for name in desc.dimensions:
        if name not in registry:
            raise CatalogueError(f"{desc.type_name}: unknown dimension '{name}'")

    missing = REQUIRED_DIMENSIONS[desc.category.tool] - set(desc.dimensions)
    if missing:
        raise CatalogueError(
            f"{desc.type_name}: {desc.category.tool.value} variants require "
            f"dimension(s) {', '.join(sorted(missing))}"
        )

    for name, values in desc.restrict.items():
        if name not in desc.dimensions:
            raise CatalogueError(f"{desc.type_name}: restricts undeclared dimension '{name}'")
        if not values:
            raise CatalogueError(f"{desc.type_name}: empty value set for '{name}'")
        dim = registry.get(name)
        for value in values:
            if not dim.contains(value):
                raise CatalogueError(
                    f"{desc.type_name}: value {value!r} is outside the domain of '{name}'"
                )

    if not desc.operations:
        raise CatalogueError(f"{desc.type_name}: no operations declared")

    if desc.sources:
        scopes = registry.get(SOURCE_CHANGE_SCOPE).domain
        for scope in desc.sources:
            if scope not in scopes:
                raise CatalogueError(f"{desc.type_name}: unknown source-change scope '{scope}'")


def expand_descriptor(
    desc: VariantDescriptor,
    registry: DimensionRegistry = REGISTRY,
) -> list[Variant]:
    """Expand one descriptor into its variants.

    Dimensions are iterated in registry order and values in domain order,
    so the result is deterministic.

    Raises:
        CatalogueError: If the descriptor is inconsistent.
    """
    _check_descriptor(desc, registry)

    declared = set(desc.dimensions)
    dims = [d for d in registry if d.name in declared]
    domains = [desc.restrict.get(d.name, d.domain) for d in dims]

    variants: list[Variant] = []
    for operation in desc.operations:
        for combo in itertools.product(*domains):
            values = {d.name: v for d, v in zip(dims, combo)}
            source_file = ""
            if operation == SOURCE_CHANGED:
                scope = values.get(SOURCE_CHANGE_SCOPE, NOT_APPLICABLE)
                source_file = desc.sources.get(str(scope), "")
            variants.append(
                Variant(
                    type_name=desc.type_name,
                    operation=operation,
                    category=desc.category,
                    values=values,
                    scenario=desc.scenario,
                    source_file=source_file,
                )
            )
    return variants


def build_catalogue(
    descriptors: Iterable[VariantDescriptor] = DESCRIPTORS,
    registry: DimensionRegistry = REGISTRY,
) -> tuple[Variant, ...]:
    """Build the complete, immutable variant sequence.

    Raises:
        CatalogueError: If a descriptor is inconsistent or two variants
            share the same identity.
    """
    seen: set[tuple[str, str, tuple[tuple[str, Value], ...]]] = set()
    variants: list[Variant] = []
    for desc in descriptors:
        for variant in expand_descriptor(desc, registry):
            key = variant.identity
            if key in seen:
                raise CatalogueError(f"Duplicate variant: {variant.describe(registry)}")
            seen.add(key)
            variants.append(variant)

    log.debug("Catalogue built: %d variants", len(variants))
    return tuple(variants)


@functools.lru_cache(maxsize=1)
def default_catalogue() -> tuple[Variant, ...]:
    """The catalogue for the built-in descriptor table, built once."""
    return build_catalogue()


def type_names(variants: Sequence[Variant]) -> list[str]:
    """Distinct type names in first-seen order."""
    return list(dict.fromkeys(v.type_name for v in variants))
