"""Selection requests: parse user filters and match variants against them.

A request carries three independent filters:

- type-name substrings (``-t WebLarge,Framework``),
- operation-name substrings (``-m Build``),
- explicit dimension value sets (``-p restore=true|false,sdk-version=2.1.4``).

All parsing and validation happens when the request is built, so a
malformed filter fails the run before any variant is matched, let alone
executed.  Matching itself never raises.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from cliperf.errors import FilterSyntaxError, InvalidValueError
from cliperf.logging import get_logger
from cliperf.selection.catalogue import Variant
from cliperf.selection.dimensions import REGISTRY, DimensionRegistry, Value

log = get_logger("request")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RunConfig:
    """Execution settings passed through to the engine, never filtered on."""

    target_count: int = 1
    warmup_count: int = 0
    debug: bool = False
    timeout: int = 600  # Per-build timeout in seconds
    work_dir: Path = field(default_factory=lambda: Path("scenarios"))

    @property
    def total_iterations(self) -> int:
        """Builds per variant (warmup + measured)."""
        return self.warmup_count + self.target_count


@dataclass(frozen=True)
class SelectionRequest:
    """An immutable, validated selection request.

    ``dimension_filters`` only has keys for dimensions the user named.
    Keys are resolved to the registry's canonical names on construction
    and every value must already be a member of its dimension's domain.

    Raises:
        UnknownDimensionError: If a filter names an unregistered dimension.
        InvalidValueError: If a filter value is outside its domain.
    """

    type_substrings: tuple[str, ...] = ()
    method_substrings: tuple[str, ...] = ()
    dimension_filters: Mapping[str, frozenset[Value]] = field(
        default_factory=dict, hash=False
    )
    run_config: RunConfig = field(default_factory=RunConfig)
    registry: DimensionRegistry = field(default=REGISTRY, repr=False, compare=False)

    def __post_init__(self) -> None:
        filters: dict[str, frozenset[Value]] = {}
        for name, values in self.dimension_filters.items():
            dim = self.registry.get(name)
            accepted = frozenset(values)
            for value in accepted:
                if not dim.contains(value):
                    raise InvalidValueError(dim.name, str(value), dim.allowed_text())
            filters[dim.name] = filters.get(dim.name, frozenset()) | accepted
        object.__setattr__(self, "dimension_filters", MappingProxyType(filters))

    def with_filter(self, dimension: str, values: Iterable[Value]) -> SelectionRequest:
        """Return a copy with one more (or a replaced) dimension filter."""
        filters = dict(self.dimension_filters)
        filters[dimension] = frozenset(values)
        return dataclasses.replace(self, dimension_filters=filters)

    def describe(self) -> str:
        """One-line summary for log messages."""
        registry = self.registry
        parts: list[str] = []
        if self.type_substrings:
            parts.append(f"types={','.join(self.type_substrings)}")
        if self.method_substrings:
            parts.append(f"methods={','.join(self.method_substrings)}")
        for name, values in self.dimension_filters.items():
            dim = registry.get(name)
            rendered = "|".join(dim.format(v) for v in dim.domain if v in values)
            parts.append(f"{name}={rendered}")
        return " ".join(parts) or "(no filters)"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def split_list(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split comma-separated input into stripped, non-empty items.

    Accepts a single string or an iterable of strings (each of which may
    itself contain commas, as when an option is given more than once).
    """
    if raw is None:
        return ()
    chunks = [raw] if isinstance(raw, str) else list(raw)
    items: list[str] = []
    for chunk in chunks:
        items.extend(part.strip() for part in chunk.split(",") if part.strip())
    return tuple(items)


def split_filter_tokens(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split ``dimension=value`` tokens on commas.

    A segment without ``=`` continues the value list of the preceding
    token, so ``restore=true,false`` reads as ``restore=true|false``.  A
    leading segment without ``=`` is kept as-is and rejected by
    :func:`parse_dimension_filter`.
    """
    return tuple(token for token, _ in _filter_groups(raw))


def _filter_groups(raw: str | Iterable[str] | None) -> list[tuple[str, str]]:
    """Pair each folded token with the comma-separated text it came from."""
    groups: list[tuple[str, str]] = []
    for part in split_list(raw):
        if "=" in part or not groups:
            groups.append((part, part))
        else:
            token, text = groups[-1]
            groups[-1] = (f"{token}|{part}", f"{text},{part}")
    return groups


def parse_dimension_filter(
    token: str,
    registry: DimensionRegistry = REGISTRY,
    *,
    text: str | None = None,
) -> tuple[str, frozenset[Value]]:
    """Parse one ``dimension=value1|value2`` token.

    Args:
        token: The token to parse.
        registry: Where dimension names are looked up.
        text: The user's own spelling of the token, reported in errors
            instead of *token* (``restore=true,false`` for a folded
            ``restore=true|false``).

    Returns:
        The canonical dimension name and the set of typed values.

    Raises:
        FilterSyntaxError: If the token is not ``name=value[|value...]``.
        UnknownDimensionError: If the dimension is not registered.
        InvalidValueError: If a value is outside the dimension's domain.
    """
    shown = text or token
    if "=" not in token:
        raise FilterSyntaxError(
            f"Malformed filter '{shown}': expected 'dimension=value1|value2'", shown
        )
    name, rest = token.split("=", 1)
    name = name.strip()
    if not name:
        raise FilterSyntaxError(f"Malformed filter '{shown}': missing dimension name", shown)

    dim = registry.get(name, token=shown)

    raw_values = [v.strip() for v in rest.split("|")]
    if not all(raw_values):
        raise FilterSyntaxError(f"Malformed filter '{shown}': empty value", shown)

    return dim.name, frozenset(dim.parse(v, token=shown) for v in raw_values)


def parse_dimension_filters(
    tokens: str | Iterable[str] | None,
    registry: DimensionRegistry = REGISTRY,
) -> dict[str, frozenset[Value]]:
    """Parse every filter token; repeated dimensions merge their values."""
    filters: dict[str, frozenset[Value]] = {}
    for token, text in _filter_groups(tokens):
        name, values = parse_dimension_filter(token, registry, text=text)
        filters[name] = filters.get(name, frozenset()) | values
    return filters


def parse_request(
    types: str | Iterable[str] | None = None,
    methods: str | Iterable[str] | None = None,
    parameters: str | Iterable[str] | None = None,
    run_config: RunConfig | None = None,
    registry: DimensionRegistry = REGISTRY,
) -> SelectionRequest:
    """Build a validated :class:`SelectionRequest` from CLI-style input.

    Examples::

        parse_request(types="Core", parameters="restore=true|false")
        parse_request(methods=["Build", "SourceChanged"])

    Raises:
        SelectionError: On the first invalid filter token.
    """
    request = SelectionRequest(
        type_substrings=split_list(types),
        method_substrings=split_list(methods),
        dimension_filters=parse_dimension_filters(parameters, registry),
        run_config=run_config or RunConfig(),
        registry=registry,
    )
    log.debug("Parsed request: %s", request.describe())
    return request


# ---------------------------------------------------------------------------
# Matching
# ---------------------------------------------------------------------------


def _contains_any(text: str, substrings: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(s.lower() in lowered for s in substrings)


def matches_names(variant: Variant, request: SelectionRequest) -> bool:
    """Type and operation substring filters; an empty filter matches all."""
    if request.type_substrings and not _contains_any(variant.type_name, request.type_substrings):
        return False
    if request.method_substrings and not _contains_any(
        variant.operation, request.method_substrings
    ):
        return False
    return True


def matches_dimensions(variant: Variant, request: SelectionRequest) -> bool:
    """AND across filtered dimensions, OR within one dimension's values.

    A variant that does not carry a filtered dimension does not match.
    """
    for name, accepted in request.dimension_filters.items():
        if not variant.has(name) or variant.get(name) not in accepted:
            return False
    return True


def apply_request(variants: Sequence[Variant], request: SelectionRequest) -> list[Variant]:
    """Keep the variants that satisfy every filter in *request*, in order."""
    kept = [v for v in variants if matches_names(v, request) and matches_dimensions(v, request)]
    log.debug("Request filters: %d -> %d variants", len(variants), len(kept))
    return kept
