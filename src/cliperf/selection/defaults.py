"""Default inference: narrow dimensions the user did not ask about.

Without these rules every invocation would run the full cross-product of
SDK version x restore x parallel x MSBuild flavor x target framework x
Razor precompilation x node reuse x source-change scope.  Each rule
narrows one dimension to the values that mirror how the tools are
typically used.  A rule is skipped entirely when the user filtered its
dimension explicitly, except for structural rules (``always=True``),
which encode which values are meaningful for a variant's shape.

Rules run in the order of :data:`DEFAULT_RULES`.  A variant that does not
carry the rule's dimension always passes that rule.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cliperf.logging import get_logger
from cliperf.selection.catalogue import SOURCE_CHANGED, Variant
from cliperf.selection.dimensions import (
    FLAVOR_CORE,
    FLAVOR_FRAMEWORK,
    LEAF_FILE_CHANGED,
    MSBUILD_FLAVOR,
    NODE_REUSE,
    NOT_APPLICABLE,
    PARALLEL,
    RESTORE,
    ROOT_FILE_CHANGED,
    SDK_VERSION,
    SOURCE_CHANGE_SCOPE,
)

if TYPE_CHECKING:
    from cliperf.selection.request import SelectionRequest

log = get_logger("defaults")

BASELINE_SDK_VERSION = "2.0.2"
LATEST_SDK_PREFIX = "2.2.0"


@dataclass(frozen=True)
class DefaultRule:
    """A per-dimension narrowing predicate.

    ``keep`` is only consulted for variants that carry ``dimension``.
    """

    dimension: str
    description: str
    keep: Callable[[Variant], bool]
    always: bool = False

    def applies(self, explicit: Sequence[str] | frozenset[str]) -> bool:
        """Whether the rule runs given the explicitly filtered dimensions."""
        return self.always or self.dimension not in explicit

    def accepts(self, variant: Variant) -> bool:
        if not variant.has(self.dimension):
            return True
        return self.keep(variant)


def _restore(v: Variant) -> bool:
    if v.category.is_core:
        return v.get(RESTORE) is True
    if v.category.is_framework:
        return v.get(RESTORE) is False
    return True


def _parallel(v: Variant) -> bool:
    # Same default for both tool families; see DESIGN.md.
    if v.category.is_core or v.category.is_framework:
        return v.get(PARALLEL) is True
    return True


def _sdk_version(v: Variant) -> bool:
    if not v.category.is_core:
        return True
    version = str(v.get(SDK_VERSION))
    return version == BASELINE_SDK_VERSION or version.startswith(LATEST_SDK_PREFIX)


def _msbuild_flavor(v: Variant) -> bool:
    if v.category.is_core:
        return v.get(MSBUILD_FLAVOR) == FLAVOR_CORE
    return True


def _node_reuse(v: Variant) -> bool:
    if v.category.is_framework or v.get(MSBUILD_FLAVOR) == FLAVOR_FRAMEWORK:
        return v.get(NODE_REUSE) is True
    return True


def _source_change_shape(v: Variant) -> bool:
    scope = v.get(SOURCE_CHANGE_SCOPE)
    if v.category.large and v.operation == SOURCE_CHANGED:
        return scope in (LEAF_FILE_CHANGED, ROOT_FILE_CHANGED)
    return scope == NOT_APPLICABLE


def _source_change_scope(v: Variant) -> bool:
    return v.get(SOURCE_CHANGE_SCOPE) != ROOT_FILE_CHANGED


DEFAULT_RULES: tuple[DefaultRule, ...] = (
    DefaultRule(RESTORE, "restore=true for core, restore=false for framework", _restore),
    DefaultRule(PARALLEL, "parallel=true for core and framework", _parallel),
    DefaultRule(
        SDK_VERSION,
        f"sdk-version={BASELINE_SDK_VERSION} or {LATEST_SDK_PREFIX}* for core",
        _sdk_version,
    ),
    DefaultRule(MSBUILD_FLAVOR, "msbuild-flavor=core for core", _msbuild_flavor),
    DefaultRule(NODE_REUSE, "node-reuse=true for desktop MSBuild", _node_reuse),
    DefaultRule(
        SOURCE_CHANGE_SCOPE,
        "large SourceChanged variants edit a leaf or root file; others edit nothing",
        _source_change_shape,
        always=True,
    ),
    DefaultRule(
        SOURCE_CHANGE_SCOPE,
        "source-change-scope=leaf-file-changed",
        _source_change_scope,
    ),
)


def apply_defaults(
    variants: Sequence[Variant],
    request: SelectionRequest | None = None,
    rules: Sequence[DefaultRule] = DEFAULT_RULES,
) -> list[Variant]:
    """Apply default inference rules in order, preserving variant order.

    Args:
        variants: Candidates that already passed the hard constraints.
        request: The user's request; dimensions it filters explicitly are
            exempt from non-structural rules.  None means no filters.
        rules: Rules to apply, in order.

    Returns:
        The narrowed list.
    """
    explicit = frozenset(request.dimension_filters) if request is not None else frozenset()
    selected = list(variants)
    for rule in rules:
        if not rule.applies(explicit):
            log.debug("Default for %s skipped (explicit filter)", rule.dimension)
            continue
        before = len(selected)
        selected = [v for v in selected if rule.accepts(v)]
        log.debug(
            "Default %s (%s): %d -> %d", rule.dimension, rule.description, before, len(selected)
        )
    return selected
