"""Hard constraints: combinations that are structurally invalid.

These rules hold regardless of what the user asks for and are applied
before any default inference.  Each rule is a predicate that returns True
when a variant *violates* it; a variant survives only if it violates
none.  Rules are independent of each other and may be applied in any
order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from cliperf.logging import get_logger
from cliperf.selection.catalogue import Variant
from cliperf.selection.dimensions import (
    FLAVOR_CORE,
    FLAVOR_FRAMEWORK,
    MSBUILD_FLAVOR,
    MSBUILD_VERSION,
    NODE_REUSE,
    NOT_APPLICABLE,
)

log = get_logger("constraints")


@dataclass(frozen=True)
class HardRule:
    """An unconditional exclusion."""

    name: str
    description: str
    violates: Callable[[Variant], bool]


def _core_msbuild_with_node_reuse(v: Variant) -> bool:
    return v.get(MSBUILD_FLAVOR) == FLAVOR_CORE and v.get(NODE_REUSE) is True


def _core_msbuild_with_version(v: Variant) -> bool:
    return (
        v.get(MSBUILD_FLAVOR) == FLAVOR_CORE
        and v.has(MSBUILD_VERSION)
        and v.get(MSBUILD_VERSION) != NOT_APPLICABLE
    )


def _desktop_msbuild_without_version(v: Variant) -> bool:
    uses_desktop = v.get(MSBUILD_FLAVOR) == FLAVOR_FRAMEWORK or v.category.is_framework
    return uses_desktop and v.get(MSBUILD_VERSION) == NOT_APPLICABLE


HARD_RULES: tuple[HardRule, ...] = (
    HardRule(
        "core-msbuild-node-reuse",
        "Core MSBuild does not support node reuse.",
        _core_msbuild_with_node_reuse,
    ),
    HardRule(
        "core-msbuild-version",
        "Core MSBuild ignores the desktop MSBuild version; it must be not-applicable.",
        _core_msbuild_with_version,
    ),
    HardRule(
        "desktop-msbuild-version",
        "Desktop MSBuild needs a concrete MSBuild version.",
        _desktop_msbuild_without_version,
    ),
)


def violations(variant: Variant, rules: Iterable[HardRule] = HARD_RULES) -> list[HardRule]:
    """Return every rule *variant* violates (empty if it is valid)."""
    return [rule for rule in rules if rule.violates(variant)]


def apply_hard_constraints(
    variants: Sequence[Variant],
    rules: Sequence[HardRule] = HARD_RULES,
) -> list[Variant]:
    """Drop every variant that violates any hard rule, preserving order."""
    kept = [v for v in variants if not any(rule.violates(v) for rule in rules)]
    log.debug("Hard constraints: %d -> %d variants", len(variants), len(kept))
    return kept
