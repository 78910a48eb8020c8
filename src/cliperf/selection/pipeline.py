"""Selection pipeline: catalogue -> hard constraints -> defaults -> request.

The pipeline is a pure function of (catalogue, rules, request).  It never
reorders variants, so the same request always yields the same ordered
result, and it is safe to run concurrently against one catalogue.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from cliperf.errors import EmptySelectionWarning
from cliperf.logging import elapsed, get_logger
from cliperf.selection.catalogue import Variant, default_catalogue
from cliperf.selection.constraints import HARD_RULES, HardRule, apply_hard_constraints
from cliperf.selection.defaults import DEFAULT_RULES, DefaultRule, apply_defaults
from cliperf.selection.request import RunConfig, SelectionRequest, apply_request

log = get_logger("pipeline")


@dataclass(frozen=True)
class SelectionResult:
    """The selected variants plus what the engine needs to run them."""

    variants: tuple[Variant, ...]
    request: SelectionRequest
    stage_counts: tuple[tuple[str, int], ...] = ()
    warning: EmptySelectionWarning | None = None

    @property
    def run_config(self) -> RunConfig:
        return self.request.run_config

    @property
    def is_empty(self) -> bool:
        return not self.variants

    def __len__(self) -> int:
        return len(self.variants)

    def __iter__(self) -> Iterator[Variant]:
        return iter(self.variants)


class SelectionPipeline:
    """Runs the selection stages in their fixed order."""

    def __init__(
        self,
        catalogue: Sequence[Variant] | None = None,
        hard_rules: Sequence[HardRule] = HARD_RULES,
        default_rules: Sequence[DefaultRule] = DEFAULT_RULES,
    ) -> None:
        self.catalogue: tuple[Variant, ...] = (
            tuple(catalogue) if catalogue is not None else default_catalogue()
        )
        self.hard_rules = tuple(hard_rules)
        self.default_rules = tuple(default_rules)

    def select(self, request: SelectionRequest) -> SelectionResult:
        """Select the variants *request* asks for.

        An empty selection is reported through ``SelectionResult.warning``
        rather than raised.
        """
        log.debug("%s Selecting: %s", elapsed(), request.describe())
        counts: list[tuple[str, int]] = [("catalogue", len(self.catalogue))]

        selected = apply_hard_constraints(self.catalogue, self.hard_rules)
        counts.append(("hard-constraints", len(selected)))

        selected = apply_defaults(selected, request, self.default_rules)
        counts.append(("defaults", len(selected)))

        selected = apply_request(selected, request)
        counts.append(("request", len(selected)))

        warning = None
        if not selected:
            warning = EmptySelectionWarning(
                f"No benchmark variants match the request: {request.describe()}"
            )

        log.debug(
            "%s Selection done: %s",
            elapsed(),
            ", ".join(f"{stage}={n}" for stage, n in counts),
        )
        return SelectionResult(
            variants=tuple(selected),
            request=request,
            stage_counts=tuple(counts),
            warning=warning,
        )


def select_variants(
    request: SelectionRequest,
    catalogue: Sequence[Variant] | None = None,
) -> SelectionResult:
    """Run the default pipeline once for *request*."""
    return SelectionPipeline(catalogue).select(request)
