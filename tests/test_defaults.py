"""Tests for cliperf.selection.defaults — default inference rules."""

from __future__ import annotations

import unittest

from cliperf.selection.catalogue import BUILD, SOURCE_CHANGED, Tool
from cliperf.selection.defaults import DEFAULT_RULES, apply_defaults
from cliperf.selection.dimensions import (
    LEAF_FILE_CHANGED,
    NOT_APPLICABLE,
    REGISTRY,
    ROOT_FILE_CHANGED,
    SOURCE_CHANGE_SCOPE,
)
from cliperf.selection.request import SelectionRequest

from selection_test_helpers import core_values, framework_values, make_variant


def _kept(variant: object, request: SelectionRequest | None = None) -> bool:
    return apply_defaults([variant], request) == [variant]  # type: ignore[list-item]


def _explicit(*dimensions: str) -> SelectionRequest:
    return SelectionRequest(dimension_filters={d: REGISTRY.domain(d) for d in dimensions})


class TestRuleOrder(unittest.TestCase):
    """The rule table itself."""

    def test_rule_order(self) -> None:
        self.assertEqual(
            [r.dimension for r in DEFAULT_RULES],
            [
                "restore",
                "parallel",
                "sdk-version",
                "msbuild-flavor",
                "node-reuse",
                "source-change-scope",
                "source-change-scope",
            ],
        )

    def test_only_shape_rule_is_structural(self) -> None:
        structural = [i for i, r in enumerate(DEFAULT_RULES) if r.always]
        self.assertEqual(structural, [5])


class TestRestoreDefault(unittest.TestCase):
    def test_core_defaults_to_restore(self) -> None:
        self.assertTrue(_kept(make_variant(values=core_values(restore=True))))
        self.assertFalse(_kept(make_variant(values=core_values(restore=False))))

    def test_framework_defaults_to_no_restore(self) -> None:
        fw = Tool.FRAMEWORK
        self.assertTrue(_kept(make_variant(tool=fw, values=framework_values(restore=False))))
        self.assertFalse(_kept(make_variant(tool=fw, values=framework_values(restore=True))))

    def test_external_passes_through(self) -> None:
        v = make_variant(
            tool=Tool.EXTERNAL,
            values={"restore": False, SOURCE_CHANGE_SCOPE: NOT_APPLICABLE},
        )
        self.assertTrue(_kept(v))

    def test_explicit_filter_skips_default(self) -> None:
        v = make_variant(values=core_values(restore=False))
        self.assertTrue(_kept(v, _explicit("restore")))


class TestParallelDefault(unittest.TestCase):
    def test_both_tool_families_default_to_parallel(self) -> None:
        self.assertFalse(_kept(make_variant(values=core_values(parallel=False))))
        self.assertFalse(
            _kept(make_variant(tool=Tool.FRAMEWORK, values=framework_values(parallel=False)))
        )

    def test_explicit_filter_skips_default(self) -> None:
        v = make_variant(values=core_values(parallel=False))
        self.assertTrue(_kept(v, _explicit("parallel")))


class TestSdkVersionDefault(unittest.TestCase):
    def test_baseline_and_latest_prefix_kept(self) -> None:
        self.assertTrue(_kept(make_variant(values=core_values(sdk_version="2.0.2"))))
        self.assertTrue(
            _kept(make_variant(values=core_values(sdk_version="2.2.0-preview1-007622")))
        )

    def test_other_versions_dropped(self) -> None:
        self.assertFalse(_kept(make_variant(values=core_values(sdk_version="2.1.4"))))
        self.assertFalse(_kept(make_variant(values=core_values(sdk_version="2.1.300"))))

    def test_explicit_filter_skips_default(self) -> None:
        v = make_variant(values=core_values(sdk_version="2.1.4"))
        self.assertTrue(_kept(v, _explicit("sdk-version")))


class TestMsbuildFlavorDefault(unittest.TestCase):
    def test_core_defaults_to_core_msbuild(self) -> None:
        v = make_variant(values=core_values(msbuild_flavor="framework", node_reuse=True))
        self.assertFalse(_kept(v))

    def test_explicit_filter_skips_default(self) -> None:
        v = make_variant(values=core_values(msbuild_flavor="framework", node_reuse=True))
        self.assertTrue(_kept(v, _explicit("msbuild-flavor")))


class TestNodeReuseDefault(unittest.TestCase):
    def test_framework_defaults_to_node_reuse(self) -> None:
        v = make_variant(tool=Tool.FRAMEWORK, values=framework_values(node_reuse=False))
        self.assertFalse(_kept(v))

    def test_desktop_flavor_on_core_type_defaults_to_node_reuse(self) -> None:
        v = make_variant(values=core_values(msbuild_flavor="framework", node_reuse=False))
        self.assertFalse(_kept(v, _explicit("msbuild-flavor")))

    def test_core_msbuild_unaffected(self) -> None:
        self.assertTrue(_kept(make_variant(values=core_values(node_reuse=False))))


class TestSourceChangeScope(unittest.TestCase):
    def _large(self, operation: str, scope: str) -> object:
        return make_variant(
            "WebLargeCore",
            operation,
            large=True,
            values=core_values(source_change_scope=scope),
        )

    def test_large_source_changed_needs_a_file_scope(self) -> None:
        self.assertTrue(_kept(self._large(SOURCE_CHANGED, LEAF_FILE_CHANGED)))
        self.assertFalse(_kept(self._large(SOURCE_CHANGED, NOT_APPLICABLE)))

    def test_root_dropped_by_default(self) -> None:
        self.assertFalse(_kept(self._large(SOURCE_CHANGED, ROOT_FILE_CHANGED)))

    def test_root_kept_when_explicit(self) -> None:
        self.assertTrue(
            _kept(self._large(SOURCE_CHANGED, ROOT_FILE_CHANGED), _explicit(SOURCE_CHANGE_SCOPE))
        )

    def test_shape_rule_never_skipped(self) -> None:
        """Explicitly asking for a scope cannot resurrect a meaningless shape."""
        request = _explicit(SOURCE_CHANGE_SCOPE)
        self.assertFalse(_kept(self._large(BUILD, LEAF_FILE_CHANGED), request))
        self.assertFalse(_kept(self._large(SOURCE_CHANGED, NOT_APPLICABLE), request))

    def test_small_source_changed_is_not_applicable(self) -> None:
        small = make_variant("WebSmallCore", SOURCE_CHANGED, values=core_values())
        self.assertTrue(_kept(small))
        small_leaf = make_variant(
            "WebSmallCore",
            SOURCE_CHANGED,
            values=core_values(source_change_scope=LEAF_FILE_CHANGED),
        )
        self.assertFalse(_kept(small_leaf))


class TestApplyDefaults(unittest.TestCase):
    def test_none_request_means_no_filters(self) -> None:
        v = make_variant(values=core_values(restore=False))
        self.assertEqual(apply_defaults([v], None), [])

    def test_variant_without_dimension_passes(self) -> None:
        v = make_variant(tool=Tool.EXTERNAL, values={SOURCE_CHANGE_SCOPE: NOT_APPLICABLE})
        self.assertEqual(apply_defaults([v]), [v])

    def test_preserves_order(self) -> None:
        a = make_variant("A")
        b = make_variant("B", values=core_values(restore=False))
        c = make_variant("C")
        self.assertEqual(apply_defaults([a, b, c]), [a, c])


if __name__ == "__main__":
    unittest.main()
