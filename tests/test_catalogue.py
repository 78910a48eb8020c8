"""Tests for cliperf.selection.catalogue — variant declaration and expansion."""

from __future__ import annotations

import unittest

from cliperf.errors import CatalogueError
from cliperf.selection.catalogue import (
    BUILD,
    DESCRIPTORS,
    OPERATIONS,
    SOURCE_CHANGED,
    Category,
    Tool,
    VariantDescriptor,
    build_catalogue,
    default_catalogue,
    expand_descriptor,
    type_names,
)
from cliperf.selection.dimensions import (
    LEAF_FILE_CHANGED,
    NOT_APPLICABLE,
    REGISTRY,
    RESTORE,
    ROOT_FILE_CHANGED,
    SOURCE_CHANGE_SCOPE,
)

from selection_test_helpers import core_values, make_variant


# ---------------------------------------------------------------------------
# Variant tests
# ---------------------------------------------------------------------------


class TestVariant(unittest.TestCase):
    """Tests for the Variant value object."""

    def test_values_are_read_only(self) -> None:
        v = make_variant()
        with self.assertRaises(TypeError):
            v.values["restore"] = False  # type: ignore[index]

    def test_variant_is_frozen(self) -> None:
        v = make_variant()
        with self.assertRaises(AttributeError):
            v.operation = "NoChanges"  # type: ignore[misc]

    def test_values_copied_from_input(self) -> None:
        values = core_values()
        v = make_variant(values=values)
        values["restore"] = False
        self.assertIs(v.get("restore"), True)

    def test_get_absent_dimension(self) -> None:
        v = make_variant(tool=Tool.EXTERNAL, values={SOURCE_CHANGE_SCOPE: NOT_APPLICABLE})
        self.assertIsNone(v.get(RESTORE))
        self.assertFalse(v.has(RESTORE))

    def test_name_and_describe(self) -> None:
        v = make_variant("WebSmallCore", BUILD)
        self.assertEqual(v.name, "WebSmallCore.Build")
        text = v.describe()
        self.assertTrue(text.startswith("WebSmallCore.Build(sdk-version=2.0.2, restore=true"))
        self.assertTrue(text.endswith("source-change-scope=not-applicable)"))

    def test_equal_variants_hash_equal(self) -> None:
        a = make_variant()
        b = make_variant()
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertEqual(a.identity, b.identity)

    def test_category_label(self) -> None:
        self.assertEqual(Category(Tool.CORE, large=True).label, "core/large")
        self.assertEqual(Category(Tool.FRAMEWORK).label, "framework/small")


# ---------------------------------------------------------------------------
# Descriptor expansion tests
# ---------------------------------------------------------------------------


class TestExpandDescriptor(unittest.TestCase):
    """Tests for expand_descriptor()."""

    def test_cross_product_size(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "ext",
            (SOURCE_CHANGE_SCOPE, RESTORE),
            operations=(BUILD,),
        )
        variants = expand_descriptor(desc)
        self.assertEqual(len(variants), 3 * 2)

    def test_enumeration_order_follows_registry_and_domain(self) -> None:
        """Dimensions in registry order, values in domain order, last varies fastest."""
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "ext",
            (SOURCE_CHANGE_SCOPE, RESTORE),
            operations=(BUILD,),
        )
        variants = expand_descriptor(desc)
        first, second = variants[0], variants[1]
        self.assertEqual(first.values, {RESTORE: False, SOURCE_CHANGE_SCOPE: NOT_APPLICABLE})
        self.assertEqual(second.values, {RESTORE: False, SOURCE_CHANGE_SCOPE: LEAF_FILE_CHANGED})

    def test_restrict_narrows_domain(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "ext",
            (SOURCE_CHANGE_SCOPE,),
            operations=(BUILD,),
            restrict={SOURCE_CHANGE_SCOPE: (NOT_APPLICABLE,)},
        )
        self.assertEqual(len(expand_descriptor(desc)), 1)

    def test_category_comes_from_descriptor_not_name(self) -> None:
        """A type named like a core app but tagged framework is a framework variant."""
        desc = VariantDescriptor(
            "MisleadingCoreName",
            Category(Tool.FRAMEWORK),
            "x",
            ("restore", "parallel", "msbuild-version", "node-reuse", SOURCE_CHANGE_SCOPE),
            operations=(BUILD,),
        )
        variants = expand_descriptor(desc)
        self.assertTrue(all(v.category.is_framework for v in variants))
        self.assertFalse(any(v.category.is_core for v in variants))

    def test_source_file_resolved_for_source_changed(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL, large=True),
            "ext",
            (SOURCE_CHANGE_SCOPE,),
            operations=(BUILD, SOURCE_CHANGED),
            sources={LEAF_FILE_CHANGED: "leaf.cs"},
        )
        variants = expand_descriptor(desc)
        leaf = [
            v
            for v in variants
            if v.operation == SOURCE_CHANGED and v.get(SOURCE_CHANGE_SCOPE) == LEAF_FILE_CHANGED
        ]
        self.assertEqual(leaf[0].source_file, "leaf.cs")
        builds = [v for v in variants if v.operation == BUILD]
        self.assertTrue(all(v.source_file == "" for v in builds))

    def test_missing_required_dimension(self) -> None:
        desc = VariantDescriptor(
            "Fw", Category(Tool.FRAMEWORK), "x", (RESTORE, SOURCE_CHANGE_SCOPE)
        )
        with self.assertRaises(CatalogueError) as ctx:
            expand_descriptor(desc)
        self.assertIn("msbuild-version", str(ctx.exception))

    def test_unknown_dimension(self) -> None:
        desc = VariantDescriptor(
            "Ext", Category(Tool.EXTERNAL), "x", (SOURCE_CHANGE_SCOPE, "bogus")
        )
        with self.assertRaises(CatalogueError):
            expand_descriptor(desc)

    def test_restrict_outside_domain(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "x",
            (SOURCE_CHANGE_SCOPE,),
            restrict={SOURCE_CHANGE_SCOPE: ("somewhere",)},
        )
        with self.assertRaises(CatalogueError):
            expand_descriptor(desc)

    def test_restrict_undeclared_dimension(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "x",
            (SOURCE_CHANGE_SCOPE,),
            restrict={RESTORE: (True,)},
        )
        with self.assertRaises(CatalogueError):
            expand_descriptor(desc)

    def test_unknown_source_scope(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "x",
            (SOURCE_CHANGE_SCOPE,),
            sources={"middle": "a.cs"},
        )
        with self.assertRaises(CatalogueError):
            expand_descriptor(desc)


# ---------------------------------------------------------------------------
# Catalogue tests
# ---------------------------------------------------------------------------


class TestBuildCatalogue(unittest.TestCase):
    """Tests for build_catalogue() and the built-in descriptor table."""

    def test_duplicate_identity_rejected(self) -> None:
        desc = VariantDescriptor("Ext", Category(Tool.EXTERNAL), "x", (SOURCE_CHANGE_SCOPE,))
        with self.assertRaises(CatalogueError) as ctx:
            build_catalogue([desc, desc])
        self.assertIn("Duplicate", str(ctx.exception))

    def test_duplicate_operation_rejected(self) -> None:
        desc = VariantDescriptor(
            "Ext",
            Category(Tool.EXTERNAL),
            "x",
            (SOURCE_CHANGE_SCOPE,),
            operations=(BUILD, BUILD),
        )
        with self.assertRaises(CatalogueError):
            build_catalogue([desc])

    def test_default_catalogue_is_cached_tuple(self) -> None:
        cat = default_catalogue()
        self.assertIsInstance(cat, tuple)
        self.assertIs(cat, default_catalogue())

    def test_default_catalogue_size(self) -> None:
        core = 4 * 2 * 2 * 2 * 3 * 2 * 2 * 2 * 3
        framework = 2 * 2 * 3 * 2 * 3
        gradle = 3
        expected = len(OPERATIONS) * (2 * core + 2 * framework + gradle)
        self.assertEqual(len(default_catalogue()), expected)

    def test_every_variant_has_required_dimensions(self) -> None:
        for v in default_catalogue():
            if v.category.is_core:
                self.assertEqual(set(v.values), set(REGISTRY.names))
            self.assertTrue(v.has(SOURCE_CHANGE_SCOPE))

    def test_type_names_in_declaration_order(self) -> None:
        self.assertEqual(
            type_names(default_catalogue()), [d.type_name for d in DESCRIPTORS]
        )

    def test_identities_unique(self) -> None:
        cat = default_catalogue()
        self.assertEqual(len({v.identity for v in cat}), len(cat))

    def test_gradle_edits_distinct_controllers(self) -> None:
        edited = {
            v.get(SOURCE_CHANGE_SCOPE): v.source_file
            for v in default_catalogue()
            if v.type_name == "WebLargeGradle" and v.operation == SOURCE_CHANGED
        }
        self.assertEqual(
            edited,
            {
                NOT_APPLICABLE: "",
                LEAF_FILE_CHANGED: "mvc/src/main/java/hello/Home009Controller.java",
                ROOT_FILE_CHANGED: "mvc/src/main/java/hello/Home076Controller.java",
            },
        )


if __name__ == "__main__":
    unittest.main()
