# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Tests for TypeDescriptor and the merge engine."""

import pytest

from genro_xsd.descriptor import (
    Field,
    MergeSettings,
    Origin,
    Record,
    TaggedUnion,
    TypeAlias,
    TypeDescriptor,
    TypeReference,
    TypeRef,
    Variant,
    Wrapper,
    infer_type_name,
)
from genro_xsd.errors import GrammarViolation
from genro_xsd.names import ConstructKind, QualifiedName, to_field_name, to_type_name


def qname(local, kind=ConstructKind.ELEMENT):
    return QualifiedName(None, local, kind)


def record(local, *fields, kind=ConstructKind.COMPLEX_TYPE, transparent=False):
    return TypeDescriptor(
        qname(local, kind),
        Record(to_type_name(local), list(fields)),
        field_hint=to_field_name(local),
        transparent=transparent,
    )


def reference(local, target, *wrappers, kind=ConstructKind.ELEMENT):
    return TypeDescriptor(
        qname(local, kind),
        TypeReference(TypeRef(target, wrappers)),
        field_hint=to_field_name(local),
        xml_name=local,
    )


def union(local):
    return TypeDescriptor(
        qname(local, ConstructKind.CHOICE), TaggedUnion(to_type_name(local)), field_hint=to_field_name(local)
    )


# =============================================================================
# TypeRef
# =============================================================================


class TestTypeRef:
    """Tests for TypeRef rendering and rewriting."""

    def test_render_wrappers(self):
        """Wrappers render inside out."""
        assert TypeRef("Item").render() == "Item"
        assert TypeRef("Item", (Wrapper.OPTIONAL,)).render() == "Item | None"
        assert TypeRef("Item", (Wrapper.REPEATED,)).render() == "list[Item]"
        assert TypeRef("int", (Wrapper.LIST,)).render() == "list[int]"

    def test_rewritten_exact_and_prefix(self):
        """Both the exact name and the dotted prefix are rewritten."""
        assert TypeRef("Note").rewritten("Note", "NoteElement") == TypeRef("NoteElement")
        assert TypeRef("Note.Body").rewritten("Note", "Doc") == TypeRef("Doc.Body")
        assert TypeRef("Notes").rewritten("Note", "Doc") == TypeRef("Notes")

    def test_rewritten_prefix_only(self):
        """With exact=False only path prefixes change."""
        assert TypeRef("Note").rewritten("Note", "Doc", exact=False) == TypeRef("Note")
        assert TypeRef("Note.Body").rewritten("Note", "Doc", exact=False) == TypeRef("Doc.Body")


# =============================================================================
# Record merges
# =============================================================================


class TestRecordMerge:
    """Tests for merging into a Record."""

    def test_reference_becomes_field(self):
        """A TypeReference contributes one field named by its hint."""
        note = record("note")
        note.merge(reference("pitch", "str"))
        assert note.shape.fields == [Field("pitch", TypeRef("str"))]
        assert note.shape.fields[0].xml_name == "pitch"

    def test_transparent_record_is_spliced(self):
        """Fields of a transparent Record are taken over in order."""
        sequence = record("a-b", kind=ConstructKind.SEQUENCE, transparent=True)
        sequence.merge(reference("a", "str"))
        sequence.merge(reference("b", "int"))
        note = record("note")
        note.merge(sequence)
        assert [f.name for f in note.shape.fields] == ["a", "b"]
        assert note.nested == []

    def test_declared_record_becomes_nested(self):
        """A non-transparent Record is nested and referenced by path."""
        pitch = record("pitch", Field("step", TypeRef("str")), kind=ConstructKind.ELEMENT)
        note = record("note")
        note.merge(pitch)
        assert note.shape.fields == [Field("pitch", TypeRef("Note.Pitch"))]
        assert note.nested == [pitch]

    def test_nested_paths_follow_the_owner(self):
        """Path-qualified references are re-rooted at each level."""
        grand = record("grand", Field("x", TypeRef("int")), kind=ConstructKind.ELEMENT)
        pitch = record("pitch", kind=ConstructKind.ELEMENT)
        pitch.merge(grand)
        assert pitch.shape.fields[0].type == TypeRef("Pitch.Grand")
        note = record("note")
        note.merge(pitch)
        assert note.nested[0].shape.fields[0].type == TypeRef("Note.Pitch.Grand")

    def test_splice_moves_nested_types(self):
        """Nested types of a spliced Record move to the receiver."""
        sequence = record("seq", kind=ConstructKind.SEQUENCE, transparent=True)
        sequence.merge(record("item", Field("v", TypeRef("str")), kind=ConstructKind.ELEMENT))
        note = record("note")
        note.merge(sequence)
        assert note.shape.fields == [Field("item", TypeRef("Note.Item"))]
        assert [n.type_name for n in note.nested] == ["Item"]
        assert sequence.nested == []

    def test_disjoint_merge_order_does_not_matter(self):
        """Merging disjoint records in either order yields the same field set."""
        one = record("note")
        one.merge(record("a", Field("x", TypeRef("str")), transparent=True))
        one.merge(record("b", Field("y", TypeRef("int")), transparent=True))
        other = record("note")
        other.merge(record("b", Field("y", TypeRef("int")), transparent=True))
        other.merge(record("a", Field("x", TypeRef("str")), transparent=True))
        assert {(f.name, f.type) for f in one.shape.fields} == {
            (f.name, f.type) for f in other.shape.fields
        }

    def test_attribute_collision_gets_prefix(self):
        """An attribute clashing with an element field is prefixed."""
        item = record("item")
        item.merge(reference("id", "str"))
        item.merge(reference("id", "int", kind=ConstructKind.ATTRIBUTE), MergeSettings.ATTRIBUTE)
        assert [f.name for f in item.shape.fields] == ["id", "attr_id"]
        assert item.shape.fields[1].origin is Origin.ATTRIBUTE
        assert item.shape.fields[1].type == TypeRef("int")

    def test_element_collision_is_a_violation(self):
        """Two element fields with the same name cannot be merged."""
        item = record("item")
        item.merge(reference("id", "str"))
        with pytest.raises(GrammarViolation):
            item.merge(reference("id", "int"))

    def test_restriction_replaces_same_origin(self):
        """Restriction settings replace a field of the same origin."""
        item = record("item")
        item.merge(reference("id", "str"))
        item.merge(reference("id", "int"), MergeSettings.RESTRICTION)
        assert item.shape.fields == [Field("id", TypeRef("int"))]

    def test_merge_into_reference_raises(self):
        """TypeReference and TypeAlias are terminal."""
        with pytest.raises(ValueError):
            reference("a", "str").merge(reference("b", "str"))
        alias = TypeDescriptor(qname("a"), TypeAlias("A", TypeRef("str")))
        with pytest.raises(ValueError):
            alias.merge(reference("b", "str"))


# =============================================================================
# TaggedUnion merges
# =============================================================================


class TestUnionMerge:
    """Tests for merging into a TaggedUnion."""

    def test_references_become_variants(self):
        """Each merged descriptor adds one variant carrying its reference."""
        choice = union("choice")
        choice.merge(reference("pitch", "str"))
        choice.merge(reference("rest", "int"))
        assert choice.shape.variants == [
            Variant("pitch", TypeRef("str")),
            Variant("rest", TypeRef("int")),
        ]

    def test_variant_name_clash_gets_counter(self):
        """Clashing variant names are suffixed."""
        choice = union("choice")
        choice.merge(reference("a", "str"))
        choice.merge(reference("a", "int"))
        choice.merge(reference("a", "bool"))
        assert [v.name for v in choice.shape.variants] == ["a", "a_2", "a_3"]

    def test_transparent_record_is_promoted(self):
        """A sequence inside a choice becomes a nested Record variant."""
        sequence = record("pitch-rest", Field("p", TypeRef("str")), kind=ConstructKind.SEQUENCE, transparent=True)
        choice = union("choice")
        choice.merge(sequence)
        assert choice.shape.variants == [Variant("pitch_rest", TypeRef("Choice.PitchRest"))]
        assert choice.nested[0].transparent is False

    def test_group_copy_uses_its_reference(self):
        """A named group copy is referenced, not nested."""
        group = record("common", Field("title", TypeRef("str")), kind=ConstructKind.GROUP, transparent=True)
        group.reference = TypeRef("Common")
        choice = union("choice")
        choice.merge(group)
        assert choice.shape.variants == [Variant("common", TypeRef("Common"))]
        assert choice.nested == []

    def test_empty_union_fails_validation(self):
        """A TaggedUnion without variants is invalid."""
        with pytest.raises(GrammarViolation):
            union("choice").validate()


# =============================================================================
# Nested types
# =============================================================================


class TestNested:
    """Tests for nested descriptor ownership."""

    def test_identical_nested_type_is_reused(self):
        """Structurally equal nested types are deduplicated, ignoring metadata."""
        parent = record("parent")
        first = record("child", Field("id", TypeRef("str"), origin=Origin.ATTRIBUTE))
        second = record("child", Field("id", TypeRef("str"), origin=Origin.ELEMENT))
        second.doc = "different documentation"
        assert parent.merge_inner(first) == "Child"
        assert parent.merge_inner(second) == "Child"
        assert len(parent.nested) == 1

    def test_different_nested_type_is_renamed(self):
        """A different nested type with the same name gets its kind suffix."""
        parent = record("parent")
        parent.merge_inner(record("child", Field("id", TypeRef("str"))))
        renamed = parent.merge_inner(
            record("child", Field("other", TypeRef("int")), kind=ConstructKind.ELEMENT)
        )
        assert renamed == "ChildElement"
        assert [n.type_name for n in parent.nested] == ["Child", "ChildElement"]

    def test_rename_rewrites_self_references(self):
        """Renaming a type rewrites references to its old name."""
        node = TypeDescriptor(
            qname("node", ConstructKind.COMPLEX_TYPE),
            Record(
                "Node",
                [
                    Field("children", TypeRef("Node", (Wrapper.REPEATED,))),
                    Field("label", TypeRef("str")),
                ],
            ),
        )
        node.rename("NodeComplexType")
        assert node.type_name == "NodeComplexType"
        assert node.shape.fields[0].type == TypeRef("NodeComplexType", (Wrapper.REPEATED,))
        assert node.shape.fields[1].type == TypeRef("str")

    def test_reference_cannot_be_renamed(self):
        """A TypeReference declares no name."""
        with pytest.raises(ValueError):
            reference("a", "str").rename("B")

    def test_copy_is_independent(self):
        """copy() returns a deep copy."""
        original = record("note", Field("a", TypeRef("str")))
        clone = original.copy()
        clone.shape.fields.append(Field("b", TypeRef("int")))
        assert len(original.shape.fields) == 1


class TestHelpers:
    """Tests for naming helpers."""

    def test_infer_type_name(self):
        """Children hints are joined with dashes."""
        assert infer_type_name([reference("pitch", "str"), reference("rest", "str")]) == "pitch-rest"
        assert infer_type_name([]) == ""

    def test_hint_falls_back_to_type_name(self):
        """Without a field hint the rendered name is converted."""
        descriptor = TypeDescriptor(qname("x"), Record("PitchRest"))
        assert descriptor.hint == "pitch_rest"
        assert descriptor.as_ref() == TypeRef("PitchRest")
