from __future__ import annotations

import pytest

from parsekit.errors import InvalidMergeError, RelationConfigurationError
from parsekit.models.object import ParseObject
from parsekit.models.relation import ParseRelation
from parsekit.operations import ParseRelationOperation, RelationBuckets, SetOperation


class TestRelationBuckets:
    """Tests for the immutable add/remove buckets."""

    def test_adding_keys_saved_objects_by_id(self, remote) -> None:
        first = remote("Player", "abc")
        again = remote("Player", "abc")
        buckets = RelationBuckets().adding([first, again])
        assert list(buckets.identified) == ["abc"]
        assert buckets.pending == ()

    def test_unsaved_objects_are_pending_by_identity(self, remote) -> None:
        unsaved = remote("Player")
        buckets = RelationBuckets().adding([unsaved, unsaved])
        assert buckets.pending == (unsaved,)
        assert buckets.removing([unsaved]).pending == ()

    def test_pending_never_collides_with_an_id(self, remote) -> None:
        """An object whose id looks like a sentinel stays apart from unsaved objects."""
        unsaved = remote("Player")
        odd_id = remote("Player", "null")
        buckets = RelationBuckets().adding([unsaved, odd_id])
        assert buckets.flatten() == [odd_id, unsaved]

    def test_returns_new_buckets(self, remote) -> None:
        empty = RelationBuckets()
        empty.adding([remote("Player", "abc")])
        assert not empty


class TestRelationConstruction:
    """Construction checks for ParseRelationOperation."""

    def test_mixed_classes_fail(self, remote) -> None:
        objects = [remote("Class1", "a"), remote("Class1", "b"), remote("Class2", "c")]
        with pytest.raises(RelationConfigurationError, match="same class"):
            ParseRelationOperation(objects, None)

    def test_mixed_classes_across_sides_fail(self, remote) -> None:
        with pytest.raises(RelationConfigurationError):
            ParseRelationOperation([remote("Class1", "a")], [remote("Class2", "b")])

    @pytest.mark.parametrize("to_add, to_remove", [(None, None), ([], None), ([], [])])
    def test_no_objects_fail(self, to_add, to_remove) -> None:
        with pytest.raises(RelationConfigurationError, match="no objects"):
            ParseRelationOperation(to_add, to_remove)

    def test_single_object_is_accepted(self, remote) -> None:
        op = ParseRelationOperation(remote("Player", "abc"))
        assert op.target_class == "Player"
        assert len(op.objects_to_add) == 1


class TestRelationEncode:
    """Wire format of relation operations."""

    def test_add_only(self, remote) -> None:
        op = ParseRelationOperation([remote("Player", "abc")])
        assert op.encode() == {
            "__op": "AddRelation",
            "objects": [{"__type": "Pointer", "className": "Player", "objectId": "abc"}],
        }

    def test_remove_only(self, remote) -> None:
        op = ParseRelationOperation(None, [remote("Player", "abc")])
        assert op.encode()["__op"] == "RemoveRelation"

    def test_both_sides_batch(self, remote) -> None:
        op = ParseRelationOperation([remote("Player", "a")], [remote("Player", "b")])
        encoded = op.encode()
        assert encoded["__op"] == "Batch"
        assert [sub["__op"] for sub in encoded["ops"]] == ["AddRelation", "RemoveRelation"]


class TestRelationApply:
    """apply() binds or validates the relation value."""

    def test_apply_on_absent_value_creates_relation(self, remote) -> None:
        parent = remote("Team", "t1")
        relation = ParseRelationOperation([remote("Player", "abc")]).apply(None, parent, "players")
        assert isinstance(relation, ParseRelation)
        assert relation.parent is parent
        assert relation.key == "players"
        assert relation.target_class == "Player"

    def test_apply_on_matching_relation_returns_it(self, remote) -> None:
        existing = ParseRelation(remote("Team", "t1"), "players", "Player")
        op = ParseRelationOperation([remote("Player", "abc")])
        assert op.apply(existing, None, "players") is existing

    def test_apply_on_other_class_fails(self, remote) -> None:
        existing = ParseRelation(remote("Team", "t1"), "players", "Coach")
        with pytest.raises(RelationConfigurationError, match="must be of class Player"):
            ParseRelationOperation([remote("Player", "abc")]).apply(existing, None, "players")

    def test_apply_on_plain_value_fails(self, remote) -> None:
        with pytest.raises(InvalidMergeError):
            ParseRelationOperation([remote("Player", "abc")]).apply(["not", "a", "relation"], None, "players")


class TestRelationMerge:
    """Folding relation operations."""

    def test_merge_with_nothing_returns_self(self, remote) -> None:
        op = ParseRelationOperation([remote("Player", "abc")])
        assert op.merge_with_previous(None) is op

    def test_merge_unions_additions(self, remote) -> None:
        a, b = remote("Player", "a"), remote("Player", "b")
        merged = ParseRelationOperation([b]).merge_with_previous(ParseRelationOperation([a]))
        assert merged.objects_to_add == [a, b]
        assert merged.objects_to_remove == []

    def test_remove_cancels_pending_add(self, remote) -> None:
        player = remote("Player", "a")
        merged = ParseRelationOperation(None, [player]).merge_with_previous(ParseRelationOperation([player]))
        assert merged.objects_to_add == []
        assert merged.objects_to_remove == [player]
        assert merged.encode()["__op"] == "RemoveRelation"

    def test_add_cancels_pending_remove(self, remote) -> None:
        player = remote("Player", "a")
        merged = ParseRelationOperation([player]).merge_with_previous(ParseRelationOperation(None, [player]))
        assert merged.objects_to_add == [player]
        assert merged.objects_to_remove == []

    def test_merge_tracks_unsaved_objects(self, remote) -> None:
        unsaved = remote("Player")
        saved = remote("Player", "a")
        merged = ParseRelationOperation([unsaved]).merge_with_previous(ParseRelationOperation([saved]))
        assert merged.objects_to_add == [saved, unsaved]

    def test_merge_does_not_modify_previous(self, remote) -> None:
        a, b = remote("Player", "a"), remote("Player", "b")
        previous = ParseRelationOperation([a])
        ParseRelationOperation([b], [a]).merge_with_previous(previous)
        assert previous.objects_to_add == [a]
        assert previous.objects_to_remove == []

    def test_merge_with_other_class_fails(self, remote) -> None:
        previous = ParseRelationOperation([remote("Coach", "c")])
        with pytest.raises(RelationConfigurationError):
            ParseRelationOperation([remote("Player", "a")]).merge_with_previous(previous)

    def test_merge_after_set_fails(self, remote) -> None:
        with pytest.raises(InvalidMergeError):
            ParseRelationOperation([remote("Player", "a")]).merge_with_previous(SetOperation(1))

    def test_relation_merges_fold_through_object(self, remote) -> None:
        team = ParseObject("Team", "t1")
        a, b = remote("Player", "a"), remote("Player", "b")
        relation = team.relation("players")
        relation.add([a, b])
        relation.remove(a)
        pending = team.pending_operations()["players"]
        assert pending.objects_to_add == [b]
        assert pending.objects_to_remove == [a]

    def test_rejected_add_keeps_relation_class(self, remote) -> None:
        team = ParseObject("Team", "t1")
        relation = team.relation("players")
        relation.add(remote("Player", "a"))

        with pytest.raises(RelationConfigurationError):
            relation.add(remote("Coach", "c"))

        assert relation.target_class == "Player"
        assert team.pending_operations()["players"].target_class == "Player"
