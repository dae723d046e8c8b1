"""Unit tests for normalized collections and EntityAdapter operations."""

import pytest

from normflux import EntityAdapter, EntityState, Update, by_date_descending


@pytest.fixture
def dated():
    return EntityAdapter(sort_comparer=by_date_descending)


@pytest.fixture
def plain():
    return EntityAdapter()


def _dates(state):
    return [state.entities[i]["date"] for i in state.ids]


@pytest.mark.unit
@pytest.mark.adapter
def test_initial_state_is_empty_and_consistent(plain):
    """A fresh collection has no ids and no entities"""
    state = plain.get_initial_state()

    assert state.ids == ()
    assert dict(state.entities) == {}
    assert state.is_consistent()


@pytest.mark.unit
@pytest.mark.adapter
def test_entities_mapping_is_read_only(plain):
    """Stored entities cannot be assigned through the state"""
    state = plain.add_one(plain.get_initial_state(), {"id": "a"})

    with pytest.raises(TypeError):
        state.entities["b"] = {"id": "b"}


@pytest.mark.unit
@pytest.mark.adapter
def test_set_all_replaces_previous_records(plain):
    """set_all drops records that are not in the new batch"""
    state = plain.set_all(plain.get_initial_state(), [{"id": "a"}, {"id": "b"}])

    state = plain.set_all(state, [{"id": "c", "name": "C"}])

    assert state.ids == ("c",)
    assert dict(state.entities) == {"c": {"id": "c", "name": "C"}}


@pytest.mark.unit
@pytest.mark.adapter
def test_set_all_with_identical_data_returns_same_state(plain):
    """Re-setting equal records keeps the state reference"""
    records = [{"id": "a", "name": "A"}, {"id": "b", "name": "B"}]
    state = plain.set_all(plain.get_initial_state(), records)

    again = plain.set_all(state, [dict(r) for r in records])

    assert again is state


@pytest.mark.unit
@pytest.mark.adapter
def test_set_all_does_not_merge_with_previous_fields(plain):
    """set_all replaces records instead of merging them"""
    state = plain.set_all(plain.get_initial_state(), [{"id": "a", "name": "A", "age": 3}])

    state = plain.set_all(state, [{"id": "a", "name": "B"}])

    assert state.entities["a"] == {"id": "a", "name": "B"}


@pytest.mark.unit
@pytest.mark.adapter
def test_add_one_keeps_insertion_order_without_comparator(plain):
    """Without a comparator ids stay in insertion order"""
    state = plain.get_initial_state()
    for record_id in ("c", "a", "b"):
        state = plain.add_one(state, {"id": record_id})

    assert state.ids == ("c", "a", "b")


@pytest.mark.unit
@pytest.mark.adapter
def test_add_one_places_record_by_comparator(dated):
    """A newer record is placed first, not appended"""
    state = dated.add_many(
        dated.get_initial_state(),
        [{"id": "1", "date": "t2"}, {"id": "2", "date": "t1"}],
    )

    state = dated.add_one(state, {"id": "3", "date": "t3"})

    assert state.ids == ("3", "1", "2")


@pytest.mark.unit
@pytest.mark.adapter
def test_add_one_overwrites_existing_record_and_replaces_it(dated):
    """Re-adding an id replaces its data and moves it to its new position"""
    state = dated.add_many(
        dated.get_initial_state(),
        [{"id": "1", "date": "t2", "title": "x"}, {"id": "2", "date": "t1"}],
    )

    state = dated.add_one(state, {"id": "2", "date": "t9"})

    assert state.ids == ("2", "1")
    assert state.entities["2"] == {"id": "2", "date": "t9"}
    assert state.is_consistent()


@pytest.mark.unit
@pytest.mark.adapter
def test_upsert_preserves_fields_missing_from_incoming_record(plain):
    """Upserting merges shallowly and keeps untouched fields"""
    state = plain.add_one(
        plain.get_initial_state(), {"id": "1", "title": "Hello", "content": "World"}
    )

    state = plain.upsert_many(state, [{"id": "1", "title": "Changed"}])

    assert state.entities["1"] == {"id": "1", "title": "Changed", "content": "World"}


@pytest.mark.unit
@pytest.mark.adapter
def test_upsert_inserts_unknown_ids(dated):
    """Records with new ids are inserted in comparator order"""
    state = dated.upsert_many(
        dated.get_initial_state(),
        [{"id": "a", "date": "2021-01-01"}, {"id": "b", "date": "2021-03-01"}],
    )

    state = dated.upsert_many(state, [{"id": "c", "date": "2021-02-01"}])

    assert state.ids == ("b", "c", "a")


@pytest.mark.unit
@pytest.mark.adapter
def test_upsert_many_is_idempotent(dated):
    """Applying the same batch twice gives the same state as applying it once"""
    start = dated.add_one(dated.get_initial_state(), {"id": "x", "date": "t0", "n": 1})
    batch = [
        {"id": "x", "date": "t5"},
        {"id": "y", "date": "t3", "reactions": {"heart": 1}},
    ]

    once = dated.upsert_many(start, batch)
    twice = dated.upsert_many(once, batch)

    assert twice is once
    assert twice == dated.upsert_many(start, batch)


@pytest.mark.unit
@pytest.mark.adapter
def test_upsert_keeps_identity_of_unchanged_records(plain):
    """Records not touched by a merge are shared between states"""
    state = plain.add_many(plain.get_initial_state(), [{"id": "a"}, {"id": "b", "v": 1}])
    record_a = state.entities["a"]

    state = plain.upsert_many(state, [{"id": "b", "v": 2}])

    assert state.entities["a"] is record_a


@pytest.mark.unit
@pytest.mark.adapter
def test_ids_sorted_descending_by_date_after_merges(dated):
    """Every merge leaves the id sequence non-increasing in date"""
    state = dated.get_initial_state()
    batches = [
        [{"id": "1", "date": "2021-01-05"}, {"id": "2", "date": "2021-01-01"}],
        [{"id": "3", "date": "2021-01-03"}, {"id": "1", "date": "2021-01-02"}],
        [{"id": "4", "date": "2021-01-09"}],
    ]

    for batch in batches:
        state = dated.upsert_many(state, batch)
        dates = _dates(state)
        assert dates == sorted(dates, reverse=True)

    assert state.ids == ("4", "3", "1", "2")


@pytest.mark.unit
@pytest.mark.adapter
def test_update_one_with_unknown_id_returns_same_state(plain):
    """Updating a missing record is a no-op, not an error"""
    state = plain.add_one(plain.get_initial_state(), {"id": "1", "title": "a"})

    assert plain.update_one(state, "missing", {"title": "b"}) is state


@pytest.mark.unit
@pytest.mark.adapter
def test_update_one_without_actual_change_returns_same_state(plain):
    """Patching a record with the values it already has changes nothing"""
    state = plain.add_one(plain.get_initial_state(), {"id": "1", "title": "a"})

    assert plain.update_one(state, "1", {"title": "a"}) is state


@pytest.mark.unit
@pytest.mark.adapter
def test_update_one_merges_changes_into_new_record(plain):
    """Updating builds a new record and leaves the old one untouched"""
    state = plain.add_one(plain.get_initial_state(), {"id": "1", "title": "a", "body": "b"})
    before = state.entities["1"]

    updated = plain.update_one(state, "1", {"title": "z"})

    assert updated.entities["1"] == {"id": "1", "title": "z", "body": "b"}
    assert before == {"id": "1", "title": "a", "body": "b"}
    assert updated.ids is state.ids


@pytest.mark.unit
@pytest.mark.adapter
def test_update_many_accepts_plain_tuples_and_reorders(dated):
    """Date changes through updates move records"""
    state = dated.add_many(
        dated.get_initial_state(),
        [{"id": "1", "date": "t2"}, {"id": "2", "date": "t1"}],
    )

    state = dated.update_many(state, [("2", {"date": "t3"}), Update("zzz", {"date": "t9"})])

    assert state.ids == ("2", "1")


@pytest.mark.unit
@pytest.mark.adapter
def test_update_changing_id_moves_record(plain):
    """A changed id field re-keys the record in place"""
    state = plain.add_many(plain.get_initial_state(), [{"id": "a"}, {"id": "b"}])

    state = plain.update_one(state, "a", {"id": "c"})

    assert state.ids == ("c", "b")
    assert "a" not in state.entities
    assert state.entities["c"] == {"id": "c"}
    assert state.is_consistent()


@pytest.mark.unit
@pytest.mark.adapter
def test_remove_operations(plain):
    """Removal drops ids and entities together; unknown ids are ignored"""
    state = plain.add_many(plain.get_initial_state(), [{"id": "a"}, {"id": "b"}, {"id": "c"}])

    assert plain.remove_one(state, "nope") is state

    state = plain.remove_many(state, ["a", "c"])
    assert state.ids == ("b",)
    assert set(state.entities) == {"b"}

    state = plain.remove_all(state)
    assert state.ids == ()
    assert plain.remove_all(state) is state


@pytest.mark.unit
@pytest.mark.adapter
def test_invariant_holds_across_mixed_operations(dated):
    """No sequence of operations leaves orphaned ids or duplicate ids"""
    state = dated.get_initial_state()
    operations = [
        lambda s: dated.add_one(s, {"id": "1", "date": "2021-01-01"}),
        lambda s: dated.upsert_many(s, [{"id": "1", "date": "2021-01-04"}, {"id": "2", "date": "2021-01-02"}]),
        lambda s: dated.add_many(s, [{"id": "2", "date": "2021-01-02"}, {"id": "2", "date": "2021-01-06"}]),
        lambda s: dated.update_one(s, "1", {"id": "3"}),
        lambda s: dated.remove_one(s, "2"),
        lambda s: dated.set_all(s, [{"id": "4", "date": "2021-01-01"}, {"id": "4", "date": "2021-01-03"}, {"id": "5", "date": "2021-01-02"}]),
        lambda s: dated.update_one(s, "5", {"id": "4"}),
    ]

    for operation in operations:
        state = operation(state)
        assert state.is_consistent()
        dates = _dates(state)
        assert dates == sorted(dates, reverse=True)

    assert state.ids == ("4",)


@pytest.mark.unit
@pytest.mark.adapter
def test_extra_state_fields_survive_operations(plain):
    """Operations keep the extra fields of subclassed states"""
    from normflux import LoadableState, RequestStatus

    state = plain.get_initial_state(LoadableState, status=RequestStatus.LOADING)

    state = plain.upsert_many(state, [{"id": "1"}])

    assert isinstance(state, LoadableState)
    assert state.status is RequestStatus.LOADING


@pytest.mark.unit
@pytest.mark.adapter
def test_selectors_read_collection(dated):
    """Generated selectors expose ids, records and lookups"""
    selectors = dated.get_selectors()
    state = dated.add_many(
        dated.get_initial_state(),
        [{"id": "1", "date": "t1"}, {"id": "2", "date": "t2"}],
    )

    assert selectors.select_ids(state) == ("2", "1")
    assert [r["id"] for r in selectors.select_all(state)] == ["2", "1"]
    assert selectors.select_total(state) == 2
    assert selectors.select_by_id(state, "1") == {"id": "1", "date": "t1"}
    assert selectors.select_by_id(state, "404") is None


@pytest.mark.unit
@pytest.mark.adapter
def test_select_all_returns_same_reference_until_data_changes(plain):
    """select_all is memoized on the collection structure"""
    selectors = plain.get_selectors()
    state = plain.add_one(plain.get_initial_state(), {"id": "1", "v": 1})

    first = selectors.select_all(state)
    assert selectors.select_all(state) is first
    assert selectors.select_all(plain.update_one(state, "1", {"v": 1})) is first

    changed = selectors.select_all(plain.update_one(state, "1", {"v": 2}))
    assert changed is not first
    assert changed[0]["v"] == 2


@pytest.mark.unit
@pytest.mark.adapter
def test_selectors_with_root_state_locator():
    """select_state lets selectors read a collection nested in a root state"""
    adapter = EntityAdapter()

    class Root:
        def __init__(self, things):
            self.things = things

    selectors = adapter.get_selectors(lambda root: root.things)
    root = Root(adapter.add_one(EntityState(), {"id": "t"}))

    assert selectors.select_ids(root) == ("t",)
    assert selectors.select_by_id(root, "t") == {"id": "t"}
