"""
Normalized Entity Collections
=============================

An ``EntityState`` stores records of one kind in normalized form:

- ``ids``: tuple of record ids, unique, kept in comparator order
- ``entities``: read-only mapping of id to record

``EntityAdapter`` provides the operations that build new states from old ones.
Every operation is copy-on-write: it returns a new state only when a record or
the id order actually changes, and returns the very same state object
otherwise. Records that are not touched keep their identity across states, so
selectors and subscribers can compare by reference.

Example:
    adapter = EntityAdapter(sort_comparer=by_date_descending)
    state = adapter.get_initial_state()
    state = adapter.upsert_many(state, [{"id": "1", "date": "2021-01-01"}])
    adapter.get_selectors().select_all(state)
"""

import logging
from dataclasses import dataclass, field, replace
from functools import cmp_to_key
from types import MappingProxyType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    NamedTuple,
    Optional,
    Tuple,
    Type,
    TypeVar,
    Union,
)

from .selectors import Selector, create_selector

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
Comparer = Callable[[Mapping[str, Any], Mapping[str, Any]], int]

S = TypeVar("S", bound="EntityState")


def _empty_entities() -> Mapping[str, Record]:
    return MappingProxyType({})


@dataclass(frozen=True)
class EntityState:
    """Immutable normalized collection."""

    ids: Tuple[str, ...] = ()
    entities: Mapping[str, Record] = field(default_factory=_empty_entities)

    def __post_init__(self):
        if not isinstance(self.ids, tuple):
            object.__setattr__(self, "ids", tuple(self.ids))
        if not isinstance(self.entities, MappingProxyType):
            object.__setattr__(self, "entities", MappingProxyType(dict(self.entities)))

    def is_consistent(self) -> bool:
        """True when ids are unique and match the entity keys exactly."""
        return len(set(self.ids)) == len(self.ids) and set(self.ids) == set(
            self.entities
        )


class Update(NamedTuple):
    """Changes to merge into the record with the given id."""

    id: str
    changes: Mapping[str, Any]


def _compare(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def by_date_descending(a: Mapping[str, Any], b: Mapping[str, Any]) -> int:
    """Comparator putting the newest ``date`` first (ISO-8601 strings)."""
    return _compare(b["date"], a["date"])


def _default_select_id(record: Mapping[str, Any]) -> str:
    return record["id"]


def _merge(existing: Record, changes: Mapping[str, Any]) -> Record:
    """Shallow merge; returns ``existing`` itself when no field differs."""
    for key, value in changes.items():
        if key not in existing or existing[key] != value:
            return {**existing, **changes}
    return existing


class EntitySelectors(NamedTuple):
    select_ids: Callable[..., Tuple[str, ...]]
    select_entities: Callable[..., Mapping[str, Record]]
    select_all: Selector
    select_total: Callable[..., int]
    select_by_id: Callable[[Any, str], Optional[Record]]


class EntityAdapter:
    """
    CRUD operations over ``EntityState`` with comparator-ordered ids.

    Args:
        select_id: returns the id of a record (default: ``record["id"]``)
        sort_comparer: ``cmp(a, b) -> int`` used to order ids; ``None`` keeps
            insertion order. Sorting is stable, so records that compare equal
            keep their relative order.
    """

    def __init__(
        self,
        select_id: Optional[Callable[[Mapping[str, Any]], str]] = None,
        sort_comparer: Optional[Comparer] = None,
    ):
        self.select_id = select_id or _default_select_id
        self.sort_comparer = sort_comparer
        self._sort_key = cmp_to_key(sort_comparer) if sort_comparer else None

    # ========================================================================
    # STATE CONSTRUCTION
    # ========================================================================

    def get_initial_state(
        self, state_class: Type[S] = EntityState, **extra: Any
    ) -> S:
        """Empty collection; ``extra`` fills additional fields of ``state_class``."""
        return state_class(**extra)

    def _commit(self, state: S, ids: List[str], entities: Dict[str, Record]) -> S:
        if self._sort_key is not None:
            sort_key = self._sort_key
            ids = sorted(ids, key=lambda record_id: sort_key(entities[record_id]))
        new_ids = tuple(ids)
        if new_ids == state.ids:
            new_ids = state.ids
        return replace(state, ids=new_ids, entities=MappingProxyType(entities))

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    def set_all(self, state: S, records: Iterable[Mapping[str, Any]]) -> S:
        """Replace the whole collection with ``records``."""
        previous = state.entities
        entities: Dict[str, Record] = {}
        for record in records:
            record_id = self.select_id(record)
            existing = previous.get(record_id)
            entities[record_id] = (
                existing if existing is not None and existing == record else dict(record)
            )

        new_state = self._commit(state, list(entities), entities)
        unchanged = (
            new_state.ids is state.ids
            and len(entities) == len(previous)
            and all(previous.get(key) is value for key, value in entities.items())
        )
        return state if unchanged else new_state

    def add_one(self, state: S, record: Mapping[str, Any]) -> S:
        return self.add_many(state, (record,))

    def add_many(self, state: S, records: Iterable[Mapping[str, Any]]) -> S:
        """Insert records; an existing id has its data replaced and is re-placed."""
        entities = dict(state.entities)
        ids = list(state.ids)
        changed = False

        for record in records:
            record_id = self.select_id(record)
            existing = entities.get(record_id)
            if existing is not None and existing == record:
                continue
            if record_id not in entities:
                ids.append(record_id)
            entities[record_id] = dict(record)
            changed = True

        if not changed:
            return state
        return self._commit(state, ids, entities)

    def upsert_one(self, state: S, record: Mapping[str, Any]) -> S:
        return self.upsert_many(state, (record,))

    def upsert_many(self, state: S, records: Iterable[Mapping[str, Any]]) -> S:
        """
        Merge records into the collection by id.

        Fields of an existing record that the incoming record does not name are
        kept. Applying the same batch twice leaves the state object unchanged
        the second time.
        """
        entities = dict(state.entities)
        ids = list(state.ids)
        changed = False

        for record in records:
            record_id = self.select_id(record)
            existing = entities.get(record_id)
            if existing is None:
                ids.append(record_id)
                entities[record_id] = dict(record)
                changed = True
                continue

            merged = _merge(existing, record)
            if merged is not existing:
                entities[record_id] = merged
                changed = True

        if not changed:
            return state
        return self._commit(state, ids, entities)

    def update_one(self, state: S, record_id: str, changes: Mapping[str, Any]) -> S:
        return self.update_many(state, (Update(record_id, changes),))

    def update_many(
        self,
        state: S,
        updates: Iterable[Union[Update, Tuple[str, Mapping[str, Any]]]],
    ) -> S:
        """
        Merge changes into existing records.

        Updates for ids that are not in the collection are ignored. A change
        to the id field moves the record to its new id.
        """
        entities = dict(state.entities)
        ids = list(state.ids)
        changed = False

        for record_id, changes in updates:
            existing = entities.get(record_id)
            if existing is None:
                logger.debug("Ignoring update for unknown id %r", record_id)
                continue

            merged = _merge(existing, changes)
            if merged is existing:
                continue

            new_id = self.select_id(merged)
            if new_id != record_id:
                del entities[record_id]
                ids = [new_id if i == record_id else i for i in ids if i != new_id]
            entities[new_id] = merged
            changed = True

        if not changed:
            return state
        return self._commit(state, ids, entities)

    def remove_one(self, state: S, record_id: str) -> S:
        return self.remove_many(state, (record_id,))

    def remove_many(self, state: S, record_ids: Iterable[str]) -> S:
        doomed = {record_id for record_id in record_ids if record_id in state.entities}
        if not doomed:
            return state
        entities = {k: v for k, v in state.entities.items() if k not in doomed}
        ids = [record_id for record_id in state.ids if record_id not in doomed]
        return replace(state, ids=tuple(ids), entities=MappingProxyType(entities))

    def remove_all(self, state: S) -> S:
        if not state.ids:
            return state
        return replace(state, ids=(), entities=MappingProxyType({}))

    # ========================================================================
    # SELECTORS
    # ========================================================================

    def get_selectors(
        self, select_state: Optional[Callable[[Any], EntityState]] = None
    ) -> EntitySelectors:
        """
        Build read accessors.

        Without ``select_state`` the selectors take an ``EntityState`` directly;
        otherwise they take the root state and locate the collection with it.
        ``select_all`` is memoized on the ids tuple and the entities mapping.
        """
        if select_state is None:
            select_state = lambda state: state  # noqa: E731

        def select_ids(state: Any, *_: Any) -> Tuple[str, ...]:
            return select_state(state).ids

        def select_entities(state: Any, *_: Any) -> Mapping[str, Record]:
            return select_state(state).entities

        def select_total(state: Any, *_: Any) -> int:
            return len(select_state(state).ids)

        def select_by_id(state: Any, record_id: str) -> Optional[Record]:
            return select_state(state).entities.get(record_id)

        select_all = create_selector(
            select_ids,
            select_entities,
            lambda ids, entities: tuple(entities[record_id] for record_id in ids),
            name="select_all",
        )

        return EntitySelectors(
            select_ids=select_ids,
            select_entities=select_entities,
            select_all=select_all,
            select_total=select_total,
            select_by_id=select_by_id,
        )
