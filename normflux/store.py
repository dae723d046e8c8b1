"""
Store - Explicit State Container
================================

A ``Store`` holds one immutable root state and replaces it through a single
synchronous entry point, ``dispatch``. There is no global store: create one per
application (see ``normflux.app.create_store``) and pass it to the operations
that need it.

Every dispatch:

1. runs the root reducer with the current state and the command
2. swaps in the returned state
3. records a ``Change`` in a bounded history
4. notifies listeners, unless the reducer returned the same state object

Reducers must not dispatch. Listeners may; the state changes at once, and the
resulting Change is delivered after every listener has seen the current one.

Example:
    store = Store(root_reducer, RootState(), extra=client)

    unsubscribe = store.subscribe(lambda change: print(change))
    store.dispatch(ReactionAdded(post_id="1", reaction="heart"))
    unsubscribe()
"""

import logging
import time
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, fields, replace
from functools import reduce
from typing import Any, Callable, Deque, Dict, Iterator, List

from .actions import Action
from .config import DEFAULT_HISTORY_SIZE
from .exceptions import ReducerError
from .selectors import _same_value

logger = logging.getLogger(__name__)

Reducer = Callable[[Any, Action], Any]
Listener = Callable[["Change"], None]


# ============================================================================
# CHANGE RECORDS
# ============================================================================


@dataclass(frozen=True, slots=True)
class Change:
    """Immutable record of one dispatch."""

    command: Any
    old_state: Any
    new_state: Any
    timestamp: float

    def is_identity(self) -> bool:
        """True when the dispatch left the state object untouched."""
        return self.old_state is self.new_state

    def compose(self, other: "Change") -> "Change":
        """Merge two consecutive changes into one spanning both."""
        return Change(
            command=other.command,
            old_state=self.old_state,
            new_state=other.new_state,
            timestamp=max(self.timestamp, other.timestamp),
        )

    @property
    def command_type(self) -> str:
        return getattr(self.command, "type", type(self.command).__name__)

    def __repr__(self) -> str:
        if self.is_identity():
            return f"Change({self.command_type}: unchanged)"
        return f"Change({self.command_type})"


# ============================================================================
# REDUCER COMPOSITION
# ============================================================================


def combine_reducers(**reducers: Reducer) -> Reducer:
    """
    Build a root reducer over a dataclass state from per-field reducers.

    Each keyword names a field of the root state and the reducer that owns it.
    The root state is rebuilt only when at least one field reducer returned a
    new object.
    """

    def combination(state: Any, command: Action) -> Any:
        changes: Dict[str, Any] = {}
        for name, reducer in reducers.items():
            previous = getattr(state, name)
            current = reducer(previous, command)
            if current is not previous:
                changes[name] = current
        if not changes:
            return state
        return replace(state, **changes)

    combination.reducers = dict(reducers)
    return combination


# ============================================================================
# STORE
# ============================================================================


class Store:
    """
    Single-threaded container for an immutable root state.

    Args:
        reducer: ``(state, command) -> state``; must return the same object
            when nothing changes
        initial_state: the starting root state
        extra: handed to thunks as ``api.extra`` (the network client)
        history_size: number of Change records kept
    """

    def __init__(
        self,
        reducer: Reducer,
        initial_state: Any,
        extra: Any = None,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ):
        self._reducer = reducer
        self._state = initial_state
        self.extra = extra

        self._listeners: List[Listener] = []
        self._history: Deque[Change] = deque(maxlen=history_size)

        self._is_reducing = False
        self._batch_depth = 0
        self._pending_changes: List[Change] = []

        self._notifying = False
        self._queued_changes: Deque[Change] = deque()

    # ========================================================================
    # CORE API
    # ========================================================================

    @property
    def state(self) -> Any:
        return self._state

    def get_state(self) -> Any:
        return self._state

    def dispatch(self, command: Action) -> Action:
        """Apply ``command`` and notify listeners. Returns the command."""
        if self._is_reducing:
            raise ReducerError(
                f"Cannot dispatch {command!r} while a reducer is running"
            )

        old_state = self._state
        self._is_reducing = True
        try:
            new_state = self._reducer(old_state, command)
        finally:
            self._is_reducing = False

        self._state = new_state
        change = Change(command, old_state, new_state, time.time())
        self._history.append(change)

        if change.is_identity():
            logger.debug("Dispatched %s: state unchanged", change.command_type)
            return command

        logger.debug("Dispatched %s", change.command_type)
        if self._batch_depth > 0:
            self._pending_changes.append(change)
        else:
            self._notify(change)
        return command

    def replace_reducer(self, reducer: Reducer) -> None:
        self._reducer = reducer

    # ========================================================================
    # SUBSCRIPTION
    # ========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(change)`` after every dispatch that changes state."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def watch(
        self,
        selector: Callable[..., Any],
        callback: Callable[[Any], None],
        *args: Any,
        call_immediately: bool = False,
    ) -> Callable[[], None]:
        """
        Call ``callback(value)`` whenever ``selector(state, *args)`` returns
        something new: a different object, or a different primitive value.

        Pair this with memoized selectors: an unchanged cached result means the
        callback is skipped.
        """
        last = selector(self._state, *args)

        if call_immediately:
            callback(last)

        def on_change(change: Change) -> None:
            nonlocal last
            current = selector(change.new_state, *args)
            if _same_value(current, last):
                return
            last = current
            callback(current)

        return self.subscribe(on_change)

    def _notify(self, change: Change) -> None:
        # A dispatch made by a listener is queued and delivered after every
        # listener has seen the current change, so changes arrive in order
        if self._notifying:
            self._queued_changes.append(change)
            return

        self._notifying = True
        try:
            while True:
                for listener in list(self._listeners):
                    try:
                        listener(change)
                    except Exception:
                        logger.exception(
                            "Listener %r failed while handling %s",
                            listener,
                            change.command_type,
                        )
                if not self._queued_changes:
                    break
                change = self._queued_changes.popleft()
        finally:
            self._notifying = False

    # ========================================================================
    # BATCHING
    # ========================================================================

    @contextmanager
    def batch(self) -> Iterator["Store"]:
        """
        Group dispatches so listeners are notified once, when the outermost
        batch exits, with a single Change spanning all of them.
        """
        outermost = self._batch_depth == 0
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if outermost:
                pending, self._pending_changes = self._pending_changes, []
                if pending:
                    merged = reduce(Change.compose, pending)
                    if not merged.is_identity():
                        self._notify(merged)

    # ========================================================================
    # INTROSPECTION
    # ========================================================================

    def history(self, limit: int = 100) -> List[Change]:
        """Most recent Change records, oldest first."""
        if limit <= 0:
            return []
        return list(self._history)[-limit:]

    def stats(self) -> Dict[str, Any]:
        return {
            "listeners": len(self._listeners),
            "history_size": len(self._history),
            "history_limit": self._history.maxlen,
            "batching": self._batch_depth > 0,
        }

    def __repr__(self) -> str:
        try:
            names = [f.name for f in fields(self._state)]
        except TypeError:
            names = [type(self._state).__name__]
        return f"Store(state={names}, listeners={len(self._listeners)})"


__all__ = [
    "Change",
    "Reducer",
    "Store",
    "combine_reducers",
]
