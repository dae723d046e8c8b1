"""
Memoized Selectors
==================

A selector is a pure function of store state. ``create_selector`` builds one from
one or more input selectors and a combiner:

```python
select_posts_by_user = create_selector(
    select_all_posts,
    lambda state, user_id: user_id,
    lambda posts, user_id: tuple(p for p in posts if p["user"] == user_id),
)
```

On every call all input selectors run with the same arguments. When each input
is the same as on the previous call the cached result is returned and the
combiner is skipped. Composite values are compared by identity and primitives
(None, bool, numbers, str, bytes) by value, never deeply.

Because the cache holds only the most recent inputs, calling one selector with
two alternating argument sets recomputes every time. Use ``SelectorFamily`` to
keep one selector per argument when a view needs several at once.
"""

from typing import Any, Callable, Hashable, Optional, Sequence, Tuple

from cachetools import LRUCache

from .config import SELECTOR_FAMILY_SIZE

_PRIMITIVES = (type(None), bool, int, float, complex, str, bytes)

# Sentinel for "no cached inputs yet"
_MISSING = object()


def _same_value(a: Any, b: Any) -> bool:
    if a is b:
        return True
    if type(a) is type(b) and isinstance(a, _PRIMITIVES):
        # NaN never equals itself but is still the same input
        return a == b or (a != a and b != b)
    return False


class Selector:
    """Callable selector with a single-entry result cache."""

    __slots__ = (
        "_input_selectors",
        "_combiner",
        "_last_inputs",
        "_last_result",
        "_recomputations",
        "_name",
    )

    def __init__(
        self,
        input_selectors: Sequence[Callable[..., Any]],
        combiner: Callable[..., Any],
        name: Optional[str] = None,
    ):
        if not input_selectors:
            raise ValueError("A selector needs at least one input selector")
        for candidate in (*input_selectors, combiner):
            if not callable(candidate):
                raise TypeError(f"Selector inputs must be callable, got {candidate!r}")

        self._input_selectors = tuple(input_selectors)
        self._combiner = combiner
        self._last_inputs: Any = _MISSING
        self._last_result: Any = None
        self._recomputations = 0
        self._name = name or getattr(combiner, "__name__", "selector")

    def __call__(self, state: Any, *args: Any) -> Any:
        inputs = tuple(select(state, *args) for select in self._input_selectors)

        if self._last_inputs is not _MISSING and self._inputs_unchanged(inputs):
            return self._last_result

        result = self._combiner(*inputs)
        self._recomputations += 1
        self._last_inputs = inputs
        self._last_result = result
        return result

    def _inputs_unchanged(self, inputs: Tuple[Any, ...]) -> bool:
        previous = self._last_inputs
        if len(previous) != len(inputs):
            return False
        return all(_same_value(old, new) for old, new in zip(previous, inputs))

    @property
    def name(self) -> str:
        return self._name

    @property
    def combiner(self) -> Callable[..., Any]:
        return self._combiner

    @property
    def input_selectors(self) -> Tuple[Callable[..., Any], ...]:
        return self._input_selectors

    def recomputations(self) -> int:
        """Number of times the combiner has run."""
        return self._recomputations

    def reset_recomputations(self) -> None:
        self._recomputations = 0

    def clear_cache(self) -> None:
        """Drop the cached inputs and result; the next call recomputes."""
        self._last_inputs = _MISSING
        self._last_result = None

    def __repr__(self) -> str:
        return (
            f"Selector({self._name}, inputs={len(self._input_selectors)}, "
            f"recomputations={self._recomputations})"
        )


def create_selector(*args: Any, name: Optional[str] = None) -> Selector:
    """
    Create a memoized selector.

    Accepts either ``create_selector(in1, in2, ..., combiner)`` or
    ``create_selector([in1, in2, ...], combiner)``.
    """
    if len(args) < 2:
        raise TypeError(
            "create_selector() takes one or more input selectors and a combiner"
        )

    *inputs, combiner = args
    if len(inputs) == 1 and isinstance(inputs[0], (list, tuple)):
        inputs = list(inputs[0])

    return Selector(inputs, combiner, name=name)


class SelectorFamily:
    """
    One memoized selector per key, held in an LRU cache.

    ``factory(key)`` builds the selector for a key; it is called with
    ``(state, *args)`` and its result cache is independent of the other keys.

    Example:
        posts_by_user = SelectorFamily(
            lambda user_id: create_selector(
                select_all_posts,
                lambda posts: tuple(p for p in posts if p["user"] == user_id),
            )
        )
        posts_by_user(state, "1")
    """

    def __init__(
        self,
        factory: Callable[[Hashable], Callable[..., Any]],
        maxsize: int = SELECTOR_FAMILY_SIZE,
    ):
        self._factory = factory
        self._selectors: LRUCache = LRUCache(maxsize=maxsize)

    def get(self, key: Hashable) -> Callable[..., Any]:
        """Return the selector for ``key``, building it on first use."""
        selector = self._selectors.get(key)
        if selector is None:
            selector = self._factory(key)
            self._selectors[key] = selector
        return selector

    def __call__(self, state: Any, key: Hashable, *args: Any) -> Any:
        return self.get(key)(state, *args)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._selectors

    def __len__(self) -> int:
        return len(self._selectors)

    def clear(self) -> None:
        self._selectors.clear()
