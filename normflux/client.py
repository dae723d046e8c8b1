"""
Network client seam.

normflux does not ship a transport. Anything with the two coroutine methods of
``Client`` can be handed to ``create_store`` and is reachable from thunks as
``api.extra``. Responses are expected to be JSON-shaped (dicts and lists); the
helpers below check the record shape before it reaches a reducer.
"""

from typing import Any, Iterable, List, Mapping, Optional, Protocol, runtime_checkable

from .exceptions import MalformedResponseError


@runtime_checkable
class Client(Protocol):
    async def get(self, path: str) -> Any:
        ...

    async def post(self, path: str, body: Any) -> Any:
        ...


def extract(response: Any, key: str) -> Any:
    """Return ``response[key]`` or raise MalformedResponseError."""
    if not isinstance(response, Mapping) or key not in response:
        raise MalformedResponseError(f"Response has no {key!r} field")
    return response[key]


def validate_record(
    record: Any,
    required: Iterable[str] = ("id",),
    what: str = "record",
    types: Optional[Mapping[str, Any]] = None,
) -> Mapping[str, Any]:
    """
    Check one record: a mapping with a string ``id`` and every ``required``
    field. ``types`` maps field names to the type (or tuple of types) the
    field must have whenever it is present.
    """
    if not isinstance(record, Mapping):
        raise MalformedResponseError(
            f"Expected {what} object, got {type(record).__name__}"
        )
    if not isinstance(record.get("id"), str):
        raise MalformedResponseError(f"{what} is missing a string 'id'")
    missing = [name for name in required if name not in record]
    if missing:
        raise MalformedResponseError(
            f"{what} {record['id']!r} is missing {', '.join(missing)}"
        )
    for name, expected in (types or {}).items():
        if name in record and not isinstance(record[name], expected):
            raise MalformedResponseError(
                f"{what} {record['id']!r} has a {type(record[name]).__name__} {name!r}"
            )
    return record


def validate_counts(record: Mapping[str, Any], name: str, what: str = "record") -> None:
    """Check that ``record[name]``, when present, maps keys to non-negative ints."""
    counts = record.get(name)
    if counts is None:
        return
    if not isinstance(counts, Mapping):
        raise MalformedResponseError(
            f"{what} {record['id']!r} has a {type(counts).__name__} {name!r}"
        )
    for key, value in counts.items():
        # bool is an int subclass but never a count
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise MalformedResponseError(
                f"{what} {record['id']!r} has an invalid {name} count {key!r}: {value!r}"
            )


def validate_records(
    payload: Any,
    required: Iterable[str] = ("id",),
    what: str = "record",
    types: Optional[Mapping[str, Any]] = None,
) -> List[Mapping[str, Any]]:
    """Check that ``payload`` is a list of records carrying ``required`` fields."""
    if not isinstance(payload, list):
        raise MalformedResponseError(
            f"Expected a list of {what}s, got {type(payload).__name__}"
        )
    required = tuple(required)
    return [validate_record(record, required, what, types) for record in payload]
