"""
Commands understood by the normflux reducers.

Every state change goes through Store.dispatch() with one of the frozen
dataclasses below. ``Action`` is the closed union of all of them; slice reducers
handle it with a ``match`` statement and fall through to returning the state
unchanged for commands they do not own.

Lifecycle commands (Pending, Fulfilled, Rejected) are shared by all async
requests and carry the ``type_prefix`` of the AsyncThunk that produced them.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union


@dataclass(frozen=True, slots=True)
class Pending:
    """A request has been issued and is awaiting the client."""

    type_prefix: str
    request_id: str
    arg: Any = None

    @property
    def type(self) -> str:
        return f"{self.type_prefix}/pending"


@dataclass(frozen=True, slots=True)
class Fulfilled:
    """A request completed; ``payload`` is the validated response data."""

    type_prefix: str
    request_id: str
    payload: Any = None
    arg: Any = None

    @property
    def type(self) -> str:
        return f"{self.type_prefix}/fulfilled"


@dataclass(frozen=True, slots=True)
class Rejected:
    """A request failed; ``error`` is the message of the raised exception."""

    type_prefix: str
    request_id: str
    error: Optional[str] = None
    error_type: str = "Exception"
    arg: Any = None

    @property
    def type(self) -> str:
        return f"{self.type_prefix}/rejected"


@dataclass(frozen=True, slots=True)
class ReactionAdded:
    """Increment one reaction counter on one post."""

    post_id: str
    reaction: str

    @property
    def type(self) -> str:
        return "posts/reactionAdded"


@dataclass(frozen=True, slots=True)
class PostUpdated:
    """Replace the title and content of an existing post."""

    id: str
    title: str
    content: str

    @property
    def type(self) -> str:
        return "posts/postUpdated"


@dataclass(frozen=True, slots=True)
class AllNotificationsRead:
    """Mark every notification as read."""

    @property
    def type(self) -> str:
        return "notifications/allNotificationsRead"


Action = Union[
    Pending,
    Fulfilled,
    Rejected,
    ReactionAdded,
    PostUpdated,
    AllNotificationsRead,
]


__all__ = [
    "Action",
    "AllNotificationsRead",
    "Fulfilled",
    "Pending",
    "PostUpdated",
    "ReactionAdded",
    "Rejected",
]
