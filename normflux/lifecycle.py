"""
Async Request Lifecycle
=======================

``AsyncThunk`` wraps one asynchronous client call in three commands:

    Pending    -> dispatched before the call is awaited
    Fulfilled  -> dispatched with the payload when the call returns
    Rejected   -> dispatched with the error message when the call raises

Errors from the payload creator never escape ``run()``; they become a Rejected
command, which ``run()`` returns. A payload the reducers fail to apply is
rejected the same way, so the status never stays at loading. Callers that need
the failure as an exception (form submission, for example) pass the result to
``unwrap_result``.

Collections that expose a request status use ``LoadableState`` and fold the
three commands into it with ``track``:

    idle/succeeded/failed --Pending--> loading
    loading --Fulfilled--> merge payload, then succeeded (one new state)
    loading --Rejected--> failed, error recorded, records untouched
"""

import logging
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, TypeVar, Union

from .actions import Action, Fulfilled, Pending, Rejected
from .entity_adapter import EntityState
from .exceptions import NormfluxError, ThunkRejectedError

if TYPE_CHECKING:
    from .store import Store

logger = logging.getLogger(__name__)

L = TypeVar("L", bound="LoadableState")


class RequestStatus(str, Enum):
    """Status of the most recent request issued for a collection."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadableState(EntityState):
    """Normalized collection plus the status of its fetch request."""

    status: RequestStatus = RequestStatus.IDLE
    error: Optional[str] = None


def _with_status(state: L, status: RequestStatus, error: Optional[str] = None) -> L:
    if state.status is status and state.error == error:
        return state
    return replace(state, status=status, error=error)


def track(
    state: L,
    command: Action,
    type_prefix: str,
    merge: Callable[[L, Any], L],
) -> L:
    """
    Apply a lifecycle command of the request ``type_prefix`` to ``state``.

    ``merge(state, payload)`` folds a fulfilled payload into the collection; the
    status flip is applied to its result, so the returned state never shows
    ``succeeded`` next to the old records. Commands of other requests are
    returned unchanged.
    """
    if getattr(command, "type_prefix", None) != type_prefix:
        return state

    match command:
        case Pending():
            logger.info("%s: %s -> loading", type_prefix, state.status.value)
            return _with_status(state, RequestStatus.LOADING)
        case Fulfilled(payload=payload):
            logger.info("%s: %s -> succeeded", type_prefix, state.status.value)
            return _with_status(merge(state, payload), RequestStatus.SUCCEEDED)
        case Rejected(error=error):
            logger.info("%s: %s -> failed", type_prefix, state.status.value)
            return _with_status(state, RequestStatus.FAILED, error)
        case _:
            return state


@dataclass(frozen=True)
class ThunkApi:
    """What a payload creator can reach while it runs."""

    get_state: Callable[[], Any]
    dispatch: Callable[[Action], Action]
    extra: Any
    request_id: str


PayloadCreator = Callable[[Any, ThunkApi], Awaitable[Any]]
Condition = Callable[[Any, ThunkApi], bool]


class AsyncThunk:
    """
    Asynchronous request bound to a command type prefix.

    Args:
        type_prefix: name shared by the Pending/Fulfilled/Rejected commands,
            e.g. ``"posts/fetchPosts"``
        payload_creator: ``async (arg, api) -> payload``
        condition: optional ``(arg, api) -> bool``; when it returns False the
            request is skipped and nothing is dispatched
    """

    def __init__(
        self,
        type_prefix: str,
        payload_creator: PayloadCreator,
        condition: Optional[Condition] = None,
    ):
        self.type_prefix = type_prefix
        self._payload_creator = payload_creator
        self._condition = condition

    def matches(self, command: Action) -> bool:
        """True for lifecycle commands produced by this thunk."""
        return (
            isinstance(command, (Pending, Fulfilled, Rejected))
            and command.type_prefix == self.type_prefix
        )

    async def run(
        self, store: "Store", arg: Any = None
    ) -> Optional[Union[Fulfilled, Rejected]]:
        """
        Issue the request against ``store`` and return the final command.

        Returns ``None`` when ``condition`` vetoed the request.
        """
        request_id = uuid.uuid4().hex
        api = ThunkApi(
            get_state=store.get_state,
            dispatch=store.dispatch,
            extra=store.extra,
            request_id=request_id,
        )

        if self._condition is not None and not self._condition(arg, api):
            logger.debug("%s: skipped by condition", self.type_prefix)
            return None

        store.dispatch(Pending(self.type_prefix, request_id, arg))

        try:
            payload = await self._payload_creator(arg, api)
        except Exception as e:
            logger.warning("%s rejected: %s", self.type_prefix, e)
            return self._reject(store, request_id, arg, e)

        fulfilled = Fulfilled(self.type_prefix, request_id, payload, arg)
        try:
            store.dispatch(fulfilled)
        except Exception as e:
            # The reducer could not fold the payload in; state is still loading
            logger.exception("%s: payload could not be applied", self.type_prefix)
            return self._reject(store, request_id, arg, e)
        return fulfilled

    def _reject(
        self, store: "Store", request_id: str, arg: Any, error: Exception
    ) -> Rejected:
        command = Rejected(
            self.type_prefix,
            request_id,
            error=str(error) or type(error).__name__,
            error_type=type(error).__name__,
            arg=arg,
        )
        store.dispatch(command)
        return command

    def __call__(self, store: "Store", arg: Any = None):
        return self.run(store, arg)

    def __repr__(self) -> str:
        return f"AsyncThunk({self.type_prefix!r})"


def unwrap_result(command: Optional[Union[Fulfilled, Rejected]]) -> Any:
    """Return the payload of a Fulfilled command; raise for anything else."""
    match command:
        case Fulfilled(payload=payload):
            return payload
        case Rejected():
            raise ThunkRejectedError(command)
        case None:
            raise NormfluxError("Request was not issued")
        case _:
            raise TypeError(f"Not a request result: {command!r}")
