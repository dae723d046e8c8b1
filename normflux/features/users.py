"""Users slice: the author directory, replaced wholesale on every fetch."""

from typing import Any, Optional

from ..actions import Action
from ..client import extract, validate_records
from ..config import UNKNOWN_AUTHOR, USERS_PATH
from ..entity_adapter import EntityAdapter
from ..lifecycle import AsyncThunk, LoadableState, RequestStatus, ThunkApi, track

USER_FIELDS = ("id", "name")

users_adapter = EntityAdapter()


def initial_state() -> LoadableState:
    return users_adapter.get_initial_state(LoadableState)


async def _fetch_users(_arg: Any, api: ThunkApi):
    response = await api.extra.get(USERS_PATH)
    return validate_records(extract(response, "users"), USER_FIELDS, "user")


fetch_users = AsyncThunk("users/fetchUsers", _fetch_users)


def users_reducer(state: LoadableState, command: Action) -> LoadableState:
    if fetch_users.matches(command):
        return track(state, command, fetch_users.type_prefix, users_adapter.set_all)
    return state


_selectors = users_adapter.get_selectors(lambda state: state.users)

select_all_users = _selectors.select_all
select_user_by_id = _selectors.select_by_id
select_user_ids = _selectors.select_ids


def select_users_status(state: Any) -> RequestStatus:
    return state.users.status


def select_user_name(state: Any, user_id: Optional[str]) -> str:
    """Display name for ``user_id``; dangling or missing ids get a fallback."""
    user = state.users.entities.get(user_id) if user_id is not None else None
    if user is None:
        return UNKNOWN_AUTHOR
    return user.get("name") or UNKNOWN_AUTHOR
