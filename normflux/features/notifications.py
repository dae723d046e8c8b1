"""
Notifications slice.

Each fetch asks only for notifications newer than the newest one held. Before a
fetched batch is merged, every notification already held is re-flagged with
``isNew = not read``: whatever the user has seen stops being new, and the new
batch arrives with the flags the server gave it.
"""

import logging
from typing import Any, Iterable, Mapping, Tuple

from ..actions import Action, AllNotificationsRead
from ..client import extract, validate_records
from ..config import NOTIFICATIONS_PATH
from ..entity_adapter import EntityAdapter, Record, Update, by_date_descending
from ..lifecycle import AsyncThunk, LoadableState, RequestStatus, ThunkApi, track
from ..selectors import create_selector

logger = logging.getLogger(__name__)

NOTIFICATION_FIELDS = ("id", "date")
NOTIFICATION_TYPES = {"date": str, "read": bool, "isNew": bool}

notifications_adapter = EntityAdapter(sort_comparer=by_date_descending)


def initial_state() -> LoadableState:
    return notifications_adapter.get_initial_state(LoadableState)


# ============================================================================
# Requests
# ============================================================================


async def _fetch_notifications(_arg: Any, api: ThunkApi):
    # Newest first, so the head of the list carries the latest timestamp
    held = select_all_notifications(api.get_state())
    latest_timestamp = held[0]["date"] if held else ""
    response = await api.extra.get(f"{NOTIFICATIONS_PATH}?since={latest_timestamp}")
    return validate_records(
        extract(response, "notifications"),
        NOTIFICATION_FIELDS,
        "notification",
        NOTIFICATION_TYPES,
    )


fetch_notifications = AsyncThunk("notifications/fetchNotifications", _fetch_notifications)


# ============================================================================
# Reducer
# ============================================================================


def _with_default_flags(record: Mapping[str, Any]) -> Mapping[str, Any]:
    if "read" in record and "isNew" in record:
        return record
    return {"read": False, "isNew": True, **record}


def _merge_fetched(
    state: LoadableState, payload: Iterable[Mapping[str, Any]]
) -> LoadableState:
    refreshed = notifications_adapter.update_many(
        state,
        [
            Update(record_id, {"isNew": not record.get("read", False)})
            for record_id, record in state.entities.items()
        ],
    )
    return notifications_adapter.upsert_many(
        refreshed, [_with_default_flags(record) for record in payload]
    )


def _mark_all_read(state: LoadableState) -> LoadableState:
    unread = [record_id for record_id in state.ids if not state.entities[record_id].get("read")]
    if not unread:
        return state
    logger.debug("Marking %d notifications read", len(unread))
    return notifications_adapter.update_many(
        state, [Update(record_id, {"read": True}) for record_id in unread]
    )


def notifications_reducer(state: LoadableState, command: Action) -> LoadableState:
    match command:
        case AllNotificationsRead():
            return _mark_all_read(state)
        case _ if fetch_notifications.matches(command):
            return track(state, command, fetch_notifications.type_prefix, _merge_fetched)
        case _:
            return state


# ============================================================================
# Selectors
# ============================================================================

_selectors = notifications_adapter.get_selectors(lambda state: state.notifications)

select_all_notifications = _selectors.select_all
select_notification_by_id = _selectors.select_by_id


def select_notifications_status(state: Any) -> RequestStatus:
    return state.notifications.status


def _unread(notifications: Tuple[Record, ...]) -> Tuple[Record, ...]:
    return tuple(record for record in notifications if not record.get("read"))


select_unread_notifications = create_selector(
    select_all_notifications, _unread, name="select_unread_notifications"
)


def select_unread_count(state: Any) -> int:
    return len(select_unread_notifications(state))
