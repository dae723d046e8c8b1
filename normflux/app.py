"""
Application wiring.

``RootState`` combines the three slices and ``create_store`` builds a Store for
it. The helpers below are the calling layer a UI talks to: they hold the
preconditions (fetch only when idle, save only complete drafts, mark read only
when something is unread) that the reducers deliberately do not enforce.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from .actions import AllNotificationsRead, Fulfilled, Rejected
from .client import Client
from .config import DEFAULT_HISTORY_SIZE
from .exceptions import ThunkRejectedError
from .features import notifications, posts, users
from .lifecycle import LoadableState, RequestStatus, unwrap_result
from .store import Store, combine_reducers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RootState:
    posts: LoadableState = field(default_factory=posts.initial_state)
    users: LoadableState = field(default_factory=users.initial_state)
    notifications: LoadableState = field(default_factory=notifications.initial_state)


root_reducer = combine_reducers(
    posts=posts.posts_reducer,
    users=users.users_reducer,
    notifications=notifications.notifications_reducer,
)


def create_store(
    client: Optional[Client] = None,
    initial_state: Optional[RootState] = None,
    history_size: int = DEFAULT_HISTORY_SIZE,
) -> Store:
    """Create a store for the posts/users/notifications application."""
    return Store(
        root_reducer,
        initial_state if initial_state is not None else RootState(),
        extra=client,
        history_size=history_size,
    )


async def ensure_posts_loaded(store: Store) -> Optional[Union[Fulfilled, Rejected]]:
    """Fetch posts unless a fetch has already been issued for this store."""
    if posts.select_posts_status(store.state) is not RequestStatus.IDLE:
        return None
    return await posts.fetch_posts.run(store)


def can_save_post(title: str, content: str, user_id: str) -> bool:
    return all((title, content, user_id))


async def save_post(store: Store, title: str, content: str, user_id: str) -> bool:
    """
    Submit a new post. Returns True when the server accepted it.

    A rejected submission is logged and reported as False so the form can keep
    the draft and re-enable its button.
    """
    if not can_save_post(title, content, user_id):
        return False

    command = await posts.add_new_post.run(
        store, {"title": title, "content": content, "user": user_id}
    )
    try:
        unwrap_result(command)
    except ThunkRejectedError as e:
        logger.error("Failed to save the post: %s", e)
        return False
    return True


def view_notifications(store: Store) -> Any:
    """Mark every notification read when the notifications list is shown."""
    if notifications.select_unread_count(store.state) == 0:
        return None
    return store.dispatch(AllNotificationsRead())
