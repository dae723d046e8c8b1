"""
normflux - Normalized Collections for Client-Side State

An in-process data layer that keeps normalized collections of server records
consistent across fetch, create and update operations, and serves memoized
derived views over them.
"""

from .actions import (
    Action,
    AllNotificationsRead,
    Fulfilled,
    Pending,
    PostUpdated,
    ReactionAdded,
    Rejected,
)
from .app import (
    RootState,
    can_save_post,
    create_store,
    ensure_posts_loaded,
    root_reducer,
    save_post,
    view_notifications,
)
from .client import Client
from .config import configure_logging
from .entity_adapter import (
    EntityAdapter,
    EntitySelectors,
    EntityState,
    Update,
    by_date_descending,
)
from .exceptions import (
    MalformedResponseError,
    NormfluxError,
    ReducerError,
    ThunkRejectedError,
)
from .lifecycle import (
    AsyncThunk,
    LoadableState,
    RequestStatus,
    ThunkApi,
    track,
    unwrap_result,
)
from .selectors import Selector, SelectorFamily, create_selector
from .store import Change, Store, combine_reducers

__all__ = [
    # Collections
    "EntityAdapter",
    "EntitySelectors",
    "EntityState",
    "Update",
    "by_date_descending",
    # Lifecycle
    "AsyncThunk",
    "LoadableState",
    "RequestStatus",
    "ThunkApi",
    "track",
    "unwrap_result",
    # Selectors
    "Selector",
    "SelectorFamily",
    "create_selector",
    # Store
    "Change",
    "Store",
    "combine_reducers",
    # Commands
    "Action",
    "AllNotificationsRead",
    "Fulfilled",
    "Pending",
    "PostUpdated",
    "ReactionAdded",
    "Rejected",
    # Application
    "RootState",
    "can_save_post",
    "create_store",
    "ensure_posts_loaded",
    "root_reducer",
    "save_post",
    "view_notifications",
    # Transport
    "Client",
    # Configuration
    "configure_logging",
    # Exceptions
    "MalformedResponseError",
    "NormfluxError",
    "ReducerError",
    "ThunkRejectedError",
]
