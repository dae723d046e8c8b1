"""
Posts slice.

Posts are ordered newest first. The whole-list fetch tracks a request status;
creating a post does not (the form that submits it keeps its own pending flag
and learns about failures through ``unwrap_result``).
"""

import logging
from typing import Any, Mapping, Optional, Tuple

from ..actions import Action, Fulfilled, PostUpdated, ReactionAdded
from ..client import extract, validate_counts, validate_record, validate_records
from ..config import POSTS_PATH, REACTION_NAMES
from ..entity_adapter import EntityAdapter, Record, by_date_descending
from ..lifecycle import AsyncThunk, LoadableState, RequestStatus, ThunkApi, track
from ..selectors import SelectorFamily, create_selector

logger = logging.getLogger(__name__)

POST_FIELDS = ("id", "date")
POST_TYPES = {"date": str}

posts_adapter = EntityAdapter(sort_comparer=by_date_descending)


def initial_state() -> LoadableState:
    return posts_adapter.get_initial_state(LoadableState)


# ============================================================================
# Requests
# ============================================================================


def _validate_post(record: Any) -> Mapping[str, Any]:
    validate_record(record, POST_FIELDS, "post", POST_TYPES)
    validate_counts(record, "reactions", "post")
    return record


async def _fetch_posts(_arg: Any, api: ThunkApi):
    response = await api.extra.get(POSTS_PATH)
    records = validate_records(extract(response, "posts"), POST_FIELDS, "post", POST_TYPES)
    for record in records:
        validate_counts(record, "reactions", "post")
    return records


async def _add_new_post(draft: Mapping[str, Any], api: ThunkApi):
    # The draft is {title, content, user}; the server fills in id, date and reactions
    response = await api.extra.post(POSTS_PATH, {"post": dict(draft)})
    return _validate_post(extract(response, "post"))


fetch_posts = AsyncThunk("posts/fetchPosts", _fetch_posts)
add_new_post = AsyncThunk("posts/addNewPost", _add_new_post)


# ============================================================================
# Reducer
# ============================================================================


def _add_reaction(state: LoadableState, post_id: str, reaction: str) -> LoadableState:
    post = state.entities.get(post_id)
    if post is None:
        logger.debug("Reaction %r for unknown post %r ignored", reaction, post_id)
        return state

    reactions = post.get("reactions") or {}
    if not isinstance(reactions, Mapping):
        logger.debug("Post %r has no reaction counters; %r ignored", post_id, reaction)
        return state
    if reaction not in reactions and reaction not in REACTION_NAMES:
        logger.debug("Unknown reaction %r on post %r ignored", reaction, post_id)
        return state

    current = reactions.get(reaction, 0)
    if isinstance(current, bool) or not isinstance(current, int):
        logger.debug("Reaction %r on post %r is not a count; ignored", reaction, post_id)
        return state

    counts = {**reactions, reaction: current + 1}
    return posts_adapter.update_one(state, post_id, {"reactions": counts})


def posts_reducer(state: LoadableState, command: Action) -> LoadableState:
    match command:
        case ReactionAdded(post_id=post_id, reaction=reaction):
            return _add_reaction(state, post_id, reaction)
        case PostUpdated(id=post_id, title=title, content=content):
            return posts_adapter.update_one(
                state, post_id, {"title": title, "content": content}
            )
        case Fulfilled(type_prefix=add_new_post.type_prefix, payload=post):
            return posts_adapter.add_one(state, post)
        case _ if fetch_posts.matches(command):
            return track(state, command, fetch_posts.type_prefix, posts_adapter.upsert_many)
        case _:
            return state


# ============================================================================
# Selectors
# ============================================================================

_selectors = posts_adapter.get_selectors(lambda state: state.posts)

select_all_posts = _selectors.select_all
select_post_by_id = _selectors.select_by_id
select_post_ids = _selectors.select_ids
select_post_total = _selectors.select_total


def select_posts_status(state: Any) -> RequestStatus:
    return state.posts.status


def select_posts_error(state: Any) -> Optional[str]:
    return state.posts.error


def _filter_by_user(posts: Tuple[Record, ...], user_id: str) -> Tuple[Record, ...]:
    return tuple(post for post in posts if post.get("user") == user_id)


select_posts_by_user = create_selector(
    select_all_posts,
    lambda state, user_id: user_id,
    _filter_by_user,
    name="select_posts_by_user",
)

# One cache per author, for screens that show several authors at once
posts_by_user = SelectorFamily(
    lambda user_id: create_selector(
        select_all_posts,
        lambda posts: _filter_by_user(posts, user_id),
        name=f"posts_by_user[{user_id}]",
    )
)
