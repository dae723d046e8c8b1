"""
Shared pytest fixtures and configuration for normflux tests.
"""

import copy
from urllib.parse import parse_qs

import pytest

from normflux import create_store
from normflux.config import NOTIFICATIONS_PATH, POSTS_PATH, REACTION_NAMES, USERS_PATH


class FakeClient:
    """
    In-memory stand-in for the fake API server.

    Requests are recorded in ``requests``. Assigning an exception to
    ``failures[path]`` makes the next request to that path raise it;
    ``responses[path]`` overrides the body returned for a path.
    """

    def __init__(self):
        self.users = [
            {"id": "0", "name": "Tianna Jenkins"},
            {"id": "1", "name": "Kevin Grant"},
            {"id": "2", "name": "Madison Price"},
        ]
        self.posts = [
            _post("p1", "2021-01-01T10:00:00.000Z", "0", "First Post!"),
            _post("p2", "2021-01-03T10:00:00.000Z", "1", "Second Post"),
            _post("p3", "2021-01-02T10:00:00.000Z", "0", "Third Post"),
        ]
        self.notifications = []
        self.requests = []
        self.failures = {}
        self.responses = {}
        self._next_id = 100

    def _raise_if_failing(self, path):
        error = self.failures.pop(path, None)
        if error is not None:
            raise error

    async def get(self, path):
        self.requests.append(("GET", path))
        base, _, query = path.partition("?")
        self._raise_if_failing(base)
        if base in self.responses:
            return copy.deepcopy(self.responses[base])

        if base == POSTS_PATH:
            return {"posts": copy.deepcopy(self.posts)}
        if base == USERS_PATH:
            return {"users": copy.deepcopy(self.users)}
        if base == NOTIFICATIONS_PATH:
            since = parse_qs(query).get("since", [""])[0]
            newer = [n for n in self.notifications if n["date"] > since]
            return {"notifications": copy.deepcopy(newer)}
        raise LookupError(f"404 {path}")

    async def post(self, path, body):
        self.requests.append(("POST", path))
        self._raise_if_failing(path)
        if path != POSTS_PATH:
            raise LookupError(f"404 {path}")

        self._next_id += 1
        post = {
            "id": f"p{self._next_id}",
            "date": "2021-02-01T10:00:00.000Z",
            "reactions": {name: 0 for name in REACTION_NAMES},
            **body["post"],
        }
        self.posts.append(post)
        return {"post": copy.deepcopy(post)}


def _post(post_id, date, user, title):
    return {
        "id": post_id,
        "date": date,
        "user": user,
        "title": title,
        "content": f"Content of {title}",
        "reactions": {name: 0 for name in REACTION_NAMES},
    }


@pytest.fixture
def client():
    """Provide a fresh fake API client."""
    return FakeClient()


@pytest.fixture
def store(client):
    """Provide a fresh application store wired to the fake client."""
    return create_store(client)
