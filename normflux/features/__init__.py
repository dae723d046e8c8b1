"""Domain slices: posts, users and notifications."""

from . import notifications, posts, users

__all__ = ["notifications", "posts", "users"]
