"""
normflux configuration
======================

Module-level defaults for the store, the domain slices and logging. Values that
a caller may want to override per store (history size, selector cache size) are
also accepted as arguments by the functions that use them.
"""

import logging

# ==============================================================================================
# API Paths
# ==============================================================================================

POSTS_PATH = "/fakeApi/posts"
USERS_PATH = "/fakeApi/users"
NOTIFICATIONS_PATH = "/fakeApi/notifications"

# ==============================================================================================
# Domain Constants
# ==============================================================================================

# Fixed set of reaction counters carried by every post
REACTION_NAMES = ("thumbsUp", "hooray", "heart", "rocket", "eyes")

# Display name for a post or notification whose author is not in the users collection
UNKNOWN_AUTHOR = "Unknown author"

# ==============================================================================================
# Store Configuration
# ==============================================================================================

# Number of Change records kept by Store.history()
DEFAULT_HISTORY_SIZE = 1000

# Number of per-argument selectors kept by a SelectorFamily
SELECTOR_FAMILY_SIZE = 128

# ==============================================================================================
# Logging Configuration
# ==============================================================================================

LOG_LEVEL = logging.INFO
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(level: int = LOG_LEVEL) -> logging.Logger:
    """Attach a console handler to the ``normflux`` logger and return it."""
    logger = logging.getLogger("normflux")
    logger.setLevel(level)

    # Avoid stacking handlers when called more than once
    for handler in logger.handlers:
        if getattr(handler, "_normflux_console", False):
            handler.setLevel(level)
            return logger

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    console_handler._normflux_console = True
    logger.addHandler(console_handler)
    return logger
