"""Constants shared across the refbind runtime.

Holds the package logger, the cache-key markers and the names used when
talking to Python's own member protocol.
"""

import logging

LOGGER_NAME: str = "refbind"
"""Logger name for refbind diagnostics."""

LOGGER: logging.Logger = logging.getLogger(LOGGER_NAME)
"""Package logger. refbind never installs handlers on it."""

INDEXER_KEY_PREFIX: str = "Indexer:"
"""Marker prefixed to indexer cache keys so signatures never collide with names."""

CONSTRUCTOR_KEY_PREFIX: str = "Constructor:"
"""Marker prefixed to constructor cache keys."""

INDEXER_GET: str = "__getitem__"
INDEXER_SET: str = "__setitem__"
CONSTRUCTOR: str = "__init__"
