"""File persistence for the MSAL token cache.

MSAL keeps acquired tokens in a `SerializableTokenCache`. This module persists that cache to a
caller-chosen file so interactive sign-ins can be reused across runs:

 - `load(cache)` is called before a token request and restores the cache from disk (if present).
 - `save(cache)` is called after a successful request and overwrites the file.

The file content is opaque to this code; it is whatever MSAL serializes.

NOTE: the cache is stored in plain text. Do not use this as-is for anything other than a sample;
protect the file (permissions, OS keychain, DPAPI) in real applications.

Threads in one process that share a cache path are serialized by a per-path lock. Separate
processes writing the same file are not coordinated; that remains the caller's responsibility.
"""

import logging
import os
import threading
from typing import Dict, Optional

import msal

logger = logging.getLogger(__name__)

_path_locks: Dict[str, threading.Lock] = {}
_registry_lock = threading.Lock()


def _lock_for(path: str) -> threading.Lock:
    with _registry_lock:
        lock = _path_locks.get(path)
        if lock is None:
            lock = _path_locks[path] = threading.Lock()
        return lock


class TokenCacheFile:
    """Load/save an MSAL token cache from/to a single file."""

    def __init__(self, path: str):
        self.path = os.path.abspath(os.path.expanduser(path))
        self._lock = _lock_for(self.path)

    def __repr__(self) -> str:
        return f"TokenCacheFile({self.path!r})"

    def read_blob(self) -> Optional[bytes]:
        """Return the raw cache bytes, or None when the file does not exist."""
        with self._lock:
            if not os.path.exists(self.path):
                return None
            with open(self.path, "rb") as f:
                return f.read()

    def write_blob(self, blob: bytes) -> None:
        """Overwrite the cache file with `blob`."""
        with self._lock:
            with open(self.path, "wb") as f:
                f.write(blob)

    def load(self, cache: msal.SerializableTokenCache) -> None:
        """Deserialize the file into `cache`. No-op when the file is missing."""
        blob = self.read_blob()
        if blob is None:
            logger.debug("No token cache file yet", extra={"cache_path": self.path})
            return
        cache.deserialize(blob.decode("utf-8"))
        logger.debug("Loaded token cache", extra={"cache_path": self.path})

    def save(self, cache: msal.SerializableTokenCache) -> None:
        """Serialize `cache` and overwrite the file."""
        self.write_blob(cache.serialize().encode("utf-8"))
        logger.debug("Persisted token cache", extra={"cache_path": self.path})

    def new_cache(self) -> msal.SerializableTokenCache:
        cache = msal.SerializableTokenCache()
        self.load(cache)
        return cache
