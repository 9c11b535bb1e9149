"""
Per-match serialization for read-modify-write sequences.

Two upstream results feeding the same downstream match must not interleave
their read and write of that match within one worker process. Cross-process
safety comes from the row_version compare-and-swap in the advancement service;
this registry only keeps threads of the same worker from racing each other.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator

_registry_lock = threading.Lock()
_locks: Dict[int, threading.Lock] = {}


def _lock_for(match_id: int) -> threading.Lock:
    with _registry_lock:
        lock = _locks.get(match_id)
        if lock is None:
            lock = threading.Lock()
            _locks[match_id] = lock
        return lock


@contextmanager
def match_lock(match_id: int) -> Iterator[None]:
    """Hold the lock for one match id for the duration of the block."""
    lock = _lock_for(match_id)
    with lock:
        yield


def forget(match_ids) -> None:
    """Drop locks for deleted matches so the registry does not grow without bound."""
    with _registry_lock:
        for match_id in match_ids:
            _locks.pop(match_id, None)
