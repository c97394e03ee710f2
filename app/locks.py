import logging
import threading
import weakref
from contextlib import contextmanager

import config
from errors import ConcurrencyError

logger = logging.getLogger(__name__)


class ListingLocks:
    """
    One mutex per listing id, created on first use.

    Serializes the read-check-write sections of the booking service for a
    listing inside this process. Different listings never wait on each other.
    A listing's mutex lives only while some request holds or waits on it.
    """

    def __init__(self, timeout=None):
        self.timeout = config.LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self._locks = weakref.WeakValueDictionary()
        self._guard = threading.Lock()

    def _lock_for(self, listing_id):
        with self._guard:
            lock = self._locks.get(listing_id)
            if lock is None:
                lock = self._locks[listing_id] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, listing_id):
        lock = self._lock_for(listing_id)
        if not lock.acquire(timeout=self.timeout):
            logger.warning("Gave up waiting %.2fs for the lock on listing %s", self.timeout, listing_id)
            raise ConcurrencyError(f"Listing {listing_id} is busy with another request, please retry")
        try:
            yield
        finally:
            lock.release()
