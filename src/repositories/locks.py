"""
Per-contact mutual exclusion.

Score, evaluate and execute for one contact must not interleave, otherwise two
cooldown checks can both pass before either execution row lands. Within a
process a striped ``RLock`` serialises callers; on PostgreSQL a
transaction-scoped advisory lock does the same across Lambda containers.
"""

import threading
import zlib
from contextlib import contextmanager
from typing import Iterator, List

from sqlalchemy import text
from sqlalchemy.engine import Engine

from utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_STRIPES = 64


class ContactLockManager:
    """Re-entrant per thread: nested holds for the same contact just yield."""

    def __init__(self, engine: Engine, stripes: int = DEFAULT_STRIPES):
        self.engine = engine
        self._locks: List[threading.RLock] = [threading.RLock() for _ in range(stripes)]
        self._held = threading.local()

    @property
    def uses_advisory_locks(self) -> bool:
        return self.engine.dialect.name == "postgresql"

    def _held_ids(self) -> set:
        if not hasattr(self._held, "ids"):
            self._held.ids = set()
        return self._held.ids

    def _stripe(self, contact_id: str) -> threading.RLock:
        return self._locks[zlib.crc32(contact_id.encode()) % len(self._locks)]

    @contextmanager
    def hold(self, contact_id: str) -> Iterator[None]:
        held = self._held_ids()
        if contact_id in held:
            yield
            return

        with self._stripe(contact_id):
            held.add(contact_id)
            try:
                if self.uses_advisory_locks:
                    # Released when this transaction ends.
                    with self.engine.begin() as conn:
                        conn.execute(
                            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
                            {"key": f"crm_contact:{contact_id}"},
                        )
                        logger.debug("Contact lock acquired", extra={"contact_id": contact_id})
                        yield
                else:
                    yield
            finally:
                held.discard(contact_id)
