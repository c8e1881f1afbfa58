import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional

from ..schemas.active_user import ActiveUser

logger = logging.getLogger(__name__)


class ActiveUserStore:
    """
    In-memory registry of dashboard users seen recently.

    Entries idle for longer than ``ttl`` are evicted whenever the store is
    read. One instance lives on ``app.state`` and is handed to endpoints as a
    dependency.
    """

    def __init__(self, ttl: timedelta = timedelta(minutes=15),
                 clock: Callable[[], datetime] = datetime.utcnow):
        self._ttl = ttl
        self._clock = clock
        self._entries: Dict[str, ActiveUser] = {}
        self._lock = threading.Lock()

    def touch(self, user_id: str, name: Optional[str] = None, email: Optional[str] = None,
              current_page: Optional[str] = None) -> ActiveUser:
        """Register activity for ``user_id``, starting a session if needed"""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(user_id)
            if entry is None:
                entry = ActiveUser(
                    id=user_id,
                    name=name or "Anonymous User",
                    email=email or "No email",
                    current_page=current_page,
                    session_start=now,
                    last_active=now,
                )
                logger.debug("Session started for %s", user_id)
            else:
                updates = {"last_active": now, "is_online": True}
                if current_page:
                    updates["current_page"] = current_page
                if name:
                    updates["name"] = name
                if email:
                    updates["email"] = email
                entry = entry.model_copy(update=updates)
            self._entries[user_id] = entry
            return entry

    def remove(self, user_id: str) -> bool:
        with self._lock:
            return self._entries.pop(user_id, None) is not None

    def list_active(self) -> List[ActiveUser]:
        """Active users, most recently active first"""
        with self._lock:
            self._sweep(self._clock())
            return sorted(self._entries.values(), key=lambda e: e.last_active, reverse=True)

    def _sweep(self, now: datetime) -> None:
        cutoff = now - self._ttl
        expired = [user_id for user_id, entry in self._entries.items() if entry.last_active <= cutoff]
        for user_id in expired:
            del self._entries[user_id]
        if expired:
            logger.debug("Evicted %d idle active users", len(expired))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
