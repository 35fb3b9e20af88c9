# sofizpay/services/stream_registry.py
"""Per-account table of live transaction streams."""

from dataclasses import dataclass, field
from typing import Any, Iterator, Optional

from loguru import logger

from sofizpay.domain.payment import utc_now_iso
from sofizpay.stellar.stream_service import TransactionStreamManager


@dataclass
class StreamSession:
    """A running stream and the options it was started with."""
    account_id: str
    manager: TransactionStreamManager
    check_interval: float
    from_now: bool = True
    start_time: str = field(default_factory=utc_now_iso)

    @property
    def is_active(self) -> bool:
        return self.manager.is_active

    def close(self) -> None:
        self.manager.close()

    def to_dict(self) -> dict[str, Any]:
        return {
            "public_key": self.account_id,
            "start_time": self.start_time,
            "is_active": self.is_active,
            "from_now": self.from_now,
            "check_interval": self.check_interval,
            "state": self.manager.state.value,
            "cursor": self.manager.cursor,
            "reconnect_count": self.manager.reconnect_count,
        }


class StreamRegistry:
    """
    Holds at most one StreamSession per account id.

    add() checks and inserts without awaiting in between, so two coroutines
    on the same event loop can't both register the same account.
    """

    def __init__(self):
        self._sessions: dict[str, StreamSession] = {}

    def __contains__(self, account_id: str) -> bool:
        return account_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[StreamSession]:
        return iter(list(self._sessions.values()))

    def get(self, account_id: str) -> Optional[StreamSession]:
        return self._sessions.get(account_id)

    def add(self, session: StreamSession) -> bool:
        """Register session. Returns False if the account already has one."""
        if session.account_id in self._sessions:
            return False
        self._sessions[session.account_id] = session
        return True

    def remove(self, account_id: str) -> Optional[StreamSession]:
        """Close and drop the session of account_id, None if there was none."""
        session = self._sessions.pop(account_id, None)
        if session is not None:
            session.close()
            logger.debug(f"Stream session removed for {account_id}")
        return session

    def clear(self) -> list[StreamSession]:
        """Close and drop every session."""
        sessions = list(self._sessions.values())
        for session in sessions:
            self.remove(session.account_id)
        return sessions
