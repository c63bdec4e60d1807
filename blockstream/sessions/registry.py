"""Correlation registry: issues and validates session tokens."""

import uuid
from typing import Dict, Optional, Set

from blockstream.logger import Logger, session_logger

CORRELATION_PREFIX = "req_"


class CorrelationRegistry:
    """Tracks the single open correlation id per subject.

    Every inbound event is checked against the registry before it is routed
    anywhere; events for superseded, closed or foreign sessions are rejected.
    """

    def __init__(self, logger: Optional[Logger] = None) -> None:
        self.logger = logger or session_logger
        self._open: Dict[str, str] = {}  # subject_id -> correlation_id
        self._subjects: Dict[str, str] = {}  # correlation_id -> subject_id
        self._issued: Set[str] = set()

    def _new_token(self) -> str:
        token = f"{CORRELATION_PREFIX}{uuid.uuid4().hex}"
        while token in self._issued:
            token = f"{CORRELATION_PREFIX}{uuid.uuid4().hex}"
        self._issued.add(token)
        return token

    def open(self, subject_id: str) -> str:
        """
        Open a session for ``subject_id``.

        Any token still open for the subject is superseded and will no longer
        pass :meth:`is_current`.

        Returns:
            A correlation id never issued before by this registry
        """
        previous = self._open.get(subject_id)
        if previous is not None:
            self._subjects.pop(previous, None)
            self.logger.info(
                "Superseding open session", subject_id=subject_id, correlation_id=previous
            )

        token = self._new_token()
        self._open[subject_id] = token
        self._subjects[token] = subject_id
        self.logger.debug("Session opened", subject_id=subject_id, correlation_id=token)
        return token

    def is_current(self, correlation_id: Optional[str], subject_id: Optional[str]) -> bool:
        if not correlation_id or not subject_id:
            return False
        return self._open.get(subject_id) == correlation_id

    def current(self, subject_id: str) -> Optional[str]:
        return self._open.get(subject_id)

    def close(self, correlation_id: str) -> bool:
        """
        Close a session. Closing twice is a no-op.

        Returns:
            True if the token was open
        """
        subject_id = self._subjects.pop(correlation_id, None)
        if subject_id is None:
            return False
        if self._open.get(subject_id) == correlation_id:
            del self._open[subject_id]
        self.logger.debug("Session closed", subject_id=subject_id, correlation_id=correlation_id)
        return True

    def __len__(self) -> int:
        return len(self._open)
