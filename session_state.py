import logging
import threading
import time
import uuid
from collections import OrderedDict
from contextlib import contextmanager

from errors import WorkflowBusy
from history import EditHistory

logger = logging.getLogger(__name__)

WORKFLOWS = ("generate", "edit", "enhance", "think", "search")


class ClientState:
    """Everything the server keeps for one browser session."""

    def __init__(self):
        self.history = EditHistory()
        # guards history mutation; never held across a remote call
        self.lock = threading.Lock()
        self._in_flight = set()

    def is_busy(self, workflow):
        with self.lock:
            return workflow in self._in_flight

    @contextmanager
    def in_flight(self, workflow):
        """Allow one outstanding request per workflow; a second one gets WorkflowBusy."""
        if workflow not in WORKFLOWS:
            raise ValueError(f"Unknown workflow: {workflow}")
        with self.lock:
            if workflow in self._in_flight:
                raise WorkflowBusy(workflow)
            self._in_flight.add(workflow)
        try:
            yield self
        finally:
            with self.lock:
                self._in_flight.discard(workflow)


class SessionStore:
    """In-memory map of session id to ClientState. Nothing is persisted.

    Sessions idle for longer than `idle_ttl` seconds are dropped, and once
    `max_sessions` are held the least recently used one makes room for a new
    one. A dropped session's history is gone; its browser starts empty.
    """

    def __init__(self, max_sessions=100, idle_ttl=3600, clock=time.monotonic):
        self.max_sessions = max_sessions
        self.idle_ttl = idle_ttl
        self._clock = clock
        # session id -> (ClientState, last access), least recently used first
        self._states = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._states)

    def __contains__(self, session_id):
        with self._lock:
            return session_id in self._states

    @staticmethod
    def new_id():
        return uuid.uuid4().hex

    def get(self, session_id) -> ClientState:
        now = self._clock()
        with self._lock:
            self._expire(now)
            if session_id in self._states:
                state, _ = self._states.pop(session_id)
            else:
                state = ClientState()
                while len(self._states) >= self.max_sessions:
                    evicted, _ = self._states.popitem(last=False)
                    logger.info("Dropping least recently used session %s", evicted)
            self._states[session_id] = (state, now)
            return state

    def _expire(self, now):
        while self._states:
            session_id, (_, last_seen) = next(iter(self._states.items()))
            if now - last_seen < self.idle_ttl:
                break
            del self._states[session_id]
            logger.info("Dropping idle session %s", session_id)
