"""Commands and the single background worker that executes them."""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from queue import Queue
from typing import Any, Callable, Union

logger = logging.getLogger(__name__)


# -- commands --


@dataclass(frozen=True)
class CacheMod:
    mod_id: str
    version: str | None = None


@dataclass(frozen=True)
class EnableMod:
    mod_id: str


@dataclass(frozen=True)
class DisableMod:
    mod_id: str


@dataclass(frozen=True)
class SelectVersion:
    mod_id: str
    version: str


@dataclass(frozen=True)
class SetVersionLock:
    mod_id: str
    locked: bool


@dataclass(frozen=True)
class RemoveVersion:
    mod_id: str
    version: str


@dataclass(frozen=True)
class RemoveMod:
    mod_id: str


@dataclass(frozen=True)
class RemoveOldVersions:
    mod_id: str


@dataclass(frozen=True)
class UpdateMod:
    mod_id: str


@dataclass(frozen=True)
class UpdateAll:
    continue_on_error: bool = False


@dataclass(frozen=True)
class SyncToGame:
    pass


@dataclass(frozen=True)
class RefreshRegistry:
    pass


Command = Union[
    CacheMod,
    EnableMod,
    DisableMod,
    SelectVersion,
    SetVersionLock,
    RemoveVersion,
    RemoveMod,
    RemoveOldVersions,
    UpdateMod,
    UpdateAll,
    SyncToGame,
    RefreshRegistry,
]


# -- tickets --


@dataclass
class Ticket:
    """Handle on a submitted command; the issuing side waits on it."""

    id: str
    command: Command
    status: str = "pending"  # pending, running, completed, failed
    result: Any = None
    error: BaseException | None = None
    events: Queue = field(default_factory=Queue)
    _done: threading.Event = field(default_factory=threading.Event, repr=False)

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def wait(self, timeout: float | None = None) -> Any:
        """Block until the command finishes; return its result or raise its error."""
        if not self._done.wait(timeout):
            raise TimeoutError(f"Command {self.command!r} did not finish within {timeout}s")
        if self.error is not None:
            raise self.error
        return self.result


_STOP = object()


class CommandWorker:
    """
    Runs submitted commands one at a time, in submission order, on a single thread.

    This is the only place cache and options mutations happen, so two commands
    never touch the cache root or the options document concurrently.
    """

    def __init__(self, handler: Callable[[Command], Any], name: str = "rumm-worker"):
        self._handler = handler
        self._queue: Queue = Queue()
        self._lock = threading.Lock()
        self._closed = False
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def submit(self, command: Command) -> Ticket:
        ticket = Ticket(id=str(uuid.uuid4())[:8], command=command)
        with self._lock:
            if self._closed:
                raise RuntimeError("Worker has been shut down")
            self._queue.put(ticket)
        return ticket

    def run(self, command: Command, timeout: float | None = None) -> Any:
        """Submit a command and wait for its result."""
        return self.submit(command).wait(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting commands; queued commands still run before the thread exits."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_STOP)
        if wait:
            self._thread.join()

    def _run(self) -> None:
        while True:
            ticket = self._queue.get()
            if ticket is _STOP:
                break
            ticket.status = "running"
            ticket.events.put({"event": "status", "data": "running"})
            try:
                ticket.result = self._handler(ticket.command)
                ticket.status = "completed"
                ticket.events.put({"event": "complete", "data": ticket.result})
            except Exception as e:
                logger.debug("Command %r failed: %s", ticket.command, e)
                ticket.error = e
                ticket.status = "failed"
                ticket.events.put({"event": "error", "data": str(e)})
            finally:
                ticket._done.set()
