"""Command dispatcher: runs tasks on worker threads and posts their events.

Tasks never touch application state. The only thing that crosses back to
the interaction loop is the event handed to ``post``, which in the TUI is
the thread-safe ``App.post_message`` wrapper.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Executor, Future

import httpx

from apiconsole.core.events import ConsoleEvent
from apiconsole.core.make_commands import ProcessRegistry
from apiconsole.core.tasks import Task
from apiconsole.utils.logging import get_logger

PostEvent = Callable[[ConsoleEvent], None]
ClientFactory = Callable[[], httpx.Client]


def default_client_factory() -> httpx.Client:
    return httpx.Client(follow_redirects=True)


class CommandDispatcher:
    """Schedule tasks off the interaction loop.

    Parameters
    ----------
    post : Callable
        Receives exactly one event per submitted task.
    client_factory : Callable | None
        Builds the HTTP client handed to each task. Tests inject one backed by
        ``httpx.MockTransport``.
    executor : Executor | None
        Worker pool. Without one every task gets its own daemon thread, so a
        slow request or a long-running target never holds the process open
        after quit.
    """

    def __init__(
        self,
        post: PostEvent,
        client_factory: ClientFactory | None = None,
        executor: Executor | None = None,
    ):
        self._post = post
        self._client_factory = client_factory or default_client_factory
        self._executor = executor
        self._threads: set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.processes = ProcessRegistry()
        self.submitted = 0
        self.logger = get_logger("dispatcher")

    def submit(self, task: Task) -> Future:
        """Start ``task``. Concurrent primary requests are not blocked."""
        if self._closed:
            raise RuntimeError("dispatcher is shut down")
        self.submitted += 1
        self.logger.debug("dispatcher.submitted", task=task.kind)
        task = task.attach(self.processes)
        if self._executor is not None:
            return self._executor.submit(self._run, task)
        return self._spawn(task)

    def submit_all(self, tasks: list[Task]) -> list[Future]:
        return [self.submit(task) for task in tasks]

    def _spawn(self, task: Task) -> Future:
        future: Future = Future()

        def work() -> None:
            try:
                if future.set_running_or_notify_cancel():
                    try:
                        future.set_result(self._run(task))
                    except Exception as exc:
                        future.set_exception(exc)
            finally:
                with self._lock:
                    self._threads.discard(threading.current_thread())

        thread = threading.Thread(
            target=work, name=f"apiconsole-task-{self.submitted}", daemon=True
        )
        with self._lock:
            self._threads.add(thread)
        thread.start()
        return future

    def _run(self, task: Task) -> ConsoleEvent:
        try:
            with self._client_factory() as client:
                event = task.run(client)
        except Exception as exc:
            self.logger.error("dispatcher.task_failed", task=task.kind, error=str(exc), exc_info=True)
            event = task.on_error(exc)
        self.logger.debug("dispatcher.resolved", task=task.kind, event_type=type(event).__name__)
        self._post(event)
        return event

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting tasks and kill running target processes.

        Worker threads are daemons; with ``wait`` they are joined first.
        """
        if self._closed:
            return
        self._closed = True
        killed = self.processes.kill_all()
        if killed:
            self.logger.info("dispatcher.processes_killed", count=killed)
        if wait:
            with self._lock:
                threads = list(self._threads)
            for thread in threads:
                thread.join()
