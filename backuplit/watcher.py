"""Filesystem change notifications for the watched directory."""

from __future__ import annotations

import logging
import os
import queue
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Type, Union

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CLOSED_NO_WRITE,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    EVENT_TYPE_OPENED,
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileClosedNoWriteEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileOpenedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from backuplit.errors import WatchError
from backuplit.models import DEFAULT_CHANGE_KINDS, ChangeKind

_KIND_BY_EVENT_TYPE: Dict[str, ChangeKind] = {
    EVENT_TYPE_CREATED: ChangeKind.CREATED,
    EVENT_TYPE_MODIFIED: ChangeKind.MODIFIED,
    EVENT_TYPE_DELETED: ChangeKind.DELETED,
    EVENT_TYPE_MOVED: ChangeKind.MOVED,
    EVENT_TYPE_CLOSED: ChangeKind.CLOSED_WRITE,
    EVENT_TYPE_CLOSED_NO_WRITE: ChangeKind.CLOSED_NO_WRITE,
    EVENT_TYPE_OPENED: ChangeKind.OPENED,
}

_EVENT_CLASSES: Dict[ChangeKind, Tuple[Type[FileSystemEvent], ...]] = {
    ChangeKind.CREATED: (FileCreatedEvent, DirCreatedEvent),
    ChangeKind.MODIFIED: (FileModifiedEvent, DirModifiedEvent),
    ChangeKind.DELETED: (FileDeletedEvent, DirDeletedEvent),
    ChangeKind.MOVED: (FileMovedEvent, DirMovedEvent),
    ChangeKind.CLOSED_WRITE: (FileClosedEvent,),
    ChangeKind.CLOSED_NO_WRITE: (FileClosedNoWriteEvent,),
    ChangeKind.OPENED: (FileOpenedEvent,),
}


@dataclass(frozen=True)
class ChangeEvent:
    """A single change notification and the kinds it carries."""

    path: str
    kinds: ChangeKind
    is_directory: bool = False


def change_event_from_watchdog(event: FileSystemEvent) -> Optional[ChangeEvent]:
    """Convert a watchdog event, returning ``None`` for event types we do not track."""
    kind = _KIND_BY_EVENT_TYPE.get(event.event_type)
    if kind is None:
        return None
    return ChangeEvent(
        path=os.fsdecode(event.src_path),
        kinds=kind,
        is_directory=bool(event.is_directory),
    )


def event_filter_for(change_kinds: ChangeKind) -> List[Type[FileSystemEvent]]:
    """Watchdog event classes covering the requested kinds."""
    classes: List[Type[FileSystemEvent]] = []
    for kind, event_classes in _EVENT_CLASSES.items():
        if kind in change_kinds:
            classes.extend(event_classes)
    return classes


class _QueueingHandler(FileSystemEventHandler):
    """Hand events from the observer thread over to the consuming loop."""

    def __init__(self, events: "queue.Queue[ChangeEvent]") -> None:
        super().__init__()
        self._events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        change = change_event_from_watchdog(event)
        if change is not None:
            self._events.put(change)


class ChangeWatcher:
    """Watch a directory with watchdog and yield batches of change events.

    Use as a context manager; :meth:`batches` blocks until the next event and
    then drains everything already queued into the same batch.
    """

    def __init__(
        self,
        path: Union[str, Path],
        change_kinds: ChangeKind = DEFAULT_CHANGE_KINDS,
        *,
        recursive: bool = True,
        poll_interval: float = 1.0,
        observer_factory: Callable[[], Any] = Observer,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.path = Path(path)
        self.change_kinds = change_kinds
        self.recursive = recursive
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)
        self._observer_factory = observer_factory
        self._observer: Optional[Any] = None
        self._events: "queue.Queue[ChangeEvent]" = queue.Queue()

    def __enter__(self) -> "ChangeWatcher":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def start(self) -> None:
        """Subscribe to change notifications for :attr:`path`."""
        if not self.path.is_dir():
            raise WatchError(f"Cannot watch {self.path}: not an existing directory")

        observer = self._observer_factory()
        try:
            observer.schedule(
                _QueueingHandler(self._events),
                str(self.path),
                recursive=self.recursive,
                event_filter=event_filter_for(self.change_kinds),
            )
            observer.start()
        except OSError as exc:
            raise WatchError(f"Failed to watch {self.path}: {exc}") from exc

        self._observer = observer
        self.logger.info(
            "Watching %s for %s (recursive=%s)",
            self.path,
            ", ".join(self.change_kinds.names()),
            self.recursive,
        )

    def stop(self) -> None:
        observer = self._observer
        if observer is None:
            return
        self._observer = None
        observer.stop()
        observer.join()

    def _ensure_alive(self) -> None:
        observer = self._observer
        if observer is None:
            raise WatchError("Change watcher is not running")
        if not observer.is_alive():
            raise WatchError(f"Change observer for {self.path} stopped unexpectedly")
        for emitter in observer.emitters:
            if not emitter.is_alive():
                raise WatchError(f"Change notifications for {self.path} stopped unexpectedly")

    def batches(self) -> Iterator[List[ChangeEvent]]:
        """Yield lists of events, blocking between batches."""
        while True:
            self._ensure_alive()
            try:
                first = self._events.get(timeout=self.poll_interval)
            except queue.Empty:
                continue

            batch = [first]
            while True:
                try:
                    batch.append(self._events.get_nowait())
                except queue.Empty:
                    break
            yield batch


__all__ = [
    "ChangeEvent",
    "ChangeWatcher",
    "change_event_from_watchdog",
    "event_filter_for",
]
