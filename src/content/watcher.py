"""
File Watching with Debounced Reloads.

The WatchManager keeps one registration per canonical file path. Each
registration owns an OS-level watcher handle, the pending debounce timer and
a reload lock. Raw watcher notifications are turned into service events:

    change  -> debounce -> invalidate cache -> reload -> "content-updated"
                                                      or "content-error"
    delete  -> drop cache entry -> "file-deleted" (immediately, no reload)
    error   -> "watch-error" (the watch stays registered)

Debounce:
    Every change notification cancels the path's pending timer and starts a
    new one, so a burst of writes collapses into a single reload once the
    file has been quiet for ``watch_delay`` seconds. Timers carry a
    generation number; a timer that fires after being superseded does
    nothing.

Ordering:
    A reload runs under the registration's reload lock, so a later debounce
    cycle for the same path waits until the earlier reload has resolved.
    stop_watching() cancels pending timers, closes the handles and then
    waits for any reload already in flight.

Filesystem Capability:
    The OS watcher sits behind the FileWatcher interface. WatchdogFileWatcher
    is the default and uses the watchdog library, either with native
    notifications or, with ``use_polling=True``, with a polling observer
    for filesystems that do not deliver inotify events (network mounts,
    some container volumes).
"""
import functools
import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from content.cache import ConfigurationCache, canonical_path
from content.events import (
    CONTENT_ERROR,
    CONTENT_UPDATED,
    FILE_CHANGED,
    FILE_DELETED,
    WATCH_ERROR,
    EventEmitter,
)
from content.loader import ConfigurationLoader

logger = logging.getLogger(__name__)

DEFAULT_WATCH_DELAY = 1.0  # seconds
OBSERVER_JOIN_TIMEOUT = 5.0  # seconds


class WatchHandle(ABC):
    """An active OS-level watch on a single file."""

    @abstractmethod
    def close(self) -> None:
        """Stop delivering notifications and release the watch."""


class FileWatcher(ABC):
    """Creates watches that report change, deletion and error notifications."""

    @abstractmethod
    def watch(
        self,
        path: str,
        on_change: Callable[[], None],
        on_delete: Callable[[], None],
        on_error: Callable[[Exception], None],
    ) -> WatchHandle:
        """Start watching a file.

        Args:
            path: Canonical path of the file
            on_change: Called when the file is written, created or replaced
            on_delete: Called when the file is removed or moved away
            on_error: Called with the exception when the watcher fails

        Returns:
            Handle that stops the watch when closed
        """


class _SingleFileEventHandler(FileSystemEventHandler):
    """Filters directory events from watchdog down to one file."""

    def __init__(self, path, on_change, on_delete, on_error):
        super().__init__()
        self.path = path
        self.on_change = on_change
        self.on_delete = on_delete
        self.on_error = on_error

    def _matches(self, event_path) -> bool:
        return canonical_path(os.fsdecode(event_path)) == self.path

    def dispatch(self, event):
        try:
            super().dispatch(event)
        except Exception as e:
            self.on_error(e)

    def on_modified(self, event):
        if not event.is_directory and self._matches(event.src_path):
            self.on_change()

    def on_created(self, event):
        if not event.is_directory and self._matches(event.src_path):
            self.on_change()

    def on_deleted(self, event):
        if not event.is_directory and self._matches(event.src_path):
            self.on_delete()

    def on_moved(self, event):
        if event.is_directory:
            return
        # Editors that save atomically write a temp file and rename it over the target
        if self._matches(event.dest_path):
            self.on_change()
        elif self._matches(event.src_path):
            self.on_delete()


class _ObserverHandle(WatchHandle):
    def __init__(self, observer):
        self._observer = observer
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._observer.stop()
        if self._observer.is_alive():
            self._observer.join(timeout=OBSERVER_JOIN_TIMEOUT)


class WatchdogFileWatcher(FileWatcher):
    """FileWatcher backed by a watchdog observer per file.

    watchdog watches directories, so each file gets an observer scheduled on
    its parent directory with a handler that ignores every other entry.
    """

    def __init__(self, use_polling: bool = False):
        self.use_polling = use_polling

    def watch(self, path, on_change, on_delete, on_error) -> WatchHandle:
        handler = _SingleFileEventHandler(path, on_change, on_delete, on_error)
        observer = PollingObserver() if self.use_polling else Observer()
        observer.daemon = True
        observer.schedule(handler, os.path.dirname(path), recursive=False)
        observer.start()
        return _ObserverHandle(observer)


@dataclass
class WatchRegistration:
    path: str
    schema_key: Optional[str] = None
    handle: Optional[WatchHandle] = None
    timer: Optional[Any] = None
    generation: int = 0
    deletions: int = 0
    active: bool = True
    # Reentrant so a listener running inside a reload may call stop_watching()
    reload_lock: Any = field(default_factory=threading.RLock)


class WatchManager:
    """Per-path file watches with debounced, serialized reloads.

    Attributes:
        loader: Loader used for reloads
        cache: Cache invalidated on change and deletion
        events: Event bus receiving watch outcomes
        file_watcher: OS watcher capability
        watch_delay: Debounce window in seconds
    """

    def __init__(
        self,
        loader: ConfigurationLoader,
        cache: ConfigurationCache,
        events: EventEmitter,
        file_watcher: Optional[FileWatcher] = None,
        watch_delay: float = DEFAULT_WATCH_DELAY,
        timer_factory: Callable[..., Any] = threading.Timer,
    ):
        self.loader = loader
        self.cache = cache
        self.events = events
        self.file_watcher = file_watcher if file_watcher is not None else WatchdogFileWatcher()
        self.watch_delay = watch_delay
        self._timer_factory = timer_factory
        self._registrations: Dict[str, WatchRegistration] = {}
        self._lock = threading.Lock()

    def watch_files(
        self,
        paths: Union[str, os.PathLike, Iterable[Union[str, os.PathLike]]],
        schema_key: Optional[str] = None,
    ) -> List[str]:
        """Start watching one or more files.

        Paths that are already watched are skipped without creating a second
        watcher. A watcher that cannot be created is reported as
        "watch-error" and left unregistered.

        Args:
            paths: A single path or an iterable of paths
            schema_key: Schema used to validate reloads (None only reports
                "file-changed" without reloading)

        Returns:
            Canonical paths that were newly registered
        """
        if isinstance(paths, (str, os.PathLike)):
            paths = [paths]

        registered = []
        for raw_path in paths:
            path = canonical_path(raw_path)
            with self._lock:
                if path in self._registrations:
                    logger.debug(f"File already being watched: {path}")
                    continue

                registration = WatchRegistration(path=path, schema_key=schema_key)
                try:
                    registration.handle = self.file_watcher.watch(
                        path,
                        on_change=functools.partial(self._handle_change, path),
                        on_delete=functools.partial(self._handle_delete, path),
                        on_error=functools.partial(self._handle_error, path),
                    )
                except Exception as e:
                    logger.error(f"Failed to watch file: {path}: {e}")
                    watch_error = e
                else:
                    watch_error = None
                    self._registrations[path] = registration

            if watch_error is not None:
                self.events.emit(WATCH_ERROR, {"filePath": path, "error": watch_error})
                continue

            logger.info(f"Started watching file: {path}")
            registered.append(path)

        return registered

    def _handle_change(self, path: str) -> None:
        with self._lock:
            registration = self._registrations.get(path)
            if registration is None or not registration.active:
                return
            if registration.timer is not None:
                registration.timer.cancel()
            registration.generation += 1
            timer = self._timer_factory(
                self.watch_delay,
                self._debounced_reload,
                args=(registration, registration.generation),
            )
            timer.daemon = True
            registration.timer = timer
            timer.start()
        logger.debug(f"Change detected, reload scheduled in {self.watch_delay}s: {path}")

    def _debounced_reload(self, registration: WatchRegistration, generation: int) -> None:
        with registration.reload_lock:
            with self._lock:
                if not registration.active or generation != registration.generation:
                    return
                registration.timer = None
            self._reload(registration)

    def _reload(self, registration: WatchRegistration) -> None:
        path = registration.path
        schema_key = registration.schema_key
        logger.info(f"File changed: {path}")

        with self._lock:
            deletions = registration.deletions
        previous = self.cache.get_entry(path)
        self.cache.invalidate(path)

        if schema_key is None:
            self.events.emit(FILE_CHANGED, {"filePath": path})
            return

        try:
            content = self.loader.load(path, schema_key)
        except Exception as e:
            logger.error(f"Error handling file change: {path}: {e}")
            # Keep serving the last-known-good content unless the file was deleted meanwhile
            with self._lock:
                if (
                    previous is not None
                    and registration.deletions == deletions
                    and path not in self.cache
                ):
                    self.cache.set(path, previous.content, previous.schema_key)
            self.events.emit(CONTENT_ERROR, {"filePath": path, "schemaKey": schema_key, "error": e})
            return

        self.events.emit(CONTENT_UPDATED, {"filePath": path, "schemaKey": schema_key, "content": content})

    def _handle_delete(self, path: str) -> None:
        with self._lock:
            registration = self._registrations.get(path)
            if registration is None or not registration.active:
                return
            if registration.timer is not None:
                registration.timer.cancel()
                registration.timer = None
            registration.generation += 1
            registration.deletions += 1

        logger.warning(f"File deleted: {path}")
        self.cache.invalidate(path)
        self.events.emit(FILE_DELETED, {"filePath": path})

    def _handle_error(self, path: str, error: Exception) -> None:
        logger.error(f"File watcher error for {path}: {error}")
        self.events.emit(WATCH_ERROR, {"filePath": path, "error": error})

    def stop_watching(self, path: Optional[str] = None) -> int:
        """Stop watching one file, or every file when no path is given.

        Pending debounce timers are cancelled, so no reload fires afterwards.
        Safe to call when nothing is watched.

        Args:
            path: File to stop watching (any spelling)

        Returns:
            Number of registrations removed
        """
        with self._lock:
            if path is None:
                registrations = list(self._registrations.values())
                self._registrations.clear()
            else:
                registration = self._registrations.pop(canonical_path(path), None)
                registrations = [registration] if registration is not None else []

            for registration in registrations:
                registration.active = False
                if registration.timer is not None:
                    registration.timer.cancel()
                    registration.timer = None

        for registration in registrations:
            try:
                registration.handle.close()
            except Exception as e:
                logger.error(f"Failed to close watcher for {registration.path}: {e}")
            # Wait for a reload that was already running
            with registration.reload_lock:
                pass
            logger.info(f"Stopped watching file: {registration.path}")

        return len(registrations)

    def get_watched_files(self) -> List[str]:
        with self._lock:
            return list(self._registrations.keys())

    def is_watching(self, path: str) -> bool:
        with self._lock:
            return canonical_path(path) in self._registrations
