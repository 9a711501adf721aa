"""
Pytest configuration and shared fixtures for all tests.

This module provides shared fixtures for the content service test suite,
including:
- A temporary schema directory with a small "widget" schema
- A fake FileWatcher whose handles can simulate change/delete/error
  notifications and count close() calls
- A fake timer factory so debounce windows can be settled on demand
- A fully wired ContentService using the fakes
"""
import json

import pytest

from content import ContentService, FileWatcher, WatchHandle


WIDGET_SCHEMA = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "type": "object",
    "required": ["name", "value"],
    "properties": {
        "name": {"type": "string"},
        "value": {"type": "integer"},
        "tags": {"type": "array", "items": {"type": "string"}},
        "options": {
            "type": "object",
            "required": ["enabled"],
            "properties": {"enabled": {"type": "boolean"}}
        }
    },
    "default": {"name": "default-widget", "value": 0}
}

VALID_WIDGET = {"name": "clock", "value": 1}


class FakeWatchHandle(WatchHandle):
    """Watch handle that lets tests fire watcher notifications."""

    def __init__(self, path, on_change, on_delete, on_error):
        self.path = path
        self.on_change = on_change
        self.on_delete = on_delete
        self.on_error = on_error
        self.close_count = 0

    def close(self):
        self.close_count += 1

    def trigger_change(self):
        self.on_change()

    def trigger_delete(self):
        self.on_delete()

    def trigger_error(self, error):
        self.on_error(error)


class FakeFileWatcher(FileWatcher):
    """FileWatcher that records every watch instead of touching the OS."""

    def __init__(self):
        self.handles = []
        self.fail_with = None

    def watch(self, path, on_change, on_delete, on_error):
        if self.fail_with is not None:
            raise self.fail_with
        handle = FakeWatchHandle(path, on_change, on_delete, on_error)
        self.handles.append(handle)
        return handle

    def handle_for(self, path):
        matches = [h for h in self.handles if h.path == path]
        assert len(matches) == 1, f"expected one handle for {path}, found {len(matches)}"
        return matches[0]

    @property
    def total_close_count(self):
        return sum(h.close_count for h in self.handles)


class FakeTimer:
    """threading.Timer stand-in that only runs when fired by the test."""

    def __init__(self, interval, function, args=None, kwargs=None):
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.kwargs = kwargs or {}
        self.daemon = False
        self.started = False
        self.cancelled = False
        self.fired = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if self.started and not self.cancelled and not self.fired:
            self.fired = True
            self.function(*self.args, **self.kwargs)


class FakeTimerFactory:
    def __init__(self):
        self.timers = []

    def __call__(self, interval, function, args=None, kwargs=None):
        timer = FakeTimer(interval, function, args=args, kwargs=kwargs)
        self.timers.append(timer)
        return timer

    @property
    def pending(self):
        return [t for t in self.timers if t.started and not t.cancelled and not t.fired]

    def settle(self):
        """Fire every pending timer, as if the debounce window elapsed."""
        for timer in self.pending:
            timer.fire()


class EventRecorder:
    """Collects payloads emitted for the given event names."""

    def __init__(self, emitter, *events):
        self.events = []
        for event in events:
            emitter.on(event, lambda payload, name=event: self.events.append((name, payload)))

    def names(self):
        return [name for name, _ in self.events]

    def payloads(self, event):
        return [payload for name, payload in self.events if name == event]


@pytest.fixture
def schemas_dir(tmp_path):
    directory = tmp_path / "schemas"
    directory.mkdir()
    (directory / "widget.schema.json").write_text(json.dumps(WIDGET_SCHEMA))
    return directory


@pytest.fixture
def content_dir(tmp_path):
    directory = tmp_path / "content"
    directory.mkdir()
    return directory


@pytest.fixture
def write_json(content_dir):
    """Write a JSON document into the content directory and return its path."""

    def _write(name, data):
        path = content_dir / name
        path.write_text(json.dumps(data))
        return path

    return _write


@pytest.fixture
def file_watcher():
    return FakeFileWatcher()


@pytest.fixture
def timers():
    return FakeTimerFactory()


@pytest.fixture
def service(schemas_dir, file_watcher, timers):
    svc = ContentService(
        schemas_path=schemas_dir,
        watch_delay=0.5,
        max_retries=2,
        retry_delay=0,
        file_watcher=file_watcher,
        timer_factory=timers,
    )
    svc.initialize()
    yield svc
    svc.cleanup()
