"""
Unit Tests for the Configuration Loader.

Test Coverage:
    - JSON and YAML parsing by extension
    - Cache hits perform no file read
    - Transient failures are retried 1 + max_retries times with a fixed delay
    - Missing files and unsupported formats fail without any retry
    - Validation failures emit "validation-error" and keep the cached value
"""
import json
import unittest
from unittest.mock import MagicMock, patch

import pytest

from conftest import VALID_WIDGET, EventRecorder
from content import (
    ConfigurationCache,
    ConfigurationFileNotFoundError,
    ConfigurationLoader,
    ConfigurationValidationError,
    ContentServiceError,
    EventEmitter,
    SchemaRegistry,
    UnsupportedFormatError,
    canonical_path,
)
from content.events import CONTENT_LOADED, VALIDATION_ERROR
from content.loader import get_parser


@pytest.fixture
def registry(schemas_dir):
    registry = SchemaRegistry()
    registry.initialize(schemas_dir)
    return registry


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def cache():
    return ConfigurationCache()


@pytest.fixture
def sleep():
    return MagicMock()


@pytest.fixture
def loader(registry, cache, events, sleep):
    return ConfigurationLoader(registry, cache, events, max_retries=2, retry_delay=0.25, sleep=sleep)


def test_get_parser_by_extension():
    assert get_parser("a.JSON") is get_parser("b.json")
    assert get_parser("a.yaml") is get_parser("a.yml")


def test_get_parser_rejects_unknown_extension():
    with pytest.raises(UnsupportedFormatError, match=r"Unsupported file format: \.xml"):
        get_parser("settings.xml")


def test_load_json_caches_and_emits(loader, cache, events, write_json):
    path = write_json("widget.json", VALID_WIDGET)
    recorder = EventRecorder(events, CONTENT_LOADED)

    content = loader.load(str(path), "widget")

    assert content == VALID_WIDGET
    assert cache.get(canonical_path(path)) == VALID_WIDGET
    assert recorder.payloads(CONTENT_LOADED) == [
        {"filePath": canonical_path(path), "schemaKey": "widget", "content": VALID_WIDGET}
    ]


def test_load_yaml(loader, content_dir):
    path = content_dir / "widget.yaml"
    path.write_text("name: clock\nvalue: 7\ntags:\n  - a\n  - b\n")

    assert loader.load(str(path), "widget") == {"name": "clock", "value": 7, "tags": ["a", "b"]}


def test_cache_hit_reads_file_once(loader, write_json):
    path = write_json("widget.json", VALID_WIDGET)

    with patch.object(loader, "_read_file", wraps=loader._read_file) as read_file:
        first = loader.load(str(path), "widget")
        second = loader.load(str(path), "widget")

    assert first == second
    assert read_file.call_count == 1


def test_cache_hit_matches_any_path_spelling(loader, write_json, content_dir):
    path = write_json("widget.json", VALID_WIDGET)
    loader.load(str(path), "widget")

    with patch.object(loader, "_read_file") as read_file:
        loader.load(str(content_dir / ".." / content_dir.name / "widget.json"), "widget")

    read_file.assert_not_called()


def test_use_cache_false_rereads(loader, write_json):
    path = write_json("widget.json", VALID_WIDGET)
    loader.load(str(path), "widget")
    path.write_text(json.dumps({"name": "clock", "value": 2}))

    with patch.object(loader, "_read_file", wraps=loader._read_file) as read_file:
        content = loader.load(str(path), "widget", use_cache=False)

    assert content["value"] == 2
    assert read_file.call_count == 1


def test_cache_entry_for_other_schema_key_is_not_used(loader, cache, write_json):
    path = write_json("widget.json", VALID_WIDGET)
    cache.set(canonical_path(path), {"something": "else"}, "other-schema")

    assert loader.load(str(path), "widget") == VALID_WIDGET


def test_transient_failure_recovers_on_retry(loader, sleep, write_json):
    path = write_json("widget.json", VALID_WIDGET)
    good = path.read_text()

    with patch.object(loader, "_read_file", side_effect=[OSError("EIO"), "{ truncated", good]) as read_file:
        content = loader.load(str(path), "widget")

    assert content == VALID_WIDGET
    assert read_file.call_count == 3
    assert sleep.call_count == 2
    sleep.assert_called_with(0.25)


def test_retry_budget_exhausted_reraises_last_error(loader, sleep, cache, write_json):
    path = write_json("widget.json", VALID_WIDGET)

    with patch.object(loader, "_read_file", side_effect=OSError("disk gone")) as read_file:
        with pytest.raises(OSError, match="disk gone"):
            loader.load(str(path), "widget")

    # one attempt plus max_retries=2
    assert read_file.call_count == 3
    assert sleep.call_count == 2
    assert canonical_path(path) not in cache


def test_malformed_json_is_retried_then_raised(loader, content_dir):
    path = content_dir / "broken.json"
    path.write_text("{ not json")

    with patch.object(loader, "_read_file", wraps=loader._read_file) as read_file:
        with pytest.raises(json.JSONDecodeError):
            loader.load(str(path), "widget")

    assert read_file.call_count == 3


def test_zero_retries_makes_single_attempt(registry, cache, events, sleep, write_json):
    loader = ConfigurationLoader(registry, cache, events, max_retries=0, retry_delay=1, sleep=sleep)
    path = write_json("widget.json", VALID_WIDGET)

    with patch.object(loader, "_read_file", side_effect=OSError("EIO")) as read_file:
        with pytest.raises(OSError):
            loader.load(str(path), "widget")

    assert read_file.call_count == 1
    sleep.assert_not_called()


def test_missing_file_fails_without_retry(loader, sleep, content_dir):
    missing = content_dir / "missing.json"

    with patch.object(loader, "_read_file") as read_file:
        with pytest.raises(ConfigurationFileNotFoundError) as exc_info:
            loader.load(str(missing), "widget")

    read_file.assert_not_called()
    sleep.assert_not_called()
    assert exc_info.value.file_path == canonical_path(missing)
    assert isinstance(exc_info.value, FileNotFoundError)
    assert isinstance(exc_info.value, ContentServiceError)


def test_file_removed_during_read_is_not_retried(loader, sleep, write_json):
    path = write_json("widget.json", VALID_WIDGET)

    with patch.object(loader, "_read_file", side_effect=FileNotFoundError(str(path))) as read_file:
        with pytest.raises(ConfigurationFileNotFoundError):
            loader.load(str(path), "widget")

    assert read_file.call_count == 1
    sleep.assert_not_called()


def test_unsupported_format_fails_without_retry(loader, sleep, content_dir):
    path = content_dir / "widget.xml"
    path.write_text("<widget/>")

    with patch.object(loader, "_read_file") as read_file:
        with pytest.raises(UnsupportedFormatError) as exc_info:
            loader.load(str(path), "widget")

    read_file.assert_not_called()
    sleep.assert_not_called()
    assert exc_info.value.extension == ".xml"


def test_missing_file_checked_before_extension(loader, content_dir):
    with pytest.raises(ConfigurationFileNotFoundError):
        loader.load(str(content_dir / "absent.xml"), "widget")


def test_validation_failure_emits_and_keeps_cache(loader, cache, events, write_json):
    path = write_json("widget.json", VALID_WIDGET)
    loader.load(str(path), "widget")
    recorder = EventRecorder(events, VALIDATION_ERROR, CONTENT_LOADED)

    path.write_text(json.dumps({"name": "clock"}))
    with patch.object(loader, "_read_file", wraps=loader._read_file) as read_file:
        with pytest.raises(ConfigurationValidationError) as exc_info:
            loader.load(str(path), "widget", use_cache=False)

    assert read_file.call_count == 1
    assert exc_info.value.schema_key == "widget"
    assert any("'value' is a required property" in e for e in exc_info.value.errors)
    assert recorder.names() == [VALIDATION_ERROR]
    payload = recorder.payloads(VALIDATION_ERROR)[0]
    assert payload["filePath"] == canonical_path(path)
    assert payload["schemaKey"] == "widget"
    assert payload["error"] is exc_info.value
    assert cache.get(canonical_path(path)) == VALID_WIDGET


def test_unknown_schema_key_is_a_validation_failure(loader, write_json):
    path = write_json("widget.json", VALID_WIDGET)

    with pytest.raises(ConfigurationValidationError) as exc_info:
        loader.load(str(path), "no-such-schema")

    assert exc_info.value.errors == ["Schema not found: no-such-schema"]


class TestLoaderLogging(unittest.TestCase):
    """Retry attempts are logged as warnings and exhaustion as an error."""

    def setUp(self):
        self.registry = MagicMock()
        self.cache = ConfigurationCache()
        self.loader = ConfigurationLoader(
            self.registry, self.cache, EventEmitter(), max_retries=1, retry_delay=0, sleep=lambda s: None
        )

    @patch("content.loader.is_readable_file", return_value=True)
    def test_retry_and_exhaustion_are_logged(self, _readable):
        with patch.object(self.loader, "_read_file", side_effect=OSError("EIO")):
            with self.assertLogs("content.loader", level="WARNING") as logs:
                with self.assertRaises(OSError):
                    self.loader.load("/srv/kiosk/widget.json", "widget")

        output = "\n".join(logs.output)
        self.assertIn("Retrying configuration load", output)
        self.assertIn("after 2 attempts", output)
        self.registry.get_validator.assert_not_called()
