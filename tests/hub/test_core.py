"""Tests for the event record, listener record and error types."""

import time

import pytest

from onemit.hub.core import (
    EmitEvent,
    EventEmissionError,
    EventHubError,
    Listener,
    ListenerRemovedError,
    MixinError,
    WhenTimeoutError,
    event_name_of,
)


class TestEmitEvent:
    """Tests for EmitEvent."""

    def test_from_name(self):
        """Test building a record from an event name."""
        event = EmitEvent.coerce("foo")
        assert event.type == "foo"
        assert event.result == []
        assert event.args == ()

    def test_from_mapping_keeps_extra_properties(self):
        """Test that mapping keys become attributes."""
        event = EmitEvent.coerce({"type": "foo", "data": "test", "count": 2})
        assert event.type == "foo"
        assert event.data == "test"
        assert event.count == 2

    def test_mapping_without_type_defaults_to_wildcard(self):
        """Test the default type of a mapping record."""
        assert EmitEvent.coerce({"data": 1}).type == "*"

    def test_mapping_cannot_set_time_stamp_or_result(self):
        """Test that the emitter-owned fields are not taken from the mapping."""
        before = time.time() * 1000
        event = EmitEvent.coerce({"type": "foo", "time_stamp": 1.0, "result": "nope"})
        assert event.time_stamp >= before
        assert event.result == []

    def test_existing_record_used_as_is(self):
        """Test that an EmitEvent is not copied."""
        event = EmitEvent(type="foo")
        assert EmitEvent.coerce(event) is event

    def test_none_gives_empty_type(self):
        """Test coercing None."""
        assert EmitEvent.coerce(None).type == ""

    def test_invalid_values(self):
        """Test that unsupported values raise EventEmissionError."""
        with pytest.raises(EventEmissionError):
            EmitEvent.coerce(42)
        with pytest.raises(EventEmissionError):
            EmitEvent.coerce({"type": ["not", "a", "name"]})

    def test_numeric_type_is_stringified(self):
        """Test that a numeric type in a mapping becomes the event name."""
        assert EmitEvent.coerce({"type": 5}).type == "5"
        assert EmitEvent.coerce({"type": 2.5, "x": 1}).type == "2.5"

    def test_str_is_type(self):
        """Test the string form of a record."""
        assert str(EmitEvent(type="saved")) == "saved"

    def test_event_name_of(self):
        """Test registry key resolution."""
        assert event_name_of("foo") == "foo"
        assert event_name_of(EmitEvent(type="bar")) == "bar"
        assert event_name_of(None) == ""


class TestListener:
    """Tests for the Listener record."""

    def test_plain_listener(self):
        """Test a listener without tags."""

        def handler(_event):
            return None

        listener = Listener(invoke=handler)
        assert listener.handler is handler
        assert listener.matches(handler)
        assert not listener.matches(lambda event: None)

    def test_wrapped_listener(self):
        """Test that a wrapper matches both itself and its original handler."""

        def handler(_event):
            return None

        def wrapper(*args):
            return handler(*args)

        listener = Listener(invoke=wrapper, original_handler=handler)
        assert listener.handler is handler
        assert listener.matches(handler)
        assert listener.matches(wrapper)


class TestErrors:
    """Tests for the exception hierarchy."""

    def test_hierarchy(self):
        """Test that every error derives from EventHubError."""
        for error in (ListenerRemovedError("foo"), WhenTimeoutError("foo", 10), MixinError("x")):
            assert isinstance(error, EventHubError)

    def test_timeout_error(self):
        """Test the timeout error attributes."""
        error = WhenTimeoutError("foo", 16)
        assert error.kind == "timeout"
        assert error.event_name == "foo"
        assert error.timeout_ms == 16
        assert "foo" in str(error)
        assert isinstance(error, TimeoutError)

    def test_mixin_error_is_type_error(self):
        """Test that MixinError can be caught as TypeError."""
        assert isinstance(MixinError("x"), TypeError)
