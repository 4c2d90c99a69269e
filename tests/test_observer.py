# tests/test_observer.py
"""
Tests for session events and observers.
"""

import logging

from genchat.observer import (CallbackObserver, LoggingObserver, SessionEvent,
                              SessionEventType, Severity)


def _event(**kwargs) -> SessionEvent:
    values = {
        "event_type": SessionEventType.RESPONSE_BLOCKED,
        "method": "send_message",
        "message": "send_message() was unsuccessful.",
        "model": "m",
    }
    values.update(kwargs)
    return SessionEvent(**values)


class TestSeverity:
    """Tests for Severity parsing and mapping."""

    def test_from_string(self):
        assert Severity.from_string("ERROR") is Severity.ERROR
        assert Severity.from_string("nonsense") is Severity.INFO

    def test_to_logging_level(self):
        assert Severity.WARNING.to_logging_level() == logging.WARNING
        assert Severity.DEBUG.to_logging_level() == logging.DEBUG


class TestSessionEvent:
    """Tests for the event record."""

    def test_defaults(self):
        event = _event()
        assert event.severity is Severity.WARNING
        assert event.id
        assert event.timestamp.tzinfo is not None

    def test_error_is_excluded_from_dumps(self):
        event = _event(error=RuntimeError("boom"))
        assert event.error is not None
        assert "error" not in event.model_dump()


class TestLoggingObserver:
    """Tests for the default logging observer."""

    def test_warning_is_logged_for_display(self, caplog):
        caplog.set_level(logging.DEBUG, logger="genchat.chat_session")
        LoggingObserver().notify(_event())

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.getMessage() == "send_message() was unsuccessful."
        assert record.display is True

    def test_error_carries_exc_info(self, caplog):
        caplog.set_level(logging.DEBUG, logger="genchat.chat_session")
        error = ValueError("admission failed")
        LoggingObserver().notify(_event(
            event_type=SessionEventType.HISTORY_UPDATE_FAILED,
            severity=Severity.ERROR,
            method="send_message_stream",
            message="could not update",
            error=error,
        ))

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info[1] is error

    def test_debug_events_are_not_displayed(self, caplog):
        caplog.set_level(logging.DEBUG, logger="custom")
        LoggingObserver(logger_name="custom").notify(_event(severity=Severity.DEBUG))

        record = caplog.records[-1]
        assert record.name == "custom"
        assert not hasattr(record, "display")

    def test_display_disabled(self, caplog):
        caplog.set_level(logging.DEBUG, logger="genchat.chat_session")
        LoggingObserver(display=False).notify(_event())
        assert not hasattr(caplog.records[-1], "display")


class TestCallbackObserver:
    """Tests for the callback observer."""

    def test_callbacks_receive_events(self):
        first, second = [], []
        observer = CallbackObserver(first.append)
        observer.add_callback(second.append)

        event = _event()
        observer.notify(event)

        assert first == [event]
        assert second == [event]

    def test_removed_callback_is_not_called(self):
        received = []
        observer = CallbackObserver(received.append)
        observer.remove_callback(received.append)
        observer.notify(_event())
        assert received == []

    def test_failing_callback_is_isolated(self, caplog):
        def broken(event):
            raise RuntimeError("callback bug")

        received = []
        observer = CallbackObserver(broken, received.append)
        observer.notify(_event())

        assert len(received) == 1
        assert "callback bug" in caplog.text
