"""Tests for monitor diagnostic sinks."""

import logging

from monitor.diagnostics import (
    EVENT_FAULT_COUNTER,
    EVENT_RESET,
    DiagnosticEvent,
    LoggingSink,
    RecordingSink,
)


def _event(kind=EVENT_FAULT_COUNTER, streak=1):
    return DiagnosticEvent(
        kind=kind, streak=streak, max_streak=2,
        speed=7.5, speed_limit=6.0,
        cov_area_median=0.25, cov_area_limit=5.0,
    )


class TestDiagnosticEvent:
    def test_fault_counter_message(self):
        assert _event(streak=2).message() == "Estimator fault counter: 2/2. Might reset soon."

    def test_reset_message(self):
        msg = _event(EVENT_RESET, streak=3).message()
        assert msg.startswith("Will reset estimator.")
        assert "7.500 (limit: 6.0)" in msg
        assert "0.250 (limit: 5.0)" in msg


class TestLoggingSink:
    def test_fault_counter_is_warning(self, caplog):
        sink = LoggingSink()
        with caplog.at_level(logging.DEBUG):
            sink.record(_event())
        assert caplog.records[-1].levelno == logging.WARNING

    def test_reset_is_error(self, caplog):
        sink = LoggingSink()
        with caplog.at_level(logging.DEBUG):
            sink.record(_event(EVENT_RESET))
        assert caplog.records[-1].levelno == logging.ERROR

    def test_custom_logger(self, caplog):
        sink = LoggingSink(logging.getLogger("host.estimator"))
        with caplog.at_level(logging.DEBUG):
            sink.record(_event())
        assert caplog.records[-1].name == "host.estimator"


class TestRecordingSink:
    def test_records_in_order(self):
        sink = RecordingSink()
        sink.record(_event(streak=1))
        sink.record(_event(streak=2))
        sink.record(_event(EVENT_RESET, streak=3))
        assert [e.streak for e in sink.events] == [1, 2, 3]
        assert len(sink.of_kind(EVENT_FAULT_COUNTER)) == 2
        assert len(sink.of_kind(EVENT_RESET)) == 1
