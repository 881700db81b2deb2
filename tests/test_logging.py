"""JSON log lines, activation context fields and logger setup."""

import json
import logging
from datetime import datetime, timezone
from io import StringIO

import pytest

from interaction_kernel.domain.ticket import TicketStatus
from interaction_kernel.exceptions import TicketChannelMissingError
from interaction_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)

KERNEL_LOGGER = "interaction_kernel"


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


@pytest.fixture
def emitted():
    """Install a JSON handler writing to memory; call the result to read lines."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler)

    def lines() -> list[dict]:
        return [json.loads(raw) for raw in buffer.getvalue().splitlines() if raw]

    return lines


class TestLineShape:
    def test_core_keys(self, emitted):
        get_logger("dispatcher").info("activation_completed")

        (line,) = emitted()
        assert line["message"] == "activation_completed"
        assert line["level"] == "INFO"
        assert line["logger"] == f"{KERNEL_LOGGER}.dispatcher"
        assert datetime.fromisoformat(line["ts"]).tzinfo is not None

    def test_extra_payload_is_flattened(self, emitted):
        get_logger("tickets").info("ticket_opened", extra={"reason": "AUTO", "count": 2})

        (line,) = emitted()
        assert (line["reason"], line["count"]) == ("AUTO", 2)

    def test_bound_context_is_stamped(self, emitted):
        LogContext.set(interaction_id="i-1", actor_id="42", namespace="LCST::X")
        get_logger("notes").info("note_requested")

        (line,) = emitted()
        assert line["interaction_id"] == "i-1"
        assert line["actor_id"] == "42"
        assert line["namespace"] == "LCST::X"
        assert "ticket_id" not in line

    def test_kernel_error_attributes_exported(self, emitted):
        try:
            raise TicketChannelMissingError("65f1c0de0123456789abcdef", "555")
        except TicketChannelMissingError:
            get_logger("tickets").warning("workflow_failed", exc_info=True)

        (line,) = emitted()
        assert line["exc_type"] == "TicketChannelMissingError"
        assert line["exc_code"] == "TK207"
        assert line["exc_channel_ref"] == "555"
        assert "Traceback" in line["traceback"]

    def test_non_json_values_are_coerced(self, emitted):
        get_logger("store").info(
            "ticket_status_updated",
            extra={
                "status": TicketStatus.CLOSED,
                "at": datetime(2024, 1, 1, tzinfo=timezone.utc),
                "namespaces": frozenset({"b", "a"}),
            },
        )

        (line,) = emitted()
        assert line["status"] == "Closed"
        assert line["at"] == "2024-01-01T00:00:00+00:00"
        assert line["namespaces"] == ["a", "b"]

    def test_default_level_drops_debug(self, emitted):
        log = get_logger("store")
        log.debug("hidden")
        log.info("shown")
        log.error("also_shown")

        assert [line["message"] for line in emitted()] == ["shown", "also_shown"]


class TestLogContext:
    def test_only_bound_fields_reported(self):
        LogContext.set(interaction_id="x", ticket_id="y", guild_id=None)
        assert LogContext.get_all() == {"interaction_id": "x", "ticket_id": "y"}

    def test_clear_unbinds_everything(self):
        LogContext.set(actor_id="x", namespace="n")
        LogContext.clear()
        assert not LogContext.get_all()

    def test_bind_is_scoped(self):
        LogContext.set(interaction_id="outer")
        with LogContext.bind(interaction_id="inner", ticket_id="t"):
            assert LogContext.get_all() == {"interaction_id": "inner", "ticket_id": "t"}
        assert LogContext.get_all() == {"interaction_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(actor_id="a"):
                raise RuntimeError("boom")
        assert LogContext.get_all() == {}

    def test_bind_ignores_none(self):
        with LogContext.bind(guild_id=None, actor_id="a"):
            assert LogContext.get_all() == {"actor_id": "a"}

    def test_unknown_field_rejected(self):
        with pytest.raises(ValueError):
            LogContext.set(channel="c")


class TestSetup:
    def test_second_configure_is_ignored(self):
        first, second = logging.NullHandler(), logging.NullHandler()
        configure_logging(handler=first)
        configure_logging(handler=second)
        assert logging.getLogger(KERNEL_LOGGER).handlers == [first]

    def test_child_logger_names(self):
        assert get_logger("services.dispatcher").name == f"{KERNEL_LOGGER}.services.dispatcher"

    def test_level_given_by_name(self):
        buffer = StringIO()
        configure_logging(stream=buffer, level="debug")
        get_logger("deep.nested").debug("hierarchy_test")

        line = json.loads(buffer.getvalue().splitlines()[0])
        assert line["logger"] == f"{KERNEL_LOGGER}.deep.nested"

    def test_reset_restores_propagation(self):
        configure_logging(handler=logging.NullHandler())
        reset_logging()
        root = logging.getLogger(KERNEL_LOGGER)
        assert root.propagate
        assert root.handlers == []
