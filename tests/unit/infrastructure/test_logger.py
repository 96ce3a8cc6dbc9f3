# tests/unit/infrastructure/test_logger.py
from __future__ import annotations

import json
import logging
from decimal import Decimal

import pytest

from tickerhub_api.infrastructure.logging.logger import (
    _JsonFormatter,  # internal but importable
    configure_root_logging,
    get_json_logger,
)


def _render(msg: str, level: int = logging.INFO, exc_info=None, **extra) -> dict:  # type: ignore[no-untyped-def]
    """Format one record and return the parsed JSON payload."""
    logger = logging.getLogger("test.logger")
    record = logger.makeRecord(
        name=logger.name,
        level=level,
        fn="test_logger",
        lno=1,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for k, v in extra.items():
        setattr(record, k, v)
    return json.loads(_JsonFormatter().format(record))


def test_configure_root_logging_installs_one_json_handler(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers.clear()
    try:
        configure_root_logging()
        configure_root_logging()

        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, _JsonFormatter)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)


def test_json_formatter_basic_fields() -> None:
    payload = _render("hello-world")

    assert payload["message"] == "hello-world"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "test.logger"
    assert "ts" in payload


def test_extras_become_top_level_keys() -> None:
    payload = _render("market_data.stored", key="quote:AAPL", ttl_s=10.0, price=Decimal("1.5"))

    assert payload["key"] == "quote:AAPL"
    assert payload["ttl_s"] == 10.0
    assert payload["price"] == "1.5"
    assert "lineno" not in payload


def test_request_id_comes_from_record() -> None:
    payload = _render("with-id", request_id="abc-123", trace_id="t-1")

    assert payload["request_id"] == "abc-123"
    assert payload["trace_id"] == "t-1"


def test_exception_info_is_summarized() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        payload = _render("failed", level=logging.ERROR, exc_info=(type(exc), exc, None))

    assert payload["exc_type"] == "RuntimeError"
    assert payload["exc_message"] == "boom"


def test_get_json_logger_propagates_to_root() -> None:
    log = get_json_logger("tickerhub_api.test")
    assert log.propagate is True
