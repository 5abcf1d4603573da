"""Testes para config.logging.

Cobre: configure_logging (incluindo arquivo de log), get_logger,
validate_log_file_path, CorrelationIdFilter, create_json_formatter.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from config.logging import (
    FIELD_RENAME_MAP,
    REQUIRED_LOG_FIELDS,
    CorrelationIdFilter,
    configure_logging,
    create_json_formatter,
    get_logger,
    validate_log_file_path,
)
from config.logging.config import DEFAULT_SERVICE_NAME, VALID_LOG_LEVELS


def _record(msg: str = "msg", level: int = logging.INFO, name: str = "test") -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=None,
    )


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


class TestConfigureLogging:
    """Testes para configure_logging."""

    def test_configure_logging_default_level(self) -> None:
        """Configura logging com nível padrão INFO."""
        configure_logging()
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_is_case_insensitive(self) -> None:
        configure_logging(level="warning")
        assert logging.getLogger().level == logging.WARNING

    def test_configure_logging_invalid_level_raises(self) -> None:
        """Nível inválido levanta ValueError."""
        with pytest.raises(ValueError, match="Nível de log inválido"):
            configure_logging(level="INVALID")

    def test_configure_logging_replaces_handlers(self) -> None:
        """configure_logging substitui handlers existentes."""
        root = logging.getLogger()
        root.handlers = [logging.NullHandler(), logging.NullHandler()]
        configure_logging()
        assert len(root.handlers) == 1

    def test_configure_logging_adds_correlation_filter(self) -> None:
        configure_logging(correlation_id_getter=lambda: "custom-corr-id")
        handler = logging.getLogger().handlers[0]
        assert any(isinstance(f, CorrelationIdFilter) for f in handler.filters)

    def test_configure_logging_writes_json_to_file(self, tmp_path: Path) -> None:
        """Com log_file_path, um segundo handler grava JSON no arquivo."""
        log_file = tmp_path / "nested" / "receiver.log"
        configure_logging(
            level="INFO",
            service_name="file_test",
            correlation_id_getter=lambda: "corr-file",
            log_file_path=str(log_file),
        )
        assert len(logging.getLogger().handlers) == 2

        get_logger("file.test").info("long_polling_started", extra={"offset": 7})
        for handler in logging.getLogger().handlers:
            handler.flush()

        line = log_file.read_text(encoding="utf-8").strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "long_polling_started"
        assert payload["service"] == "file_test"
        assert payload["correlation_id"] == "corr-file"
        assert payload["level"] == "INFO"
        assert payload["offset"] == 7

    def test_configure_logging_rejects_traversal_path(self) -> None:
        with pytest.raises(ValueError, match="path traversal"):
            configure_logging(log_file_path="logs/../../etc/receiver.log")

    def test_valid_log_levels_constant(self) -> None:
        assert {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} == VALID_LOG_LEVELS

    def test_default_service_name_constant(self) -> None:
        assert DEFAULT_SERVICE_NAME == "telegram-receiver"


class TestValidateLogFilePath:
    """Testes para validate_log_file_path."""

    @pytest.mark.parametrize(
        "path",
        ["/etc/receiver.log", "/usr/local/receiver.log", "/var/log/receiver.log", "/root/x.log"],
    )
    def test_rejects_system_directories(self, path: str) -> None:
        with pytest.raises(ValueError, match="diretório de sistema"):
            validate_log_file_path(path)

    def test_accepts_relative_path(self) -> None:
        assert validate_log_file_path("logs/receiver.log") == Path("logs/receiver.log")


class TestGetLogger:
    """Testes para get_logger."""

    def test_get_logger_returns_named_logger(self) -> None:
        logger = get_logger("test.module")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "test.module"

    def test_get_logger_same_name_returns_same_instance(self) -> None:
        assert get_logger("same.module") is get_logger("same.module")


class TestCorrelationIdFilter:
    """Testes para CorrelationIdFilter."""

    def test_filter_adds_correlation_id_from_getter(self) -> None:
        filter_ = CorrelationIdFilter("my_service", lambda: "corr-123")
        record = _record()
        assert filter_.filter(record) is True
        assert record.correlation_id == "corr-123"
        assert record.service == "my_service"

    def test_filter_preserves_explicit_correlation_id(self) -> None:
        """Filter preserva correlation_id passado via extra."""
        filter_ = CorrelationIdFilter("svc", lambda: "from-getter")
        record = _record()
        record.correlation_id = "explicit-id"
        filter_.filter(record)
        assert record.correlation_id == "explicit-id"

    def test_filter_uses_empty_string_when_no_getter(self) -> None:
        filter_ = CorrelationIdFilter("service_name", None)
        record = _record()
        filter_.filter(record)
        assert record.correlation_id == ""
        assert record.service == "service_name"


class TestCreateJsonFormatter:
    """Testes para create_json_formatter e constantes."""

    def test_required_log_fields_content(self) -> None:
        expected = {"asctime", "levelname", "name", "message", "correlation_id", "service"}
        assert expected == set(REQUIRED_LOG_FIELDS)

    def test_field_rename_map_content(self) -> None:
        assert FIELD_RENAME_MAP == {"levelname": "level", "name": "logger"}

    def test_json_formatter_renames_fields(self) -> None:
        formatter = create_json_formatter()
        record = _record("Test message", name="test.logger")
        record.correlation_id = "abc-123"
        record.service = "test_service"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "Test message"
        assert payload["logger"] == "test.logger"
        assert payload["level"] == "INFO"
        assert payload["correlation_id"] == "abc-123"
