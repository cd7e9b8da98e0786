"""
구조적 로깅 시스템 테스트.

이 모듈은 src/tracevault/shared/logging.py의 구조적 로깅 기능을 테스트합니다.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from rich.logging import RichHandler

from tracevault.shared.errors import ErrorCode, ErrorContext, StorageFullError
from tracevault.shared.logging import (
    StructuredFormatter,
    log_operation_error,
    log_operation_start,
    log_operation_success,
    setup_structured_logger,
)


def make_record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test_logger",
        level=logging.WARNING,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    """StructuredFormatter 테스트."""

    def test_format_basic_log_record(self) -> None:
        """기본 로그 레코드 포맷팅 테스트."""
        log_data = json.loads(StructuredFormatter().format(make_record()))

        assert log_data["level"] == "WARNING"
        assert log_data["logger"] == "test_logger"
        assert log_data["message"] == "Test message"
        assert "timestamp" in log_data

    def test_format_structured_fields(self) -> None:
        """구조화 필드 포함 테스트."""
        record = make_record(error_code="STORAGE_FULL", operation="cache_put", context={"key": "k"})

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data["error_code"] == "STORAGE_FULL"
        assert log_data["operation"] == "cache_put"
        assert log_data["context"] == {"key": "k"}


class TestSetupStructuredLogger:
    """setup_structured_logger 테스트."""

    def test_rich_console_and_json_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "tracevault.log"

        logger = setup_structured_logger("tracevault.test", "DEBUG", str(log_file))
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()

        assert any(isinstance(h, RichHandler) for h in logger.handlers)
        assert json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])["message"] == "hello"
        assert logger.propagate is False

    def test_repeated_setup_does_not_duplicate_handlers(self) -> None:
        setup_structured_logger("tracevault.test", "INFO")
        logger = setup_structured_logger("tracevault.test", "INFO", use_rich_console=False)

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)


class TestOperationLogging:
    """log_operation_* 헬퍼 테스트."""

    def test_log_operation_error_uses_requested_level(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tracevault.tests.ops")
        error = StorageFullError(
            ErrorCode.STORAGE_FULL,
            "quota exceeded",
            ErrorContext(operation="set_raw", additional_data={"key": "k"}),
        )

        with caplog.at_level(logging.DEBUG, logger="tracevault.tests.ops"):
            log_operation_error(logger, error, additional_context={"cache": "contract"}, level=logging.WARNING)

        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert record.error_code == "STORAGE_FULL"
        assert record.operation == "set_raw"
        assert record.context == {
            "operation": "set_raw",
            "additional_data": {"key": "k"},
            "cache": "contract",
        }

    def test_success_and_start_are_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = logging.getLogger("tracevault.tests.ops")

        with caplog.at_level(logging.DEBUG, logger="tracevault.tests.ops"):
            log_operation_start(logger, "cleanup")
            log_operation_success(logger, "cleanup", 1.5, result_info={"evicted": 2})

        assert [r.levelno for r in caplog.records] == [logging.DEBUG, logging.DEBUG]
        assert caplog.records[-1].result_info == {"evicted": 2}
