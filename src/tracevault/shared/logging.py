"""
TraceVault 구조적 로깅.

모든 모듈은 ``logging.getLogger(__name__)`` 로 로거를 얻고, 캐시/번들 작업의
실패와 완료는 아래 헬퍼로 기록합니다. 헬퍼는 ``extra`` 필드로 에러 코드,
작업 이름, 컨텍스트를 남기며 ``StructuredFormatter`` 가 이를 JSON 한 줄로
직렬화합니다. 콘솔 출력은 Rich, 파일 출력은 항상 JSON 입니다.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from tracevault.shared.errors import ErrorContext, TraceVaultError

ROOT_LOGGER_NAME = "tracevault"

# LogRecord attributes copied into the JSON line when present
STRUCTURED_FIELDS = ("error_code", "operation", "context", "duration_ms", "result_info")

_LEVEL_STYLES = {
    "logging.level.debug": "cyan",
    "logging.level.info": "green",
    "logging.level.warning": "yellow",
    "logging.level.error": "red bold",
    "logging.level.critical": "red bold reverse",
    "log.time": "dim cyan",
}


class StructuredFormatter(logging.Formatter):
    """로그 레코드를 JSON 한 줄로 직렬화합니다."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            {field: getattr(record, field) for field in STRUCTURED_FIELDS if hasattr(record, field)}
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return orjson.dumps(entry, default=str, option=orjson.OPT_NON_STR_KEYS).decode("utf-8")


def _console_handler(use_rich_console: bool) -> logging.Handler:
    if not use_rich_console:
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
        return handler

    # stderr 로 보내서 --json 출력과 섞이지 않게 합니다
    return RichHandler(
        console=Console(theme=Theme(_LEVEL_STYLES), stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=True,
        log_time_format="[%H:%M:%S]",
    )


def setup_structured_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str = "INFO",
    log_file: str | None = None,
    *,
    use_rich_console: bool = True,
) -> logging.Logger:
    """
    패키지 로거에 콘솔 핸들러와 (선택) JSON 파일 핸들러를 설정합니다.

    여러 번 호출해도 핸들러가 중복되지 않습니다. 설정된 로거는 상위 로거로
    전파하지 않습니다.

    Args:
        name: 로거 이름 (기본값: "tracevault")
        level: 로그 레벨 이름
        log_file: JSON 로그 파일 경로 (선택사항)
        use_rich_console: False 이면 콘솔에도 JSON 을 출력합니다

    Returns:
        설정된 로거
    """
    logger = logging.getLogger(name)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    log_level = logging.getLevelName(level.upper())
    logger.setLevel(log_level)

    console = _console_handler(use_rich_console)
    console.setLevel(log_level)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def _context_dict(*sources: dict[str, Any] | ErrorContext | None) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for source in sources:
        if isinstance(source, ErrorContext):
            merged.update(source.safe_dict())
        elif source:
            merged.update(source)
    return merged


def log_operation_error(
    logger: logging.Logger,
    error: TraceVaultError,
    operation: str | None = None,
    context: dict[str, Any] | ErrorContext | None = None,
    additional_context: dict[str, Any] | ErrorContext | None = None,
    *,
    level: int = logging.ERROR,
) -> None:
    """
    TraceVaultError 를 구조화된 로그로 기록합니다.

    캐시 쓰기 실패나 손상된 엔트리처럼 복구되는 경우에는
    ``level=logging.WARNING`` 을 넘깁니다.

    Args:
        logger: 로거
        error: 기록할 에러
        operation: 작업 이름. 없으면 에러 컨텍스트의 작업 이름을 씁니다
        context: 병합할 컨텍스트
        additional_context: 마지막에 병합할 컨텍스트
        level: 로그 레벨 (기본값: ERROR)
    """
    logger.log(
        level,
        error.message,
        extra={
            "error_code": error.code.name,
            "operation": operation or error.context.operation,
            "context": _context_dict(error.context, context, additional_context),
        },
        exc_info=error.original_error,
    )


def log_operation_success(
    logger: logging.Logger,
    operation: str,
    duration_ms: float,
    result_info: dict[str, Any] | None = None,
    context: dict[str, Any] | ErrorContext | None = None,
) -> None:
    """작업 완료를 DEBUG 로 기록합니다."""
    logger.debug(
        "Operation '%s' completed in %.1f ms",
        operation,
        duration_ms,
        extra={
            "operation": operation,
            "duration_ms": duration_ms,
            "result_info": result_info or {},
            "context": _context_dict(context),
        },
    )


def log_operation_start(
    logger: logging.Logger,
    operation: str,
    context: dict[str, Any] | None = None,
) -> None:
    logger.debug(
        "Starting operation '%s'",
        operation,
        extra={"operation": operation, "context": context or {}},
    )
