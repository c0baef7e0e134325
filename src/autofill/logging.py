"""Logging setup for the gateway.

configure_logging() is called once by each entry point (``serve``, ``extract``).

What gets logged where:
- DEBUG: inline image resolution
- INFO: downloads, inference calls, per-request summaries
- WARNING: stage failures, degraded results, enforced text limits
- ERROR: unexpected failures and configuration errors

Image bytes are never logged. Any base64 data-URL payload that
ends up in a message anyway is collapsed to its length, and API keys are
masked, by the redactor shared between the console and the JSONL handler.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import TextIO

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
DEFAULT_LOG_RETENTION_DAYS = 7

DEFAULT_REDACT_PATTERNS: list[str] = [
    # sk-... and sk-proj-... keys
    r"\b(sk-[A-Za-z0-9_-]{20,})\b",
    # OPENAI_API_KEY=... style assignments
    r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET|PASSWORD)\s*[=:]\s*([^\s\"']{8,})",
    # Authorization headers
    r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
]

_DATA_URL_PAYLOAD_RE = re.compile(
    r"(data:[\w.+-]+/[\w.+-]+;base64,)([A-Za-z0-9+/=]{16,})"
)


def _mask(token: str) -> str:
    if len(token) < 12:
        return "***"
    return f"{token[:4]}...{token[-4:]}"


@dataclass
class SecretRedactor:
    """Masks credentials and collapses image payloads in log text.

    A credential keeps its first and last four characters so keys can still
    be told apart; a data-URL payload is replaced by its length.
    """

    patterns: list[re.Pattern[str]] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.patterns:
            self.patterns = _compile(DEFAULT_REDACT_PATTERNS)

    def redact(self, text: str) -> str:
        if not text or not self.enabled:
            return text
        text = _DATA_URL_PAYLOAD_RE.sub(
            lambda m: f"{m.group(1)}<{len(m.group(2))} chars>", text
        )
        for pattern in self.patterns:
            text = pattern.sub(self._replace, text)
        return text

    @staticmethod
    def _replace(match: re.Match[str]) -> str:
        full = match.group(0)
        if not match.lastindex:
            return _mask(full)
        secret = match.group(1)
        # Already masked by an earlier pattern.
        if "..." in secret:
            return full
        return full.replace(secret, _mask(secret))


def _compile(patterns: list[str]) -> list[re.Pattern[str]]:
    return [re.compile(p, re.IGNORECASE) for p in patterns]


_redactor = SecretRedactor()


def configure_redaction(
    enabled: bool = True, extra_patterns: list[str] | None = None
) -> None:
    """Replace the process-wide redactor."""
    global _redactor
    _redactor = SecretRedactor(
        patterns=_compile(DEFAULT_REDACT_PATTERNS + (extra_patterns or [])),
        enabled=enabled,
    )


def prune_old_logs(
    logs_dir: Path,
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    suffix: str = ".jsonl",
) -> int:
    """Remove ``*.jsonl`` files last modified before the retention window.

    Returns:
        How many files were removed.
    """
    if not logs_dir.is_dir():
        return 0

    cutoff = (datetime.now(UTC) - timedelta(days=retention_days)).timestamp()
    removed = 0
    for path in logs_dir.glob(f"*{suffix}"):
        try:
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError as e:
            logging.getLogger(__name__).debug("Could not prune %s: %s", path, e)
    return removed


def _component(logger_name: str) -> str:
    # autofill.images.resolver -> images, httpx -> httpx
    head, _, rest = logger_name.partition(".")
    if head == "autofill" and rest:
        return rest.partition(".")[0]
    return head


class RedactingFormatter(logging.Formatter):
    """Adds ``%(component)s`` and runs the formatted line through the redactor."""

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record.name)
        return _redactor.redact(super().format(record))


class JSONLHandler(logging.Handler):
    """Appends one JSON object per record to ``<logs_dir>/<UTC date>.jsonl``.

    A new file is opened when the date changes; old files are pruned then.
    """

    def __init__(
        self,
        logs_dir: Path,
        retention_days: int = DEFAULT_LOG_RETENTION_DAYS,
    ):
        super().__init__()
        logs_dir.mkdir(parents=True, exist_ok=True)
        self._logs_dir = logs_dir
        self._retention_days = retention_days
        self._date: str | None = None
        self._stream: TextIO | None = None

    def _stream_for_today(self) -> TextIO:
        today = datetime.now(UTC).date().isoformat()
        if self._stream is None or self._date != today:
            if self._stream is not None:
                self._stream.close()
            self._date = today
            self._stream = (self._logs_dir / f"{today}.jsonl").open(
                "a", encoding="utf-8"
            )
            prune_old_logs(self._logs_dir, self._retention_days)
        return self._stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = {
                "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
                "level": record.levelname,
                "component": _component(record.name),
                "logger": record.name,
                "message": _redactor.redact(record.getMessage()),
            }
            if record.exc_info:
                formatter = self.formatter or logging.Formatter()
                entry["exception"] = _redactor.redact(
                    formatter.formatException(record.exc_info)
                )
            stream = self._stream_for_today()
            stream.write(json.dumps(entry, ensure_ascii=False) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        super().close()


# Chatty at INFO: one line per HTTP request.
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "openai",
    "uvicorn.access",
]


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
    log_to_file: bool = False,
    redact_secrets: bool = True,
) -> None:
    """Install handlers on the root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Falls back to the
            AUTOFILL_LOG_LEVEL environment variable, then INFO.
        use_rich: Rich console output (server) instead of plain lines (CLI).
        log_to_file: Also write JSONL files under $AUTOFILL_HOME/logs.
        redact_secrets: Mask API keys and image payloads.
    """
    from autofill.config.paths import get_logs_path

    level = (level or os.environ.get("AUTOFILL_LOG_LEVEL") or "INFO").upper()
    if level not in LOG_LEVELS:
        level = "INFO"
    log_level = logging.getLevelName(level)

    configure_redaction(enabled=redact_secrets)

    console: logging.Handler
    if use_rich:
        from rich.logging import RichHandler

        console = RichHandler(show_path=False, markup=False)
        console.setFormatter(RedactingFormatter("%(component)s | %(message)s"))
    else:
        console = logging.StreamHandler()
        console.setFormatter(
            RedactingFormatter(
                "%(asctime)s %(levelname)-7s %(component)s: %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    handlers = [console]

    if log_to_file:
        handlers.append(JSONLHandler(get_logs_path()))

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if use_rich:
        # uvicorn installs its own handlers unless told otherwise.
        for name in ("uvicorn", "uvicorn.error"):
            uvicorn_logger = logging.getLogger(name)
            uvicorn_logger.handlers = list(handlers)
            uvicorn_logger.propagate = False
