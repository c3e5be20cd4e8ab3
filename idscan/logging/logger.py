import logging
import re
import sys
from typing import ClassVar, TextIO


class Log:
    """Centralized logging with structured, redacted key=value fields."""

    _logger: logging.Logger = logging.getLogger("idscan")
    _payload_max_chars: ClassVar[int] = 500

    _SENSITIVE_KEYS: ClassVar[frozenset[str]] = frozenset(
        {"api_key", "authorization", "key", "password", "secret", "token"}
    )
    _SECRET_PATTERNS: ClassVar[tuple[re.Pattern[str], ...]] = (
        re.compile(r"([?&]key=)[^&\s\"']+"),
        re.compile(r"(Bearer\s+)[\w\-.~+/]+", re.IGNORECASE),
        re.compile(r"(x-goog-api-key[\"']?\s*[:=]\s*[\"']?)[\w\-]+", re.IGNORECASE),
        re.compile(r"\b(sk-)[\w\-]{8,}"),
        re.compile(r"\b(AIza)[\w\-]{20,}"),
    )

    @classmethod
    def configure(
        cls, log_level: str, payload_max_chars: int = 500, stream: TextIO | None = None
    ) -> None:
        """Configure the logger level and a stream handler (stdout by default)."""
        cls._logger.setLevel(log_level.upper())
        cls._payload_max_chars = payload_max_chars
        if not cls._logger.handlers:
            handler = logging.StreamHandler(stream or sys.stdout)
            handler.setFormatter(
                logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
            )
            cls._logger.addHandler(handler)

    @classmethod
    def info(cls, message: str, **fields: object) -> None:
        """Log an info message."""
        cls._log(logging.INFO, message, fields)

    @classmethod
    def error(cls, message: str, **fields: object) -> None:
        """Log an error message."""
        cls._log(logging.ERROR, message, fields)

    @classmethod
    def warning(cls, message: str, **fields: object) -> None:
        """Log a warning message."""
        cls._log(logging.WARNING, message, fields)

    @classmethod
    def debug(cls, message: str, **fields: object) -> None:
        """Log a debug message."""
        cls._log(logging.DEBUG, message, fields)

    @classmethod
    def redact(cls, text: str) -> str:
        """Mask credential-looking substrings in free text."""
        for pattern in cls._SECRET_PATTERNS:
            text = pattern.sub(r"\1***", text)
        return text

    @classmethod
    def cap(cls, text: str, limit: int | None = None) -> str:
        """Truncate text to the configured payload size."""
        limit = cls._payload_max_chars if limit is None else limit
        if len(text) <= limit:
            return text
        return f"{text[:limit]}...[{len(text) - limit} more chars]"

    @classmethod
    def render(cls, message: str, fields: dict[str, object]) -> str:
        """Render a message and its fields as a single redacted line."""
        parts = [cls.cap(cls.redact(message))]
        for name, value in fields.items():
            parts.append(f"{name}={cls._render_value(name, value)}")
        return " ".join(parts)

    @classmethod
    def _render_value(cls, name: str, value: object) -> str:
        if name.lower() in cls._SENSITIVE_KEYS:
            return "***"
        return cls.cap(cls.redact(str(value)))

    @classmethod
    def _log(cls, level: int, message: str, fields: dict[str, object]) -> None:
        if not cls._logger.isEnabledFor(level):
            return
        cls._logger.log(level, cls.render(message, fields))
