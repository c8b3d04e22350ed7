"""Centralized logging for TradeJournal.

structlog renders every event twice over stdlib handlers: a coloured
console line (or JSON) on stdout, and optionally JSON lines in a rotating
file. Engine events use dotted names (``ledger.sweep_completed``) and are
rendered by namespace in the console.
"""

import inspect
import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, Field

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_LOG_FILE = Path("logs/tradejournal.log")

# strftime pattern per timestamp style; "{ms}" is filled with centiseconds
_TIMESTAMP_PATTERNS = {
    "compact": "%y%m%d-%H%M%S.{ms}",
    "time": "%H:%M:%S.{ms}",
    "short": "%m%dT%H%M%S",
}


class LoggingConfig(BaseModel):
    """Logging settings consumed by LoggerFactory.configure().

    What each level shows for the engine:

    DEBUG:   month sweeps, series/monthly builds, outcome resolution, XIRR fallbacks
    INFO:    CLI progress
    WARNING: leg P&L mismatches, quantity inconsistencies, XIRR non-convergence
    ERROR:   snapshot loading failures

    Console timestamp styles: "compact" (231001-120000.25), "time"
    (12:00:00.25), "short" (1001T120000) and "iso".
    """

    level: LogLevel = Field(default="INFO", description="Console log level")
    format: Literal["console", "json"] = Field(default="console", description="Console renderer")
    timestamp_format: Literal["iso", "compact", "time", "short"] = Field(
        default="compact",
        description="Timestamp style of console lines",
    )
    enable_file: bool = Field(default=False, description="Also write JSON lines to file_path")
    file_path: Path | None = Field(default=None, description="Log file (logs/tradejournal.log if None)")
    file_level: LogLevel = Field(default="WARNING", description="File log level")
    file_rotation: bool = Field(default=True, description="Rotate the log file by size")
    max_file_size_mb: int = Field(default=10, description="Rotation threshold in MB")
    backup_count: int = Field(default=3, description="Rotated files kept")


def _timestamper(style: str) -> Any:
    """Processor stamping events under 'log_timestamp'.

    A dedicated key keeps domain fields named 'date' or 'timestamp' intact.
    """
    pattern = _TIMESTAMP_PATTERNS.get(style)

    def stamp(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        if pattern is None:
            event_dict["log_timestamp"] = now.isoformat()
        else:
            event_dict["log_timestamp"] = now.strftime(pattern.format(ms=f"{now.microsecond // 10000:02d}"))
        return event_dict

    return stamp


def _pre_chain(timestamp_format: str) -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        _timestamper(timestamp_format),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
    ]


def _render_console(logger: Any, name: str, event_dict: dict[str, Any]) -> str:
    """One console line: engine events by namespace, anything else generically."""
    timestamp = event_dict.pop("log_timestamp", "")
    level = event_dict.pop("level", "info").upper()
    event = str(event_dict.pop("event", ""))
    filename = event_dict.pop("filename", "")
    lineno = event_dict.pop("lineno", "")
    logger_name = event_dict.pop("logger", "")

    domain_line = _DomainLogFormatters.format_domain_log(event, event_dict, level, timestamp)
    if domain_line:
        return domain_line

    fmt = _DomainLogFormatters
    line = [timestamp, f"[{fmt.LEVEL_COLORS.get(level, '')}{level.lower()}{fmt.RESET}]", event]

    context = " ".join(f"{k}={v}" for k, v in sorted(event_dict.items()) if not k.startswith("_"))
    if context:
        line.append(f"{fmt.GRAY}|{fmt.RESET} {context}")

    if filename and lineno:
        where = Path(filename).stem
        if logger_name and logger_name != "tradejournal":
            where = f"{logger_name}.{where}"
        line.append(f"{fmt.GRAY}({where}:{lineno}){fmt.RESET}")

    return " ".join(line)


def _build_console_handler(config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
    renderer: Any = _render_console if config.format == "console" else structlog.processors.JSONRenderer()
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(config.level)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain))
    return handler


def _build_file_handler(config: LoggingConfig, pre_chain: list[Any]) -> logging.Handler:
    """JSON-lines file handler, rotating by size unless disabled."""
    path = config.file_path or DEFAULT_LOG_FILE
    path.parent.mkdir(parents=True, exist_ok=True)

    handler: logging.Handler
    if config.file_rotation:
        handler = RotatingFileHandler(
            filename=str(path),
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
    else:
        handler = logging.FileHandler(filename=str(path), encoding="utf-8")

    handler.setLevel(config.file_level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=structlog.processors.JSONRenderer(), foreign_pre_chain=pre_chain)
    )
    return handler


class LoggerFactory:
    """
    Process-wide logging setup and logger access.

    configure() is called once by the CLI; library modules only call
    get_logger() at import and never configure logging themselves. A logger
    requested before configure() triggers the default configuration.

    Example:
        LoggerFactory.configure(LoggingConfig(level="DEBUG"))
        logger = LoggerFactory.get_logger()
        logger.debug("ledger.sweep_completed", basis="cash", months=12)
    """

    _config: LoggingConfig | None = None
    _configured: bool = False

    @classmethod
    def configure(cls, config: LoggingConfig | None = None) -> None:
        """
        Install handlers on the root logger and configure structlog.

        Args:
            config: Logging settings (defaults if None)
        """
        config = config or LoggingConfig()
        if config.enable_file and config.file_path is None:
            config.file_path = DEFAULT_LOG_FILE
        cls._config = config

        pre_chain = _pre_chain(config.timestamp_format)
        handlers = [_build_console_handler(config, pre_chain)]
        root_level = getattr(logging, config.level)
        if config.enable_file:
            handlers.append(_build_file_handler(config, pre_chain))
            root_level = min(root_level, getattr(logging, config.file_level))
        logging.basicConfig(level=root_level, handlers=handlers, force=True)

        if config.format == "console":
            exception_processors: list[Any] = [
                structlog.dev.set_exc_info,
                structlog.processors.ExceptionRenderer(structlog.dev.plain_traceback),  # type: ignore[arg-type]
            ]
        else:
            exception_processors = [structlog.processors.format_exc_info]

        structlog.configure(
            processors=[*pre_chain, *exception_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )
        cls._configured = True

    @classmethod
    def get_logger(cls, name: str | None = None):
        """
        Logger bound to a module name.

        Args:
            name: Logger name; the calling module's __name__ if None

        Returns:
            structlog BoundLogger
        """
        if not cls._configured:
            cls.configure()

        if name is None:
            caller = inspect.currentframe()
            caller = caller.f_back if caller else None
            name = caller.f_globals.get("__name__", "tradejournal") if caller else "tradejournal"

        return structlog.get_logger(name)

    @classmethod
    def get_config(cls) -> LoggingConfig:
        return cls._config if cls._config is not None else LoggingConfig()

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def reset(cls) -> None:
        """Drop handlers and structlog configuration (used by tests)."""
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        root.setLevel(logging.NOTSET)
        structlog.reset_defaults()
        cls._config = None
        cls._configured = False


class _DomainLogFormatters:
    """Console formatters for engine logs, keyed on the event namespace."""

    CYAN = "\033[36m"
    MAGENTA = "\033[35m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    GRAY = "\033[90m"
    DIM = "\033[2m"
    BOLD = "\033[1m"
    RESET = "\033[0m"

    LEVEL_COLORS = {
        "DEBUG": CYAN,
        "INFO": GREEN,
        "WARNING": YELLOW,
        "ERROR": RED,
        "CRITICAL": MAGENTA,
    }

    # Event prefix -> display label
    NAMESPACES = {
        "accounting.": "Accounting",
        "ledger.": "Ledger",
        "portfolio.": "Portfolio",
        "metrics.": "Metrics",
        "xirr.": "XIRR",
        "cli.": "CLI",
    }

    # Context keys rendered first, in this order, with highlight colours
    HIGHLIGHTS = (
        ("basis", CYAN),
        ("trade_id", MAGENTA),
        ("month", CYAN),
        ("year", CYAN),
        ("points", GREEN),
        ("months", GREEN),
        ("trades", YELLOW),
        ("rate_pct", GREEN),
        ("iterations", YELLOW),
    )

    _METADATA_KEYS = ("log_timestamp", "level", "event", "filename", "lineno", "logger")

    @classmethod
    def format_domain_log(cls, event: str, event_dict: dict[str, Any], level: str, timestamp: str) -> str | None:
        """
        Format engine log with colour styling based on event namespace.

        Returns:
            Rendered line, or None when the event is not an engine event
        """
        label = None
        for prefix, name in cls.NAMESPACES.items():
            if event.startswith(prefix):
                label = name
                msg = event[len(prefix) :].replace("_", " ").replace(".", " ").title()
                break

        if label is None:
            return None

        color = cls.LEVEL_COLORS.get(level, cls.RESET)
        parts = [
            f"{cls.DIM}{timestamp}{cls.RESET}",
            f"{color}{label}{cls.RESET}",
            f"{cls.BOLD}{msg}{cls.RESET}",
        ]

        shown = set()
        for key, key_color in cls.HIGHLIGHTS:
            if key in event_dict:
                parts.append(f"{key}={key_color}{event_dict[key]}{cls.RESET}")
                shown.add(key)

        rest = []
        for key, value in sorted(event_dict.items()):
            if key in shown or key.startswith("_") or key in cls._METADATA_KEYS:
                continue
            rest.append(f"{key}={value}")
        if rest:
            parts.append(" ".join(rest))

        return " | ".join(parts)
