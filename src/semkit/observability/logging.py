"""Log pipeline: a formatter (record shape) plugged into a destination (sink).

setup_logging(config) looks both up by name, builds one handler, and installs
it on the root logger in place of whatever an earlier setup_logging() put
there. Handlers installed by anyone else (pytest's caplog, an application's
own config) are left alone.

Library modules keep calling logging.getLogger(__name__); once the pipeline
is set up their records come out in the chosen shape, because both built-in
formatters render plain stdlib records.

Built in:
    formatters     structlog (default), stdlib
    destinations   stderr (default), jsonl

Extend:
    from semkit.observability.logging import register_destination
    register_destination("syslog", SyslogDestination)
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Protocol, runtime_checkable

if TYPE_CHECKING:
    from semkit.observability.config import ObservabilityConfig


@runtime_checkable
class LogFormatter(Protocol):
    """How records are shaped.

    setup() configures any library state and returns the logging.Formatter
    the handler will use. get_logger() returns a logger that takes
    key=value fields.
    """

    def setup(self, config: ObservabilityConfig) -> logging.Formatter: ...

    def get_logger(self, name: str, **kwargs: Any) -> Any: ...


@runtime_checkable
class LogDestination(Protocol):
    """Where formatted records go."""

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler: ...

    def shutdown(self) -> None: ...


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructlogFormatter:
    """structlog pipeline; stdlib records are rendered through the same chain."""

    def setup(self, config: ObservabilityConfig) -> logging.Formatter:
        import structlog

        pre_chain: list = [
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ]
        renderer = (
            structlog.dev.ConsoleRenderer()
            if config.log_format == "console"
            else structlog.processors.JSONRenderer()
        )

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *pre_chain,
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            cache_logger_on_first_use=True,
        )
        return structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
            foreign_pre_chain=pre_chain,
        )

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        import structlog

        return structlog.get_logger(name, **kwargs)


class StdlibFormatter:
    """JSON lines (or a plain console layout) with no structlog at runtime."""

    def setup(self, config: ObservabilityConfig) -> logging.Formatter:
        if config.log_format == "console":
            return logging.Formatter(
                "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
                datefmt="%Y-%m-%dT%H:%M:%S",
            )
        return _JsonLineFormatter()

    def get_logger(self, name: str, **kwargs: Any) -> Any:
        return _KeywordLogger(logging.getLogger(name))


class _JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "event": record.getMessage(),
            **getattr(record, "fields", {}),
        }
        if record.exc_info:
            line["exception"] = self.formatException(record.exc_info)
        return json.dumps(line, default=str)


class _KeywordLogger:
    """A stdlib logger that takes structlog-style keyword fields.

    log.info("vec.index_updated", count_added=3) attaches the keywords to the
    record as `fields`, which _JsonLineFormatter merges into the line.
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _emit(self, level: int, event: str, fields: dict[str, Any]) -> None:
        exc_info = fields.pop("exc_info", None)
        self._logger.log(level, event, exc_info=exc_info, extra={"fields": fields}, stacklevel=3)

    def debug(self, event: str, **fields: Any) -> None:
        self._emit(logging.DEBUG, event, fields)

    def info(self, event: str, **fields: Any) -> None:
        self._emit(logging.INFO, event, fields)

    def warning(self, event: str, **fields: Any) -> None:
        self._emit(logging.WARNING, event, fields)

    def error(self, event: str, **fields: Any) -> None:
        self._emit(logging.ERROR, event, fields)

    def exception(self, event: str, **fields: Any) -> None:
        fields.setdefault("exc_info", True)
        self._emit(logging.ERROR, event, fields)


# ---------------------------------------------------------------------------
# Destinations
# ---------------------------------------------------------------------------


class StderrDestination:
    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        return handler

    def shutdown(self) -> None:
        pass


class JsonlFileDestination:
    """Append one record per line to config.jsonl_path (default semkit.jsonl)."""

    def __init__(self, config: ObservabilityConfig) -> None:
        self._path = Path(config.jsonl_path or "semkit.jsonl")
        self._handler: logging.FileHandler | None = None

    def create_handler(self, formatter: logging.Formatter) -> logging.Handler:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._handler = logging.FileHandler(self._path, mode="a", encoding="utf-8")
        self._handler.setFormatter(formatter)
        return self._handler

    def shutdown(self) -> None:
        if self._handler is not None:
            self._handler.close()
            self._handler = None


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------

_FORMATTERS: dict[str, type] = {
    "structlog": StructlogFormatter,
    "stdlib": StdlibFormatter,
}

# name -> factory(config) -> LogDestination
_DESTINATIONS: dict[str, Callable[[ObservabilityConfig], LogDestination]] = {
    "stderr": lambda _config: StderrDestination(),
    "jsonl": JsonlFileDestination,
}


def register_formatter(name: str, cls: type) -> None:
    """Make a LogFormatter class selectable by name. Call before setup_logging()."""
    _FORMATTERS[name] = cls


def register_destination(name: str, cls: type, *, takes_config: bool = False) -> None:
    """Make a LogDestination class selectable by name.

    With takes_config=True the class is constructed with the
    ObservabilityConfig; otherwise with no arguments.
    """
    _DESTINATIONS[name] = cls if takes_config else (lambda _config: cls())


def _lookup(registry: dict[str, Any], name: str, kind: str) -> Any:
    if name not in registry:
        raise ValueError(
            f"Unknown log {kind}: {name!r}. Available: {sorted(registry)}. "
            f"Add one with register_{kind}()."
        )
    return registry[name]


# ---------------------------------------------------------------------------
# Setup / teardown
# ---------------------------------------------------------------------------

_active_formatter: LogFormatter | None = None
_active_destination: LogDestination | None = None
_installed_handler: logging.Handler | None = None


def setup_logging(config: ObservabilityConfig) -> None:
    """Build formatter + destination from config and install on the root logger."""
    global _active_formatter, _active_destination, _installed_handler

    level = logging.getLevelName(config.log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {config.log_level!r}")

    formatter = _lookup(_FORMATTERS, config.log_formatter, "formatter")()
    destination = _lookup(_DESTINATIONS, config.log_destination, "destination")(config)
    handler = destination.create_handler(formatter.setup(config))

    shutdown_logging()
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(level)

    _active_formatter = formatter
    _active_destination = destination
    _installed_handler = handler


def get_logger(name: str = "", **kwargs: Any) -> Any:
    """Logger from the active formatter.

    Before setup_logging() this is a stdlib-backed logger that still takes
    keyword fields, so callers never need to check.
    """
    if _active_formatter is None:
        return _KeywordLogger(logging.getLogger(name))
    return _active_formatter.get_logger(name, **kwargs)


def shutdown_logging() -> None:
    """Detach the installed handler and close its destination."""
    global _active_formatter, _active_destination, _installed_handler

    if _installed_handler is not None:
        logging.getLogger().removeHandler(_installed_handler)
    if _active_destination is not None:
        _active_destination.shutdown()

    _active_formatter = None
    _active_destination = None
    _installed_handler = None
