"""Loguru-style logger backed by stdlib logging and rich.

Usage::

    from exitnode.observability.logger import logger

    log = logger.bind(provider="gce")
    log.info("Creating instance {name} in {zone}", name=name, zone=zone)

Records are emitted under the ``exitnode`` logger hierarchy, named after
the calling module. Bound values are attached to each record as
attributes, so stdlib filters and formatters can use them.
"""

from __future__ import annotations

import inspect
import logging
import logging.handlers
import sys
from types import FrameType
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_root = logging.getLogger("exitnode")

_FILE_FORMAT = (
    "%(asctime)s.%(msecs)03d | %(levelname)-8s | "
    "%(name)s:%(funcName)s:%(lineno)d - %(message)s"
)


def _caller() -> FrameType | None:
    frame = inspect.currentframe()
    while frame is not None and frame.f_code.co_filename == __file__:
        frame = frame.f_back
    return frame


def _format_message(msg: str, args: tuple[object, ...], kwargs: dict[str, object]) -> str:
    if kwargs:
        return msg.format(**kwargs)
    if args:
        return msg.format(*args)
    return msg


class BoundLogger:
    __slots__ = ("_extras",)

    def __init__(self, extras: dict[str, object] | None = None) -> None:
        self._extras = extras or {}

    @property
    def extras(self) -> dict[str, object]:
        return dict(self._extras)

    def bind(self, **kwargs: object) -> BoundLogger:
        return BoundLogger({**self._extras, **kwargs})

    def _log(self, level: int, message: str, /, *args: object, **kwargs: object) -> None:
        exc_info = kwargs.pop("exc_info", False)
        frame = _caller()
        module = frame.f_globals.get("__name__", "exitnode") if frame else "exitnode"
        target = logging.getLogger(module if module.startswith("exitnode") else "exitnode")
        if not target.isEnabledFor(level):
            return
        record = target.makeRecord(
            name=target.name,
            level=level,
            fn=frame.f_code.co_filename if frame else "",
            lno=frame.f_lineno if frame else 0,
            msg=_format_message(message, args, kwargs),
            args=(),
            exc_info=sys.exc_info() if exc_info else None,
            func=frame.f_code.co_name if frame else None,
        )
        for key, value in self._extras.items():
            setattr(record, key, value)
        record.extras = self._extras  # type: ignore[attr-defined]
        target.handle(record)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(TRACE, message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._log(logging.ERROR, message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        kwargs["exc_info"] = True
        self._log(logging.ERROR, message, *args, **kwargs)


class _ProviderPrefix(logging.Filter):
    """Prefixes console messages with the bound provider key, if any."""

    def filter(self, record: logging.LogRecord) -> bool:
        provider = getattr(record, "provider", None)
        if provider and not getattr(record, "_prefixed", False):
            record.msg = f"[{provider}] {record.msg}"
            record._prefixed = True  # type: ignore[attr-defined]
        return True


def _make_file_handler(path: str, level: int, max_bytes: int, backups: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _make_console_handler(level: int, stream: TextIO | None) -> logging.Handler:
    handler = RichHandler(
        level=level,
        console=Console(file=stream, stderr=stream is None),
        show_time=True,
        show_level=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )
    handler.setLevel(level)
    handler.addFilter(_ProviderPrefix())
    return handler


class LoguruCompat:
    def __init__(self) -> None:
        self._bound = BoundLogger()
        self._handlers: dict[int, logging.Handler] = {}
        self._counter = 0

    def bind(self, **kwargs: object) -> BoundLogger:
        return self._bound.bind(**kwargs)

    def trace(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.trace(message, *args, **kwargs)

    def debug(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.debug(message, *args, **kwargs)

    def info(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.info(message, *args, **kwargs)

    def warning(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.warning(message, *args, **kwargs)

    def error(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.error(message, *args, **kwargs)

    def exception(self, message: str, /, *args: object, **kwargs: object) -> None:
        self._bound.exception(message, *args, **kwargs)

    def add(
        self,
        sink: str | TextIO | None = None,
        *,
        level: str = "INFO",
        max_bytes: int = 10 * 1024 * 1024,
        backups: int = 5,
    ) -> int:
        """Attach a sink and return its handler id.

        A string sink is a rotating log file; anything else is rendered by
        rich on that stream (stderr when None).
        """
        numeric_level = logging.getLevelName(level.upper())
        if not isinstance(numeric_level, int):
            numeric_level = logging.INFO

        match sink:
            case str() as path:
                handler = _make_file_handler(path, numeric_level, max_bytes, backups)
            case _:
                handler = _make_console_handler(numeric_level, sink)

        _root.addHandler(handler)
        self._counter += 1
        self._handlers[self._counter] = handler
        return self._counter

    def remove(self, handler_id: int | None = None) -> None:
        if handler_id is None:
            for handler in self._handlers.values():
                _root.removeHandler(handler)
            self._handlers.clear()
            return
        if handler := self._handlers.pop(handler_id, None):
            _root.removeHandler(handler)

    def disable(self) -> None:
        _root.disabled = True

    def enable(self) -> None:
        _root.disabled = False


logger = LoguruCompat()

_root.setLevel(TRACE)
_root.propagate = False
_root.addHandler(logging.NullHandler())
