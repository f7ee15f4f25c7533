"""Loguru configuration for netdial processes and tests."""

from __future__ import annotations

import sys
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, TextIO

from loguru import logger

if TYPE_CHECKING:
    from netdial.config import NetdialSettings

PACKAGE = "netdial"

DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)


def scope_matches(record_name: str, scope: str) -> bool:
    """True when a record's module name falls under ``scope``.

    Scopes may be given relative to the package (``core.transport``) or fully
    qualified (``netdial.core.transport``).
    """
    if record_name.startswith(scope):
        return True
    return not scope.startswith(f"{PACKAGE}.") and record_name.startswith(
        f"{PACKAGE}.{scope}"
    )


def _scoped_debug_filter(scopes: tuple[str, ...]):
    def _filter(record: Mapping[str, Any]) -> bool:
        if getattr(record.get("level"), "name", None) != "DEBUG":
            return False
        name = record.get("name") or ""
        return any(scope_matches(name, scope) for scope in scopes)

    return _filter


def configure_logging(
    level: str,
    *,
    debug_scopes: Iterable[str] = (),
    colorize: bool = False,
    sink: TextIO | None = None,
) -> tuple[int, ...]:
    """Replace loguru's handlers with netdial's format.

    One handler emits everything at ``level`` and above. When ``level`` is
    coarser than DEBUG, a second handler emits DEBUG records from the modules
    named in ``debug_scopes``.

    Returns:
        The loguru handler ids, so callers can remove them again.
    """
    stream = sink if sink is not None else sys.stderr
    logger.remove()
    handler_ids = [
        logger.add(stream, level=level, format=DEFAULT_LOG_FORMAT, colorize=colorize)
    ]

    scopes = tuple(s.strip() for s in debug_scopes if s.strip())
    if scopes and level.upper() not in ("DEBUG", "TRACE"):
        handler_ids.append(
            logger.add(
                stream,
                level="DEBUG",
                format=DEFAULT_LOG_FORMAT,
                colorize=colorize,
                filter=_scoped_debug_filter(scopes),
            )
        )
    return tuple(handler_ids)


def configure_from_settings(
    settings: NetdialSettings, *, colorize: bool = False
) -> tuple[int, ...]:
    """Apply the log level and debug scopes carried by ``settings``."""
    return configure_logging(
        settings.log_level,
        debug_scopes=settings.log_debug_scopes,
        colorize=colorize,
    )
