"""Lifecycle event lines in ``key=value`` form."""

from __future__ import annotations

from shortcodes.util.logger import logger


def format_event(event: str, **payload: object) -> str:
    fields = " ".join(f"{key}={payload[key]}" for key in sorted(payload))
    return f"event={event} {fields}".rstrip()


def log_event(event: str, **payload: object) -> None:
    logger.info("%s", format_event(event, **payload))
