"""Centralized logging configuration.
Call setup_logging() once at application startup.
"""

from __future__ import annotations

import logging
import sys
from typing import Iterable

from sow_pricing.models.schemas import PricingWarning


def setup_logging(level: str = "INFO") -> None:
    """Configure console logging for the pricing engine."""
    root = logging.getLogger()
    # Avoid duplicate handlers on repeated calls
    if root.handlers:
        return

    resolved = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(resolved)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(resolved)

    formatter = logging.Formatter(
        fmt="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(funcName)s:%(lineno)d │ %(message)s",
        datefmt="%H:%M:%S",
    )
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # Quiet noisy libraries but keep our code at the requested level
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def log_warnings(
    warnings: Iterable[PricingWarning],
    logger: logging.Logger | None = None,
    label: str = "pricing",
) -> int:
    """
    Log each pricing warning at WARNING level. Returns how many were logged.
    The structured form (type + context) is attached as `record.pricing_warning`.
    """
    log = logger or logging.getLogger("sow_pricing")
    count = 0
    for warning in warnings:
        log.warning(
            f"[{label}] {warning.type.value}: {warning.detail}",
            extra={"pricing_warning": warning.to_dict()},
        )
        count += 1
    if count:
        log.info(f"[{label}] {count} pricing warning(s) emitted")
    return count
