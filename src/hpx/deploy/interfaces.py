"""Attach-interface and attach-mode resolution."""

from __future__ import annotations

import logging
from collections.abc import Callable

from hpx.errors import Cancelled, ConfigurationError
from hpx.policy.models import DEFAULT_INTERFACE
from hpx.targets.base import XDP_ATTACH_MODES

logger = logging.getLogger(__name__)


def xdp_attach_mode(flags: str) -> str:
    """``generic`` / ``native`` / ``offloaded`` → the bpftool attach type."""
    try:
        return XDP_ATTACH_MODES[flags.strip().lower()]
    except KeyError:
        raise ConfigurationError(
            f"Unknown XDP flags '{flags}'. Available: {', '.join(XDP_ATTACH_MODES)}"
        ) from None


def resolve_interface(
    configured: str | None,
    requested: str | None,
    confirm: Callable[[str], bool],
    no_confirm: bool = False,
) -> str:
    """Pick the interface to attach to or detach from.

    A requested interface that differs from the configured one must be
    confirmed, unless ``no_confirm`` is set.
    """
    if requested:
        if configured and requested != configured and not no_confirm:
            if not confirm(
                f"Network interface '{requested}' differs from the policy's "
                f"'{configured}'. Proceed?"
            ):
                raise Cancelled()
        return requested
    if configured:
        logger.info("Using network interface from policy: %s", configured)
        return configured
    logger.info("No network interface provided, using default: %s", DEFAULT_INTERFACE)
    return DEFAULT_INTERFACE
