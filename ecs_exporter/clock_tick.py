"""
Host clock tick rate (USER_HZ) used to convert per-core CPU ticks to seconds.

Resolved once at import time and never changed afterwards.
"""
import logging
import os

logger = logging.getLogger(__name__)

DEFAULT_CLOCK_TICK = 100


def resolve_clock_tick() -> int:
    """
    Read ``_SC_CLK_TCK`` from the host.

    Returns:
        The host tick rate, or DEFAULT_CLOCK_TICK when it cannot be read.
    """
    try:
        tick = os.sysconf('SC_CLK_TCK')
    except (AttributeError, ValueError, OSError) as e:
        logger.warning(f"Can't get SC_CLK_TCK; using {DEFAULT_CLOCK_TICK} instead: {e}")
        return DEFAULT_CLOCK_TICK

    if tick <= 0:
        logger.warning(f"SC_CLK_TCK reported {tick}; using {DEFAULT_CLOCK_TICK} instead")
        return DEFAULT_CLOCK_TICK

    logger.debug(f"sysconf(SC_CLK_TCK) = {tick}")
    return tick


CLOCK_TICK = resolve_clock_tick()
