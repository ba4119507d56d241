"""
Find the first block at or after a timestamp.
"""

import logging
from collections import deque
from typing import Optional

from .errors import LocatorError

logger = logging.getLogger(__name__)

# Reference block for the initial estimate
REFERENCE_BLOCK_NUMBER = 12323940
REFERENCE_BLOCK_TIMESTAMP = 1619546404  # 2021-04-27 18:00:04 UTC

AVERAGE_BLOCK_TIME_SEC = 13
CLOSE_ENOUGH_SEC = 60
RECENT_DIFFS_SIZE = 6


def estimate_block_number(utc_timestamp: int) -> int:
    """Rough block estimate from the reference block and the average block time."""
    sec_diff = REFERENCE_BLOCK_TIMESTAMP - utc_timestamp
    return REFERENCE_BLOCK_NUMBER - _div_toward_zero(sec_diff, AVERAGE_BLOCK_TIME_SEC)


def _div_toward_zero(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return q if (a >= 0) == (b >= 0) else -q


def locate_block_at_or_after(client, target_timestamp: int, start_estimate: Optional[int] = None) -> int:
    """
    Return the height of the first block whose timestamp is >= target_timestamp.

    Takes big steps while far from the target, then walks block by block and
    only returns when approaching from below. Repeating time differences mean
    the big steps oscillate; each repeat increases the step divisor.
    """
    current = estimate_block_number(target_timestamp) if start_estimate is None else start_estimate
    current = max(current, 0)
    divisor = AVERAGE_BLOCK_TIME_SEC
    recent_diffs = deque(maxlen=RECENT_DIFFS_SIZE)
    approaching_from_below = False

    # Closest heights seen on each side of the target
    lowest_at_or_after = None
    highest_before = None

    logger.info(f"Finding first block at or after {target_timestamp}, estimate {current}")
    while True:
        try:
            block_timestamp = client.get_block_timestamp(current)
        except Exception as e:
            raise LocatorError(f"Failed to fetch header at height {current}: {e}") from e

        sec_diff = block_timestamp - target_timestamp
        if sec_diff in recent_diffs:
            divisor += 1
            logger.debug(f"Time difference {sec_diff} repeats, step divisor now {divisor}")
        recent_diffs.append(sec_diff)

        logger.debug(f"{current} \t blockTime: {block_timestamp} \t secDiff: {sec_diff}")

        if sec_diff >= 0:
            if current == 0:
                return current
            if lowest_at_or_after is None or current < lowest_at_or_after:
                lowest_at_or_after = current
        elif highest_before is None or current > highest_before:
            highest_before = current

        # Adjacent heights straddle the target (also covers gaps between blocks of a minute or more)
        if lowest_at_or_after is not None and highest_before is not None \
                and lowest_at_or_after == highest_before + 1:
            return lowest_at_or_after

        if abs(sec_diff) < CLOSE_ENOUGH_SEC:
            if sec_diff < 0:
                # still before the target, walk up block by block
                approaching_from_below = True
                current += 1
                continue

            # only return when coming from below, so this is the first block at/after target
            if approaching_from_below:
                return current
            current -= 1
            continue

        step = _div_toward_zero(sec_diff, divisor)
        if step == 0:
            step = 1 if sec_diff > 0 else -1
        current = max(current - step, 0)
