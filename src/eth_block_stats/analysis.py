"""
One analysis run: locate the range, fetch it, aggregate, rank.
"""

import logging
import time
from typing import Callable, Optional, Tuple

from .aggregator import StatsAggregator
from .config import Config
from .fetcher import BlockFetcherPool
from .locator import locate_block_at_or_after
from .models import AnalysisResult, BlockRecord
from .ranking import build_top_addresses, ensure_top_transaction_details

logger = logging.getLogger(__name__)


def resolve_block_range(client, start_block: Optional[int] = None, start_timestamp: Optional[int] = None,
                        num_blocks: int = 0, timespan_sec: int = 0) -> Tuple[int, int]:
    """
    Turn a start (block or timestamp) and a length (blocks or seconds) into [start, end] heights.

    The end of a timespan is the last block before the first block at/after start + timespan.
    """
    if start_block is not None:
        start_height = start_block
        if timespan_sec > 0:
            start_timestamp = client.get_block_timestamp(start_block)
    elif start_timestamp is not None:
        start_height = locate_block_at_or_after(client, start_timestamp)
    else:
        raise ValueError("Either start_block or start_timestamp is required")

    if num_blocks > 0:
        end_height = start_height + num_blocks - 1
    elif timespan_sec > 0:
        end_height = locate_block_at_or_after(client, start_timestamp + timespan_sec) - 1
    else:
        raise ValueError("No valid block range: need num_blocks or timespan_sec")

    return start_height, max(end_height, start_height)


def analyze_blocks(config: Config, client_factory: Callable[[], object], address_cache,
                   start_height: int, end_height: int,
                   on_block: Optional[Callable[[BlockRecord], None]] = None) -> AnalysisResult:
    """
    Fetch and aggregate all blocks in [start_height, end_height], then build the ranked views.

    Any fetch error aborts the run (FetchError); nothing partial is returned.
    """
    allow_chain_queries = not config.low_api_mode
    aggregator = StatsAggregator(
        address_cache,
        num_top_transactions=config.num_top_transactions,
        allow_chain_queries=allow_chain_queries,
        log_flashbots_tx=config.debug_print_flashbots,
    )
    aggregator.result.start_block_number = start_height

    pool = BlockFetcherPool(
        client_factory,
        concurrency=config.num_fetch_workers,
        queue_size=config.block_queue_size,
        skip_receipts=config.low_api_mode,
    )

    logger.info(f"Analyzing blocks {start_height} to {end_height} with {config.num_fetch_workers} workers")
    time_start = time.time()

    # This thread is the only writer of the result while blocks stream in
    for block in pool.fetch_range(start_height, end_height):
        aggregator.ingest(block)
        if on_block is not None:
            on_block(block)

    result = aggregator.result
    logger.info(f"Reading blocks done ({time.time() - time_start:.3f}s). "
                f"Sorting {len(result.addresses)} addresses and checking address information...")

    time_start_sort = time.time()
    build_top_addresses(
        result, address_cache,
        num_top=config.num_top_addresses,
        num_top_large=config.num_top_addresses_large,
        allow_chain_queries=allow_chain_queries,
    )
    ensure_top_transaction_details(result, address_cache, allow_chain_queries)
    logger.info(f"Sorting & checking addresses done ({time.time() - time_start_sort:.3f}s)")

    return result
