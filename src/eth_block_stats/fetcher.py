"""
Concurrent retrieval of blocks and their transaction receipts.

Heights go to worker threads through a bounded queue; finished blocks come
back through a second bounded queue, which throttles the workers when the
consumer falls behind. Workers share nothing but the two queues.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Callable, Iterator

from .errors import FetchError
from .models import BlockRecord

logger = logging.getLogger(__name__)

# End of heights for one worker
_NO_MORE_HEIGHTS = None


@dataclass
class _WorkerDone:
    worker_id: int


@dataclass
class _FetchFailure:
    height: int
    error: Exception


def fetch_block_with_receipts(client, height: int, skip_receipts: bool = False) -> BlockRecord:
    """Download a block, then the receipt of every transaction, one after the other."""
    block = client.get_block(height)
    if skip_receipts:
        return block

    for tx in block.transactions:
        receipt = client.get_transaction_receipt(tx.hash)
        if receipt is None:
            # can happen on some nodes; the default receipt is used instead
            logger.debug(f"No receipt for {tx.hash} in block {height}")
            continue
        block.receipts[tx.hash] = receipt

    return block


class BlockFetcherPool:
    """Fixed pool of worker threads fetching a block range."""

    def __init__(self, client_factory: Callable[[], object], concurrency: int = 5,
                 queue_size: int = 100, skip_receipts: bool = False):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.client_factory = client_factory
        self.concurrency = concurrency
        self.queue_size = queue_size
        self.skip_receipts = skip_receipts

    def _feed(self, start: int, end: int, heights: queue.Queue, abort: threading.Event) -> None:
        for height in range(start, end + 1):
            if abort.is_set():
                break
            heights.put(height)
        for _ in range(self.concurrency):
            heights.put(_NO_MORE_HEIGHTS)

    def _work(self, worker_id: int, heights: queue.Queue, blocks: queue.Queue,
              abort: threading.Event) -> None:
        client = None
        try:
            while True:
                height = heights.get()
                if height is _NO_MORE_HEIGHTS:
                    break
                if abort.is_set():
                    continue

                try:
                    if client is None:
                        client = self.client_factory()
                    block = fetch_block_with_receipts(client, height, self.skip_receipts)
                except Exception as e:
                    blocks.put(_FetchFailure(height, e))
                    continue

                blocks.put(block)
        finally:
            if client is not None and hasattr(client, "close"):
                client.close()
            blocks.put(_WorkerDone(worker_id))

    def fetch_range(self, start: int, end: int) -> Iterator[BlockRecord]:
        """
        Yield every block in [start, end] once, in no particular order.

        The first fetch error stops the pool and is raised as FetchError; blocks
        already yielded are the caller's to discard.
        """
        if end < start:
            return

        heights: queue.Queue = queue.Queue(maxsize=self.queue_size)
        blocks: queue.Queue = queue.Queue(maxsize=self.queue_size)
        abort = threading.Event()

        workers = [
            threading.Thread(target=self._work, args=(i, heights, blocks, abort),
                             name=f"block-fetcher-{i}", daemon=True)
            for i in range(self.concurrency)
        ]
        for worker in workers:
            worker.start()

        feeder = threading.Thread(target=self._feed, args=(start, end, heights, abort),
                                  name="block-feeder", daemon=True)
        feeder.start()

        num_done = 0
        try:
            while num_done < len(workers):
                item = blocks.get()
                if isinstance(item, _WorkerDone):
                    num_done += 1
                elif isinstance(item, _FetchFailure):
                    logger.error(f"Fetching block {item.height} failed: {item.error}")
                    raise FetchError(item.height, str(item.error)) from item.error
                else:
                    yield item
        finally:
            if num_done < len(workers):
                # Stop early: let the workers skip the remaining heights and exit
                abort.set()
                while num_done < len(workers):
                    if isinstance(blocks.get(), _WorkerDone):
                        num_done += 1
            for worker in workers:
                worker.join()
            feeder.join()
