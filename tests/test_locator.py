import unittest

from eth_block_stats.errors import LocatorError
from eth_block_stats.locator import (
    REFERENCE_BLOCK_NUMBER, REFERENCE_BLOCK_TIMESTAMP, estimate_block_number, locate_block_at_or_after,
)


class EvenlySpacedChain:
    """Block h has timestamp genesis + h * interval."""

    def __init__(self, interval: int, genesis: int = 1000, head: int = 100000):
        self.interval = interval
        self.genesis = genesis
        self.head = head
        self.requested = []

    def get_block_timestamp(self, height: int) -> int:
        self.requested.append(height)
        if height > self.head:
            raise ConnectionError(f"block {height} not found")
        return self.genesis + height * self.interval


class BrokenChain:
    def get_block_timestamp(self, height: int) -> int:
        raise ConnectionError("connection refused")


class EstimateBlockNumberTests(unittest.TestCase):
    def test_reference_block_maps_to_itself(self) -> None:
        self.assertEqual(estimate_block_number(REFERENCE_BLOCK_TIMESTAMP), REFERENCE_BLOCK_NUMBER)

    def test_estimate_uses_average_block_time(self) -> None:
        self.assertEqual(estimate_block_number(REFERENCE_BLOCK_TIMESTAMP + 130), REFERENCE_BLOCK_NUMBER + 10)
        self.assertEqual(estimate_block_number(REFERENCE_BLOCK_TIMESTAMP - 130), REFERENCE_BLOCK_NUMBER - 10)


class LocateBlockTests(unittest.TestCase):
    def test_exact_timestamp_returns_that_block(self) -> None:
        chain = EvenlySpacedChain(13)
        self.assertEqual(locate_block_at_or_after(chain, 1000 + 50 * 13, start_estimate=0), 50)

    def test_timestamp_between_blocks_returns_next_block(self) -> None:
        chain = EvenlySpacedChain(13)
        self.assertEqual(locate_block_at_or_after(chain, 1000 + 50 * 13 + 5, start_estimate=0), 51)

    def test_result_is_first_block_at_or_after_target(self) -> None:
        chain = EvenlySpacedChain(12)
        for target in (1001, 1500, 2345, 9999, 20000):
            for estimate in (0, 300, 5000):
                with self.subTest(target=target, estimate=estimate):
                    height = locate_block_at_or_after(chain, target, start_estimate=estimate)
                    self.assertGreaterEqual(chain.get_block_timestamp(height), target)
                    self.assertLess(chain.get_block_timestamp(height - 1), target)

    def test_block_gaps_longer_than_a_minute_terminate(self) -> None:
        chain = EvenlySpacedChain(120)
        height = locate_block_at_or_after(chain, 1000 + 10 * 120 + 1, start_estimate=5)
        self.assertEqual(height, 11)

    def test_target_before_genesis_returns_zero(self) -> None:
        chain = EvenlySpacedChain(13)
        self.assertEqual(locate_block_at_or_after(chain, 10, start_estimate=40), 0)

    def test_negative_estimate_is_clamped(self) -> None:
        chain = EvenlySpacedChain(13)
        locate_block_at_or_after(chain, 1000 + 13 * 3, start_estimate=-20)
        self.assertTrue(all(h >= 0 for h in chain.requested))

    def test_header_failure_raises_locator_error(self) -> None:
        with self.assertRaises(LocatorError):
            locate_block_at_or_after(BrokenChain(), 1700000000, start_estimate=100)


if __name__ == "__main__":
    unittest.main()
