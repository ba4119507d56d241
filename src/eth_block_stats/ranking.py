"""
Top-N views over the accumulated statistics.
"""

import logging
from typing import Callable, Dict, List

from .consts import ADDRESS_STATS_KEYS, LARGE_TOP_KEYS
from .models import AddressStats, AnalysisResult, TxStats

logger = logging.getLogger(__name__)


def add_to_top_list(top_list: List[TxStats], stats: TxStats, capacity: int,
                    key: Callable[[TxStats], int]) -> None:
    """
    Insert into a list kept sorted descending and bounded by capacity.

    When full, the candidate only replaces the last (smallest) entry if it is
    strictly larger. The stable sort keeps earlier entries first on ties.
    """
    if capacity <= 0:
        return

    if len(top_list) < capacity:
        top_list.append(stats)
    elif key(stats) > key(top_list[-1]):
        top_list[-1] = stats
    else:
        return

    top_list.sort(key=key, reverse=True)


def add_tx_to_top_lists(result: AnalysisResult, stats: TxStats, capacity: int) -> None:
    top = result.top_transactions
    add_to_top_list(top.gas_fee, stats, capacity, lambda s: s.gas_fee)
    add_to_top_list(top.value, stats, capacity, lambda s: s.value)
    add_to_top_list(top.data_size, stats, capacity, lambda s: s.data_size)


def top_addresses_for_key(all_addresses: List[AddressStats], key: str, num_items: int,
                          address_cache, allow_chain_queries: bool = True) -> List[AddressStats]:
    """Highest num_items entries with a positive value for key, with address details resolved."""
    ranked = sorted(all_addresses, key=lambda s: s.get(key), reverse=True)

    ret = []
    for item in ranked[:num_items]:
        if item.get(key) > 0:
            if address_cache is not None:
                address_cache.ensure_loaded(item.detail, allow_chain_queries)
            ret.append(item)
    return ret


def build_top_addresses(result: AnalysisResult, address_cache, num_top: int = 25,
                        num_top_large: int = 100, allow_chain_queries: bool = True) -> Dict[str, List[AddressStats]]:
    """
    Build a ranked view for every address counter after all blocks were added.

    Works on snapshots, so the ranked entries do not change with the live stats.
    """
    # Snapshots in insertion order, so ties keep the order addresses were first seen
    all_addresses = [stats.snapshot() for stats in result.addresses.values()]

    for key in ADDRESS_STATS_KEYS:
        num_items = num_top_large if key in LARGE_TOP_KEYS else num_top
        result.top_addresses[key] = top_addresses_for_key(
            all_addresses, key, num_items, address_cache, allow_chain_queries)

    logger.info(f"Built {len(ADDRESS_STATS_KEYS)} top address lists from {len(all_addresses)} addresses")
    return result.top_addresses


def ensure_top_transaction_details(result: AnalysisResult, address_cache,
                                   allow_chain_queries: bool = True) -> None:
    """Resolve both parties of every top transaction."""
    top = result.top_transactions
    for tx_list in (top.gas_fee, top.value, top.data_size):
        for stats in tx_list:
            address_cache.ensure_loaded(stats.from_detail, allow_chain_queries)
            address_cache.ensure_loaded(stats.to_detail, allow_chain_queries)
