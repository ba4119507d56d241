"""
Address classification with a process-wide, lock-guarded cache.

The cache is seeded from the curated JSON datasets (addresses and tokens) and
extended with the results of chain probes. Both the aggregator and the ranking
engine read and write it, possibly from different threads.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .errors import DatasetError
from .models import AddressDetail, AddressType
from .utils import is_valid_ethereum_address, normalize_address

logger = logging.getLogger(__name__)


def load_address_dataset(filename: str) -> List[AddressDetail]:
    """Read one dataset file: a JSON array of {address, type?, name, symbol, decimals}."""
    path = Path(filename)
    if not path.exists():
        logger.warning(f"Address dataset {filename} not found, skipping")
        return []

    try:
        with open(path) as f:
            records = json.load(f)
    except json.JSONDecodeError as e:
        raise DatasetError(f"Invalid JSON in {filename}: {e}") from e

    if not isinstance(records, list):
        raise DatasetError(f"{filename} must contain a JSON array")

    details = []
    for record in records:
        if not isinstance(record, dict):
            logger.warning(f"Skipping dataset record that is not an object in {filename}: {record!r}")
            continue
        if not is_valid_ethereum_address(record.get("address") or ""):
            logger.warning(f"Skipping dataset record without a valid address in {filename}: {record}")
            continue

        # type is optional, wallet is the default
        try:
            address_type = AddressType(record.get("type") or AddressType.WALLET.value)
        except ValueError:
            logger.warning(f"Unknown address type {record.get('type')!r} for {record['address']}, using Wallet")
            address_type = AddressType.WALLET

        details.append(AddressDetail(
            address=normalize_address(record["address"]),
            type=address_type,
            name=record.get("name") or "",
            symbol=record.get("symbol") or "",
            decimals=int(record.get("decimals") or 0),
        ))

    return details


class AddressDetailCache:
    """Resolves addresses to AddressDetail, querying the chain only for unknown addresses."""

    def __init__(self, client=None, details: Optional[Iterable[AddressDetail]] = None):
        self.client = client
        self._lock = threading.Lock()
        self._cache: Dict[str, AddressDetail] = {}
        for detail in details or []:
            self._cache[normalize_address(detail.address)] = detail

    @classmethod
    def from_datasets(cls, client, *filenames: str) -> "AddressDetailCache":
        """Build a cache from dataset files; later files win on duplicate addresses."""
        details: List[AddressDetail] = []
        for filename in filenames:
            details.extend(load_address_dataset(filename))
        cache = cls(client, details)
        logger.info(f"Loaded {len(cache)} addresses from {len(filenames)} datasets")
        return cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, address: str) -> bool:
        with self._lock:
            return normalize_address(address) in self._cache

    def get(self, address: str) -> Optional[AddressDetail]:
        """Cached detail, or None. Never queries the chain."""
        with self._lock:
            detail = self._cache.get(normalize_address(address))
        return detail.copy() if detail else None

    def add(self, detail: AddressDetail) -> None:
        with self._lock:
            self._cache[normalize_address(detail.address)] = detail.copy()

    def classify(self, address: str, allow_chain_queries: bool = True) -> AddressDetail:
        """
        Return the AddressDetail for an address.

        Lookup order: cache, then (unless chain queries are disabled) chain probes
        whose result is cached. Without chain queries an unknown address gets an
        Unknown placeholder that is not cached.
        """
        key = normalize_address(address)
        if not key:
            return AddressDetail("")

        cached = self.get(key)
        if cached is not None:
            return cached

        if not allow_chain_queries or self.client is None:
            return AddressDetail(key)

        detail = self.classify_from_chain(key)

        # Another thread may have probed the same address meanwhile; keep the first result
        with self._lock:
            existing = self._cache.setdefault(key, detail)
        return existing.copy()

    def ensure_loaded(self, detail: AddressDetail, allow_chain_queries: bool = True) -> AddressDetail:
        """Upgrade an unloaded detail in place."""
        if detail.is_loaded() or not detail.address:
            return detail

        resolved = self.classify(detail.address, allow_chain_queries)
        detail.type = resolved.type
        detail.name = resolved.name
        detail.symbol = resolved.symbol
        detail.decimals = resolved.decimals
        return detail

    def classify_from_chain(self, address: str) -> AddressDetail:
        """Probe ERC721, then ERC20, then contract code. A failing probe means 'not this kind'."""
        try:
            detail = self.client.get_erc721_details(address)
            if detail is not None:
                return detail
        except Exception as e:
            logger.debug(f"ERC721 probe failed for {address}: {e}")

        try:
            detail = self.client.get_erc20_details(address)
            if detail is not None:
                return detail
        except Exception as e:
            logger.debug(f"ERC20 probe failed for {address}: {e}")

        try:
            if self.client.is_contract_address(address):
                return AddressDetail(address, type=AddressType.OTHER_CONTRACT)
        except Exception as e:
            logger.debug(f"Contract code probe failed for {address}: {e}")

        return AddressDetail(address, type=AddressType.WALLET)
