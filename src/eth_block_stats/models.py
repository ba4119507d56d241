"""
Data models for block range analysis.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, List, Dict


class AddressType(str, Enum):
    """Classification kind of an address."""
    UNKNOWN = ""  # not classified yet
    WALLET = "Wallet"  # nothing else detected
    ERC20 = "Erc20"
    ERC721 = "Erc721"
    ERC_TOKEN_UNCONFIRMED = "ErcToken"  # transfer call seen, kind not probed
    OTHER_CONTRACT = "OtherContract"


@dataclass
class AddressDetail:
    """Classification and token metadata of an address."""
    address: str
    type: AddressType = AddressType.UNKNOWN
    name: str = ""
    symbol: str = ""
    decimals: int = 0

    def is_loaded(self) -> bool:
        return self.type != AddressType.UNKNOWN

    def is_erc20(self) -> bool:
        return self.type == AddressType.ERC20

    def is_erc721(self) -> bool:
        return self.type == AddressType.ERC721

    def copy(self) -> "AddressDetail":
        return replace(self)

    def as_address_with_name(self, brackets: bool = True) -> str:
        if not self.name:
            return self.address
        if brackets:
            return f"{self.address} ({self.name})"
        return f"{self.address} {self.name}"


@dataclass(frozen=True)
class TransactionRecord:
    """A transaction as delivered inside a block."""
    hash: str
    to_address: Optional[str]
    from_address: Optional[str]  # None if the sender could not be recovered
    value: int
    gas_price: int
    data: bytes = b""
    type: int = 0


@dataclass(frozen=True)
class ReceiptRecord:
    """The parts of a transaction receipt the statistics need."""
    success: bool = True
    gas_used: int = 1


# Used when a receipt is missing or was not fetched
DEFAULT_RECEIPT = ReceiptRecord(success=True, gas_used=1)


@dataclass(frozen=True)
class BlockRecord:
    """A block with all of its transactions and the receipts fetched for them."""
    number: int
    timestamp: int
    transactions: List[TransactionRecord] = field(default_factory=list)
    receipts: Dict[str, ReceiptRecord] = field(default_factory=dict)
    gas_used: int = 0

    def receipt_for(self, tx_hash: str) -> ReceiptRecord:
        return self.receipts.get(tx_hash, DEFAULT_RECEIPT)


@dataclass
class AddressStats:
    """Accumulated counters for one address, keyed by the names in consts."""
    detail: AddressDetail
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def address(self) -> str:
        return self.detail.address

    def add(self, key: str, value: int) -> None:
        if value < 0:
            raise ValueError(f"Counter {key} cannot decrease (got {value})")
        self.stats[key] = self.stats.get(key, 0) + value

    def add1(self, key: str) -> None:
        self.add(key, 1)

    def get(self, key: str) -> int:
        return self.stats.get(key, 0)

    def snapshot(self) -> "AddressStats":
        return AddressStats(detail=self.detail.copy(), stats=dict(self.stats))


@dataclass
class TxStats:
    """Summary of one transaction, used for top lists and tagging."""
    hash: str
    from_detail: AddressDetail
    to_detail: AddressDetail
    gas_used: int
    gas_fee: int
    value: int
    data_size: int
    success: bool
    tag: str = ""

    @classmethod
    def from_transaction(cls, tx: TransactionRecord, receipt: ReceiptRecord) -> "TxStats":
        return cls(
            hash=tx.hash,
            from_detail=AddressDetail(tx.from_address or ""),
            to_detail=AddressDetail(tx.to_address or ""),
            gas_used=receipt.gas_used,
            gas_fee=receipt.gas_used * tx.gas_price,
            value=tx.value,
            data_size=len(tx.data),
            success=receipt.success,
        )


@dataclass
class TopTransactions:
    """Bounded, descending top lists of transactions."""
    gas_fee: List[TxStats] = field(default_factory=list)
    value: List[TxStats] = field(default_factory=list)
    data_size: List[TxStats] = field(default_factory=list)


@dataclass
class AnalysisResult:
    """Complete statistics of one analysed block range."""
    start_block_number: int = 0
    start_block_timestamp: int = 0
    end_block_number: int = 0
    end_block_timestamp: int = 0

    addresses: Dict[str, AddressStats] = field(default_factory=dict)
    top_addresses: Dict[str, List[AddressStats]] = field(default_factory=dict)
    top_transactions: TopTransactions = field(default_factory=TopTransactions)
    tagged_transactions: List[TxStats] = field(default_factory=list)

    tx_types: Dict[int, int] = field(default_factory=dict)
    value_total_wei: int = 0

    num_blocks: int = 0
    num_blocks_without_tx: int = 0
    gas_used: int = 0
    gas_fee_total: int = 0
    gas_fee_failed_tx: int = 0

    num_transactions: int = 0
    num_transactions_failed: int = 0
    num_transactions_with_zero_value: int = 0
    num_transactions_with_data: int = 0

    num_transactions_erc20_transfer: int = 0
    num_transactions_erc721_transfer: int = 0

    num_flashbots_transactions_success: int = 0
    num_flashbots_transactions_failed: int = 0

    def all_top_address_stats(self) -> List[AddressStats]:
        """All entries of every ranked view (an address may appear several times)."""
        ret = []
        for entries in self.top_addresses.values():
            ret.extend(entries)
        return ret
