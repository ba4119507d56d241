"""
Streaming statistics over fetched blocks.

A StatsAggregator is owned by exactly one thread: it is the only writer of its
AnalysisResult while blocks are ingested, so the address map needs no locks.
"""

import logging
from typing import Optional

from . import consts
from .decoder import decode_transfer
from .models import (
    AddressDetail, AddressStats, AddressType, AnalysisResult, BlockRecord,
    ReceiptRecord, TransactionRecord, TxStats,
)
from .ranking import add_tx_to_top_lists
from .utils import normalize_address

logger = logging.getLogger(__name__)


class StatsAggregator:
    """Accumulates global and per-address statistics for an analysis run."""

    def __init__(self, address_cache, num_top_transactions: int = 20,
                 allow_chain_queries: bool = True, log_flashbots_tx: bool = False,
                 result: Optional[AnalysisResult] = None):
        self.address_cache = address_cache
        self.num_top_transactions = num_top_transactions
        self.allow_chain_queries = allow_chain_queries
        self.log_flashbots_tx = log_flashbots_tx
        self.result = result if result is not None else AnalysisResult()
        self._last_block_number: Optional[int] = None

    def get_or_create_address_stats(self, address: Optional[str]) -> AddressStats:
        """Stats entry for an address. A missing address gets a throwaway entry that is not stored."""
        if not address:
            return AddressStats(AddressDetail(""))

        key = normalize_address(address)
        stats = self.result.addresses.get(key)
        if stats is None:
            stats = AddressStats(AddressDetail(key))
            self.result.addresses[key] = stats
        return stats

    def ensure_address_details(self, stats: AddressStats) -> None:
        if stats.address and self.address_cache is not None:
            self.address_cache.ensure_loaded(stats.detail, self.allow_chain_queries)

    def ingest(self, block: BlockRecord) -> None:
        """Add one block with its receipts. Blocks may arrive in any order."""
        result = self.result

        # Start/end are first/last seen, not min/max
        if result.start_block_timestamp == 0:
            result.start_block_timestamp = block.timestamp
        if self._last_block_number is not None and block.number < self._last_block_number:
            logger.debug(f"Block {block.number} arrived after block {self._last_block_number}")
        self._last_block_number = block.number

        result.end_block_number = block.number
        result.end_block_timestamp = block.timestamp

        result.num_blocks += 1
        result.num_transactions += len(block.transactions)
        result.gas_used += block.gas_used

        for tx in block.transactions:
            self.add_transaction(tx, block.receipt_for(tx.hash))

        if not block.transactions:
            result.num_blocks_without_tx += 1

    def tag_transaction(self, tx: TransactionRecord, receipt: ReceiptRecord, tag: str,
                        resolve_details: bool = True) -> TxStats:
        stats = TxStats.from_transaction(tx, receipt)
        stats.tag = tag
        if resolve_details and self.address_cache is not None:
            self.address_cache.ensure_loaded(stats.from_detail, self.allow_chain_queries)
            self.address_cache.ensure_loaded(stats.to_detail, self.allow_chain_queries)
        self.result.tagged_transactions.append(stats)
        return stats

    def add_transaction(self, tx: TransactionRecord, receipt: ReceiptRecord) -> None:
        result = self.result
        add_tx_to_top_lists(result, TxStats.from_transaction(tx, receipt), self.num_top_transactions)

        to_stats = self.get_or_create_address_stats(tx.to_address)
        from_stats = self.get_or_create_address_stats(tx.from_address)

        to_stats.add1(consts.NUM_TX_RECEIVED)
        from_stats.add1(consts.NUM_TX_SENT)

        # Gas is paid no matter if the transaction failed or succeeded
        gas_fee = receipt.gas_used * tx.gas_price
        result.gas_fee_total += gas_fee
        from_stats.add(consts.GAS_USED, receipt.gas_used)
        from_stats.add(consts.GAS_FEE_TOTAL, gas_fee)

        if not receipt.success:
            result.num_transactions_failed += 1
            result.gas_fee_failed_tx += gas_fee

            from_stats.add1(consts.NUM_TX_SENT_FAILED)
            from_stats.add(consts.GAS_FEE_FAILED_TX, gas_fee)
            to_stats.add1(consts.NUM_TX_RECEIVED_FAILED)

            # Failed zero-fee call: relayed bundle (flashbots/MEV) that reverted
            if tx.data and tx.gas_price == 0:
                result.num_flashbots_transactions_failed += 1
                from_stats.add1(consts.FLASHBOTS_FAILED_TX_SENT)
                self.tag_transaction(tx, receipt, consts.TAG_FLASHBOTS_FAILED_TX)
                logger.info(f"Failed flashbots tx: {tx.hash}")
            return

        result.value_total_wei += tx.value
        result.tx_types[tx.type] = result.tx_types.get(tx.type, 0) + 1

        from_stats.add1(consts.NUM_TX_SENT_SUCCESS)
        from_stats.add(consts.VALUE_SENT_WEI, tx.value)
        to_stats.add1(consts.NUM_TX_RECEIVED_SUCCESS)
        to_stats.add(consts.VALUE_RECEIVED_WEI, tx.value)

        if tx.value == 0:
            result.num_transactions_with_zero_value += 1

        if not tx.data:
            return

        result.num_transactions_with_data += 1
        from_stats.add1(consts.NUM_TX_WITH_DATA_SENT)
        to_stats.add1(consts.NUM_TX_WITH_DATA_RECEIVED)

        if tx.gas_price == 0:
            result.num_flashbots_transactions_success += 1
            from_stats.add1(consts.NUM_TX_FLASHBOTS_SENT)
            to_stats.add1(consts.NUM_TX_FLASHBOTS_RECEIVED)
            self.tag_transaction(tx, receipt, consts.TAG_FLASHBOTS_TX, resolve_details=False)
            if self.log_flashbots_tx:
                logger.info(f"Flashbots tx: {tx.hash}")

        if tx.to_address:
            self.add_token_transfer(tx, from_stats, to_stats)

    def add_token_transfer(self, tx: TransactionRecord, from_stats: AddressStats,
                           contract_stats: AddressStats) -> None:
        """Count a transfer/transferFrom call on the contract, the token sender and the token receiver."""
        transfer = decode_transfer(tx.data)
        if transfer is None:
            return

        self.ensure_address_details(contract_stats)
        contract = contract_stats.detail

        if not contract.is_loaded():
            # No chain queries allowed: remember the call, but the token kind is unknown
            contract.type = AddressType.ERC_TOKEN_UNCONFIRMED
            return

        if not (contract.is_erc20() or contract.is_erc721()):
            return

        token_sender = from_stats
        if transfer.sender is not None and transfer.sender != from_stats.address:
            token_sender = self.get_or_create_address_stats(transfer.sender)

        token_receiver = contract_stats
        if transfer.receiver is not None:
            token_receiver = self.get_or_create_address_stats(transfer.receiver)

        if contract.is_erc20():
            self.result.num_transactions_erc20_transfer += 1

            token_sender.add1(consts.NUM_TX_ERC20_SENT)
            token_sender.add(consts.ERC20_TOKENS_SENT, transfer.amount)

            contract_stats.add1(consts.NUM_TX_ERC20_TRANSFER)
            contract_stats.add(consts.ERC20_TOKENS_TRANSFERRED, transfer.amount)

            token_receiver.add1(consts.NUM_TX_ERC20_RECEIVED)
            token_receiver.add(consts.ERC20_TOKENS_RECEIVED, transfer.amount)
        else:
            # token ids are not fungible, count only
            self.result.num_transactions_erc721_transfer += 1

            token_sender.add1(consts.NUM_TX_ERC721_SENT)
            contract_stats.add1(consts.NUM_TX_ERC721_TRANSFER)
            token_receiver.add1(consts.NUM_TX_ERC721_RECEIVED)
