import logging
from typing import Optional, Dict, Any
import requests
from web3 import Web3
from web3.exceptions import TransactionNotFound, Web3Exception

from .config import Config
from .consts import INTERFACE_ID_ERC721
from .errors import ChainClientError
from .models import AddressDetail, AddressType, BlockRecord, DEFAULT_RECEIPT, ReceiptRecord, TransactionRecord
from .utils import normalize_address

# Set up logging
logger = logging.getLogger(__name__)

# supportsInterface is the same on every ERC-165 contract
ERC721_ABI = [
    {"constant": True, "inputs": [{"name": "interfaceId", "type": "bytes4"}], "name": "supportsInterface",
     "outputs": [{"name": "", "type": "bool"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "name", "outputs": [
        {"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "symbol", "outputs": [
        {"name": "", "type": "string"}], "type": "function"},
]

# Standard ERC20 ABI for name, symbol, decimals, totalSupply
ERC20_ABI = [
    {"constant": True, "inputs": [], "name": "name", "outputs": [
        {"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "symbol", "outputs": [
        {"name": "", "type": "string"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "decimals", "outputs": [
        {"name": "", "type": "uint8"}], "type": "function"},
    {"constant": True, "inputs": [], "name": "totalSupply", "outputs": [
        {"name": "", "type": "uint256"}], "type": "function"}
]


def _to_hex(value: Any) -> str:
    if isinstance(value, str):
        return value.lower()
    return Web3.to_hex(value)


def _to_bytes(value: Any) -> bytes:
    if value is None:
        return b""
    if isinstance(value, str):
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)
    return bytes(value)


def _to_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, str):
        return int(value, 16)
    return int(value)


def transaction_from_rpc(tx: Dict[str, Any]) -> TransactionRecord:
    """Convert a web3 transaction dict into a TransactionRecord."""
    # The node reports the signature-recovered sender as "from"
    sender = tx.get("from")
    recipient = tx.get("to")
    return TransactionRecord(
        hash=_to_hex(tx["hash"]),
        to_address=normalize_address(recipient) if recipient else None,
        from_address=normalize_address(sender) if sender else None,
        value=_to_int(tx.get("value")),
        gas_price=_to_int(tx.get("gasPrice")),
        data=_to_bytes(tx.get("input")),
        type=_to_int(tx.get("type")),
    )


class Web3Client:
    """Client for the JSON-RPC calls the analysis needs."""

    def __init__(self, config: Config, provider_url: Optional[str] = None):
        if provider_url is None:
            provider_url = config.eth_node

        # One HTTP session per client, so every fetch worker has its own connection
        self.session = requests.Session()
        self.w3 = Web3(Web3.HTTPProvider(
            provider_url,
            request_kwargs={"timeout": config.rpc_timeout},
            session=self.session,
        ))

    def close(self) -> None:
        self.session.close()

    def get_block(self, height: int) -> BlockRecord:
        """Get a block with full transactions (receipts are fetched separately)."""
        try:
            block = self.w3.eth.get_block(height, full_transactions=True)
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise ChainClientError(f"Error fetching block {height}: {e}") from e

        return BlockRecord(
            number=int(block["number"]),
            timestamp=int(block["timestamp"]),
            transactions=[transaction_from_rpc(tx) for tx in block["transactions"]],
            gas_used=int(block.get("gasUsed", 0)),
        )

    def get_block_timestamp(self, height: int) -> int:
        """Get the timestamp from a block header."""
        try:
            return int(self.w3.eth.get_block(height)["timestamp"])
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise ChainClientError(f"Error fetching header {height}: {e}") from e

    def get_transaction_receipt(self, tx_hash: str) -> Optional[ReceiptRecord]:
        """Get a transaction receipt, or None if the node does not know it."""
        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except (requests.RequestException, Web3Exception, ValueError) as e:
            raise ChainClientError(f"Error fetching receipt {tx_hash}: {e}") from e

        status = receipt.get("status")
        if status is None:
            # Pre-Byzantium receipts carry a state root instead of a status
            logger.debug(f"Receipt {tx_hash} has no status field, assuming success")
            return ReceiptRecord(success=DEFAULT_RECEIPT.success, gas_used=int(receipt["gasUsed"]))
        return ReceiptRecord(success=status == 1, gas_used=int(receipt["gasUsed"]))

    def is_contract_address(self, address: str) -> bool:
        """Check if an address is a smart contract."""
        code = self.w3.eth.get_code(Web3.to_checksum_address(address))
        return len(code) > 0

    def supports_interface(self, address: str, interface_id: bytes) -> bool:
        """ERC-165 supportsInterface call."""
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=ERC721_ABI)
        return bool(contract.functions.supportsInterface(interface_id).call())

    def get_erc721_details(self, address: str) -> Optional[AddressDetail]:
        """Return ERC721 details if the contract supports the interface, else None."""
        if not self.supports_interface(address, INTERFACE_ID_ERC721):
            return None

        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=ERC721_ABI)
        detail = AddressDetail(address=normalize_address(address), type=AddressType.ERC721)

        # Metadata extension is optional
        try:
            detail.name = contract.functions.name().call()
            detail.symbol = contract.functions.symbol().call()
        except Exception as e:
            logger.debug(f"No ERC721 metadata for {address}: {e}")
        return detail

    def get_erc20_details(self, address: str) -> Optional[AddressDetail]:
        """Return ERC20 details if name, symbol, decimals and totalSupply all answer, else None."""
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=ERC20_ABI)

        name = contract.functions.name().call()
        if not name:
            return None
        symbol = contract.functions.symbol().call()
        if not symbol:
            return None
        decimals = contract.functions.decimals().call()
        contract.functions.totalSupply().call()

        return AddressDetail(
            address=normalize_address(address),
            type=AddressType.ERC20,
            name=name,
            symbol=symbol,
            decimals=int(decimals),
        )
