"""
Counter keys, ranked metrics and contract constants.
"""

# Per-address counters
NUM_TX_RECEIVED = "NumTxReceived"
NUM_TX_RECEIVED_SUCCESS = "NumTxReceivedSuccess"
NUM_TX_RECEIVED_FAILED = "NumTxReceivedFailed"

NUM_TX_SENT = "NumTxSent"
NUM_TX_SENT_SUCCESS = "NumTxSentSuccess"
NUM_TX_SENT_FAILED = "NumTxSentFailed"

NUM_TX_FLASHBOTS_SENT = "NumTxFlashbotsSent"
NUM_TX_FLASHBOTS_RECEIVED = "NumTxFlashbotsReceived"

NUM_TX_WITH_DATA_SENT = "NumTxWithDataSent"
NUM_TX_WITH_DATA_RECEIVED = "NumTxWithDataReceived"

NUM_TX_ERC20_SENT = "NumTxErc20Sent"
NUM_TX_ERC20_RECEIVED = "NumTxErc20Received"
NUM_TX_ERC20_TRANSFER = "NumTxErc20Transfer"
NUM_TX_ERC721_SENT = "NumTxErc721Sent"
NUM_TX_ERC721_RECEIVED = "NumTxErc721Received"
NUM_TX_ERC721_TRANSFER = "NumTxErc721Transfer"

VALUE_SENT_WEI = "ValueSentWei"
VALUE_RECEIVED_WEI = "ValueReceivedWei"

ERC20_TOKENS_SENT = "Erc20TokensSent"
ERC20_TOKENS_RECEIVED = "Erc20TokensReceived"
ERC20_TOKENS_TRANSFERRED = "Erc20TokensTransferred"

GAS_USED = "GasUsed"
GAS_FEE_TOTAL = "GasFeeTotal"
GAS_FEE_FAILED_TX = "GasFeeFailedTx"

FLASHBOTS_FAILED_TX_SENT = "FlashBotsFailedTxSent"

# Every counter gets its own ranked view, in this order
ADDRESS_STATS_KEYS = [
    NUM_TX_RECEIVED, NUM_TX_RECEIVED_SUCCESS, NUM_TX_RECEIVED_FAILED,
    NUM_TX_SENT, NUM_TX_SENT_SUCCESS, NUM_TX_SENT_FAILED,
    NUM_TX_FLASHBOTS_SENT, NUM_TX_FLASHBOTS_RECEIVED,
    NUM_TX_WITH_DATA_SENT, NUM_TX_WITH_DATA_RECEIVED,
    NUM_TX_ERC20_SENT, NUM_TX_ERC20_RECEIVED, NUM_TX_ERC20_TRANSFER,
    NUM_TX_ERC721_SENT, NUM_TX_ERC721_RECEIVED, NUM_TX_ERC721_TRANSFER,
    VALUE_SENT_WEI, VALUE_RECEIVED_WEI,
    ERC20_TOKENS_SENT, ERC20_TOKENS_RECEIVED, ERC20_TOKENS_TRANSFERRED,
    GAS_USED, GAS_FEE_TOTAL, GAS_FEE_FAILED_TX,
    FLASHBOTS_FAILED_TX_SENT,
]

# Ranked with num_top_addresses_large instead of num_top_addresses
LARGE_TOP_KEYS = frozenset([
    NUM_TX_ERC20_RECEIVED, NUM_TX_ERC20_TRANSFER,
    NUM_TX_ERC721_RECEIVED, NUM_TX_ERC721_TRANSFER,
])

# Tagged transactions
TAG_FLASHBOTS_FAILED_TX = "FlashbotsFailedTx"
TAG_FLASHBOTS_TX = "FlashbotsTx"

# Method selectors (first 4 bytes of call data)
SELECTOR_TRANSFER = bytes.fromhex("a9059cbb")       # transfer(address,uint256)
SELECTOR_TRANSFER_FROM = bytes.fromhex("23b872dd")  # transferFrom(address,address,uint256)

# ERC-165 interface ids
INTERFACE_ID_ERC165 = bytes.fromhex("01ffc9a7")
INTERFACE_ID_ERC721 = bytes.fromhex("80ac58cd")
