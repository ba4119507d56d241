"""
Decoding of ERC20/ERC721 transfer calls from transaction input data.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .consts import SELECTOR_TRANSFER, SELECTOR_TRANSFER_FROM
from .utils import address_from_word

logger = logging.getLogger(__name__)

WORD_SIZE = 32


@dataclass(frozen=True)
class TransferCall:
    """A decoded transfer/transferFrom call. Amount is the raw uint256, unscaled."""
    amount: int
    sender: Optional[str] = None  # token owner, transferFrom only
    receiver: Optional[str] = None  # token receiver (decoded address argument)


def _word(data: bytes, index: int) -> bytes:
    start = 4 + index * WORD_SIZE
    return data[start:start + WORD_SIZE]


def decode_transfer(data: bytes) -> Optional[TransferCall]:
    """
    Recognize transfer(address,uint256) and transferFrom(address,address,uint256).

    Returns None for anything else, including a matching selector with
    arguments that are too short.
    """
    if len(data) <= 4:
        return None

    selector = bytes(data[:4])
    if selector == SELECTOR_TRANSFER:
        num_words = 2
    elif selector == SELECTOR_TRANSFER_FROM:
        num_words = 3
    else:
        return None

    if len(data) < 4 + num_words * WORD_SIZE:
        logger.debug(f"Transfer call data too short ({len(data)} bytes) for selector {selector.hex()}")
        return None

    if selector == SELECTOR_TRANSFER:
        return TransferCall(
            amount=int.from_bytes(_word(data, 1), "big"),
            receiver=address_from_word(_word(data, 0)),
        )

    return TransferCall(
        amount=int.from_bytes(_word(data, 2), "big"),
        sender=address_from_word(_word(data, 0)),
        receiver=address_from_word(_word(data, 1)),
    )
