import unittest

from eth_block_stats.decoder import decode_transfer

from chain_fakes import addr, address_word, transfer_data, transfer_from_data, word


class DecodeTransferTests(unittest.TestCase):
    def test_transfer_amount_and_receiver(self) -> None:
        receiver = addr(0xbeef)
        data = bytes.fromhex("a9059cbb") + address_word(receiver) + (19 * 10**18).to_bytes(32, "big")

        transfer = decode_transfer(data)

        self.assertIsNotNone(transfer)
        self.assertEqual(transfer.amount, 19000000000000000000)
        self.assertEqual(transfer.receiver, receiver)
        self.assertIsNone(transfer.sender)

    def test_transfer_from_decodes_sender_receiver_and_amount(self) -> None:
        sender, receiver = addr(0xaaaa), addr(0xbbbb)

        transfer = decode_transfer(transfer_from_data(sender, receiver, 12345))

        self.assertEqual(transfer.amount, 12345)
        self.assertEqual(transfer.sender, sender)
        self.assertEqual(transfer.receiver, receiver)

    def test_amount_is_unscaled_uint256(self) -> None:
        amount = 2**256 - 1
        transfer = decode_transfer(transfer_data(addr(1), amount))
        self.assertEqual(transfer.amount, amount)

    def test_payload_of_four_bytes_or_less_is_not_a_transfer(self) -> None:
        self.assertIsNone(decode_transfer(b""))
        self.assertIsNone(decode_transfer(bytes.fromhex("a9059cbb")))

    def test_other_selector_is_not_a_transfer(self) -> None:
        data = bytes.fromhex("095ea7b3") + address_word(addr(1)) + word(10)  # approve
        self.assertIsNone(decode_transfer(data))

    def test_truncated_arguments_are_not_a_transfer(self) -> None:
        self.assertIsNone(decode_transfer(transfer_data(addr(1), 5)[:50]))
        self.assertIsNone(decode_transfer(transfer_from_data(addr(1), addr(2), 5)[:99]))

    def test_trailing_bytes_are_ignored(self) -> None:
        transfer = decode_transfer(transfer_data(addr(1), 7) + b"\x00" * 8)
        self.assertEqual(transfer.amount, 7)


if __name__ == "__main__":
    unittest.main()
