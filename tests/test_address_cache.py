import json
import os
import tempfile
import unittest

from eth_block_stats.address_cache import AddressDetailCache, load_address_dataset
from eth_block_stats.errors import DatasetError
from eth_block_stats.models import AddressDetail, AddressType

from chain_fakes import StaticChainClient, addr, erc20_detail, erc721_detail

WALLET = addr(0x1)
TOKEN = addr(0x20)
NFT = addr(0x721)
CONTRACT = addr(0xc0de)


class ClassifyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.client = StaticChainClient(
            erc20={TOKEN: erc20_detail(TOKEN, "USDC", 6)},
            erc721={NFT: erc721_detail(NFT, "CK")},
            contracts=[TOKEN, NFT, CONTRACT],
        )
        self.cache = AddressDetailCache(self.client)

    def test_probe_order_and_results(self) -> None:
        self.assertEqual(self.cache.classify(NFT).type, AddressType.ERC721)
        self.assertEqual(self.cache.classify(TOKEN).type, AddressType.ERC20)
        self.assertEqual(self.cache.classify(TOKEN).decimals, 6)
        self.assertEqual(self.cache.classify(CONTRACT).type, AddressType.OTHER_CONTRACT)
        self.assertEqual(self.cache.classify(WALLET).type, AddressType.WALLET)

    def test_erc721_wins_over_erc20(self) -> None:
        client = StaticChainClient(erc20={NFT: erc20_detail(NFT)}, erc721={NFT: erc721_detail(NFT)})
        cache = AddressDetailCache(client)
        self.assertEqual(cache.classify(NFT).type, AddressType.ERC721)
        self.assertEqual(client.calls["get_erc20_details"], 0)

    def test_repeated_lookups_query_the_chain_once(self) -> None:
        first = self.cache.classify(WALLET)
        calls_after_first = sum(self.client.calls.values())
        second = self.cache.classify(WALLET.upper().replace("0X", "0x"))

        self.assertEqual(first, second)
        self.assertEqual(sum(self.client.calls.values()), calls_after_first)
        self.assertIn(WALLET, self.cache)

    def test_returned_detail_is_a_copy(self) -> None:
        detail = self.cache.classify(TOKEN)
        detail.name = "changed"
        self.assertEqual(self.cache.get(TOKEN).name, "USDC Token")

    def test_failing_probes_fall_through_to_wallet(self) -> None:
        client = StaticChainClient(failing_probes=[CONTRACT])
        cache = AddressDetailCache(client)
        self.assertEqual(cache.classify(CONTRACT).type, AddressType.WALLET)
        self.assertEqual(client.calls["is_contract_address"], 1)

    def test_without_chain_queries_unknown_address_is_not_cached(self) -> None:
        detail = self.cache.classify(CONTRACT, allow_chain_queries=False)

        self.assertFalse(detail.is_loaded())
        self.assertNotIn(CONTRACT, self.cache)
        self.assertEqual(sum(self.client.calls.values()), 0)

    def test_without_chain_queries_cached_address_is_returned(self) -> None:
        self.cache.add(erc20_detail(TOKEN, "DAI"))
        self.assertEqual(self.cache.classify(TOKEN, allow_chain_queries=False).symbol, "DAI")

    def test_cache_without_client_returns_placeholder(self) -> None:
        cache = AddressDetailCache()
        self.assertEqual(cache.classify(WALLET).type, AddressType.UNKNOWN)

    def test_empty_address(self) -> None:
        self.assertEqual(self.cache.classify("").address, "")
        self.assertEqual(sum(self.client.calls.values()), 0)

    def test_ensure_loaded_upgrades_in_place(self) -> None:
        detail = AddressDetail(TOKEN)
        self.cache.ensure_loaded(detail)
        self.assertEqual((detail.type, detail.symbol, detail.decimals), (AddressType.ERC20, "USDC", 6))

    def test_ensure_loaded_keeps_loaded_detail(self) -> None:
        detail = AddressDetail(TOKEN, type=AddressType.WALLET)
        self.cache.ensure_loaded(detail)
        self.assertEqual(detail.type, AddressType.WALLET)
        self.assertEqual(sum(self.client.calls.values()), 0)


class LoadAddressDatasetTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _write(self, name: str, content: str) -> str:
        path = os.path.join(self.tmpdir.name, name)
        with open(path, "w") as f:
            f.write(content)
        return path

    def test_records_are_normalized(self) -> None:
        path = self._write("addresses.json", json.dumps([
            {"address": "0xABCDEF0000000000000000000000000000000001", "name": "Exchange 1"},
            {"address": "0x00000000000000000000000000000000000000aa", "type": "Erc20",
             "name": "Tether USD", "symbol": "USDT", "decimals": 6},
            {"name": "no address"},
        ]))

        details = load_address_dataset(path)

        self.assertEqual(len(details), 2)
        self.assertEqual(details[0].address, "0xabcdef0000000000000000000000000000000001")
        self.assertEqual(details[0].type, AddressType.WALLET)
        self.assertEqual(details[1].type, AddressType.ERC20)
        self.assertEqual(details[1].decimals, 6)

    def test_malformed_records_are_skipped(self) -> None:
        path = self._write("mixed.json", json.dumps([
            "0xabc",
            42,
            {"address": "0x1234", "name": "too short"},
            {"address": "0xzz00000000000000000000000000000000000001", "name": "not hex"},
            {"address": WALLET, "name": "Kept"},
        ]))

        details = load_address_dataset(path)

        self.assertEqual([d.name for d in details], ["Kept"])

    def test_unknown_type_becomes_wallet(self) -> None:
        path = self._write("a.json", json.dumps([{"address": WALLET, "type": "Exchange"}]))
        self.assertEqual(load_address_dataset(path)[0].type, AddressType.WALLET)

    def test_missing_file_is_skipped(self) -> None:
        self.assertEqual(load_address_dataset(os.path.join(self.tmpdir.name, "missing.json")), [])

    def test_invalid_json_raises(self) -> None:
        with self.assertRaises(DatasetError):
            load_address_dataset(self._write("bad.json", "{not json"))

    def test_non_array_raises(self) -> None:
        with self.assertRaises(DatasetError):
            load_address_dataset(self._write("obj.json", json.dumps({"address": WALLET})))

    def test_later_dataset_wins(self) -> None:
        first = self._write("a.json", json.dumps([{"address": TOKEN, "name": "Old"}]))
        second = self._write("b.json", json.dumps([{"address": TOKEN, "type": "Erc20", "name": "New"}]))

        cache = AddressDetailCache.from_datasets(None, first, second)

        self.assertEqual(len(cache), 1)
        self.assertEqual(cache.get(TOKEN).name, "New")
        self.assertTrue(cache.get(TOKEN).is_erc20())


if __name__ == "__main__":
    unittest.main()
