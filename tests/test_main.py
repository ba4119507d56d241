import json
import os
import tempfile
import unittest
from unittest.mock import patch

from typer.testing import CliRunner

from eth_block_stats import consts
from eth_block_stats.errors import DatasetError
from eth_block_stats.main import app, export_to_json, resolve_start_timestamp
from eth_block_stats.models import AddressDetail, AddressStats, AddressType, AnalysisResult, TxStats

from chain_fakes import addr


class ExportToJsonTests(unittest.TestCase):
    def test_big_integers_are_written_as_strings(self) -> None:
        result = AnalysisResult(start_block_number=100, end_block_number=101, num_blocks=2,
                                value_total_wei=2**200, tx_types={0: 3, 2: 5})
        stats = AddressStats(AddressDetail(addr(1), type=AddressType.ERC20, name="Token", symbol="TKN", decimals=18))
        stats.add(consts.ERC20_TOKENS_TRANSFERRED, 2**100)
        result.top_addresses[consts.ERC20_TOKENS_TRANSFERRED] = [stats]
        result.tagged_transactions.append(TxStats(
            hash="0x1", from_detail=AddressDetail(addr(2)), to_detail=AddressDetail(addr(3)),
            gas_used=21000, gas_fee=0, value=0, data_size=4, success=False, tag=consts.TAG_FLASHBOTS_FAILED_TX))

        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "out.json")
            export_to_json(result, path)
            with open(path) as f:
                data = json.load(f)

        self.assertEqual(data["range"]["start_block_number"], 100)
        self.assertEqual(data["totals"]["value_total_wei"], str(2**200))
        self.assertEqual(data["totals"]["tx_types"], {"0": 3, "2": 5})
        entry = data["top_addresses"][consts.ERC20_TOKENS_TRANSFERRED][0]
        self.assertEqual(entry["type"], "Erc20")
        self.assertEqual(entry["stats"][consts.ERC20_TOKENS_TRANSFERRED], str(2**100))
        self.assertEqual(data["tagged_transactions"][0]["tag"], "FlashbotsFailedTx")


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()

    def test_resolve_start_timestamp(self) -> None:
        self.assertEqual(resolve_start_timestamp("2021-04-27", 17, 49), 1619545740)

    def test_analyze_requires_date_or_block(self) -> None:
        with patch.dict(os.environ, {"ETH_NODE": "http://localhost:8545"}):
            result = self.runner.invoke(app, ["analyze", "--len", "10"])
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Date or block missing", result.output)

    def test_analyze_reports_malformed_dataset(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            dataset = os.path.join(tmpdir, "addresses.json")
            with open(dataset, "w") as f:
                f.write("{not json")
            env = {"ETH_NODE": "http://localhost:8545", "ADDRESSES_JSON": dataset,
                   "TOKENS_JSON": os.path.join(tmpdir, "missing.json")}
            with patch.dict(os.environ, env):
                result = self.runner.invoke(app, ["analyze", "--block", "100", "--len", "1"])

        self.assertEqual(result.exit_code, 1)
        self.assertIn("Analysis failed", result.output)
        self.assertNotIsInstance(result.exception, DatasetError)

    def test_analyze_rejects_bad_length(self) -> None:
        with patch.dict(os.environ, {"ETH_NODE": "http://localhost:8545"}):
            result = self.runner.invoke(app, ["analyze", "--block", "100", "--len", "5x"])
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
