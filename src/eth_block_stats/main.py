"""
Main CLI application for Ethereum block range statistics.
"""

from .utils import (
    format_number,
    format_percent,
    format_token_amount,
    make_time,
    parse_length,
    parse_relative_date,
    wei_to_ether,
)
from .models import AnalysisResult, AddressStats, TxStats
from . import consts
from typing import Optional, List
from datetime import datetime, timezone
import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, MofNCompleteColumn
from rich.panel import Panel

from .config import Config
from .api_clients import Web3Client
from .address_cache import AddressDetailCache
from .analysis import analyze_blocks, resolve_block_range
from .errors import BlockStatsError

# Logging setup
import logging
logger = logging.getLogger(__name__)


app = typer.Typer(
    name="eth-block-stats",
    help="Analyze a range of Ethereum blocks: transaction, gas, value and token transfer statistics."
)

console = Console()

# Ranked views shown in the address section
INTERESTING_ADDRESS_KEYS = [
    consts.NUM_TX_RECEIVED_SUCCESS,
    consts.NUM_TX_SENT_SUCCESS,
    consts.VALUE_RECEIVED_WEI,
    consts.VALUE_SENT_WEI,
    consts.NUM_TX_RECEIVED_FAILED,
    consts.NUM_TX_SENT_FAILED,
]


def load_config() -> Config:
    """Load application configuration."""
    try:
        return Config.from_env()
    except ValueError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        console.print(
            "\n[yellow]Please create a .env file with your node URL:[/yellow]")
        console.print("ETH_NODE=http://localhost:8545")
        raise typer.Exit(1)


def setup_logging(config: Config) -> None:
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def resolve_start_timestamp(date: str, hour: int, minute: int) -> int:
    """Timestamp for --date (yyyy-mm-dd, or -1d / -1m / -1y) plus --hour and --min."""
    if date.startswith("-"):
        start_time = parse_relative_date(date)
    else:
        start_time = make_time(date, hour, minute)
    return int(start_time.timestamp())


def _address_with_name(stats: AddressStats) -> str:
    name = stats.detail.name
    return f"{stats.address} {name}" if name else stats.address


def _eth(wei: int) -> str:
    return format_number(wei_to_ether(wei), 4)


def display_summary(result: AnalysisResult):
    """Display the global totals."""
    start = datetime.fromtimestamp(result.start_block_timestamp, tz=timezone.utc)
    end = datetime.fromtimestamp(result.end_block_timestamp, tz=timezone.utc)
    console.print(Panel(
        f"Blocks [yellow]{result.start_block_number:,}[/yellow] to [yellow]{result.end_block_number:,}[/yellow]\n"
        f"{start:%Y-%m-%d %H:%M:%S} to {end:%Y-%m-%d %H:%M:%S} UTC",
        title="Analysis Range",
        expand=False
    ))

    n = result.num_transactions
    console.print(f"\n[bold]Total blocks:[/bold] [green]{result.num_blocks:,}[/green]"
                  f" (without tx: {result.num_blocks_without_tx:,})")
    console.print(f"[bold]Total transactions:[/bold] [green]{n:,}[/green]  tx-types: {result.tx_types}")
    console.print(f"- failed:          {result.num_transactions_failed:>10,}  {format_percent(result.num_transactions_failed, n)}")
    console.print(f"- with value:      {n - result.num_transactions_with_zero_value:>10,}  {format_percent(n - result.num_transactions_with_zero_value, n)}")
    console.print(f"- zero value:      {result.num_transactions_with_zero_value:>10,}  {format_percent(result.num_transactions_with_zero_value, n)}")
    console.print(f"- with data:       {result.num_transactions_with_data:>10,}  {format_percent(result.num_transactions_with_data, n)}")
    console.print(f"- erc20 transfer:  {result.num_transactions_erc20_transfer:>10,}  {format_percent(result.num_transactions_erc20_transfer, n)}")
    console.print(f"- erc721 transfer: {result.num_transactions_erc721_transfer:>10,}  {format_percent(result.num_transactions_erc721_transfer, n)}")
    console.print(f"- flashbots:       {result.num_flashbots_transactions_success:,} ok, {result.num_flashbots_transactions_failed:,} failed")

    console.print(f"\n[bold]Total addresses:[/bold] {len(result.addresses):,}")
    console.print(f"[bold]Total value transferred:[/bold] {_eth(result.value_total_wei)} ETH")
    console.print(f"[bold]Total gas fees:[/bold] {_eth(result.gas_fee_total)} ETH")
    console.print(f"[bold]Gas for failed tx:[/bold] {_eth(result.gas_fee_failed_tx)} ETH")


def display_top_transactions(title: str, tx_list: List[TxStats]):
    table = Table(title=f"\n{title}")
    table.add_column("Transaction Hash", style="yellow", no_wrap=True)
    table.add_column("Gas Fee (ETH)", style="red", justify="right")
    table.add_column("Value (ETH)", style="green", justify="right")
    table.add_column("Data Size", style="white", justify="right")
    table.add_column("From", style="magenta")
    table.add_column("To", style="magenta")
    table.add_column("Status", style="blue", no_wrap=True)

    for tx in tx_list:
        table.add_row(
            tx.hash,
            _eth(tx.gas_fee),
            _eth(tx.value),
            f"{tx.data_size:,}",
            tx.from_detail.as_address_with_name(),
            tx.to_detail.as_address_with_name(),
            "ok" if tx.success else "failed",
        )

    console.print(table)


def display_token_contracts(result: AnalysisResult):
    table = Table(title="\nERC20: most token transfers")
    table.add_column("Contract", style="magenta")
    table.add_column("ERC20 Tx", style="cyan", justify="right")
    table.add_column("Tx Received", style="white", justify="right")
    table.add_column("Tokens Transferred", style="green", justify="right")
    for stats in result.top_addresses.get(consts.NUM_TX_ERC20_TRANSFER, []):
        amount = format_token_amount(stats.get(consts.ERC20_TOKENS_TRANSFERRED), stats.detail.decimals)
        table.add_row(
            _address_with_name(stats),
            f"{stats.get(consts.NUM_TX_ERC20_TRANSFER):,}",
            f"{stats.get(consts.NUM_TX_RECEIVED_SUCCESS):,}",
            f"{format_number(amount, 0)} {stats.detail.symbol}",
        )
    console.print(table)

    table = Table(title="\nERC721: most token transfers")
    table.add_column("Contract", style="magenta")
    table.add_column("ERC721 Tx", style="cyan", justify="right")
    table.add_column("Tx Received", style="white", justify="right")
    table.add_column("Type", style="blue")
    for stats in result.top_addresses.get(consts.NUM_TX_ERC721_TRANSFER, []):
        table.add_row(
            _address_with_name(stats),
            f"{stats.get(consts.NUM_TX_ERC721_TRANSFER):,}",
            f"{stats.get(consts.NUM_TX_RECEIVED_SUCCESS):,}",
            stats.detail.type.value,
        )
    console.print(table)


def display_top_addresses(key: str, entries: List[AddressStats]):
    table = Table(title=f"\nTop addresses by {key}")
    table.add_column("Rank", style="cyan", no_wrap=True)
    table.add_column("Address", style="magenta", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Tx In Ok", justify="right")
    table.add_column("Tx Out Ok", justify="right")
    table.add_column("Tx In Fail", justify="right")
    table.add_column("Tx Out Fail", justify="right")
    table.add_column("Received (ETH)", style="green", justify="right")
    table.add_column("Sent (ETH)", style="green", justify="right")
    table.add_column("Gas Fee (ETH)", style="red", justify="right")

    for i, stats in enumerate(entries, 1):
        table.add_row(
            str(i),
            stats.address,
            stats.detail.name,
            f"{stats.get(consts.NUM_TX_RECEIVED_SUCCESS):,}",
            f"{stats.get(consts.NUM_TX_SENT_SUCCESS):,}",
            f"{stats.get(consts.NUM_TX_RECEIVED_FAILED):,}",
            f"{stats.get(consts.NUM_TX_SENT_FAILED):,}",
            _eth(stats.get(consts.VALUE_RECEIVED_WEI)),
            _eth(stats.get(consts.VALUE_SENT_WEI)),
            _eth(stats.get(consts.GAS_FEE_TOTAL)),
        )

    console.print(table)


def display_results(result: AnalysisResult):
    """Display the analysis result with rich tables."""
    display_summary(result)

    display_top_transactions("Top transactions by GAS FEE", result.top_transactions.gas_fee)
    display_top_transactions("Top transactions by ETH VALUE", result.top_transactions.value)
    display_top_transactions("Top transactions by MOST DATA", result.top_transactions.data_size)

    display_token_contracts(result)

    for key in INTERESTING_ADDRESS_KEYS:
        display_top_addresses(key, result.top_addresses.get(key, []))


def _tx_to_dict(tx: TxStats) -> dict:
    return {
        'hash': tx.hash,
        'from': tx.from_detail.address,
        'from_name': tx.from_detail.name,
        'to': tx.to_detail.address,
        'to_name': tx.to_detail.name,
        'gas_used': str(tx.gas_used),
        'gas_fee': str(tx.gas_fee),
        'value': str(tx.value),
        'data_size': tx.data_size,
        'success': tx.success,
        'tag': tx.tag,
    }


def _address_stats_to_dict(stats: AddressStats) -> dict:
    return {
        'address': stats.address,
        'type': stats.detail.type.value,
        'name': stats.detail.name,
        'symbol': stats.detail.symbol,
        'decimals': stats.detail.decimals,
        # arbitrary precision counters as strings
        'stats': {key: str(value) for key, value in stats.stats.items()},
    }


def export_to_json(result: AnalysisResult, filepath: str):
    """Export analysis results to JSON."""
    data = {
        'range': {
            'start_block_number': result.start_block_number,
            'start_block_timestamp': result.start_block_timestamp,
            'end_block_number': result.end_block_number,
            'end_block_timestamp': result.end_block_timestamp,
        },
        'totals': {
            'num_blocks': result.num_blocks,
            'num_blocks_without_tx': result.num_blocks_without_tx,
            'num_addresses': len(result.addresses),
            'num_transactions': result.num_transactions,
            'num_transactions_failed': result.num_transactions_failed,
            'num_transactions_with_zero_value': result.num_transactions_with_zero_value,
            'num_transactions_with_data': result.num_transactions_with_data,
            'num_transactions_erc20_transfer': result.num_transactions_erc20_transfer,
            'num_transactions_erc721_transfer': result.num_transactions_erc721_transfer,
            'num_flashbots_transactions_success': result.num_flashbots_transactions_success,
            'num_flashbots_transactions_failed': result.num_flashbots_transactions_failed,
            'tx_types': {str(k): v for k, v in result.tx_types.items()},
            'value_total_wei': str(result.value_total_wei),
            'gas_used': str(result.gas_used),
            'gas_fee_total': str(result.gas_fee_total),
            'gas_fee_failed_tx': str(result.gas_fee_failed_tx),
        },
        'top_transactions': {
            'gas_fee': [_tx_to_dict(tx) for tx in result.top_transactions.gas_fee],
            'value': [_tx_to_dict(tx) for tx in result.top_transactions.value],
            'data_size': [_tx_to_dict(tx) for tx in result.top_transactions.data_size],
        },
        'tagged_transactions': [_tx_to_dict(tx) for tx in result.tagged_transactions],
        'top_addresses': {
            key: [_address_stats_to_dict(stats) for stats in entries]
            for key, entries in result.top_addresses.items()
        },
    }

    with open(filepath, 'w') as jsonfile:
        json.dump(data, jsonfile, indent=2)


@app.command()
def analyze(
    date: Optional[str] = typer.Option(
        None, "--date", "-d", help="Start date (yyyy-mm-dd, or -1d / -1m / -1y)"),
    hour: int = typer.Option(0, "--hour", help="Start hour (UTC)"),
    minute: int = typer.Option(0, "--min", help="Start minute (UTC)"),
    block: Optional[int] = typer.Option(
        None, "--block", "-b", help="Start block height (instead of --date)"),
    length: str = typer.Option(
        "", "--len", "-l", help="Number of blocks, or timespan like 30s, 5m, 1h, 1d"),
    output_file: Optional[str] = typer.Option(
        None, "--out", "-o", help="Write the result as JSON to this file"),
    low_api: bool = typer.Option(
        False, "--low-api", help="Skip receipts and on-demand address lookups"),
):
    """Analyze a range of blocks."""
    config = load_config()
    if low_api:
        config.low_api_mode = True
    setup_logging(config)

    if date is None and block is None:
        console.print("[red]Date or block missing, add with --date <yyyy-mm-dd> or --block <height>[/red]")
        raise typer.Exit(1)

    try:
        num_blocks, timespan_sec = parse_length(length)
        start_timestamp = resolve_start_timestamp(date, hour, minute) if block is None else None
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    console.print(f"[cyan]Connecting to Ethereum node at {config.eth_node}[/cyan]")
    client = Web3Client(config)

    time_start = datetime.now()
    try:
        address_cache = AddressDetailCache.from_datasets(client, config.addresses_json, config.tokens_json)
        start_height, end_height = resolve_block_range(
            client, start_block=block, start_timestamp=start_timestamp,
            num_blocks=num_blocks, timespan_sec=timespan_sec)
        console.print(f"startBlock: [green]{start_height}[/green]  endBlock: [green]{end_height}[/green]")

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Fetching blocks...", total=end_height - start_height + 1)
            result = analyze_blocks(
                config, lambda: Web3Client(config), address_cache, start_height, end_height,
                on_block=lambda _block: progress.advance(task))
            progress.update(task, description="✓ Fetched and analyzed blocks")
    except BlockStatsError as e:
        console.print(f"[red]Analysis failed: {e}[/red]")
        raise typer.Exit(1)
    finally:
        client.close()

    display_results(result)
    console.print(f"\n[green]Analysis finished ({(datetime.now() - time_start).total_seconds():.2f}s)[/green]")

    if output_file:
        export_to_json(result, output_file)
        console.print(f"[green]Results exported to {output_file}[/green]")


@app.command()
def setup():
    """Setup the application by creating a .env file template."""
    env_content = """# Ethereum Block Stats Configuration

# Required: Ethereum node JSON-RPC URL
ETH_NODE=http://localhost:8545

# Ranking sizes
NUM_TOP_ADDR=25
NUM_TOP_ADDR_L=100
NUM_TOP_TX=20

# Fetcher pool
NUM_FETCH_WORKERS=5
BLOCK_QUEUE_SIZE=100
RPC_TIMEOUT=30

# Address datasets
ADDRESSES_JSON=data/addresses.json
TOKENS_JSON=data/tokens.json

# Skip receipts and on-demand address lookups
LOW_API=false

# Debug output
DEBUG=false
MEV=false
"""

    env_path = Path(".env")
    if env_path.exists():
        console.print("[yellow].env file already exists![/yellow]")
        if not typer.confirm("Overwrite existing .env file?"):
            return

    with open(env_path, 'w') as f:
        f.write(env_content)

    console.print(f"[green]Created .env file at {env_path.absolute()}[/green]")
    console.print(
        "\n[yellow]Please edit the .env file and set ETH_NODE to your node URL.[/yellow]")
    console.print("Then run: eth-block-stats analyze --date 2021-05-01 --len 1h")


if __name__ == "__main__":
    app()
