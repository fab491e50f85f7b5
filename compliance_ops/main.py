"""
Composition root and command-line entry point.

Wires Configuration -> httpx client -> adapter -> dispatcher -> client for
each explorer. One dispatcher is built per remote API.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from collections.abc import Sequence
from typing import Any

import httpx
import structlog

from .config import Configuration
from .explorer.adapters import EtherscanAdapter, TronEventsAdapter
from .explorer.client import EtherscanClient
from .explorer.dispatcher import RateGovernedDispatcher
from .explorer.models import DispatcherConfig
from .logging_utils import ExplorerErrorHandler, configure_logging
from .tron import TronEventsClient

logger = structlog.get_logger(__name__)


def create_http_client(
    configuration: Configuration, timeout: float
) -> httpx.AsyncClient:
    http_config = configuration.get_http_client_config()
    return httpx.AsyncClient(
        timeout=httpx.Timeout(
            timeout,
            connect=http_config["connect_timeout"],
            read=http_config["read_timeout"],
        ),
        limits=httpx.Limits(max_connections=http_config["max_connections"]),
        headers={"Accept": "application/json"},
    )


def build_etherscan_client(
    configuration: Configuration, http_client: httpx.AsyncClient
) -> EtherscanClient:
    etherscan_config = configuration.get_etherscan_config()
    api_key = configuration.etherscan_api_key
    adapter = EtherscanAdapter(
        http_client,
        api_key=api_key,
        chain_id=etherscan_config["chain_id"],
        base_url=etherscan_config["base_url"],
    )
    dispatcher = RateGovernedDispatcher(
        DispatcherConfig(
            rate_per_second=etherscan_config["rate_per_second"], api="etherscan"
        ),
        adapter,
    )
    return EtherscanClient(
        dispatcher, chain_id=etherscan_config["chain_id"], api_key=api_key
    )


def build_tron_client(
    configuration: Configuration, http_client: httpx.AsyncClient
) -> TronEventsClient:
    tron_config = configuration.get_tron_config()
    dispatcher = RateGovernedDispatcher(
        DispatcherConfig(rate_per_second=tron_config["rate_per_second"], api="tron"),
        TronEventsAdapter(http_client, base_url=tron_config["base_url"]),
    )
    return TronEventsClient(dispatcher)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="compliance-ops",
        description="Rate-governed block explorer lookups",
    )
    parser.add_argument("--config", help="Path to config.yaml")
    sub = parser.add_subparsers(dest="command", required=True)

    for name in ("balance", "txs", "tokens", "contract", "tron"):
        cmd = sub.add_parser(name)
        cmd.add_argument("address")
    block = sub.add_parser("block")
    block.add_argument("number", help="Block number as 0x-prefixed hex or 'latest'")
    for name in ("gas", "price", "chain", "latest"):
        sub.add_parser(name)
    return parser


async def _run_etherscan(client: EtherscanClient, args: argparse.Namespace) -> Any:
    if args.command in ("balance", "txs", "tokens", "contract"):
        if not client.is_valid_address(args.address):
            raise ValueError(f"Invalid Ethereum address: {args.address}")

    match args.command:
        case "balance":
            return {"address": args.address, "eth": await client.get_balance(args.address)}
        case "txs":
            return await client.get_transactions(args.address, offset=20)
        case "tokens":
            return await client.get_token_transfers(args.address, offset=20)
        case "contract":
            return await client.get_contract_source(args.address)
        case "block":
            return await client.get_block_by_number(args.number)
        case "gas":
            return await client.get_gas_tracker()
        case "price":
            return await client.get_eth_price()
        case "latest":
            return await client.get_latest_block()
        case "chain":
            info = dataclasses.asdict(client.get_current_chain_info())
            info["api_key_configured"] = client.is_api_key_configured()
            return info
    raise ValueError(f"Unknown command: {args.command}")


async def run(args: argparse.Namespace) -> int:
    configuration = Configuration(args.config)
    configure_logging(configuration.get_logging_config().get("level", "INFO"))

    if args.command == "tron":
        tron_config = configuration.get_tron_config()
        async with create_http_client(configuration, tron_config["timeout"]) as http:
            tron = build_tron_client(configuration, http)
            async with tron.dispatcher:
                output = await _execute(
                    "tron", tron.fetch_events(args.address, limit=40)
                )
    else:
        etherscan_config = configuration.get_etherscan_config()
        async with create_http_client(
            configuration, etherscan_config["timeout"]
        ) as http:
            client = build_etherscan_client(configuration, http)
            async with client.dispatcher:
                output = await _execute(args.command, _run_etherscan(client, args))

    if "error" in output:
        print(json.dumps(output["error"], indent=2))
        return 1
    print(json.dumps(output["result"], indent=2, default=_to_json))
    return 0


async def _execute(operation: str, coro) -> dict[str, Any]:
    try:
        return {"result": await coro}
    except Exception as e:
        logger.warning("Command failed", operation=operation, error_type=type(e).__name__)
        return {"error": ExplorerErrorHandler.describe_error(e, operation)}


def _to_json(value: Any) -> Any:
    if dataclasses.is_dataclass(value):
        return dataclasses.asdict(value)
    raise TypeError(f"Not JSON serializable: {type(value).__name__}")


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
