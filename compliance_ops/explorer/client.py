"""
Etherscan lookups for the compliance portal.

Every lookup is a parameter mapping routed through one shared
RateGovernedDispatcher, so balance checks, transaction lists and token
lookups triggered from different screens all respect the same quota.
"""

from __future__ import annotations

import asyncio
import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from ..logging_utils import log_operation, safe_explorer_call
from .dispatcher import RateGovernedDispatcher
from .exceptions import ExplorerError, RateLimitedError, RemoteError
from .models import CHAIN_INFO, PLACEHOLDER_API_KEY, ChainInfo, SupportedChain

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
WEI_PER_ETH = Decimal(10) ** 18
DEFAULT_END_BLOCK = 99999999


def _format_units(raw: str | int, divisor: Decimal) -> str:
    try:
        value = Decimal(str(raw))
    except InvalidOperation as e:
        raise ValueError(f"Not a numeric amount: {raw!r}") from e
    return f"{value / divisor:.6f}"


class EtherscanClient:
    """High-level Etherscan operations over a shared dispatcher."""

    def __init__(
        self,
        dispatcher: RateGovernedDispatcher,
        chain_id: str,
        api_key: str = PLACEHOLDER_API_KEY,
    ):
        self.dispatcher = dispatcher
        self.chain_id = chain_id
        self.api_key = api_key

    async def _request(self, **params: str) -> Any:
        return await self.dispatcher.enqueue(params)

    @staticmethod
    def _page_params(
        address: str,
        start_block: int,
        end_block: int,
        page: int,
        offset: int,
    ) -> dict[str, str]:
        return {
            "address": address,
            "startblock": str(start_block),
            "endblock": str(end_block),
            "page": str(page),
            "offset": str(offset),
            "sort": "desc",
        }

    # Accounts

    @log_operation("etherscan.get_balance")
    async def get_balance(self, address: str) -> str:
        """ETH balance of ``address`` with six decimals."""
        balance = await self._request(
            module="account", action="balance", address=address, tag="latest"
        )
        return _format_units(balance, WEI_PER_ETH)

    @log_operation("etherscan.get_multiple_balances")
    async def get_multiple_balances(self, addresses: list[str]) -> list[dict[str, str]]:
        balances = await self._request(
            module="account",
            action="balancemulti",
            address=",".join(addresses),
            tag="latest",
        )
        return [
            {
                "account": item["account"],
                "balance": _format_units(item["balance"], WEI_PER_ETH),
            }
            for item in balances
        ]

    @log_operation("etherscan.get_transactions")
    async def get_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: int = DEFAULT_END_BLOCK,
        page: int = 1,
        offset: int = 10,
    ) -> list[dict[str, Any]]:
        return await self._request(
            module="account",
            action="txlist",
            **self._page_params(address, start_block, end_block, page, offset),
        ) or []

    @log_operation("etherscan.get_internal_transactions")
    async def get_internal_transactions(
        self,
        address: str,
        start_block: int = 0,
        end_block: int = DEFAULT_END_BLOCK,
        page: int = 1,
        offset: int = 10,
    ) -> list[dict[str, Any]]:
        return await self._request(
            module="account",
            action="txlistinternal",
            **self._page_params(address, start_block, end_block, page, offset),
        ) or []

    async def _transfers(
        self,
        action: str,
        address: str,
        contract_address: str | None,
        start_block: int,
        end_block: int,
        page: int,
        offset: int,
    ) -> list[dict[str, Any]]:
        params = {
            "module": "account",
            "action": action,
            **self._page_params(address, start_block, end_block, page, offset),
        }
        if contract_address:
            params["contractaddress"] = contract_address
        return await self._request(**params) or []

    @log_operation("etherscan.get_token_transfers")
    async def get_token_transfers(
        self,
        address: str,
        contract_address: str | None = None,
        start_block: int = 0,
        end_block: int = DEFAULT_END_BLOCK,
        page: int = 1,
        offset: int = 100,
    ) -> list[dict[str, Any]]:
        """ERC-20 transfers, optionally filtered by token contract."""
        return await self._transfers(
            "tokentx", address, contract_address, start_block, end_block, page, offset
        )

    @log_operation("etherscan.get_nft_transfers")
    async def get_nft_transfers(
        self,
        address: str,
        contract_address: str | None = None,
        start_block: int = 0,
        end_block: int = DEFAULT_END_BLOCK,
        page: int = 1,
        offset: int = 100,
    ) -> list[dict[str, Any]]:
        """ERC-721 transfers, optionally filtered by collection contract."""
        return await self._transfers(
            "tokennfttx", address, contract_address, start_block, end_block, page, offset
        )

    @log_operation("etherscan.get_token_balance")
    async def get_token_balance(self, contract_address: str, address: str) -> str:
        """Raw ERC-20 balance (not scaled by decimals)."""
        return await self._request(
            module="account",
            action="tokenbalance",
            contractaddress=contract_address,
            address=address,
            tag="latest",
        )

    # Contracts

    @log_operation("etherscan.get_contract_source")
    async def get_contract_source(self, address: str) -> dict[str, Any]:
        result = await self._request(
            module="contract", action="getsourcecode", address=address
        )
        if not result:
            raise RemoteError(
                f"No contract information for {address}", api=self.dispatcher.config.api
            )
        return result[0]

    async def is_contract(self, address: str) -> bool:
        """True when the address has verified source code; False on any lookup error."""
        try:
            contract = await self.get_contract_source(address)
        except ExplorerError:
            return False
        return contract.get("SourceCode", "") != ""

    # Proxy (JSON-RPC)

    @log_operation("etherscan.get_block_by_number")
    async def get_block_by_number(self, block_number: str) -> Any:
        return await self._request(
            module="proxy",
            action="eth_getBlockByNumber",
            tag=block_number,
            boolean="true",
        )

    @log_operation("etherscan.get_transaction_by_hash")
    async def get_transaction_by_hash(self, tx_hash: str) -> Any:
        return await self._request(
            module="proxy", action="eth_getTransactionByHash", txhash=tx_hash
        )

    @log_operation("etherscan.get_transaction_receipt")
    async def get_transaction_receipt(self, tx_hash: str) -> Any:
        return await self._request(
            module="proxy", action="eth_getTransactionReceipt", txhash=tx_hash
        )

    @log_operation("etherscan.get_latest_block")
    async def get_latest_block(self) -> str:
        block_hex = await self._request(module="proxy", action="eth_blockNumber")
        return str(int(block_hex, 16))

    # Stats

    @log_operation("etherscan.get_eth_price")
    async def get_eth_price(self) -> dict[str, str]:
        return await self._request(module="stats", action="ethprice")

    @log_operation("etherscan.get_gas_tracker")
    async def get_gas_tracker(self) -> dict[str, str]:
        return await self._request(module="gastracker", action="gasoracle")

    async def _gather(self, operation: str, failure_message: str, *calls) -> list[Any]:
        """
        Run several lookups concurrently through the dispatcher.

        Rate limiting is re-raised unchanged so the UI can show its own
        notice; other failures collapse into one RemoteError.
        """
        try:
            return await safe_explorer_call(
                operation,
                asyncio.gather(*calls),
                api=self.dispatcher.config.api,
            )
        except RateLimitedError:
            raise
        except ExplorerError as e:
            raise RemoteError(
                failure_message, api=self.dispatcher.config.api
            ) from e

    async def get_token_info(self, contract_address: str) -> dict[str, str]:
        """Name, symbol, decimals and total supply of an ERC-20 token."""
        name, symbol, decimals, total_supply = await self._gather(
            "etherscan.get_token_info",
            "Could not fetch token information",
            *(
                self._request(
                    module="token", action=action, contractaddress=contract_address
                )
                for action in ("tokenname", "tokensymbol", "tokendecimals", "tokensupply")
            ),
        )
        return {
            "name": name,
            "symbol": symbol,
            "decimals": decimals,
            "total_supply": total_supply,
        }

    async def get_network_stats(self, day: date | None = None) -> dict[str, str]:
        day = day or date.today()
        total_supply, daily_txs = await self._gather(
            "etherscan.get_network_stats",
            "Could not fetch network statistics",
            self._request(module="stats", action="ethsupply"),
            self._request(
                module="stats", action="dailytxncount", date=day.isoformat()
            ),
        )
        return {
            "total_supply": total_supply,
            # circulating equals total on Ethereum
            "circulating_supply": total_supply,
            "daily_transactions": daily_txs,
        }

    # Local helpers

    def get_current_chain_info(self) -> ChainInfo:
        try:
            name, is_testnet = CHAIN_INFO[SupportedChain(self.chain_id)]
        except ValueError:
            name, is_testnet = "Unknown Chain", False
        return ChainInfo(chain_id=self.chain_id, chain_name=name, is_testnet=is_testnet)

    def is_api_key_configured(self) -> bool:
        return self.api_key != PLACEHOLDER_API_KEY and len(self.api_key) > 10

    def get_rate_limit_stats(self) -> dict[str, Any]:
        return self.dispatcher.get_statistics()

    def get_estimated_wait_time(self) -> int:
        """Milliseconds until the current queue is drained (approximate)."""
        return self.dispatcher.estimated_wait_ms()

    def clear_queue(self) -> None:
        self.dispatcher.clear()

    @staticmethod
    def is_valid_address(address: str) -> bool:
        return bool(ADDRESS_PATTERN.fullmatch(address))

    @staticmethod
    def format_token_value(value: str, decimals: str) -> str:
        return _format_units(value, Decimal(10) ** int(decimals))
