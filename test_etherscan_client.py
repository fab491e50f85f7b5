#!/usr/bin/env python3
"""
Tests for EtherscanClient operations over a scripted adapter.
"""

from datetime import date

import pytest

from compliance_ops.explorer import (
    DispatchCancelledError,
    DispatcherConfig,
    RateGovernedDispatcher,
    RateLimitedError,
    RemoteError,
)
from compliance_ops.explorer.client import EtherscanClient

ADDRESS = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e"
TOKEN = "0xdAC17F958D2ee523a2206206994597C13D831ec7"


class ScriptedAdapter:
    """Answers by (module, action); values that are exceptions are raised."""

    def __init__(self, replies: dict[tuple[str, str], object]):
        self.replies = replies
        self.calls: list[dict[str, str]] = []

    async def __call__(self, parameters):
        self.calls.append(dict(parameters))
        reply = self.replies[(parameters["module"], parameters["action"])]
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_client(replies, chain_id="1", api_key="ABCDEFGHIJKLMNOP"):
    adapter = ScriptedAdapter(replies)
    dispatcher = RateGovernedDispatcher(DispatcherConfig(rate_per_second=1000), adapter)
    return EtherscanClient(dispatcher, chain_id=chain_id, api_key=api_key), adapter


class TestAccountLookups:

    @pytest.mark.asyncio
    async def test_balance_converted_from_wei(self):
        client, adapter = make_client(
            {("account", "balance"): "1500000000000000000"}
        )
        assert await client.get_balance(ADDRESS) == "1.500000"
        assert adapter.calls[0] == {
            "module": "account",
            "action": "balance",
            "address": ADDRESS,
            "tag": "latest",
        }

    @pytest.mark.asyncio
    async def test_multiple_balances(self):
        client, adapter = make_client({
            ("account", "balancemulti"): [
                {"account": "0x1", "balance": "1000000000000000000"},
                {"account": "0x2", "balance": "0"},
            ]
        })
        balances = await client.get_multiple_balances(["0x1", "0x2"])
        assert balances == [
            {"account": "0x1", "balance": "1.000000"},
            {"account": "0x2", "balance": "0.000000"},
        ]
        assert adapter.calls[0]["address"] == "0x1,0x2"

    @pytest.mark.asyncio
    async def test_transactions_paging_parameters(self):
        client, adapter = make_client({("account", "txlist"): [{"hash": "0xaa"}]})
        txs = await client.get_transactions(ADDRESS, page=2, offset=20)

        assert txs == [{"hash": "0xaa"}]
        call = adapter.calls[0]
        assert call["startblock"] == "0"
        assert call["endblock"] == "99999999"
        assert call["page"] == "2"
        assert call["offset"] == "20"
        assert call["sort"] == "desc"

    @pytest.mark.asyncio
    async def test_empty_transaction_list(self):
        client, _ = make_client({("account", "txlistinternal"): []})
        assert await client.get_internal_transactions(ADDRESS) == []

    @pytest.mark.asyncio
    async def test_token_transfers_with_contract_filter(self):
        client, adapter = make_client({("account", "tokentx"): []})
        await client.get_token_transfers(ADDRESS, contract_address=TOKEN)
        assert adapter.calls[0]["contractaddress"] == TOKEN
        assert adapter.calls[0]["offset"] == "100"

    @pytest.mark.asyncio
    async def test_nft_transfers_without_filter(self):
        client, adapter = make_client({("account", "tokennfttx"): []})
        await client.get_nft_transfers(ADDRESS)
        assert "contractaddress" not in adapter.calls[0]


class TestContractLookups:

    @pytest.mark.asyncio
    async def test_contract_source_returns_first_entry(self):
        client, _ = make_client({
            ("contract", "getsourcecode"): [{"SourceCode": "contract X {}", "ContractName": "X"}]
        })
        contract = await client.get_contract_source(TOKEN)
        assert contract["ContractName"] == "X"

    @pytest.mark.asyncio
    async def test_is_contract(self):
        client, _ = make_client({
            ("contract", "getsourcecode"): [{"SourceCode": "contract X {}"}]
        })
        assert await client.is_contract(TOKEN) is True

    @pytest.mark.asyncio
    async def test_is_contract_false_on_error(self):
        client, _ = make_client({
            ("contract", "getsourcecode"): RemoteError("Invalid address")
        })
        assert await client.is_contract("0xnothing") is False


class TestProxyAndStats:

    @pytest.mark.asyncio
    async def test_latest_block_hex_to_decimal(self):
        client, _ = make_client({("proxy", "eth_blockNumber"): "0x10d4f"})
        assert await client.get_latest_block() == "68943"

    @pytest.mark.asyncio
    async def test_block_by_number_parameters(self):
        client, adapter = make_client({("proxy", "eth_getBlockByNumber"): {"number": "0x1"}})
        await client.get_block_by_number("0x1")
        assert adapter.calls[0]["tag"] == "0x1"
        assert adapter.calls[0]["boolean"] == "true"

    @pytest.mark.asyncio
    async def test_token_info_combines_four_calls(self):
        client, adapter = make_client({
            ("token", "tokenname"): "Tether USD",
            ("token", "tokensymbol"): "USDT",
            ("token", "tokendecimals"): "6",
            ("token", "tokensupply"): "1000",
        })
        info = await client.get_token_info(TOKEN)
        assert info == {
            "name": "Tether USD",
            "symbol": "USDT",
            "decimals": "6",
            "total_supply": "1000",
        }
        assert [c["action"] for c in adapter.calls] == [
            "tokenname", "tokensymbol", "tokendecimals", "tokensupply"
        ]

    @pytest.mark.asyncio
    async def test_token_info_wraps_remote_failure(self):
        client, _ = make_client({
            ("token", "tokenname"): "Tether USD",
            ("token", "tokensymbol"): RemoteError("Error! Missing Or invalid Module name"),
            ("token", "tokendecimals"): "6",
            ("token", "tokensupply"): "1000",
        })
        with pytest.raises(RemoteError, match="Could not fetch token information"):
            await client.get_token_info(TOKEN)

    @pytest.mark.asyncio
    async def test_token_info_keeps_rate_limit_distinct(self):
        client, _ = make_client({
            ("token", "tokenname"): RateLimitedError("Max rate limit reached"),
            ("token", "tokensymbol"): "USDT",
            ("token", "tokendecimals"): "6",
            ("token", "tokensupply"): "1000",
        })
        with pytest.raises(RateLimitedError):
            await client.get_token_info(TOKEN)

    @pytest.mark.asyncio
    async def test_network_stats(self):
        client, adapter = make_client({
            ("stats", "ethsupply"): "120000000",
            ("stats", "dailytxncount"): [{"transactionCount": 1100000}],
        })
        stats = await client.get_network_stats(date(2024, 3, 1))
        assert stats["total_supply"] == "120000000"
        assert stats["circulating_supply"] == "120000000"
        assert adapter.calls[1]["date"] == "2024-03-01"


class TestLocalHelpers:

    def test_chain_info_known_chain(self):
        client, _ = make_client({}, chain_id="11155111")
        info = client.get_current_chain_info()
        assert info.chain_name == "Sepolia Testnet"
        assert info.is_testnet is True

    def test_chain_info_unknown_chain(self):
        client, _ = make_client({}, chain_id="424242")
        info = client.get_current_chain_info()
        assert info.chain_name == "Unknown Chain"
        assert info.is_testnet is False

    @pytest.mark.parametrize("api_key,expected", [
        ("YourApiKeyToken", False),
        ("short", False),
        ("ABCDEFGHIJKLMNOP", True),
    ])
    def test_api_key_configured(self, api_key, expected):
        client, _ = make_client({}, api_key=api_key)
        assert client.is_api_key_configured() is expected

    @pytest.mark.parametrize("address,expected", [
        (ADDRESS, True),
        (ADDRESS.lower(), True),
        (ADDRESS[:-1], False),
        (ADDRESS + "\n", False),
        ("742d35Cc6634C0532925a3b844Bc454e4438f44e", False),
    ])
    def test_address_validation(self, address, expected):
        assert EtherscanClient.is_valid_address(address) is expected

    def test_format_token_value(self):
        assert EtherscanClient.format_token_value("1234567", "6") == "1.234567"
        assert EtherscanClient.format_token_value("5", "0") == "5.000000"

    @pytest.mark.asyncio
    async def test_rate_limit_stats_and_clear(self):
        client, _ = make_client({("stats", "ethprice"): {"ethusd": "3000"}})
        pending = [client.dispatcher.submit({"module": "stats", "action": "ethprice"})
                   for _ in range(3)]

        assert client.get_rate_limit_stats()["queue_length"] == 3
        assert client.get_estimated_wait_time() == 3
        client.clear_queue()
        assert client.get_rate_limit_stats()["queue_length"] == 0
        for future in pending:
            assert isinstance(future.exception(), DispatchCancelledError)
