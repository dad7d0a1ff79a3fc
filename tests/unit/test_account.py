"""Tests for accounts and transaction submission."""

import asyncio

import pytest
from web3 import AsyncWeb3

from chains.ethereum import ethereum
from clients.evm.account import Account
from clients.evm.chain import Chain
from clients.evm.errors import InsufficientBalance, InvalidAddress, InvalidParameter, NetworkError
from clients.evm.registry import Registries
from enums.account import SignerMode
from tests.helpers.constants import HARDHAT_KEY, HARDHAT_KEY_ADDRESS, OTHER_USER, USER


class TestAccountCreate:
    def test_cached_case_insensitive(self, chain, account):
        again = asyncio.run(Account.create(chain, USER.upper().replace("0X", "0x")))
        assert again is account

    def test_address_checksummed(self, account):
        assert account.get_address() == AsyncWeb3.to_checksum_address(USER)

    def test_invalid_address(self, chain, registries):
        with pytest.raises(InvalidAddress):
            asyncio.run(Account.create(chain, "not-an-address"))
        assert len(registries.accounts) == 0

    def test_local_key_requires_key(self, chain):
        with pytest.raises(InvalidParameter):
            Account(USER, chain, SignerMode.LOCAL_KEY)

    def test_local_key_must_match_address(self, chain):
        with pytest.raises(InvalidParameter):
            Account(USER, chain, SignerMode.LOCAL_KEY, HARDHAT_KEY)

    def test_from_private_key(self, chain):
        account = asyncio.run(Account.from_private_key(chain, HARDHAT_KEY[2:]))

        assert account.address == HARDHAT_KEY_ADDRESS
        assert account.mode is SignerMode.LOCAL_KEY

    def test_impersonation_on_local_chain(self, chain, node):
        account = asyncio.run(Account.create(chain, OTHER_USER, SignerMode.IMPERSONATED))

        assert account.mode is SignerMode.IMPERSONATED
        assert node.rpc_requests == [("hardhat_impersonateAccount", [account.address])]

    def test_impersonation_rejected_on_public_chain(self, w3):
        chain = asyncio.run(Chain.create(ethereum, Registries(), w3))
        with pytest.raises(InvalidParameter):
            asyncio.run(Account.create(chain, OTHER_USER, SignerMode.IMPERSONATED))


class TestNativeBalance:
    def test_get_native_balance(self, account):
        balance = asyncio.run(account.get_native_balance())

        assert balance.raw == 10 * 10**18
        assert balance.formatted == "10"

    def test_set_balance(self, account, node):
        asyncio.run(account.set_balance("1.5"))

        method, params = node.rpc_requests[-1]
        assert method == "hardhat_setBalance"
        assert params == [account.address, hex(15 * 10**17)]


class TestTransferNative:
    def test_transaction_fields_filled(self, account, node):
        receipt = asyncio.run(account.transfer_native(OTHER_USER, "1.25"))

        tx = node.sent[-1]
        assert tx["from"] == account.address
        assert tx["to"] == AsyncWeb3.to_checksum_address(OTHER_USER)
        assert tx["value"] == 125 * 10**16
        assert tx["nonce"] == 0
        assert tx["chainId"] == 31337
        assert tx["maxFeePerGas"] == 22 * 10**9
        assert tx["maxPriorityFeePerGas"] == 2 * 10**9
        assert tx["gas"] >= 100_000
        assert receipt.status == 1
        assert receipt.block_number == 19_000_001
        assert receipt.tx_hash.startswith("0x")

    def test_legacy_gas_price(self, account, node):
        node.base_fee = None
        asyncio.run(account.transfer_native(OTHER_USER, "1"))

        tx = node.sent[-1]
        assert tx["gasPrice"] == 30 * 10**9
        assert "maxFeePerGas" not in tx

    def test_insufficient_balance_checked_before_sending(self, account, node):
        with pytest.raises(InsufficientBalance) as exc_info:
            asyncio.run(account.transfer_native(OTHER_USER, "11"))

        assert exc_info.value.needed == "11"
        assert exc_info.value.available == "10"
        assert node.sent == []

    def test_estimate_failure_wrapped(self, account, node):
        node.estimate_error = ValueError("execution reverted")
        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(account.transfer_native(OTHER_USER, "1"))

        assert isinstance(exc_info.value.__cause__, ValueError)
        assert node.sent == []

    def test_local_key_signs_locally(self, chain, node):
        node.native_balances[HARDHAT_KEY_ADDRESS.lower()] = 5 * 10**18
        account = asyncio.run(Account.from_private_key(chain, HARDHAT_KEY))

        receipt = asyncio.run(account.transfer_native(OTHER_USER, "1"))

        assert receipt.status == 1
        assert len(node.raw_transactions) == 1
        assert node.sent == [{"raw": node.raw_transactions[0]}]
