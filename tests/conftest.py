"""Shared pytest fixtures."""

import copy

import pytest

from sample_data import (
    ADDRESS_FIXTURE,
    BLOCK_FIXTURE,
    LEGACY_TX_FIXTURE,
    RECEIPT_FIXTURE,
    RPC_BLOCK,
    RPC_LEGACY_TX,
    RPC_RECEIPT,
    RPC_TX,
    TX_FIXTURE,
)


@pytest.fixture
def rpc_tx():
    return copy.deepcopy(RPC_TX)


@pytest.fixture
def rpc_legacy_tx():
    return copy.deepcopy(RPC_LEGACY_TX)


@pytest.fixture
def rpc_block():
    return copy.deepcopy(RPC_BLOCK)


@pytest.fixture
def rpc_receipt():
    return copy.deepcopy(RPC_RECEIPT)


@pytest.fixture
def network_fixture_data():
    """One network's fixture document."""
    return {
        "addresses": [copy.deepcopy(ADDRESS_FIXTURE)],
        "blocks": [copy.deepcopy(BLOCK_FIXTURE)],
        "transactions": [copy.deepcopy(TX_FIXTURE), copy.deepcopy(LEGACY_TX_FIXTURE)],
        "receipts": [copy.deepcopy(RECEIPT_FIXTURE)],
    }
