"""Canonical names of the provider operations exercised by the harness."""

from enum import Enum


class Operation(str, Enum):
    """Provider operation, named the way unsupported-operation errors report it."""
    GET_BALANCE = "getBalance"
    GET_CODE = "getCode"
    LOOKUP_ADDRESS = "lookupAddress"
    GET_STORAGE_AT = "getStorageAt"
    GET_BLOCK_BY_NUMBER = "getBlock(blockNumber)"
    GET_BLOCK_BY_HASH = "getBlock(blockHash)"
    GET_PENDING_BLOCK = "getBlock(pending)"
    GET_TRANSACTION = "getTransaction"
    GET_TRANSACTION_RECEIPT = "getTransactionReceipt"
