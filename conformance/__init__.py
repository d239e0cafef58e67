"""Conformance checks and the test matrix driver."""

from conformance.fixtures import (
    AddressFixture,
    BlockFixture,
    FixtureStore,
    LogFixture,
    NetworkFixtures,
    ReceiptFixture,
    SignatureFixture,
    TxFixture,
)
from conformance.skip_matrix import SkipEntry, SkipMatrix
from conformance.driver import ConformanceCase, MatrixDriver, sumhash

__all__ = [
    # Fixtures
    "AddressFixture",
    "BlockFixture",
    "FixtureStore",
    "LogFixture",
    "NetworkFixtures",
    "ReceiptFixture",
    "SignatureFixture",
    "TxFixture",
    # Skip matrix
    "SkipEntry",
    "SkipMatrix",
    # Driver
    "ConformanceCase",
    "MatrixDriver",
    "sumhash",
]
