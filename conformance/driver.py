"""Test matrix driver.

Expands (provider x network x fixture) into named conformance cases and
runs them one after another through the retry runner, bracketed by the
run statistics. For every pair listed in the skip matrix the positive
check is replaced by a negative one that expects the provider to refuse
the operation.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from config.models import HarnessConfig, RetryConfig
from conformance import comparators
from conformance.fixtures import (
    AddressFixture,
    BlockFixture,
    FixtureStore,
    ReceiptFixture,
    TxFixture,
)
from conformance.skip_matrix import SkipMatrix
from core.exceptions import UnsupportedExpectationError, UnsupportedOperationError
from core.logging import LogContext
from core.operations import Operation
from core.retry import RetryRunner
from core.stats import CaseOutcome, CaseResult, Exclusion, RunStatistics, RunSummary
from providers.base import Provider
from providers.registry import ProviderRegistry


logger = logging.getLogger(__name__)

CheckFn = Callable[[], Awaitable[Any]]

# Operation -> (case action, negative case action)
CASE_ACTIONS: dict[Operation, tuple[str, str]] = {
    Operation.GET_BALANCE: ("fetches address balance", "fetching address balance"),
    Operation.GET_CODE: ("fetches address code", "fetching address code"),
    Operation.LOOKUP_ADDRESS: ("fetches address reverse record", "fetching address reverse record"),
    Operation.GET_STORAGE_AT: ("fetches address storage", "fetching address storage"),
    Operation.GET_BLOCK_BY_NUMBER: ("fetches block by number", "fetching block by number"),
    Operation.GET_BLOCK_BY_HASH: ("fetches block by hash", "fetching block by hash"),
    Operation.GET_PENDING_BLOCK: ("fetches a pending block", "fetching a pending block"),
    Operation.GET_TRANSACTION: ("fetches transaction", "fetching transaction"),
    Operation.GET_TRANSACTION_RECEIPT: ("fetches transaction receipt", "fetching transaction receipt"),
}

RUN_NAME = "Test Provider Methods"


def sumhash(value: str) -> str:
    """Shorten a hash or address to its first 6 and last 4 characters."""
    return f"{value[:6]}..{value[-4:]}"


@dataclass
class ConformanceCase:
    """One named sub-test of the matrix."""

    name: str
    provider_name: str
    network: str
    operation: Operation
    check: CheckFn
    timeout_seconds: float
    max_attempts: int
    deterministic: bool = False
    expect_unsupported: bool = False


async def _expect_unsupported(operation: Operation, call: CheckFn) -> None:
    """Run a call that must fail with an unsupported-operation error.

    Raises:
        UnsupportedExpectationError: If the call succeeds, fails differently,
            or reports a different operation.
    """
    try:
        await call()
    except UnsupportedOperationError as e:
        if e.operation != operation.value:
            raise UnsupportedExpectationError(
                operation.value,
                f"unsupported operation reported as '{e.operation}'",
                e,
            ) from e
        return
    except (asyncio.CancelledError, UnsupportedExpectationError):
        raise
    except Exception as e:
        raise UnsupportedExpectationError(
            operation.value,
            f"expected {UnsupportedOperationError.code}, got {type(e).__name__}: {e}",
            e,
        ) from e

    raise UnsupportedExpectationError(operation.value, "operation unexpectedly succeeded")


class MatrixDriver:
    """Builds and runs the provider conformance matrix.

    Cases of one (provider, network) follow fixture declaration order:
    addresses, blocks, transactions, receipts. Each provider then gets one
    pending-block case on the configured pending network.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        fixtures: FixtureStore,
        skip_matrix: SkipMatrix,
        stats: RunStatistics,
        harness_config: Optional[HarnessConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        runner: Optional[RetryRunner] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        providers: Optional[list[str]] = None,
        networks: Optional[list[str]] = None,
    ):
        """Initialize the driver.

        Args:
            registry: Source of live providers per (name, network).
            fixtures: Golden data per network.
            skip_matrix: Known unsupported operations and excluded providers.
            stats: Run statistics; must not be in use by another run.
            harness_config: Throttle and timeout settings.
            retry_config: Attempt budget and retry delay.
            runner: Retry runner; built from ``stats`` and ``sleep`` if omitted.
            sleep: Coroutine used for the inter-case throttle.
            providers: Only run these providers, if given.
            networks: Only run these networks, if given.
        """
        self.registry = registry
        self.fixtures = fixtures
        self.skip_matrix = skip_matrix
        self.stats = stats
        self.harness_config = harness_config or HarnessConfig()
        self.retry_config = retry_config or RetryConfig()
        self.runner = runner or RetryRunner(stats, sleep=sleep)
        self._sleep = sleep
        self._provider_filter = {p.lower() for p in providers} if providers else None
        self._network_filter = {n.lower() for n in networks} if networks else None
        self.exclusions: list[Exclusion] = []

    def _selected_providers(self) -> list[str]:
        names = self.registry.provider_names
        if self._provider_filter is None:
            return names
        return [name for name in names if name in self._provider_filter]

    def _selected_networks(self) -> list[str]:
        networks = self.fixtures.networks
        if self._network_filter is None:
            return networks
        return [network for network in networks if network in self._network_filter]

    def _exclude(self, provider_name: str, network: str, reason: str) -> None:
        self.exclusions.append(Exclusion(provider=provider_name, network=network, reason=reason))
        logger.info(
            f"Skipping {provider_name}.{network}: {reason}",
            extra={"provider": provider_name, "network": network}
        )

    def build_cases(self) -> list[ConformanceCase]:
        """Expand the matrix into an ordered list of cases.

        Exclusions found along the way are collected in ``self.exclusions``.
        """
        self.exclusions = []
        cases: list[ConformanceCase] = []

        for provider_name in self._selected_providers():
            if self.skip_matrix.is_excluded(provider_name):
                for network in self._selected_networks():
                    self._exclude(provider_name, network, "provider excluded")
                continue

            for network in self._selected_networks():
                provider = self.registry.get_provider(provider_name, network)
                if provider is None:
                    self._exclude(provider_name, network, "no endpoint configured")
                    continue
                cases.extend(self._network_cases(provider, provider_name, network))

            pending_case = self._pending_case(provider_name)
            if pending_case is not None:
                cases.append(pending_case)

        logger.info(
            f"Built {len(cases)} conformance case(s), {len(self.exclusions)} exclusion(s)",
            extra={"cases": len(cases), "exclusions": len(self.exclusions)}
        )
        return cases

    def _case(
        self,
        provider_name: str,
        network: str,
        operation: Operation,
        label: str,
        check: CheckFn,
        call: CheckFn,
    ) -> ConformanceCase:
        """Make a positive case, or a negative one if the matrix lists the pair.

        ``check`` runs the call and compares; ``call`` only runs the call.
        """
        action, negative_action = CASE_ACTIONS[operation]
        expect_unsupported = self.skip_matrix.is_unsupported(provider_name, operation)
        if expect_unsupported:
            name = f"throws unsupported operation for {negative_action}: {provider_name}.{network}.{label}"

            async def check_unsupported() -> None:
                await _expect_unsupported(operation, call)

            check = check_unsupported
        else:
            name = f"{action}: {provider_name}.{network}.{label}"

        return ConformanceCase(
            name=name,
            provider_name=provider_name,
            network=network,
            operation=operation,
            check=check,
            timeout_seconds=self.harness_config.case_timeout_seconds,
            max_attempts=self.retry_config.max_attempts,
            expect_unsupported=expect_unsupported,
        )

    def _network_cases(
        self,
        provider: Provider,
        provider_name: str,
        network: str,
    ) -> list[ConformanceCase]:
        fixtures = self.fixtures[network]
        cases: list[ConformanceCase] = []
        for address in fixtures.addresses:
            cases.extend(self._address_cases(provider, provider_name, network, address))
        for block in fixtures.blocks:
            cases.extend(self._block_cases(provider, provider_name, network, block))
        for tx in fixtures.transactions:
            cases.append(self._transaction_case(provider, provider_name, network, tx))
        for receipt in fixtures.receipts:
            cases.append(self._receipt_case(provider, provider_name, network, receipt))
        return cases

    def _address_cases(
        self,
        provider: Provider,
        provider_name: str,
        network: str,
        fixture: AddressFixture,
    ) -> list[ConformanceCase]:
        address = fixture.address
        label = sumhash(address)
        cases = []

        if fixture.balance is not None:
            async def call_balance() -> Any:
                return await provider.get_balance_of(address)

            async def check_balance() -> None:
                comparators.check_balance(await call_balance(), fixture.balance)

            cases.append(self._case(
                provider_name, network, Operation.GET_BALANCE, label, check_balance, call_balance
            ))

        if fixture.code is not None:
            async def call_code() -> Any:
                return await provider.get_code(address)

            async def check_code() -> None:
                comparators.check_code(await call_code(), fixture.code)

            cases.append(self._case(
                provider_name, network, Operation.GET_CODE, label, check_code, call_code
            ))

        if fixture.name is not None:
            async def call_name() -> Any:
                return await provider.lookup_address(address)

            async def check_name() -> None:
                comparators.check_name(await call_name(), fixture.name)

            cases.append(self._case(
                provider_name, network, Operation.LOOKUP_ADDRESS, label, check_name, call_name
            ))

        if fixture.storage is not None:
            async def call_storage() -> dict[str, Any]:
                values = {}
                for slot in fixture.storage:
                    values[slot] = await provider.get_storage_at(address, slot)
                return values

            async def check_storage() -> None:
                comparators.check_storage(await call_storage(), fixture.storage)

            cases.append(self._case(
                provider_name, network, Operation.GET_STORAGE_AT, label, check_storage, call_storage
            ))

        return cases

    def _block_cases(
        self,
        provider: Provider,
        provider_name: str,
        network: str,
        fixture: BlockFixture,
    ) -> list[ConformanceCase]:
        async def call_by_number() -> Any:
            return await provider.get_block(fixture.number)

        async def check_by_number() -> None:
            comparators.check_block(await call_by_number(), fixture)

        async def call_by_hash() -> Any:
            return await provider.get_block(fixture.hash)

        async def check_by_hash() -> None:
            comparators.check_block(await call_by_hash(), fixture)

        return [
            self._case(
                provider_name, network, Operation.GET_BLOCK_BY_NUMBER,
                str(fixture.number), check_by_number, call_by_number,
            ),
            self._case(
                provider_name, network, Operation.GET_BLOCK_BY_HASH,
                sumhash(fixture.hash), check_by_hash, call_by_hash,
            ),
        ]

    def _transaction_case(
        self,
        provider: Provider,
        provider_name: str,
        network: str,
        fixture: TxFixture,
    ) -> ConformanceCase:
        async def call() -> Any:
            return await provider.get_transaction(fixture.hash)

        async def check() -> None:
            comparators.check_transaction(await call(), fixture)

        return self._case(
            provider_name, network, Operation.GET_TRANSACTION, sumhash(fixture.hash), check, call
        )

    def _receipt_case(
        self,
        provider: Provider,
        provider_name: str,
        network: str,
        fixture: ReceiptFixture,
    ) -> ConformanceCase:
        async def call() -> Any:
            return await provider.get_transaction_receipt(fixture.hash)

        async def check() -> None:
            comparators.check_receipt(await call(), fixture)

        return self._case(
            provider_name, network, Operation.GET_TRANSACTION_RECEIPT,
            sumhash(fixture.hash), check, call,
        )

    def _pending_case(self, provider_name: str) -> Optional[ConformanceCase]:
        """The shape-only pending block case, if the provider reaches the pending network."""
        network = self.harness_config.pending_block_network
        if self._network_filter is not None and network not in self._network_filter:
            return None

        provider = self.registry.get_provider(provider_name, network)
        if provider is None:
            logger.info(
                f"No pending block case for {provider_name}: no {network} endpoint",
                extra={"provider": provider_name, "network": network}
            )
            return None

        async def call() -> Any:
            return await provider.get_block("pending")

        async def check() -> None:
            comparators.check_pending_block(await call())

        case = self._case(provider_name, network, Operation.GET_PENDING_BLOCK, "", check, call)
        action, negative_action = CASE_ACTIONS[Operation.GET_PENDING_BLOCK]
        if case.expect_unsupported:
            case.name = f"throws unsupported operation for {negative_action}: {provider_name}"
        else:
            case.name = f"{action}: {provider_name}"
        case.timeout_seconds = self.harness_config.pending_block_timeout_seconds
        case.deterministic = True
        return case

    async def run_case(self, case: ConformanceCase) -> CaseResult:
        """Throttle, then run one case through the retry runner."""
        throttle = self.harness_config.throttle_seconds
        if throttle > 0:
            await self._sleep(throttle)

        with LogContext(case=case.name):
            return await self.runner.run(
                case.name,
                case.check,
                max_attempts=case.max_attempts,
                base_delay=self.retry_config.delay_seconds,
                timeout_seconds=case.timeout_seconds,
                deterministic=case.deterministic,
                success_outcome=(
                    CaseOutcome.SKIPPED_UNSUPPORTED if case.expect_unsupported
                    else CaseOutcome.PASSED
                ),
            )

    async def run(self, name: str = RUN_NAME, run_id: Optional[str] = None) -> RunSummary:
        """Run the whole matrix and return the summary.

        A failing case never stops the matrix; every case is run and
        reported on its own.
        """
        with LogContext(run_id=run_id):
            self.stats.start(name)
            try:
                cases = self.build_cases()
                for exclusion in self.exclusions:
                    self.stats.record_exclusion(
                        exclusion.provider, exclusion.network, exclusion.reason
                    )

                for case in cases:
                    result = await self.run_case(case)
                    self.stats.record_result(result)
                    logger.info(
                        f"{result.outcome.value.upper()} {case.name}",
                        extra={
                            "provider": case.provider_name,
                            "network": case.network,
                            "operation": case.operation.value,
                            "attempts": result.attempts,
                        }
                    )
            finally:
                summary = self.stats.end()
        return summary
