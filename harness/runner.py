"""Runs the configured conformance checks of a coin against an adapter."""

import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Optional, Union

from adapters.base import ChainAdapter
from config.models import RetryConfig
from core.exceptions import AdapterError, ConfigurationError
from core.logging import LogContext
from harness import checks
from harness.fixtures import DEFAULT_FIXTURES_DIR, FixtureDataset, load_test_data
from harness.mempool import check_mempool_sync
from harness.results import (
    CheckAborted,
    CheckContext,
    CheckResult,
    Inconclusive,
    IntegrationReport,
    Outcome,
)


logger = logging.getLogger(__name__)

Check = Callable[[CheckContext, ChainAdapter, FixtureDataset], None]

CHECKS: dict[str, Check] = {
    "GetBlockHash": checks.check_block_hash,
    "GetBlock": checks.check_block,
    "GetTransaction": checks.check_transaction,
    "GetTransactionForMempool": checks.check_transaction_for_mempool,
    "MempoolSync": check_mempool_sync,
    "EstimateSmartFee": checks.check_estimate_smart_fee,
    "EstimateFee": checks.check_estimate_fee,
    "GetBestBlockHash": checks.check_best_block_hash,
    "GetBestBlockHeight": checks.check_best_block_height,
    "GetBlockHeader": checks.check_block_header,
}


def parse_test_names(raw: Any) -> list[str]:
    """Parse the list of checks to run.

    Args:
        raw: A JSON array of names, as text or already decoded.

    Raises:
        ConfigurationError: If the list is absent, empty or not an array of strings.
    """
    if raw is None:
        raise ConfigurationError("No tests declared", config_key="tests")

    if isinstance(raw, (str, bytes, bytearray)):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid test list: {e.msg}", config_key="tests")

    if not isinstance(raw, list) or not all(isinstance(name, str) for name in raw):
        raise ConfigurationError("Test list must be an array of strings", config_key="tests")
    if not raw:
        raise ConfigurationError("No tests declared", config_key="tests")
    return list(raw)


def run_check(
    name: str,
    check: Check,
    adapter: ChainAdapter,
    data: FixtureDataset,
    retry: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CheckResult:
    """Run a single check and classify its outcome."""
    ctx = CheckContext(name, retry=retry, sleep=sleep)
    start = time.monotonic()
    outcome = Outcome.PASSED

    try:
        check(ctx, adapter, data)
    except CheckAborted:
        pass
    except Inconclusive:
        outcome = Outcome.INCONCLUSIVE
    except AdapterError as e:
        ctx.error(e.message)
    except Exception as e:
        # An adapter breaking its contract fails this check only
        logger.exception(f"{name} raised {type(e).__name__}", extra={"check": name})
        ctx.error(f"unexpected {type(e).__name__}: {e}")

    if ctx.failed:
        outcome = Outcome.FAILED

    result = CheckResult(
        name=name,
        outcome=outcome,
        messages=list(ctx.messages),
        duration_seconds=time.monotonic() - start,
    )
    logger.info(
        f"{name}: {outcome.value}",
        extra={"check": name, "outcome": outcome.value, "duration_seconds": result.duration_seconds}
    )
    return result


def run_integration(
    coin: str,
    adapter: ChainAdapter,
    tests: Any,
    fixtures_dir: Union[str, Path] = DEFAULT_FIXTURES_DIR,
    retry: Optional[RetryConfig] = None,
    run_id: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> IntegrationReport:
    """Run the declared checks of ``coin`` against ``adapter``.

    Unknown check names are reported as failed results; the remaining
    checks still run.

    Raises:
        ConfigurationError: If the test list is unusable.
        FixtureError: If the coin's fixture cannot be loaded.
    """
    with LogContext(run_id=run_id, coin=coin):
        names = parse_test_names(tests)
        data = load_test_data(coin, adapter.get_chain_parser(), fixtures_dir)

        report = IntegrationReport(coin=coin, run_id=run_id)
        start = time.monotonic()
        for name in names:
            check = CHECKS.get(name)
            if check is None:
                message = f"{name}: test not found"
                logger.error(message, extra={"check": name})
                report.results.append(CheckResult(name=name, outcome=Outcome.FAILED, messages=[message]))
                continue
            report.results.append(run_check(name, check, adapter, data, retry=retry, sleep=sleep))

        report.duration_seconds = time.monotonic() - start
        logger.info(
            f"Integration run for {coin} finished: "
            f"{report.count(Outcome.PASSED)} passed, {report.count(Outcome.FAILED)} failed, "
            f"{report.count(Outcome.INCONCLUSIVE)} inconclusive",
            extra={"success": report.success}
        )
        return report
