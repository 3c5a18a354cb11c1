"""
Live conformance run against a configured node.

Skipped unless NODE_CONFORMANCE_CONFIG points at a configuration file whose
fixtures directory holds a fixture for each configured coin.
"""

import os

import pytest

from adapters.bitcoind import BitcoindAdapter
from config import ConfigurationManager
from harness.results import Outcome
from harness.runner import run_integration


CONFIG_PATH = os.getenv("NODE_CONFORMANCE_CONFIG")

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not CONFIG_PATH, reason="NODE_CONFORMANCE_CONFIG not set"),
]


@pytest.fixture(scope="module")
def harness_config():
    manager = ConfigurationManager(config_path=CONFIG_PATH)
    config = manager.load_config()
    manager.validate_config(config)
    return config


def test_configured_coins_conform(harness_config):
    """Every configured check passes or is inconclusive on every coin."""
    for coin, coin_config in harness_config.coins.items():
        adapter = BitcoindAdapter.from_config(coin_config.rpc, harness_config.retry)
        try:
            report = run_integration(
                coin,
                adapter,
                coin_config.tests,
                fixtures_dir=harness_config.fixtures_dir,
                retry=harness_config.retry,
            )
        finally:
            adapter.close()

        failed = [r for r in report.results if r.outcome == Outcome.FAILED]
        assert not failed, f"{coin}: " + "; ".join(
            f"{r.name}: {' | '.join(r.messages)}" for r in failed
        )
