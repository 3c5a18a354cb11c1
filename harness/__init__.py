"""Conformance harness validating node adapters against fixtures and invariants."""

from harness.fixtures import FixtureDataset, load_test_data
from harness.mempool import check_mempool_sync, intersect, is_searchable_address
from harness.results import CheckContext, CheckResult, IntegrationReport, Outcome
from harness.runner import CHECKS, parse_test_names, run_check, run_integration

__all__ = [
    "FixtureDataset",
    "load_test_data",
    "check_mempool_sync",
    "intersect",
    "is_searchable_address",
    "CheckContext",
    "CheckResult",
    "IntegrationReport",
    "Outcome",
    "CHECKS",
    "parse_test_names",
    "run_check",
    "run_integration",
]
