"""Mempool reconciliation check.

Verifies that an adapter's per-address mempool index agrees with its bulk
mempool listing. Both reflect a mempool the network mutates while the check
runs, so a transaction is only validated when it appears in two listings
taken around the index resynchronization; such a transaction was present
for the whole window and must therefore be in the index.
"""

import logging
from typing import Iterable, Optional

from adapters.base import ChainAdapter
from core.exceptions import AdapterError
from harness.fixtures import FixtureDataset
from harness.results import CheckContext


logger = logging.getLogger(__name__)


def is_searchable_address(address: str) -> bool:
    """Whether an address can be looked up in the mempool index.

    Script placeholders such as ``OP_RETURN ...`` are not addresses.
    """
    return len(address) > 3 and not address.startswith("OP_")


def intersect(a: Iterable[str], b: Iterable[str]) -> list[str]:
    """Transaction IDs present in both snapshots, without duplicates.

    The order of ``a`` is kept.
    """
    in_b = dict.fromkeys(b)
    return list(dict.fromkeys(txid for txid in a if txid in in_b))


def mempool_addresses(adapter: ChainAdapter, txids: Iterable[str]) -> dict[str, tuple[str, ...]]:
    """Map each transaction to the searchable addresses of its inputs and outputs.

    Transactions without a searchable address are left out.

    Raises:
        AdapterError: If a transaction cannot be fetched.
    """
    index: dict[str, tuple[str, ...]] = {}
    for txid in txids:
        tx = adapter.get_transaction_for_mempool(txid)
        addresses = tuple(dict.fromkeys(a for a in tx.addresses() if is_searchable_address(a)))
        if addresses:
            index[txid] = addresses
    return index


def check_mempool_sync(
    ctx: CheckContext,
    adapter: ChainAdapter,
    data: Optional[FixtureDataset] = None,
) -> None:
    """Check that every stable mempool transaction is indexed under its addresses.

    Each attempt observes the mempool, resynchronizes the adapter's index
    and observes the mempool again. Attempts without stable transactions
    are retried up to ``ctx.retry.mempool_attempts`` times; if none yields
    any, the check is inconclusive. A transaction missing from the index
    fails the check at once.
    """
    attempts = ctx.retry.mempool_attempts
    for attempt in range(1, attempts + 1):
        reason = _reconcile_once(ctx, adapter)
        if reason is None:
            return
        logger.info(
            f"Mempool attempt {attempt}/{attempts} skipped: {reason}",
            extra={"check": ctx.name, "attempt": attempt}
        )

    ctx.skip("all attempts to sync mempool failed due to network state changes")


def _reconcile_once(ctx: CheckContext, adapter: ChainAdapter) -> Optional[str]:
    """Run one attempt.

    Returns:
        None when the stable transactions were verified, otherwise the
        reason the attempt had nothing to verify.
    """
    try:
        first = adapter.get_mempool()
        if not first:
            return "mempool is empty"

        processed = adapter.resync_mempool()
        if processed == 0:
            return "resync processed no transactions"

        stable = intersect(first, adapter.get_mempool())
        if not stable:
            return "no transaction stayed in the mempool"

        txid_to_addresses = mempool_addresses(adapter, stable)
    except AdapterError as e:
        ctx.fatal(f"ResyncMempool() - {e.message}")

    if not txid_to_addresses:
        ctx.skip("no addresses in mempool")

    logger.debug(
        f"Verifying {len(txid_to_addresses)} of {len(stable)} stable mempool transactions",
        extra={"check": ctx.name}
    )
    for txid, addresses in txid_to_addresses.items():
        for address in addresses:
            try:
                got = adapter.get_mempool_transactions(address)
            except AdapterError as e:
                ctx.fatal(f"GetMempoolTransactions({address}) - {e.message}")
            if txid not in got:
                ctx.fatal(
                    f"ResyncMempool() - for address {address}, "
                    f"transaction {txid} wasn't found in mempool"
                )
    return None
