"""Conformance checks comparing adapter answers with fixtures or invariants."""

import logging
from dataclasses import replace

from adapters.base import ChainAdapter
from adapters.models import BlockHeader
from core.exceptions import AdapterError, BlockNotFoundError
from harness.fixtures import FixtureDataset
from harness.results import CheckContext


logger = logging.getLogger(__name__)

FEE_TARGETS = (1, 2, 3, 5, 10)

# Fee estimators signal "no estimate" with this amount
UNKNOWN_FEE = "-1"


# ==================== Blocks ====================

def check_block_hash(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    try:
        block_hash = adapter.get_block_hash(data.block_height)
    except AdapterError as e:
        ctx.error(e.message)
        return

    if block_hash != data.block_hash:
        ctx.error(f"GetBlockHash() got {block_hash!r}, want {data.block_hash!r}")


def check_block(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    try:
        block = adapter.get_block(data.block_hash)
    except AdapterError as e:
        ctx.error(e.message)
        return

    got = block.txids
    if len(got) != len(data.block_txs):
        ctx.error(
            f"GetBlock() number of transactions: got {len(got)}, want {len(data.block_txs)}"
        )

    for i, (got_txid, want_txid) in enumerate(zip(got, data.block_txs)):
        if got_txid != want_txid:
            ctx.error(f"GetBlock() transaction {i}: got {got_txid}, want {want_txid}")


def check_block_header(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    want = BlockHeader(hash=data.block_hash, height=data.block_height, time=data.block_time)

    try:
        got = adapter.get_block_header(data.block_hash)
    except AdapterError as e:
        ctx.fatal(e.message)

    if got.confirmations <= 0:
        ctx.fatal("GetBlockHeader() got struct with invalid Confirmations field")

    # Neighbours and depth change as the chain grows
    got = replace(got, confirmations=0, prev="", next="")
    if got != want:
        ctx.error(f"GetBlockHeader() got={got}, want={want}")


# ==================== Transactions ====================

def check_transaction(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    for txid, want in data.tx_details.items():
        try:
            got = adapter.get_transaction(txid)
        except AdapterError as e:
            ctx.error(e.message)
            return

        if got.confirmations <= 0:
            ctx.error(f"GetTransaction({txid}) got struct with invalid Confirmations field")
            continue

        got, want = got.without_volatile(), want.without_volatile()
        if got != want:
            ctx.error(f"GetTransaction() got {got}, want {want}")


def check_transaction_for_mempool(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    for txid, want in data.tx_details.items():
        try:
            got = adapter.get_transaction_for_mempool(txid)
        except AdapterError as e:
            ctx.fatal(e.message)

        got, want = got.without_volatile(), want.without_volatile()
        if got != want:
            ctx.error(f"GetTransactionForMempool() got {got}, want {want}")


# ==================== Fees ====================

def _check_fee_sign(ctx: CheckContext, adapter: ChainAdapter, operation: str, fee: int) -> None:
    if fee < 0:
        rendered = adapter.get_chain_parser().amount_to_decimal_string(fee)
        if rendered != UNKNOWN_FEE:
            ctx.error(f"{operation}() returned unexpected fee rate: {rendered}")


def check_estimate_smart_fee(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    for blocks in FEE_TARGETS:
        try:
            fee = adapter.estimate_smart_fee(blocks, True)
        except AdapterError as e:
            ctx.error(e.message)
            continue
        _check_fee_sign(ctx, adapter, "EstimateSmartFee", fee)


def check_estimate_fee(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    for blocks in FEE_TARGETS:
        try:
            fee = adapter.estimate_fee(blocks)
        except AdapterError as e:
            ctx.error(e.message)
            continue
        _check_fee_sign(ctx, adapter, "EstimateFee", fee)


# ==================== Best block ====================

def _has_no_successor(ctx: CheckContext, adapter: ChainAdapter, height: int) -> bool:
    """True if no block exists above ``height``; other adapter errors are recorded."""
    try:
        adapter.get_block("", height + 1)
    except BlockNotFoundError:
        return True
    except AdapterError as e:
        ctx.error(e.message)
        return True
    logger.debug(f"Block {height + 1} exists above reported best height", extra={"check": ctx.name})
    return False


def check_best_block_hash(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    for _ in range(ctx.retry.best_block_attempts):
        try:
            block_hash = adapter.get_best_block_hash()
            height = adapter.get_best_block_height()
            hash_at_height = adapter.get_block_hash(height)
        except AdapterError as e:
            ctx.fatal(e.message)

        if block_hash != hash_at_height:
            # A block arrived between the two calls
            ctx.sleep(ctx.retry.best_block_backoff_ms / 1000)
            continue

        if _has_no_successor(ctx, adapter, height):
            return

    ctx.error("GetBestBlockHash() didn't get the best hash")


def check_best_block_height(ctx: CheckContext, adapter: ChainAdapter, data: FixtureDataset) -> None:
    for _ in range(ctx.retry.best_block_attempts):
        try:
            height = adapter.get_best_block_height()
        except AdapterError as e:
            ctx.fatal(e.message)

        if _has_no_successor(ctx, adapter, height):
            return

    ctx.error("GetBestBlockHeight() didn't get the best height")
