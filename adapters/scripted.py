"""Scripted in-memory adapter returning canned responses.

Used to exercise the harness without a node. Responses that change between
calls (mempool listings, best block) are given as sequences; each call
consumes the next item and the last item is repeated once exhausted.
"""

from typing import Any, Optional, Sequence

from adapters.base import ChainAdapter, ChainParser
from adapters.bitcoin_parser import BitcoinParser
from adapters.models import Block, BlockHeader, Tx
from core.exceptions import AdapterError, BlockNotFoundError


class ScriptedAdapter(ChainAdapter):
    """Fake adapter driven by canned data.

    Attributes:
        calls: Every operation invoked, as ``(name, args)`` tuples.
        errors: Operation name to exception raised on every call.
    """

    def __init__(
        self,
        parser: Optional[ChainParser] = None,
        *,
        blocks: Sequence[Block] = (),
        transactions: Optional[dict[str, Tx]] = None,
        mempool_transactions: Optional[dict[str, Tx]] = None,
        mempool_snapshots: Sequence[Sequence[str]] = ((),),
        resync_counts: Optional[Sequence[int]] = None,
        address_index: Optional[dict[str, Sequence[str]]] = None,
        smart_fees: Optional[dict[int, int]] = None,
        fees: Optional[dict[int, int]] = None,
        best_hashes: Sequence[str] = (),
        best_heights: Sequence[int] = (),
        headers: Optional[dict[str, BlockHeader]] = None,
        errors: Optional[dict[str, Exception]] = None,
    ):
        self.parser = parser or BitcoinParser()
        self.blocks = list(blocks)
        self.transactions = dict(transactions or {})
        self.mempool_transactions = dict(mempool_transactions or {})
        self.mempool_snapshots = [list(s) for s in mempool_snapshots] or [[]]
        self.resync_counts = list(resync_counts) if resync_counts is not None else None
        self.address_index = {k: list(v) for k, v in (address_index or {}).items()}
        self.smart_fees = dict(smart_fees or {})
        self.fees = dict(fees or {})
        self.best_hashes = list(best_hashes)
        self.best_heights = list(best_heights)
        self.headers = dict(headers or {})
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._positions: dict[str, int] = {}
        self._last_mempool: list[str] = []

    def call_count(self, name: str) -> int:
        """Number of times the operation ``name`` was invoked."""
        return sum(1 for called, _ in self.calls if called == name)

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        error = self.errors.get(name)
        if error is not None:
            raise error

    def _next(self, name: str, items: Sequence[Any]) -> Any:
        if not items:
            raise AdapterError(f"{name}: no scripted response")
        position = self._positions.get(name, 0)
        self._positions[name] = position + 1
        return items[min(position, len(items) - 1)]

    # ==================== ChainAdapter ====================

    def get_chain_parser(self) -> ChainParser:
        return self.parser

    def get_block_hash(self, height: int) -> str:
        self._record("get_block_hash", height)
        for block in self.blocks:
            if block.height == height:
                return block.hash
        raise BlockNotFoundError(height=height)

    def get_block(self, block_hash: str = "", height: int = 0) -> Block:
        self._record("get_block", block_hash, height)
        for block in self.blocks:
            if (block_hash and block.hash == block_hash) or (not block_hash and block.height == height):
                return block
        raise BlockNotFoundError(block_hash=block_hash, height=None if block_hash else height)

    def get_transaction(self, txid: str) -> Tx:
        self._record("get_transaction", txid)
        try:
            return self.transactions[txid]
        except KeyError:
            raise AdapterError(f"Transaction {txid} not found", {"txid": txid})

    def get_transaction_for_mempool(self, txid: str) -> Tx:
        self._record("get_transaction_for_mempool", txid)
        tx = self.mempool_transactions.get(txid) or self.transactions.get(txid)
        if tx is None:
            raise AdapterError(f"Mempool transaction {txid} not found", {"txid": txid})
        return tx

    def get_mempool(self) -> list[str]:
        self._record("get_mempool")
        self._last_mempool = list(self._next("get_mempool", self.mempool_snapshots))
        return list(self._last_mempool)

    def resync_mempool(self) -> int:
        self._record("resync_mempool")
        if self.resync_counts is None:
            return len(self._last_mempool)
        return self._next("resync_mempool", self.resync_counts)

    def get_mempool_transactions(self, address: str) -> list[str]:
        self._record("get_mempool_transactions", address)
        return list(self.address_index.get(address, ()))

    def estimate_smart_fee(self, blocks: int, conservative: bool) -> int:
        self._record("estimate_smart_fee", blocks, conservative)
        return self.smart_fees.get(blocks, 0)

    def estimate_fee(self, blocks: int) -> int:
        self._record("estimate_fee", blocks)
        return self.fees.get(blocks, 0)

    def get_best_block_hash(self) -> str:
        self._record("get_best_block_hash")
        return self._next("get_best_block_hash", self.best_hashes)

    def get_best_block_height(self) -> int:
        self._record("get_best_block_height")
        return self._next("get_best_block_height", self.best_heights)

    def get_block_header(self, block_hash: str) -> BlockHeader:
        self._record("get_block_header", block_hash)
        try:
            return self.headers[block_hash]
        except KeyError:
            raise BlockNotFoundError(block_hash=block_hash)
