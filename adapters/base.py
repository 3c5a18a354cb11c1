"""Contract of the node adapter exercised by the conformance harness.

The harness never talks to a node directly; it only calls the operations
declared here. Every operation signals failure by raising an
:class:`~core.exceptions.AdapterError` subclass.
"""

from abc import ABC, abstractmethod

from adapters.models import Block, BlockHeader, Tx


class ChainParser(ABC):
    """Coin specific encoding rules used by an adapter."""

    @abstractmethod
    def amount_to_int(self, value: str) -> int:
        """Convert a display-format amount (e.g. ``"0.001"``) to base units.

        Raises:
            AmountError: If the value is not a valid amount.
        """

    @abstractmethod
    def amount_to_decimal_string(self, value: int) -> str:
        """Convert an amount in base units to its display-format string."""

    @abstractmethod
    def pack_tx(self, tx: Tx, height: int, blocktime: int) -> bytes:
        """Serialize a transaction to the adapter's storage format.

        Raises:
            PackError: If the transaction cannot be serialized.
        """

    @abstractmethod
    def unpack_tx(self, data: bytes) -> tuple[Tx, int]:
        """Deserialize a packed transaction, decoding output addresses.

        Returns:
            Tuple of the transaction and the block height it was packed with.

        Raises:
            PackError: If the data cannot be deserialized.
        """


class ChainAdapter(ABC):
    """Abstract node adapter consumed by the harness."""

    @abstractmethod
    def get_chain_parser(self) -> ChainParser:
        """Return the parser implementing this coin's encodings."""

    @abstractmethod
    def get_block_hash(self, height: int) -> str:
        """Return the hash of the block at ``height``."""

    @abstractmethod
    def get_block(self, block_hash: str = "", height: int = 0) -> Block:
        """Return a block by hash, or by height when ``block_hash`` is empty.

        Raises:
            BlockNotFoundError: If no such block exists (e.g. beyond the tip).
        """

    @abstractmethod
    def get_transaction(self, txid: str) -> Tx:
        """Return a transaction including its confirmation data."""

    @abstractmethod
    def get_transaction_for_mempool(self, txid: str) -> Tx:
        """Return a transaction as needed by the mempool index.

        Confirmation count, block time and relay time are not guaranteed.
        """

    @abstractmethod
    def get_mempool(self) -> list[str]:
        """Return the IDs of all transactions currently in the mempool."""

    @abstractmethod
    def resync_mempool(self) -> int:
        """Refresh the per-address mempool index from the node.

        Returns:
            Number of mempool entries processed.
        """

    @abstractmethod
    def get_mempool_transactions(self, address: str) -> list[str]:
        """Return IDs of indexed mempool transactions touching ``address``."""

    @abstractmethod
    def estimate_smart_fee(self, blocks: int, conservative: bool) -> int:
        """Estimate the fee rate (base units per kB) for ``blocks`` confirmation target.

        A negative result means the node cannot estimate.
        """

    @abstractmethod
    def estimate_fee(self, blocks: int) -> int:
        """Plain fee estimation, same conventions as :meth:`estimate_smart_fee`."""

    @abstractmethod
    def get_best_block_hash(self) -> str:
        """Return the hash of the chain tip."""

    @abstractmethod
    def get_best_block_height(self) -> int:
        """Return the height of the chain tip."""

    @abstractmethod
    def get_block_header(self, block_hash: str) -> BlockHeader:
        """Return the header of the block identified by ``block_hash``."""

    def close(self) -> None:
        """Release resources held by the adapter."""
