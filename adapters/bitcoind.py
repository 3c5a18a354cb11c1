"""Node adapter for bitcoind-compatible JSON-RPC servers."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from adapters.base import ChainAdapter
from adapters.bitcoin_parser import BitcoinParser, NETWORKS
from adapters.models import Block, BlockHeader, ScriptPubKey, Tx, Vin, Vout
from adapters.rpc_client import JsonRpcClient
from config.models import RPCConfig, RetryConfig
from core.exceptions import BlockNotFoundError, NodeResponseError, RPCError


logger = logging.getLogger(__name__)

# bitcoind error codes
RPC_INVALID_ADDRESS_OR_KEY = -5
RPC_INVALID_PARAMETER = -8


@contextmanager
def response_shape(method: str, data: Any) -> Iterator[None]:
    """Raise NodeResponseError if decoding ``data`` hits a missing or mistyped field."""
    try:
        yield
    except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
        raise NodeResponseError(
            method,
            response_body=repr(data),
            reason=f"{type(e).__name__}: {e}",
        ) from e


class BitcoindAdapter(ChainAdapter):
    """Adapter reading a bitcoind node through its verbose JSON-RPC calls.

    The per-address mempool index is held in memory and only changes when
    :meth:`resync_mempool` is called.
    """

    def __init__(self, client: JsonRpcClient, parser: Optional[BitcoinParser] = None):
        self.client = client
        self.parser = parser or BitcoinParser()
        self._mempool: dict[str, tuple[str, ...]] = {}
        self._address_index: dict[str, list[str]] = {}

    @classmethod
    def from_config(
        cls,
        rpc_config: RPCConfig,
        retry_config: Optional[RetryConfig] = None
    ) -> "BitcoindAdapter":
        """Build an adapter with a JSON-RPC client for the configured node."""
        client = JsonRpcClient(rpc_config, retry_config)
        return cls(client, BitcoinParser(NETWORKS[rpc_config.network]))

    def close(self) -> None:
        self.client.close()

    def get_chain_parser(self) -> BitcoinParser:
        return self.parser

    # ==================== Blocks ====================

    def get_block_hash(self, height: int) -> str:
        try:
            block_hash = self.client.call("getblockhash", height)
        except RPCError as e:
            if e.code == RPC_INVALID_PARAMETER:
                raise BlockNotFoundError(height=height) from e
            raise
        if not isinstance(block_hash, str):
            raise NodeResponseError("getblockhash", response_body=repr(block_hash), reason="hash is not a string")
        return block_hash

    def get_block(self, block_hash: str = "", height: int = 0) -> Block:
        if not block_hash:
            block_hash = self.get_block_hash(height)
        try:
            data = self.client.call("getblock", block_hash, 2)
        except RPCError as e:
            if e.code == RPC_INVALID_ADDRESS_OR_KEY:
                raise BlockNotFoundError(block_hash=block_hash) from e
            raise

        with response_shape("getblock", data):
            return Block(
                hash=data["hash"],
                height=int(data["height"]),
                txs=tuple(self._parse_tx(tx) for tx in data.get("tx", ())),
                time=int(data.get("time", 0)),
                prev=data.get("previousblockhash", ""),
                next=data.get("nextblockhash", ""),
                confirmations=int(data.get("confirmations", 0)),
            )

    def get_block_header(self, block_hash: str) -> BlockHeader:
        try:
            data = self.client.call("getblockheader", block_hash, True)
        except RPCError as e:
            if e.code == RPC_INVALID_ADDRESS_OR_KEY:
                raise BlockNotFoundError(block_hash=block_hash) from e
            raise

        with response_shape("getblockheader", data):
            return BlockHeader(
                hash=data["hash"],
                height=int(data["height"]),
                time=int(data.get("time", 0)),
                prev=data.get("previousblockhash", ""),
                next=data.get("nextblockhash", ""),
                confirmations=int(data.get("confirmations", 0)),
            )

    def get_best_block_hash(self) -> str:
        return self.client.call("getbestblockhash")

    def get_best_block_height(self) -> int:
        data = self.client.call("getblockcount")
        with response_shape("getblockcount", data):
            return int(data)

    # ==================== Transactions ====================

    def get_transaction(self, txid: str) -> Tx:
        data = self.client.call("getrawtransaction", txid, True)
        with response_shape("getrawtransaction", data):
            return self._parse_tx(data)

    def get_transaction_for_mempool(self, txid: str) -> Tx:
        return self.get_transaction(txid).without_volatile()

    def _parse_tx(self, data: dict[str, Any]) -> Tx:
        vin = tuple(
            Vin(
                coinbase=item.get("coinbase", ""),
                txid=item.get("txid", ""),
                vout=int(item.get("vout", 0)),
                script_sig_hex=(item.get("scriptSig") or {}).get("hex", ""),
                sequence=int(item.get("sequence", 0)),
            )
            for item in data.get("vin", ())
        )
        vout = tuple(
            Vout(
                value_sat=self.parser.amount_to_int(str(item["value"])),
                n=int(item["n"]),
                script_pubkey=ScriptPubKey(
                    hex=item["scriptPubKey"]["hex"],
                    addresses=self.parser.addresses_from_hex(item["scriptPubKey"]["hex"]),
                ),
            )
            for item in data.get("vout", ())
        )
        return Tx(
            txid=data["txid"],
            hex=data.get("hex", ""),
            version=int(data.get("version", 0)),
            locktime=int(data.get("locktime", 0)),
            vin=vin,
            vout=vout,
            confirmations=int(data.get("confirmations", 0)),
            time=int(data.get("time", 0)),
            blocktime=int(data.get("blocktime", 0)),
        )

    # ==================== Mempool ====================

    def get_mempool(self) -> list[str]:
        data = self.client.call("getrawmempool")
        with response_shape("getrawmempool", data):
            return list(data)

    def resync_mempool(self) -> int:
        txids = self.get_mempool()
        current = set(txids)
        outputs_cache: dict[str, list[tuple[str, ...]]] = {}
        added = 0

        for txid in txids:
            if txid in self._mempool:
                continue
            try:
                tx = self.get_transaction_for_mempool(txid)
            except RPCError as e:
                if e.code != RPC_INVALID_ADDRESS_OR_KEY:
                    raise
                # Left the mempool since the listing
                logger.debug(f"Mempool transaction {txid} disappeared", extra={"txid": txid})
                current.discard(txid)
                continue

            addresses = [a for vout in tx.vout for a in vout.script_pubkey.addresses]
            for vin in tx.vin:
                if vin.txid:
                    addresses.extend(self._spent_output_addresses(vin, outputs_cache))
            self._mempool[txid] = tuple(dict.fromkeys(addresses))
            added += 1

        for txid in list(self._mempool):
            if txid not in current:
                del self._mempool[txid]

        index: dict[str, list[str]] = {}
        for txid, addresses in self._mempool.items():
            for address in addresses:
                index.setdefault(address, []).append(txid)
        self._address_index = index

        logger.info(
            f"Mempool resynchronized: {len(txids)} entries, {added} new",
            extra={"mempool_size": len(txids), "added": added}
        )
        return len(txids)

    def _spent_output_addresses(
        self,
        vin: Vin,
        cache: dict[str, list[tuple[str, ...]]]
    ) -> tuple[str, ...]:
        """Addresses of the output spent by ``vin``; empty if it cannot be resolved."""
        outputs = cache.get(vin.txid)
        if outputs is None:
            try:
                prev = self.client.call("getrawtransaction", vin.txid, True)
            except RPCError as e:
                if e.code != RPC_INVALID_ADDRESS_OR_KEY:
                    raise
                # Node without txindex
                logger.debug(f"Cannot resolve spent output {vin.txid}:{vin.vout}: {e.error_message}")
                return ()
            with response_shape("getrawtransaction", prev):
                outputs = [
                    self.parser.addresses_from_hex(item["scriptPubKey"]["hex"])
                    for item in prev.get("vout", ())
                ]
            cache[vin.txid] = outputs
        if vin.vout >= len(outputs):
            return ()
        return outputs[vin.vout]

    def get_mempool_transactions(self, address: str) -> list[str]:
        return list(self._address_index.get(address, ()))

    # ==================== Fees ====================

    def estimate_smart_fee(self, blocks: int, conservative: bool) -> int:
        mode = "CONSERVATIVE" if conservative else "ECONOMICAL"
        result = self.client.call("estimatesmartfee", blocks, mode)
        with response_shape("estimatesmartfee", result):
            feerate = (result or {}).get("feerate")
        if feerate is None:
            # No estimate available, reported the way estimatefee does
            return self.parser.amount_to_int("-1")
        return self.parser.amount_to_int(str(feerate))

    def estimate_fee(self, blocks: int) -> int:
        return self.parser.amount_to_int(str(self.client.call("estimatefee", blocks)))
