"""Node adapters exercised by the conformance harness."""

from adapters.base import ChainAdapter, ChainParser
from adapters.models import Block, BlockHeader, ScriptPubKey, Tx, Vin, Vout
from adapters.bitcoin_parser import BitcoinParser, NetworkParams, MAINNET, TESTNET, REGTEST
from adapters.rpc_client import JsonRpcClient
from adapters.bitcoind import BitcoindAdapter
from adapters.scripted import ScriptedAdapter

__all__ = [
    "ChainAdapter",
    "ChainParser",
    "Block",
    "BlockHeader",
    "ScriptPubKey",
    "Tx",
    "Vin",
    "Vout",
    "BitcoinParser",
    "NetworkParams",
    "MAINNET",
    "TESTNET",
    "REGTEST",
    "JsonRpcClient",
    "BitcoindAdapter",
    "ScriptedAdapter",
]
