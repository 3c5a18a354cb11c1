"""Shared fixtures and builders for the harness tests."""

import json
from types import MappingProxyType

import pytest

from adapters.models import Block, ScriptPubKey, Tx, Vin, Vout
from harness.fixtures import FixtureDataset


# Genesis coinbase key hash
P2PKH_SCRIPT = "76a91462e907b15cbf27d5425399ebf6f0fb50ebb88f1888ac"
P2PKH_ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"

# BIP-173 test vectors
P2WPKH_SCRIPT = "0014751e76e8199196d454941c45d1b3a323f1433bd6"
P2WPKH_ADDRESS = "bc1qw508d6qejxtdg4y5r3zarvary0c5xw7kv8f3t4"
P2WSH_SCRIPT = "00201863143c14c5166804bd19203356da136c985678cd4d27a1b8c6329604903262"
P2WSH_ADDRESS = "bc1qrp33g0q5c5txsp9arysrx4k6zdkfs4nce4xj0gdcccefvpysxf3qccfmv3"

OP_RETURN_SCRIPT = "6a0568656c6c6f"
OP_RETURN_PLACEHOLDER = "OP_RETURN 68656c6c6f"


def fixture_document() -> dict:
    """A small fixture: block 100 'abc' holding transactions t1 and t2."""
    return {
        "blockHeight": 100,
        "blockHash": "abc",
        "blockTime": 1500000000,
        "blockTxs": ["t1", "t2"],
        "txDetails": {
            "t1": {
                "txid": "t1",
                "hex": "0100",
                "version": 1,
                "locktime": 0,
                "vin": [{"coinbase": "03a08601", "sequence": 4294967295}],
                "vout": [
                    {
                        "value": 12.5,
                        "n": 0,
                        "scriptPubKey": {"hex": P2PKH_SCRIPT, "addresses": ["placeholder"]},
                    },
                    {"value": 0, "n": 1, "scriptPubKey": {"hex": OP_RETURN_SCRIPT}},
                ],
                "confirmations": 10,
                "time": 1500000000,
                "blocktime": 1500000000,
            },
            "t2": {
                "txid": "t2",
                "hex": "0200",
                "version": 2,
                "locktime": 99,
                "vin": [
                    {
                        "txid": "t0",
                        "vout": 1,
                        "scriptSig": {"hex": "00"},
                        "sequence": 4294967294,
                        "addresses": [P2PKH_ADDRESS],
                    }
                ],
                "vout": [
                    {"value": "0.00100000", "n": 0, "scriptPubKey": {"hex": P2WPKH_SCRIPT}},
                ],
            },
        },
    }


def write_fixture(directory, coin: str, document) -> str:
    """Write a fixture document and return the directory as string."""
    path = directory / f"{coin}.json"
    if isinstance(document, str):
        path.write_text(document)
    else:
        path.write_text(json.dumps(document))
    return str(directory)


def expected_t1() -> Tx:
    return Tx(
        txid="t1",
        hex="0100",
        version=1,
        locktime=0,
        vin=(Vin(coinbase="03a08601", sequence=4294967295),),
        vout=(
            Vout(value_sat=1250000000, n=0,
                 script_pubkey=ScriptPubKey(P2PKH_SCRIPT, (P2PKH_ADDRESS,))),
            Vout(value_sat=0, n=1,
                 script_pubkey=ScriptPubKey(OP_RETURN_SCRIPT, (OP_RETURN_PLACEHOLDER,))),
        ),
        confirmations=10,
        time=1500000000,
        blocktime=1500000000,
    )


def expected_t2() -> Tx:
    return Tx(
        txid="t2",
        hex="0200",
        version=2,
        locktime=99,
        vin=(Vin(txid="t0", vout=1, script_sig_hex="00", sequence=4294967294,
                 addresses=(P2PKH_ADDRESS,)),),
        vout=(
            Vout(value_sat=100000, n=0,
                 script_pubkey=ScriptPubKey(P2WPKH_SCRIPT, (P2WPKH_ADDRESS,))),
        ),
    )


def make_dataset(
    block_height: int = 100,
    block_hash: str = "abc",
    block_time: int = 1500000000,
    block_txs=("t1", "t2"),
    tx_details=None,
) -> FixtureDataset:
    if tx_details is None:
        tx_details = {"t1": expected_t1(), "t2": expected_t2()}
    return FixtureDataset(
        coin="bitcoin",
        block_height=block_height,
        block_hash=block_hash,
        block_time=block_time,
        block_txs=tuple(block_txs),
        tx_details=MappingProxyType(dict(tx_details)),
    )


def make_block(block_hash: str, height: int, txids=()) -> Block:
    return Block(hash=block_hash, height=height, txs=tuple(Tx(txid=t) for t in txids))


def mempool_tx(txid: str, *addresses: str) -> Tx:
    """A mempool transaction paying to ``addresses``."""
    return Tx(
        txid=txid,
        vout=tuple(
            Vout(value_sat=1000, n=i, script_pubkey=ScriptPubKey(addresses=(a,)))
            for i, a in enumerate(addresses)
        ),
    )


@pytest.fixture
def fixtures_dir(tmp_path):
    """Directory holding the default fixture as bitcoin.json."""
    return write_fixture(tmp_path, "bitcoin", fixture_document())


@pytest.fixture
def dataset():
    """The normalized form of the default fixture."""
    return make_dataset()
