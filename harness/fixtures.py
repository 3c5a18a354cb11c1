"""Loading of per-coin fixture documents.

A fixture describes one reference block and some of its transactions as
the adapter is expected to report them. Output amounts are stored in the
coin's display format and converted with the adapter's parser. Decoded
output addresses cannot be written reliably by hand for every address
encoding, so they are derived by packing and unpacking each transaction
with the adapter's own parser.
"""

import json
import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from adapters.base import ChainParser
from adapters.models import Tx
from core.exceptions import (
    AdapterError,
    AddressDerivationError,
    AmountDecodeError,
    FixtureMalformedError,
    FixtureNotFoundError,
)


logger = logging.getLogger(__name__)

DEFAULT_FIXTURES_DIR = "testdata"


# ==================== Document schema ====================

class FixtureScriptPubKey(BaseModel):
    model_config = ConfigDict(extra="allow")

    hex: str = ""
    addresses: Optional[list[str]] = None


class FixtureScriptSig(BaseModel):
    model_config = ConfigDict(extra="allow")

    hex: str = ""


class FixtureVin(BaseModel):
    model_config = ConfigDict(extra="allow")

    coinbase: str = ""
    txid: str = ""
    vout: int = Field(default=0, ge=0)
    scriptSig: Optional[FixtureScriptSig] = None
    sequence: int = Field(default=0, ge=0)
    addresses: Optional[list[str]] = None


class FixtureVout(BaseModel):
    model_config = ConfigDict(extra="allow")

    value: Union[Decimal, int, str] = Field(..., description="Display-format amount")
    valueSat: int = 0
    n: int = Field(default=0, ge=0)
    scriptPubKey: FixtureScriptPubKey = Field(default_factory=FixtureScriptPubKey)


class FixtureTx(BaseModel):
    model_config = ConfigDict(extra="allow")

    txid: str
    hex: str = ""
    version: int = 0
    locktime: int = Field(default=0, ge=0)
    vin: list[FixtureVin] = Field(default_factory=list)
    vout: list[FixtureVout] = Field(default_factory=list)
    confirmations: int = 0
    time: int = 0
    blocktime: int = 0


class FixtureDocument(BaseModel):
    """Schema of a ``<coin>.json`` fixture document."""

    block_height: int = Field(..., alias="blockHeight", ge=0)
    block_hash: str = Field(..., alias="blockHash", min_length=1)
    block_time: int = Field(default=0, alias="blockTime")
    block_txs: list[str] = Field(default_factory=list, alias="blockTxs")
    tx_details: dict[str, FixtureTx] = Field(default_factory=dict, alias="txDetails")

    @field_validator("tx_details")
    @classmethod
    def validate_keys(cls, v: dict[str, FixtureTx]) -> dict[str, FixtureTx]:
        """Each transaction must be keyed by its own ID."""
        for key, tx in v.items():
            if key != tx.txid:
                raise ValueError(f"txDetails key {key!r} does not match txid {tx.txid!r}")
        return v


# ==================== Dataset ====================

@dataclass(frozen=True)
class FixtureDataset:
    """Normalized, read-only expectations for one coin."""

    coin: str
    block_height: int
    block_hash: str
    block_time: int
    block_txs: tuple[str, ...]
    tx_details: Mapping[str, Tx]

    def to_dict(self) -> dict[str, Any]:
        """Deterministic JSON-serializable form."""
        return {
            "coin": self.coin,
            "blockHeight": self.block_height,
            "blockHash": self.block_hash,
            "blockTime": self.block_time,
            "blockTxs": list(self.block_txs),
            "txDetails": {txid: tx.to_dict() for txid, tx in self.tx_details.items()},
        }


def fixture_path(coin: str, fixtures_dir: Union[str, Path] = DEFAULT_FIXTURES_DIR) -> Path:
    return Path(fixtures_dir) / f"{coin}.json"


def load_test_data(
    coin: str,
    parser: ChainParser,
    fixtures_dir: Union[str, Path] = DEFAULT_FIXTURES_DIR,
) -> FixtureDataset:
    """Load and normalize the fixture of ``coin``.

    Args:
        coin: Coin name, selecting ``<fixtures_dir>/<coin>.json``.
        parser: Parser of the adapter under test.
        fixtures_dir: Directory holding the fixture documents.

    Returns:
        The normalized dataset.

    Raises:
        FixtureNotFoundError: If the document cannot be read.
        FixtureMalformedError: If the document is not valid fixture JSON.
        AmountDecodeError: If an output amount cannot be converted.
        AddressDerivationError: If output addresses cannot be derived.
    """
    path = fixture_path(coin, fixtures_dir)
    document, raw_txs = _read_document(coin, path)

    tx_details: dict[str, Tx] = {}
    for txid, raw in raw_txs.items():
        try:
            tx = Tx.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise FixtureMalformedError(
                coin, str(path), f"transaction {txid}: {type(e).__name__}: {e}"
            ) from e
        tx = convert_amounts(tx, parser)
        tx = set_tx_addresses(tx, parser)
        tx_details[txid] = tx

    logger.info(
        f"Loaded fixture for {coin}: block {document.block_height}, "
        f"{len(document.block_txs)} block transactions, {len(tx_details)} detailed",
        extra={"coin": coin, "path": str(path)}
    )

    return FixtureDataset(
        coin=coin,
        block_height=document.block_height,
        block_hash=document.block_hash,
        block_time=document.block_time,
        block_txs=tuple(document.block_txs),
        tx_details=MappingProxyType(tx_details),
    )


def _read_document(coin: str, path: Path) -> tuple[FixtureDocument, dict[str, Any]]:
    """Read, decode and validate a fixture document.

    Floats are decoded as Decimal so amounts keep their exact text.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FixtureNotFoundError(coin, str(path), original_error=e)

    try:
        raw = json.loads(text, parse_float=Decimal)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise FixtureMalformedError(coin, str(path), f"invalid JSON: {e}")

    try:
        document = FixtureDocument.model_validate(raw)
    except ValidationError as e:
        raise FixtureMalformedError(coin, str(path), str(e))

    return document, raw.get("txDetails") or {}


def convert_amounts(tx: Tx, parser: ChainParser) -> Tx:
    """Convert each output's display amount to base units and clear it."""
    vout = []
    for i, output in enumerate(tx.vout):
        try:
            value_sat = parser.amount_to_int(output.json_value)
        except (AdapterError, ValueError) as e:
            raise AmountDecodeError(tx.txid, i, output.json_value, str(e)) from e
        vout.append(replace(output, value_sat=value_sat, json_value=""))
    return replace(tx, vout=tuple(vout))


def set_tx_addresses(tx: Tx, parser: ChainParser) -> Tx:
    """Copy output addresses decoded by a pack/unpack round trip onto ``tx``.

    Only the addresses are taken from the round trip; all other fields of
    the fixture stay authoritative.
    """
    try:
        packed = parser.pack_tx(tx, 0, 0)
        unpacked, _ = parser.unpack_tx(packed)
    except (AdapterError, ValueError, TypeError) as e:
        raise AddressDerivationError(tx.txid, str(e)) from e

    if len(unpacked.vout) != len(tx.vout):
        raise AddressDerivationError(
            tx.txid,
            f"round trip returned {len(unpacked.vout)} outputs, expected {len(tx.vout)}"
        )

    vout = tuple(
        output.with_addresses(decoded.script_pubkey.addresses)
        for output, decoded in zip(tx.vout, unpacked.vout)
    )
    return replace(tx, vout=vout)
