"""Data models exchanged between the harness and node adapters.

All models are frozen dataclasses holding tuples, so a loaded fixture
cannot be mutated by a check and two records compare by value.
"""

from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class ScriptPubKey:
    """Locking script of a transaction output."""

    hex: str = ""
    addresses: tuple[str, ...] = ()


@dataclass(frozen=True)
class Vin:
    """Transaction input."""

    coinbase: str = ""
    txid: str = ""
    vout: int = 0
    script_sig_hex: str = ""
    sequence: int = 0
    addresses: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Vin":
        return cls(
            coinbase=data.get("coinbase", ""),
            txid=data.get("txid", ""),
            vout=int(data.get("vout", 0)),
            script_sig_hex=(data.get("scriptSig") or {}).get("hex", ""),
            sequence=int(data.get("sequence", 0)),
            addresses=tuple(data.get("addresses") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "coinbase": self.coinbase,
            "txid": self.txid,
            "vout": self.vout,
            "scriptSig": {"hex": self.script_sig_hex},
            "sequence": self.sequence,
            "addresses": list(self.addresses),
        }


@dataclass(frozen=True)
class Vout:
    """Transaction output.

    ``value_sat`` is the canonical integer amount. ``json_value`` carries the
    display-format amount read from a fixture until it has been converted.
    """

    value_sat: int = 0
    n: int = 0
    script_pubkey: ScriptPubKey = field(default_factory=ScriptPubKey)
    json_value: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Vout":
        spk = data.get("scriptPubKey") or {}
        value = data.get("value", "")
        return cls(
            value_sat=int(data.get("valueSat", 0)),
            n=int(data.get("n", 0)),
            script_pubkey=ScriptPubKey(
                hex=spk.get("hex", ""),
                addresses=tuple(spk.get("addresses") or ()),
            ),
            json_value="" if value is None else str(value),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "valueSat": str(self.value_sat),
            "n": self.n,
            "scriptPubKey": {
                "hex": self.script_pubkey.hex,
                "addresses": list(self.script_pubkey.addresses),
            },
        }

    def with_addresses(self, addresses: tuple[str, ...]) -> "Vout":
        """Return a copy whose script carries the given decoded addresses."""
        return replace(
            self,
            script_pubkey=replace(self.script_pubkey, addresses=tuple(addresses)),
        )


@dataclass(frozen=True)
class Tx:
    """A transaction as reported by an adapter or stored in a fixture."""

    txid: str
    hex: str = ""
    version: int = 0
    locktime: int = 0
    vin: tuple[Vin, ...] = ()
    vout: tuple[Vout, ...] = ()
    # Volatile: depend on the node's view of the chain, not on the transaction
    confirmations: int = 0
    time: int = 0
    blocktime: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Tx":
        return cls(
            txid=data["txid"],
            hex=data.get("hex", ""),
            version=int(data.get("version", 0)),
            locktime=int(data.get("locktime", 0)),
            vin=tuple(Vin.from_dict(v) for v in data.get("vin") or ()),
            vout=tuple(Vout.from_dict(v) for v in data.get("vout") or ()),
            confirmations=int(data.get("confirmations", 0)),
            time=int(data.get("time", 0)),
            blocktime=int(data.get("blocktime", 0)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "txid": self.txid,
            "hex": self.hex,
            "version": self.version,
            "locktime": self.locktime,
            "vin": [v.to_dict() for v in self.vin],
            "vout": [v.to_dict() for v in self.vout],
            "confirmations": self.confirmations,
            "time": self.time,
            "blocktime": self.blocktime,
        }

    def without_volatile(self) -> "Tx":
        """Return a copy with confirmations, time and blocktime zeroed."""
        return replace(self, confirmations=0, time=0, blocktime=0)

    def addresses(self) -> list[str]:
        """All addresses referenced by inputs and outputs, in order."""
        result = [a for vin in self.vin for a in vin.addresses]
        result.extend(a for vout in self.vout for a in vout.script_pubkey.addresses)
        return result


@dataclass(frozen=True)
class BlockHeader:
    """Block header as reported by an adapter."""

    hash: str
    height: int
    time: int = 0
    prev: str = ""
    next: str = ""
    confirmations: int = 0


@dataclass(frozen=True)
class Block:
    """A block with its transactions."""

    hash: str
    height: int
    txs: tuple[Tx, ...] = ()
    time: int = 0
    prev: str = ""
    next: str = ""
    confirmations: int = 0

    @property
    def txids(self) -> list[str]:
        return [tx.txid for tx in self.txs]
