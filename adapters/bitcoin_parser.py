"""Amount and transaction encodings for Bitcoin-like coins."""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

import base58
import bech32

from adapters.base import ChainParser
from adapters.models import Tx, Vin, Vout, ScriptPubKey
from core.exceptions import AmountError, PackError


logger = logging.getLogger(__name__)

OP_RETURN = 0x6A
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D


@dataclass(frozen=True)
class NetworkParams:
    """Address prefixes of a network."""

    name: str
    pubkey_hash_prefix: int
    script_hash_prefix: int
    bech32_hrp: str


MAINNET = NetworkParams("mainnet", 0x00, 0x05, "bc")
TESTNET = NetworkParams("testnet", 0x6F, 0xC4, "tb")
REGTEST = NetworkParams("regtest", 0x6F, 0xC4, "bcrt")

NETWORKS = {params.name: params for params in (MAINNET, TESTNET, REGTEST)}


class BitcoinParser(ChainParser):
    """Parser for Bitcoin and forks sharing its script and amount rules.

    Packed transactions are a compact JSON envelope that keeps scripts but
    not decoded addresses; addresses are re-derived from the script hex
    when unpacking, the same way they are derived for node responses.
    """

    amount_decimal_point = 8

    def __init__(self, network: NetworkParams = MAINNET):
        self.network = network

    # ==================== Amounts ====================

    def amount_to_int(self, value: str) -> int:
        text = str(value).strip()
        try:
            amount = Decimal(text)
        except InvalidOperation:
            raise AmountError(value, "not a decimal number")
        if not amount.is_finite():
            raise AmountError(value, "not a finite number")

        scaled = amount.scaleb(self.amount_decimal_point)
        if scaled != scaled.to_integral_value():
            raise AmountError(
                value, f"more than {self.amount_decimal_point} decimal places"
            )
        return int(scaled)

    def amount_to_decimal_string(self, value: int) -> str:
        amount = Decimal(value).scaleb(-self.amount_decimal_point).normalize()
        return format(amount, "f")

    # ==================== Addresses ====================

    def addresses_from_hex(self, script_hex: str) -> tuple[str, ...]:
        """Decode the addresses paid by an output script given as hex."""
        try:
            script = bytes.fromhex(script_hex)
        except ValueError:
            logger.debug(f"Undecodable script hex {script_hex[:40]!r}")
            return ()
        return self.addresses_from_script(script)

    def addresses_from_script(self, script: bytes) -> tuple[str, ...]:
        """Decode the addresses paid by an output script.

        Unknown script templates decode to no address. Null-data outputs
        decode to an ``OP_RETURN`` placeholder, which is not searchable.
        """
        # OP_DUP OP_HASH160 <20> OP_EQUALVERIFY OP_CHECKSIG
        if (len(script) == 25 and script[:3] == b"\x76\xa9\x14"
                and script[23:] == b"\x88\xac"):
            return (self._base58_address(self.network.pubkey_hash_prefix, script[3:23]),)

        # OP_HASH160 <20> OP_EQUAL
        if len(script) == 23 and script[:2] == b"\xa9\x14" and script[22] == 0x87:
            return (self._base58_address(self.network.script_hash_prefix, script[2:22]),)

        # OP_0 <20|32>
        if len(script) in (22, 34) and script[0] == 0x00 and script[1] == len(script) - 2:
            address = bech32.encode(self.network.bech32_hrp, 0, script[2:])
            return (address,) if address else ()

        if script[:1] == bytes([OP_RETURN]):
            return (f"OP_RETURN {self._null_data(script).hex()}",)

        return ()

    @staticmethod
    def _base58_address(prefix: int, payload: bytes) -> str:
        return base58.b58encode_check(bytes([prefix]) + payload).decode("ascii")

    @staticmethod
    def _null_data(script: bytes) -> bytes:
        """Return the data pushed after OP_RETURN."""
        if len(script) < 2:
            return b""
        op = script[1]
        if op < OP_PUSHDATA1:
            return script[2:2 + op]
        if op == OP_PUSHDATA1 and len(script) > 2:
            return script[3:3 + script[2]]
        if op == OP_PUSHDATA2 and len(script) > 3:
            return script[4:4 + int.from_bytes(script[2:4], "little")]
        return script[1:]

    # ==================== Packing ====================

    def pack_tx(self, tx: Tx, height: int, blocktime: int) -> bytes:
        try:
            for vout in tx.vout:
                bytes.fromhex(vout.script_pubkey.hex)
            envelope = {
                "height": int(height),
                "blocktime": int(blocktime),
                "tx": {
                    "txid": tx.txid,
                    "hex": tx.hex,
                    "version": tx.version,
                    "locktime": tx.locktime,
                    "vin": [vin.to_dict() for vin in tx.vin],
                    "vout": [
                        {
                            "valueSat": str(vout.value_sat),
                            "n": vout.n,
                            "scriptPubKey": {"hex": vout.script_pubkey.hex},
                        }
                        for vout in tx.vout
                    ],
                },
            }
            return json.dumps(envelope, sort_keys=True, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise PackError("pack", str(e), txid=tx.txid)

    def unpack_tx(self, data: bytes) -> tuple[Tx, int]:
        try:
            envelope: dict[str, Any] = json.loads(data.decode("utf-8"))
            raw = envelope["tx"]
            blocktime = int(envelope["blocktime"])
            vout = tuple(
                Vout(
                    value_sat=int(item["valueSat"]),
                    n=int(item["n"]),
                    script_pubkey=ScriptPubKey(
                        hex=item["scriptPubKey"]["hex"],
                        addresses=self.addresses_from_hex(item["scriptPubKey"]["hex"]),
                    ),
                )
                for item in raw["vout"]
            )
            tx = Tx(
                txid=raw["txid"],
                hex=raw["hex"],
                version=int(raw["version"]),
                locktime=int(raw["locktime"]),
                vin=tuple(Vin.from_dict(item) for item in raw["vin"]),
                vout=vout,
                time=blocktime,
                blocktime=blocktime,
            )
            return tx, int(envelope["height"])
        except (UnicodeDecodeError, ValueError, KeyError, TypeError, AttributeError) as e:
            raise PackError("unpack", f"{type(e).__name__}: {e}")
