"""Tests for the Bitcoin amount and transaction encodings."""

import base58
import pytest

from adapters.bitcoin_parser import BitcoinParser, TESTNET
from adapters.models import ScriptPubKey, Tx, Vin, Vout
from core.exceptions import AmountError, PackError

from conftest import (
    OP_RETURN_PLACEHOLDER,
    OP_RETURN_SCRIPT,
    P2PKH_ADDRESS,
    P2PKH_SCRIPT,
    P2WPKH_ADDRESS,
    P2WPKH_SCRIPT,
    P2WSH_ADDRESS,
    P2WSH_SCRIPT,
)


@pytest.fixture
def parser():
    return BitcoinParser()


class TestAmounts:
    """Conversion between display amounts and satoshis."""

    @pytest.mark.parametrize("value,expected", [
        ("0.001", 100000),
        ("0.00100000", 100000),
        ("12.5", 1250000000),
        ("1", 100000000),
        ("0", 0),
        ("1e-8", 1),
        ("-1", -100000000),
        (" 21000000 ", 2100000000000000),
    ])
    def test_amount_to_int(self, parser, value, expected):
        assert parser.amount_to_int(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "0.000000001", "NaN", "Infinity", "1,5"])
    def test_invalid_amount_raises(self, parser, value):
        with pytest.raises(AmountError):
            parser.amount_to_int(value)

    @pytest.mark.parametrize("value,expected", [
        (100000000, "1"),
        (-100000000, "-1"),
        (100000, "0.001"),
        (1, "0.00000001"),
        (0, "0"),
        (1000000000, "10"),
        (1250000000, "12.5"),
    ])
    def test_amount_to_decimal_string(self, parser, value, expected):
        assert parser.amount_to_decimal_string(value) == expected

    def test_negative_fee_sentinel_is_minus_one(self, parser):
        """Fee estimators report 'unknown' as -1 coin, rendered as '-1'."""
        assert parser.amount_to_decimal_string(parser.amount_to_int("-1")) == "-1"


class TestAddresses:
    """Decoding of output scripts."""

    def test_p2pkh(self, parser):
        assert parser.addresses_from_hex(P2PKH_SCRIPT) == (P2PKH_ADDRESS,)

    def test_p2wpkh(self, parser):
        assert parser.addresses_from_hex(P2WPKH_SCRIPT) == (P2WPKH_ADDRESS,)

    def test_p2wsh(self, parser):
        assert parser.addresses_from_hex(P2WSH_SCRIPT) == (P2WSH_ADDRESS,)

    def test_p2wpkh_testnet(self):
        parser = BitcoinParser(TESTNET)
        assert parser.addresses_from_hex(P2WPKH_SCRIPT) == (
            "tb1qw508d6qejxtdg4y5r3zarvary0c5xw7kxpjzsx",
        )

    def test_p2sh(self, parser):
        script_hash = bytes(range(20))
        (address,) = parser.addresses_from_hex("a914" + script_hash.hex() + "87")

        assert address.startswith("3")
        assert base58.b58decode_check(address) == b"\x05" + script_hash

    def test_p2pkh_testnet_prefix(self):
        parser = BitcoinParser(TESTNET)
        (address,) = parser.addresses_from_hex(P2PKH_SCRIPT)

        assert address[0] in "mn"
        assert base58.b58decode_check(address)[0] == 0x6F

    def test_op_return_placeholder(self, parser):
        assert parser.addresses_from_hex(OP_RETURN_SCRIPT) == (OP_RETURN_PLACEHOLDER,)

    def test_bare_op_return(self, parser):
        assert parser.addresses_from_hex("6a") == ("OP_RETURN ",)

    def test_unknown_script_has_no_address(self, parser):
        assert parser.addresses_from_hex("51") == ()
        assert parser.addresses_from_hex("") == ()

    def test_invalid_hex_has_no_address(self, parser):
        assert parser.addresses_from_hex("zz") == ()


class TestPacking:
    """Pack/unpack round trips."""

    def _tx(self) -> Tx:
        return Tx(
            txid="t1",
            hex="0100",
            version=2,
            locktime=7,
            vin=(Vin(txid="t0", vout=3, script_sig_hex="00", sequence=1,
                     addresses=("in-address",)),),
            vout=(
                Vout(value_sat=5000, n=0, script_pubkey=ScriptPubKey(P2PKH_SCRIPT)),
                Vout(value_sat=0, n=1, script_pubkey=ScriptPubKey(OP_RETURN_SCRIPT)),
            ),
            confirmations=4,
        )

    def test_unpack_derives_output_addresses(self, parser):
        tx, height = parser.unpack_tx(parser.pack_tx(self._tx(), 321, 1600000000))

        assert height == 321
        assert tx.vout[0].script_pubkey.addresses == (P2PKH_ADDRESS,)
        assert tx.vout[1].script_pubkey.addresses == (OP_RETURN_PLACEHOLDER,)

    def test_round_trip_keeps_transaction_fields(self, parser):
        original = self._tx()
        tx, _ = parser.unpack_tx(parser.pack_tx(original, 0, 1600000000))

        assert tx.txid == original.txid
        assert tx.hex == original.hex
        assert (tx.version, tx.locktime) == (2, 7)
        assert tx.vin == original.vin
        assert [v.value_sat for v in tx.vout] == [5000, 0]
        assert [v.n for v in tx.vout] == [0, 1]
        assert tx.blocktime == 1600000000
        assert tx.confirmations == 0

    def test_pack_is_deterministic(self, parser):
        assert parser.pack_tx(self._tx(), 1, 2) == parser.pack_tx(self._tx(), 1, 2)

    def test_pack_rejects_invalid_script_hex(self, parser):
        tx = Tx(txid="bad", vout=(Vout(script_pubkey=ScriptPubKey("zz")),))
        with pytest.raises(PackError) as exc_info:
            parser.pack_tx(tx, 0, 0)
        assert exc_info.value.details["txid"] == "bad"

    @pytest.mark.parametrize("data", [b"", b"not json", b'{"tx": {}}', b"\xff\xfe"])
    def test_unpack_rejects_garbage(self, parser, data):
        with pytest.raises(PackError):
            parser.unpack_tx(data)
