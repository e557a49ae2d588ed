"""
Copyright (c) 2020, the Decred developers
See LICENSE for details
"""

import logging

import pytest

from bitscript import BitscriptError
from bitscript.btc import addrlib, txscript
from bitscript.btc.nets import mainnet, testnet
from bitscript.btc.script import PushData, Script
from bitscript.btc.txscript import (
    OneOfThree,
    OneOfTwo,
    PayMulSig1,
    PayMulSig2,
    PayMulSig3,
    PayNonStd,
    PayPubKey,
    PayPubKeyHash,
    PayScriptHash,
    ScriptHashInput,
    SigHash,
    SpendNonStd,
    SpendPKHash,
    SpendSig1,
    SpendSig2,
    SpendSig3,
    ThreeOfThree,
    TwoOfThree,
    TwoOfTwo,
    TxSignature,
)
from bitscript.crypto import crypto, opcode
from bitscript.crypto.secp256k1.curve import curve
from bitscript.crypto.secp256k1.signature import Signature
from bitscript.util.encode import ByteArray


P2SH_MULTISIG_SCRIPT = (
    "52410491bba2510912a5bd37da1fb5b1673010e43d2c6d812c514e91bfa9f2eb129e1c183329db55bd868e209aac2fbc02cb33d98fe74bf23f0c235"
    "d6126b1d8334f864104865c40293a680cb9c020e7b1e106d8c1916d3cef99aa431a56d253e69256dac09ef122b1a986818a7cb624532f062c1d1f87"
    "22084861c5c3291ccffef4ec687441048d2455d2403e08708fc1f556002f1b6cd83f992d085097f9974ab08a28838f07896fbab08f39495e15fa6fa"
    "d6edbfb1e754e35fa1c7844c41f322a1863d4621353ae"
)

PKH = ByteArray("e34cce70c86373273efcc54ce7d2a491bb4a0e84")


def pubKey(k, compressed=True):
    return curve.publicKey(k, compressed)


def txSig(r=1, s=2, sigHash=txscript.SigHashAll):
    return TxSignature(Signature(r, s), sigHash)


ALL_SIGHASHES = (
    txscript.SigHashAll,
    txscript.SigHashNone,
    txscript.SigHashSingle,
    txscript.SigHashAllAnyOneCanPay,
    txscript.SigHashNoneAnyOneCanPay,
    txscript.SigHashSingleAnyOneCanPay,
)


def standardOutputs():
    pkhAddr = addrlib.AddressPubKeyHash(PKH, mainnet)
    shAddr = addrlib.AddressScriptHash(PKH, mainnet)
    return [
        PayPubKey(pubKey(1)),
        PayPubKey(pubKey(1, compressed=False)),
        PayPubKeyHash(pkhAddr),
        PayMulSig1(pubKey(2)),
        PayMulSig2(OneOfTwo, pubKey(1), pubKey(2)),
        PayMulSig2(TwoOfTwo, pubKey(1), pubKey(2, compressed=False)),
        PayMulSig3(OneOfThree, pubKey(1), pubKey(2), pubKey(3)),
        PayMulSig3(TwoOfThree, pubKey(1), pubKey(2), pubKey(3)),
        PayMulSig3(ThreeOfThree, pubKey(3), pubKey(2), pubKey(1)),
        PayScriptHash(shAddr),
    ]


def standardInputs():
    return [
        SpendSig1(txSig()),
        SpendSig1(txSig(sigHash=txscript.SigHashSingleAnyOneCanPay)),
        SpendPKHash(txSig(), pubKey(1)),
        SpendPKHash(txSig(r=curve.N - 1), pubKey(1, compressed=False)),
        SpendSig2(txSig(1, 2), txSig(3, 4, txscript.SigHashNone)),
        SpendSig3(txSig(1, 2), txSig(3, 4), txSig(5, 6)),
    ]


class TestSigHash:
    def test_roundTrip(self):
        for sigHash in ALL_SIGHASHES:
            b = sigHash.serialize()
            assert len(b) == 4
            assert SigHash.parse(b) == sigHash
            assert SigHash.parse(b) is sigHash
            assert SigHash.fromInt(sigHash.value) is sigHash

    def test_wireFormat(self):
        assert txscript.SigHashAll.serialize() == "00000001"
        assert txscript.SigHashSingleAnyOneCanPay.serialize() == "00000083"
        assert SigHash.parse(ByteArray("00000082")) == txscript.SigHashNoneAnyOneCanPay

    def test_invalid(self):
        for word in ("00000000", "00000004", "00000080", "00000084", "00000101"):
            with pytest.raises(BitscriptError):
                SigHash.parse(ByteArray(word))
        # Wrong length.
        for b in ("", "01", "000001", "0000000001"):
            with pytest.raises(BitscriptError):
                SigHash.parse(ByteArray(b))
        with pytest.raises(BitscriptError):
            SigHash.fromInt(0)
        with pytest.raises(BitscriptError):
            SigHash(0x84)

    def test_flags(self):
        assert not txscript.SigHashAll.anyoneCanPay()
        assert txscript.SigHashAllAnyOneCanPay.anyoneCanPay()
        assert txscript.SigHashNoneAnyOneCanPay.baseType() is txscript.SigHashNone
        assert txscript.SigHashSingle.baseType() is txscript.SigHashSingle
        assert repr(txscript.SigHashAll) == "SigHashAll"
        assert len(set(ALL_SIGHASHES)) == 6


class TestTxSignature:
    def test_serialize(self):
        sig = txSig(1, 2)
        assert sig.serialize() == "3006020101020102" + "00000001"

    def test_roundTrip(self):
        for sigHash in ALL_SIGHASHES:
            for r, s in ((1, 2), (0x80, 0x7F), (curve.N - 1, curve.N - 2)):
                sig = txSig(r, s, sigHash)
                assert TxSignature.parse(sig.serialize()) == sig

    def test_invalid(self):
        der = "3006020101020102"
        bad = [
            # empty
            "",
            # missing hash type
            der,
            # short hash type
            der + "000001",
            # long hash type
            der + "0000000100",
            # unknown hash type
            der + "00000004",
            # not a DER signature
            "3106020101020102" + "00000001",
            # declared DER length is longer than the input
            "30ff020101020102",
            # invalid signature body
            "3006020100020102" + "00000001",
        ]
        for sigHex in bad:
            with pytest.raises(BitscriptError):
                TxSignature.parse(ByteArray(sigHex))


class TestOutputs:
    def test_encodeOutput(self):
        g = pubKey(1).serialize()
        assert txscript.encodeOutput(PayPubKey(pubKey(1))) == Script(
            [PushData(g), opcode.OP_CHECKSIG]
        )
        assert txscript.encodeOutput(PayPubKey(pubKey(1))).serialize() == (
            ByteArray("21") + g + "ac"
        )

        pkhAddr = addrlib.AddressPubKeyHash(PKH, mainnet)
        script = txscript.encodeOutput(PayPubKeyHash(pkhAddr))
        assert script.serialize() == "76a914" + PKH.hex() + "88ac"

        script = txscript.encodeOutput(PayScriptHash(addrlib.AddressScriptHash(PKH, mainnet)))
        assert script.serialize() == "a914" + PKH.hex() + "87"

        k1, k2 = pubKey(1), pubKey(2)
        assert txscript.encodeOutput(PayMulSig2(TwoOfTwo, k1, k2)) == Script(
            [
                opcode.OP_2,
                PushData(k1.serialize()),
                PushData(k2.serialize()),
                opcode.OP_2,
                opcode.OP_CHECKMULTISIG,
            ]
        )
        assert txscript.encodeOutput(PayMulSig1(k1)) == Script(
            [opcode.OP_1, PushData(k1.serialize()), opcode.OP_1, opcode.OP_CHECKMULTISIG]
        )

        nonStd = Script.fromAsm("OP_RETURN 68656c6c6f")
        assert txscript.encodeOutput(PayNonStd(nonStd)) is nonStd

        with pytest.raises(BitscriptError):
            txscript.encodeOutput("not a template")

    def test_roundTrip(self):
        for output in standardOutputs():
            script = txscript.encodeOutput(output)
            assert txscript.decodeOutput(script) == output, output
            assert output.script() == script
            b = script.serialize()
            assert txscript.parseOutput(b) == output
            assert txscript.encodeOutput(txscript.parseOutput(b)).serialize() == b

    def test_testnetRoundTrip(self):
        output = PayPubKeyHash(addrlib.AddressPubKeyHash(PKH, testnet))
        script = txscript.encodeOutput(output)
        assert txscript.decodeOutput(script, testnet) == output
        # The hash decodes with the network it's given.
        assert txscript.decodeOutput(script) != output
        assert txscript.decodeOutput(script).address.isForNet(mainnet)

    def test_knownMultisig(self):
        script = Script.parse(ByteArray(P2SH_MULTISIG_SCRIPT))
        output = txscript.decodeOutput(script)
        assert isinstance(output, PayMulSig3)
        assert output.mulSigType == TwoOfThree
        for key in (output.key1, output.key2, output.key3):
            assert not key.compressed
        assert txscript.encodeOutput(output).serialize() == P2SH_MULTISIG_SCRIPT

        addr = txscript.scriptAddr(output)
        assert addr.scriptAddress() == "f815b036d9bbbce5e9f2a00abd1bf3dc91e95510"
        assert addr.string() == "3QJmV3qfvL9SuYo34YihAf3sRCW3qSinyC"

    def test_multisigCounts(self):
        k1, k2, k3 = (pubKey(k).serialize() for k in (1, 2, 3))

        def mulSig(leading, keys, trailing):
            return Script(
                [leading] + [PushData(k) for k in keys] + [trailing, opcode.OP_CHECKMULTISIG]
            )

        decode = txscript.decodeOutput
        assert decode(mulSig(opcode.OP_1, [k1, k2], opcode.OP_2)) == PayMulSig2(
            OneOfTwo, pubKey(1), pubKey(2)
        )
        assert decode(mulSig(opcode.OP_3, [k1, k2, k3], opcode.OP_3)) == PayMulSig3(
            ThreeOfThree, pubKey(1), pubKey(2), pubKey(3)
        )

        nonStd = [
            # More required signatures than keys.
            mulSig(opcode.OP_3, [k1, k2], opcode.OP_2),
            mulSig(opcode.OP_4, [k1, k2, k3], opcode.OP_3),
            mulSig(opcode.OP_2, [k1], opcode.OP_1),
            # Zero required signatures.
            mulSig(opcode.OP_0, [k1, k2], opcode.OP_2),
            # Trailing count doesn't match the keys.
            mulSig(opcode.OP_1, [k1, k2], opcode.OP_3),
            mulSig(opcode.OP_1, [k1, k2, k3], opcode.OP_2),
            # Count that isn't a small int.
            mulSig(opcode.OP_1NEGATE, [k1, k2], opcode.OP_2),
            mulSig(opcode.OP_DUP, [k1, k2, k3], opcode.OP_3),
            # Four keys.
            mulSig(opcode.OP_2, [k1, k2, k3, k1], opcode.OP_4),
            # A key that doesn't parse.
            mulSig(opcode.OP_1, [k1, k2[:-1]], opcode.OP_2),
        ]
        for script in nonStd:
            assert decode(script) == PayNonStd(script), script

        with pytest.raises(BitscriptError):
            PayMulSig2(ThreeOfThree, pubKey(1), pubKey(2))
        with pytest.raises(BitscriptError):
            PayMulSig2(0, pubKey(1), pubKey(2))
        with pytest.raises(BitscriptError):
            PayMulSig3(4, pubKey(1), pubKey(2), pubKey(3))

    def test_fallback(self):
        g = pubKey(1).serialize()
        scripts = [
            Script(),
            Script.fromAsm("OP_RETURN 68656c6c6f"),
            Script([opcode.OP_CHECKSIG]),
            # Not a public key.
            Script([PushData(ByteArray(bytes(33))), opcode.OP_CHECKSIG]),
            Script([PushData(g[:-1]), opcode.OP_CHECKSIG]),
            Script([opcode.OP_0, opcode.OP_CHECKSIG]),
            # Wrong hash lengths.
            Script.fromAsm("DUP HASH160 " + PKH.hex() + "00 EQUALVERIFY CHECKSIG"),
            Script.fromAsm("HASH160 " + PKH[:19].hex() + " EQUAL"),
            # Right shape, wrong op-codes.
            Script.fromAsm("DUP HASH160 " + PKH.hex() + " EQUAL CHECKSIG"),
            Script.fromAsm("HASH160 " + PKH.hex() + " EQUALVERIFY"),
            Script([PushData(g), opcode.OP_CHECKSIGVERIFY]),
            # Extra op-code.
            Script([PushData(g), opcode.OP_CHECKSIG, opcode.OP_NOP]),
            # Unknown op-codes survive.
            Script.parse(ByteArray("baff")),
        ]
        for script in scripts:
            output = txscript.decodeOutput(script)
            assert output == PayNonStd(script), script
            assert txscript.encodeOutput(output) == script
            assert txscript.encodeOutput(output).serialize() == script.serialize()

    def test_fallbackLogging(self, caplog):
        script = Script([PushData(ByteArray(bytes(33))), opcode.OP_CHECKSIG])
        txscript.log.setLevel(logging.DEBUG)
        try:
            with caplog.at_level(logging.DEBUG):
                txscript.decodeOutput(script)
        finally:
            txscript.log.setLevel(logging.INFO)
        assert "PayPubKey payload rejected" in caplog.text

    def test_nonCanonicalPush(self):
        # Non-minimal pushes of a standard payload still decode, but encoding
        # writes them back with the smallest push op-code.
        script = Script(
            [
                opcode.OP_DUP,
                opcode.OP_HASH160,
                PushData(PKH, opcode.OP_PUSHDATA1),
                opcode.OP_EQUALVERIFY,
                opcode.OP_CHECKSIG,
            ]
        )
        output = txscript.decodeOutput(script)
        assert output == PayPubKeyHash(addrlib.AddressPubKeyHash(PKH, mainnet))
        assert txscript.encodeOutput(output) != script

    def test_parseOutput(self):
        with pytest.raises(BitscriptError):
            txscript.parseOutput(ByteArray("4c05"))
        assert txscript.parseOutput(ByteArray("6a")) == PayNonStd(Script([opcode.OP_RETURN]))

    def test_addresses(self):
        pkhAddr = addrlib.AddressPubKeyHash(PKH, mainnet)
        shAddr = addrlib.AddressScriptHash(PKH, mainnet)
        pkAddr = addrlib.AddressPubKey(pubKey(1).serialize(), mainnet)

        assert txscript.outputAddress(PayPubKeyHash(pkhAddr)) == pkhAddr
        assert txscript.outputAddress(PayScriptHash(shAddr)) == shAddr
        assert txscript.outputAddress(PayPubKey(pubKey(1))) == pkAddr
        assert txscript.outputAddress(PayMulSig1(pubKey(1))) is None
        assert txscript.outputAddress(PayNonStd(Script())) is None

        assert txscript.addressOutput(pkhAddr) == PayPubKeyHash(pkhAddr)
        assert txscript.addressOutput(shAddr) == PayScriptHash(shAddr)
        assert txscript.addressOutput(pkAddr) == PayPubKey(pubKey(1))
        with pytest.raises(NotImplementedError):
            txscript.addressOutput("1MirQ9bwyQcGVJPwKUgapu5ouK2E2Ey4gX")

        decoded = addrlib.decodeAddress("1MirQ9bwyQcGVJPwKUgapu5ouK2E2Ey4gX", mainnet)
        script = txscript.encodeOutput(txscript.addressOutput(decoded))
        assert script.serialize() == "76a914" + PKH.hex() + "88ac"

    def test_scriptAddr(self):
        for output in standardOutputs():
            addr = txscript.scriptAddr(output)
            assert addr == txscript.scriptAddr(output)
            assert addr == addrlib.AddressScriptHash.fromScript(
                txscript.encodeOutput(output).serialize(), mainnet
            )
            assert addr.isForNet(mainnet)
            assert txscript.scriptAddr(output, testnet).isForNet(testnet)
            assert txscript.scriptAddr(output, testnet).scriptAddress() == (
                addr.scriptAddress()
            )

        addrs = {txscript.scriptAddr(output) for output in standardOutputs()}
        assert len(addrs) == len(standardOutputs())

        nonStd = PayNonStd(Script.fromAsm("OP_RETURN"))
        assert txscript.scriptAddr(nonStd).scriptAddress() == crypto.hash160(
            ByteArray("6a")
        )

    def test_templates(self):
        outputs = standardOutputs()
        for i, a in enumerate(outputs):
            for j, b in enumerate(outputs):
                assert (a == b) == (i == j)
        assert hash(outputs[0]) == hash(PayPubKey(pubKey(1)))
        assert PayPubKey(pubKey(1)) != PayMulSig1(pubKey(1))
        assert repr(PayMulSig2(TwoOfTwo, pubKey(1), pubKey(2))).startswith(
            "PayMulSig2(2, PublicKey(02"
        )


class TestInputs:
    def test_encodeInput(self):
        sig = txSig()
        assert txscript.encodeInput(SpendSig1(sig)) == Script([PushData(sig.serialize())])
        script = txscript.encodeInput(SpendPKHash(sig, pubKey(1)))
        assert script.serialize() == (
            "0c" + sig.serialize().hex() + "21" + pubKey(1).serialize().hex()
        )
        assert script.isPushOnly()

        nonStd = Script.fromAsm("OP_1")
        assert txscript.encodeInput(SpendNonStd(nonStd)) is nonStd
        with pytest.raises(BitscriptError):
            txscript.encodeInput(PayNonStd(nonStd))

    def test_roundTrip(self):
        for inp in standardInputs():
            script = txscript.encodeInput(inp)
            assert txscript.decodeInput(script) == inp, inp
            assert inp.script() == script
            assert txscript.parseInput(script.serialize()) == inp

    def test_looksLikeDERSignature(self):
        assert txscript.looksLikeDERSignature(txSig().serialize())
        assert txscript.looksLikeDERSignature(b"\x30")
        assert not txscript.looksLikeDERSignature(b"")
        for k in (pubKey(1), pubKey(3), pubKey(1, compressed=False)):
            assert not txscript.looksLikeDERSignature(k.serialize())

    def test_heuristic(self):
        sig = txSig().serialize()
        # A second push starting with 0x30 is read as a signature, and it
        # doesn't fall back to a key when it fails to parse.
        script = Script([PushData(sig), PushData(ByteArray("30") + bytes(32))])
        assert txscript.decodeInput(script) == SpendNonStd(script)

        script = Script([PushData(sig), PushData(pubKey(2).serialize())])
        assert txscript.decodeInput(script) == SpendPKHash(txSig(), pubKey(2))

        # Not a key either.
        script = Script([PushData(sig), PushData(ByteArray("02" + "ff" * 32))])
        assert txscript.decodeInput(script) == SpendNonStd(script)

    def test_fallback(self):
        sig = PushData(txSig().serialize())
        badSig = PushData(ByteArray("3006020101020102"))
        scripts = [
            Script(),
            Script([badSig]),
            Script([PushData(b"")]),
            Script([opcode.OP_0, sig, sig]),
            Script([badSig, sig]),
            Script([sig, sig, badSig]),
            Script([sig, sig, sig, sig]),
            # Not push-only.
            Script([sig, opcode.OP_CHECKSIG]),
            Script([opcode.OP_1]),
            Script([opcode.OP_1, opcode.OP_2, opcode.OP_3]),
        ]
        for script in scripts:
            inp = txscript.decodeInput(script)
            assert inp == SpendNonStd(script), script
            assert txscript.encodeInput(inp).serialize() == script.serialize()

        with pytest.raises(BitscriptError):
            txscript.parseInput(ByteArray("05"))


class TestScriptHash:
    def test_roundTrip(self):
        for inp in standardInputs():
            for output in standardOutputs():
                shInput = ScriptHashInput(inp, output)
                script = txscript.encodeScriptHash(shInput)
                assert txscript.decodeScriptHash(script) == shInput
                assert shInput.script() == script

    def test_layout(self):
        output = PayMulSig2(TwoOfTwo, pubKey(1), pubKey(2))
        inp = SpendSig2(txSig(1, 2), txSig(3, 4))
        script = txscript.encodeScriptHash(ScriptHashInput(inp, output))
        assert len(script) == 3
        assert script[:2] == txscript.encodeInput(inp)
        assert script[2] == PushData(txscript.encodeOutput(output).serialize())

        shInput = ScriptHashInput(inp, output)
        assert shInput.address() == txscript.scriptAddr(output)
        assert shInput.address(testnet) == txscript.scriptAddr(output, testnet)

    def test_emptyRedeemScript(self):
        shInput = ScriptHashInput(SpendSig1(txSig(1, 2)), PayNonStd(Script()))
        script = txscript.encodeScriptHash(shInput)
        assert script[-1] == PushData(b"", opcode.OP_PUSHDATA1)
        assert script.serialize() == "0c" + txSig(1, 2).serialize().hex() + "4c00"
        assert txscript.decodeScriptHash(script) == shInput
        assert txscript.encodeScriptHash(txscript.decodeScriptHash(script)) == script

    def test_nonStandardParts(self):
        redeem = Script.fromAsm("OP_TRUE")
        script = Script([opcode.OP_1, PushData(redeem.serialize())])
        shInput = txscript.decodeScriptHash(script)
        assert shInput == ScriptHashInput(
            SpendNonStd(Script([opcode.OP_1])), PayNonStd(redeem)
        )
        assert txscript.encodeScriptHash(shInput) == script

    def test_failures(self):
        redeem = PushData(txscript.encodeOutput(PayMulSig1(pubKey(1))).serialize())
        sig = PushData(txSig().serialize())
        scripts = [
            # Fewer than 2 op-codes.
            Script(),
            Script([redeem]),
            # Last op-code is not a push.
            Script([sig, opcode.OP_CHECKSIG]),
            Script([sig, redeem, opcode.OP_1]),
            Script([sig, opcode.OP_0]),
            # Pushed redeem script doesn't parse.
            Script([sig, PushData(ByteArray("4c05"))]),
        ]
        for script in scripts:
            assert txscript.decodeScriptHash(script) is None, script


def test_decodeIsTotal(randBytes):
    for _ in range(200):
        try:
            script = Script.parse(randBytes(0, 40))
        except BitscriptError:
            continue
        output = txscript.decodeOutput(script)
        assert txscript.encodeOutput(output).serialize() == script.serialize()
        inp = txscript.decodeInput(script)
        assert txscript.encodeInput(inp).serialize() == script.serialize()
        txscript.decodeScriptHash(script)
