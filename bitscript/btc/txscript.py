"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details

Standard script templates. Output templates describe locking scripts and input
templates describe unlocking scripts. Decoding a Script into a template never
fails: anything that is not recognized becomes the non-standard template
holding the original Script.
"""

from bitscript import BitscriptError
from bitscript.btc import addrlib, nets
from bitscript.btc.script import PushData, Script
from bitscript.crypto import opcode
from bitscript.crypto.secp256k1.curve import curve as Curve
from bitscript.crypto.secp256k1.signature import DER_SEQUENCE, Signature, derLength
from bitscript.util import helpers
from bitscript.util.encode import ByteArray


log = helpers.getLogger("TXSCRIPT")

SIGHASH_SIZE = 4

# SigHashAnyOneCanPay is the flag bit set on the anyone-can-pay hash types.
SigHashAnyOneCanPay = 0x80

_sigHashNames = {
    0x01: "SigHashAll",
    0x02: "SigHashNone",
    0x03: "SigHashSingle",
    0x81: "SigHashAllAnyOneCanPay",
    0x82: "SigHashNoneAnyOneCanPay",
    0x83: "SigHashSingleAnyOneCanPay",
}


class SigHash:
    """
    SigHash is the signature hash type appended to a signature in a signature
    script. It indicates which parts of the transaction the signature commits
    to. The wire form is a 4-byte big-endian word.
    """

    def __init__(self, value):
        """
        Args:
            value (int): One of 0x01, 0x02, 0x03, 0x81, 0x82 or 0x83.
        """
        if value not in _sigHashNames:
            raise BitscriptError("unrecognized hash type 0x%08x" % value)
        self.value = value

    @staticmethod
    def parse(b):
        """
        Decode the 4-byte big-endian hash type word.

        Args:
            b (byte-like): The encoded hash type.

        Returns:
            SigHash: The hash type.
        """
        if len(b) != SIGHASH_SIZE:
            raise BitscriptError(
                f"hash type must be {SIGHASH_SIZE} bytes, got {len(b)}"
            )
        return SigHash.fromInt(ByteArray(b).int())

    @staticmethod
    def fromInt(i):
        """
        The SigHash constant for the integer value.
        """
        return _sigHashes[SigHash(i).value]

    def serialize(self):
        """
        Returns:
            ByteArray: The 4-byte big-endian hash type word.
        """
        return ByteArray(self.value, length=SIGHASH_SIZE)

    def anyoneCanPay(self):
        """
        Whether the signature commits only to its own input.
        """
        return self.value & SigHashAnyOneCanPay != 0

    def baseType(self):
        """
        The hash type with the anyone-can-pay flag cleared.

        Returns:
            SigHash: SigHashAll, SigHashNone or SigHashSingle.
        """
        return SigHash.fromInt(self.value & ~SigHashAnyOneCanPay)

    def __eq__(self, other):
        if not isinstance(other, SigHash):
            return NotImplemented
        return self.value == other.value

    def __hash__(self):
        return hash(self.value)

    def __repr__(self):
        return _sigHashNames[self.value]


SigHashAll = SigHash(0x01)
SigHashNone = SigHash(0x02)
SigHashSingle = SigHash(0x03)
SigHashAllAnyOneCanPay = SigHash(0x81)
SigHashNoneAnyOneCanPay = SigHash(0x82)
SigHashSingleAnyOneCanPay = SigHash(0x83)

_sigHashes = {
    h.value: h
    for h in (
        SigHashAll,
        SigHashNone,
        SigHashSingle,
        SigHashAllAnyOneCanPay,
        SigHashNoneAnyOneCanPay,
        SigHashSingleAnyOneCanPay,
    )
}


class TxSignature:
    """
    A signature as it appears in a signature script, the DER signature followed
    directly by the hash type.
    """

    def __init__(self, signature, sigHash):
        """
        Args:
            signature (Signature): The ECDSA signature.
            sigHash (SigHash): The signature hash type.
        """
        self.signature = signature
        self.sigHash = sigHash

    @staticmethod
    def parse(b):
        """
        Decode the DER signature, then the hash type from the bytes that
        follow it. The first failure is raised.

        Args:
            b (byte-like): The encoded signature.

        Returns:
            TxSignature: The signature.
        """
        b = ByteArray(b)
        sigLen = derLength(b)
        if sigLen > len(b):
            raise BitscriptError(
                f"malformed signature: {sigLen} bytes needed, {len(b)} available"
            )
        signature = Signature.parse(b[:sigLen])
        sigHash = SigHash.parse(b[sigLen:])
        return TxSignature(signature, sigHash)

    def serialize(self):
        """
        Returns:
            ByteArray: The DER signature followed by the hash type word.
        """
        return self.signature.serialize() + self.sigHash.serialize()

    def __eq__(self, other):
        if not isinstance(other, TxSignature):
            return NotImplemented
        return self.signature == other.signature and self.sigHash == other.sigHash

    def __hash__(self):
        return hash((self.signature, self.sigHash))

    def __repr__(self):
        return f"TxSignature({self.serialize().hex()})"


class _Template:
    """
    Shared value semantics for the script templates. Subclasses list their
    attributes in _fields.
    """

    _fields = ()

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, f) == getattr(other, f) for f in self._fields)

    def __hash__(self):
        values = tuple(getattr(self, f) for f in self._fields)
        return hash((type(self).__name__,) + values)

    def __repr__(self):
        args = ", ".join(repr(getattr(self, f)) for f in self._fields)
        return f"{type(self).__name__}({args})"


# Required signature counts for the multisig templates.
OneOfTwo = 1
TwoOfTwo = 2
OneOfThree = 1
TwoOfThree = 2
ThreeOfThree = 3


class ScriptOutput(_Template):
    """
    ScriptOutput is the base for the output (locking script) templates.
    """

    def script(self):
        """The template's Script. See encodeOutput."""
        return encodeOutput(self)


class PayPubKey(ScriptOutput):
    """Pay to a public key."""

    _fields = ("pubKey",)

    def __init__(self, pubKey):
        self.pubKey = pubKey


class PayPubKeyHash(ScriptOutput):
    """Pay to the hash of a public key."""

    _fields = ("address",)

    def __init__(self, address):
        self.address = address


class PayMulSig1(ScriptOutput):
    """1-of-1 multisig."""

    _fields = ("pubKey",)

    def __init__(self, pubKey):
        self.pubKey = pubKey


class PayMulSig2(ScriptOutput):
    """
    Multisig with two keys. mulSigType is OneOfTwo or TwoOfTwo.
    """

    _fields = ("mulSigType", "key1", "key2")

    def __init__(self, mulSigType, key1, key2):
        if mulSigType not in (OneOfTwo, TwoOfTwo):
            raise BitscriptError(f"invalid 2-key multisig type {mulSigType}")
        self.mulSigType = mulSigType
        self.key1 = key1
        self.key2 = key2


class PayMulSig3(ScriptOutput):
    """
    Multisig with three keys. mulSigType is OneOfThree, TwoOfThree or
    ThreeOfThree.
    """

    _fields = ("mulSigType", "key1", "key2", "key3")

    def __init__(self, mulSigType, key1, key2, key3):
        if mulSigType not in (OneOfThree, TwoOfThree, ThreeOfThree):
            raise BitscriptError(f"invalid 3-key multisig type {mulSigType}")
        self.mulSigType = mulSigType
        self.key1 = key1
        self.key2 = key2
        self.key3 = key3


class PayScriptHash(ScriptOutput):
    """Pay to the hash of a redeem script."""

    _fields = ("address",)

    def __init__(self, address):
        self.address = address


class PayNonStd(ScriptOutput):
    """Any locking script that is not one of the standard templates."""

    _fields = ("script_",)

    def __init__(self, script):
        self.script_ = script


def encodeOutput(output):
    """
    Build the locking script for an output template.

    Args:
        output (ScriptOutput): The template.

    Returns:
        Script: The locking script.
    """
    if isinstance(output, PayPubKey):
        return Script([PushData(output.pubKey.serialize()), opcode.OP_CHECKSIG])
    if isinstance(output, PayPubKeyHash):
        return Script(
            [
                opcode.OP_DUP,
                opcode.OP_HASH160,
                PushData(output.address.scriptAddress()),
                opcode.OP_EQUALVERIFY,
                opcode.OP_CHECKSIG,
            ]
        )
    if isinstance(output, PayMulSig1):
        return Script(
            [
                opcode.OP_1,
                PushData(output.pubKey.serialize()),
                opcode.OP_1,
                opcode.OP_CHECKMULTISIG,
            ]
        )
    if isinstance(output, PayMulSig2):
        return Script(
            [
                opcode.smallIntOp(output.mulSigType),
                PushData(output.key1.serialize()),
                PushData(output.key2.serialize()),
                opcode.OP_2,
                opcode.OP_CHECKMULTISIG,
            ]
        )
    if isinstance(output, PayMulSig3):
        return Script(
            [
                opcode.smallIntOp(output.mulSigType),
                PushData(output.key1.serialize()),
                PushData(output.key2.serialize()),
                PushData(output.key3.serialize()),
                opcode.OP_3,
                opcode.OP_CHECKMULTISIG,
            ]
        )
    if isinstance(output, PayScriptHash):
        return Script(
            [
                opcode.OP_HASH160,
                PushData(output.address.scriptAddress()),
                opcode.OP_EQUAL,
            ]
        )
    if isinstance(output, PayNonStd):
        return output.script_
    raise BitscriptError(f"unknown output template {type(output).__name__}")


# Placeholders used in the op-code patterns below. PUSH matches any data push
# and captures its data. COUNT matches any op-code and captures it.
PUSH = object()
COUNT = object()


def matchPattern(script, pattern):
    """
    Match the script op-for-op against the pattern.

    Args:
        script (Script): The script.
        pattern (tuple): ints must match exactly. PUSH and COUNT capture.

    Returns:
        list or None: The captured values, or None if the script doesn't match.
    """
    if len(script) != len(pattern):
        return None
    captured = []
    for op, want in zip(script, pattern):
        if want is PUSH:
            if not isinstance(op, PushData):
                return None
            captured.append(op.data)
        elif want is COUNT:
            captured.append(op)
        elif isinstance(op, PushData) or op != want:
            return None
    return captured


def tryPubKey(b):
    """
    Parse a public key, or None if b is not a valid public key.
    """
    try:
        return Curve.parsePubKey(b)
    except BitscriptError as e:
        log.debug(f"not a public key: {e}")
        return None


def tryTxSignature(b):
    """
    Parse a TxSignature, or None if b is not a valid signature.
    """
    try:
        return TxSignature.parse(b)
    except BitscriptError as e:
        log.debug(f"not a signature: {e}")
        return None


def tryAddress(cls, b, netParams):
    """
    Build an address of class cls from a hash, or None if the hash is
    invalid.
    """
    try:
        return cls(b, netParams)
    except BitscriptError as e:
        log.debug(f"not a {cls.__name__}: {e}")
        return None


def tryPubKeys(*pushes):
    """
    Parse all pushes as public keys, or None if any of them fails.
    """
    keys = []
    for b in pushes:
        key = tryPubKey(b)
        if key is None:
            return None
        keys.append(key)
    return keys


def multiSigCount(op, numKeys):
    """
    The required signature count of a multisig script, or None if the op-code
    is not a small int from 1 to numKeys.
    """
    if isinstance(op, PushData) or not opcode.isSmallInt(op):
        return None
    n = opcode.asSmallInt(op)
    if n < 1 or n > numKeys:
        return None
    return n


def _payPubKey(caps, netParams):
    key = tryPubKey(caps[0])
    return None if key is None else PayPubKey(key)


def _payPubKeyHash(caps, netParams):
    addr = tryAddress(addrlib.AddressPubKeyHash, caps[0], netParams)
    return None if addr is None else PayPubKeyHash(addr)


def _payMulSig1(caps, netParams):
    key = tryPubKey(caps[0])
    return None if key is None else PayMulSig1(key)


def _payMulSig2(caps, netParams):
    n = multiSigCount(caps[0], 2)
    keys = tryPubKeys(*caps[1:])
    if n is None or keys is None:
        return None
    return PayMulSig2(n, *keys)


def _payMulSig3(caps, netParams):
    n = multiSigCount(caps[0], 3)
    keys = tryPubKeys(*caps[1:])
    if n is None or keys is None:
        return None
    return PayMulSig3(n, *keys)


def _payScriptHash(caps, netParams):
    addr = tryAddress(addrlib.AddressScriptHash, caps[0], netParams)
    return None if addr is None else PayScriptHash(addr)


# Output patterns in matching order. The first pattern that matches the shape
# of the script decides the result. If its payloads don't decode, the script
# is non-standard.
# fmt: off
outputPatterns = (
    ("PayPubKey", (PUSH, opcode.OP_CHECKSIG), _payPubKey),
    ("PayPubKeyHash", (opcode.OP_DUP, opcode.OP_HASH160, PUSH, opcode.OP_EQUALVERIFY, opcode.OP_CHECKSIG), _payPubKeyHash),
    ("PayMulSig1", (opcode.OP_1, PUSH, opcode.OP_1, opcode.OP_CHECKMULTISIG), _payMulSig1),
    ("PayMulSig2", (COUNT, PUSH, PUSH, opcode.OP_2, opcode.OP_CHECKMULTISIG), _payMulSig2),
    ("PayMulSig3", (COUNT, PUSH, PUSH, PUSH, opcode.OP_3, opcode.OP_CHECKMULTISIG), _payMulSig3),
    ("PayScriptHash", (opcode.OP_HASH160, PUSH, opcode.OP_EQUAL), _payScriptHash),
)
# fmt: on


def decodeOutput(script, netParams=nets.mainnet):
    """
    Recognize a locking script. This never fails. Scripts that don't match a
    standard template, or whose keys or hashes don't decode, are returned as
    PayNonStd with the original script.

    Args:
        script (Script): The locking script.
        netParams (module): The network used for hash addresses.

    Returns:
        ScriptOutput: The template.
    """
    for name, pattern, build in outputPatterns:
        caps = matchPattern(script, pattern)
        if caps is None:
            continue
        output = build(caps, netParams)
        if output is None:
            log.debug(f"{name} payload rejected, script is non-standard")
            return PayNonStd(script)
        return output
    return PayNonStd(script)


def parseOutput(b, netParams=nets.mainnet):
    """
    Parse a serialized locking script and recognize it. Unlike decodeOutput,
    bytes that are not a valid script raise a BitscriptError.

    Args:
        b (byte-like): The serialized script.
        netParams (module): The network used for hash addresses.

    Returns:
        ScriptOutput: The template.
    """
    return decodeOutput(Script.parse(b), netParams)


def outputAddress(output, netParams=nets.mainnet):
    """
    The payment address of an output template, if it has one.

    Args:
        output (ScriptOutput): The template.
        netParams (module): The network for pay-to-pubkey addresses.

    Returns:
        Address or None: The address, or None for multisig and non-standard
            outputs.
    """
    if isinstance(output, (PayPubKeyHash, PayScriptHash)):
        return output.address
    if isinstance(output, PayPubKey):
        return addrlib.AddressPubKey(output.pubKey.serialize(), netParams)
    return None


def addressOutput(addr):
    """
    The output template that pays to the address.

    Args:
        addr (Address): The address.

    Returns:
        ScriptOutput: The template.
    """
    if isinstance(addr, addrlib.AddressPubKeyHash):
        return PayPubKeyHash(addr)
    if isinstance(addr, addrlib.AddressScriptHash):
        return PayScriptHash(addr)
    if isinstance(addr, addrlib.AddressPubKey):
        return PayPubKey(addr.pubkey)
    raise NotImplementedError(
        "unable to generate payment script for unsupported address type %s"
        % type(addr)
    )


def scriptAddr(output, netParams=nets.mainnet):
    """
    The pay-to-script-hash address of an output template used as a redeem
    script. The address commits to the hash160 of the serialized script.

    Args:
        output (ScriptOutput): The redeem script template.
        netParams (module): The network parameters.

    Returns:
        AddressScriptHash: The address.
    """
    return addrlib.AddressScriptHash.fromScript(
        encodeOutput(output).serialize(), netParams
    )


class ScriptInput(_Template):
    """
    ScriptInput is the base for the input (unlocking script) templates.
    """

    def script(self):
        """The template's Script. See encodeInput."""
        return encodeInput(self)


class SpendSig1(ScriptInput):
    """Spend with a single signature."""

    _fields = ("sig",)

    def __init__(self, sig):
        self.sig = sig


class SpendPKHash(ScriptInput):
    """Spend a pay-to-pubkey-hash output with a signature and the public key."""

    _fields = ("sig", "pubKey")

    def __init__(self, sig, pubKey):
        self.sig = sig
        self.pubKey = pubKey


class SpendSig2(ScriptInput):
    """Spend with two signatures."""

    _fields = ("sig1", "sig2")

    def __init__(self, sig1, sig2):
        self.sig1 = sig1
        self.sig2 = sig2


class SpendSig3(ScriptInput):
    """Spend with three signatures."""

    _fields = ("sig1", "sig2", "sig3")

    def __init__(self, sig1, sig2, sig3):
        self.sig1 = sig1
        self.sig2 = sig2
        self.sig3 = sig3


class SpendNonStd(ScriptInput):
    """Any unlocking script that is not one of the standard templates."""

    _fields = ("script_",)

    def __init__(self, script):
        self.script_ = script


def encodeInput(inp):
    """
    Build the unlocking script for an input template.

    Args:
        inp (ScriptInput): The template.

    Returns:
        Script: The unlocking script.
    """
    if isinstance(inp, SpendSig1):
        return Script([PushData(inp.sig.serialize())])
    if isinstance(inp, SpendPKHash):
        return Script(
            [PushData(inp.sig.serialize()), PushData(inp.pubKey.serialize())]
        )
    if isinstance(inp, SpendSig2):
        return Script(
            [PushData(inp.sig1.serialize()), PushData(inp.sig2.serialize())]
        )
    if isinstance(inp, SpendSig3):
        return Script(
            [
                PushData(inp.sig1.serialize()),
                PushData(inp.sig2.serialize()),
                PushData(inp.sig3.serialize()),
            ]
        )
    if isinstance(inp, SpendNonStd):
        return inp.script_
    raise BitscriptError(f"unknown input template {type(inp).__name__}")


def looksLikeDERSignature(b):
    """
    Whether the push looks like a DER signature rather than a public key.
    DER signatures start with the sequence tag 0x30 and public keys start with
    0x02, 0x03 or 0x04. This only looks at the first byte, it is a heuristic
    and not something the protocol enforces.

    Args:
        b (byte-like): The pushed data.

    Returns:
        bool: True if the data should be parsed as a signature.
    """
    return len(b) > 0 and b[0] == DER_SEQUENCE


def _spendOne(a):
    sig = tryTxSignature(a)
    return None if sig is None else SpendSig1(sig)


def _spendTwo(a, b):
    sig1 = tryTxSignature(a)
    if sig1 is None:
        return None
    if looksLikeDERSignature(b):
        sig2 = tryTxSignature(b)
        return None if sig2 is None else SpendSig2(sig1, sig2)
    pubKey = tryPubKey(b)
    return None if pubKey is None else SpendPKHash(sig1, pubKey)


def _spendThree(a, b, c):
    sig1 = tryTxSignature(a)
    if sig1 is None:
        return None
    sig2 = tryTxSignature(b)
    if sig2 is None:
        return None
    sig3 = tryTxSignature(c)
    if sig3 is None:
        return None
    return SpendSig3(sig1, sig2, sig3)


inputDecoders = {1: _spendOne, 2: _spendTwo, 3: _spendThree}


def decodeInput(script):
    """
    Recognize an unlocking script by its number of pushes. This never fails.
    Scripts that aren't 1 to 3 pushes, or whose signatures or keys don't
    decode, are returned as SpendNonStd with the original script.

    Args:
        script (Script): The unlocking script.

    Returns:
        ScriptInput: The template.
    """
    decoder = inputDecoders.get(len(script))
    if decoder is None or not script.isPushOnly():
        return SpendNonStd(script)
    inp = decoder(*(op.data for op in script))
    if inp is None:
        log.debug(f"{len(script)}-push payload rejected, script is non-standard")
        return SpendNonStd(script)
    return inp


def parseInput(b):
    """
    Parse a serialized unlocking script and recognize it. Unlike decodeInput,
    bytes that are not a valid script raise a BitscriptError.

    Args:
        b (byte-like): The serialized script.

    Returns:
        ScriptInput: The template.
    """
    return decodeInput(Script.parse(b))


class ScriptHashInput(_Template):
    """
    The unlocking script of a pay-to-script-hash output. The input template is
    followed by a push of the serialized redeem script.
    """

    _fields = ("input", "output")

    def __init__(self, inp, output):
        """
        Args:
            inp (ScriptInput): The unlocking template for the redeem script.
            output (ScriptOutput): The redeem script.
        """
        self.input = inp
        self.output = output

    def script(self):
        """The Script. See encodeScriptHash."""
        return encodeScriptHash(self)

    def address(self, netParams=nets.mainnet):
        """The pay-to-script-hash address being spent."""
        return scriptAddr(self.output, netParams)


def encodeScriptHash(shInput):
    """
    Build a pay-to-script-hash unlocking script.

    Args:
        shInput (ScriptHashInput): The input and redeem script.

    Returns:
        Script: The input's op-codes followed by a push of the redeem script.
            An empty redeem script is pushed with OP_PUSHDATA1, since OP_0
            would read back as a small int.
    """
    redeemScript = encodeOutput(shInput.output).serialize()
    op = opcode.OP_PUSHDATA1 if len(redeemScript) == 0 else None
    return encodeInput(shInput.input) + [PushData(redeemScript, op)]


def decodeScriptHash(script, netParams=nets.mainnet):
    """
    Split a pay-to-script-hash unlocking script into its input and redeem
    script. The script must have at least 2 op-codes and end with a data push.
    A trailing OP_0 is a small int, not a pushed redeem script.

    Args:
        script (Script): The unlocking script.
        netParams (module): The network used for hash addresses.

    Returns:
        ScriptHashInput or None: None if the script does not end with a pushed
            redeem script, or if the pushed bytes do not parse as a script.
    """
    if len(script) < 2:
        return None
    last = script[-1]
    if not isinstance(last, PushData) or last.op == opcode.OP_0:
        return None
    try:
        redeemScript = Script.parse(last.data)
    except BitscriptError as e:
        log.debug(f"pushed redeem script does not parse: {e}")
        return None
    return ScriptHashInput(
        decodeInput(script[:-1]), decodeOutput(redeemScript, netParams)
    )
