"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details

ECDSA signatures and their DER encoding.
"""

from bitscript import BitscriptError
from bitscript.util.encode import ByteArray

from .curve import curve as Curve


# Minimal DER signature is when both numbers are 1 byte:
# 0x30 + len + 0x02 + 0x01 + <byte> + 0x02 + 0x01 + <byte>
MIN_SIG_LEN = 8

# The DER sequence tag that every serialized signature starts with.
DER_SEQUENCE = 0x30
DER_INTEGER = 0x02


def canonicalPadding(b):
    """
    canonicalPadding checks whether a big-endian encoded integer could
    possibly be misinterpreted as a negative number (even though OpenSSL
    treats all numbers as unsigned), or if there is any unnecessary
    leading zero padding.
    """
    if b[0] & 0x80 == 0x80:
        raise BitscriptError("negative number")
    if len(b) > 1 and b[0] == 0x00 and b[1] & 0x80 != 0x80:
        raise BitscriptError("excessive padding")


def canonicalizeInt(val):
    """
    canonicalizeInt returns the bytes for the passed big integer adjusted as
    necessary to ensure that a big-endian encoded integer can't possibly be
    misinterpreted as a negative number.  This can happen when the most
    significant bit is set, so it is padded by a leading zero byte in this
    case.  Also, the returned bytes will have at least a single byte when the
    passed value is 0.  This is required for DER encoding.
    """
    b = ByteArray(val)
    if len(b) == 0:
        b = ByteArray(0, length=1)
    if (b[0] & 0x80) != 0:
        b = ByteArray(b, length=len(b) + 1)
    return b


def derLength(sigBytes):
    """
    The number of bytes a DER signature at the start of sigBytes occupies, as
    given by its header. Nothing past the header is checked.

    Args:
        sigBytes (byte-like): Bytes starting with a DER signature.

    Returns:
        int: The signature length, including the two header bytes.
    """
    if len(sigBytes) < 2:
        raise BitscriptError("malformed signature: too short")
    if sigBytes[0] != DER_SEQUENCE:
        raise BitscriptError("malformed signature: no header magic")
    return sigBytes[1] + 2


class Signature:
    """
    The Signature class represents an ECDSA-algorithm signature.
    """

    def __init__(self, r, s):
        """
        Args:
            r (int): The R value.
            s (int): The S value.
        """
        self.r = r
        self.s = s

    def __eq__(self, other):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.r == other.r and self.s == other.s

    def __hash__(self):
        return hash((self.r, self.s))

    def __repr__(self):
        return f"Signature({self.serialize().hex()})"

    def serialize(self):
        """
        serialize returns the ECDSA signature in the strict DER format. The S
        value is written as stored. Note that the serialized bytes returned do
        not include the appended hash type used in signature scripts.

        0x30 <length> 0x02 <length r> r 0x02 <length s> s
        """
        # Ensure the encoded bytes for the r and s values are canonical and
        # thus suitable for DER encoding.
        rb = canonicalizeInt(self.r)
        sb = canonicalizeInt(self.s)

        # total length of returned signature is 1 byte for each magic and
        # length (6 total), plus lengths of r and s
        length = 6 + len(rb) + len(sb)
        b = ByteArray(0, length=length)

        b[0] = DER_SEQUENCE
        b[1] = ByteArray(length - 2, length=1)
        b[2] = DER_INTEGER
        b[3] = ByteArray(len(rb), length=1)
        offset = 4
        b[offset] = rb
        offset += len(rb)
        b[offset] = DER_INTEGER
        offset += 1
        b[offset] = ByteArray(len(sb), length=1)
        offset += 1
        b[offset] = sb
        return b

    def isLowS(self):
        """
        Whether S is in the lower half of the curve order (BIP-0062).
        """
        return self.s <= Curve.N >> 1

    @staticmethod
    def parse(sigBytes, der=True):
        """
        Parse sigBytes to make sure they make up a valid Signature. The whole
        of sigBytes must be the signature.

        Args:
            sigBytes (byte-like): The bytes of the signature.
            der (bool): Whether to check for padding and sign.
        Returns:
            object: the ECDSA Signature.
        """
        if len(sigBytes) < MIN_SIG_LEN:
            raise BitscriptError("malformed signature: too short")

        # 0x30
        index = 0
        if sigBytes[index] != DER_SEQUENCE:
            raise BitscriptError("malformed signature: no header magic")
        index += 1
        # length of remaining message
        siglen = sigBytes[index]
        index += 1
        if siglen + 2 != len(sigBytes):
            raise BitscriptError("malformed signature: bad length")

        # 0x02
        if sigBytes[index] != DER_INTEGER:
            raise BitscriptError("malformed signature: no 1st int marker")
        index += 1

        # Length of signature r.
        rLen = sigBytes[index]
        # must be positive, must be able to fit in another 0x2, <len> <s>
        # hence the -3. We assume that the length must be at least one byte.
        index += 1
        if rLen <= 0 or rLen > len(sigBytes) - index - 3:
            raise BitscriptError("malformed signature: bogus r length")

        # Then r itself.
        rBytes = sigBytes[index : index + rLen]
        if der:
            try:
                canonicalPadding(rBytes)
            except BitscriptError as e:
                raise BitscriptError(
                    "malformed signature: bogus r padding or sign: {}".format(e)
                )

        index += rLen
        # 0x02. length already checked in previous if.
        if sigBytes[index] != DER_INTEGER:
            raise BitscriptError("malformed signature: no 2nd int marker")
        index += 1

        # Length of signature s.
        sLen = sigBytes[index]
        index += 1
        # s should be the rest of the bytes.
        if sLen <= 0 or sLen > len(sigBytes) - index:
            raise BitscriptError("malformed signature: bogus S length")

        # Then s itself.
        sBytes = sigBytes[index : index + sLen]
        if der:
            try:
                canonicalPadding(sBytes)
            except BitscriptError as e:
                raise BitscriptError(
                    "malformed signature: bogus s padding or sign: {}".format(e)
                )

        index += sLen
        # sanity check length parsing
        if index != len(sigBytes):
            raise BitscriptError(
                f"malformed signature: bad final length {index} != {len(sigBytes)}"
            )

        signature = Signature(ByteArray(rBytes).int(), ByteArray(sBytes).int())

        # FWIW the ecdsa spec states that r and s must be | 1, N - 1 |
        if signature.r < 1:
            raise BitscriptError("signature r is less than one")
        if signature.s < 1:
            raise BitscriptError("signature s is less than one")
        if signature.r >= Curve.N:
            raise BitscriptError("signature r is >= curve.N")
        if signature.s >= Curve.N:
            raise BitscriptError("signature s is >= curve.N")

        return signature
