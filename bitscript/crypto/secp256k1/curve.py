"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details

Pure Python secp256k1 public key handling. Keys are parsed and serialized in
the SEC formats, and a simple affine point multiplication is provided for
deriving public keys from private keys. Nothing here is constant-time, so it
is not suitable for signing.

References:
  [SEC1] Elliptic Curve Cryptography
    https://www.secg.org/sec1-v2.pdf

  [SEC2] Recommended Elliptic Curve Domain Parameters
    https://www.secg.org/sec2-v2.pdf

  [ANSI X9.62-1998] Public Key Cryptography For The Financial Services
    Industry: The Elliptic Curve Digital Signature Algorithm (ECDSA)
"""

from bitscript import BitscriptError
from bitscript.util.encode import ByteArray


COORDINATE_LEN = 32
PUBKEY_COMPRESSED_LEN = COORDINATE_LEN + 1
PUBKEY_LEN = 65
PUBKEY_COMPRESSED = 0x02  # 0x02 y_bit + x coord
PUBKEY_UNCOMPRESSED = 0x04  # 0x04 x coord + y coord


def isEven(i):
    return i % 2 == 0


class PublicKey:
    """
    PublicKey is a secp256k1 public key. It remembers whether it was parsed
    from, or should be written in, the compressed or uncompressed SEC format,
    so that serialize() reproduces the original encoding.
    """

    def __init__(self, curve, x, y, compressed=True):
        """
        Since this accepts arbitrary x and y coordinates, it allows creation
        of public keys that are not valid points on the secp256k1 curve.
        """
        self.curve = curve
        self.x = x
        self.y = y
        self.compressed = compressed

    def serializeCompressed(self):
        """
        serializeCompressed serializes a public key in the 33-byte compressed
        format.
        """
        fmt = PUBKEY_COMPRESSED
        if not isEven(self.y):
            fmt |= 0x1
        b = ByteArray(fmt)
        b += ByteArray(self.x, length=COORDINATE_LEN)
        if len(b) != PUBKEY_COMPRESSED_LEN:
            raise BitscriptError("invalid compressed pubkey length %d" % len(b))
        return b

    def serializeUncompressed(self):
        """
        serializeUncompressed serializes a public key in a 65-byte uncompressed
        format.
        """
        b = ByteArray(PUBKEY_UNCOMPRESSED)
        b += ByteArray(self.x, length=COORDINATE_LEN)
        b += ByteArray(self.y, length=COORDINATE_LEN)
        return b

    def serialize(self):
        """
        Serialize in the format the key was created with.

        Returns:
            ByteArray: 33 or 65 bytes.
        """
        if self.compressed:
            return self.serializeCompressed()
        return self.serializeUncompressed()

    def __eq__(self, other):
        """
        A PublicKey is equivalent to another if they both have the same X and Y
        coordinate and the same serialization format.
        """
        if not isinstance(other, PublicKey):
            return NotImplemented
        return (
            self.x == other.x
            and self.y == other.y
            and self.compressed == other.compressed
        )

    def __hash__(self):
        return hash((self.x, self.y, self.compressed))

    def __repr__(self):
        return f"PublicKey({self.serialize().hex()})"


class PrivateKey:
    """
    PrivateKey stores a secp256k1 private key and its corresponding public key.
    """

    def __init__(self, curve, k, x, y, compressed=True):
        self.key = k
        self.pub = PublicKey(curve, x, y, compressed)


def fromHex(hx):
    return int(hx, 16)


class Curve:
    def __init__(self):
        bitSize = 256
        p = fromHex("FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F")
        self.P = p
        self.N = fromHex(
            "FFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141"
        )
        self.B = 7
        self.Gx = fromHex(
            "79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798"
        )
        self.Gy = fromHex(
            "483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8"
        )
        self.BitSize = bitSize
        self.H = 1
        # Exponent for the square root mod P, valid since P = 3 mod 4.
        self.q = (p + 1) // 4

    def add(self, x1, y1, x2, y2):
        """
        add returns the sum of two affine points. The point at infinity is
        represented as (None, None).
        """
        if x1 is None:
            return x2, y2
        if x2 is None:
            return x1, y1
        P = self.P
        if x1 == x2:
            if (y1 + y2) % P == 0:
                return None, None
            # Tangent line for doubling. a = 0 for secp256k1.
            lam = 3 * x1 * x1 * pow(2 * y1, -1, P) % P
        else:
            lam = (y2 - y1) * pow(x2 - x1, -1, P) % P
        x3 = (lam * lam - x1 - x2) % P
        y3 = (lam * (x1 - x3) - y1) % P
        return x3, y3

    def scalarMult(self, Bx, By, k):
        """
        scalarMult returns k*(Bx, By) using double-and-add.
        """
        rx, ry = None, None
        ax, ay = Bx, By
        k = k % self.N
        while k:
            if k & 1:
                rx, ry = self.add(rx, ry, ax, ay)
            ax, ay = self.add(ax, ay, ax, ay)
            k >>= 1
        return rx, ry

    def scalarBaseMult(self, k):
        """
        scalarBaseMult returns k*G where G is the base point of the group and k
        is an integer.
        """
        return self.scalarMult(self.Gx, self.Gy, k)

    def publicKey(self, k, compressed=True):
        """
        Create a public key from integer private key k.
        """
        if k % self.N == 0:
            raise BitscriptError("private key is zero")
        x, y = self.scalarBaseMult(k)
        return PublicKey(self, x, y, compressed)

    def privateKey(self, k, compressed=True):
        """
        Create a PrivateKey from integer k.
        """
        pub = self.publicKey(k, compressed)
        return PrivateKey(self, ByteArray(k, length=32), pub.x, pub.y, compressed)

    def parsePubKey(self, pubKeyB):
        """
        parsePubKey parses a secp256k1 public key encoded according to the
        format specified by ANSI X9.62-1998, which means it is also compatible
        with the SEC (Standards for Efficient Cryptography) specification which
        is a subset of the former.  In other words, it supports the
        uncompressed and compressed formats as follows:

        Compressed:
          <format byte = 0x02/0x03><32-byte X coordinate>
        Uncompressed:
          <format byte = 0x04><32-byte X coordinate><32-byte Y coordinate>

        It does not support the hybrid format, however.
        """
        if len(pubKeyB) == 0:
            raise BitscriptError("empty pubkey")

        fmt = pubKeyB[0]
        ybit = (fmt & 0x1) == 0x1
        fmt &= 0xFF ^ 0x01

        ifunc = lambda b: ByteArray(b).int()

        pkLen = len(pubKeyB)
        if pkLen == PUBKEY_LEN:
            if PUBKEY_UNCOMPRESSED != pubKeyB[0]:
                raise BitscriptError("invalid magic in pubkey: %d" % pubKeyB[0])
            x = ifunc(pubKeyB[1:33])
            y = ifunc(pubKeyB[33:])
            compressed = False

        elif pkLen == PUBKEY_COMPRESSED_LEN:
            # format is 0x2 | solution, <X coordinate>
            # solution determines which solution of the curve we use.
            # / y^2 = x^3 + Curve.B
            if PUBKEY_COMPRESSED != fmt:
                raise BitscriptError(
                    "invalid magic in compressed pubkey: %d" % pubKeyB[0]
                )
            x = ifunc(pubKeyB[1:33])
            if x >= self.P:
                raise BitscriptError("pubkey X parameter is >= to P")
            y = self.decompressPoint(x, ybit)
            compressed = True
        else:  # wrong!
            raise BitscriptError("invalid pub key length %d" % len(pubKeyB))

        if x >= self.P:
            raise BitscriptError("pubkey X parameter is >= to P")
        if y >= self.P:
            raise BitscriptError("pubkey Y parameter is >= to P")
        if not self.isAffineOnCurve(x, y):
            raise BitscriptError("pubkey [%d, %d] isn't on secp256k1 curve" % (x, y))
        return PublicKey(self, x, y, compressed)

    def decompressPoint(self, x, ybit):
        """
        decompressPoint decompresses a point on the given curve given
        the X point and the solution to use.
        """
        # Y = +-sqrt(x^3 + B)
        x3 = x ** 3 + self.B

        # Now calculate sqrt mod p of x2 + B .
        # See https://bitcointalk.org/index.php?topic=162805.msg1712294#msg1712294
        y = pow(x3, self.q, self.P)

        if ybit == isEven(y):
            y = self.P - y
        if ybit == isEven(y):
            raise BitscriptError("ybit doesn't match oddness")
        return y

    def isAffineOnCurve(self, x, y):
        """
        isAffineOnCurve returns boolean if the point (x,y) is on the
        secp256k1 curve.
        """
        # y² = x³ + b
        y2 = y ** 2 % self.P

        x3 = (x ** 3 + self.B) % self.P

        return y2 == x3


# curve is a global instance of the KoblitzCurve that implements the curve
# parameters.
curve = Curve()
