"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details

Hashing functions used for scripts and addresses.
"""

import hashlib

from bitscript.util.encode import ByteArray, decodeBA


SHA256_SIZE = 32
RIPEMD160_SIZE = 20

# PKFUncompressed indicates the pay-to-pubkey address format is an
# uncompressed public key.
PKFUncompressed = 0

# PKFCompressed indicates the pay-to-pubkey address format is a
# compressed public key.
PKFCompressed = 1


def sha256(b):
    """
    A single SHA256 hash of the input.

    Args:
        b (byte-like): The bytes to hash.

    Returns:
        ByteArray: A 32-byte hash.
    """
    return ByteArray(hashlib.sha256(decodeBA(b)).digest())


def ripemd160(b):
    """
    A single RIPEMD160 hash of the input.

    Args:
        b (byte-like): The bytes to hash.

    Returns:
        ByteArray: A 20-byte hash.
    """
    h = hashlib.new("ripemd160")
    h.update(decodeBA(b))
    return ByteArray(h.digest())


def hash160(b):
    """
    A RIPEMD160 hash of the SHA256 hash of the input. This is the hash
    committed to by pay-to-pubkey-hash and pay-to-script-hash scripts.

    Args:
        b (byte-like): The bytes to hash.

    Returns:
        ByteArray: A 20-byte hash.
    """
    return ripemd160(sha256(b).b)


def hash256(b):
    """
    A double SHA256 hash of the input.

    Args:
        b (byte-like): The bytes to hash.

    Returns:
        ByteArray: A 32-byte hash.
    """
    return sha256(sha256(b).b)


def checksum(b):
    """
    This checksum is used to validate base-58 addresses.

    Args:
        b (byte-like): Bytes to obtain a checksum for.

    Returns:
        bytes: The first 4 bytes of a double sha256 hash of input.
    """
    return hash256(b).bytes()[:4]
