"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details

Bitcoin payment addresses.
"""

from typing import Tuple, Union

from base58 import b58decode, b58encode

from bitscript import BitscriptError
from bitscript.crypto import crypto
from bitscript.crypto.crypto import RIPEMD160_SIZE, PKFCompressed, PKFUncompressed
from bitscript.crypto.secp256k1.curve import curve as Secp256k1
from bitscript.util.encode import ByteArray


class Address:
    """
    A parent class for all addresses. This class specifies an API that all
    child classes should implement.
    """

    def __init__(self, netParams):
        """
        Args:
            netParams (module): The network parameters.
        """
        self.netName = netParams.Name

    def __eq__(self, a: "Address"):
        """Check that other address is equivalent to this address."""
        raise NotImplementedError("__eq__ must be implemented by child class")

    def __hash__(self):
        return hash((type(self).__name__, self.string()))

    def __repr__(self):
        return f"{type(self).__name__}({self.string()})"

    def string(self) -> str:
        """
        The base-58 encoding of the address.

        Returns:
            str: The encoded address.
        """
        raise NotImplementedError("string must be implemented by child class")

    def scriptAddress(self) -> ByteArray:
        """
        The raw bytes of the address to be used when inserting the address into
        a txout's script.

        Returns:
            ByteArray: The script address.
        """
        raise NotImplementedError("scriptAddress must be implemented by child class")

    def isForNet(self, netParams: object) -> bool:
        """
        isForNet returns whether or not the address is associated with the
        passed bitcoin network.

        Returns:
            bool: True if address is for the supplied network.
        """
        raise NotImplementedError("isForNet must be implemented by child class")


class AddressPubKeyHash(Address):
    """
    Address based on a pubkey hash.
    """

    def __init__(self, pkHash: ByteArray, netParams: object):
        """
        Args:
            pkHash (ByteArray): The hashed pubkey.
            netParams (module): The network parameters.
        """
        super().__init__(netParams)
        pkh_len = len(pkHash)
        if pkh_len != RIPEMD160_SIZE:
            raise BitscriptError(
                f"AddressPubKeyHash expected {RIPEMD160_SIZE} bytes, got {pkh_len}"
            )

        self.netID = netParams.PubKeyHashAddrID
        self.pkHash = ByteArray(pkHash)

    def __eq__(self, a: Union[str, Address]) -> bool:
        """Check that other address is equivalent to this address."""
        if isinstance(a, str):
            return a == self.string()
        elif isinstance(a, AddressPubKeyHash):
            return a.pkHash == self.pkHash and a.netID == self.netID
        return False

    __hash__ = Address.__hash__

    def string(self) -> str:
        """
        A base-58 encoding of the pubkey hash.

        Returns:
            str: The encoded address.
        """
        return encodeAddressBase58(self.pkHash, self.netID)

    def scriptAddress(self) -> ByteArray:
        """
        The raw bytes of the address to be used when inserting the address into
        a txout's script.

        Returns:
            ByteArray: The script address.
        """
        return self.pkHash.copy()

    def isForNet(self, netParams: object) -> bool:
        return self.netID == netParams.PubKeyHashAddrID


class AddressScriptHash(Address):
    """
    AddressScriptHash is an Address for a pay-to-script-hash (P2SH) transaction.
    """

    def __init__(self, scriptHash, netParams):
        if len(scriptHash) != RIPEMD160_SIZE:
            raise BitscriptError(f"incorrect script hash length {len(scriptHash)}")

        super().__init__(netParams)
        self.netID = netParams.ScriptHashAddrID
        self.scriptHash = ByteArray(scriptHash)

    @staticmethod
    def fromScript(script, netParams):
        """
        Create a new AddressScriptHash from a serialized redeem script.

        Args:
            script (byte-like): the redeem script
            netParams (module): the network parameters

        Returns:
            AddressScriptHash: An address object.
        """
        return AddressScriptHash(crypto.hash160(script), netParams)

    def __eq__(self, a: Union[str, Address]) -> bool:
        """Check that other address is equivalent to this address."""
        if isinstance(a, str):
            return a == self.string()
        elif isinstance(a, AddressScriptHash):
            return a.scriptHash == self.scriptHash and a.netID == self.netID
        return False

    __hash__ = Address.__hash__

    def string(self) -> str:
        """
        A base-58 encoding of the script hash.

        Returns:
            str: The encoded address.
        """
        return encodeAddressBase58(self.scriptHash, self.netID)

    def scriptAddress(self) -> ByteArray:
        """
        The raw bytes of the address to be used when inserting the address into
        a txout's script.

        Returns:
            ByteArray: The script address.
        """
        return self.scriptHash.copy()

    def isForNet(self, netParams: object) -> bool:
        return self.netID == netParams.ScriptHashAddrID


class AddressPubKey(Address):
    """
    An address based on an unhashed public key.
    """

    def __init__(self, serializedPubkey, netParams):
        """
        Args:
            serializedPubkey (ByteArray): Corresponds to the serialized
                compressed or uncompressed public key.
            netParams (module): The network parameters.
        """
        super().__init__(netParams)

        pubkey = Secp256k1.parsePubKey(serializedPubkey)
        # Set the format of the pubkey.  We already know the pubkey is valid
        # since it parsed above, so the parsed key knows its format.
        self.pubkeyFormat = PKFCompressed if pubkey.compressed else PKFUncompressed
        self.pubkey = pubkey
        self.netParams = netParams
        self.pubKeyHashID = netParams.PubKeyHashAddrID

    def __eq__(self, a: Union[str, Address]) -> bool:
        """Check that other address is equivalent to this address."""
        if isinstance(a, str):
            return a == self.string()
        elif isinstance(a, AddressPubKey):
            return (
                a.pubkey == self.pubkey and a.pubKeyHashID == self.pubKeyHashID
            )
        return False

    __hash__ = Address.__hash__

    def serialize(self) -> ByteArray:
        """
        The serialization of the public key in the format it was parsed with.

        Returns:
            ByteArray: The serialized pubkey.
        """
        return self.pubkey.serialize()

    def string(self) -> str:
        """
        A hex encoding of the serialized public key.

        Returns:
            str: The hex-encoded pubkey.
        """
        return self.serialize().hex()

    def scriptAddress(self) -> ByteArray:
        return self.serialize()

    def isForNet(self, netParams: object) -> bool:
        return self.pubKeyHashID == netParams.PubKeyHashAddrID

    def addressPubKeyHash(self) -> AddressPubKeyHash:
        """
        Convert to an AddressPubKeyHash paying to the hash of this pubkey.

        Returns:
            AddressPubKeyHash: The pubkey hash address.
        """
        return AddressPubKeyHash(crypto.hash160(self.serialize()), self.netParams)


def encodeAddressBase58(k, netID):
    """
    Base-58 encode the number, with the netID prepended byte-wise.

    Args:
        k (ByteArray): The pubkey-hash or script-hash.
        netID (int): The addresses network encoding ID.

    Returns:
        string: Base-58 encoded address.
    """
    b = ByteArray(netID, length=1)
    b += k
    b += crypto.checksum(b.b)
    return b58encode(b.bytes()).decode()


def decodeAddress(addr: str, netParams: object) -> Address:
    """
    DecodeAddress decodes the base-58 encoded address and returns the Address if
    it is a valid encoding for a known address type and is for the provided
    network. Hex-encoded public keys are decoded as AddressPubKey.

    Args:
        addr (str): Base-58 encoded address.
        netParams (module): The network parameters.
    """
    # Serialized public keys are either 65 bytes (130 hex chars) if
    # uncompressed or 33 bytes (66 hex chars) if compressed.
    if len(addr) == 130 or len(addr) == 66:
        try:
            serializedPubKey = ByteArray(addr)
        except ValueError:
            raise BitscriptError(f"invalid pubkey hex {addr}")
        return AddressPubKey(serializedPubKey, netParams)

    hash160, netID = b58CheckDecode(addr)

    if len(hash160) == RIPEMD160_SIZE:  # P2PKH or P2SH
        isP2PKH = netID == netParams.PubKeyHashAddrID
        isP2SH = netID == netParams.ScriptHashAddrID
        if isP2PKH and isP2SH:
            raise BitscriptError("address collision")
        elif isP2PKH:
            return AddressPubKeyHash(hash160, netParams)
        elif isP2SH:
            return AddressScriptHash(hash160, netParams)
        else:
            raise BitscriptError("unknown address type")

    raise BitscriptError(f"decoded address is of unknown size {len(hash160)}")


def b58CheckDecode(s: str) -> Tuple[ByteArray, int]:
    """
    Decode the base-58 encoded address, parsing the version byte and the
    payload. An exception is raised if the checksum is invalid or missing.

    Args:
        s (str): The base-58 encoded address.

    Returns:
        ByteArray: Decoded bytes minus the leading version and trailing
            checksum.
        int: The version (leading) byte.
    """
    try:
        decoded = b58decode(s)
    except ValueError as e:
        raise BitscriptError(f"invalid base-58 string: {e}")
    if len(decoded) < 5:
        raise BitscriptError("decoded lacking version/checksum")
    version = decoded[0]
    included_cksum = decoded[len(decoded) - 4 :]
    computed_cksum = crypto.checksum(decoded[: len(decoded) - 4])
    if included_cksum != computed_cksum:
        raise BitscriptError("checksum error")
    payload = ByteArray(decoded[1 : len(decoded) - 4])
    return payload, version
