"""
Copyright (c) 2019, Brian Stafford
Copyright (c) 2019-2020, The Decred developers
See LICENSE for details

The Script op-code container. A Script is an immutable sequence of op-codes,
where data pushes are PushData objects and every other op-code is a plain int.
"""

from bitscript import BitscriptError
from bitscript.crypto import opcode
from bitscript.util.encode import ByteArray


MAX_UINT16 = 0xFFFF
MAX_UINT32 = 0xFFFFFFFF


def canonicalPushOp(dataLen):
    """
    The smallest push op-code able to carry dataLen bytes.

    Args:
        dataLen (int): The length of the data to push.

    Returns:
        int: The op-code.
    """
    if dataLen == 0:
        return opcode.OP_0
    if dataLen < opcode.OP_PUSHDATA1:
        return opcode.OP_DATA_1 - 1 + dataLen
    if dataLen <= 0xFF:
        return opcode.OP_PUSHDATA1
    if dataLen <= MAX_UINT16:
        return opcode.OP_PUSHDATA2
    if dataLen <= MAX_UINT32:
        return opcode.OP_PUSHDATA4
    raise BitscriptError(f"data of length {dataLen} is too long to push")


def isPushOp(op):
    """
    Whether the op-code byte pushes data, OP_0 included.
    """
    return opcode.OP_0 <= op <= opcode.OP_PUSHDATA4


class PushData:
    """
    PushData is a data push op-code together with its data. The op-code is the
    smallest one that fits unless another is given, so that pushes parsed with
    a non-minimal op-code are written back exactly as they were read.
    """

    def __init__(self, data, op=None):
        """
        Args:
            data (byte-like): The pushed data.
            op (int): optional. The push op-code.
        """
        self._data = ByteArray(data).bytes()
        dataLen = len(self._data)
        if op is None:
            op = canonicalPushOp(dataLen)
        elif op == opcode.OP_0:
            if dataLen != 0:
                raise BitscriptError("OP_0 cannot push data")
        elif opcode.OP_DATA_1 <= op <= opcode.OP_DATA_75:
            if dataLen != op:
                raise BitscriptError(
                    f"{opcode.opcodeArray[op].name} cannot push {dataLen} bytes"
                )
        elif op == opcode.OP_PUSHDATA1:
            if dataLen > 0xFF:
                raise BitscriptError(f"OP_PUSHDATA1 cannot push {dataLen} bytes")
        elif op == opcode.OP_PUSHDATA2:
            if dataLen > MAX_UINT16:
                raise BitscriptError(f"OP_PUSHDATA2 cannot push {dataLen} bytes")
        elif op == opcode.OP_PUSHDATA4:
            if dataLen > MAX_UINT32:
                raise BitscriptError(f"OP_PUSHDATA4 cannot push {dataLen} bytes")
        else:
            raise BitscriptError(f"{op} is not a push op-code")
        self.op = op

    @property
    def data(self):
        """
        The pushed data. A copy is returned, so changing it does not change the
        PushData.

        Returns:
            ByteArray: The data.
        """
        return ByteArray(self._data)

    def __eq__(self, other):
        if not isinstance(other, PushData):
            return NotImplemented
        return self.op == other.op and self._data == other._data

    def __hash__(self):
        return hash((self.op, self._data))

    def __repr__(self):
        return f"PushData({self._data.hex()})"

    def isMinimal(self):
        """
        Whether the push uses the smallest op-code for its data.
        """
        return self.op == canonicalPushOp(len(self._data))

    def serialize(self):
        """
        The op-code, any length bytes, then the data.

        Returns:
            ByteArray: The serialized push.
        """
        b = ByteArray(self.op, length=1)
        dataLen = len(self._data)
        if self.op == opcode.OP_PUSHDATA1:
            b += ByteArray(dataLen, length=1)
        elif self.op == opcode.OP_PUSHDATA2:
            b += ByteArray(dataLen, length=2).littleEndian()
        elif self.op == opcode.OP_PUSHDATA4:
            b += ByteArray(dataLen, length=4).littleEndian()
        return b + self.data


class ScriptTokenizer:
    """
    ScriptTokenizer provides a facility for tokenizing serialized scripts.
    Each successive opcode is parsed with the next function, which returns
    False when iteration is complete, either due to successfully tokenizing the
    entire script or encountering a parse error.  In the case of failure, the
    err attribute holds the specific parse error.

    Upon successfully parsing an opcode, the opcode and data associated with it
    may be obtained via the opcode and data functions, respectively.
    """

    def __init__(self, script):
        self.script = ByteArray(script)
        self.offset = 0
        self.op = None
        self.d = ByteArray(b"")
        self.err = None

    def next(self):
        """
        next attempts to parse the next opcode and returns whether or not it was
        successful.  It will not be successful if invoked when already at the end of
        the script, a parse failure is encountered, or an associated error already
        exists due to a previous parse failure.

        Invoking this function when already at the end of the script is not
        considered an error and will simply return False.
        """
        if self.done():
            return False

        op = opcode.opcodeArray[self.script[self.offset]]
        if op.length == 1:
            # No additional data.  Note that some of the opcodes, notably OP_1NEGATE,
            # OP_0, and OP_[1-16] represent the data themselves.
            self.offset += 1
            self.op = op
            self.d = ByteArray(b"")
            return True
        elif op.length > 1:
            # Data pushes of specific lengths -- OP_DATA_[1-75].
            script = self.script[self.offset :]
            if len(script) < op.length:
                self.err = BitscriptError(
                    "opcode %s requires %d bytes, but script only has %d remaining"
                    % (op.name, op.length, len(script))
                )
                return False

            # Move the offset forward and set the opcode and data accordingly.
            self.offset += op.length
            self.op = op
            self.d = script[1 : op.length]
            return True
        elif op.length < 0:
            # Data pushes with parsed lengths -- OP_PUSHDATA{1,2,4}.
            script = self.script[self.offset + 1 :]
            if len(script) < -op.length:
                self.err = BitscriptError(
                    "opcode %s requires %d bytes, but script only has %d remaining"
                    % (op.name, -op.length, len(script))
                )
                return False

            # Next -length bytes are little endian length of data.
            dataLen = script[: -op.length].unLittle().int()

            # Move to the beginning of the data.
            script = script[-op.length :]

            # Disallow entries that do not fit script.
            if dataLen > len(script):
                self.err = BitscriptError(
                    "opcode %s pushes %d bytes, but script only has %d remaining"
                    % (op.name, dataLen, len(script))
                )
                return False

            # Move the offset forward and set the opcode and data accordingly.
            self.offset += 1 - op.length + dataLen
            self.op = op
            self.d = script[:dataLen]
            return True

        # The only remaining case is an opcode with length zero which is
        # impossible.
        raise AssertionError("unreachable")

    def done(self):
        """
        Script parsing has completed

        Returns:
            bool: True if script parsing complete.
        """
        return self.err is not None or self.offset >= len(self.script)

    def opcode(self):
        """
        The current step's opcode

        Returns:
            int: the opcode. See crypto.opcode for more information.
        """
        if self.op is None:
            return None
        return self.op.value

    def data(self):
        """
        Data returns the data associated with the most recently successfully parsed
        opcode.

        Returns:
            ByteArray: The data
        """
        return self.d

    def byteIndex(self):
        """
        The current offset into the full script that will be parsed next.

        Returns:
            int: the current offset
        """
        return self.offset


class Script:
    """
    Script is an immutable sequence of op-codes. Data pushes are PushData and
    all other op-codes are ints. Two scripts are equal when their op-codes are
    equal, which for parsed scripts means their serializations are equal.
    """

    def __init__(self, ops=None):
        """
        Args:
            ops (list(int or PushData)): optional. The op-codes. An int OP_0 is
                stored as an empty PushData, since OP_0 pushes an empty item.
        """
        parsed = []
        for op in ops or []:
            if isinstance(op, PushData):
                parsed.append(op)
                continue
            if not isinstance(op, int) or op < 0 or op > 0xFF:
                raise BitscriptError(f"invalid op-code {op!r}")
            if op == opcode.OP_0:
                parsed.append(PushData(b"", opcode.OP_0))
                continue
            if isPushOp(op):
                raise BitscriptError(
                    f"{opcode.opcodeArray[op].name} must be given as PushData"
                )
            parsed.append(op)
        self.ops = tuple(parsed)

    @staticmethod
    def parse(b):
        """
        Parse a serialized script.

        Args:
            b (byte-like): The serialized script.

        Returns:
            Script: The parsed script.
        """
        tokenizer = ScriptTokenizer(b)
        ops = []
        while tokenizer.next():
            op = tokenizer.opcode()
            if isPushOp(op):
                ops.append(PushData(tokenizer.data(), op))
            else:
                ops.append(op)
        if tokenizer.err is not None:
            raise tokenizer.err
        return Script(ops)

    @staticmethod
    def fromAsm(asm):
        """
        Build a script from a space-separated disassembly as produced by asm.
        Op-code names may omit the OP_ prefix. Hex tokens are pushed with the
        smallest push op-code.

        Args:
            asm (str): The disassembly.

        Returns:
            Script: The script.
        """
        ops = []
        for token in asm.split():
            name = token if token.startswith("OP_") else "OP_" + token
            if hasattr(opcode, name) and isinstance(getattr(opcode, name), int):
                ops.append(getattr(opcode, name))
                continue
            try:
                ops.append(PushData(ByteArray(token)))
            except ValueError:
                raise BitscriptError(f"unknown token {token}")
        return Script(ops)

    def asm(self):
        """
        A human-readable disassembly. Pushes are shown as hex, except that an
        empty push is shown as OP_0.

        Returns:
            str: The disassembly.
        """
        tokens = []
        for op in self.ops:
            if isinstance(op, PushData):
                tokens.append(op.data.hex() if len(op.data) else "OP_0")
            else:
                tokens.append(opcode.opcodeArray[op].name)
        return " ".join(tokens)

    def serialize(self):
        """
        Serialize the script.

        Returns:
            ByteArray: The serialized script.
        """
        b = ByteArray(b"")
        for op in self.ops:
            if isinstance(op, PushData):
                b += op.serialize()
            else:
                b += ByteArray(op, length=1)
        return b

    def isPushOnly(self):
        """
        Whether every op-code in the script is a data push.
        """
        return all(isinstance(op, PushData) for op in self.ops)

    def __eq__(self, other):
        if not isinstance(other, Script):
            return NotImplemented
        return self.ops == other.ops

    def __hash__(self):
        return hash(self.ops)

    def __len__(self):
        return len(self.ops)

    def __iter__(self):
        return iter(self.ops)

    def __getitem__(self, k):
        if isinstance(k, slice):
            return Script(self.ops[k])
        return self.ops[k]

    def __add__(self, other):
        return Script(self.ops + tuple(other))

    def __repr__(self):
        return f"Script({self.asm()})"
