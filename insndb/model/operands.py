"""Classes for describing instruction operands."""
import enum
from . import Record
from typing import Iterable, List  # noqa


class AddressingMode(enum.Enum):
    """How the value of an operand is addressed."""
    #: Not specified yet.
    ANY = 0
    #: The operand is not addressed, e.g. an immediate value.
    NO_ADDRESSING = 1
    #: The operand is a register.
    DIRECT = 2
    #: The operand is in memory.
    INDIRECT = 3
    #: The operand is in memory, addressed through a VSIB byte.
    INDIRECT_WITH_VSIB = 4
    #: The operand is an address computed like a memory operand.
    LOAD_EFFECTIVE_ADDRESS = 5
    #: The operand may be either a register or a memory location. Operands
    #: in this mode are split into separate instructions by the alternatives
    #: pass.
    ANY_WITH_FLEXIBLE_REGISTERS = 6


class OperandEncoding(enum.Enum):
    """The place in the binary encoding that holds an operand."""
    ANY = 0
    #: Implied by the opcode, e.g. AL in `ADD AL, imm8`.
    IMPLICIT = 1
    #: The reg field of the ModR/M byte.
    MODRM_REG = 2
    #: The r/m field of the ModR/M byte, possibly with a SIB byte.
    MODRM_RM = 3
    #: The low three bits of the opcode.
    OPCODE = 4
    #: An immediate value following the opcode.
    IMMEDIATE_VALUE = 5
    #: The vvvv field of the VEX/EVEX prefix.
    VEX_V = 6
    #: The upper four bits of the `/is4` suffix byte.
    VEX_SUFFIX = 7
    #: A vector of memory addresses in the VSIB byte.
    VSIB = 8


class Usage(enum.Enum):
    """Whether an instruction reads or writes an operand."""
    UNKNOWN = 0
    READ = 1
    WRITE = 2
    READ_WRITE = 3


class Operand(Record):
    """
    One operand of the vendor syntax of an instruction.

    :param name: Name of the operand in the vendor syntax, e.g. `r/m8` or
        `xmm3/m128/m64bcst`.
    :param addressing_mode: An `AddressingMode`.
    :param encoding: An `OperandEncoding`.
    :param value_size_bits: Size of the operand value in bits.
    :param usage: A `Usage`.
    :param tags: Markers written next to the operand, such as the opmask
        register `k1`, zeroing `z`, rounding control `er` or suppression of
        all exceptions `sae`.
    """

    fields = ('name', 'addressing_mode', 'encoding', 'value_size_bits',
              'usage', 'tags')

    def __init__(
            self,
            name='',                                # type: str
            addressing_mode=AddressingMode.ANY,     # type: AddressingMode
            encoding=OperandEncoding.ANY,           # type: OperandEncoding
            value_size_bits=0,                      # type: int
            usage=Usage.UNKNOWN,                    # type: Usage
            tags=()                                 # type: Iterable[str]
            ):
        # type: (...) -> None
        self.name = name
        self.addressing_mode = addressing_mode
        self.encoding = encoding
        self.value_size_bits = value_size_bits
        self.usage = usage
        self.tags = []  # type: List[str]
        for tag in tags:
            self.add_tag(tag)

    def add_tag(self, tag):
        # type: (str) -> None
        """Add `tag` unless the operand already has it."""
        if tag not in self.tags:
            self.tags.append(tag)

    def has_tag(self, tag):
        # type: (str) -> bool
        return tag in self.tags

    def __str__(self):
        # type: () -> str
        if not self.tags:
            return self.name
        return '{} {}'.format(
                self.name, ' '.join('{' + tag + '}' for tag in self.tags))
