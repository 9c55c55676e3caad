"""Classes for describing instructions and instruction sets."""
from . import Record
from .operands import Operand  # noqa
from .encodings import EncodingSpecification  # noqa
from typing import Iterable, Iterator, List, Optional  # noqa


class VendorSyntax(Record):
    """
    The assembly syntax of an instruction as written in the vendor's manual.

    The order of `operands` is the order of the arguments in the syntax.
    """

    fields = ('mnemonic', 'operands')

    def __init__(self, mnemonic='', operands=()):
        # type: (str, Iterable[Operand]) -> None
        self.mnemonic = mnemonic
        self.operands = list(operands)  # type: List[Operand]

    def __str__(self):
        # type: () -> str
        if not self.operands:
            return self.mnemonic
        return '{} {}'.format(
                self.mnemonic, ', '.join(str(op) for op in self.operands))


class Instruction(Record):
    """
    One form of an instruction.

    The vendor syntax and the encoding specification are rewritten in place
    by the cleanup passes, which may also add new instructions to the
    instruction set.

    :param raw_encoding_specification: The encoding as written in the
        vendor's manual, e.g. `"VEX.NDS.128.66.0F.WIG 58 /r"`.
    :param x86_encoding_specification: The parsed form of
        `raw_encoding_specification`, or `None` if it was not parsed yet.
    """

    fields = ('description', 'llvm_mnemonic', 'vendor_syntax',
              'feature_name', 'available_in_64_bit', 'legacy_instruction',
              'encoding_scheme', 'binary_encoding_size_bytes',
              'raw_encoding_specification', 'x86_encoding_specification')

    def __init__(
            self,
            description='',                     # type: str
            llvm_mnemonic='',                   # type: str
            vendor_syntax=None,                 # type: VendorSyntax
            feature_name='',                    # type: str
            available_in_64_bit=False,          # type: bool
            legacy_instruction=False,           # type: bool
            encoding_scheme='',                 # type: str
            binary_encoding_size_bytes=0,       # type: int
            raw_encoding_specification='',      # type: str
            x86_encoding_specification=None     # type: EncodingSpecification
            ):
        # type: (...) -> None
        self.description = description
        self.llvm_mnemonic = llvm_mnemonic
        self.vendor_syntax = vendor_syntax or VendorSyntax()
        self.feature_name = feature_name
        self.available_in_64_bit = available_in_64_bit
        self.legacy_instruction = legacy_instruction
        self.encoding_scheme = encoding_scheme
        self.binary_encoding_size_bytes = binary_encoding_size_bytes
        self.raw_encoding_specification = raw_encoding_specification
        self.x86_encoding_specification = \
            x86_encoding_specification  # type: Optional[EncodingSpecification]

    @property
    def operands(self):
        # type: () -> List[Operand]
        return self.vendor_syntax.operands

    def __str__(self):
        # type: () -> str
        return str(self.vendor_syntax)


class InstructionSet(Record):
    """
    An ordered collection of instructions.

    An instruction set is owned by the caller building it; a
    `TransformPipeline` run mutates it in place.
    """

    fields = ('instructions',)

    def __init__(self, instructions=()):
        # type: (Iterable[Instruction]) -> None
        self.instructions = list(instructions)  # type: List[Instruction]

    def add(self, instruction):
        # type: (Instruction) -> Instruction
        """Append `instruction` and return it."""
        self.instructions.append(instruction)
        return instruction

    def __len__(self):
        # type: () -> int
        return len(self.instructions)

    def __iter__(self):
        # type: () -> Iterator[Instruction]
        return iter(self.instructions)
