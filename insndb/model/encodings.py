"""
Binary encodings of x86 instructions.

An `EncodingSpecification` is the structured form of the encoding column of
the vendor's instruction tables. It records the mandatory prefixes, the
opcode, and which parts of the instruction (ModR/M byte, VEX.vvvv, immediate
values, ...) are present and can hold operands.
"""
import enum
from . import Record
from typing import Iterable, List, Optional  # noqa


class VexPrefixType(enum.Enum):
    VEX = 1
    EVEX = 2


class VexOperandUsage(enum.Enum):
    """The operand encoded in the VEX.vvvv field."""
    NONE = 0
    #: `NDS`: the first source register.
    FIRST_SOURCE = 1
    #: `DDS`: the second source register.
    SECOND_SOURCE = 2
    #: `NDD`: the destination register.
    DESTINATION = 3


class VectorSize(enum.Enum):
    """The value of the VEX.L (or EVEX.L'L) bits."""
    #: `LIG`: the bits are ignored.
    IGNORED = 0
    #: `L0`/`LZ`: VEX.L must be zero.
    BIT_IS_ZERO = 1
    #: `L1`: VEX.L must be one.
    BIT_IS_ONE = 2
    BITS_128 = 3
    BITS_256 = 4
    BITS_512 = 5


class MandatoryPrefix(enum.Enum):
    """The mandatory prefix compressed into the VEX.pp bits."""
    NONE = 0
    OPERAND_SIZE_OVERRIDE = 0x66
    REPE = 0xf3
    REPNE = 0xf2


class MapSelect(enum.Enum):
    """The opcode map. The values are the legacy escape bytes."""
    MAP_0F = 0x0f
    MAP_0F38 = 0x0f38
    MAP_0F3A = 0x0f3a


class VexWUsage(enum.Enum):
    IGNORED = 0
    IS_ZERO = 1
    IS_ONE = 2


class VsibUsage(enum.Enum):
    UNUSED = 0
    USED = 1


class EvexBInterpretation(enum.Enum):
    """The meanings that the EVEX.b bit can have for an instruction."""
    ENABLES_32_BIT_BROADCAST = 1
    ENABLES_64_BIT_BROADCAST = 2
    ENABLES_STATIC_ROUNDING_CONTROL = 3
    ENABLES_SUPPRESS_ALL_EXCEPTIONS = 4


class OpmaskUsage(enum.Enum):
    NONE = 0
    OPTIONAL = 1
    REQUIRED = 2


class MaskingOperation(enum.Enum):
    NONE = 0
    MERGING_ONLY = 1
    MERGING_AND_ZEROING = 2


class ModRmUsage(enum.Enum):
    NONE = 0
    #: Both the reg and the r/m fields hold operands.
    FULL_MODRM = 1
    #: The reg field holds an opcode extension.
    OPCODE_EXTENSION_IN_MODRM = 2


class OperandInOpcode(enum.Enum):
    NONE = 0
    #: `+rb`, `+rw`, `+rd`, `+ro`.
    GENERAL_PURPOSE_REGISTER = 1
    #: `+i`.
    FP_STACK_REGISTER = 2


class LegacyPrefixes(Record):
    """Prefixes that must be present for a legacy-encoded instruction."""

    fields = ('has_mandatory_rex_w_prefix',
              'has_mandatory_operand_size_override_prefix',
              'has_mandatory_address_size_override_prefix',
              'has_mandatory_repne_prefix',
              'has_mandatory_repe_prefix')

    def __init__(
            self,
            has_mandatory_rex_w_prefix=False,                   # type: bool
            has_mandatory_operand_size_override_prefix=False,   # type: bool
            has_mandatory_address_size_override_prefix=False,   # type: bool
            has_mandatory_repne_prefix=False,                   # type: bool
            has_mandatory_repe_prefix=False                     # type: bool
            ):
        # type: (...) -> None
        self.has_mandatory_rex_w_prefix = has_mandatory_rex_w_prefix
        self.has_mandatory_operand_size_override_prefix = \
            has_mandatory_operand_size_override_prefix
        self.has_mandatory_address_size_override_prefix = \
            has_mandatory_address_size_override_prefix
        self.has_mandatory_repne_prefix = has_mandatory_repne_prefix
        self.has_mandatory_repe_prefix = has_mandatory_repe_prefix


class VexPrefix(Record):
    """
    The VEX or EVEX prefix of an instruction.

    The EVEX-only fields `evex_b_interpretations`, `opmask_usage` and
    `masking_operation` are not part of the encoding specification string;
    they are inferred from the operands by the passes in
    :py:mod:`insndb.x86.evex`.
    """

    fields = ('prefix_type', 'vex_operand_usage', 'vector_size',
              'mandatory_prefix', 'map_select', 'vex_w_usage',
              'has_vex_operand_suffix', 'vsib_usage',
              'evex_b_interpretations', 'opmask_usage', 'masking_operation')

    def __init__(
            self,
            prefix_type=VexPrefixType.VEX,              # type: VexPrefixType
            vex_operand_usage=VexOperandUsage.NONE,     # type: VexOperandUsage
            vector_size=VectorSize.IGNORED,             # type: VectorSize
            mandatory_prefix=MandatoryPrefix.NONE,      # type: MandatoryPrefix
            map_select=MapSelect.MAP_0F,                # type: MapSelect
            vex_w_usage=VexWUsage.IGNORED,              # type: VexWUsage
            has_vex_operand_suffix=False,               # type: bool
            vsib_usage=VsibUsage.UNUSED,                # type: VsibUsage
            evex_b_interpretations=(),  # type: Iterable[EvexBInterpretation]
            opmask_usage=OpmaskUsage.NONE,              # type: OpmaskUsage
            masking_operation=MaskingOperation.NONE  # type: MaskingOperation
            ):
        # type: (...) -> None
        self.prefix_type = prefix_type
        self.vex_operand_usage = vex_operand_usage
        self.vector_size = vector_size
        self.mandatory_prefix = mandatory_prefix
        self.map_select = map_select
        self.vex_w_usage = vex_w_usage
        self.has_vex_operand_suffix = has_vex_operand_suffix
        self.vsib_usage = vsib_usage
        self.evex_b_interpretations = list(
                evex_b_interpretations)  # type: List[EvexBInterpretation]
        self.opmask_usage = opmask_usage
        self.masking_operation = masking_operation

    @property
    def is_evex(self):
        # type: () -> bool
        return self.prefix_type is VexPrefixType.EVEX

    def add_evex_b_interpretation(self, interpretation):
        # type: (EvexBInterpretation) -> None
        """Add `interpretation` unless it is already listed."""
        if interpretation not in self.evex_b_interpretations:
            self.evex_b_interpretations.append(interpretation)


class EncodingSpecification(Record):
    """
    The parsed binary encoding of one instruction.

    Exactly one of `legacy_prefixes` and `vex_prefix` is set.

    :param opcode: The opcode bytes folded into one integer, including the
        escape bytes of the opcode map, e.g. `0x0f38f0`.
    :param modrm_opcode_extension: The value of ModR/M.reg when `modrm_usage`
        is `OPCODE_EXTENSION_IN_MODRM`.
    :param immediate_value_bytes: Sizes of the immediate values in bytes, in
        the order in which they follow the opcode.
    :param code_offset_bytes: Size of the relative code offset, or 0.
    """

    fields = ('legacy_prefixes', 'vex_prefix', 'opcode', 'modrm_usage',
              'modrm_opcode_extension', 'operand_in_opcode',
              'immediate_value_bytes', 'code_offset_bytes')
    hex_fields = ('opcode',)

    def __init__(
            self,
            legacy_prefixes=None,                   # type: LegacyPrefixes
            vex_prefix=None,                        # type: VexPrefix
            opcode=0,                               # type: int
            modrm_usage=ModRmUsage.NONE,            # type: ModRmUsage
            modrm_opcode_extension=0,               # type: int
            operand_in_opcode=OperandInOpcode.NONE,  # type: OperandInOpcode
            immediate_value_bytes=(),               # type: Iterable[int]
            code_offset_bytes=0                     # type: int
            ):
        # type: (...) -> None
        self.legacy_prefixes = \
            legacy_prefixes  # type: Optional[LegacyPrefixes]
        self.vex_prefix = vex_prefix  # type: Optional[VexPrefix]
        self.opcode = opcode
        self.modrm_usage = modrm_usage
        self.modrm_opcode_extension = modrm_opcode_extension
        self.operand_in_opcode = operand_in_opcode
        self.immediate_value_bytes = list(
                immediate_value_bytes)  # type: List[int]
        self.code_offset_bytes = code_offset_bytes

    @property
    def is_evex(self):
        # type: () -> bool
        return self.vex_prefix is not None and self.vex_prefix.is_evex
