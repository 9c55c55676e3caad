"""
x86 encoding specifications.

The vendor's instruction tables describe the binary encoding of each
instruction with a short string such as `"REX.W + 0F C7 /1 m128"` or
`"EVEX.NDS.512.66.0F.W1 58 /r"`. This module parses these strings into
`EncodingSpecification` records, and computes which parts of an encoding can
hold operands.

    >>> spec = parse_encoding_specification('REX.W + 8B /r')
    >>> spec.legacy_prefixes.has_mandatory_rex_w_prefix
    True
    >>> hex(spec.opcode), spec.modrm_usage.name
    ('0x8b', 'FULL_MODRM')

An encoding specification has three parts:

1. Legacy prefixes (`66`, `67`, `F2`, `F3`, `REX`, `REX.W`), or a single
   VEX/EVEX prefix written as a dot-separated list of fields.
2. The opcode, one or more hexadecimal bytes.
3. Suffixes describing what follows the opcode, in this order: a register
   encoded in the opcode (`+rd`, `+i`), the use of the ModR/M byte (`/r`,
   `/0` to `/7`), `/vsib`, `/is4`, a memory operand size hint (`m128`),
   immediate values (`ib`, `iw`, `id`, `iq`) and a code offset (`cb`, `cw`,
   `cd`, `cp`).
"""
import collections
import logging
import re
from insndb.errors import ParseError, PipelineError
from insndb.model.encodings import EncodingSpecification, LegacyPrefixes
from insndb.model.encodings import VexPrefix, VexPrefixType, VexOperandUsage
from insndb.model.encodings import VectorSize, MandatoryPrefix, MapSelect
from insndb.model.encodings import VexWUsage, VsibUsage, ModRmUsage
from insndb.model.encodings import OperandInOpcode
from insndb.model.operands import OperandEncoding
from insndb.textformat import format_record
from typing import Counter, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING  # noqa
if TYPE_CHECKING:
    from insndb.model.instructions import InstructionSet  # noqa

logger = logging.getLogger(__name__)

# Tokens are separated by whitespace. A '+' is always a token of its own, so
# that '40+rd', '40 +rd', '40+ rd' and '40 + rd' produce the same tokens.
TOKEN_RE = re.compile(r'\+|[^\s+]+')

# Opcode bytes are always written in upper case. This keeps them apart from
# the lower-case suffixes 'cb' and 'cd'.
OPCODE_BYTE_RE = re.compile(r'[0-9A-F]{2}$')
OPCODE_EXTENSION_RE = re.compile(r'/([0-7])$')
MEMORY_HINT_RE = re.compile(r'm[0-9]+$')

# Legacy prefix tokens and the `LegacyPrefixes` field they set.
LEGACY_PREFIXES = {
        '66':    'has_mandatory_operand_size_override_prefix',
        '67':    'has_mandatory_address_size_override_prefix',
        'F2':    'has_mandatory_repne_prefix',
        'F3':    'has_mandatory_repe_prefix',
        'REX':   'has_mandatory_rex_w_prefix',
        'REX.W': 'has_mandatory_rex_w_prefix',
        }

# Fields of the VEX/EVEX prefix token, e.g. 'VEX.NDS.LIG.128.66.0F38.W1'.
VEX_PREFIX_TYPES = {
        'VEX':  VexPrefixType.VEX,
        'EVEX': VexPrefixType.EVEX,
        }
VEX_OPERAND_USAGES = {
        'NDS': VexOperandUsage.FIRST_SOURCE,
        'DDS': VexOperandUsage.SECOND_SOURCE,
        'NDD': VexOperandUsage.DESTINATION,
        }
VECTOR_SIZES = {
        'LIG': VectorSize.IGNORED,
        'LZ':  VectorSize.BIT_IS_ZERO,
        'L0':  VectorSize.BIT_IS_ZERO,
        'L1':  VectorSize.BIT_IS_ONE,
        '128': VectorSize.BITS_128,
        '256': VectorSize.BITS_256,
        '512': VectorSize.BITS_512,
        }
MANDATORY_PREFIXES = {
        '66': MandatoryPrefix.OPERAND_SIZE_OVERRIDE,
        'F2': MandatoryPrefix.REPNE,
        'F3': MandatoryPrefix.REPE,
        }
MAP_SELECTS = {
        '0F':   MapSelect.MAP_0F,
        '0F38': MapSelect.MAP_0F38,
        '0F3A': MapSelect.MAP_0F3A,
        }
VEX_W_USAGES = {
        'W0':  VexWUsage.IS_ZERO,
        'W1':  VexWUsage.IS_ONE,
        'WIG': VexWUsage.IGNORED,
        }

# Suffixes after '+'.
OPERANDS_IN_OPCODE = {
        'rb': OperandInOpcode.GENERAL_PURPOSE_REGISTER,
        'rw': OperandInOpcode.GENERAL_PURPOSE_REGISTER,
        'rd': OperandInOpcode.GENERAL_PURPOSE_REGISTER,
        'ro': OperandInOpcode.GENERAL_PURPOSE_REGISTER,
        'i':  OperandInOpcode.FP_STACK_REGISTER,
        }

# Immediate value and code offset tokens, and their sizes in bytes.
IMMEDIATE_VALUE_BYTES = {'ib': 1, 'iw': 2, 'id': 4, 'iq': 8, 'io': 8}
CODE_OFFSET_BYTES = {'cb': 1, 'cw': 2, 'cd': 4, 'cp': 6}

# Maximal number of opcode bytes, including the escape bytes of legacy
# opcode maps ('0F 38 F0').
MAX_LEGACY_OPCODE_BYTES = 3
MAX_VEX_OPCODE_BYTES = 2

# Classes of suffix tokens, in the order in which they must appear.
(SUFFIX_OPERAND_IN_OPCODE, SUFFIX_MODRM, SUFFIX_VSIB, SUFFIX_VEX_OPERAND,
 SUFFIX_MEMORY_HINT, SUFFIX_IMMEDIATE, SUFFIX_CODE_OFFSET) = range(7)


def tokenize(specification):
    # type: (str) -> List[str]
    """
    Split an encoding specification into tokens.

        >>> tokenize('REX.W + B8+ rd io')
        ['REX.W', '+', 'B8', '+', 'rd', 'io']
    """
    return TOKEN_RE.findall(specification)


def fold_opcode(opcode_bytes, prefix=0):
    # type: (Sequence[int], int) -> int
    """
    Combine a sequence of opcode bytes into a single integer.

    The `prefix` bytes (the escape bytes of a VEX opcode map) become the most
    significant bytes of the result.

        >>> hex(fold_opcode([0x0f, 0x38, 0xf0]))
        '0xf38f0'
        >>> hex(fold_opcode([0x99], MapSelect.MAP_0F38.value))
        '0xf3899'
    """
    opcode = prefix
    for byte in opcode_bytes:
        assert 0 <= byte <= 0xff
        opcode = (opcode << 8) | byte
    return opcode


class _Parser:
    """
    Parser for a single encoding specification string.

    The parser only collects values in local variables and builds the
    `EncodingSpecification` once the whole string has been accepted.
    """

    def __init__(self, specification):
        # type: (str) -> None
        self.specification = specification
        self.tokens = tokenize(specification)
        self.pos = 0

    def error(self, fmt, *args):
        # type: (str, *object) -> ParseError
        return ParseError(self.specification, fmt.format(*args))

    def peek(self):
        # type: () -> Optional[str]
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def take(self):
        # type: () -> str
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def parse(self):
        # type: () -> EncodingSpecification
        if not self.tokens:
            raise self.error('the specification is empty')

        first = self.tokens[0]
        legacy_prefixes = None  # type: Optional[LegacyPrefixes]
        vex_prefix = None  # type: Optional[VexPrefix]
        if first.split('.', 1)[0] in VEX_PREFIX_TYPES:
            vex_prefix = self.parse_vex_prefix(self.take())
            opcode_bytes = self.parse_opcode_bytes(MAX_VEX_OPCODE_BYTES)
            opcode = fold_opcode(opcode_bytes, vex_prefix.map_select.value)
        else:
            legacy_prefixes = self.parse_legacy_prefixes()
            opcode_bytes = self.parse_opcode_bytes(MAX_LEGACY_OPCODE_BYTES)
            opcode = fold_opcode(opcode_bytes)

        operand_in_opcode = OperandInOpcode.NONE
        modrm_usage = ModRmUsage.NONE
        modrm_opcode_extension = 0
        uses_vsib = False
        has_vex_operand_suffix = False
        immediate_value_bytes = []  # type: List[int]
        code_offset_bytes = 0

        last_suffix = -1
        while self.peek() is not None:
            token = self.take()
            extension = OPCODE_EXTENSION_RE.match(token)
            if token == '+':
                suffix = SUFFIX_OPERAND_IN_OPCODE
                operand_in_opcode = self.parse_operand_in_opcode()
            elif token == '/r':
                suffix = SUFFIX_MODRM
                modrm_usage = ModRmUsage.FULL_MODRM
            elif extension:
                suffix = SUFFIX_MODRM
                modrm_usage = ModRmUsage.OPCODE_EXTENSION_IN_MODRM
                modrm_opcode_extension = int(extension.group(1))
            elif token == '/vsib':
                suffix = SUFFIX_VSIB
                uses_vsib = True
            elif token == '/is4':
                suffix = SUFFIX_VEX_OPERAND
                has_vex_operand_suffix = True
            elif MEMORY_HINT_RE.match(token):
                # The size of the memory operand is described by the operand
                # itself.
                suffix = SUFFIX_MEMORY_HINT
            elif token in IMMEDIATE_VALUE_BYTES:
                suffix = SUFFIX_IMMEDIATE
                immediate_value_bytes.append(IMMEDIATE_VALUE_BYTES[token])
            elif token in CODE_OFFSET_BYTES:
                suffix = SUFFIX_CODE_OFFSET
                code_offset_bytes = CODE_OFFSET_BYTES[token]
            else:
                raise self.error('unexpected token "{}"', token)

            # Only immediate values can be repeated.
            if suffix < last_suffix or (
                    suffix == last_suffix and suffix != SUFFIX_IMMEDIATE):
                raise self.error('"{}" is out of place', token)
            last_suffix = suffix

        if (uses_vsib or has_vex_operand_suffix) and vex_prefix is None:
            raise self.error('/vsib and /is4 require a VEX or EVEX prefix')
        # The VSIB byte always follows a ModR/M byte.
        if uses_vsib and modrm_usage is ModRmUsage.NONE:
            modrm_usage = ModRmUsage.FULL_MODRM
        # The /is4 byte follows the ModR/M byte.
        if has_vex_operand_suffix and modrm_usage is ModRmUsage.NONE:
            raise self.error('/is4 requires a ModR/M byte')
        if (operand_in_opcode is not OperandInOpcode.NONE and
                modrm_usage is not ModRmUsage.NONE):
            raise self.error(
                    'a register in the opcode cannot be combined with a '
                    'ModR/M byte')

        if vex_prefix is not None:
            vex_prefix.has_vex_operand_suffix = has_vex_operand_suffix
            if uses_vsib:
                vex_prefix.vsib_usage = VsibUsage.USED
        return EncodingSpecification(
                legacy_prefixes=legacy_prefixes,
                vex_prefix=vex_prefix,
                opcode=opcode,
                modrm_usage=modrm_usage,
                modrm_opcode_extension=modrm_opcode_extension,
                operand_in_opcode=operand_in_opcode,
                immediate_value_bytes=immediate_value_bytes,
                code_offset_bytes=code_offset_bytes)

    def parse_legacy_prefixes(self):
        # type: () -> LegacyPrefixes
        prefixes = LegacyPrefixes()
        while self.peek() in LEGACY_PREFIXES:
            token = self.take()
            if getattr(prefixes, LEGACY_PREFIXES[token]):
                raise self.error('repeated prefix "{}"', token)
            setattr(prefixes, LEGACY_PREFIXES[token], True)
            # 'REX + 80' and 'REX.W + 8B'.
            if token.startswith('REX') and self.peek() == '+':
                self.take()
        return prefixes

    def parse_opcode_bytes(self, max_bytes):
        # type: (int) -> List[int]
        opcode_bytes = []  # type: List[int]
        while len(opcode_bytes) < max_bytes:
            token = self.peek()
            if token is None or not OPCODE_BYTE_RE.match(token):
                break
            opcode_bytes.append(int(self.take(), 16))
        if not opcode_bytes:
            token = self.peek()
            if token is None:
                raise self.error('the opcode is missing')
            raise self.error('expected an opcode, got "{}"', token)
        return opcode_bytes

    def parse_operand_in_opcode(self):
        # type: () -> OperandInOpcode
        token = self.peek()
        if token is None:
            raise self.error('"+" must be followed by a register kind')
        self.take()
        # '+r d' is a spelling of '+rd'.
        if token == 'r' and self.peek() in ('b', 'w', 'd', 'o'):
            token += self.take()
        if token not in OPERANDS_IN_OPCODE:
            raise self.error('invalid register in opcode "+{}"', token)
        return OPERANDS_IN_OPCODE[token]

    def parse_vex_prefix(self, token):
        # type: (str) -> VexPrefix
        """
        Parse the VEX or EVEX prefix token.

        The fields are positional: operand usage, vector size, mandatory
        prefix, opcode map and W bit. The first three are optional.
        """
        fields = collections.deque(token.split('.'))
        prefix_type = VEX_PREFIX_TYPES[fields.popleft()]

        vex_operand_usage = VexOperandUsage.NONE
        if fields and fields[0] in VEX_OPERAND_USAGES:
            vex_operand_usage = VEX_OPERAND_USAGES[fields.popleft()]
        vector_sizes = []  # type: List[str]
        while fields and fields[0] in VECTOR_SIZES:
            vector_sizes.append(fields.popleft())
        mandatory_prefix = MandatoryPrefix.NONE
        if fields and fields[0] in MANDATORY_PREFIXES:
            mandatory_prefix = MANDATORY_PREFIXES[fields.popleft()]
        if not fields or fields[0] in VEX_W_USAGES:
            raise self.error('"{}" does not specify an opcode map', token)
        if fields[0] not in MAP_SELECTS:
            raise self.error('unexpected field "{}" in "{}"', fields[0], token)
        map_select = MAP_SELECTS[fields.popleft()]
        if not fields:
            raise self.error('"{}" does not specify the W bit', token)
        if fields[0] not in VEX_W_USAGES:
            raise self.error('unexpected field "{}" in "{}"', fields[0], token)
        vex_w_usage = VEX_W_USAGES[fields.popleft()]
        if fields:
            raise self.error('unexpected field "{}" in "{}"', fields[0], token)

        return VexPrefix(
                prefix_type=prefix_type,
                vex_operand_usage=vex_operand_usage,
                vector_size=self.vector_size(prefix_type, vector_sizes),
                mandatory_prefix=mandatory_prefix,
                map_select=map_select,
                vex_w_usage=vex_w_usage)

    def vector_size(self, prefix_type, names):
        # type: (VexPrefixType, List[str]) -> VectorSize
        """
        Get the vector size from the vector size fields of the prefix.

        `LIG` may be followed by an explicit size, which then takes
        precedence, as in `VEX.DDS.LIG.128.66.0F38.W1`.
        """
        if not names:
            return VectorSize.IGNORED
        if len(names) > 2 or (len(names) == 2 and (
                names[0] != 'LIG' or
                not VECTOR_SIZES[names[1]].name.startswith('BITS_'))):
            raise self.error('conflicting vector sizes {}', '.'.join(names))
        size = VECTOR_SIZES[names[-1]]
        if size is VectorSize.BITS_512:
            if prefix_type is VexPrefixType.VEX:
                raise self.error('the VEX prefix does not allow 512-bit '
                                 'vectors')
            if 'LIG' in names:
                raise self.error('a vector size ignoring instruction can not '
                                 'use 512-bit vectors')
        return size


def parse_encoding_specification(specification):
    # type: (str) -> EncodingSpecification
    """
    Parse an encoding specification string.

    :raises ParseError: when the string is not a valid encoding
        specification. Every valid specification has an opcode.
    """
    return _Parser(specification).parse()


def available_encodings(specification):
    # type: (EncodingSpecification) -> Counter[OperandEncoding]
    """
    Get the multiset of operand encodings provided by `specification`.

    Each element of the result is a place in the binary encoding that can
    hold one operand of the instruction.

        >>> encodings = available_encodings(
        ...     parse_encoding_specification('VEX.NDS.LZ.F3.0F38.W1 F5 /r'))
        >>> sorted(e.name for e in encodings.elements())
        ['MODRM_REG', 'MODRM_RM', 'VEX_V']
        >>> encodings = available_encodings(
        ...         parse_encoding_specification('C8 iw ib'))
        >>> sorted(e.name for e in encodings.elements())
        ['IMMEDIATE_VALUE', 'IMMEDIATE_VALUE']
    """
    encodings = collections.Counter()  # type: Counter[OperandEncoding]
    vex_prefix = specification.vex_prefix
    uses_vsib = (vex_prefix is not None and
                 vex_prefix.vsib_usage is VsibUsage.USED)

    # With an opcode extension, ModR/M.reg is a part of the opcode and only
    # ModR/M.rm can hold an operand. A VSIB byte replaces ModR/M.rm.
    if specification.modrm_usage is ModRmUsage.FULL_MODRM:
        encodings[OperandEncoding.MODRM_REG] += 1
    if specification.modrm_usage is not ModRmUsage.NONE:
        if uses_vsib:
            encodings[OperandEncoding.VSIB] += 1
        else:
            encodings[OperandEncoding.MODRM_RM] += 1

    if vex_prefix is not None:
        if vex_prefix.vex_operand_usage is not VexOperandUsage.NONE:
            encodings[OperandEncoding.VEX_V] += 1
        if vex_prefix.has_vex_operand_suffix:
            encodings[OperandEncoding.VEX_SUFFIX] += 1
    if specification.operand_in_opcode is not OperandInOpcode.NONE:
        encodings[OperandEncoding.OPCODE] += 1
    for _ in specification.immediate_value_bytes:
        encodings[OperandEncoding.IMMEDIATE_VALUE] += 1
    return encodings


def parse_encoding_specifications(instruction_set):
    # type: (InstructionSet) -> None
    """
    Parse the raw encoding specification of all instructions.

    Instructions that already have a parsed specification, or that have no
    raw specification, are left alone.

    :raises PipelineError: when a raw specification can not be parsed.
    """
    parsed = 0
    for instruction in instruction_set:
        if (instruction.x86_encoding_specification is not None or
                not instruction.raw_encoding_specification):
            continue
        try:
            instruction.x86_encoding_specification = \
                parse_encoding_specification(
                        instruction.raw_encoding_specification)
        except ParseError as error:
            raise PipelineError('{}\n{}'.format(
                error, format_record(instruction))) from error
        parsed += 1
    logger.debug('parsed %d encoding specifications', parsed)
