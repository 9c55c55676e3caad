"""
EVEX-specific information.

The meaning of the EVEX.b bit and the use of the opmask registers are not
part of the encoding specification in the vendor's tables. They follow from
the operands in the vendor syntax: broadcast memory operands (`m64bcst`),
rounding control `{er}`, suppression of all exceptions `{sae}`, the opmask
register `{k1}` and zeroing `{z}`.
"""
import re
from insndb.model.encodings import EvexBInterpretation, MaskingOperation
from insndb.model.encodings import OpmaskUsage
from typing import Callable, Iterator, Tuple, TYPE_CHECKING  # noqa
if TYPE_CHECKING:
    from insndb.model.instructions import Instruction, InstructionSet  # noqa
    from insndb.model.operands import Operand  # noqa

# Suffixes of broadcast operand names, and the interpretation they imply.
BROADCAST_OPERAND_SUFFIXES = (
        ('m32bcst', EvexBInterpretation.ENABLES_32_BIT_BROADCAST),
        ('m64bcst', EvexBInterpretation.ENABLES_64_BIT_BROADCAST),
        )

# Operand tags, and the interpretation they imply.
EVEX_B_OPERAND_TAGS = (
        ('er', EvexBInterpretation.ENABLES_STATIC_ROUNDING_CONTROL),
        ('sae', EvexBInterpretation.ENABLES_SUPPRESS_ALL_EXCEPTIONS),
        )

OPMASK_TAG_RE = re.compile(r'k[0-9]$')
ZEROING_TAG = 'z'


def _evex_instructions(instruction_set):
    # type: (InstructionSet) -> Iterator[Instruction]
    for instruction in instruction_set:
        spec = instruction.x86_encoding_specification
        if spec is not None and spec.is_evex:
            yield instruction


def _evex_b_rules():
    # type: () -> Iterator[Tuple[Callable[[Operand], bool], EvexBInterpretation]]  # noqa
    """
    Get the EVEX.b rules in the order in which their interpretations are
    listed: broadcast first, then rounding control and exception suppression.
    """
    for suffix, interpretation in BROADCAST_OPERAND_SUFFIXES:
        yield (lambda op, s=suffix: op.name.endswith(s)), interpretation
    for tag, interpretation in EVEX_B_OPERAND_TAGS:
        yield (lambda op, t=tag: op.has_tag(t)), interpretation


def add_evex_b_interpretation(instruction_set):
    # type: (InstructionSet) -> None
    """
    Add the interpretations of the EVEX.b bit to EVEX-encoded instructions.

    Instructions that do not use EVEX.b keep an empty list of
    interpretations.
    """
    for instruction in _evex_instructions(instruction_set):
        vex_prefix = instruction.x86_encoding_specification.vex_prefix
        for matches, interpretation in _evex_b_rules():
            if any(matches(op) for op in instruction.operands):
                vex_prefix.add_evex_b_interpretation(interpretation)


def add_evex_opmask_usage(instruction_set):
    # type: (InstructionSet) -> None
    """
    Add the opmask usage and masking operation to EVEX-encoded instructions.

    An opmask tag (`k1`) without the zeroing tag (`z`) means that the opmask
    is required and only merging is supported. With the zeroing tag, the
    opmask is optional and both merging and zeroing are supported.
    Instructions without an opmask tag are not changed.
    """
    for instruction in _evex_instructions(instruction_set):
        tags = [tag for op in instruction.operands for tag in op.tags]
        if not any(OPMASK_TAG_RE.match(tag) for tag in tags):
            continue
        vex_prefix = instruction.x86_encoding_specification.vex_prefix
        if ZEROING_TAG in tags:
            vex_prefix.opmask_usage = OpmaskUsage.OPTIONAL
            vex_prefix.masking_operation = \
                MaskingOperation.MERGING_AND_ZEROING
        else:
            vex_prefix.opmask_usage = OpmaskUsage.REQUIRED
            vex_prefix.masking_operation = MaskingOperation.MERGING_ONLY
