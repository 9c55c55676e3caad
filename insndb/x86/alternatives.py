"""
Operand alternatives.

The vendor syntax uses a single operand such as `r/m8` or `xmm2/m128` for an
operand that can be either a register or a memory location. Both forms share
the same encoding, but they behave differently, so the instruction database
lists them as separate instructions.
"""
import logging
from insndb.errors import ValidationError
from insndb.model.operands import AddressingMode, OperandEncoding
from insndb.textformat import format_record
from typing import Dict, List, NamedTuple, Tuple, TYPE_CHECKING  # noqa
if TYPE_CHECKING:
    from insndb.model.instructions import Instruction, InstructionSet  # noqa

logger = logging.getLogger(__name__)


# The new name, addressing mode and value size of an operand.
OperandAlternative = NamedTuple('OperandAlternative', [
        ('name', str),
        ('addressing_mode', AddressingMode),
        ('value_size_bits', int)])


def _register(name, size):
    # type: (str, int) -> OperandAlternative
    return OperandAlternative(name, AddressingMode.DIRECT, size)


def _memory(name, size):
    # type: (str, int) -> OperandAlternative
    return OperandAlternative(name, AddressingMode.INDIRECT, size)


# Alternatives indexed by the name of the operand. The first alternative
# replaces the operand in the existing instruction, all other alternatives
# produce new instructions.
#
# Broadcast operands have a third alternative for the broadcasted memory
# operand; its size is the size of the broadcasted element.
OPERAND_ALTERNATIVES = {
        'mm/m32':    (_register('mm1', 32), _memory('m32', 32)),
        'mm/m64':    (_register('mm1', 64), _memory('m64', 64)),
        'mm2/m64':   (_register('mm2', 64), _memory('m64', 64)),
        'r/m8':      (_register('r8', 8), _memory('m8', 8)),
        'r/m16':     (_register('r16', 16), _memory('m16', 16)),
        'r/m32':     (_register('r32', 32), _memory('m32', 32)),
        'r/m64':     (_register('r64', 64), _memory('m64', 64)),
        'r32/m8':    (_register('r32', 32), _memory('m8', 8)),
        'r32/m16':   (_register('r32', 32), _memory('m16', 16)),
        'r64/m16':   (_register('r64', 64), _memory('m16', 16)),
        'reg/m8':    (_register('r32', 32), _memory('m8', 8)),
        'reg/m16':   (_register('r32', 32), _memory('m16', 16)),
        'reg/m32':   (_register('r32', 32), _memory('m32', 32)),
        'xmm2/m8':   (_register('xmm2', 8), _memory('m8', 8)),
        'xmm2/m16':  (_register('xmm2', 16), _memory('m16', 16)),
        'xmm/m32':   (_register('xmm2', 32), _memory('m32', 32)),
        'xmm1/m32':  (_register('xmm1', 32), _memory('m32', 32)),
        'xmm2/m32':  (_register('xmm2', 32), _memory('m32', 32)),
        'xmm3/m32':  (_register('xmm3', 32), _memory('m32', 32)),
        'xmm/m64':   (_register('xmm2', 64), _memory('m64', 64)),
        'xmm1/m64':  (_register('xmm1', 64), _memory('m64', 64)),
        'xmm2/m64':  (_register('xmm2', 64), _memory('m64', 64)),
        'xmm3/m64':  (_register('xmm3', 64), _memory('m64', 64)),
        'xmm/m128':  (_register('xmm2', 128), _memory('m128', 128)),
        'xmm1/m128': (_register('xmm1', 128), _memory('m128', 128)),
        'xmm2/m128': (_register('xmm2', 128), _memory('m128', 128)),
        'xmm3/m128': (_register('xmm3', 128), _memory('m128', 128)),
        'xmm2/m256': (_register('xmm2', 256), _memory('m256', 256)),
        'xmm3/m256': (_register('xmm3', 256), _memory('m256', 256)),
        'ymm2/m256': (_register('ymm2', 256), _memory('m256', 256)),
        'ymm3/m256': (_register('ymm3', 256), _memory('m256', 256)),
        'zmm2/m512': (_register('zmm2', 512), _memory('m512', 512)),
        'zmm3/m512': (_register('zmm3', 512), _memory('m512', 512)),
        'xmm2/m128/m32bcst': (_register('xmm2', 128), _memory('m128', 128),
                              _memory('m32bcst', 32)),
        'xmm3/m128/m32bcst': (_register('xmm3', 128), _memory('m128', 128),
                              _memory('m32bcst', 32)),
        'xmm2/m128/m64bcst': (_register('xmm2', 128), _memory('m128', 128),
                              _memory('m64bcst', 64)),
        'xmm3/m128/m64bcst': (_register('xmm3', 128), _memory('m128', 128),
                              _memory('m64bcst', 64)),
        'ymm2/m256/m32bcst': (_register('ymm2', 256), _memory('m256', 256),
                              _memory('m32bcst', 32)),
        'ymm3/m256/m32bcst': (_register('ymm3', 256), _memory('m256', 256),
                              _memory('m32bcst', 32)),
        'ymm2/m256/m64bcst': (_register('ymm2', 256), _memory('m256', 256),
                              _memory('m64bcst', 64)),
        'ymm3/m256/m64bcst': (_register('ymm3', 256), _memory('m256', 256),
                              _memory('m64bcst', 64)),
        'zmm2/m512/m32bcst': (_register('zmm2', 512), _memory('m512', 512),
                              _memory('m32bcst', 32)),
        'zmm3/m512/m32bcst': (_register('zmm3', 512), _memory('m512', 512),
                              _memory('m32bcst', 32)),
        'zmm2/m512/m64bcst': (_register('zmm2', 512), _memory('m512', 512),
                              _memory('m64bcst', 64)),
        'zmm3/m512/m64bcst': (_register('zmm3', 512), _memory('m512', 512),
                              _memory('m64bcst', 64)),
        'bnd1/m128': (_register('bnd1', 128), _memory('m128', 128)),
        'bnd2/m128': (_register('bnd2', 128), _memory('m128', 128)),
        'k2/m8':     (_register('k2', 8), _memory('m8', 8)),
        'k2/m16':    (_register('k2', 16), _memory('m16', 16)),
        'k2/m32':    (_register('k2', 32), _memory('m32', 32)),
        'k2/m64':    (_register('k2', 64), _memory('m64', 64)),
        }  # type: Dict[str, Tuple[OperandAlternative, ...]]


def _apply_alternative(instruction, operand_index, alternative):
    # type: (Instruction, int, OperandAlternative) -> None
    operand = instruction.operands[operand_index]
    operand.name = alternative.name
    operand.addressing_mode = alternative.addressing_mode
    operand.value_size_bits = alternative.value_size_bits


def add_alternatives(instruction_set):
    # type: (InstructionSet) -> None
    """
    Split instructions with register/memory operands.

    For each operand listed in `OPERAND_ALTERNATIVES`, the existing
    instruction gets the first alternative and a copy of the instruction is
    added for each of the other alternatives. The copies are added after all
    instructions were processed, so they are not split again.

    :raises ValidationError: when an operand with alternatives is not encoded
        in ModR/M.rm or does not use the flexible addressing mode. These are
        the only operands whose encoding allows both registers and memory.
    """
    new_instructions = []  # type: List[Instruction]
    for instruction in list(instruction_set):
        for operand_index, operand in enumerate(instruction.operands):
            alternatives = OPERAND_ALTERNATIVES.get(operand.name)
            if alternatives is None:
                continue
            if operand.encoding is not OperandEncoding.MODRM_RM:
                raise ValidationError(
                        'Operand "{}" with alternatives does not use the '
                        'modrm.rm encoding:\n{}'.format(
                            operand.name, format_record(instruction)))
            if (operand.addressing_mode is not
                    AddressingMode.ANY_WITH_FLEXIBLE_REGISTERS):
                raise ValidationError(
                        'The addressing mode {} of operand "{}" does not '
                        'allow splitting:\n{}'.format(
                            operand.addressing_mode.name, operand.name,
                            format_record(instruction)))
            # The copies start from the instruction with the preceding
            # operands already replaced by their first alternative.
            for alternative in alternatives[1:]:
                new_instruction = instruction.copy()
                _apply_alternative(new_instruction, operand_index, alternative)
                new_instructions.append(new_instruction)
            _apply_alternative(instruction, operand_index, alternatives[0])

    for new_instruction in new_instructions:
        instruction_set.add(new_instruction)
    logger.debug('added %d instructions for operand alternatives',
                 len(new_instructions))
