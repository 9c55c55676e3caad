from unittest import TestCase
from insndb.errors import PipelineError, ValidationError
from insndb.model.encodings import EvexBInterpretation, MaskingOperation
from insndb.model.encodings import OpmaskUsage
from insndb.model.instructions import Instruction, InstructionSet
from insndb.model.instructions import VendorSyntax
from insndb.model.operands import AddressingMode, Operand, OperandEncoding
from . import default_pipeline

FLEXIBLE = AddressingMode.ANY_WITH_FLEXIBLE_REGISTERS


def vaddpd():
    return Instruction(
            vendor_syntax=VendorSyntax('VADDPD', [
                Operand(name='zmm1', addressing_mode=AddressingMode.DIRECT,
                        encoding=OperandEncoding.MODRM_REG,
                        value_size_bits=512, tags=['k1', 'z']),
                Operand(name='zmm2', addressing_mode=AddressingMode.DIRECT,
                        encoding=OperandEncoding.VEX_V,
                        value_size_bits=512),
                Operand(name='zmm3/m512/m64bcst', addressing_mode=FLEXIBLE,
                        encoding=OperandEncoding.MODRM_RM,
                        value_size_bits=512, tags=['er'])]),
            raw_encoding_specification='EVEX.NDS.512.66.0F.W1 58 /r')


def add():
    return Instruction(
            vendor_syntax=VendorSyntax('ADD', [
                Operand(name='r/m8', addressing_mode=FLEXIBLE,
                        encoding=OperandEncoding.MODRM_RM),
                Operand(name='r8', addressing_mode=AddressingMode.DIRECT,
                        encoding=OperandEncoding.MODRM_REG,
                        value_size_bits=8)]),
            raw_encoding_specification='00 /r')


class TestDefaultPipeline(TestCase):
    def test_transform_order(self):
        self.assertEqual(
            [t.name for t in default_pipeline().transforms()],
            ['parse_encoding_specifications', 'add_alternatives',
             'add_evex_b_interpretation', 'add_evex_opmask_usage'])

    def test_independent_pipelines(self):
        pipeline = default_pipeline()
        pipeline.register('extra', 0, lambda instruction_set: None)
        self.assertNotIn('extra', default_pipeline())

    def test_run_all(self):
        instruction_set = InstructionSet([vaddpd(), add()])
        default_pipeline().run_all(instruction_set)
        self.assertEqual(
            [[op.name for op in i.operands] for i in instruction_set],
            [['zmm1', 'zmm2', 'zmm3'],
             ['r8', 'r8'],
             ['zmm1', 'zmm2', 'm512'],
             ['zmm1', 'zmm2', 'm64bcst'],
             ['m8', 'r8']])

        interpretations = [
            i.x86_encoding_specification.vex_prefix.evex_b_interpretations
            for i in instruction_set if i.x86_encoding_specification.is_evex]
        # The broadcast is only enabled on the instruction that has the
        # broadcast operand.
        self.assertEqual(interpretations, [
            [EvexBInterpretation.ENABLES_STATIC_ROUNDING_CONTROL],
            [EvexBInterpretation.ENABLES_STATIC_ROUNDING_CONTROL],
            [EvexBInterpretation.ENABLES_64_BIT_BROADCAST,
             EvexBInterpretation.ENABLES_STATIC_ROUNDING_CONTROL]])
        for i in instruction_set:
            vex_prefix = i.x86_encoding_specification.vex_prefix
            if vex_prefix is not None:
                self.assertIs(vex_prefix.opmask_usage, OpmaskUsage.OPTIONAL)
                self.assertIs(vex_prefix.masking_operation,
                              MaskingOperation.MERGING_AND_ZEROING)

    def test_parse_failure(self):
        broken = add()
        broken.raw_encoding_specification = 'REX.W /r'
        instruction_set = InstructionSet([vaddpd(), broken])
        with self.assertRaises(PipelineError):
            default_pipeline().run_all(instruction_set)
        # No instructions were split.
        self.assertEqual(len(instruction_set), 2)

    def test_validation_failure(self):
        broken = add()
        broken.operands[0].addressing_mode = AddressingMode.DIRECT
        instruction_set = InstructionSet([broken, vaddpd()])
        with self.assertRaises(ValidationError):
            default_pipeline().run_all(instruction_set)
        # The encodings parsed before the failure are kept.
        self.assertTrue(all(i.x86_encoding_specification is not None
                            for i in instruction_set))
        self.assertEqual(
            instruction_set.instructions[1].x86_encoding_specification
            .vex_prefix.evex_b_interpretations, [])
