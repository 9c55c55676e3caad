import doctest
from unittest import TestCase
from . import textformat
from .model.encodings import EncodingSpecification, LegacyPrefixes
from .model.encodings import ModRmUsage
from .model.instructions import Instruction, VendorSyntax
from .model.operands import Operand, OperandEncoding
from .textformat import Formatter, format_record


def load_tests(loader, tests, ignore):
    tests.addTests(doctest.DocTestSuite(textformat))
    return tests


class TestFormatter(TestCase):
    def test_text(self):
        fmt = Formatter()
        with fmt.indented('a {', '}'):
            fmt.line('b: 1')
            with fmt.indented('c {', '}'):
                fmt.line()
        self.assertEqual(fmt.text(), 'a {\n  b: 1\n  c {\n\n  }\n}\n')

    def test_indent_pop_at_top_level(self):
        with self.assertRaises(AssertionError):
            Formatter().indent_pop()


class TestFormatRecord(TestCase):
    def test_default_record(self):
        self.assertEqual(format_record(Operand()), '')

    def test_instruction(self):
        instruction = Instruction(
                description='Add packed double-precision values.',
                vendor_syntax=VendorSyntax('ADDPD', [
                    Operand(name='xmm1', encoding=OperandEncoding.MODRM_REG),
                    Operand(name='xmm2/m128',
                            encoding=OperandEncoding.MODRM_RM)]),
                available_in_64_bit=True,
                raw_encoding_specification='66 0F 58 /r',
                x86_encoding_specification=EncodingSpecification(
                    legacy_prefixes=LegacyPrefixes(
                        has_mandatory_operand_size_override_prefix=True),
                    opcode=0x0f58,
                    modrm_usage=ModRmUsage.FULL_MODRM))
        self.assertEqual(format_record(instruction), '\n'.join([
            'description: "Add packed double-precision values."',
            'vendor_syntax {',
            '  mnemonic: "ADDPD"',
            '  operands {',
            '    name: "xmm1"',
            '    encoding: MODRM_REG',
            '  }',
            '  operands {',
            '    name: "xmm2/m128"',
            '    encoding: MODRM_RM',
            '  }',
            '}',
            'available_in_64_bit: true',
            'raw_encoding_specification: "66 0F 58 /r"',
            'x86_encoding_specification {',
            '  legacy_prefixes {',
            '    has_mandatory_operand_size_override_prefix: true',
            '  }',
            '  opcode: 0x0F58',
            '  modrm_usage: FULL_MODRM',
            '}',
            '']))

    def test_repeated_scalars(self):
        spec = EncodingSpecification(
                legacy_prefixes=LegacyPrefixes(), opcode=0xc8,
                immediate_value_bytes=[2, 1])
        self.assertEqual(format_record(spec), '\n'.join([
            'legacy_prefixes {',
            '}',
            'opcode: 0xC8',
            'immediate_value_bytes: 2',
            'immediate_value_bytes: 1',
            '']))
