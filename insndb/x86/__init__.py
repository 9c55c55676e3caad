"""
x86 instruction set
-------------------

The passes in this package clean up an x86 instruction set extracted from the
vendor's manuals:

`parse_encoding_specifications`
    Parses the raw encoding specification of each instruction.
`add_alternatives`
    Splits register/memory operands such as `r/m32` into separate
    instructions.
`add_evex_b_interpretation`, `add_evex_opmask_usage`
    Derive EVEX prefix properties from the operands. They run after
    `add_alternatives`, which renames the operands they inspect.
"""
from insndb.model.transforms import TransformPipeline
from .alternatives import add_alternatives
from .encoding_specification import parse_encoding_specifications
from .evex import add_evex_b_interpretation, add_evex_opmask_usage

# Priorities of the x86 transforms.
PARSE_ENCODING_SPECIFICATIONS_PRIORITY = 1000
ADD_ALTERNATIVES_PRIORITY = 6000
ADD_EVEX_B_INTERPRETATION_PRIORITY = 7000
ADD_EVEX_OPMASK_USAGE_PRIORITY = 7010


def default_pipeline():
    # type: () -> TransformPipeline
    """
    Create a pipeline with all x86 transforms.

    Each call returns a new pipeline, so callers can register more transforms
    without affecting other users.
    """
    pipeline = TransformPipeline('x86')
    pipeline.register('parse_encoding_specifications',
                      PARSE_ENCODING_SPECIFICATIONS_PRIORITY,
                      parse_encoding_specifications)
    pipeline.register('add_alternatives', ADD_ALTERNATIVES_PRIORITY,
                      add_alternatives)
    pipeline.register('add_evex_b_interpretation',
                      ADD_EVEX_B_INTERPRETATION_PRIORITY,
                      add_evex_b_interpretation)
    pipeline.register('add_evex_opmask_usage',
                      ADD_EVEX_OPMASK_USAGE_PRIORITY,
                      add_evex_opmask_usage)
    return pipeline
