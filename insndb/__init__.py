"""
x86 instruction database
------------------------

The :py:mod:`insndb` package builds a machine-readable description of how x86
instructions are written and how they are binary-encoded.

- :py:mod:`insndb.model` defines the records that make up an instruction set
  and the `TransformPipeline` that runs cleanup passes over it.
- :py:mod:`insndb.x86` contains the encoding specification parser and the
  x86-specific passes.
- :py:mod:`insndb.textformat` renders records as indented text.
"""

__version__ = '0.1.0'
