"""
Text rendering of records.

The `textformat` module renders instruction sets and their parts as indented
text in the style of protocol buffer text format. The output is used in error
messages and debug logs.

"""
import enum
import json
import sys
from .model import Record
from typing import Any, List  # noqa


class Formatter:
    """
    Text formatter class.

    - Collect lines of text.
    - Keep track of indentation.

    Indentation example:

        >>> f = Formatter()
        >>> f.line('Hello line 1')
        >>> f.writelines()
        Hello line 1
        >>> f.indent_push()
        >>> f.line('Nested line')
        >>> f.indent_pop()
        >>> f.format('Back {} again', 'home')
        >>> f.writelines()
        Hello line 1
          Nested line
        Back home again

    """

    shiftwidth = 2

    def __init__(self):
        # type: () -> None
        self.indent = ''
        self.lines = []  # type: List[str]

    def indent_push(self):
        # type: () -> None
        """Increase current indentation level by one."""
        self.indent += ' ' * self.shiftwidth

    def indent_pop(self):
        # type: () -> None
        """Decrease indentation by one level."""
        assert self.indent != '', 'Already at top level indentation'
        self.indent = self.indent[0:-self.shiftwidth]

    def line(self, s=None):
        # type: (str) -> None
        """Add an indented line."""
        if s:
            self.lines.append('{}{}\n'.format(self.indent, s))
        else:
            self.lines.append('\n')

    def writelines(self, f=None):
        # type: (Any) -> None
        """Write all lines to `f`."""
        if not f:
            f = sys.stdout
        f.writelines(self.lines)

    def text(self):
        # type: () -> str
        """Return all lines as a single string."""
        return ''.join(self.lines)

    class _IndentedScope:
        def __init__(self, fmt, after):
            # type: (Formatter, str) -> None
            self.fmt = fmt
            self.after = after

        def __enter__(self):
            # type: () -> None
            self.fmt.indent_push()

        def __exit__(self, t, v, tb):
            self.fmt.indent_pop()
            if self.after:
                self.fmt.line(self.after)

    def indented(self, before=None, after=None):
        # type: (str, str) -> Formatter._IndentedScope
        """
        Return a scope object for use with a `with` statement:

            >>> f = Formatter()
            >>> with f.indented('operands {', '}'):
            ...     f.line('name: "r8"')
            >>> f.writelines()
            operands {
              name: "r8"
            }

        The optional `before` and `after` parameters are surrounding lines
        which are *not* indented.
        """
        if before:
            self.line(before)
        return Formatter._IndentedScope(self, after)

    def format(self, fmt, *args):
        self.line(fmt.format(*args))


def format_value(record, name, value):
    # type: (Record, str, Any) -> str
    """
    Format a scalar field value.

        >>> from insndb.model.encodings import EncodingSpecification
        >>> spec = EncodingSpecification()
        >>> format_value(spec, 'opcode', 0x0f58)
        '0x0F58'
        >>> format_value(spec, 'code_offset_bytes', 4)
        '4'
    """
    if isinstance(value, enum.Enum):
        return value.name
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, str):
        return json.dumps(value)
    if isinstance(value, int) and name in record.hex_fields:
        return '0x{:04X}'.format(value) if value > 0xff \
            else '0x{:02X}'.format(value)
    return str(value)


def write_record(fmt, record):
    # type: (Formatter, Record) -> None
    """
    Add the fields of `record` to `fmt`.

    Fields that are equal to their default value are omitted. Lists produce
    one entry per element, and nested records are written as indented
    blocks.
    """
    default = type(record)()
    for name, value in record.items():
        if value == getattr(default, name):
            continue
        values = value if isinstance(value, list) else [value]
        for item in values:
            if isinstance(item, Record):
                with fmt.indented(name + ' {', '}'):
                    write_record(fmt, item)
            else:
                fmt.format('{}: {}', name, format_value(record, name, item))


def format_record(record):
    # type: (Record) -> str
    """
    Render `record` as text.

        >>> from insndb.model.operands import Operand, OperandEncoding
        >>> print(format_record(Operand(name='xmm1', tags=['k1', 'z'],
        ...                             encoding=OperandEncoding.MODRM_REG)))
        name: "xmm1"
        encoding: MODRM_REG
        tags: "k1"
        tags: "z"
        <BLANKLINE>
    """
    fmt = Formatter()
    write_record(fmt, record)
    return fmt.text()
