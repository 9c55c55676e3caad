"""
Instruction set data model.

This module defines the base class shared by the records that describe
instructions, their operands and their binary encodings.
"""
import copy
from typing import Any, Iterator, Tuple  # noqa


class Record:
    """
    A plain data record.

    Subclasses list their attribute names in `fields`, in the order they are
    rendered. Every constructor argument has a default, so `type(record)()`
    is the record with all fields unset. Two records are equal when they have
    the same type and equal fields.
    """

    fields = ()  # type: Tuple[str, ...]

    # Integer fields that are rendered in hexadecimal.
    hex_fields = ()  # type: Tuple[str, ...]

    def items(self):
        # type: () -> Iterator[Tuple[str, Any]]
        """Iterate over `(name, value)` pairs of all fields."""
        for name in self.fields:
            yield name, getattr(self, name)

    def copy(self):
        # type: () -> Record
        """Return a deep copy of this record."""
        return copy.deepcopy(self)

    def __eq__(self, other):
        # type: (object) -> bool
        if type(self) is not type(other):
            return NotImplemented
        return all(getattr(self, name) == getattr(other, name)
                   for name in self.fields)

    __hash__ = None  # type: ignore

    def __repr__(self):
        # type: () -> str
        return '{}({})'.format(
                type(self).__name__,
                ', '.join('{}={!r}'.format(name, value)
                          for name, value in self.items()))
