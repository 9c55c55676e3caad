"""Exceptions raised while building an instruction set."""


class Error(Exception):
    """Base class for all errors raised by :py:mod:`insndb`."""


class ParseError(Error):
    """
    An encoding specification string could not be parsed.

    :param specification: The raw specification string.
    :param reason: Human readable description of the problem.
    """

    def __init__(self, specification, reason):
        # type: (str, str) -> None
        super().__init__(
                'Invalid encoding specification "{}": {}'
                .format(specification, reason))
        self.specification = specification
        self.reason = reason


class PipelineError(Error):
    """
    A transform failed while running over an instruction set.

    The instruction set is left in whatever state the failing transform and
    the transforms before it produced.
    """


class ValidationError(PipelineError):
    """An instruction in the instruction set is inconsistent."""
