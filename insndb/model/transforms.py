"""
Instruction set transforms.

A *transform* is a function that takes an `InstructionSet` and updates it in
place: it can rewrite instructions, add new ones, or raise an exception when
the data is inconsistent. Transforms are collected in a `TransformPipeline`
that runs them in a fixed order.

    >>> from insndb.model.instructions import InstructionSet
    >>> calls = []
    >>> pipeline = TransformPipeline('example')
    >>> pipeline.register('second', 20, lambda s: calls.append('second'))
    >>> pipeline.register('first', 10, lambda s: calls.append('first'))
    >>> pipeline.run_all(InstructionSet())
    >>> calls
    ['first', 'second']
"""
import logging
from typing import Callable, Dict, List, TYPE_CHECKING  # noqa
if TYPE_CHECKING:
    from .instructions import InstructionSet  # noqa
    TransformFunction = Callable[[InstructionSet], None]

logger = logging.getLogger(__name__)


class Transform:
    """
    A named transform with a priority.

    :param name: Unique name of the transform within its pipeline.
    :param priority: Transforms with a lower priority run first.
    :param function: Callable that takes the instruction set to update.
    """

    def __init__(self, name, priority, function):
        # type: (str, int, TransformFunction) -> None
        self.name = name
        self.priority = priority
        self.function = function
        self.__doc__ = function.__doc__

    def __call__(self, instruction_set):
        # type: (InstructionSet) -> None
        self.function(instruction_set)

    def __str__(self):
        # type: () -> str
        return self.name

    def __repr__(self):
        # type: () -> str
        return 'Transform({}, {})'.format(self.name, self.priority)


class TransformPipeline:
    """
    An ordered collection of transforms.

    Transforms run in ascending order of priority. Transforms with the same
    priority run in the order in which they were registered.

    :param name: Short mnemonic name for the pipeline, used in log messages.
    """

    def __init__(self, name):
        # type: (str) -> None
        self.name = name
        self._transforms = []  # type: List[Transform]
        self._by_name = dict()  # type: Dict[str, Transform]

    def register(self, name, priority, function):
        # type: (str, int, TransformFunction) -> None
        """Add a transform to this pipeline."""
        assert name not in self._by_name, (
                "Transform '{}' is already registered in {}"
                .format(name, self.name))
        assert isinstance(priority, int), (
                "Priority of '{}' must be an integer, got {!r}"
                .format(name, priority))
        transform = Transform(name, priority, function)
        self._transforms.append(transform)
        self._by_name[name] = transform

    def transforms(self):
        # type: () -> List[Transform]
        """
        Get the transforms in the order in which `run_all` invokes them.
        """
        # sorted() is stable, so ties keep the registration order.
        return sorted(self._transforms, key=lambda t: t.priority)

    def __getitem__(self, name):
        # type: (str) -> Transform
        return self._by_name[name]

    def __contains__(self, name):
        # type: (str) -> bool
        return name in self._by_name

    def __len__(self):
        # type: () -> int
        return len(self._transforms)

    def run_all(self, instruction_set):
        # type: (InstructionSet) -> None
        """
        Run all transforms on `instruction_set`.

        The first transform that raises an exception stops the run, and the
        exception propagates unchanged. Changes made by the transforms that
        ran before it are kept, so the instruction set must not be used after
        a failure.
        """
        for transform in self.transforms():
            logger.debug('%s: running %s (priority %d) on %d instructions',
                         self.name, transform.name, transform.priority,
                         len(instruction_set))
            try:
                transform(instruction_set)
            except Exception:
                logger.error('%s: transform %s failed',
                             self.name, transform.name)
                raise
        logger.info('%s: ran %d transforms, %d instructions',
                    self.name, len(self._transforms), len(instruction_set))
