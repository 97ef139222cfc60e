__all__ = ["Multi"]

import itertools
import operator
from typing import (
    Any,
    Callable,
    Generic,
    Iterable,
    Iterator,
    Optional,
    Tuple,
    TypeVar,
    Union,
    overload,
)

from .formula import MolecularFormula


T = TypeVar("T")


class Multi(Generic[T]):
    """
    An ordered set of mutually exclusive alternatives.

    Arithmetic with another Multi is a cartesian product: every left
    alternative is combined with every right alternative, in order and
    without deduplication. Arithmetic with a plain value is applied to
    each alternative. An empty Multi stands for the identity, a single
    empty formula.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Optional[Iterable[T]] = None):
        values = tuple(values) if values is not None else ()
        if not values:
            values = (MolecularFormula(),)  # type: ignore
        self._values: Tuple[T, ...] = values

    @classmethod
    def of(cls, *values: T) -> "Multi[T]":
        return cls(values)

    @property
    def values(self) -> Tuple[T, ...]:
        return self._values

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[T]:
        return iter(self._values)

    @overload
    def __getitem__(self, index: int) -> T:
        ...

    @overload
    def __getitem__(self, index: slice) -> "Multi[T]":
        ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return Multi(self._values[index])
        return self._values[index]

    def __eq__(self, other) -> bool:
        if isinstance(other, Multi):
            return self._values == other._values
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._values)

    def __repr__(self) -> str:
        return f"Multi({list(self._values)!r})"

    def __str__(self) -> str:
        if len(self._values) == 1:
            return str(self._values[0])
        return "[" + ", ".join(str(v) for v in self._values) + "]"

    def cross(self, other: Union["Multi[Any]", Any], op: Callable[[T, Any], T]) -> "Multi[T]":
        if isinstance(other, Multi):
            return Multi(
                op(a, b) for a, b in itertools.product(self._values, other._values)
            )
        return Multi(op(a, other) for a in self._values)

    def map(self, fn: Callable[[T], Any]) -> "Multi[Any]":
        return Multi(fn(a) for a in self._values)

    def unique(self) -> "Multi[T]":
        return Multi(dict.fromkeys(self._values))

    def __add__(self, other):
        return self.cross(other, operator.add)

    def __radd__(self, other):
        if isinstance(other, int) and other == 0:
            return self
        return Multi(other + a for a in self._values)

    def __sub__(self, other):
        return self.cross(other, operator.sub)

    def __rsub__(self, other):
        return Multi(other - a for a in self._values)

    def __mul__(self, other):
        return self.cross(other, operator.mul)

    def __rmul__(self, other):
        return Multi(other * a for a in self._values)

    def __neg__(self):
        return Multi(-a for a in self._values)

    @staticmethod
    def sum(items: Iterable[Union["Multi[T]", T]]) -> "Multi[T]":
        """Cartesian sum of a sequence of Multi values, starting at the identity."""
        result: Multi = Multi()
        for item in items:
            result = result + item
        return result

    @staticmethod
    def flatten(items: Iterable["Multi[T]"]) -> "Multi[T]":
        """Concatenate the alternatives of several Multi values."""
        return Multi(itertools.chain.from_iterable(items))

