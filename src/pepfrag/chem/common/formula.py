__all__ = ["MolecularFormula"]

from typing import (
    Callable,
    Dict,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    Union,
)

from .elements import ELECTRON, ElementCollection
from .mz import MassMode


FormulaEntry = Tuple[str, Optional[int], int]

_SUBSCRIPT = str.maketrans("0123456789-", "₀₁₂₃₄₅₆₇₈₉₋")
_SUPERSCRIPT = str.maketrans("0123456789", "⁰¹²³⁴⁵⁶⁷⁸⁹")


def _canonicalize(
    entries: Iterable[FormulaEntry], elements: ElementCollection
) -> Tuple[FormulaEntry, ...]:
    merged: Dict[Tuple[str, Optional[int]], int] = {}
    for symbol, isotope, count in entries:
        if symbol not in elements:
            raise ValueError(f"unknown element {symbol}")
        key = (symbol, isotope or None)
        merged[key] = merged.get(key, 0) + int(count)
    return tuple(
        sorted(
            ((symbol, isotope, count) for (symbol, isotope), count in merged.items() if count != 0),
            key=lambda e: elements.sort_key(e[0], e[1]),
        )
    )


class MolecularFormula:
    """
    A molecular formula as a canonical multiset of (element, isotope, count).

    Entries are sorted by atomic number then isotope, merged per
    (element, isotope) and never zero. ``isotope`` is None for the natural
    isotope mixture. The net charge is stored as electrons: one proton is
    ``H(1) e(-1)``.
    """

    __slots__ = ("_elements",)

    def __init__(self, elements: Iterable[FormulaEntry] = ()):
        self._elements = _canonicalize(elements, ElementCollection.default())

    @classmethod
    def _from_canonical(cls, elements: Tuple[FormulaEntry, ...]) -> "MolecularFormula":
        formula = cls.__new__(cls)
        formula._elements = elements
        return formula

    @classmethod
    def from_composition(cls, composition: str) -> "MolecularFormula":
        return cls(ElementCollection.default().parse_element_composition(composition))

    @classmethod
    def from_elements(cls, elements: Mapping[str, int]) -> "MolecularFormula":
        return cls((symbol, None, count) for symbol, count in elements.items())

    @classmethod
    def electron(cls) -> "MolecularFormula":
        return cls([(ELECTRON, None, 1)])

    @classmethod
    def proton(cls) -> "MolecularFormula":
        return cls([("H", None, 1), (ELECTRON, None, -1)])

    def elements(self) -> Tuple[FormulaEntry, ...]:
        return self._elements

    def add(self, element: str, isotope: Optional[int] = None, count: int = 1):
        """Return a new formula with ``count`` atoms of the element merged in."""
        return MolecularFormula(self._elements + ((element, isotope, count),))

    def count(self, element: str, isotope: Optional[int] = None) -> int:
        for symbol, iso, n in self._elements:
            if symbol == element and iso == (isotope or None):
                return n
        return 0

    def charge(self) -> int:
        return -self.count(ELECTRON)

    def is_empty(self) -> bool:
        return not self._elements

    def sort_key(self) -> Tuple[Tuple[int, int, int], ...]:
        elements = ElementCollection.default()
        return tuple(
            elements.sort_key(symbol, isotope) + (count,)
            for symbol, isotope, count in self._elements
        )

    def __add__(self, other):
        if not isinstance(other, MolecularFormula):
            return NotImplemented
        if not other._elements:
            return self
        if not self._elements:
            return other
        return MolecularFormula(self._elements + other._elements)

    def __radd__(self, other):
        # sum() starts with 0
        if isinstance(other, int) and other == 0:
            return self
        return NotImplemented

    def __sub__(self, other):
        if not isinstance(other, MolecularFormula):
            return NotImplemented
        return self + (-other)

    def __neg__(self):
        return MolecularFormula._from_canonical(
            tuple((symbol, isotope, -count) for symbol, isotope, count in self._elements)
        )

    def __mul__(self, other):
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        if other == 0:
            return MolecularFormula()
        return MolecularFormula._from_canonical(
            tuple(
                (symbol, isotope, count * other)
                for symbol, isotope, count in self._elements
            )
        )

    __rmul__ = __mul__

    def __eq__(self, other) -> bool:
        if not isinstance(other, MolecularFormula):
            return NotImplemented
        return self._elements == other._elements

    def __hash__(self) -> int:
        return hash(self._elements)

    def __bool__(self) -> bool:
        return bool(self._elements)

    def __str__(self) -> str:
        return self.hill_notation()

    def __repr__(self) -> str:
        return f"MolecularFormula({self.hill_notation()!r})"

    def _sum_masses(
        self,
        mass_fn: Callable[[ElementCollection, str, Optional[int]], Optional[float]],
        elements: Optional[ElementCollection],
    ) -> Optional[float]:
        if elements is None:
            elements = ElementCollection.default()
        total = 0.0
        for symbol, isotope, count in self._elements:
            mass = mass_fn(elements, symbol, isotope)
            if mass is None:
                return None
            total += mass * count
        return total

    def monoisotopic_mass(
        self, elements: Optional[ElementCollection] = None
    ) -> Optional[float]:
        return self._sum_masses(ElementCollection.mass, elements)

    def average_weight(
        self, elements: Optional[ElementCollection] = None
    ) -> Optional[float]:
        return self._sum_masses(ElementCollection.average_weight, elements)

    def most_abundant_mass(
        self, elements: Optional[ElementCollection] = None
    ) -> Optional[float]:
        # Per-element substitution of the most abundant isotope, not an
        # isotope distribution.
        return self._sum_masses(ElementCollection.most_abundant_mass, elements)

    def mass(
        self,
        mode: Union[MassMode, str] = MassMode.monoisotopic,
        elements: Optional[ElementCollection] = None,
    ) -> Optional[float]:
        mode = MassMode.parse(mode)
        if mode is MassMode.monoisotopic:
            return self.monoisotopic_mass(elements)
        elif mode is MassMode.average:
            return self.average_weight(elements)
        elif mode is MassMode.most_abundant:
            return self.most_abundant_mass(elements)
        else:
            raise ValueError(f"invalid mass mode {mode}")

    def _hill_ordered(self) -> Iterable[FormulaEntry]:
        if any(symbol == "C" for symbol, _, _ in self._elements):
            priority = {"C": 0, "H": 1}
        else:
            priority = {}
        return sorted(
            self._elements,
            key=lambda e: (priority.get(e[0], 2), e[0], e[1] or 0),
        )

    def hill_notation(self) -> str:
        r = []
        for symbol, isotope, count in self._hill_ordered():
            if isotope is not None:
                r.append(f"[{isotope}]")
            r.append(symbol)
            if count != 1:
                r.append(str(count))
        return "".join(r)

    def hill_notation_fancy(self) -> str:
        r = []
        for symbol, isotope, count in self._hill_ordered():
            if isotope is not None:
                r.append(str(isotope).translate(_SUPERSCRIPT))
            r.append(symbol)
            if count != 1:
                r.append(str(count).translate(_SUBSCRIPT))
        return "".join(r)

    def hill_notation_html(self) -> str:
        r = []
        for symbol, isotope, count in self._hill_ordered():
            if isotope is not None:
                r.append(f"<sup>{isotope}</sup>")
            r.append(symbol)
            if count != 1:
                r.append(f"<sub>{count}</sub>")
        return "".join(r)
