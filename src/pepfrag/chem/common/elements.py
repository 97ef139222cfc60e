__all__ = [
    "IsotopeInfo",
    "ElementInfo",
    "ElementCollection",
    "ElementComposition",
    "ELECTRON",
]

import functools
import re
from typing import Dict, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from ...util.io.yaml import bundled_file, load_yaml


ELECTRON = "e"

ElementComposition = Sequence[Tuple[str, Optional[int], int]]


class IsotopeInfo(NamedTuple):
    number: int
    mass: float
    abundance: float


class ElementInfo(NamedTuple):
    symbol: str
    number: int
    name: str
    mass: float
    average_weight: float
    isotopes: Tuple[IsotopeInfo, ...] = ()

    def isotope(self, number: int) -> Optional[IsotopeInfo]:
        for iso in self.isotopes:
            if iso.number == number:
                return iso
        return None

    def most_abundant_isotope(self) -> Optional[IsotopeInfo]:
        if not self.isotopes:
            return None
        return max(self.isotopes, key=lambda iso: iso.abundance)


_COMPOSITION_TOKEN = re.compile(
    r"^(?:\[(?P<isotope>\d+)\])?(?P<symbol>[A-Za-z]+)(?:\((?P<count>[+-]?\d+)\))?$"
)


class ElementCollection(Dict[str, ElementInfo]):
    def __init__(self, element_map: Mapping[str, ElementInfo]):
        super().__init__(**element_map)
        for key, element in self.items():
            self.check_element_id(key, element)

    @classmethod
    def load(cls, element_file: Optional[str] = None):
        if element_file is None:
            element_file = bundled_file(__file__, "elements.yaml")

        dict_ = load_yaml(element_file)

        def from_dict(symbol: str, d: Dict):
            return ElementInfo(
                symbol=symbol,
                number=int(d["number"]),
                name=d.get("name", symbol),
                mass=float(d["mass"]),
                average_weight=float(d.get("average_weight", d["mass"])),
                isotopes=tuple(
                    IsotopeInfo(int(n), float(m), float(a))
                    for n, m, a in d.get("isotopes", None) or []
                ),
            )

        collection = cls({key: from_dict(key, value) for key, value in dict_.items()})
        return collection

    @classmethod
    @functools.lru_cache(maxsize=None)
    def default(cls) -> "ElementCollection":
        return cls.load()

    def __setitem__(self, key, value):
        raise TypeError("ElementCollection is immutable")

    def __delitem__(self, key):
        raise TypeError("ElementCollection is immutable")

    def check_element_id(self, id: str, element_info: ElementInfo):
        if not id:
            raise ValueError(f"invalid element id '{id}': empty")
        if not id.isalpha():
            raise ValueError(f"invalid element id {id}: id must be alphabetic")
        if id != element_info.symbol:
            raise ValueError(
                f"invalid element id {id}: symbol {element_info.symbol} not match"
            )

    def sort_key(self, symbol: str, isotope: Optional[int]) -> Tuple[int, int]:
        return (self[symbol].number, isotope or 0)

    def mass(self, symbol: str, isotope: Optional[int] = None) -> Optional[float]:
        element = self[symbol]
        if isotope is None:
            return element.mass
        iso = element.isotope(isotope)
        return iso.mass if iso is not None else None

    def average_weight(
        self, symbol: str, isotope: Optional[int] = None
    ) -> Optional[float]:
        element = self[symbol]
        if isotope is None:
            return element.average_weight
        iso = element.isotope(isotope)
        return iso.mass if iso is not None else None

    def most_abundant_mass(
        self, symbol: str, isotope: Optional[int] = None
    ) -> Optional[float]:
        if isotope is not None:
            return self.mass(symbol, isotope)
        iso = self[symbol].most_abundant_isotope()
        if iso is None:
            return self[symbol].mass
        return iso.mass

    def parse_element_composition(self, s: str) -> List[Tuple[str, Optional[int], int]]:
        tokens = s.split()
        if not tokens:
            raise ValueError(f"invalid composition format {s!r}: empty")

        parsed = []
        for token in tokens:
            match = _COMPOSITION_TOKEN.match(token)
            if match is None:
                if token.count("(") != token.count(")") or token.count(
                    "["
                ) != token.count("]"):
                    raise ValueError(
                        f"invalid composition format {s}: parentheses not match"
                    )
                raise ValueError(f"invalid composition format {s}: token {token}")

            symbol = match.group("symbol")
            if symbol not in self:
                raise ValueError(f"invalid composition format {s}: unknown element {symbol}")

            isotope = match.group("isotope")
            if isotope is not None:
                isotope = int(isotope)

            count = match.group("count")
            parsed.append((symbol, isotope, int(count) if count is not None else 1))
        return parsed
