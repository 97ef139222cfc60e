__all__ = [
    "MonosaccharideInfo",
    "MonosaccharideCollection",
    "MonosaccharideComposition",
    "GlycanNode",
]

import functools
import re
from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Sequence

from ...util.io.yaml import bundled_file, load_yaml
from ..common.formula import MolecularFormula

MonosaccharideComposition = Mapping[str, int]


@dataclass(frozen=True)
class MonosaccharideInfo:
    name: str
    formula: MolecularFormula

    @property
    def mass(self) -> Optional[float]:
        return self.formula.monoisotopic_mass()


class MonosaccharideCollection(Dict[str, MonosaccharideInfo]):
    def __init__(self, monosaccharide_map: Mapping[str, MonosaccharideInfo]):
        super().__init__(**monosaccharide_map)
        for key, ms in monosaccharide_map.items():
            self.check_monosaccharide_id(key, ms)
        names = "|".join(re.escape(k) for k in sorted(self, key=len, reverse=True))
        self._composition_token = re.compile(rf"({names})(?:\((\d+)\))?")

    @classmethod
    def load(cls, monosaccharide_file: Optional[str] = None):
        if monosaccharide_file is None:
            monosaccharide_file = bundled_file(__file__, "monosaccharides.yaml")

        dict_ = load_yaml(monosaccharide_file)

        def from_dict(d: Dict):
            return MonosaccharideInfo(
                name=d["name"],
                formula=MolecularFormula.from_composition(d["composition"]),
            )

        collection = cls({key: from_dict(value) for key, value in dict_.items()})
        return collection

    @classmethod
    @functools.lru_cache(maxsize=None)
    def default(cls) -> "MonosaccharideCollection":
        return cls.load()

    def __setitem__(self, key, value):
        raise TypeError("MonosaccharideCollection is immutable")

    def __delitem__(self, key):
        raise TypeError("MonosaccharideCollection is immutable")

    def check_monosaccharide_id(self, id: str, monosaccharide: MonosaccharideInfo):
        if not id:
            raise ValueError(f"invalid monosaccharide id '{id}': empty")
        if not id.isalnum():
            raise ValueError(f"invalid monosaccharide id {id}: id must be alphanum")

    def parse_monosaccharide_composition(self, s: str) -> Dict[str, int]:
        """Parse ``"H(5)N(4)"``, spaces between monosaccharides are allowed."""
        compact = "".join(s.split())
        if not compact:
            raise ValueError(f"invalid composition format {s}: empty")

        parsed: Dict[str, int] = {}
        end = 0
        for match in self._composition_token.finditer(compact):
            if match.start() != end:
                break
            end = match.end()
            name, count = match.group(1), match.group(2)
            parsed[name] = parsed.get(name, 0) + (int(count) if count else 1)
        if end != len(compact):
            raise ValueError(f"invalid composition format {s}")
        return parsed

    def composition_formula(self, composition: MonosaccharideComposition) -> MolecularFormula:
        return sum(
            (self[k].formula * v for k, v in composition.items()),
            MolecularFormula(),
        )

    def composition_str(self, composition: MonosaccharideComposition) -> str:
        for k in composition:
            if k not in self:
                raise ValueError(
                    f"invalid monosaccharide composition: unknown monosaccharide {k}"
                )
        return "".join(f"{k}({composition[k]})" for k in self if composition.get(k, 0))


class GlycanNode:
    """A glycan tree, written as ``(N(N(H(H)(H))))`` from the reducing end."""

    def __init__(
        self, monosaccharide: str, children: "Optional[Sequence[GlycanNode]]" = None
    ):
        self.monosaccharide = monosaccharide
        self.children: List[GlycanNode] = list(children) if children else []

    def __str__(self) -> str:
        return "(" + self.monosaccharide + "".join(str(c) for c in self.children) + ")"

    def __repr__(self) -> str:
        return f"GlycanNode({self})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, GlycanNode):
            return NotImplemented
        return (
            self.monosaccharide == other.monosaccharide
            and self.children == other.children
        )

    def __hash__(self) -> int:
        return hash(str(self))

    def iter_depth_first(self) -> Iterator["GlycanNode"]:
        yield self
        for c in self.children:
            yield from c.iter_depth_first()

    def size(self) -> int:
        return sum(1 for _ in self.iter_depth_first())

    def composition(self) -> Dict[str, int]:
        d: Dict[str, int] = {}
        for node in self.iter_depth_first():
            d[node.monosaccharide] = d.get(node.monosaccharide, 0) + 1
        return d

    def formula(self, monosaccharides: MonosaccharideCollection) -> MolecularFormula:
        return monosaccharides.composition_formula(self.composition())

    @classmethod
    def from_str(cls, s: str) -> "GlycanNode":
        s = "".join(s.split())
        if not s.startswith("("):
            s = "(" + s + ")"

        def parse(i: int):
            # s[i] == "("
            j = i + 1
            while j < len(s) and s[j] not in "()":
                j += 1
            if j == i + 1:
                raise ValueError(f"invalid glycan format {s}: monosaccharide missing")
            node = GlycanNode(s[i + 1 : j])
            while j < len(s) and s[j] == "(":
                child, j = parse(j)
                node.children.append(child)
            if j >= len(s) or s[j] != ")":
                raise ValueError(f"invalid glycan format {s}: parentheses not match")
            return node, j + 1

        node, end = parse(0)
        if end != len(s):
            raise ValueError(f"invalid glycan format {s}: trailing characters")
        return node
