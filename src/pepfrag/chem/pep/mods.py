__all__ = [
    "ModPosition",
    "PlacementRule",
    "RulePossible",
    "Modification",
    "ModificationInfo",
    "GlycanCompositionModification",
    "GlycanStructureModification",
    "CrossLinkSide",
    "CrossLink",
    "AmbiguousModification",
    "ModificationCollection",
]

import abc
import functools
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ...util.io.yaml import bundled_file, load_yaml
from ..common.formula import MolecularFormula
from ..gpep.glycans import GlycanNode, MonosaccharideCollection
from .losses import NeutralLoss, NeutralLossCollection


class ModPosition(IntEnum):
    none = 0b0000000

    not_term = 0b0000001
    protein_n_term = 0b0000010
    protein_c_term = 0b0000100
    protein_term = 0b0000110

    nonprotein_n_term = 0b0001000
    nonprotein_c_term = 0b0010000
    nonprotein_term = 0b0011000

    any_n_term = 0b0001010
    any_c_term = 0b0010100
    any_term = 0b0011110

    n_term = any_n_term
    c_term = any_c_term

    not_n_term = 0b0010101
    not_c_term = 0b0001011
    anywhere = 0b0011111

    @classmethod
    def of_residue(cls, sequence_index: int, sequence_length: int) -> int:
        """Positions a residue can stand for, the protein termini are not known."""
        position = 0
        if sequence_index == 0:
            position |= cls.any_n_term
        if sequence_index == sequence_length - 1:
            position |= cls.any_c_term
        if not position:
            position = cls.not_term
        return position


@dataclass(frozen=True)
class PlacementRule:
    """
    Residues and positions a modification can be placed on. No amino acids
    means any residue at the given position.
    """

    amino_acids: str = ""
    position: ModPosition = ModPosition.anywhere

    def is_possible(self, amino_acid: str, position: int) -> bool:
        if self.amino_acids and amino_acid not in self.amino_acids:
            return False
        return bool(self.position & position)

    @classmethod
    def from_dict(cls, d: Mapping) -> "PlacementRule":
        return cls(
            amino_acids=d.get("amino_acids", ""),
            position=ModPosition[d.get("position", "anywhere")],
        )


class RulePossible(Enum):
    symmetric = "symmetric"
    asymmetric_left = "asymmetric_left"
    asymmetric_right = "asymmetric_right"
    no = "no"


class Modification(abc.ABC):
    name: str

    @abc.abstractmethod
    def formula(self) -> MolecularFormula:
        pass

    @property
    def neutral_losses(self) -> Tuple[NeutralLoss, ...]:
        return ()

    @property
    def diagnostic_ions(self) -> Tuple[MolecularFormula, ...]:
        return ()

    def is_possible(self, amino_acid: str, position: int) -> RulePossible:
        return RulePossible.symmetric

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ModificationInfo(Modification):
    name: str
    composition: MolecularFormula
    rules: Tuple[PlacementRule, ...] = ()
    linker_left_rules: Tuple[PlacementRule, ...] = ()
    linker_right_rules: Tuple[PlacementRule, ...] = ()
    losses: Tuple[NeutralLoss, ...] = ()
    diagnostics: Tuple[MolecularFormula, ...] = ()
    unimod: int = -1

    def formula(self) -> MolecularFormula:
        return self.composition

    @property
    def neutral_losses(self) -> Tuple[NeutralLoss, ...]:
        return self.losses

    @property
    def diagnostic_ions(self) -> Tuple[MolecularFormula, ...]:
        return self.diagnostics

    @property
    def is_asymmetric_linker(self) -> bool:
        return bool(self.linker_left_rules or self.linker_right_rules)

    def is_possible(self, amino_acid: str, position: int) -> RulePossible:
        if not self.rules and not self.is_asymmetric_linker:
            return RulePossible.symmetric
        if any(r.is_possible(amino_acid, position) for r in self.rules):
            return RulePossible.symmetric
        if any(r.is_possible(amino_acid, position) for r in self.linker_left_rules):
            return RulePossible.asymmetric_left
        if any(r.is_possible(amino_acid, position) for r in self.linker_right_rules):
            return RulePossible.asymmetric_right
        return RulePossible.no


@dataclass(frozen=True)
class GlycanCompositionModification(Modification):
    composition: Tuple[Tuple[str, int], ...]

    @property
    def name(self) -> str:  # type: ignore[override]
        return "Glycan:" + "".join(f"{k}({v})" for k, v in self.composition)

    def formula(self) -> MolecularFormula:
        return MonosaccharideCollection.default().composition_formula(
            dict(self.composition)
        )

    @classmethod
    def from_str(cls, s: str) -> "GlycanCompositionModification":
        monosaccharides = MonosaccharideCollection.default()
        parsed = monosaccharides.parse_monosaccharide_composition(s)
        return cls(tuple((k, parsed[k]) for k in monosaccharides if k in parsed))


@dataclass(frozen=True)
class GlycanStructureModification(Modification):
    glycan: GlycanNode

    @property
    def name(self) -> str:  # type: ignore[override]
        return f"Glycan:{self.glycan}"

    def formula(self) -> MolecularFormula:
        return self.glycan.formula(MonosaccharideCollection.default())


class CrossLinkSide(Enum):
    symmetric = "symmetric"
    left = "left"
    right = "right"


@dataclass(frozen=True)
class CrossLink(Modification):
    """
    One end of a cross-link. ``peptide`` and ``sequence_index`` point to the
    partner residue. The linker formula is carried by the ``primary`` end
    only.
    """

    peptide: int
    sequence_index: int
    linker: ModificationInfo
    name: str
    side: CrossLinkSide
    primary: bool = True

    def formula(self) -> MolecularFormula:
        if self.primary:
            return self.linker.formula()
        return MolecularFormula()

    @property
    def neutral_losses(self) -> Tuple[NeutralLoss, ...]:
        return self.linker.neutral_losses

    @property
    def diagnostic_ions(self) -> Tuple[MolecularFormula, ...]:
        return self.linker.diagnostic_ions


@dataclass(frozen=True)
class AmbiguousModification:
    """
    A modification that is on one of several residues. All residues sharing
    ``id`` belong to the same group.
    """

    id: int
    modification: Modification
    localisation_score: Optional[float] = None
    group: Optional[Tuple[str, bool]] = None


class ModificationCollection(Dict[str, ModificationInfo]):
    def __init__(self, modification_map: Mapping[str, ModificationInfo]):
        super().__init__(**modification_map)
        for key, mod in modification_map.items():
            self.check_mod_id(key, mod)

        amino_acid_map: Dict[str, List[str]] = {}
        unimod_map: Dict[int, List[str]] = {}
        for key, mod in self.items():
            for rule in mod.rules + mod.linker_left_rules + mod.linker_right_rules:
                for aa in rule.amino_acids or "*":
                    keys = amino_acid_map.setdefault(aa, [])
                    if key not in keys:
                        keys.append(key)
            unimod_map.setdefault(mod.unimod, []).append(key)
        self._amino_acid_map = amino_acid_map
        self._unimod_map = unimod_map

    @classmethod
    def load(
        cls,
        neutral_losses: Optional[NeutralLossCollection] = None,
        modification_file: Optional[str] = None,
    ):
        if modification_file is None:
            modification_file = bundled_file(__file__, "modifications.yaml")
        if neutral_losses is None:
            neutral_losses = NeutralLossCollection.default()

        dict_ = load_yaml(modification_file)

        def rules(values: Optional[Sequence[Mapping]]):
            return tuple(PlacementRule.from_dict(r) for r in values or ())

        def from_dict(name: str, d: Dict):
            composition = d.get("composition", None)
            if composition is None:
                raise ValueError(f"composition of modification {name} is missing")

            return ModificationInfo(
                name=name,
                composition=MolecularFormula.from_composition(composition),
                rules=rules(d.get("rules", None)),
                linker_left_rules=rules(d.get("linker_left_rules", None)),
                linker_right_rules=rules(d.get("linker_right_rules", None)),
                losses=tuple(
                    neutral_losses.parse(s) for s in d.get("neutral_losses", None) or ()
                ),
                diagnostics=tuple(
                    MolecularFormula.from_composition(s)
                    for s in d.get("diagnostic_ions", None) or ()
                ),
                unimod=d.get("unimod", -1),
            )

        collection = cls({key: from_dict(key, value) for key, value in dict_.items()})
        return collection

    @classmethod
    @functools.lru_cache(maxsize=None)
    def default(cls) -> "ModificationCollection":
        return cls.load()

    def __setitem__(self, key, value):
        raise TypeError("ModificationCollection is immutable")

    def __delitem__(self, key):
        raise TypeError("ModificationCollection is immutable")

    def check_mod_id(self, id: str, mod_info: ModificationInfo):
        if not id:
            raise ValueError(f"invalid modification id '{id}': empty")
        if any(ch.isspace() for ch in id):
            raise ValueError(f"invalid modification id {id}: id contains whitespace")
        if id != mod_info.name:
            raise ValueError(f"invalid modification id {id}: name {mod_info.name} not match")

    def find_by_amino_acid(self, amino_acid: str) -> List[str]:
        return self._amino_acid_map.get(amino_acid, []) + self._amino_acid_map.get(
            "*", []
        )

    def search_by_unimod(self, unimod: int) -> List[str]:
        return list(self._unimod_map.get(unimod, []))
