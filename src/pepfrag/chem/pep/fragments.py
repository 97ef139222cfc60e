__all__ = [
    "PeptideFragmentTypeInfo",
    "PeptideFragmentTypeCollection",
    "PeptidePosition",
    "GlycanPosition",
    "GlycanBreakPos",
    "DiagnosticPosition",
    "DiagnosticGlycan",
    "DiagnosticGlycanCompositional",
    "DiagnosticPeptide",
    "DiagnosticLabile",
    "FragmentKind",
    "FragmentType",
    "PeptideFragmentType",
    "GlycanB",
    "GlycanY",
    "Oxonium",
    "OxoniumComposition",
    "YComposition",
    "Immonium",
    "SideChainLoss",
    "Diagnostic",
    "Precursor",
    "Fragment",
]

import abc
import functools
from dataclasses import dataclass, replace
from enum import Enum
from typing import (
    Dict,
    Iterable,
    List,
    Literal,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from ...util.io.yaml import bundled_file, load_yaml
from ..common.charge import MolecularCharge
from ..common.formula import MolecularFormula
from ..common.multi import Multi
from ..common.mz import MassMode, mass_to_mz
from .losses import NeutralLoss


MonosaccharideCount = Tuple[Tuple[str, int], ...]


@dataclass(frozen=True)
class PeptideFragmentTypeInfo:
    name: str
    n_term: bool = True
    source: Literal["residue", "side_chain", "fixed"] = "residue"
    delta: MolecularFormula = MolecularFormula()


class PeptideFragmentTypeCollection(Dict[str, PeptideFragmentTypeInfo]):
    def __init__(self, peptide_fragment_map: Mapping[str, PeptideFragmentTypeInfo]):
        super().__init__(**peptide_fragment_map)
        for key, ft in peptide_fragment_map.items():
            self.check_fragment_type_id(key, ft)

    @classmethod
    def load(cls, peptide_fragment_file: Optional[str] = None):
        if peptide_fragment_file is None:
            peptide_fragment_file = bundled_file(__file__, "peptide_fragments.yaml")

        dict_ = load_yaml(peptide_fragment_file)

        def from_dict(d: Dict):
            source = d.get("source", "residue")
            if source not in ("residue", "side_chain", "fixed"):
                raise ValueError(f"invalid fragment formula source {source}")
            return PeptideFragmentTypeInfo(
                name=d["name"],
                n_term=d.get("n_term", True),
                source=source,
                delta=MolecularFormula.from_composition(d["delta"]),
            )

        collection = cls({key: from_dict(value) for key, value in dict_.items()})
        return collection

    @classmethod
    @functools.lru_cache(maxsize=None)
    def default(cls) -> "PeptideFragmentTypeCollection":
        return cls.load()

    def __setitem__(self, key, value):
        raise TypeError("PeptideFragmentTypeCollection is immutable")

    def __delitem__(self, key):
        raise TypeError("PeptideFragmentTypeCollection is immutable")

    def check_fragment_type_id(self, id: str, fragment_type: PeptideFragmentTypeInfo):
        if not id:
            raise ValueError(f"invalid fragment type id '{id}': empty")
        if any(map(str.isdigit, id)):
            raise ValueError(
                f"invalid fragment type id {id}: id cannot contain numbers"
            )
        if id not in _BACKBONE_KINDS:
            raise ValueError(f"invalid fragment type id {id}: unknown ion series")


@dataclass(frozen=True)
class PeptidePosition:
    """
    A position on a peptide. ``sequence_index`` is 0-based from the N
    terminus, ``series_number`` is 1-based from the terminus the ion series
    is counted from.
    """

    sequence_index: int
    series_number: int
    sequence_length: int

    def __post_init__(self):
        if not 0 <= self.sequence_index < self.sequence_length:
            raise ValueError(
                f"invalid peptide position: index {self.sequence_index} "
                f"out of length {self.sequence_length}"
            )

    @classmethod
    def n(cls, sequence_index: int, sequence_length: int) -> "PeptidePosition":
        return cls(sequence_index, sequence_index + 1, sequence_length)

    @classmethod
    def c(cls, sequence_index: int, sequence_length: int) -> "PeptidePosition":
        return cls(sequence_index, sequence_length - sequence_index, sequence_length)

    def is_n_terminal(self) -> bool:
        return self.sequence_index == 0

    def is_c_terminal(self) -> bool:
        return self.sequence_index == self.sequence_length - 1

    def flip_terminal(self) -> "PeptidePosition":
        return PeptidePosition(
            self.sequence_index,
            self.sequence_length + 1 - self.series_number,
            self.sequence_length,
        )


_GREEK = "αβγδεζηθικλμνξοπρστυφχψω"


@dataclass(frozen=True)
class GlycanPosition:
    """
    A monosaccharide in a glycan tree. ``inner_depth`` counts bonds from the
    root, ``branch`` lists the child index taken at every branching point on
    the way from the root, ``attachment`` is the residue (amino acid, index)
    the glycan is attached to.
    """

    inner_depth: int
    series_number: int
    branch: Tuple[int, ...] = ()
    attachment: Optional[Tuple[str, int]] = None

    def label(self) -> str:
        return f"{self.series_number}" + "".join(
            _GREEK[b % len(_GREEK)] + "'" * (b // len(_GREEK)) for b in self.branch
        )

    def attachment_label(self) -> str:
        if self.attachment is None:
            return ""
        aa, index = self.attachment
        return f"@{aa}{index + 1}"


@dataclass(frozen=True)
class GlycanBreakPos:
    kind: Literal["end", "y", "b"]
    position: GlycanPosition

    def label(self) -> str:
        if self.kind == "end":
            return "End"
        return f"{self.kind.upper()}{self.position.label()}"


class DiagnosticPosition(abc.ABC):
    @abc.abstractmethod
    def label(self) -> str:
        pass


@dataclass(frozen=True)
class DiagnosticGlycan(DiagnosticPosition):
    position: GlycanPosition
    monosaccharide: str

    def label(self) -> str:
        return f"{self.monosaccharide}{self.position.label()}"


@dataclass(frozen=True)
class DiagnosticGlycanCompositional(DiagnosticPosition):
    monosaccharide: str
    attachment: Optional[Tuple[str, int]] = None

    def label(self) -> str:
        return self.monosaccharide


@dataclass(frozen=True)
class DiagnosticPeptide(DiagnosticPosition):
    position: PeptidePosition
    amino_acid: str

    def label(self) -> str:
        return f"{self.amino_acid}{self.position.series_number}"


@dataclass(frozen=True)
class DiagnosticLabile(DiagnosticPosition):
    modification: str

    def label(self) -> str:
        return self.modification


class FragmentKind(Enum):
    a = "a"
    b = "b"
    c = "c"
    d = "d"
    v = "v"
    w = "w"
    x = "x"
    y = "y"
    z = "z"
    z_dot = "z·"
    B = "B"
    Y = "Y"
    oxonium = "oxonium"
    immonium = "immonium"
    m = "m"
    diagnostic = "diagnostic"
    precursor = "precursor"

    @property
    def is_backbone(self) -> bool:
        return self.value in _BACKBONE_KINDS

    @property
    def is_n_terminal(self) -> bool:
        return self in (FragmentKind.a, FragmentKind.b, FragmentKind.c, FragmentKind.d)


_BACKBONE_KINDS = ("a", "b", "c", "d", "v", "w", "x", "y", "z", "z·")


def _composition_label(composition: MonosaccharideCount) -> str:
    return "".join(f"{k}({v})" for k, v in composition)


class FragmentType(abc.ABC):
    """Ion type of a fragment together with where it comes from."""

    @property
    @abc.abstractmethod
    def kind(self) -> FragmentKind:
        pass

    @property
    def position(self) -> Optional[PeptidePosition]:
        return None

    @property
    def glycan_position(self) -> Optional[GlycanPosition]:
        return None

    def label(self) -> str:
        return self.kind.value

    def position_label(self) -> str:
        return ""

    def __str__(self) -> str:
        return self.label() + self.position_label()


@dataclass(frozen=True)
class PeptideFragmentType(FragmentType):
    series: FragmentKind
    peptide_position: PeptidePosition

    def __post_init__(self):
        if not self.series.is_backbone:
            raise ValueError(f"invalid peptide fragment series {self.series}")

    @property
    def kind(self) -> FragmentKind:
        return self.series

    @property
    def position(self) -> Optional[PeptidePosition]:
        return self.peptide_position

    def position_label(self) -> str:
        return str(self.peptide_position.series_number)


@dataclass(frozen=True)
class GlycanB(FragmentType):
    glycan: GlycanPosition

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.B

    @property
    def glycan_position(self) -> Optional[GlycanPosition]:
        return self.glycan

    def position_label(self) -> str:
        return self.glycan.label()


@dataclass(frozen=True)
class GlycanY(FragmentType):
    breakages: Tuple[GlycanPosition, ...]

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.Y

    @property
    def glycan_position(self) -> Optional[GlycanPosition]:
        return self.breakages[0] if self.breakages else None

    def position_label(self) -> str:
        return "".join(p.label() for p in self.breakages)


@dataclass(frozen=True)
class Oxonium(FragmentType):
    breakages: Tuple[GlycanBreakPos, ...]

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.oxonium

    @property
    def glycan_position(self) -> Optional[GlycanPosition]:
        return self.breakages[0].position if self.breakages else None

    def label(self) -> str:
        return "B"

    def position_label(self) -> str:
        return "".join(b.label() for b in self.breakages)


@dataclass(frozen=True)
class OxoniumComposition(FragmentType):
    composition: MonosaccharideCount
    amino_acid: str
    sequence_index: int

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.oxonium

    def label(self) -> str:
        return "B"

    def position_label(self) -> str:
        return _composition_label(self.composition)


@dataclass(frozen=True)
class YComposition(FragmentType):
    composition: MonosaccharideCount
    amino_acid: str
    sequence_index: int

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.Y

    def position_label(self) -> str:
        return _composition_label(self.composition)


@dataclass(frozen=True)
class Immonium(FragmentType):
    peptide_position: PeptidePosition
    amino_acid: str

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.immonium

    @property
    def position(self) -> Optional[PeptidePosition]:
        return self.peptide_position

    def label(self) -> str:
        return "imm"

    def position_label(self) -> str:
        return f"{self.amino_acid}{self.peptide_position.series_number}"


@dataclass(frozen=True)
class SideChainLoss(FragmentType):
    """Precursor that lost the side chain of one residue."""

    peptide_position: PeptidePosition
    amino_acid: str

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.m

    @property
    def position(self) -> Optional[PeptidePosition]:
        return self.peptide_position

    def label(self) -> str:
        return f"p-s{self.amino_acid}"

    def position_label(self) -> str:
        return str(self.peptide_position.series_number)


@dataclass(frozen=True)
class Diagnostic(FragmentType):
    diagnostic: DiagnosticPosition

    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.diagnostic

    @property
    def position(self) -> Optional[PeptidePosition]:
        if isinstance(self.diagnostic, DiagnosticPeptide):
            return self.diagnostic.position
        return None

    @property
    def glycan_position(self) -> Optional[GlycanPosition]:
        if isinstance(self.diagnostic, DiagnosticGlycan):
            return self.diagnostic.position
        return None

    def label(self) -> str:
        return "diag"

    def position_label(self) -> str:
        return self.diagnostic.label()


@dataclass(frozen=True)
class Precursor(FragmentType):
    @property
    def kind(self) -> FragmentKind:
        return FragmentKind.precursor

    def label(self) -> str:
        return "p"


@dataclass(frozen=True)
class Fragment:
    """
    A theoretical ion. ``formula`` includes the charge carriers, ``charge``
    is the charge they bring.
    """

    formula: MolecularFormula
    charge: int
    ion: FragmentType
    peptidoform_index: int = 0
    peptide_index: int = 0
    neutral_loss: Optional[NeutralLoss] = None

    def mz(self, mode: Union[MassMode, str] = MassMode.monoisotopic) -> Optional[float]:
        mass = self.formula.mass(mode)
        if mass is None or self.charge == 0:
            return None
        return mass_to_mz(mass, self.charge)

    def ppm(
        self, other: "Fragment", mode: Union[MassMode, str] = MassMode.monoisotopic
    ) -> Optional[float]:
        mz = self.mz(mode)
        other_mz = other.mz(mode)
        if mz is None or other_mz is None:
            return None
        return abs(mz - other_mz) / other_mz * 1e6

    @classmethod
    def generate_all(
        cls,
        theoretical_formulas: Multi[MolecularFormula],
        peptidoform_index: int,
        peptide_index: int,
        annotation: FragmentType,
        termini: Multi[MolecularFormula],
        neutral_losses: Sequence[NeutralLoss],
    ) -> List["Fragment"]:
        """
        Uncharged fragments for every terminal and theoretical formula
        combination, each followed by its neutral loss variants.
        """
        result = []
        for term in termini:
            for formula in theoretical_formulas:
                base = cls(
                    formula=term + formula,
                    charge=0,
                    ion=annotation,
                    peptidoform_index=peptidoform_index,
                    peptide_index=peptide_index,
                )
                result.extend(base.with_neutral_losses(neutral_losses))
        return result

    def with_charge(self, charge: MolecularCharge) -> "Fragment":
        formula = charge.formula()
        return replace(self, formula=self.formula + formula, charge=formula.charge())

    def with_charges(self, charges: Iterable[MolecularCharge]) -> List["Fragment"]:
        return [self.with_charge(c) for c in charges]

    def with_neutral_loss(self, neutral_loss: NeutralLoss) -> "Fragment":
        return replace(
            self,
            formula=self.formula + neutral_loss.as_formula(),
            neutral_loss=neutral_loss,
        )

    def with_neutral_losses(
        self, neutral_losses: Iterable[NeutralLoss]
    ) -> List["Fragment"]:
        return [self] + [self.with_neutral_loss(loss) for loss in neutral_losses]

    def __str__(self) -> str:
        mz = self.mz()
        mz_str = f"{mz:.4f}" if mz is not None else "?"
        loss = str(self.neutral_loss) if self.neutral_loss is not None else ""
        return f"{self.ion}@{mz_str}{self.charge:+}{loss}"
