__all__ = [
    "AminoAcidInfo",
    "AminoAcidCollection",
    "residue_fragments",
]

import functools
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from ...util.io.yaml import bundled_file, load_yaml
from ..common.charge import MolecularCharge
from ..common.formula import MolecularFormula
from ..common.multi import Multi
from .fragments import (
    Fragment,
    FragmentKind,
    Immonium,
    PeptideFragmentType,
    PeptideFragmentTypeCollection,
    PeptidePosition,
)
from .losses import NeutralLoss
from .model import PossibleIons


_CARBONYL = MolecularFormula.from_composition("C O")


@dataclass(frozen=True)
class AminoAcidInfo:
    symbol: str
    name: str
    three_letter: str = ""
    formulas: Multi[MolecularFormula] = field(default_factory=Multi)
    side_chain_losses: Tuple[MolecularFormula, ...] = ()
    immonium_losses: Tuple[NeutralLoss, ...] = ()

    @property
    def is_ambiguous(self) -> bool:
        return len(self.formulas) > 1

    @property
    def mass(self) -> Optional[float]:
        """Monoisotopic residue mass, the first alternative for ambiguous codes."""
        return self.formulas[0].monoisotopic_mass()

    def satellite_ion_fragments(self) -> Multi[MolecularFormula]:
        """Side chain losses of the residue, the identity when it has none."""
        return Multi(self.side_chain_losses)

    def __str__(self) -> str:
        return self.symbol


class AminoAcidCollection(Dict[str, AminoAcidInfo]):
    def __init__(self, amino_acid_map: Mapping[str, AminoAcidInfo]):
        super().__init__(**amino_acid_map)
        for key, aa in amino_acid_map.items():
            self.check_aa_id(key, aa)

    @classmethod
    def load(cls, amino_acid_file: Optional[str] = None):
        if amino_acid_file is None:
            amino_acid_file = bundled_file(__file__, "amino_acids.yaml")

        dict_ = load_yaml(amino_acid_file)

        def from_dict(symbol: str, d: Dict):
            return AminoAcidInfo(
                symbol=symbol,
                name=d["name"],
                three_letter=d.get("three_letter", ""),
                formulas=Multi(
                    MolecularFormula.from_composition(s)
                    for s in d.get("formulas", None) or []
                ),
                side_chain_losses=tuple(
                    MolecularFormula.from_composition(s)
                    for s in d.get("side_chain_losses", None) or []
                ),
                immonium_losses=tuple(
                    NeutralLoss.parse(s) for s in d.get("immonium_losses", None) or []
                ),
            )

        collection = cls({key: from_dict(key, value) for key, value in dict_.items()})
        return collection

    @classmethod
    @functools.lru_cache(maxsize=None)
    def default(cls) -> "AminoAcidCollection":
        return cls.load()

    def __setitem__(self, key, value):
        raise TypeError("AminoAcidCollection is immutable")

    def __delitem__(self, key):
        raise TypeError("AminoAcidCollection is immutable")

    def check_aa_id(self, id: str, aa_info: AminoAcidInfo):
        if not id:
            raise ValueError(f"invalid amino acid id '{id}': empty")
        if not len(id) == 1 or not id.isalpha() or not id.isupper():
            raise ValueError(
                f"invalid amino acid id {id}: id must be an uppercase letter"
            )

    def parse_sequence(self, sequence: str) -> List[AminoAcidInfo]:
        result = []
        for i, ch in enumerate(sequence):
            aa = self.get(ch.upper(), None)
            if aa is None:
                raise ValueError(
                    f"invalid sequence {sequence}: unknown amino acid {ch} at {i}"
                )
            result.append(aa)
        return result


def residue_fragments(
    amino_acid: AminoAcidInfo,
    sequence_index: int,
    sequence_length: int,
    n_term: Multi[MolecularFormula],
    c_term: Multi[MolecularFormula],
    modifications: Multi[MolecularFormula],
    charge_carriers: MolecularCharge,
    ions: PossibleIons,
    peptidoform_index: int = 0,
    peptide_index: int = 0,
    fragment_types: Optional[PeptideFragmentTypeCollection] = None,
) -> List[Fragment]:
    """
    Charged fragments of every enabled ion series that break at this residue.

    ``n_term`` holds the formulas of everything before the residue (terminal
    group included), ``c_term`` of everything after it. N-terminal series
    are combined with ``n_term``, C-terminal series with ``c_term``.
    Immonium ions are singly charged.
    """
    if fragment_types is None:
        fragment_types = PeptideFragmentTypeCollection.default()

    n_position = PeptidePosition.n(sequence_index, sequence_length)
    c_position = PeptidePosition.c(sequence_index, sequence_length)
    satellite = amino_acid.satellite_ion_fragments()
    charges = charge_carriers.all_charge_options()

    result: List[Fragment] = []
    for name, fragment_type in fragment_types.items():
        enabled, losses = ions.series(name)
        if not enabled:
            continue

        if fragment_type.source == "residue":
            formulas = amino_acid.formulas + (modifications + fragment_type.delta)
        elif fragment_type.source == "side_chain":
            formulas = -satellite + amino_acid.formulas + fragment_type.delta
        else:
            formulas = Multi([fragment_type.delta])

        if fragment_type.n_term:
            termini, position = n_term, n_position
        else:
            termini, position = c_term, c_position
        ion = PeptideFragmentType(FragmentKind(name), position)

        for fragment in Fragment.generate_all(
            formulas, peptidoform_index, peptide_index, ion, termini, losses
        ):
            result.extend(fragment.with_charges(charges))

    if ions.immonium:
        formulas = amino_acid.formulas + modifications - _CARBONYL
        ion = Immonium(n_position, amino_acid.symbol)
        for fragment in Fragment.generate_all(
            formulas,
            peptidoform_index,
            peptide_index,
            ion,
            Multi(),
            amino_acid.immonium_losses,
        ):
            result.extend(fragment.with_charges(charge_carriers.all_single_charge_options()))

    return result

