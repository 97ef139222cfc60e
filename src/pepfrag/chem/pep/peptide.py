__all__ = [
    "SequenceElement",
    "LinearPeptide",
    "Peptidoform",
]

import itertools
from logging import Logger
from typing import Collection, Dict, List, Mapping, Optional, Sequence, Tuple

from ..common.charge import MolecularCharge
from ..common.formula import MolecularFormula
from ..common.multi import Multi
from ..gpep.fragments import glycan_composition_fragments, glycan_structure_fragments
from .aminoacids import AminoAcidCollection, AminoAcidInfo, residue_fragments
from .fragments import (
    Diagnostic,
    DiagnosticLabile,
    DiagnosticPeptide,
    Fragment,
    PeptidePosition,
    Precursor,
    SideChainLoss,
)
from .losses import NeutralLoss
from .model import Model
from .mods import (
    AmbiguousModification,
    CrossLink,
    CrossLinkSide,
    GlycanCompositionModification,
    GlycanStructureModification,
    Modification,
    ModificationInfo,
    ModPosition,
    RulePossible,
)


_N_TERMINAL = MolecularFormula.from_composition("H")
_C_TERMINAL = MolecularFormula.from_composition("O H")

Selection = Mapping[int, int]
SequencePosition = Tuple[int, int]


class SequenceElement:
    """
    A residue with its fixed modifications and the ambiguous modifications
    it may carry.
    """

    def __init__(
        self,
        amino_acid: AminoAcidInfo,
        modifications: Optional[List[Modification]] = None,
        possible_modifications: Optional[List[AmbiguousModification]] = None,
    ):
        self.amino_acid = amino_acid
        self.modifications: List[Modification] = list(modifications or [])
        self.possible_modifications: List[AmbiguousModification] = list(
            possible_modifications or []
        )

    def __eq__(self, other) -> bool:
        if not isinstance(other, SequenceElement):
            return NotImplemented
        return (
            self.amino_acid == other.amino_acid
            and self.modifications == other.modifications
            and self.possible_modifications == other.possible_modifications
        )

    def __str__(self) -> str:
        mods = "".join(f"[{m}]" for m in self.modifications)
        return f"{self.amino_acid}{mods}"

    def __repr__(self) -> str:
        return f"SequenceElement({self})"

    def selected_modifications(self, selected_ids: Collection[int]) -> List[Modification]:
        return self.modifications + [
            m.modification for m in self.possible_modifications if m.id in selected_ids
        ]

    def modification_formulas(self, selected_ids: Collection[int] = ()) -> Multi[MolecularFormula]:
        return Multi(
            [
                sum(
                    (m.formula() for m in self.selected_modifications(selected_ids)),
                    MolecularFormula(),
                )
            ]
        )

    def formulas_selected(self, selected_ids: Collection[int]) -> Multi[MolecularFormula]:
        """Formulas with the ambiguous modifications of the given groups placed here."""
        return self.amino_acid.formulas + self.modification_formulas(selected_ids)

    def formulas_greedy(self, placed: List[bool]) -> Multi[MolecularFormula]:
        """
        Formulas with every ambiguous modification not yet placed elsewhere.
        ``placed`` is indexed by group id and updated in place.
        """
        selected = []
        for m in self.possible_modifications:
            if not placed[m.id]:
                placed[m.id] = True
                selected.append(m.id)
        return self.formulas_selected(selected)

    def formulas_all(self) -> Multi[MolecularFormula]:
        """Formulas with and without each ambiguous modification."""
        return Multi.sum(
            [self.amino_acid.formulas, self.modification_formulas()]
            + [
                Multi([MolecularFormula(), m.modification.formula()])
                for m in self.possible_modifications
            ]
        )


class LinearPeptide:
    """A single peptide chain with its terminal and labile modifications."""

    def __init__(
        self,
        sequence: Sequence[SequenceElement],
        n_term: Optional[Modification] = None,
        c_term: Optional[Modification] = None,
        labile: Optional[List[Modification]] = None,
        charge_carriers: Optional[MolecularCharge] = None,
        ambiguous_modifications: Optional[List[List[int]]] = None,
    ):
        self.sequence: List[SequenceElement] = list(sequence)
        self.n_term = n_term
        self.c_term = c_term
        self.labile: List[Modification] = list(labile or [])
        self.charge_carriers = charge_carriers
        self.ambiguous_modifications: List[List[int]] = [
            list(g) for g in ambiguous_modifications or []
        ]

    @classmethod
    def from_sequence(
        cls, sequence: str, amino_acids: Optional[AminoAcidCollection] = None
    ) -> "LinearPeptide":
        if amino_acids is None:
            amino_acids = AminoAcidCollection.default()
        return cls([SequenceElement(aa) for aa in amino_acids.parse_sequence(sequence)])

    def __len__(self) -> int:
        return len(self.sequence)

    def __str__(self) -> str:
        return "".join(str(e) for e in self.sequence)

    def __repr__(self) -> str:
        return f"LinearPeptide({self})"

    def stripped_sequence(self) -> str:
        return "".join(e.amino_acid.symbol for e in self.sequence)

    def check_sequence_index(self, sequence_index: int):
        if not 0 <= sequence_index < len(self.sequence):
            raise ValueError(
                f"invalid modification index {sequence_index}: "
                f"out of range for peptide of length {len(self.sequence)}"
            )

    def add_modification(self, sequence_index: int, modification: Modification):
        self.check_sequence_index(sequence_index)
        self.sequence[sequence_index].modifications.append(modification)

    def add_ambiguous_modification(
        self,
        modification: Modification,
        positions: Sequence[int],
        localisation_scores: Optional[Sequence[float]] = None,
    ) -> int:
        """Place a modification on one of several residues, returns the group id."""
        if not positions:
            raise ValueError("invalid ambiguous modification: no positions")
        for index in positions:
            self.check_sequence_index(index)
        if localisation_scores is not None and len(localisation_scores) != len(positions):
            raise ValueError(
                "invalid ambiguous modification: "
                "localisation scores and positions not match"
            )

        group_id = len(self.ambiguous_modifications)
        for i, index in enumerate(positions):
            self.sequence[index].possible_modifications.append(
                AmbiguousModification(
                    id=group_id,
                    modification=modification,
                    localisation_score=(
                        localisation_scores[i] if localisation_scores is not None else None
                    ),
                )
            )
        self.ambiguous_modifications.append(list(positions))
        return group_id

    def reverse(self) -> "LinearPeptide":
        """The peptide read from the C terminus, terminal modifications swapped."""
        length = len(self.sequence)
        return LinearPeptide(
            [
                SequenceElement(
                    e.amino_acid, list(e.modifications), list(e.possible_modifications)
                )
                for e in reversed(self.sequence)
            ],
            n_term=self.c_term,
            c_term=self.n_term,
            labile=list(self.labile),
            charge_carriers=self.charge_carriers,
            ambiguous_modifications=[
                [length - 1 - i for i in group] for group in self.ambiguous_modifications
            ],
        )

    def n_terminal_formula(self) -> MolecularFormula:
        if self.n_term is None:
            return _N_TERMINAL
        return _N_TERMINAL + self.n_term.formula()

    def c_terminal_formula(self) -> MolecularFormula:
        if self.c_term is None:
            return _C_TERMINAL
        return _C_TERMINAL + self.c_term.formula()

    def _terminal_formula(self) -> MolecularFormula:
        return sum(
            (m.formula() for m in self.labile),
            self.n_terminal_formula() + self.c_terminal_formula(),
        )

    def ambiguous_patterns(self) -> List[Dict[int, int]]:
        """Every placement of the ambiguous groups, as group id to sequence index."""
        return [
            dict(enumerate(indices))
            for indices in itertools.product(*self.ambiguous_modifications)
        ]

    def _selected_ids(self, selection: Selection, sequence_index: int) -> List[int]:
        return [k for k, v in selection.items() if v == sequence_index]

    def formulas_selected(self, selection: Selection) -> Multi[MolecularFormula]:
        """Formulas with every ambiguous group placed as ``selection`` says."""
        return self._terminal_formula() + Multi.sum(
            e.formulas_selected(self._selected_ids(selection, i))
            for i, e in enumerate(self.sequence)
        )

    def formulas_greedy(self) -> Multi[MolecularFormula]:
        """Formulas with every ambiguous group placed on its first residue."""
        placed = [False] * len(self.ambiguous_modifications)
        return self._terminal_formula() + Multi.sum(
            e.formulas_greedy(placed) for e in self.sequence
        )

    def formulas_all(self) -> Multi[MolecularFormula]:
        """Formulas with every residue independently carrying or lacking its ambiguous modifications."""
        return self._terminal_formula() + Multi.sum(
            e.formulas_all() for e in self.sequence
        )

    def formulas(self) -> Multi[MolecularFormula]:
        """Distinct formulas over every valid placement of the ambiguous groups."""
        return Multi.flatten(
            self.formulas_selected(p) for p in self.ambiguous_patterns()
        ).unique()

    def _charge_carriers(self, max_charge: int) -> MolecularCharge:
        if self.charge_carriers is None or self.charge_carriers.charge() > max_charge:
            return MolecularCharge.proton(max_charge)
        return self.charge_carriers

    def generate_theoretical_fragments(
        self,
        max_charge: int,
        model: Model,
        peptidoform_index: int = 0,
        peptide_index: int = 0,
        partner_formulas: Optional[Mapping[int, Multi[MolecularFormula]]] = None,
        logger: Optional[Logger] = None,
    ) -> List[Fragment]:
        """
        All theoretical fragments of the peptide under ``model``.

        Ambiguous modifications are resolved by generating every placement
        and merging identical fragments. ``partner_formulas`` adds the
        formulas of cross-linked peptides to the residue they are linked to.
        """
        charge_carriers = self._charge_carriers(max_charge)
        result: List[Fragment] = []
        for selection in self.ambiguous_patterns():
            result.extend(
                self._generate(
                    selection,
                    charge_carriers,
                    model,
                    peptidoform_index,
                    peptide_index,
                    partner_formulas or {},
                )
            )
        result = list(dict.fromkeys(result))

        if logger:
            logger.debug(
                f"generated {len(result)} fragments for peptide {self} "
                f"with charge carriers {charge_carriers}"
            )
        return result

    def _generate(
        self,
        selection: Selection,
        charge_carriers: MolecularCharge,
        model: Model,
        peptidoform_index: int,
        peptide_index: int,
        partner_formulas: Mapping[int, Multi[MolecularFormula]],
    ) -> List[Fragment]:
        length = len(self.sequence)
        charges = charge_carriers.all_charge_options()
        single_charges = charge_carriers.all_single_charge_options()

        mods = [
            e.selected_modifications(self._selected_ids(selection, i))
            for i, e in enumerate(self.sequence)
        ]
        mod_formulas = [
            e.modification_formulas(self._selected_ids(selection, i))
            + partner_formulas.get(i, Multi())
            for i, e in enumerate(self.sequence)
        ]
        residue_formulas = [
            (e.amino_acid.formulas + f).unique()
            for e, f in zip(self.sequence, mod_formulas)
        ]
        full = (
            self._terminal_formula() + Multi.sum(residue_formulas)
        ).unique()

        n_losses: List[List[NeutralLoss]] = []
        c_losses: List[List[NeutralLoss]] = []
        if model.modification_specific_neutral_losses:
            acc: List[NeutralLoss] = list(self.n_term.neutral_losses) if self.n_term else []
            for m in mods:
                acc = acc + [loss for x in m for loss in x.neutral_losses if loss not in acc]
                n_losses.append(acc)
            acc = list(self.c_term.neutral_losses) if self.c_term else []
            for m in reversed(mods):
                acc = acc + [loss for x in m for loss in x.neutral_losses if loss not in acc]
                c_losses.append(acc)
            c_losses.reverse()

        result: List[Fragment] = []
        n_term = Multi([self.n_terminal_formula()])
        c_terms = [Multi([self.c_terminal_formula()])]
        for formulas in reversed(residue_formulas[1:]):
            c_terms.append((c_terms[-1] + formulas).unique())
        c_terms.reverse()

        for i, element in enumerate(self.sequence):
            position = PeptidePosition.n(i, length)
            ions = model.ions(position)
            if model.modification_specific_neutral_losses:
                ions = ions.with_extra_losses(n_losses[i], c_losses[i])

            result.extend(
                residue_fragments(
                    element.amino_acid,
                    i,
                    length,
                    n_term,
                    c_terms[i],
                    mod_formulas[i],
                    charge_carriers,
                    ions,
                    peptidoform_index=peptidoform_index,
                    peptide_index=peptide_index,
                )
            )
            n_term = (n_term + residue_formulas[i]).unique()

            if model.modification_specific_diagnostic_ions:
                ion = Diagnostic(DiagnosticPeptide(position, element.amino_acid.symbol))
                for m in mods[i]:
                    for diagnostic in m.diagnostic_ions:
                        result.extend(
                            Fragment(
                                diagnostic, 0, ion, peptidoform_index, peptide_index
                            ).with_charges(single_charges)
                        )

            if model.m:
                satellite = element.amino_acid.satellite_ion_fragments()
                if element.amino_acid.side_chain_losses:
                    ion = SideChainLoss(position, element.amino_acid.symbol)
                    for fragment in Fragment.generate_all(
                        full - satellite, peptidoform_index, peptide_index, ion, Multi(), ()
                    ):
                        result.extend(fragment.with_charges(charges))

            if model.glycan.enabled:
                for m in mods[i]:
                    attachment = (element.amino_acid.symbol, i)
                    if isinstance(m, GlycanStructureModification):
                        result.extend(
                            glycan_structure_fragments(
                                m.glycan,
                                full - m.formula(),
                                charge_carriers,
                                model.glycan.losses,
                                attachment=attachment,
                                peptidoform_index=peptidoform_index,
                                peptide_index=peptide_index,
                            )
                        )
                    elif isinstance(m, GlycanCompositionModification):
                        result.extend(
                            glycan_composition_fragments(
                                dict(m.composition),
                                full - m.formula(),
                                charge_carriers,
                                attachment,
                                model.glycan.losses,
                                peptidoform_index=peptidoform_index,
                                peptide_index=peptide_index,
                            )
                        )

        if model.modification_specific_diagnostic_ions:
            for m in self.labile:
                ion = Diagnostic(DiagnosticLabile(m.name))
                for diagnostic in m.diagnostic_ions:
                    result.extend(
                        Fragment(
                            diagnostic, 0, ion, peptidoform_index, peptide_index
                        ).with_charges(single_charges)
                    )

        for fragment in Fragment.generate_all(
            full, peptidoform_index, peptide_index, Precursor(), Multi(), model.precursor
        ):
            result.extend(fragment.with_charges(charges))
        return result


class Peptidoform:
    """One or more peptides, possibly connected by cross-links."""

    def __init__(self, peptides: Optional[Sequence[LinearPeptide]] = None):
        self.peptides: List[LinearPeptide] = list(peptides or [])

    def __len__(self) -> int:
        return len(self.peptides)

    def __str__(self) -> str:
        return "//".join(str(p) for p in self.peptides)

    def __repr__(self) -> str:
        return f"Peptidoform({self})"

    def _has_position(self, position: SequencePosition) -> bool:
        peptide_index, sequence_index = position
        return 0 <= peptide_index < len(self.peptides) and 0 <= sequence_index < len(
            self.peptides[peptide_index]
        )

    def _rule_possible(
        self, position: SequencePosition, linker: ModificationInfo
    ) -> RulePossible:
        peptide = self.peptides[position[0]]
        element = peptide.sequence[position[1]]
        return linker.is_possible(
            element.amino_acid.symbol,
            ModPosition.of_residue(position[1], len(peptide.sequence)),
        )

    def add_cross_link(
        self,
        pos_a: SequencePosition,
        pos_b: SequencePosition,
        linker: ModificationInfo,
        name: str,
    ) -> bool:
        """
        Link two residues, each given as (peptide index, sequence index).
        Both ends are checked against the linker placement rules first,
        nothing is changed when either end does not exist or is not possible.
        """
        if not self._has_position(pos_a) or not self._has_position(pos_b):
            return False

        a = self._rule_possible(pos_a, linker)
        b = self._rule_possible(pos_b, linker)
        if a == RulePossible.symmetric and b == RulePossible.symmetric:
            sides = (CrossLinkSide.symmetric, CrossLinkSide.symmetric)
        elif a == RulePossible.asymmetric_left and b in (
            RulePossible.asymmetric_right,
            RulePossible.symmetric,
        ):
            sides = (CrossLinkSide.left, CrossLinkSide.right)
        elif a == RulePossible.asymmetric_right and b in (
            RulePossible.asymmetric_left,
            RulePossible.symmetric,
        ):
            sides = (CrossLinkSide.right, CrossLinkSide.left)
        else:
            return False

        self.peptides[pos_a[0]].sequence[pos_a[1]].modifications.append(
            CrossLink(pos_b[0], pos_b[1], linker, name, sides[0], primary=True)
        )
        self.peptides[pos_b[0]].sequence[pos_b[1]].modifications.append(
            CrossLink(pos_a[0], pos_a[1], linker, name, sides[1], primary=False)
        )
        return True

    def formulas(self) -> Multi[MolecularFormula]:
        return Multi.sum(p.formulas() for p in self.peptides).unique()

    def _partner_formulas(self, peptide_index: int) -> Dict[int, Multi[MolecularFormula]]:
        result: Dict[int, Multi[MolecularFormula]] = {}
        for i, element in enumerate(self.peptides[peptide_index].sequence):
            for m in element.modifications:
                if isinstance(m, CrossLink) and m.peptide != peptide_index:
                    result[i] = result.get(i, Multi()) + self.peptides[m.peptide].formulas()
        return result

    def generate_theoretical_fragments(
        self,
        max_charge: int,
        model: Model,
        peptidoform_index: int = 0,
        logger: Optional[Logger] = None,
    ) -> List[Fragment]:
        """
        Fragments of every peptide. A fragment holding a residue linked to
        another peptide carries that whole peptide.
        """
        result: List[Fragment] = []
        for peptide_index, peptide in enumerate(self.peptides):
            result.extend(
                peptide.generate_theoretical_fragments(
                    max_charge,
                    model,
                    peptidoform_index=peptidoform_index,
                    peptide_index=peptide_index,
                    partner_formulas=self._partner_formulas(peptide_index),
                    logger=logger,
                )
            )
        return list(dict.fromkeys(result))
