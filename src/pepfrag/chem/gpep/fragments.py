__all__ = [
    "glycan_cleavage_nodes",
    "glycan_positions",
    "glycan_structure_fragments",
    "glycan_composition_fragments",
]

import itertools
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..common.charge import MolecularCharge
from ..common.formula import MolecularFormula
from ..common.multi import Multi
from ..pep.fragments import (
    Diagnostic,
    DiagnosticGlycan,
    DiagnosticGlycanCompositional,
    Fragment,
    GlycanB,
    GlycanBreakPos,
    GlycanPosition,
    GlycanY,
    Oxonium,
    OxoniumComposition,
    YComposition,
)
from ..pep.losses import NeutralLoss
from .glycans import GlycanNode, MonosaccharideCollection


Attachment = Tuple[str, int]


def glycan_cleavage_nodes(glycan: GlycanNode) -> Iterable[List[GlycanNode]]:
    """
    Every set of subtrees that can be cleaved off at once: the node itself,
    or any combination of cleavages inside its children. The empty set
    means nothing is cleaved.
    """
    yield [glycan]
    if not glycan.children:
        yield []
        return
    for t in itertools.product(*(glycan_cleavage_nodes(c) for c in glycan.children)):
        yield list(itertools.chain.from_iterable(t))


def glycan_positions(
    glycan: GlycanNode, attachment: Optional[Attachment] = None
) -> Dict[int, GlycanPosition]:
    """Positions of all nodes, keyed by ``id(node)``."""
    positions: Dict[int, GlycanPosition] = {}

    def visit(node: GlycanNode, depth: int, branch: Tuple[int, ...]):
        positions[id(node)] = GlycanPosition(
            inner_depth=depth,
            series_number=depth + 1,
            branch=branch,
            attachment=attachment,
        )
        for i, child in enumerate(node.children):
            child_branch = branch + (i,) if len(node.children) > 1 else branch
            visit(child, depth + 1, child_branch)

    visit(glycan, 0, ())
    return positions


def _subtree_formulas(
    glycan: GlycanNode, monosaccharides: MonosaccharideCollection
) -> Dict[int, MolecularFormula]:
    formulas: Dict[int, MolecularFormula] = {}

    def visit(node: GlycanNode) -> MolecularFormula:
        formula = monosaccharides[node.monosaccharide].formula
        for child in node.children:
            formula = formula + visit(child)
        formulas[id(node)] = formula
        return formula

    visit(glycan)
    return formulas


def glycan_structure_fragments(
    glycan: GlycanNode,
    peptide_formulas: Multi[MolecularFormula],
    charge_carriers: MolecularCharge,
    neutral_losses: Sequence[NeutralLoss] = (),
    attachment: Optional[Attachment] = None,
    peptidoform_index: int = 0,
    peptide_index: int = 0,
    monosaccharides: Optional[MonosaccharideCollection] = None,
) -> List[Fragment]:
    """
    B ions of every subtree, Y ions for every set of cleaved subtrees (the
    peptide keeps the rest), internal oxonium ions, and one diagnostic ion
    per monosaccharide kind.
    """
    if monosaccharides is None:
        monosaccharides = MonosaccharideCollection.default()

    positions = glycan_positions(glycan, attachment)
    subtrees = _subtree_formulas(glycan, monosaccharides)
    full = subtrees[id(glycan)]
    charges = charge_carriers.all_charge_options()
    single_charges = charge_carriers.all_single_charge_options()

    def charged(formulas: Multi[MolecularFormula], ion, losses, options):
        fragments = Fragment.generate_all(
            formulas, peptidoform_index, peptide_index, ion, Multi(), losses
        )
        return [f for fragment in fragments for f in fragment.with_charges(options)]

    result: List[Fragment] = []
    for node in glycan.iter_depth_first():
        position = positions[id(node)]
        result.extend(
            charged(
                Multi([subtrees[id(node)]]), GlycanB(position), neutral_losses, charges
            )
        )

        for cleavages in itertools.product(
            *(glycan_cleavage_nodes(c) for c in node.children)
        ):
            removed = list(itertools.chain.from_iterable(cleavages))
            if not removed:
                continue
            formula = subtrees[id(node)] - sum(
                (subtrees[id(r)] for r in removed), MolecularFormula()
            )
            breakages = (GlycanBreakPos("b", position),) + tuple(
                GlycanBreakPos("y", positions[id(r)]) for r in removed
            )
            result.extend(
                charged(Multi([formula]), Oxonium(breakages), neutral_losses, charges)
            )

    for removed in glycan_cleavage_nodes(glycan):
        if not removed:
            continue
        remaining = full - sum((subtrees[id(r)] for r in removed), MolecularFormula())
        ion = GlycanY(tuple(positions[id(r)] for r in removed))
        result.extend(charged(peptide_formulas + remaining, ion, neutral_losses, charges))

    seen = set()
    for node in glycan.iter_depth_first():
        if node.monosaccharide in seen:
            continue
        seen.add(node.monosaccharide)
        ion = Diagnostic(DiagnosticGlycan(positions[id(node)], node.monosaccharide))
        result.extend(
            charged(
                Multi([monosaccharides[node.monosaccharide].formula]),
                ion,
                (),
                single_charges,
            )
        )
    return result


def glycan_composition_fragments(
    composition: Mapping[str, int],
    peptide_formulas: Multi[MolecularFormula],
    charge_carriers: MolecularCharge,
    attachment: Attachment,
    neutral_losses: Sequence[NeutralLoss] = (),
    peptidoform_index: int = 0,
    peptide_index: int = 0,
    monosaccharides: Optional[MonosaccharideCollection] = None,
) -> List[Fragment]:
    """
    Oxonium ions of every non-empty sub-composition and Y ions of every
    proper sub-composition, all singly charged.
    """
    if monosaccharides is None:
        monosaccharides = MonosaccharideCollection.default()

    keys = [k for k in monosaccharides if composition.get(k, 0) > 0]
    counts = [composition[k] for k in keys]
    aa, index = attachment
    single_charges = charge_carriers.all_single_charge_options()

    def charged(formulas: Multi[MolecularFormula], ion, losses):
        fragments = Fragment.generate_all(
            formulas, peptidoform_index, peptide_index, ion, Multi(), losses
        )
        return [f for fragment in fragments for f in fragment.with_charges(single_charges)]

    result: List[Fragment] = []
    for sub_counts in itertools.product(*(range(n + 1) for n in counts)):
        sub = tuple((k, n) for k, n in zip(keys, sub_counts) if n > 0)
        formula = monosaccharides.composition_formula(dict(sub))
        if sub:
            result.extend(
                charged(
                    Multi([formula]),
                    OxoniumComposition(sub, aa, index),
                    neutral_losses,
                )
            )
        if list(sub_counts) != counts:
            result.extend(
                charged(
                    peptide_formulas + formula,
                    YComposition(sub, aa, index),
                    neutral_losses,
                )
            )

    for k in keys:
        ion = Diagnostic(DiagnosticGlycanCompositional(k, attachment))
        result.extend(charged(Multi([monosaccharides[k].formula]), ion, ()))
    return result
