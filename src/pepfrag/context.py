__all__ = ["register_dependencies"]

from .chem.gpep.glycans import MonosaccharideCollection
from .chem.pep.aminoacids import AminoAcidCollection
from .chem.pep.fragments import PeptideFragmentTypeCollection
from .chem.pep.losses import NeutralLossCollection
from .chem.pep.mods import ModificationCollection
from .specio.annotation import SpectrumAnnotator
from .util.di import Context
from .util.log import get_logger


def register_dependencies(**kwargs):
    ctx = Context()
    ctx.register(
        "amino_acids",
        AminoAcidCollection.load,
        amino_acid_file=kwargs.get("amino_acid_file", None),
    )
    ctx.register(
        "neutral_losses",
        NeutralLossCollection.load,
        neutral_loss_file=kwargs.get("neutral_loss_file", None),
    )
    ctx.register(
        "modifications",
        ModificationCollection.load,
        modification_file=kwargs.get("modification_file", None),
    )
    ctx.register(
        "monosaccharides",
        MonosaccharideCollection.load,
        monosaccharide_file=kwargs.get("monosaccharide_file", None),
    )
    ctx.register(
        "peptide_fragment_types",
        PeptideFragmentTypeCollection.load,
        peptide_fragment_file=kwargs.get("peptide_fragment_file", None),
    )
    ctx.register(
        "logger",
        get_logger,
        name=kwargs.get("log_name", None),
        file=kwargs.get("log_file", None),
    )
    ctx.register(
        "annotator",
        SpectrumAnnotator,
        configs=kwargs.get("config_file", None),
    )
    return ctx
