__all__ = ["SpectrumAnnotator"]

from logging import Logger
from typing import List, Mapping, Optional, Union

from ..chem.common.mz import MassMode
from ..chem.pep.fragments import Fragment
from ..chem.pep.losses import NeutralLossCollection
from ..chem.pep.model import Model
from ..chem.pep.peptide import LinearPeptide, Peptidoform
from ..util.config import Configurable, load_configs
from ..util.io.yaml import bundled_file
from .spec import AnnotatedSpectrum, RawSpectrum


class SpectrumAnnotator(Configurable):
    def __init__(
        self,
        configs: Union[str, dict, None] = None,
        neutral_losses: Optional[NeutralLossCollection] = None,
        logger: Optional[Logger] = None,
    ):
        super().__init__(bundled_file(__file__, "annotation.yaml"))
        self.set_configs(load_configs(configs))
        self.neutral_losses = neutral_losses
        self.logger = logger

    @property
    def model(self) -> Model:
        model = self.get_config("model")
        if isinstance(model, str):
            model = Model.preset(model)
        elif isinstance(model, Mapping):
            model = Model.from_configs(model, self.neutral_losses)
        else:
            raise ValueError(f"invalid model configs {model}")

        tolerance = self.get_config("tolerance", required=False)
        if tolerance is not None:
            model = model.with_ppm(tolerance)
        return model

    @property
    def mass_mode(self) -> MassMode:
        return MassMode.parse(self.get_config("mass_mode", typed=str))

    @property
    def max_charge(self) -> int:
        return self.get_config("max_charge", typed=int, allow_convert=True)

    def generate_fragments(
        self,
        peptide: Union[Peptidoform, LinearPeptide],
        max_charge: Optional[int] = None,
    ) -> List[Fragment]:
        if isinstance(peptide, LinearPeptide):
            peptide = Peptidoform([peptide])
        if max_charge is None:
            max_charge = self.max_charge
        return peptide.generate_theoretical_fragments(
            max_charge, self.model, logger=self.logger
        )

    def annotate(
        self,
        spectrum: RawSpectrum,
        peptide: Union[Peptidoform, LinearPeptide],
        max_charge: Optional[int] = None,
    ) -> AnnotatedSpectrum:
        """
        Annotate a spectrum with the fragments of a peptide. ``max_charge``
        defaults to the precursor charge of the spectrum, then to the
        configured maximal charge.
        """
        if isinstance(peptide, LinearPeptide):
            peptide = Peptidoform([peptide])
        if max_charge is None:
            max_charge = spectrum.charge or self.max_charge

        noise_filter = self.get_config(
            "noise_filter", required=False, typed=float, allow_convert=True
        )
        if noise_filter is not None:
            filtered = RawSpectrum(
                title=spectrum.title,
                num_scans=spectrum.num_scans,
                rt=spectrum.rt,
                charge=spectrum.charge,
                mass=spectrum.mass,
                peaks=spectrum.peaks,
                intensity=spectrum.intensity,
            )
            filtered.noise_filter(noise_filter)
            if self.logger:
                self.logger.info(
                    f"noise filter {noise_filter}: "
                    f"{len(filtered)} of {len(spectrum)} peaks retained"
                )
            spectrum = filtered

        model = self.model
        fragments = self.generate_fragments(peptide, max_charge)
        return spectrum.annotate(
            peptide, fragments, model, self.mass_mode, logger=self.logger
        )
