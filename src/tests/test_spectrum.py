import numpy as np
import pandas as pd
import pytest

from pepfrag.chem.common.charge import MolecularCharge
from pepfrag.chem.common.formula import MolecularFormula
from pepfrag.chem.pep.fragments import Fragment, FragmentKind, Precursor
from pepfrag.chem.pep.model import Model
from pepfrag.chem.pep.peptide import LinearPeptide, Peptidoform
from pepfrag.specio.annotation import SpectrumAnnotator
from pepfrag.specio.spec import AnnotatedPeak, RawPeak, RawSpectrum


def charged_fragment(composition: str) -> Fragment:
    formula = MolecularFormula.from_composition(composition)
    return Fragment(formula, 0, Precursor()).with_charge(MolecularCharge.proton(1))


@pytest.fixture
def glycine_fragment():
    return charged_fragment("C(2) H(3) N O")


class TestRawSpectrum:
    """Sorted peak container operations."""

    def test_sorted(self):
        spectrum = RawSpectrum.from_arrays([300.0, 100.0, 200.0], [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(spectrum.mz, [100.0, 200.0, 300.0])
        np.testing.assert_array_equal(spectrum.intensities, [2.0, 3.0, 1.0])

    def test_from_arrays_mismatch(self):
        with pytest.raises(ValueError):
            RawSpectrum.from_arrays([100.0, 200.0], [1.0])
        with pytest.raises(ValueError):
            RawSpectrum.from_arrays([[100.0]], [[1.0]])

    def test_add_peak(self):
        spectrum = RawSpectrum.from_arrays([100.0, 300.0], [1.0, 1.0])
        spectrum.add_peak(RawPeak(200.0, 5.0))
        spectrum.add_peak(RawPeak(50.0, 5.0))
        spectrum.add_peak(RawPeak(400.0, 5.0))
        np.testing.assert_array_equal(spectrum.mz, [50.0, 100.0, 200.0, 300.0, 400.0])

    def test_extend(self):
        spectrum = RawSpectrum.from_arrays([100.0, 300.0], [1.0, 1.0])
        spectrum.extend([RawPeak(200.0, 1.0), RawPeak(50.0, 1.0)])
        np.testing.assert_array_equal(spectrum.mz, [50.0, 100.0, 200.0, 300.0])

    def test_binary_search_duplicates(self):
        spectrum = RawSpectrum.from_arrays(
            [100.0, 200.0, 200.0, 200.0, 300.0], [1.0, 2.0, 3.0, 4.0, 5.0]
        )
        assert len(spectrum.binary_search(200.0, 200.0)) == 3
        assert len(spectrum.binary_search(150.0, 250.0)) == 3
        assert len(spectrum.binary_search(100.0, 200.0)) == 4
        assert len(spectrum.binary_search(0.0, 1000.0)) == 5
        assert spectrum.binary_search(301.0, 400.0) == []
        assert spectrum.binary_search(250.0, 150.0) == []

    def test_binary_search_empty(self):
        assert RawSpectrum().binary_search(0.0, 1000.0) == []

    def test_noise_filter(self):
        spectrum = RawSpectrum.from_arrays(
            [100.0, 200.0, 300.0], [1.0, 100.0, 10.0]
        )
        spectrum.noise_filter(0.05)
        np.testing.assert_array_equal(spectrum.mz, [200.0, 300.0])

    def test_from_arrays_charges(self):
        spectrum = RawSpectrum.from_arrays(
            [200.0, 100.0], [1.0, 1.0], peak_charge=[2, 1], title="t", charge=2
        )
        assert spectrum.charge == 2
        assert spectrum.title == "t"
        assert [p.charge for p in spectrum] == [1, 2]
        assert RawSpectrum.from_arrays([100.0], [1.0]).charge is None

    def test_peak_order(self):
        assert RawPeak(100.0, 1.0) < RawPeak(200.0, 0.5)
        assert sorted([RawPeak(2.0, 1.0), RawPeak(-1.0, 1.0)])[0].mz == -1.0


class TestAnnotate:
    def test_closest_peak(self, glycine_fragment):
        mz = glycine_fragment.mz()
        spectrum = RawSpectrum.from_arrays(
            [mz - 50.0, mz * (1 + 3.3e-6), mz + 50.0], [1.0, 1.0, 1.0]
        )
        far = charged_fragment("C(40) H(60) N(10) O(10)")
        annotated = spectrum.annotate(
            Peptidoform(), [glycine_fragment, far], Model.none().with_ppm(10)
        )
        assert [len(p.annotations) for p in annotated] == [0, 1, 0]
        assert annotated[1].annotations[0] == glycine_fragment

    def test_out_of_tolerance(self, glycine_fragment):
        mz = glycine_fragment.mz()
        spectrum = RawSpectrum.from_arrays([mz * (1 + 20e-6)], [1.0])
        annotated = spectrum.annotate(
            Peptidoform(), [glycine_fragment], Model.none().with_ppm(10)
        )
        assert annotated[0].annotations == []

    def test_multiple_annotations(self, glycine_fragment):
        mz = glycine_fragment.mz()
        spectrum = RawSpectrum.from_arrays([mz], [1.0])
        other = Fragment(
            glycine_fragment.formula, 1, Precursor(), peptidoform_index=1
        )
        annotated = spectrum.annotate(
            Peptidoform(), [glycine_fragment, other], Model.none()
        )
        assert len(annotated[0].annotations) == 2

    def test_unknown_mz_skipped(self):
        unknown = charged_fragment("[15]C H(4)")
        spectrum = RawSpectrum.from_arrays([17.0], [1.0])
        annotated = spectrum.annotate(Peptidoform(), [unknown], Model.none())
        assert annotated[0].annotations == []

    def test_empty_spectrum(self, glycine_fragment):
        annotated = RawSpectrum().annotate(
            Peptidoform(), [glycine_fragment], Model.none()
        )
        assert len(annotated) == 0

    def test_coverage_and_dataframe(self, by_model):
        peptidoform = Peptidoform([LinearPeptide.from_sequence("GGG")])
        fragments = peptidoform.generate_theoretical_fragments(1, by_model)
        b1 = next(f for f in fragments if str(f.ion) == "b1")
        spectrum = RawSpectrum.from_arrays([b1.mz(), 500.0], [10.0, 1.0])
        annotated = spectrum.annotate(peptidoform, fragments, by_model)
        assert annotated.fragment_coverage() == pytest.approx(0.5)

        df = annotated.to_dataframe()
        assert isinstance(df, pd.DataFrame)
        assert len(df) == 2
        assert df["annotation"].iloc[0] == "b1"
        assert pd.isna(df["annotation"].iloc[1])
        assert df["ppm"].iloc[0] == pytest.approx(0.0, abs=1e-6)

    def test_annotated_peak(self):
        peak = AnnotatedPeak.background(RawPeak(100.0, 2.0, 1))
        assert peak.mz == 100.0
        assert peak.annotations == []


class TestSpectrumAnnotator:
    def test_default_configs(self):
        annotator = SpectrumAnnotator()
        assert annotator.model == Model.all()
        assert annotator.max_charge == 1
        assert annotator.get_config("noise_filter", required=False) is None

    def test_configs(self):
        annotator = SpectrumAnnotator(
            {"model": {"b": "all", "y": "all"}, "tolerance": 5, "max_charge": 2}
        )
        assert annotator.model.ppm == 5.0
        assert annotator.model.b.location.rule == "all"
        assert annotator.max_charge == 2

    def test_invalid_model(self):
        with pytest.raises(ValueError):
            SpectrumAnnotator({"model": "unknown"}).model

    def test_annotate(self):
        annotator = SpectrumAnnotator(
            {"model": {"b": "all", "y": "all"}, "noise_filter": 0.01}
        )
        peptide = LinearPeptide.from_sequence("GG")
        spectrum = RawSpectrum.from_arrays(
            [58.02874, 76.03930, 133.06077, 90.0], [100.0, 50.0, 20.0, 0.1],
            title="scan=1",
            charge=1,
        )
        annotated = annotator.annotate(spectrum, peptide)
        assert len(annotated) == 3
        kinds = [{f.ion.kind for f in p.annotations} for p in annotated]
        assert kinds[0] == {FragmentKind.b}
        assert kinds[1] == {FragmentKind.y}
        # the full length y ion is the precursor itself
        assert kinds[2] == {FragmentKind.precursor}
        assert annotated.title == "scan=1"
        assert annotated.fragment_coverage() == 1.0
        assert len(spectrum) == 4
