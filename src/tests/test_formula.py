import math

import numpy as np
import pytest

from pepfrag.chem.common.formula import MolecularFormula
from pepfrag.chem.common.multi import Multi
from pepfrag.chem.common.mz import MassMode, mass_to_mz, mz_to_mass
from pepfrag.util.math import (
    ppm_difference,
    total_order_argmin,
    total_order_key,
    total_order_keys,
)

from conftest import GLYCINE_MASS, PROTON_MASS, WATER_MASS


class TestElementCollection:
    """Element table lookups and composition parsing."""

    def test_parse_element_composition(self, elements):
        assert elements.parse_element_composition("C H(2) O") == [
            ("C", None, 1),
            ("H", None, 2),
            ("O", None, 1),
        ]
        assert elements.parse_element_composition("[13]C(2) H(-1)") == [
            ("C", 13, 2),
            ("H", None, -1),
        ]

    @pytest.mark.parametrize("s", ["", "C H(2", "Xx(2)", "C(a)"])
    def test_parse_invalid(self, elements, s):
        with pytest.raises(ValueError):
            elements.parse_element_composition(s)

    def test_masses(self, elements):
        assert elements.mass("C") == 12.0
        assert elements.mass("C", 13) == pytest.approx(13.0033548378)
        assert elements.mass("C", 15) is None
        assert elements.average_weight("O") == pytest.approx(15.9994)
        assert elements.most_abundant_mass("Se") == pytest.approx(
            elements["Se"].most_abundant_isotope().mass
        )

    def test_immutable(self, elements):
        with pytest.raises(TypeError):
            elements["X"] = elements["C"]
        with pytest.raises(TypeError):
            del elements["C"]


class TestMolecularFormula:
    """Formula algebra, masses and Hill notation."""

    def test_canonical(self):
        a = MolecularFormula.from_composition("O N H(5) C(2)")
        b = MolecularFormula.from_composition("C(2) H(5) N O")
        assert a == b
        assert hash(a) == hash(b)

    def test_add_merges_counts(self):
        f = MolecularFormula.from_composition("C H(4)")
        g = f.add("H", None, 2)
        assert g.count("H") == 6
        assert f.count("H") == 4
        assert len(g.elements()) == 2

    def test_add_to_zero_removes_entry(self):
        f = MolecularFormula.from_composition("C H(4)").add("H", None, -4)
        assert f.elements() == (("C", None, 1),)

    def test_inverse(self):
        f = MolecularFormula.from_composition("C(6) H(12) [13]C O(6)")
        assert (f + (-f)).is_empty()
        assert not (f - f)
        assert f - f == MolecularFormula()

    def test_multiply_and_sum(self, water):
        assert water * 3 == MolecularFormula.from_composition("H(6) O(3)")
        assert 2 * water == water + water
        assert sum([water, water]) == water * 2

    def test_charge(self):
        assert MolecularFormula.proton().charge() == 1
        assert MolecularFormula.electron().charge() == -1
        assert MolecularFormula.from_composition("Na e(-1)").charge() == 1

    def test_glycine_mass(self):
        glycine = MolecularFormula.from_composition("C(2) H(3) N O")
        assert glycine.monoisotopic_mass() == pytest.approx(57.02146, abs=1e-5)
        assert glycine.average_weight() == pytest.approx(57.05, abs=0.1)
        assert glycine.mass("most_abundant") == pytest.approx(
            glycine.monoisotopic_mass()
        )

    def test_untabulated_isotope_mass(self):
        f = MolecularFormula.from_composition("[15]C H(4)")
        assert f.monoisotopic_mass() is None
        assert f.average_weight() is None
        assert f.mass(MassMode.most_abundant) is None

    def test_isotope_mass(self):
        f = MolecularFormula.from_composition("[13]C")
        assert f.monoisotopic_mass() == pytest.approx(13.0033548378)

    def test_invalid_mass_mode(self, water):
        with pytest.raises(ValueError):
            water.mass("heaviest")

    def test_hill_notation(self):
        f = MolecularFormula.from_composition("O N H(5) C(2)")
        assert f.hill_notation() == "C2H5NO"
        assert str(f) == "C2H5NO"
        assert f.hill_notation_fancy() == "C₂H₅NO"
        assert f.hill_notation_html() == "C<sub>2</sub>H<sub>5</sub>NO"

    def test_hill_notation_without_carbon(self):
        f = MolecularFormula.from_composition("O S H(2) N(2)")
        assert f.hill_notation() == "H2N2OS"

    def test_hill_notation_isotope(self):
        f = MolecularFormula.from_composition("H [13]C(2) C")
        assert f.hill_notation() == "C[13]C2H"
        assert f.hill_notation_html() == "C<sup>13</sup>C<sub>2</sub>H"

    def test_unknown_element(self):
        with pytest.raises(ValueError):
            MolecularFormula([("Xx", None, 1)])


class TestMulti:
    """Alternatives and their cartesian combination."""

    def test_identity(self):
        m = Multi()
        assert len(m) == 1
        assert m[0] == MolecularFormula()

    def test_cross_product(self):
        a = Multi.of(
            MolecularFormula.from_composition("C"),
            MolecularFormula.from_composition("N"),
        )
        b = Multi.of(
            MolecularFormula.from_composition("H"),
            MolecularFormula.from_composition("O"),
        )
        result = a + b
        assert [str(f) for f in result] == ["CH", "CO", "HN", "NO"]

    def test_no_deduplication(self, water):
        m = Multi.of(water, water) + Multi.of(water)
        assert len(m) == 2
        assert len(m.unique()) == 1

    def test_scalar_broadcast(self, water):
        m = Multi.of(MolecularFormula(), water)
        assert list(m + water) == [water, water * 2]
        assert list(water + m) == [water, water * 2]
        assert list(-m) == [MolecularFormula(), -water]
        assert list(m * 2) == [MolecularFormula(), water * 2]

    def test_sum(self, water):
        m = Multi.sum([Multi.of(MolecularFormula(), water), water, Multi.of(water)])
        assert list(m) == [water * 2, water * 3]

    def test_flatten(self, water):
        m = Multi.flatten([Multi.of(water), Multi.of(water * 2, water * 3)])
        assert len(m) == 3


class TestMz:
    def test_mass_to_mz(self):
        assert mass_to_mz(200.0, 2) == 100.0
        assert mass_to_mz(200.0, -2) == 100.0
        assert mz_to_mass(100.0, 2) == 200.0
        np.testing.assert_allclose(
            mass_to_mz(np.array([100.0, 300.0]), np.array([1, 3])), [100.0, 100.0]
        )

    def test_mass_mode_parse(self):
        assert MassMode.parse("mono") is MassMode.monoisotopic
        assert MassMode.parse("Average") is MassMode.average
        assert MassMode.parse(MassMode.most_abundant) is MassMode.most_abundant

    def test_proton_water(self, water):
        assert MolecularFormula.proton().monoisotopic_mass() == pytest.approx(
            PROTON_MASS
        )
        assert water.monoisotopic_mass() == pytest.approx(WATER_MASS)


class TestTotalOrder:
    def test_order(self):
        values = [1.0, -0.0, 0.0, -math.inf, math.inf, -2.5, math.nan]
        keys = total_order_keys(values)
        ordered = [values[i] for i in np.argsort(keys, kind="stable")]
        assert ordered[0] == -math.inf
        assert ordered[1] == -2.5
        assert math.copysign(1.0, ordered[2]) == -1.0
        assert ordered[-2] == math.inf
        assert math.isnan(ordered[-1])

    def test_key_matches_keys(self):
        assert total_order_key(1.5) == int(total_order_keys([1.5])[0])
        assert total_order_key(1.0) < total_order_key(1.5)

    def test_argmin_nan(self):
        assert total_order_argmin([math.nan, 3.0, 1.0]) == 2
        with pytest.raises(ValueError):
            total_order_argmin([])

    def test_ppm_difference(self):
        assert ppm_difference(150.0005, 150.0) == pytest.approx(3.3333, abs=1e-3)
        assert math.isnan(ppm_difference(None, 150.0))


def test_glycine_constant(amino_acids):
    assert amino_acids["G"].mass == pytest.approx(GLYCINE_MASS)


@pytest.mark.parametrize(
    "symbol,monoisotopic,average",
    [
        ("G", 57.02146, 57.0513),
        ("A", 71.03711, 71.0779),
        ("S", 87.03203, 87.0773),
        ("P", 97.05276, 97.1152),
        ("V", 99.06841, 99.1311),
        ("T", 101.04768, 101.1039),
        ("C", 103.00919, 103.1429),
        ("L", 113.08406, 113.1576),
        ("I", 113.08406, 113.1576),
        ("N", 114.04293, 114.1026),
        ("D", 115.02694, 115.0874),
        ("Q", 128.05858, 128.1292),
        ("K", 128.09496, 128.1723),
        ("E", 129.04259, 129.1140),
        ("M", 131.04049, 131.1961),
        ("H", 137.05891, 137.1393),
        ("F", 147.06841, 147.1739),
        ("R", 156.10111, 156.1857),
        ("Y", 163.06333, 163.1733),
        ("W", 186.07931, 186.2099),
    ],
)
def test_residue_masses(amino_acids, symbol, monoisotopic, average):
    formula = amino_acids[symbol].formulas[0]
    assert formula.monoisotopic_mass() == pytest.approx(monoisotopic, abs=1e-4)
    assert formula.average_weight() == pytest.approx(average, abs=0.01)
