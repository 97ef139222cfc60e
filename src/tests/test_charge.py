import pytest

from pepfrag.chem.common.charge import MolecularCharge
from pepfrag.chem.common.formula import MolecularFormula


@pytest.fixture
def sodium():
    return MolecularFormula.from_composition("Na e(-1)")


class TestMolecularCharge:
    """Charge carrier combinations."""

    def test_proton(self):
        charge = MolecularCharge.proton(2)
        assert charge.charge() == 2
        assert charge.formula() == MolecularFormula.from_composition("H(2) e(-2)")
        assert str(charge) == "2"

    def test_simplified(self, sodium):
        proton = MolecularFormula.proton()
        charge = MolecularCharge([(1, sodium), (1, proton), (1, proton), (0, sodium)])
        assert charge.charge_carriers[0] == (2, proton)
        assert charge == MolecularCharge([(2, proton), (1, sodium)])
        assert len(charge) == 2

    def test_str_with_adducts(self, sodium):
        charge = MolecularCharge([(1, sodium), (1, MolecularFormula.proton())])
        assert str(charge) == "2[1H+,1Na+]"

    def test_single_proton_options(self):
        charge = MolecularCharge.proton(1)
        options = charge.options(1)
        assert len(options) == 1
        assert options[0].formula().charge() == 1
        assert charge.options(0) == []

    def test_options_with_quotient(self):
        options = MolecularCharge.proton(3).options(2)
        assert options == [MolecularCharge.proton(2)]

    def test_options_repeat_carrier_set(self):
        assert MolecularCharge.proton(1).options(3) == [MolecularCharge.proton(3)]

    def test_options_unreachable(self):
        assert MolecularCharge.proton(2).options(-1) == []

    def test_options_mixed_carriers(self, sodium):
        proton = MolecularFormula.proton()
        charge = MolecularCharge([(1, proton), (1, sodium)])
        options = charge.options(1)
        assert set(options) == {
            MolecularCharge([(1, proton)]),
            MolecularCharge([(1, sodium)]),
        }
        assert charge.options(2) == [charge]

    def test_options_opposite_signs(self, sodium):
        electron = MolecularFormula.electron()
        charge = MolecularCharge([(2, sodium), (1, electron)])
        options = charge.options(1)
        assert MolecularCharge([(1, sodium)]) in options
        assert MolecularCharge([(2, sodium), (1, electron)]) in options
        assert all(o.charge() == 1 for o in options)

    def test_all_charge_options(self, sodium):
        assert [c.charge() for c in MolecularCharge.proton(3).all_charge_options()] == [
            1,
            2,
            3,
        ]
        electron = MolecularFormula.electron()
        options = MolecularCharge([(1, sodium), (1, electron)]).all_charge_options()
        assert len(options) == 2
        assert all(o.charge() != 0 for o in options)

    def test_all_single_charge_options(self, sodium):
        charge = MolecularCharge([(3, MolecularFormula.proton()), (1, sodium)])
        options = charge.all_single_charge_options()
        assert len(options) == 2
        assert all(o.charge() == 1 for o in options)
