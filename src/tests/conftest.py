import pytest

from pepfrag.chem.common.charge import MolecularCharge
from pepfrag.chem.common.elements import ElementCollection
from pepfrag.chem.common.formula import MolecularFormula
from pepfrag.chem.gpep.glycans import MonosaccharideCollection
from pepfrag.chem.pep.aminoacids import AminoAcidCollection
from pepfrag.chem.pep.losses import NeutralLossCollection
from pepfrag.chem.pep.model import Model
from pepfrag.chem.pep.mods import ModificationCollection


PROTON_MASS = 1.007276452161
WATER_MASS = 18.0105646837
GLYCINE_MASS = 57.02146372057


@pytest.fixture(scope="session")
def elements():
    return ElementCollection.default()


@pytest.fixture(scope="session")
def amino_acids():
    return AminoAcidCollection.default()


@pytest.fixture(scope="session")
def neutral_losses():
    return NeutralLossCollection.default()


@pytest.fixture(scope="session")
def modifications():
    return ModificationCollection.default()


@pytest.fixture(scope="session")
def monosaccharides():
    return MonosaccharideCollection.default()


@pytest.fixture
def proton():
    return MolecularCharge.proton(1)


@pytest.fixture
def water():
    return MolecularFormula.from_composition("H(2) O")


@pytest.fixture
def by_model():
    return Model.from_configs({"b": "all", "y": "all"})
