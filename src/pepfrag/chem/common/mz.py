__all__ = [
    "MassMode",
    "mass_to_mz",
    "mz_to_mass",
    "MassArray",
    "MzArray",
    "ChargeArray",
]

from enum import Enum
from typing import Union, overload

import numpy as np
import numpy.typing as npt


MassArray = npt.NDArray[np.float64]
MzArray = npt.NDArray[np.float64]
ChargeArray = npt.NDArray[np.int32]


class MassMode(Enum):
    monoisotopic = "monoisotopic"
    average = "average"
    most_abundant = "most_abundant"

    @classmethod
    def parse(cls, mode: Union["MassMode", str]) -> "MassMode":
        if isinstance(mode, MassMode):
            return mode
        key = str(mode).strip().lower().replace("-", "_").replace(" ", "_")
        aliases = {"mono": "monoisotopic", "avg": "average", "mostabundant": "most_abundant"}
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"invalid mass mode {mode}") from None


@overload
def mass_to_mz(mass: float, charge: int) -> float:
    ...


@overload
def mass_to_mz(mass: MassArray, charge: Union[int, ChargeArray]) -> MzArray:
    ...


def mass_to_mz(mass, charge):
    """Divide a charged (carrier-inclusive) mass by the absolute charge."""
    if np.isscalar(mass) and np.isscalar(charge):
        return float(mass) / abs(int(charge))
    return np.divide(np.asarray(mass, dtype=np.float64), np.abs(charge))


@overload
def mz_to_mass(mz: float, charge: int) -> float:
    ...


@overload
def mz_to_mass(mz: MzArray, charge: Union[int, ChargeArray]) -> MassArray:
    ...


def mz_to_mass(mz, charge):
    if np.isscalar(mz) and np.isscalar(charge):
        return float(mz) * abs(int(charge))
    return np.multiply(np.asarray(mz, dtype=np.float64), np.abs(charge))
