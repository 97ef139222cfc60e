__all__ = [
    "NeutralLoss",
    "NeutralLossCollection",
]

import functools
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from ...util.io.yaml import bundled_file, load_yaml
from ..common.formula import MolecularFormula


@dataclass(frozen=True)
class NeutralLoss:
    formula: MolecularFormula
    gain: bool = False

    @classmethod
    def loss(cls, composition: str) -> "NeutralLoss":
        return cls(MolecularFormula.from_composition(composition))

    @classmethod
    def parse(cls, s: str) -> "NeutralLoss":
        """Parse ``"-H(2) O"`` as a loss and ``"+C O"`` as a gain."""
        s = s.strip()
        if not s or s[0] not in "+-":
            raise ValueError(f"invalid neutral loss {s}: sign missing")
        return cls(MolecularFormula.from_composition(s[1:]), gain=s[0] == "+")

    def as_formula(self) -> MolecularFormula:
        return self.formula if self.gain else -self.formula

    def __str__(self) -> str:
        return ("+" if self.gain else "-") + self.formula.hill_notation()


class NeutralLossCollection(Dict[str, NeutralLoss]):
    def __init__(self, neutral_loss_map: Mapping[str, NeutralLoss]):
        super().__init__(**neutral_loss_map)
        for key, loss in neutral_loss_map.items():
            self.check_loss_id(key, loss)

    @classmethod
    def load(cls, neutral_loss_file: Optional[str] = None):
        if neutral_loss_file is None:
            neutral_loss_file = bundled_file(__file__, "neutral_losses.yaml")

        dict_ = load_yaml(neutral_loss_file)

        def from_dict(d: Dict):
            composition = d.get("composition", None)
            if not composition:
                raise ValueError(f"composition of neutral loss {d} is missing")
            return NeutralLoss(
                MolecularFormula.from_composition(composition),
                gain=d.get("gain", False),
            )

        collection = cls({key: from_dict(value) for key, value in dict_.items()})
        return collection

    @classmethod
    @functools.lru_cache(maxsize=None)
    def default(cls) -> "NeutralLossCollection":
        return cls.load()

    def __setitem__(self, key, value):
        raise TypeError("NeutralLossCollection is immutable")

    def __delitem__(self, key) -> None:
        raise TypeError("NeutralLossCollection is immutable")

    def check_loss_id(self, id: str, loss: NeutralLoss):
        if not id:
            raise ValueError(f"invalid neutral loss id '{id}': empty")
        if not id.isalnum():
            raise ValueError(f"invalid neutral loss id {id}: id must be alphanum")

    def parse(self, s: str) -> NeutralLoss:
        """
        Resolve ``"-H2O"`` or ``"+CO"`` by name, falling back to a composition
        such as ``"-H(2) O"``.
        """
        s = s.strip()
        if len(s) > 1 and s[0] in "+-":
            named = self.get(s[1:], None)
            if named is not None:
                return NeutralLoss(named.formula, gain=s[0] == "+")
        return NeutralLoss.parse(s)
