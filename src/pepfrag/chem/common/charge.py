__all__ = ["MolecularCharge"]

import itertools
from typing import Dict, Iterable, List, Tuple

from .elements import ELECTRON
from .formula import MolecularFormula


ChargeCarrier = Tuple[int, MolecularFormula]


def _simplify(carriers: Iterable[ChargeCarrier]) -> Tuple[ChargeCarrier, ...]:
    merged: Dict[MolecularFormula, int] = {}
    for count, formula in carriers:
        merged[formula] = merged.get(formula, 0) + int(count)
    return tuple(
        sorted(
            ((count, formula) for formula, count in merged.items() if count != 0),
            key=lambda c: c[1].sort_key(),
        )
    )


def _carrier_label(formula: MolecularFormula) -> str:
    neutral = MolecularFormula._from_canonical(
        tuple(e for e in formula.elements() if e[0] != ELECTRON)
    )
    charge = formula.charge()
    if charge == 1:
        sign = "+"
    elif charge == -1:
        sign = "-"
    else:
        sign = f"{charge:+}"
    return f"{neutral.hill_notation()}{sign}"


class MolecularCharge:
    """
    A set of charge carriers, each with the maximum number of times it can
    be attached. Every carrier formula includes its own electron balance,
    a proton is ``H(1) e(-1)``.
    """

    __slots__ = ("charge_carriers",)

    def __init__(self, charge_carriers: Iterable[ChargeCarrier] = ()):
        self.charge_carriers: Tuple[ChargeCarrier, ...] = _simplify(charge_carriers)

    @classmethod
    def proton(cls, charge: int) -> "MolecularCharge":
        return cls([(charge, MolecularFormula.proton())])

    def simplified(self) -> "MolecularCharge":
        return MolecularCharge(self.charge_carriers)

    def charge(self) -> int:
        return sum(count * formula.charge() for count, formula in self.charge_carriers)

    def formula(self) -> MolecularFormula:
        return sum(
            (formula * count for count, formula in self.charge_carriers),
            MolecularFormula(),
        )

    def __len__(self) -> int:
        return len(self.charge_carriers)

    def __eq__(self, other) -> bool:
        if not isinstance(other, MolecularCharge):
            return NotImplemented
        return self.charge_carriers == other.charge_carriers

    def __hash__(self) -> int:
        return hash(self.charge_carriers)

    def __str__(self) -> str:
        proton = MolecularFormula.proton()
        if all(formula == proton for _, formula in self.charge_carriers):
            return str(self.charge())
        carriers = ",".join(
            f"{count}{_carrier_label(formula)}" for count, formula in self.charge_carriers
        )
        return f"{self.charge()}[{carriers}]"

    def __repr__(self) -> str:
        return f"MolecularCharge({self})"

    def _combinations(self) -> Iterable[List[ChargeCarrier]]:
        ranges = [range(count + 1) for count, _ in self.charge_carriers]
        for counts in itertools.product(*ranges):
            yield [
                (n, formula)
                for n, (_, formula) in zip(counts, self.charge_carriers)
                if n > 0
            ]

    def all_charge_options(self) -> List["MolecularCharge"]:
        """All selections of carriers, each up to its maximum, with nonzero charge."""
        options = []
        for carriers in self._combinations():
            option = MolecularCharge(carriers)
            if option.charge() != 0:
                options.append(option)
        return options

    def all_single_charge_options(self) -> List["MolecularCharge"]:
        return [
            MolecularCharge([(1, formula)])
            for count, formula in self.charge_carriers
            if count > 0 and formula.charge() == 1
        ]

    def options(self, charge: int) -> List["MolecularCharge"]:
        """
        All carrier selections with exactly the given net charge.

        The full carrier set is repeated as many whole times as fits in the
        target, the remainder is filled by a bounded search over
        sub-selections of the carriers.
        """
        if charge == 0 or not self.charge_carriers:
            return []

        total = self.charge()
        carrier_charges = [formula.charge() for _, formula in self.charge_carriers]
        if total == 0 or any(c * total <= 0 for c in carrier_charges):
            return self._exhaustive_options(charge)

        sign = 1 if total > 0 else -1
        quotient, remainder = divmod(charge * sign, total * sign)
        if quotient < 0:
            return []

        pending: List[List[ChargeCarrier]] = [[]]
        found: List[List[ChargeCarrier]] = []
        for (max_count, formula), unit in zip(self.charge_carriers, carrier_charges):
            unit *= sign
            next_pending = []
            for option in pending:
                base = sum(n * f.charge() * sign for n, f in option)
                for n in range(max_count + 1):
                    value = base + n * unit
                    if value == remainder:
                        found.append(option + [(n, formula)])
                        break
                    elif value < remainder:
                        next_pending.append(option + [(n, formula)])
                    else:
                        break
            pending = next_pending

        repeated = [(count * quotient, formula) for count, formula in self.charge_carriers]
        results = []
        for option in found:
            result = MolecularCharge(option + repeated)
            if result.charge() == charge and result not in results:
                results.append(result)
        return results

    def _exhaustive_options(self, charge: int) -> List["MolecularCharge"]:
        results = []
        for carriers in self._combinations():
            option = MolecularCharge(carriers)
            if option.charge() == charge and option not in results:
                results.append(option)
        return results
