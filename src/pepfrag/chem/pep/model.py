__all__ = [
    "Location",
    "IonSeriesRule",
    "GlycanRule",
    "PossibleIons",
    "Model",
]

import functools
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from ...util.io.yaml import bundled_file, load_yaml
from .fragments import PeptidePosition
from .losses import NeutralLoss, NeutralLossCollection


_LOCATION_RULES = ("skip_n", "skip_nc", "take_n", "skip_c", "take_c", "all", "none")


@dataclass(frozen=True)
class Location:
    """Sequence positions where an ion series is generated."""

    rule: str = "none"
    first: int = 0
    second: int = 0

    def __post_init__(self):
        if self.rule not in _LOCATION_RULES:
            raise ValueError(f"invalid location rule {self.rule}")

    @classmethod
    def skip_n(cls, n: int) -> "Location":
        return cls("skip_n", n)

    @classmethod
    def skip_nc(cls, n: int, c: int) -> "Location":
        return cls("skip_nc", n, c)

    @classmethod
    def take_n(cls, skip: int, take: int) -> "Location":
        return cls("take_n", skip, take)

    @classmethod
    def skip_c(cls, c: int) -> "Location":
        return cls("skip_c", c)

    @classmethod
    def take_c(cls, c: int) -> "Location":
        return cls("take_c", c)

    @classmethod
    def from_config(cls, value: Union[str, Mapping[str, Any], None]) -> "Location":
        if value is None:
            return cls("none")
        if isinstance(value, str):
            if value not in ("all", "none"):
                raise ValueError(f"invalid location {value}")
            return cls(value)
        if not isinstance(value, Mapping) or len(value) != 1:
            raise ValueError(f"invalid location {value}")
        ((rule, args),) = value.items()
        if isinstance(args, int):
            args = [args]
        return cls(rule, *args)

    def possible(self, position: PeptidePosition) -> bool:
        index = position.sequence_index
        remaining = position.sequence_length - index
        if self.rule == "skip_n":
            return index >= self.first
        elif self.rule == "skip_nc":
            return index >= self.first and remaining > self.second
        elif self.rule == "take_n":
            return self.first <= index < self.first + self.second
        elif self.rule == "skip_c":
            return remaining > self.first
        elif self.rule == "take_c":
            return remaining <= self.first
        elif self.rule == "all":
            return position.series_number != position.sequence_length
        else:
            return False


@dataclass(frozen=True)
class IonSeriesRule:
    location: Location = Location()
    losses: Tuple[NeutralLoss, ...] = ()


@dataclass(frozen=True)
class GlycanRule:
    enabled: bool = False
    losses: Tuple[NeutralLoss, ...] = ()


IonSwitch = Tuple[bool, Tuple[NeutralLoss, ...]]


@dataclass(frozen=True)
class PossibleIons:
    """Ion series enabled at one sequence position, with their neutral losses."""

    a: IonSwitch = (False, ())
    b: IonSwitch = (False, ())
    c: IonSwitch = (False, ())
    d: IonSwitch = (False, ())
    v: IonSwitch = (False, ())
    w: IonSwitch = (False, ())
    x: IonSwitch = (False, ())
    y: IonSwitch = (False, ())
    z: IonSwitch = (False, ())
    immonium: bool = False

    N_SERIES = ("a", "b", "c", "d")
    C_SERIES = ("v", "w", "x", "y", "z")

    def series(self, name: str) -> IonSwitch:
        if name == "z·":
            name = "z"
        return getattr(self, name)

    def with_extra_losses(
        self,
        n_losses: Sequence[NeutralLoss] = (),
        c_losses: Sequence[NeutralLoss] = (),
    ) -> "PossibleIons":
        """Add losses to the enabled N- and C-terminal series."""
        changes: Dict[str, IonSwitch] = {}
        for names, extra in ((self.N_SERIES, n_losses), (self.C_SERIES, c_losses)):
            if not extra:
                continue
            for name in names:
                enabled, losses = getattr(self, name)
                if enabled:
                    changes[name] = (
                        True,
                        losses + tuple(loss for loss in extra if loss not in losses),
                    )
        return replace(self, **changes) if changes else self

    def size_upper_bound(self) -> int:
        size = 0
        for name in self.N_SERIES + self.C_SERIES:
            enabled, losses = getattr(self, name)
            if not enabled:
                continue
            multiplier = 3 if name in ("d", "w") else 1
            if name == "z":
                multiplier = 2
            size += multiplier * (len(losses) + 1)
        if self.immonium:
            size += 11
        return size


def _parse_losses(
    values: Optional[Sequence[str]], neutral_losses: NeutralLossCollection
) -> Tuple[NeutralLoss, ...]:
    return tuple(neutral_losses.parse(v) for v in values or ())


@dataclass(frozen=True)
class Model:
    """Which fragments are generated, and the matching tolerance in ppm."""

    a: IonSeriesRule = field(default_factory=IonSeriesRule)
    b: IonSeriesRule = field(default_factory=IonSeriesRule)
    c: IonSeriesRule = field(default_factory=IonSeriesRule)
    d: IonSeriesRule = field(default_factory=IonSeriesRule)
    v: IonSeriesRule = field(default_factory=IonSeriesRule)
    w: IonSeriesRule = field(default_factory=IonSeriesRule)
    x: IonSeriesRule = field(default_factory=IonSeriesRule)
    y: IonSeriesRule = field(default_factory=IonSeriesRule)
    z: IonSeriesRule = field(default_factory=IonSeriesRule)
    precursor: Tuple[NeutralLoss, ...] = ()
    immonium: bool = False
    m: bool = False
    modification_specific_neutral_losses: bool = False
    modification_specific_diagnostic_ions: bool = False
    glycan: GlycanRule = field(default_factory=GlycanRule)
    ppm: float = 20.0

    SERIES = ("a", "b", "c", "d", "v", "w", "x", "y", "z")
    PRESET_ALIASES = {"etcid": "ethcd"}

    def ions(self, position: PeptidePosition) -> PossibleIons:
        """
        Enabled ion series at a position, ``position`` counted from the N
        terminus. C-terminal series are checked with the flipped position.
        """
        flipped = position.flip_terminal()
        switches = {}
        for name in self.SERIES:
            rule: IonSeriesRule = getattr(self, name)
            pos = position if name in PossibleIons.N_SERIES else flipped
            switches[name] = (rule.location.possible(pos), rule.losses)
        return PossibleIons(immonium=self.immonium, **switches)

    def with_ppm(self, ppm: float) -> "Model":
        return replace(self, ppm=float(ppm))

    @classmethod
    def from_configs(
        cls,
        configs: Mapping[str, Any],
        neutral_losses: Optional[NeutralLossCollection] = None,
    ) -> "Model":
        if neutral_losses is None:
            neutral_losses = NeutralLossCollection.default()

        kwargs: Dict[str, Any] = {}
        for name in cls.SERIES:
            rule = configs.get(name, None)
            if rule is None:
                continue
            if isinstance(rule, str):
                rule = {"location": rule}
            kwargs[name] = IonSeriesRule(
                location=Location.from_config(rule.get("location", "all")),
                losses=_parse_losses(rule.get("losses", None), neutral_losses),
            )

        kwargs["precursor"] = _parse_losses(configs.get("precursor", None), neutral_losses)
        for key in (
            "immonium",
            "m",
            "modification_specific_neutral_losses",
            "modification_specific_diagnostic_ions",
        ):
            kwargs[key] = bool(configs.get(key, False))

        glycan = configs.get("glycan", None)
        if isinstance(glycan, bool):
            glycan = {"enabled": glycan}
        if glycan:
            kwargs["glycan"] = GlycanRule(
                enabled=bool(glycan.get("enabled", True)),
                losses=_parse_losses(glycan.get("losses", None), neutral_losses),
            )

        kwargs["ppm"] = float(configs.get("ppm", 20.0))

        unknown = set(configs) - set(cls.SERIES) - set(kwargs) - {"glycan"}
        if unknown:
            raise ValueError(f"invalid model configs: unknown keys {sorted(unknown)}")
        return cls(**kwargs)

    @classmethod
    def preset(cls, name: str, model_file: Optional[str] = None) -> "Model":
        presets = _load_presets(model_file)
        key = name.strip().lower().replace("-", "_").replace("/", "_")
        key = cls.PRESET_ALIASES.get(key, key)
        if key not in presets:
            raise ValueError(f"invalid model preset {name}")
        return cls.from_configs(presets[key])

    @classmethod
    def all(cls) -> "Model":
        return cls.preset("all")

    @classmethod
    def cid_hcd(cls) -> "Model":
        return cls.preset("cid_hcd")

    @classmethod
    def etd(cls) -> "Model":
        return cls.preset("etd")

    @classmethod
    def ethcd(cls) -> "Model":
        return cls.preset("ethcd")

    @classmethod
    def none(cls) -> "Model":
        return cls.preset("none")


@functools.lru_cache(maxsize=None)
def _load_presets(model_file: Optional[str] = None) -> Dict[str, Mapping[str, Any]]:
    if model_file is None:
        model_file = bundled_file(__file__, "models.yaml")
    return load_yaml(model_file)
