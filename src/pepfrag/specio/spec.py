__all__ = [
    "RawPeak",
    "AnnotatedPeak",
    "PeakSpectrum",
    "RawSpectrum",
    "AnnotatedSpectrum",
]

from dataclasses import dataclass, field
from logging import Logger
from typing import (
    Generic,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    TypeVar,
    Union,
)

import numpy as np
import numpy.typing as npt
import pandas as pd

from ..chem.common.mz import MassMode
from ..chem.pep.fragments import Fragment
from ..chem.pep.model import Model
from ..chem.pep.peptide import Peptidoform
from ..util.math import (
    ppm_difference,
    total_order_argmin,
    total_order_key,
    total_order_keys,
)


@dataclass(frozen=True)
class RawPeak:
    mz: float
    intensity: float
    charge: int = 0

    def sort_key(self) -> int:
        return total_order_key(self.mz)

    def __lt__(self, other: "RawPeak") -> bool:
        return self.sort_key() < other.sort_key()

    def ppm(
        self, fragment: Fragment, mode: Union[MassMode, str] = MassMode.monoisotopic
    ) -> Optional[float]:
        mz = fragment.mz(mode)
        if mz is None:
            return None
        return ppm_difference(self.mz, mz)


@dataclass
class AnnotatedPeak:
    experimental_mz: float
    intensity: float
    charge: int = 0
    annotations: List[Fragment] = field(default_factory=list)

    @classmethod
    def background(cls, peak: RawPeak) -> "AnnotatedPeak":
        return cls(peak.mz, peak.intensity, peak.charge)

    @property
    def mz(self) -> float:
        return self.experimental_mz

    def sort_key(self) -> int:
        return total_order_key(self.experimental_mz)

    def __lt__(self, other: "AnnotatedPeak") -> bool:
        return self.sort_key() < other.sort_key()


P = TypeVar("P", RawPeak, AnnotatedPeak)


class PeakSpectrum(Generic[P]):
    """Peaks kept sorted by the total order of their m/z."""

    def __init__(self, peaks: Optional[Iterable[P]] = None):
        self._peaks: List[P] = sorted(peaks or [], key=lambda p: p.sort_key())
        self._keys: Optional[npt.NDArray[np.int64]] = None

    def __len__(self) -> int:
        return len(self._peaks)

    def __iter__(self) -> Iterator[P]:
        return iter(self._peaks)

    def __getitem__(self, index: int) -> P:
        return self._peaks[index]

    @property
    def peaks(self) -> Sequence[P]:
        return tuple(self._peaks)

    @property
    def mz(self) -> npt.NDArray[np.float64]:
        return np.array([p.mz for p in self._peaks], dtype=np.float64)

    @property
    def intensities(self) -> npt.NDArray[np.float64]:
        return np.array([p.intensity for p in self._peaks], dtype=np.float64)

    def _sort_keys(self) -> npt.NDArray[np.int64]:
        if self._keys is None:
            self._keys = total_order_keys(self.mz)
        return self._keys

    def add_peak(self, peak: P):
        index = int(np.searchsorted(self._sort_keys(), peak.sort_key(), side="right"))
        self._peaks.insert(index, peak)
        self._keys = None

    def extend(self, peaks: Iterable[P]):
        self._peaks.extend(peaks)
        self._peaks.sort(key=lambda p: p.sort_key())
        self._keys = None

    def binary_search(self, low: float, high: float) -> List[P]:
        """Peaks with m/z in ``[low, high]``."""
        keys = self._sort_keys()
        low_key = total_order_key(low)
        high_key = total_order_key(high)

        start = int(np.searchsorted(keys, low_key))
        while start > 0 and keys[start - 1] >= low_key:
            start -= 1
        end = start
        while end < len(keys) and keys[end] <= high_key:
            end += 1
        return self._peaks[start:end]

    def noise_filter(self, threshold: float):
        """Drop peaks with intensity below ``threshold`` times the maximal intensity."""
        if not self._peaks:
            return
        max_intensity = max(p.intensity for p in self._peaks)
        self._peaks = [p for p in self._peaks if p.intensity >= max_intensity * threshold]
        self._keys = None


class RawSpectrum(PeakSpectrum[RawPeak]):
    def __init__(
        self,
        title: str = "",
        num_scans: int = 0,
        rt: Optional[float] = None,
        charge: Optional[int] = None,
        mass: Optional[float] = None,
        peaks: Optional[Iterable[RawPeak]] = None,
        intensity: Optional[float] = None,
    ):
        super().__init__(peaks)
        self.title = title
        self.num_scans = num_scans
        self.rt = rt
        self.charge = charge
        self.mass = mass
        self.intensity = intensity

    def __repr__(self) -> str:
        return f"RawSpectrum(title={self.title!r}, peaks={len(self)})"

    @classmethod
    def from_arrays(
        cls,
        mz: npt.ArrayLike,
        intensity: npt.ArrayLike,
        peak_charge: Optional[npt.ArrayLike] = None,
        **kwargs,
    ) -> "RawSpectrum":
        """Build a spectrum from peak arrays, ``kwargs`` go to the constructor."""
        mz = np.asarray(mz, dtype=np.float64)
        intensity = np.asarray(intensity, dtype=np.float64)
        peak_charge = (
            np.zeros(mz.shape, dtype=np.int64)
            if peak_charge is None
            else np.asarray(peak_charge, dtype=np.int64)
        )
        for f in [mz, intensity, peak_charge]:
            if len(f.shape) != 1:
                raise ValueError("invalid array shape")
            if f.shape[0] != mz.shape[0]:
                raise ValueError("array length not match")
        return cls(
            peaks=(
                RawPeak(float(m), float(i), int(z))
                for m, i, z in zip(mz, intensity, peak_charge)
            ),
            **kwargs,
        )

    def annotate(
        self,
        peptide: Peptidoform,
        fragments: Sequence[Fragment],
        model: Model,
        mode: Union[MassMode, str] = MassMode.monoisotopic,
        logger: Optional[Logger] = None,
    ) -> "AnnotatedSpectrum":
        """
        Attach every fragment to the closest peak within the tolerance of
        ``model``. Fragments without a close peak are dropped.
        """
        annotated = AnnotatedSpectrum(
            title=self.title,
            num_scans=self.num_scans,
            rt=self.rt,
            charge=self.charge,
            mass=self.mass,
            peptide=peptide,
            peaks=[AnnotatedPeak.background(p) for p in self._peaks],
        )
        if not self._peaks:
            return annotated

        keys = self._sort_keys()
        peak_mz = self.mz
        matched = 0
        skipped = 0
        for fragment in fragments:
            mz = fragment.mz(mode)
            if mz is None:
                skipped += 1
                if logger:
                    logger.debug(f"skipped fragment {fragment.ion}: m/z unknown")
                continue

            index = int(np.searchsorted(keys, total_order_key(mz)))
            start = max(index - 1, 0)
            end = min(index + 2, len(keys))
            ppms = [ppm_difference(peak_mz[i], mz) for i in range(start, end)]
            best = start + total_order_argmin(ppms)
            if ppms[best - start] < model.ppm:
                annotated[best].annotations.append(fragment)
                matched += 1

        if logger:
            logger.info(
                f"annotated spectrum {self.title}: {matched} fragments matched, "
                f"{len(fragments) - matched - skipped} unmatched, {skipped} skipped"
            )
        return annotated


class AnnotatedSpectrum(PeakSpectrum[AnnotatedPeak]):
    def __init__(
        self,
        peptide: Peptidoform,
        title: str = "",
        num_scans: int = 0,
        rt: Optional[float] = None,
        charge: Optional[int] = None,
        mass: Optional[float] = None,
        peaks: Optional[Iterable[AnnotatedPeak]] = None,
    ):
        super().__init__(peaks)
        self.peptide = peptide
        self.title = title
        self.num_scans = num_scans
        self.rt = rt
        self.charge = charge
        self.mass = mass

    def __repr__(self) -> str:
        return f"AnnotatedSpectrum(title={self.title!r}, peaks={len(self)})"

    def fragment_coverage(self) -> float:
        """
        Fraction of the backbone bonds of all peptides explained by at
        least one annotated backbone fragment.
        """
        total = sum(max(len(p) - 1, 0) for p in self.peptide.peptides)
        if total == 0:
            return 0.0

        covered = set()
        for peak in self._peaks:
            for fragment in peak.annotations:
                kind = fragment.ion.kind
                position = fragment.ion.position
                if not kind.is_backbone or position is None:
                    continue
                if kind.is_n_terminal:
                    bond = position.sequence_index
                else:
                    bond = position.sequence_index - 1
                if 0 <= bond < position.sequence_length - 1:
                    covered.add((fragment.peptide_index, bond))
        return len(covered) / total

    def to_dataframe(
        self, mode: Union[MassMode, str] = MassMode.monoisotopic
    ) -> pd.DataFrame:
        """One row per peak annotation, unannotated peaks get a single empty row."""
        rows = []
        for peak in self._peaks:
            base = {
                "mz": peak.experimental_mz,
                "intensity": peak.intensity,
                "charge": peak.charge,
            }
            if not peak.annotations:
                rows.append(
                    dict(
                        base,
                        annotation=None,
                        ion=None,
                        fragment_charge=None,
                        theoretical_mz=None,
                        ppm=None,
                    )
                )
                continue
            for fragment in peak.annotations:
                mz = fragment.mz(mode)
                rows.append(
                    dict(
                        base,
                        annotation=str(fragment.ion),
                        ion=fragment.ion.kind.value,
                        fragment_charge=fragment.charge,
                        theoretical_mz=mz,
                        ppm=ppm_difference(peak.experimental_mz, mz),
                    )
                )
        return pd.DataFrame.from_records(
            rows,
            columns=[
                "mz",
                "intensity",
                "charge",
                "annotation",
                "ion",
                "fragment_charge",
                "theoretical_mz",
                "ppm",
            ],
        )
