__all__ = [
    "total_order_key",
    "total_order_keys",
    "total_order_argmin",
    "ppm_difference",
]

from typing import Optional

import numpy as np
import numpy.typing as npt

_SIGN_MASK = np.int64(0x7FFFFFFFFFFFFFFF)


def total_order_keys(x: npt.ArrayLike) -> npt.NDArray[np.int64]:
    """Map float64 values to int64 keys following the IEEE 754 totalOrder.

    -NaN < -inf < ... < -0.0 < +0.0 < ... < +inf < +NaN
    """
    bits = np.ascontiguousarray(x, dtype=np.float64).view(np.int64)
    return bits ^ ((bits >> 63) & _SIGN_MASK)


def total_order_key(x: float) -> int:
    return int(total_order_keys(np.array([x], dtype=np.float64))[0])


def total_order_argmin(x: npt.ArrayLike) -> int:
    keys = total_order_keys(x)
    if keys.shape[0] == 0:
        raise ValueError("argmin of an empty sequence")
    return int(np.argmin(keys))


def ppm_difference(value: Optional[float], reference: Optional[float]) -> float:
    if value is None or reference is None:
        return float("nan")
    if reference == 0.0:
        return float("inf") if value != reference else 0.0
    return abs(value - reference) / abs(reference) * 1e6
