__all__ = [
    "chain_item",
    "chain_get",
    "chain_item_typed",
    "chain_get_typed",
    "merge_dict",
]

from typing import Any, Dict, Mapping, Optional, Type, TypeVar, overload


T = TypeVar("T")


def chain_item(d: Mapping, *keys):
    result = d
    for k in keys:
        if isinstance(result, Mapping) and k in result:
            result = result[k]
        else:
            raise KeyError(keys)
    return result


def chain_get(d: Mapping, *keys, default=None):
    result = d
    for k in keys:
        if isinstance(result, Mapping) and k in result:
            result = result[k]
        else:
            return default
    return result


def _check_type(result, t: Type[T], keys, allow_convert: bool) -> T:
    if isinstance(result, t):
        return result
    if allow_convert:
        return t(result)  # type: ignore
    raise TypeError(keys, f"{t} expected but {type(result)} found")


def chain_item_typed(d: Mapping, t: Type[T], *keys, allow_convert: bool = False) -> T:
    return _check_type(chain_item(d, *keys), t, keys, allow_convert)


@overload
def chain_get_typed(
    d: Mapping,
    t: Type[T],
    *keys,
    default: T,
    allow_convert: bool = False,
) -> T:
    ...


@overload
def chain_get_typed(
    d: Mapping,
    t: Type[T],
    *keys,
    default: Optional[T] = None,
    allow_convert: bool = False,
) -> Optional[T]:
    ...


def chain_get_typed(
    d: Mapping,
    t: Type[T],
    *keys,
    default: Optional[T] = None,
    allow_convert: bool = False,
) -> Optional[T]:
    result = chain_get(d, *keys, default=default)
    if result is None or isinstance(result, t):
        return result
    if allow_convert:
        try:
            return t(result)  # type: ignore
        except (TypeError, ValueError):
            return default
    return default


def merge_dict(base: Mapping[str, Any], update: Mapping[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``update`` into a copy of ``base``."""
    result = dict(base)
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(result.get(key, None), Mapping):
            result[key] = merge_dict(result[key], value)
        else:
            result[key] = value
    return result
