__all__ = ["Configurable", "load_configs"]

import os
from typing import Any, Mapping, Optional, Type, TypeVar, Union, overload

from .collections.dict import (
    chain_get,
    chain_get_typed,
    chain_item,
    chain_item_typed,
    merge_dict,
)
from .io.json import load_json
from .io.yaml import load_yaml


T = TypeVar("T")


def load_configs(configs: Union[str, Mapping[str, Any], None]) -> dict:
    if configs is None:
        return {}
    if isinstance(configs, str):
        ext = os.path.splitext(configs)[1].lower()
        if ext == ".json":
            configs = load_json(configs)
        else:
            configs = load_yaml(configs)
    if not isinstance(configs, Mapping):
        raise ValueError(f"invalid configs: mapping expected but {type(configs)} found")
    return dict(configs)


class Configurable:
    default_configs: Mapping[str, Any] = {}

    def __init__(self, configs: Union[str, Mapping[str, Any], None] = None):
        self.configs = dict(self.default_configs)
        self.set_configs(load_configs(configs))

    def get_configs(self) -> dict:
        return dict(self.configs)

    @overload
    def get_config(self, *name) -> Any:
        ...

    @overload
    def get_config(self, *name, required: bool) -> Union[Any, None]:
        ...

    @overload
    def get_config(
        self, *name, typed: Type[T], allow_convert: bool = False
    ) -> T:
        ...

    @overload
    def get_config(
        self,
        *name,
        required: bool,
        typed: Type[T],
        allow_convert: bool = False,
    ) -> Optional[T]:
        ...

    def get_config(
        self,
        *name,
        required: bool = True,
        typed: Optional[Type[T]] = None,
        allow_convert: bool = False,
    ) -> Union[T, Any, None]:
        if required:
            if typed is not None:
                return chain_item_typed(
                    self.configs, typed, *name, allow_convert=allow_convert
                )
            return chain_item(self.configs, *name)
        else:
            if typed is not None:
                return chain_get_typed(
                    self.configs, typed, *name, allow_convert=allow_convert
                )
            return chain_get(self.configs, *name)

    def set_configs(self, configs: Mapping[str, Any]):
        if configs:
            self.configs = merge_dict(self.configs, configs)
        return self
