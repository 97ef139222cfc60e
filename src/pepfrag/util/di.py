"""
Name-based dependency injection.

Factories registered in a :class:`Context` are called with the keyword
arguments they declare; any argument whose name matches a registered
property is filled from the context. Instances are created on first use
and cached.
"""

__all__ = ["Context"]

import inspect
import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, TypeVar, Union

T = TypeVar("T")

_EMPTY = inspect.Parameter.empty


class Context:
    def __init__(self, logger: Optional[logging.Logger] = None):
        self.instances: Dict[str, Any] = {}
        self.factories: Dict[str, Tuple[Any, Mapping[str, Any]]] = {}
        self.logger = logger

    def register(
        self, property: str, factory: Union[T, Callable[..., T]], **factory_kw
    ):
        """
        Register a factory or a raw value for a property. Extra keyword
        arguments go to the factory, they may use any name but ``property``
        and ``factory``.
        """
        if factory_kw and not callable(factory):
            raise ValueError(
                f"only callable factory accepts extra arguments: {property}, {factory}"
            )
        self.factories[property] = (factory, factory_kw)
        self.instances.pop(property, None)
        return self

    def __contains__(self, name: str) -> bool:
        return name in self.factories

    def get(self, name: str):
        if name not in self.factories:
            raise KeyError(f"no factory for {name}")
        if name not in self.instances:
            factory, factory_kw = self.factories[name]
            self.instances[name] = self._instantiate(name, factory, factory_kw)
        return self.instances[name]

    def build(self, factory: Callable[..., T], **factory_kw) -> T:
        return self._instantiate(getattr(factory, "__name__", ""), factory, factory_kw)

    def _instantiate(self, name: str, factory, factory_kw: Mapping[str, Any]):
        if not callable(factory):
            return factory

        kwargs = dict(factory_kw)
        for param in inspect.signature(factory).parameters.values():
            if param.kind not in (
                inspect.Parameter.POSITIONAL_OR_KEYWORD,
                inspect.Parameter.KEYWORD_ONLY,
            ):
                continue
            if param.name in kwargs:
                continue
            if param.name in self.factories:
                kwargs[param.name] = self.get(param.name)
            elif param.default is _EMPTY:
                raise KeyError(f"no factory for argument {param.name} of {name}")

        if self.logger:
            self.logger.debug("Property %r: %s(%s)", name, factory, list(kwargs))
        return factory(**kwargs)
