from __future__ import annotations

import importlib
import inspect
import logging
import threading
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from payloadtools.hydrate.processors import BUILT_IN_GENERATORS, BUILT_IN_PROCESSORS
from payloadtools.records.types import Handler

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Capabilities
# ---------------------------------------------------------------------------

@runtime_checkable
class Processor(Protocol):
    def process(self, value: Any, config: Optional[Dict[str, Any]] = None) -> Any: ...


@runtime_checkable
class Caster(Protocol):
    def cast(self, value: Any) -> Any: ...


@runtime_checkable
class Generator(Protocol):
    def generate(self, options: Dict[str, Any]) -> Any: ...


def _accepts_config(fn: Callable[..., Any]) -> bool:
    """True when fn can be called as fn(value, config)."""
    try:
        sig = inspect.signature(fn)
    except (TypeError, ValueError):
        return True
    try:
        sig.bind(None, None)
    except TypeError:
        return False
    return True


def _with_config(fn: Callable[..., Any]) -> Callable[[Any, Optional[Dict[str, Any]]], Any]:
    """Adapt fn(value) / fn(value, config) to a uniform (value, config) call."""

    def call(value: Any, config: Optional[Dict[str, Any]] = None) -> Any:
        if config:
            return fn(value, config)
        return fn(value)

    return call


def _describe(ref: Any) -> str:
    if isinstance(ref, str):
        return ref
    return getattr(ref, "__qualname__", None) or type(ref).__name__


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class Registry:
    """
    Resolves processor / caster / generator references to Handlers.

    A reference may be:
      - a name registered with `register()` (built-ins are pre-registered)
      - a callable
      - a class or instance exposing process() / cast() / generate()
      - the name of a static or class method on the record type
      - an import path "package.module:attr"

    Classes are instantiated once and cached for the registry's lifetime.
    """

    def __init__(self, *, builtins: bool = True) -> None:
        self._named: Dict[str, Any] = {}
        self._instances: Dict[type, Any] = {}
        self._lock = threading.Lock()
        if builtins:
            for name, fn in BUILT_IN_PROCESSORS.items():
                self.register(name, fn)
            for name, cls in BUILT_IN_GENERATORS.items():
                self.register(name, cls)

    # ------------------------------------------------------------------
    def register(self, name: str, obj: Any) -> None:
        """Register a function, class or ready-made instance under `name`."""
        if not name:
            raise ValueError("registry name must be a non-empty string")
        self._named[name] = obj

    def registered(self, name: str) -> bool:
        return name in self._named

    def instance(self, cls: type) -> Any:
        with self._lock:
            if cls not in self._instances:
                logger.debug("instantiating %s", cls.__qualname__)
                self._instances[cls] = cls()
            return self._instances[cls]

    def clear_instances(self) -> None:
        with self._lock:
            self._instances.clear()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def _lookup(self, ref: Any, owner: Optional[type]) -> Any:
        """Turn a textual reference into an object; None when unknown."""
        if not isinstance(ref, str):
            return ref
        if ref in self._named:
            return self._named[ref]
        if owner is not None:
            try:
                attr = inspect.getattr_static(owner, ref)
            except AttributeError:
                attr = None
            if isinstance(attr, (staticmethod, classmethod)):
                return getattr(owner, ref)
        if ":" in ref:
            module_name, _, attr_name = ref.partition(":")
            try:
                module = importlib.import_module(module_name)
            except ImportError:
                return None
            return getattr(module, attr_name, None)
        return None

    def _materialize(self, obj: Any) -> Any:
        return self.instance(obj) if isinstance(obj, type) else obj

    # ------------------------------------------------------------------
    # Resolution per capability
    # ------------------------------------------------------------------
    def resolve_processor(
        self,
        ref: Any,
        owner: Optional[type] = None,
        needs_config: bool = False,
    ) -> Optional[Handler]:
        """
        Resolve a processor reference. With `needs_config` the target must
        accept a second (config) argument; casters ignore config entirely.
        """
        obj = self._lookup(ref, owner)
        if obj is None:
            return None
        name = _describe(ref)
        if isinstance(obj, type):
            if not (isinstance(obj, Processor) or isinstance(obj, Caster)):
                return None
            obj = self._materialize(obj)
        if isinstance(obj, Processor):
            if needs_config and not _accepts_config(obj.process):
                return None
            return Handler(name, "processor", _with_config(obj.process))
        if isinstance(obj, Caster):
            caster = obj.cast
            return Handler(name, "caster", lambda value, config=None: caster(value))
        if callable(obj):
            if needs_config and not _accepts_config(obj):
                return None
            return Handler(name, "function", _with_config(obj))
        return None

    def processor_error(self, ref: Any, owner: Optional[type] = None) -> Optional[str]:
        """Reason why `ref` did not resolve to a config-taking processor."""
        if self.resolve_processor(ref, owner) is None:
            return None
        return "it does not accept a config argument"

    def resolve_caster(self, ref: Any, owner: Optional[type] = None) -> Optional[Handler]:
        obj = self._lookup(ref, owner)
        if obj is None:
            return None
        name = _describe(ref)
        if isinstance(obj, type):
            if not isinstance(obj, Caster):
                return None
            obj = self._materialize(obj)
        if isinstance(obj, Caster):
            return Handler(name, "caster", obj.cast)
        if callable(obj):
            return Handler(name, "function", obj)
        return None

    def resolve_generator(self, ref: Any, owner: Optional[type] = None) -> Optional[Handler]:
        obj = self._lookup(ref, owner)
        if obj is None:
            return None
        name = _describe(ref)
        if isinstance(obj, type):
            if not isinstance(obj, Generator):
                return None
            obj = self._materialize(obj)
        if isinstance(obj, Generator):
            return Handler(name, "generator", obj.generate)
        if callable(obj):
            return Handler(name, "function", obj)
        return None

    def generator_error(self, ref: Any, owner: Optional[type] = None) -> str:
        """Human reason why `ref` did not resolve to a generator."""
        obj = self._lookup(ref, owner)
        if obj is None:
            return "not found"
        return "does not implement generate()"


default_registry = Registry()
