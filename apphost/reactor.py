"""Loading a reactor extension and dispatching events to it.

A reactor is any module exposing one of:

* a subclass of :class:`Reactor` (instantiated with no arguments),
* a module-level ``reactor`` object with a ``handle(event)`` method,
* a module-level ``handle(event)`` function.

It is referenced by module name or by the path to a ``.py`` file. The file's
directory and the current working directory are put on the import path before
loading, so the reactor's own sibling modules resolve.
"""

import importlib
import inspect
import logging
import os
import sys
from abc import ABC, abstractmethod
from typing import Callable

from apphost.models import EventRecord, ReactorEvent, to_reactor_event
from apphost.stats import TailStats

logger = logging.getLogger(__name__)


class ReactorLoadError(Exception):
    """Raised when a reactor module cannot be found or exposes no handler."""


class Reactor(ABC):
    """Base class for reactors; subclasses implement ``handle``."""

    @abstractmethod
    def handle(self, event: ReactorEvent):
        ...


class FunctionReactor(Reactor):
    """Adapts a bare ``handle(event)`` function."""

    def __init__(self, fn: Callable[[ReactorEvent], None]):
        self._fn = fn

    def handle(self, event: ReactorEvent):
        self._fn(event)


def resolve_module(ref: str) -> tuple[str, list[str]]:
    """Turn a module reference into (module name, search paths)."""
    search_paths = []
    name = ref
    if os.path.isfile(ref):
        name = os.path.splitext(os.path.basename(ref))[0]
        search_paths.append(os.path.dirname(os.path.abspath(ref)))
    search_paths.append(os.getcwd())
    return name, search_paths


def install_search_paths(paths: list[str]):
    """Prepend paths to sys.path, keeping their order and skipping duplicates."""
    for path in reversed(paths):
        if path not in sys.path:
            sys.path.insert(0, path)


def find_reactor(module) -> Reactor:
    """Pick the reactor a module exposes. Classes defined in the module win."""
    classes = [
        obj for _, obj in inspect.getmembers(module, inspect.isclass)
        if issubclass(obj, Reactor) and obj is not FunctionReactor and not inspect.isabstract(obj)
    ]
    classes.sort(key=lambda c: c.__module__ != module.__name__)
    if classes:
        try:
            return classes[0]()
        except Exception as e:
            raise ReactorLoadError(f"Reactor {classes[0].__name__} failed to start: {e}") from e

    candidate = getattr(module, "reactor", None)
    if candidate is not None and callable(getattr(candidate, "handle", None)):
        return candidate

    handle = getattr(module, "handle", None)
    if callable(handle):
        return FunctionReactor(handle)

    raise ReactorLoadError(
        f"Module {module.__name__!r} exposes no Reactor subclass, 'reactor' object or 'handle' function"
    )


def load_reactor(ref: str, search_paths: list[str] | None = None) -> Reactor:
    """Import the module ``ref`` refers to and return its reactor."""
    name, resolved_paths = resolve_module(ref)
    install_search_paths(list(search_paths or []) + resolved_paths)
    importlib.invalidate_caches()

    try:
        module = importlib.import_module(name)
    except ImportError as e:
        raise ReactorLoadError(f"Cannot load reactor module {ref!r}: {e}") from e
    except Exception as e:
        raise ReactorLoadError(f"Reactor module {ref!r} failed during import: {e}") from e

    reactor = find_reactor(module)
    logger.info("Loaded reactor %s from %s", type(reactor).__name__, getattr(module, "__file__", name))
    return reactor


class ReactorDispatcher:
    """Hands each new event to the reactor, isolating the tail from its failures."""

    def __init__(self, reactor: Reactor | None = None, stats: TailStats | None = None):
        self._reactor = reactor
        self._stats = stats if stats is not None else TailStats()

    @property
    def reactor(self) -> Reactor | None:
        return self._reactor

    def dispatch(self, event: EventRecord) -> bool:
        """Convert and deliver one event. Returns False if the reactor failed."""
        if self._reactor is None:
            return True
        try:
            self._reactor.handle(to_reactor_event(event))
        except Exception:
            logger.exception("Reactor failed on event %s", event.id)
            self._stats.record_reactor_failure()
            return False
        return True
