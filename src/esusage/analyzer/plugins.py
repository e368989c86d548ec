"""Scan lifecycle observers.

Plugins introduce only external side effects (counting, shipping items to a
search index, writing reports) without any control over the scan itself, so
that several plugins can be composed without interfering with each other or
with the result.
"""
import copy
from dataclasses import dataclass, field
from typing import Any, List, Sequence

from .item import Item
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ScanMetadata:
    created_at: str
    source: str  # URL (if VCS) or filesystem path of the analyzed tree


@dataclass
class ScanOutput:
    created_at: str
    source: str
    items: List[Item] = field(default_factory=list)


class Plugin:
    """Base class for scan observers. Every hook is optional."""

    def on_start(self, metadata: ScanMetadata) -> None:
        """Called once, before any item is produced."""

    def on_collect(self, item: Item) -> None:
        """Called once per collected item, in output order."""

    def on_end(self, output: ScanOutput) -> None:
        """Called once, with every collected item."""


@dataclass
class PluginFailure:
    plugin: Any
    hook: str
    error: Exception


class PluginRunner:
    """Invokes plugin hooks in registration order, isolating each call.

    Every plugin receives its own copy of the payload and its return value
    is discarded. An exception raised by a hook is logged and recorded in
    `failures`; remaining plugins and items still run.
    """

    def __init__(self, plugins: Sequence[Any] = ()):
        self.plugins = list(plugins)
        self.failures: List[PluginFailure] = []

    def start(self, metadata: ScanMetadata) -> None:
        self._dispatch('on_start', metadata)

    def collect(self, item: Item) -> None:
        self._dispatch('on_collect', item)

    def end(self, output: ScanOutput) -> None:
        self._dispatch('on_end', output)

    def _dispatch(self, hook: str, payload: Any) -> None:
        for plugin in self.plugins:
            callback = getattr(plugin, hook, None)
            if callback is None:
                continue
            try:
                callback(copy.deepcopy(payload))
            except Exception as e:
                self.failures.append(PluginFailure(plugin=plugin, hook=hook, error=e))
                logger.warning("Plugin %s failed in %s: %s",
                               type(plugin).__name__, hook, e, exc_info=True)
