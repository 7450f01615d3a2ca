from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, DefaultDict, Dict, List, Type, TypeVar, Union

from .models import SizeRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssetIngested:
    asset_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class AssetDeleted:
    asset_id: str


@dataclass(frozen=True, slots=True)
class SizeRequested:
    asset_id: str
    request: Union[str, SizeRequest]


Event = Union[AssetIngested, AssetDeleted, SizeRequested]
E = TypeVar("E", AssetIngested, AssetDeleted, SizeRequested)


class EventBus:
    """Synchronous in-process dispatch of lifecycle events."""

    def __init__(self) -> None:
        self._handlers: DefaultDict[type, List[Callable[[Any], Any]]] = defaultdict(list)

    def subscribe(self, event_type: Type[E], handler: Callable[[E], Any]) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: Event) -> List[Any]:
        handlers = self._handlers.get(type(event), [])
        logger.debug("Dispatching %s to %s handler(s)", type(event).__name__, len(handlers))
        return [handler(event) for handler in handlers]
