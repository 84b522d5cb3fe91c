"""
Per-run dependencies shared by the generation nodes.

Nodes are built as closures over a RunContext so the graph state only
carries serializable data.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Optional, TYPE_CHECKING

from tripgen.generation.events import Emitter, Notification, safe_emit
from tripgen.generation.provider import ModelProvider
from tripgen.shared.logging.timing import RunTimer
from tripgen.store.base import GenerationStore
from tripgen.tools.dispatcher import ToolDispatcher

if TYPE_CHECKING:
    from tripgen.generation.graph.config import GenerationGraphConfig


logger = logging.getLogger(__name__)


@dataclass
class RunContext:
    generation_id: str
    provider: ModelProvider
    dispatcher: ToolDispatcher
    config: "GenerationGraphConfig"
    timer: RunTimer
    store: Optional[GenerationStore] = None
    emit: Optional[Emitter] = None
    rng: random.Random = field(default_factory=random.Random)

    def log_prefix(self, node: str) -> str:
        return f"[generation={self.generation_id}] [graph=generation] [node={node}] "

    async def notify(self, notification: Notification, _log: str = "") -> None:
        await safe_emit(self.emit, notification, _log)

    async def record_summary(self, text: str, _log: str = "") -> None:
        """Append a progress summary to the record; failures are logged and skipped."""
        if self.store is None:
            return
        try:
            await self.store.append_summary(self.generation_id, text)
        except Exception as e:
            logger.warning(f"{_log}Failed to record progress summary: {e}")
