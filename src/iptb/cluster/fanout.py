"""
Bounded concurrent per-node task group

Runs one task per node with at most `max_workers` in flight and returns a
result for every node instead of stopping at the first failure.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, List, Optional

from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class NodeResult:
    """Outcome of one per-node task"""
    index: int
    value: Any = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


async def fan_out(
    indices: Iterable[int],
    task: Callable[[int], Awaitable[Any]],
    max_workers: int = 8
) -> List[NodeResult]:
    """
    Run `task(index)` for every index concurrently
    
    Args:
        indices: Node indices to process
        task: Coroutine function taking a node index
        max_workers: Upper bound on concurrently running tasks
        
    Returns:
        One NodeResult per index, in index order
    """
    semaphore = asyncio.Semaphore(max(1, max_workers))

    async def run(index: int) -> NodeResult:
        async with semaphore:
            try:
                return NodeResult(index, value=await task(index))
            except Exception as e:
                logger.error("node task failed", node=index, error=str(e))
                return NodeResult(index, error=e)

    return list(await asyncio.gather(*(run(i) for i in indices)))


def failures(results: Iterable[NodeResult]) -> List[NodeResult]:
    return [r for r in results if not r.ok]
