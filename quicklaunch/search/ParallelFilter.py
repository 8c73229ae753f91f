from concurrent.futures import Executor
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar('T')

# Below this many items the scan runs inline; task overhead would dominate
DEFAULT_CHUNK_SIZE = 2048


def parallel_filter(items: Sequence[T], predicate: Callable[[T], bool],
                    executor: Optional[Executor] = None,
                    chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[T]:
    """Stable filter that scans chunks of items concurrently.

    The predicate must be pure: chunks run on different workers and share
    nothing but the (immutable) items. Output order equals input order.
    """
    if executor is None or len(items) <= chunk_size:
        return [item for item in items if predicate(item)]

    def scan(start: int) -> List[T]:
        return [item for item in items[start:start + chunk_size] if predicate(item)]

    result: List[T] = []
    for part in executor.map(scan, range(0, len(items), chunk_size)):
        result.extend(part)
    return result
