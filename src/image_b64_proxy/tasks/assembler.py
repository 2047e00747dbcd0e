from __future__ import annotations

import time
from typing import Any, Callable, Dict, Sequence

from ..models import AssembledResponse, EncodedItem, GenerationResult


def assemble(
    items: Sequence[EncodedItem],
    clock: Callable[[], float] = time.time,
) -> AssembledResponse:
    """Wrap ordered items with a fresh unix timestamp."""
    return AssembledResponse(created=int(clock()), data=list(items))


def passthrough(result: GenerationResult) -> Dict[str, Any]:
    """Re-serialize the upstream result as received, URLs included."""
    return result.to_payload()
