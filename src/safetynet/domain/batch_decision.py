from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class BatchDecision:
    """
    Outcome of evaluating every recipient of one outbound operation.
    Both lists keep the relative order of the original recipient list.
    """
    permitted: List[str] = field(default_factory=list)
    denied: List[str] = field(default_factory=list)

    @property
    def proceed(self) -> bool:
        return bool(self.permitted)
