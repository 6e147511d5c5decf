from abc import ABC, abstractmethod

from src.safetynet.domain.policy import PolicyContext


class RateLimitable(ABC):
    """
    Anything that owns a delivery policy and asks the engine for decisions.
    """
    @abstractmethod
    def resolve_policy(self) -> PolicyContext:
        pass
