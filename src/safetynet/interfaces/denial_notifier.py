from abc import ABC, abstractmethod

from src.safetynet.domain.denial_notice import DenialNotice


class DenialNotifier(ABC):
    """
    Reports a refused delivery to operators.
    Called exactly once per denied address per evaluation.
    """
    @abstractmethod
    def notify(self, notice: DenialNotice) -> None:
        pass
