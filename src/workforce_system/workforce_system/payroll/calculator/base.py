from __future__ import annotations

from abc import ABC, abstractmethod

from ..model import PayrollConfig, PayrollInputs, PayrollResult


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll).

    Implementations must be pure: same inputs and config, same result.
    """

    @abstractmethod
    def calculate(self, inputs: PayrollInputs, config: PayrollConfig) -> PayrollResult:
        raise NotImplementedError
