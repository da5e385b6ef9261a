from .org import Department, Grant
from .auth import User
from .vendors import Vendor
from .budgets import Budget, BudgetAllocation
from .security import SecurityEvent

__all__ = [
    'Department', 'Grant',
    'User',
    'Vendor',
    'Budget', 'BudgetAllocation',
    'SecurityEvent',
]
