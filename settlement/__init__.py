"""
STUDIO PAYROLL SETTLEMENT ENGINE
Trainer payouts and package session debt resolution
"""

from .config import StudioSettings
from .models import PayoutCalculation, Payment
from .processor import PayrollProcessor
from .store import StudioStore

__all__ = ['PayrollProcessor', 'StudioStore', 'StudioSettings', 'PayoutCalculation', 'Payment']
