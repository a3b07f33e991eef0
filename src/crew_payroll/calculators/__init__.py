"""Hours classification engine."""

from crew_payroll.calculators.classifier import HoursClassifier
from crew_payroll.calculators.entry_builder import BatchResult, EntryBuilder
from crew_payroll.calculators.rate_book import RateBook
from crew_payroll.calculators.review import ReviewEvaluator

__all__ = [
    "BatchResult",
    "EntryBuilder",
    "HoursClassifier",
    "RateBook",
    "ReviewEvaluator",
]
