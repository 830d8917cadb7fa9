"""Result models."""

from .record import Record
from .result import Result
from .results import Results

__all__ = ["Record", "Result", "Results"]
