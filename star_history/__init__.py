"""
star-history

Cumulative GitHub star counts over time for repositories and whole accounts,
reconstructed from a bounded number of stargazer page fetches.
"""

__version__ = "1.0.0"

from star_history.errors import StarHistoryError
from star_history.models import Account, Dataset, Repository, SamplePoint, Series, parse_target

__all__ = [
    "StarHistoryError",
    "Account",
    "Repository",
    "parse_target",
    "SamplePoint",
    "Series",
    "Dataset",
]
