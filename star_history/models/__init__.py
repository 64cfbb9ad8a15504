"""Data models"""

from star_history.models.series import Dataset, SamplePoint, Series
from star_history.models.targets import Account, Repository, Target, parse_target

__all__ = [
    "Account",
    "Repository",
    "Target",
    "parse_target",
    "SamplePoint",
    "Series",
    "Dataset",
]
