"""
CherryPick: fetch a subtree of a GitHub repository onto local disk.
"""

from .interfaces.api import CherryPicker
from .models import Credentials, FetchConfig, FetchRequest, FetchResult, FetchStatus

__version__ = "0.1.0"

__all__ = [
    "CherryPicker",
    "Credentials",
    "FetchConfig",
    "FetchRequest",
    "FetchResult",
    "FetchStatus",
]
