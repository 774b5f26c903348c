"""
Fetch engine: concurrency gate, recursive walker, orchestrator and URL parsing.
"""

from .gate import ConcurrencyGate
from .walker import DirectoryWalker
from .orchestrator import FetchOrchestrator, FetchStatistics
from .url_parser import parse_github_url, split_urls

__all__ = [
    "ConcurrencyGate",
    "DirectoryWalker",
    "FetchOrchestrator",
    "FetchStatistics",
    "parse_github_url",
    "split_urls",
]
