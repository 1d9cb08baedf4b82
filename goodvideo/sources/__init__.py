from .base import BaseSource
from .cilifan import CilifanSource, get_record_from_detail, get_records
from .fetcher import FailureKind, PacedFetcher, RetryPolicy, backoff_delay, classify_failure

__all__ = [
    "BaseSource",
    "CilifanSource",
    "FailureKind",
    "PacedFetcher",
    "RetryPolicy",
    "backoff_delay",
    "classify_failure",
    "get_record_from_detail",
    "get_records",
]
