"""Engine components orchestrating fetch → dedup → decode → export."""

from .decoders import CanonicalSummary, DecodeFailure, DecoderRegistry
from .dedup import DeduplicationResult, dedupe, deduplicate
from .fetcher import FetchRequest, FetchResponse, Fetcher, decode_body, split_lines
from .thread_pool import ThreadPoolManager, bounded_workers

__all__ = [
    "CanonicalSummary",
    "DecodeFailure",
    "DecoderRegistry",
    "DeduplicationResult",
    "FetchRequest",
    "FetchResponse",
    "Fetcher",
    "ThreadPoolManager",
    "bounded_workers",
    "decode_body",
    "dedupe",
    "deduplicate",
    "split_lines",
]
