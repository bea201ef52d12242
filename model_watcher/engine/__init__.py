"""Engine components: fetch → normalize → diff → persist → notify."""

from .adapters import ShapeMatcher, normalize, register_shape
from .auth import build_headers, register_strategy
from .differ import Delta, DeltaSummary, FieldChange, RecordUpdate, diff
from .fetcher import Fetcher
from .records import CanonicalRecord, Outcome
from .scan_log import ScanLog
from .state import StateStore
from .thread_pool import ThreadPoolManager

__all__ = [
    "CanonicalRecord",
    "Delta",
    "DeltaSummary",
    "FieldChange",
    "Fetcher",
    "Outcome",
    "RecordUpdate",
    "ScanLog",
    "ShapeMatcher",
    "StateStore",
    "ThreadPoolManager",
    "build_headers",
    "diff",
    "normalize",
    "register_shape",
    "register_strategy",
]
