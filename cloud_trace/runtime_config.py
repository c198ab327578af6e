"""Process-wide runtime state.

Set once at process start (``cloud_trace.configure`` or the setters below)
and only read while requests are being handled.
"""

import os
import threading
from typing import Optional

from cloud_trace.processors.sampler import RateSampler, Sampler

# Global runtime configuration state
_config = {
    "default_sampler": None,
    "project_id": None,
}
_lock = threading.Lock()


def set_default_sampler(value: Optional[Sampler]) -> None:
    with _lock:
        _config["default_sampler"] = value


def get_default_sampler() -> Sampler:
    """Return the default sampler, creating the QPS-based one on first use."""
    sampler = _config["default_sampler"]
    if sampler is not None:
        return sampler
    with _lock:
        if _config["default_sampler"] is None:
            _config["default_sampler"] = RateSampler()
        return _config["default_sampler"]


def set_project_id(value: Optional[str]) -> None:
    _config["project_id"] = value


def get_project_id() -> Optional[str]:
    return (
        _config["project_id"]
        or os.getenv("GOOGLE_CLOUD_PROJECT")
        or os.getenv("GCLOUD_PROJECT")
    )


def reset() -> None:
    """Forget all runtime state (used by tests)."""
    with _lock:
        _config["default_sampler"] = None
        _config["project_id"] = None
