"""trackhub - Async hub feeding tracking-provider positions into a Sankhya ERP."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("trackhub")
except PackageNotFoundError:
    __version__ = "0+local"
from trackhub.app import TrackHub
from trackhub.config import (
    AtualcargoConfig,
    ErpConfig,
    HubConfig,
    PositronConfig,
    SitraxConfig,
    SourceConfig,
)
from trackhub.exceptions import (
    BatchPendingError,
    ConfigError,
    ErpAccessReentryError,
    ErpApiError,
    ErpAuthError,
    ErpError,
    ErpTransportError,
    HttpError,
    SourceAuthError,
    SourceError,
    SourceRateLimitError,
    SourceTransportError,
    TrackHubError,
)
from trackhub.models import CanonicalPosition, PendingBatch, PositionKind, ReconcileResult
from trackhub.monitoring import JobStatus, StatusBoard

__all__ = [
    "__version__",
    "AtualcargoConfig",
    "BatchPendingError",
    "CanonicalPosition",
    "ConfigError",
    "ErpAccessReentryError",
    "ErpApiError",
    "ErpAuthError",
    "ErpConfig",
    "ErpError",
    "ErpTransportError",
    "HttpError",
    "HubConfig",
    "JobStatus",
    "PendingBatch",
    "PositionKind",
    "PositronConfig",
    "ReconcileResult",
    "SitraxConfig",
    "SourceAuthError",
    "SourceConfig",
    "SourceError",
    "SourceRateLimitError",
    "SourceTransportError",
    "StatusBoard",
    "TrackHub",
    "TrackHubError",
]
