"""Motor characterization toolkit: feedforward constant identification."""

from importlib.metadata import PackageNotFoundError, version

from .identification import SystemIdentification
from .models import FeatureConfig, FeedforwardConstants
from .observations import Observation, ObservationSet

try:  # pragma: no cover - fallback when package metadata missing
    __version__ = version("motorchar")
except PackageNotFoundError:  # pragma: no cover
    __version__ = "0.0.0"

__all__ = [
    "__version__",
    "FeatureConfig",
    "FeedforwardConstants",
    "Observation",
    "ObservationSet",
    "SystemIdentification",
]
