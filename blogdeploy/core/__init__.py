# -----------------------------------------------------------------------------
# CORE LAYER
# -----------------------------------------------------------------------------
# The business logic of blogdeploy:
# - Publisher: the build & deploy-branch pipeline
# - OutputVerifier: sanity checks on the generated site
# - FlightRecorder: per-run journal
# - load_config: deploy.yaml + environment
# -----------------------------------------------------------------------------

from .config import ConfigError, load_config
from .publisher import (
    BuildError,
    ContextSwitchError,
    Publisher,
    PublishError,
    PushError,
    TargetUpdateError,
)
from .recorder import FlightRecorder, list_runs
from .verifier import OutputVerifier, VerificationError

__all__ = [
    "ConfigError", "load_config",
    "BuildError", "ContextSwitchError", "Publisher", "PublishError", "PushError",
    "TargetUpdateError",
    "FlightRecorder", "list_runs",
    "OutputVerifier", "VerificationError",
]
