# -----------------------------------------------------------------------------
# DOMAIN LAYER
# -----------------------------------------------------------------------------
# Contains the Pydantic models that define the contract between the
# Publisher and its collaborators (builder, git client, recorder).
# -----------------------------------------------------------------------------

from .models import BuildOutput, DeployConfig, PublishResult, PublishStage, WorkingContext

__all__ = ["BuildOutput", "DeployConfig", "PublishResult", "PublishStage", "WorkingContext"]
