# Copyright 2026 Pramod Kumar Voola
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# -----------------------------------------------------------------------------
# DOMAIN MODELS - DEPLOY CONTRACT
# -----------------------------------------------------------------------------
# These Pydantic models describe one publish cycle: what to build, where the
# output lands, which branch receives it, and what came out the other end.
#
# The Publisher only ever talks to its collaborators through these values.
# -----------------------------------------------------------------------------

from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PublishStage(str, Enum):
    """
    Stages of one publish cycle, in execution order.

    The pipeline is strictly linear:
    idle -> building -> switching -> clearing -> copying -> recording -> restoring -> idle
    """

    IDLE = "idle"
    BUILDING = "building"
    SWITCHING = "switching"
    CLEARING = "clearing"
    COPYING = "copying"
    RECORDING = "recording"
    RESTORING = "restoring"


class DeployConfig(BaseModel):
    """
    Settings for a publish cycle.

    Loaded from deploy.yaml (plus environment overrides) by
    blogdeploy.core.config.load_config.

    Fields:
    - build_command: External site generator invocation (argv list)
    - production / production_env_var / production_env_value: The one
      environment toggle handed to the generator
    - output_dir: Where the generator writes, relative to repo_path
    - target_branch / target_dir: Where the Published Snapshot lives
    - preserve: Allow-listed files under target_dir that survive every cycle
    """

    repo_path: Path = Field(default=Path("."), description="Root of the source working copy")

    # Build collaborator
    build_command: list[str] = Field(default_factory=lambda: ["yarn", "build"], min_length=1)
    build_env: dict[str, str] = Field(default_factory=dict)
    production: bool = True
    production_env_var: str = "BRIDGETOWN_ENV"
    production_env_value: str = "production"
    output_dir: str = "output"
    build_timeout: int = Field(default=600, gt=0)

    # Build output checks
    required_files: list[str] = Field(default_factory=lambda: ["index.html"])
    feed_path: str | None = None

    # Publish target
    target_branch: str = Field(default="deploy", min_length=1)
    target_dir: str = "."
    preserve: list[str] = Field(default_factory=lambda: ["CNAME", ".nojekyll"])
    commit_message: str = Field(default="Update build", min_length=1)

    # Remote record store
    remote: str = "origin"
    push: bool = True
    push_retries: int = Field(default=3, ge=1)
    push_retry_delay: float = Field(default=3.0, ge=0)
    push_timeout: int = Field(default=120, gt=0)
    git_timeout: int = Field(default=60, gt=0)

    # Post-publish
    verify_url: str | None = None
    journal: bool = True
    journal_dir: Path | None = None

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    @field_validator("output_dir", "target_dir")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        """Output and target directories must stay inside the repository."""
        path = PurePosixPath(value)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"must be a relative path inside the repository: {value!r}")
        return str(path)

    @field_validator("preserve", "required_files")
    @classmethod
    def _relative_files(cls, value: list[str]) -> list[str]:
        """Allow-listed and required files are relative to their directory."""
        cleaned = []
        for item in value:
            path = PurePosixPath(item)
            if not item or path.is_absolute() or ".." in path.parts:
                raise ValueError(f"invalid relative file path: {item!r}")
            cleaned.append(str(path))
        return cleaned

    def build_environment(self) -> dict[str, str]:
        """Extra environment variables for the build collaborator."""
        env = dict(self.build_env)
        if self.production:
            env[self.production_env_var] = self.production_env_value
        return env

    def target_path(self, name: str = ".") -> str:
        """Repository-relative path of `name` inside the publish target."""
        return str(PurePosixPath(self.target_dir) / name)


class WorkingContext(BaseModel):
    """
    The active branch/location pointer of the working copy.

    Captured before a cycle and restored after it. `branch` is None when
    HEAD is detached; `head` then identifies the commit to return to.
    """

    repo_path: Path
    branch: str | None = None
    head: str

    @property
    def ref(self) -> str:
        """The ref to check out to return to this context."""
        return self.branch or self.head

    def describe(self) -> str:
        return self.branch or f"detached HEAD at {self.head[:8]}"


class BuildOutput(BaseModel):
    """A generated static output tree (ephemeral, regenerable)."""

    path: Path
    files: list[str] = Field(default_factory=list, description="POSIX paths relative to `path`")


class PublishResult(BaseModel):
    """Outcome of one publish cycle."""

    run_id: str
    source: WorkingContext
    target_branch: str
    previous_revision: str
    revision: str
    committed: bool = False
    pushed: bool = False
    context_restored: bool = True
    published_files: list[str] = Field(default_factory=list)
    skipped_files: list[str] = Field(default_factory=list)
    site_verified: bool | None = None
    duration_seconds: float = 0.0
