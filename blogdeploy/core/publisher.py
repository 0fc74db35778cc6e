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
# THE PUBLISHER - BUILD & DEPLOY-BRANCH ENGINE
# -----------------------------------------------------------------------------
# Responsibility: One end-to-end publish cycle:
#   build -> switch to deploy branch -> clear -> copy -> commit/push -> restore
#
# The Rules:
# - A failed build NEVER touches the deploy branch
# - The deploy branch is never left half-written: clear/copy/commit failures
#   roll it back to the revision it had when the cycle started
# - Allow-listed marker files (CNAME, .nojekyll) survive every cycle untouched
# - The operator always ends up on the branch they started from
# - Every failure names the stage that failed
# -----------------------------------------------------------------------------

import shutil
import tempfile
import time
import uuid
from datetime import datetime
from pathlib import Path

import requests
from rich.console import Console

from blogdeploy.core.recorder import FlightRecorder
from blogdeploy.core.verifier import OutputVerifier, VerificationError
from blogdeploy.domain.models import (
    BuildOutput,
    DeployConfig,
    PublishResult,
    PublishStage,
    WorkingContext,
)
from blogdeploy.infra.builder import BuildFailedError, SiteBuilder
from blogdeploy.infra.git_client import (
    ContextRestoreError,
    GitError,
    GitProvider,
    PushRejectedError,
)

console = Console()

# Live site check (hosting propagation can lag behind the push)
VERIFY_RETRIES = 3
VERIFY_DELAY_SECONDS = 3
VERIFY_TIMEOUT_SECONDS = 10


class PublishError(Exception):
    """Base class for publish failures. `stage` names the step that failed."""

    def __init__(self, message: str, stage: PublishStage) -> None:
        super().__init__(message)
        self.stage = stage
        self.context_restored = True


class BuildError(PublishError):
    """The site generator failed or its output failed a sanity check."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message, PublishStage.BUILDING)
        self.exit_code = exit_code
        self.output = output


class ContextSwitchError(PublishError):
    """The working copy is not in a state that allows switching to the deploy branch."""

    pass


class TargetUpdateError(PublishError):
    """Clearing, copying or committing on the deploy branch failed."""

    def __init__(self, message: str, stage: PublishStage, rolled_back: bool) -> None:
        super().__init__(message, stage)
        self.rolled_back = rolled_back


class PushError(PublishError):
    """The new revision was committed locally but never reached the remote."""

    def __init__(self, message: str, revision: str, remote: str) -> None:
        super().__init__(message, PublishStage.RECORDING)
        self.revision = revision
        self.remote = remote


def new_run_id() -> str:
    return f"{datetime.now():%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:6]}"


class Publisher:
    """
    The build & publish pipeline.

    Flow:
    1. Preflight: clean working copy, deploy branch available
    2. Build: run the generator, verify its output, move it to a staging dir
    3. Switch: check out the deploy branch (scoped; always switched back)
    4. Clear: drop tracked files under target_dir, re-check-out the allow-list
    5. Copy: copy staged output into target_dir and stage it
    6. Record: commit (only if something changed) and push with retries
    7. Restore: return to the starting branch

    Strategy: full clear with allow-list restore, fail fast throughout.
    """

    def __init__(
        self,
        config: DeployConfig,
        git: GitProvider | None = None,
        builder: SiteBuilder | None = None,
        verifier: OutputVerifier | None = None,
        verbose: bool = False,
    ) -> None:
        self._config = config
        self._repo = Path(config.repo_path)
        try:
            self._git = git or GitProvider(self._repo, timeout=config.git_timeout, verbose=verbose)
        except GitError as e:
            raise ContextSwitchError(str(e), PublishStage.IDLE) from e
        self._builder = builder or SiteBuilder(config)
        self._verifier = verifier or OutputVerifier(config)
        self._stage = PublishStage.IDLE
        self._recorder: FlightRecorder | None = None

    @property
    def stage(self) -> PublishStage:
        return self._stage

    def journal_folder(self) -> Path | None:
        """Where run journals go, or None when journaling is off."""
        if not self._config.journal:
            return None
        if self._config.journal_dir is not None:
            return Path(self._config.journal_dir)
        if not self._git.is_repository():
            return None
        return self._git.git_dir() / "blogdeploy" / "runs"

    def _enter(self, stage: PublishStage) -> None:
        self._stage = stage
        if self._recorder is not None:
            self._recorder.stage(stage.value)
        console.print(f"[dim][PUBLISHER] -> {stage.value}[/dim]")

    # ------------------------------------------------------------------
    # Pipeline

    def publish(self) -> PublishResult:
        """
        Run one publish cycle.

        Returns:
            PublishResult. `context_restored` is False if everything was
            published but the working copy could not be switched back.

        Raises:
            BuildError: Build failed; deploy branch untouched
            ContextSwitchError: Working copy dirty or deploy branch unavailable
            TargetUpdateError: Deploy branch update failed (rolled back)
            PushError: Committed locally, remote not updated
        """
        run_id = new_run_id()
        started = time.monotonic()
        try:
            journal = self.journal_folder()
        except GitError as e:
            console.print(f"[red][PUBLISHER] idle failed: {e}[/red]")
            raise ContextSwitchError(
                f"Cannot locate the git directory: {e}", PublishStage.IDLE
            ) from e
        self._recorder = FlightRecorder(journal, run_id)
        self._stage = PublishStage.IDLE
        source: WorkingContext | None = None

        console.print(
            f"[cyan][PUBLISHER] Run {run_id}: publishing {self._config.output_dir}/ "
            f"to {self._config.target_branch}:{self._config.target_dir}[/cyan]"
        )

        try:
            source = self._preflight()
            with tempfile.TemporaryDirectory(prefix="blogdeploy-") as staging:
                output = self._build(Path(staging))
                result = self._publish_output(output, run_id)
        except PublishError as e:
            if source is not None:
                e.context_restored = self._is_at(source)
            console.print(f"[red][PUBLISHER] {e.stage.value} failed: {e}[/red]")
            self._recorder.log("ERROR", f"{type(e).__name__}: {e}")
            self._recorder.finalize(
                "failed",
                stage=e.stage.value,
                error=str(e),
                context_restored=e.context_restored,
            )
            self._stage = PublishStage.IDLE
            raise

        if self._config.verify_url:
            result.site_verified = self._verify_site(self._config.verify_url)

        result.duration_seconds = round(time.monotonic() - started, 2)
        self._recorder.finalize("published", **result.model_dump(mode="json"))
        self._stage = PublishStage.IDLE

        console.print(
            f"[green][PUBLISHER] Published {len(result.published_files)} files "
            f"to {result.target_branch} @ {result.revision[:12]}[/green]"
        )
        return result

    def _preflight(self) -> WorkingContext:
        """
        Refuse to start unless the cycle can run to completion safely.

        Raises:
            ContextSwitchError: On any precondition failure
        """
        cfg = self._config
        try:
            if not self._git.is_repository():
                raise ContextSwitchError(
                    f"{self._repo} is not a git working copy", PublishStage.IDLE
                )

            source = self._git.current_context()
            if source.branch == cfg.target_branch:
                raise ContextSwitchError(
                    f"Already on '{cfg.target_branch}'; check out the source branch first",
                    PublishStage.IDLE,
                )

            if not self._git.is_clean():
                raise ContextSwitchError(
                    "Working copy has uncommitted changes; commit or stash them first",
                    PublishStage.IDLE,
                )

            if self._git.list_tree("HEAD", cfg.output_dir):
                raise ContextSwitchError(
                    f"{cfg.output_dir}/ is tracked on {source.describe()}; "
                    "build output must be untracked",
                    PublishStage.IDLE,
                )

            self._git.ensure_branch(cfg.target_branch, cfg.remote)
        except GitError as e:
            raise ContextSwitchError(str(e), PublishStage.IDLE) from e

        self._recorder.log("SOURCE", f"{source.describe()} @ {source.head}")
        return source

    def _build(self, staging: Path) -> BuildOutput:
        """Build, verify and stage. Nothing here touches the deploy branch."""
        self._enter(PublishStage.BUILDING)
        try:
            output = self._builder.build()
            self._verifier.verify(output)
            staged = self._builder.stage(output, staging)
        except BuildFailedError as e:
            if e.output:
                console.print(f"[dim]{e.output}[/dim]")
            raise BuildError(str(e), exit_code=e.exit_code, output=e.output) from e
        except VerificationError as e:
            raise BuildError(str(e)) from e
        except OSError as e:
            raise BuildError(f"Could not stage build output: {e}") from e

        self._recorder.log("BUILT", f"{len(staged.files)} files")
        return staged

    def _publish_output(self, output: BuildOutput, run_id: str) -> PublishResult:
        """Steps 3-7: everything that happens on the deploy branch."""
        cfg = self._config
        self._enter(PublishStage.SWITCHING)
        restored = True
        try:
            with self._git.working_context(cfg.target_branch) as source:
                result = self._update_target(output, source, run_id)
                self._enter(PublishStage.RESTORING)
        except ContextRestoreError as e:
            # Publish completed; only the switch back failed
            restored = False
            console.print(f"[bold red][PUBLISHER] WARNING: {e}[/bold red]")
            self._recorder.log("RESTORE_FAILED", str(e))
        except GitError as e:
            raise ContextSwitchError(
                f"Could not check out '{cfg.target_branch}': {e}", PublishStage.SWITCHING
            ) from e

        result.context_restored = restored
        return result

    def _update_target(
        self, output: BuildOutput, source: WorkingContext, run_id: str
    ) -> PublishResult:
        cfg = self._config
        previous = self._git.rev_parse("HEAD")
        self._recorder.log("TARGET", f"{cfg.target_branch} @ {previous}")
        # Only paths this cycle may write; anything else in the tree is not ours
        touched = [cfg.target_path(name) for name in output.files]

        try:
            self._enter(PublishStage.CLEARING)
            self._clear_target(previous)

            self._enter(PublishStage.COPYING)
            copied, skipped = self._copy_output(output)
            self._git.stage_paths([cfg.target_path(f) for f in copied])

            self._enter(PublishStage.RECORDING)
            committed = self._git.has_staged_changes()
            if committed:
                revision = self._git.commit(cfg.commit_message)
                console.print(f"[green][PUBLISHER] Committed {revision[:12]}[/green]")
            else:
                revision = previous
                console.print("[yellow][PUBLISHER] Build output unchanged, nothing to commit[/yellow]")
        except (GitError, OSError) as e:
            stage = self._stage
            rolled_back = self._rollback(previous, touched)
            raise TargetUpdateError(
                f"{stage.value} failed on '{cfg.target_branch}': {e}"
                + ("" if rolled_back else f" (rollback failed; run 'git reset --hard {previous}')"),
                stage,
                rolled_back=rolled_back,
            ) from e
        except KeyboardInterrupt:
            self._rollback(previous, touched)
            raise

        self._recorder.log("RECORDED", f"{revision} (committed={committed})")

        pushed = False
        if cfg.push:
            self._push(revision)
            pushed = True
        else:
            console.print("[yellow][PUBLISHER] Push disabled, remote not updated[/yellow]")

        return PublishResult(
            run_id=run_id,
            source=source,
            target_branch=cfg.target_branch,
            previous_revision=previous,
            revision=revision,
            committed=committed,
            pushed=pushed,
            published_files=copied,
            skipped_files=skipped,
        )

    def _clear_target(self, previous: str) -> list[str]:
        """
        Remove every tracked file under target_dir, then bring the allow-list back.

        Returns:
            Repository-relative paths of the preserved files
        """
        cfg = self._config
        self._git.remove_tracked(cfg.target_dir)

        preserved = []
        for name in cfg.preserve:
            path = cfg.target_path(name)
            if self._git.path_exists_at(previous, path):
                preserved.append(path)
            else:
                console.print(
                    f"[yellow][PUBLISHER] {path} not on '{cfg.target_branch}', nothing to preserve[/yellow]"
                )
        self._git.restore_paths(previous, preserved)
        return preserved

    def _copy_output(self, output: BuildOutput) -> tuple[list[str], list[str]]:
        """
        Copy the staged tree into target_dir.

        Files that collide with an allow-listed path are skipped.

        Returns:
            (copied, skipped) as paths relative to target_dir
        """
        target_root = self._repo / self._config.target_dir
        preserve = set(self._config.preserve)
        copied, skipped = [], []

        for rel in output.files:
            if rel in preserve:
                console.print(
                    f"[yellow][PUBLISHER] Build produced allow-listed {rel}; keeping the existing one[/yellow]"
                )
                skipped.append(rel)
                continue
            destination = target_root / rel
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(output.path / rel, destination)
            copied.append(rel)

        console.print(f"[cyan][PUBLISHER] Copied {len(copied)} files[/cyan]")
        return copied, skipped

    def _rollback(self, previous: str, touched: list[str]) -> bool:
        """Return the deploy branch to `previous`. True if that worked."""
        console.print(f"[yellow][PUBLISHER] Rolling back '{self._config.target_branch}' to {previous[:12]}[/yellow]")
        try:
            self._git.reset_hard(previous)
            self._git.clean_paths(touched)
        except GitError as e:
            console.print(f"[bold red][PUBLISHER] Rollback failed: {e}[/bold red]")
            self._recorder.log("ROLLBACK_FAILED", str(e))
            return False
        self._recorder.log("ROLLED_BACK", previous)
        return True

    def _push(self, revision: str) -> None:
        """
        Push the deploy branch, retrying transient failures.

        Raises:
            PushError: After the last failed attempt, or at once if the remote
                rejected the push as non-fast-forward. The local branch keeps
                the new commit, so the message spells out the divergence.
        """
        cfg = self._config
        last_error: GitError | None = None

        for attempt in range(1, cfg.push_retries + 1):
            if attempt > 1:
                time.sleep(cfg.push_retry_delay)
            try:
                console.print(
                    f"[cyan][PUBLISHER] Pushing {cfg.target_branch} to {cfg.remote} "
                    f"(attempt {attempt}/{cfg.push_retries})[/cyan]"
                )
                self._git.push(cfg.remote, cfg.target_branch, timeout=cfg.push_timeout)
                self._recorder.log("PUSHED", f"{cfg.remote}/{cfg.target_branch} @ {revision}")
                return
            except PushRejectedError as e:
                # Retrying cannot help until the local branch has the remote's commits
                self._recorder.log("PUSH_REJECTED", str(e))
                raise PushError(
                    f"{cfg.remote} rejected the push: local '{cfg.target_branch}' is behind "
                    f"{cfg.remote}/{cfg.target_branch}. Local is at {revision[:12]}; run "
                    f"'git fetch {cfg.remote}' and reconcile '{cfg.target_branch}' before publishing again",
                    revision=revision,
                    remote=cfg.remote,
                ) from e
            except GitError as e:
                last_error = e
                console.print(f"[yellow][PUBLISHER] Push failed: {e}[/yellow]")
                self._recorder.log("PUSH_FAILED", f"attempt {attempt}: {e}")

        raise PushError(
            f"Push to {cfg.remote} failed after {cfg.push_retries} attempts: {last_error}. "
            f"Local '{cfg.target_branch}' is at {revision[:12]} but {cfg.remote}/{cfg.target_branch} "
            f"was not updated; run 'git push {cfg.remote} {cfg.target_branch}' to retry",
            revision=revision,
            remote=cfg.remote,
        ) from last_error

    def _is_at(self, source: WorkingContext) -> bool:
        """True if the working copy is back on `source`."""
        try:
            current = self._git.current_context()
        except GitError:
            return False
        if source.branch is not None:
            return current.branch == source.branch
        return current.branch is None and current.head == source.head

    def _verify_site(self, url: str) -> bool:
        """
        Check that the live site answers.

        Returns:
            True if the URL responds with 2xx/3xx within the retries
        """
        console.print(f"[cyan][PUBLISHER] Verifying live site at {url}...[/cyan]")

        for attempt in range(VERIFY_RETRIES):
            try:
                if attempt > 0:
                    time.sleep(VERIFY_DELAY_SECONDS)

                response = requests.get(url, timeout=VERIFY_TIMEOUT_SECONDS, allow_redirects=True)

                if 200 <= response.status_code < 400:
                    console.print(f"[green][PUBLISHER] Got {response.status_code} from {url}[/green]")
                    self._recorder.log("SITE_VERIFIED", str(response.status_code))
                    return True
                console.print(
                    f"[yellow][PUBLISHER] Got {response.status_code} (attempt {attempt + 1}/{VERIFY_RETRIES})[/yellow]"
                )
            except requests.RequestException as e:
                console.print(
                    f"[yellow][PUBLISHER] Request failed: {e} (attempt {attempt + 1}/{VERIFY_RETRIES})[/yellow]"
                )

        console.print(f"[yellow][PUBLISHER] {url} did not respond; the site may still be propagating[/yellow]")
        self._recorder.log("SITE_UNVERIFIED", url)
        return False
