# -----------------------------------------------------------------------------
# THE BUILDER - STATIC SITE GENERATION
# -----------------------------------------------------------------------------
# Responsibility: Invoke the external site generator (a black box) and hand
# back the directory of static files it produced.
#
# Safety Features:
# - Hard timeout on the generator process
# - Output must exist and be non-empty before anything else happens
# - Output is moved out of the working copy before any branch switch
# -----------------------------------------------------------------------------

import os
import shutil
import subprocess
from pathlib import Path

from rich.console import Console

from blogdeploy.domain.models import BuildOutput, DeployConfig

console = Console()

# Characters of generator output kept on failure
OUTPUT_TAIL_CHARS = 2000


class BuildFailedError(Exception):
    """Raised when the build command fails or produces no usable output."""

    def __init__(self, message: str, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


def collect_files(root: Path) -> list[str]:
    """All regular files under `root` as sorted POSIX relative paths."""
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file())


class SiteBuilder:
    """
    Runs the site generator with the production toggle applied.

    The builder never validates what the generator wrote, only that a
    non-empty output tree exists where the generator is expected to put it.
    """

    def __init__(self, config: DeployConfig) -> None:
        self._config = config
        self._repo = Path(config.repo_path)

    @property
    def output_path(self) -> Path:
        return self._repo / self._config.output_dir

    def _environment(self) -> dict[str, str]:
        env = os.environ.copy()
        env.update(self._config.build_environment())
        return env

    def build(self) -> BuildOutput:
        """
        Run the build command and return the generated tree.

        Returns:
            BuildOutput pointing at output_dir inside the working copy

        Raises:
            BuildFailedError: On non-zero exit, timeout, missing executable,
                or a missing/empty output directory
        """
        cmd = self._config.build_command
        toggle = self._config.build_environment()
        console.print(
            f"[cyan][BUILDER] Running: {' '.join(cmd)}"
            + (f" ({', '.join(f'{k}={v}' for k, v in toggle.items())})" if toggle else "")
            + "[/cyan]"
        )

        # Stale output from an earlier run must not be mistaken for this build's
        if self.output_path.exists():
            shutil.rmtree(self.output_path)

        try:
            result = subprocess.run(
                cmd,
                cwd=self._repo,
                env=self._environment(),
                capture_output=True,
                text=True,
                timeout=self._config.build_timeout,
            )
        except subprocess.TimeoutExpired:
            raise BuildFailedError(
                f"Build timed out after {self._config.build_timeout}s: {' '.join(cmd)}"
            )
        except FileNotFoundError as e:
            raise BuildFailedError(f"Build command not found: {cmd[0]}") from e
        except OSError as e:
            raise BuildFailedError(f"Build command could not start: {e}") from e

        output = ((result.stdout or "") + (result.stderr or ""))[-OUTPUT_TAIL_CHARS:]
        if result.returncode != 0:
            console.print(f"[red][BUILDER] Build failed (exit {result.returncode})[/red]")
            raise BuildFailedError(
                f"Build exited with status {result.returncode}",
                exit_code=result.returncode,
                output=output,
            )

        if not self.output_path.is_dir():
            raise BuildFailedError(
                f"Build succeeded but produced no output at {self._config.output_dir}/",
                exit_code=0,
                output=output,
            )

        files = collect_files(self.output_path)
        if not files:
            raise BuildFailedError(
                f"Build output {self._config.output_dir}/ is empty", exit_code=0, output=output
            )

        console.print(f"[green][BUILDER] Built {len(files)} files[/green]")
        return BuildOutput(path=self.output_path, files=files)

    def stage(self, output: BuildOutput, staging_root: Path) -> BuildOutput:
        """
        Move the build output into `staging_root`.

        After this the working copy holds no generated files, so switching
        branches and staging the target cannot pick them up.
        """
        destination = Path(staging_root) / "site"
        shutil.move(str(output.path), str(destination))
        console.print(f"[cyan][BUILDER] Staged output in {destination}[/cyan]")
        return BuildOutput(path=destination, files=output.files)
