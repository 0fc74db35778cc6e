# -----------------------------------------------------------------------------
# DEPLOY CONFIGURATION
# -----------------------------------------------------------------------------
# Responsibility: Build the DeployConfig for a run from, in increasing order
# of precedence:
#   1. Built-in defaults (DeployConfig field defaults)
#   2. deploy.yaml at the repository root
#   3. .env in the repository root / process environment (BLOGDEPLOY_*)
#   4. Explicit CLI overrides
# -----------------------------------------------------------------------------

import os
from pathlib import Path

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console

from blogdeploy.domain.models import DeployConfig

console = Console()

CONFIG_FILENAME = "deploy.yaml"

# Environment variable -> DeployConfig field
ENV_OVERRIDES = {
    "BLOGDEPLOY_TARGET_BRANCH": "target_branch",
    "BLOGDEPLOY_TARGET_DIR": "target_dir",
    "BLOGDEPLOY_OUTPUT_DIR": "output_dir",
    "BLOGDEPLOY_REMOTE": "remote",
    "BLOGDEPLOY_PRODUCTION": "production",
    "BLOGDEPLOY_VERIFY_URL": "verify_url",
}


class ConfigError(Exception):
    """Raised when deploy.yaml cannot be parsed or fails validation."""

    pass


def _read_yaml(path: Path) -> dict:
    """Load deploy.yaml; a missing or empty file means defaults."""
    if not path.exists():
        console.print(f"[yellow][CONFIG] {path.name} not found, using defaults[/yellow]")
        return {}

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the top level")
    return data


def _env_overrides() -> dict:
    overrides = {}
    for var, field_name in ENV_OVERRIDES.items():
        value = os.getenv(var)
        if value is not None and value != "":
            overrides[field_name] = value
    return overrides


def load_config(
    repo_path: str | Path = ".",
    config_path: str | Path | None = None,
    **overrides,
) -> DeployConfig:
    """
    Load the deploy configuration for a working copy.

    Args:
        repo_path: Root of the source working copy
        config_path: Explicit deploy.yaml location (default: <repo_path>/deploy.yaml)
        **overrides: Field values that win over file and environment
            (None values are ignored)

    Returns:
        Validated DeployConfig with repo_path resolved

    Raises:
        ConfigError: If the file is malformed or any value is invalid
    """
    repo = Path(repo_path).expanduser().resolve()
    load_dotenv(repo / ".env")

    path = Path(config_path).expanduser() if config_path else repo / CONFIG_FILENAME
    data = _read_yaml(path)
    data.update(_env_overrides())
    data.update({k: v for k, v in overrides.items() if v is not None})

    # repo_path in the file is relative to the file itself
    file_repo = data.pop("repo_path", None)
    data["repo_path"] = (path.parent / file_repo).resolve() if file_repo else repo

    try:
        config = DeployConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid deploy configuration:\n{e}") from e

    console.print(
        f"[green][CONFIG] Target: {config.target_branch}:{config.target_dir} "
        f"(preserving {', '.join(config.preserve) or 'nothing'})[/green]"
    )
    return config
