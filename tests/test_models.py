"""
Tests for the deploy domain models.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from blogdeploy.domain.models import (
    DeployConfig,
    PublishResult,
    PublishStage,
    WorkingContext,
)


class TestDeployConfig:
    """Tests for DeployConfig validation."""

    def test_defaults(self):
        config = DeployConfig()

        assert config.build_command == ["yarn", "build"]
        assert config.output_dir == "output"
        assert config.commit_message == "Update build"
        assert config.push_retries == 3

    def test_build_environment_production(self):
        config = DeployConfig(build_env={"NODE_ENV": "production"})

        assert config.build_environment() == {
            "NODE_ENV": "production",
            "BRIDGETOWN_ENV": "production",
        }

    def test_build_environment_custom_toggle(self):
        config = DeployConfig(production_env_var="JEKYLL_ENV")

        assert config.build_environment() == {"JEKYLL_ENV": "production"}

    def test_build_environment_off(self):
        assert DeployConfig(production=False).build_environment() == {}

    def test_target_path_root(self):
        assert DeployConfig().target_path("CNAME") == "CNAME"
        assert DeployConfig().target_path() == "."

    def test_target_path_subdir(self):
        assert DeployConfig(target_dir="site/").target_path("CNAME") == "site/CNAME"

    @pytest.mark.parametrize("value", ["/var/www", "../site", "site/../../x"])
    def test_target_dir_must_stay_inside(self, value):
        with pytest.raises(ValidationError):
            DeployConfig(target_dir=value)

    def test_preserve_rejects_escape(self):
        with pytest.raises(ValidationError):
            DeployConfig(preserve=["../CNAME"])

    def test_empty_build_command(self):
        with pytest.raises(ValidationError):
            DeployConfig(build_command=[])

    def test_retries_at_least_one(self):
        with pytest.raises(ValidationError):
            DeployConfig(push_retries=0)

    def test_unknown_field(self):
        with pytest.raises(ValidationError):
            DeployConfig(target="deploy")

    def test_whitespace_stripped(self):
        assert DeployConfig(target_branch="  gh-pages ").target_branch == "gh-pages"


class TestWorkingContext:
    def test_branch_ref(self):
        context = WorkingContext(repo_path=Path("."), branch="main", head="a" * 40)

        assert context.ref == "main"
        assert context.describe() == "main"

    def test_detached_ref(self):
        context = WorkingContext(repo_path=Path("."), head="abcdef1234" + "0" * 30)

        assert context.ref == context.head
        assert context.describe() == "detached HEAD at abcdef12"


class TestPublishStage:
    def test_pipeline_order(self):
        assert [s.value for s in PublishStage] == [
            "idle",
            "building",
            "switching",
            "clearing",
            "copying",
            "recording",
            "restoring",
        ]


class TestPublishResult:
    def test_json_dump(self):
        result = PublishResult(
            run_id="run",
            source=WorkingContext(repo_path=Path("/blog"), branch="main", head="1" * 40),
            target_branch="deploy",
            previous_revision="2" * 40,
            revision="3" * 40,
        )

        data = result.model_dump(mode="json")

        assert data["source"]["repo_path"] == "/blog"
        assert data["context_restored"] is True
        assert data["site_verified"] is None
