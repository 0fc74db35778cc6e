# =============================================================================
# BLOGDEPLOY CONFIG TESTS
# =============================================================================
# deploy.yaml + .env + BLOGDEPLOY_* environment loading.
# =============================================================================

import os
from unittest.mock import patch

import pytest

from blogdeploy.core.config import ConfigError, load_config


@pytest.fixture(autouse=True)
def isolated_env():
    """Keep .env loading and BLOGDEPLOY_* variables from leaking between tests."""
    cleaned = {k: v for k, v in os.environ.items() if not k.startswith("BLOGDEPLOY_")}
    with patch.dict(os.environ, cleaned, clear=True):
        yield


class TestDefaults:
    def test_missing_file_means_defaults(self, tmp_path):
        config = load_config(tmp_path)

        assert config.repo_path == tmp_path.resolve()
        assert config.build_command == ["yarn", "build"]
        assert config.target_branch == "deploy"
        assert config.target_dir == "."
        assert config.preserve == ["CNAME", ".nojekyll"]
        assert config.build_environment() == {"BRIDGETOWN_ENV": "production"}

    def test_empty_file_means_defaults(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text("")

        assert load_config(tmp_path).output_dir == "output"


class TestYaml:
    def test_values_loaded(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text(
            "build_command: [bundle, exec, jekyll, build]\n"
            "output_dir: _site\n"
            "target_branch: gh-pages\n"
            "target_dir: site\n"
            "preserve: [CNAME]\n"
            "feed_path: feed.xml\n"
        )

        config = load_config(tmp_path)

        assert config.build_command == ["bundle", "exec", "jekyll", "build"]
        assert config.output_dir == "_site"
        assert config.target_branch == "gh-pages"
        assert config.target_path("CNAME") == "site/CNAME"
        assert config.feed_path == "feed.xml"

    def test_explicit_config_path(self, tmp_path):
        elsewhere = tmp_path / "conf" / "blog.yaml"
        elsewhere.parent.mkdir()
        elsewhere.write_text("target_branch: pages\n")

        config = load_config(tmp_path, elsewhere)

        assert config.target_branch == "pages"
        assert config.repo_path == tmp_path.resolve()

    def test_malformed_yaml(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text("build_command: [yarn, build\n")

        with pytest.raises(ConfigError, match="Failed to read"):
            load_config(tmp_path)

    def test_not_a_mapping(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text("- yarn\n- build\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(tmp_path)

    def test_unknown_key(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text("target_brnach: deploy\n")

        with pytest.raises(ConfigError, match="target_brnach"):
            load_config(tmp_path)

    def test_escaping_target_dir(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text("target_dir: ../elsewhere\n")

        with pytest.raises(ConfigError, match="target_dir"):
            load_config(tmp_path)


class TestOverrides:
    def test_environment_beats_file(self, tmp_path):
        (tmp_path / "deploy.yaml").write_text("target_branch: deploy\n")
        os.environ["BLOGDEPLOY_TARGET_BRANCH"] = "gh-pages"
        os.environ["BLOGDEPLOY_PRODUCTION"] = "false"

        config = load_config(tmp_path)

        assert config.target_branch == "gh-pages"
        assert config.production is False
        assert config.build_environment() == {}

    def test_dotenv_file(self, tmp_path):
        (tmp_path / ".env").write_text("BLOGDEPLOY_VERIFY_URL=https://blog.example.com\n")

        config = load_config(tmp_path)

        assert config.verify_url == "https://blog.example.com"

    def test_keyword_overrides_win(self, tmp_path):
        os.environ["BLOGDEPLOY_REMOTE"] = "upstream"

        config = load_config(tmp_path, remote="backup", push=False, production=None)

        assert config.remote == "backup"
        assert config.push is False
        assert config.production is True
