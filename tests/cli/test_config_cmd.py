"""Tests for the config show / config profiles commands."""

import pytest

CONFIG_TOML = """\
default_profile = "local"
default_timeout = 60.0

[profiles.local]
host = "localhost"
catalog = "tpch"
schema = "tiny"

[profiles.local.session_properties]
query_max_run_time = "10m"

[profiles.prod]
dsn = "trino://etl@trino.prod:443/hive?http_scheme=https"
password = "secret"
"""


@pytest.fixture
def config_file(temp_dir):
    path = temp_dir / "config.toml"
    path.write_text(CONFIG_TOML)
    return path


@pytest.mark.unit
class TestConfigShow:
    def test_defaults_without_file(self, cli_runner, temp_dir):
        missing = temp_dir / "missing.toml"
        result = cli_runner("--config", str(missing), "config", "show")
        assert result.exit_code == 0, result.output
        assert "host: localhost (default)" in result.stdout
        assert "port: 8080 (default)" in result.stdout
        assert "catalog: not set (default)" in result.stdout
        assert "password: not set" in result.stdout
        assert "Active Profile: none" in result.stdout
        assert f"Config File: {missing}" in result.stdout

    def test_default_profile_sources(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "config", "show")
        assert result.exit_code == 0, result.output
        assert "catalog: tpch (profile: local)" in result.stdout
        assert "schema: tiny (profile: local)" in result.stdout
        assert "timeout: 60.0s (config)" in result.stdout
        assert "Active Profile: local" in result.stdout

    def test_password_is_masked(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "--profile", "prod", "config", "show")
        assert result.exit_code == 0, result.output
        assert "secret" not in result.stdout
        assert "password: *** (profile: prod)" in result.stdout
        assert "http_scheme: https (profile: prod)" in result.stdout

    def test_session_properties(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "config", "show")
        assert "session: query_max_run_time=10m (profile: local)" in result.stdout

        result = cli_runner(
            "--config", str(config_file), "--session", "query_max_run_time=1m", "config", "show"
        )
        assert "session: query_max_run_time=1m (cli: --session)" in result.stdout

    def test_cli_flag_wins(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "--host", "other", "config", "show")
        assert "host: other (cli: --host)" in result.stdout

    def test_env_var(self, cli_runner, config_file, monkeypatch):
        monkeypatch.setenv("TRINO_CATALOG", "memory")
        result = cli_runner("--config", str(config_file), "config", "show")
        assert "catalog: memory (env: TRINO_CATALOG)" in result.stdout

    def test_unknown_profile(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "--profile", "staging", "config", "show")
        assert result.exit_code != 0
        assert "Unknown profile" in str(result.exception)


@pytest.mark.unit
class TestConfigProfiles:
    def test_lists_profiles_and_marks_active(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "config", "profiles")
        assert result.exit_code == 0, result.output
        assert "* local (active)" in result.stdout
        assert "  prod" in result.stdout
        assert "host: trino.prod" in result.stdout
        assert "http_scheme: https" in result.stdout
        assert "schema: tiny" in result.stdout

    def test_profile_flag_changes_active(self, cli_runner, config_file):
        result = cli_runner("--config", str(config_file), "--profile", "prod", "config", "profiles")
        assert "* prod (active)" in result.stdout

    def test_no_profiles(self, cli_runner, temp_dir):
        result = cli_runner("--config", str(temp_dir / "missing.toml"), "config", "profiles")
        assert result.exit_code == 0
        assert "No profiles configured." in result.stdout

    def test_config_without_subcommand_shows_help(self, cli_runner):
        result = cli_runner("config")
        assert result.exit_code == 0
        assert "show" in result.stdout
