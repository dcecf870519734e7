"""Test suite for CLI commands and exit codes."""
import io
import json
from argparse import Namespace

import pytest
import yaml

from ksecret.cli import main as cli
from ksecret.cli.validators import validate_secret_name, validate_environment, validate_secret_value
from ksecret.secrets.domains.errors import NamespaceNotFoundError, RemotePermissionError
from ksecret.secrets.domains.models import SecretInfo, SyncOutcome, SyncResult


@pytest.fixture
def configured(temp_home, tmp_path, monkeypatch):
    """Fixture writing a config file and pointing the cache into tmp_path."""
    config_file = tmp_path / "config.yml"
    config_file.write_text(yaml.dump({"gcp_project_id": "test-project"}))
    monkeypatch.setenv("KSECRET_CONFIG_FILE", str(config_file))
    monkeypatch.setenv("KSECRET_CACHE_FILE", str(tmp_path / "cache.json"))
    return config_file


def _run(argv):
    with pytest.raises(SystemExit) as exc_info:
        cli.main(argv)
    return exc_info.value.code


class TestExitCodes:
    """Test suite for main() routing and exit codes."""

    def test_no_command_is_usage_error(self, capsys):
        assert _run([]) == 2

    def test_version(self, capsys):
        cli.main(["version"])
        assert "ksecret 0.1.0" in capsys.readouterr().out

    def test_invalid_secret_name(self, configured, capsys):
        """Test an invalid name exits 2 before any remote call."""
        assert _run(["get", "bad.name", "--env", "dev"]) == 2
        assert "Invalid secret name" in capsys.readouterr().err

    def test_missing_env_flag(self, configured, capsys):
        assert _run(["get", "token"]) == 2

    def test_invalid_output_format(self, configured, capsys):
        assert _run(["list", "--env", "dev", "--output", "yaml"]) == 2

    def test_missing_config(self, temp_home, capsys):
        """Test a missing config exits 1 with init guidance."""
        assert _run(["list", "--env", "dev"]) == 1
        assert "ksecret init --project" in capsys.readouterr().err

    def test_runtime_error_exits_1(self, configured, monkeypatch, capsys):
        """Test a KsecretError is printed and exits 1."""
        def failing(*args, **kwargs):
            raise RemotePermissionError("Permission denied.")

        monkeypatch.setattr("ksecret.secrets.workflows.secret_operations.list_secrets", failing)

        assert _run(["list", "--env", "dev"]) == 1
        assert "Error: Permission denied." in capsys.readouterr().err

    def test_cache_without_subcommand(self, capsys):
        assert _run(["cache"]) == 2

    def test_project_env_override(self, temp_home, monkeypatch, capsys):
        """Test KSECRET_GCP_PROJECT works without a config file."""
        seen = {}

        def fake_list(config, env):
            seen["project"] = config.gcp_project_id
            return []

        monkeypatch.setenv("KSECRET_GCP_PROJECT", "env-project")
        monkeypatch.setattr("ksecret.secrets.workflows.secret_operations.list_secrets", fake_list)

        cli.main(["list", "--env", "dev"])

        assert seen["project"] == "env-project"

    def test_project_flag_beats_env(self, temp_home, monkeypatch, capsys):
        seen = {}

        def fake_list(config, env):
            seen["project"] = config.gcp_project_id
            return []

        monkeypatch.setenv("KSECRET_GCP_PROJECT", "env-project")
        monkeypatch.setattr("ksecret.secrets.workflows.secret_operations.list_secrets", fake_list)

        cli.main(["--project", "flag-project", "list", "--env", "dev"])

        assert seen["project"] == "flag-project"


class TestSyncCommand:
    """Test suite for the sync command output."""

    def test_success_output(self, configured, monkeypatch, capsys):
        def fake_sync(config, environment, namespace=None, context=None, dry_run=False, reporter=None):
            reporter.started(environment, namespace or environment, dry_run)
            reporter.found(1)
            reporter.item_started("db-password")
            reporter.item_finished("db-password", SyncOutcome.APPLIED)
            return SyncResult(environment, namespace or environment, dry_run,
                              [("db-password", SyncOutcome.APPLIED)])

        monkeypatch.setattr("ksecret.secrets.workflows.sync.sync_secrets", fake_sync)

        cli.main(["sync", "dev"])

        out = capsys.readouterr().out
        assert "Syncing secrets for environment 'dev' to namespace 'dev'" in out
        assert "-> db-password... done" in out
        assert "Successfully synced 1 secret(s)" in out

    def test_dry_run_output(self, configured, monkeypatch, capsys):
        captured_args = {}

        def fake_sync(config, environment, namespace=None, context=None, dry_run=False, reporter=None):
            captured_args.update(namespace=namespace, context=context, dry_run=dry_run)
            reporter.started(environment, namespace, dry_run)
            reporter.item_started("a")
            reporter.item_finished("a", SyncOutcome.SKIPPED_DRY_RUN)
            return SyncResult(environment, namespace, dry_run, [("a", SyncOutcome.SKIPPED_DRY_RUN)])

        monkeypatch.setattr("ksecret.secrets.workflows.sync.sync_secrets", fake_sync)

        cli.main(["sync", "dev", "--namespace", "team", "--context", "kind", "--dry-run"])

        out = capsys.readouterr().out
        assert captured_args == {"namespace": "team", "context": "kind", "dry_run": True}
        assert "dry-run mode" in out
        assert "skipped (dry-run)" in out
        assert "1 secret(s) would be synced to namespace 'team'" in out

    def test_nothing_to_sync(self, configured, monkeypatch, capsys):
        def fake_sync(config, environment, namespace=None, context=None, dry_run=False, reporter=None):
            return SyncResult(environment, environment, dry_run)

        monkeypatch.setattr("ksecret.secrets.workflows.sync.sync_secrets", fake_sync)

        cli.main(["sync", "dev"])

        assert "No secrets found for environment 'dev'" in capsys.readouterr().out

    def test_missing_namespace_exits_1(self, configured, monkeypatch, capsys):
        def fake_sync(*args, **kwargs):
            raise NamespaceNotFoundError("dev")

        monkeypatch.setattr("ksecret.secrets.workflows.sync.sync_secrets", fake_sync)

        assert _run(["sync", "dev"]) == 1
        assert "Namespace 'dev' does not exist" in capsys.readouterr().err


class TestPointCommands:
    """Test suite for get/set/list/delete commands."""

    def test_get_text(self, configured, monkeypatch, capsys):
        seen = {}

        def fake_get(config, env, name, use_cache=True):
            seen.update(env=env, name=name, use_cache=use_cache)
            return "hunter2"

        monkeypatch.setattr("ksecret.secrets.workflows.secret_operations.get_secret", fake_get)

        cli.main(["get", "db-password", "--env", "dev", "--no-cache"])

        assert capsys.readouterr().out == "hunter2\n"
        assert seen == {"env": "dev", "name": "db-password", "use_cache": False}

    def test_get_json(self, configured, monkeypatch, capsys):
        monkeypatch.setattr(
            "ksecret.secrets.workflows.secret_operations.get_secret",
            lambda config, env, name, use_cache=True: "hunter2",
        )

        cli.main(["get", "db-password", "--env", "dev", "--output", "json"])

        assert json.loads(capsys.readouterr().out) == {
            "name": "db-password", "environment": "dev", "value": "hunter2"
        }

    def test_set_from_stdin(self, configured, monkeypatch, capsys):
        seen = {}

        def fake_set(config, env, name, value):
            seen.update(env=env, name=name, value=value)

        monkeypatch.setattr("ksecret.secrets.workflows.secret_operations.set_secret", fake_set)
        monkeypatch.setattr("sys.stdin", io.StringIO("from-stdin\n\n"))

        cli.main(["set", "token", "--env", "dev", "--stdin"])

        assert seen == {"env": "dev", "name": "token", "value": "from-stdin"}
        assert "Secret 'token' set for environment 'dev'" in capsys.readouterr().out

    def test_set_prompts(self, configured, monkeypatch, capsys):
        seen = {}
        monkeypatch.setattr(
            "ksecret.secrets.workflows.secret_operations.set_secret",
            lambda config, env, name, value: seen.update(value=value),
        )
        monkeypatch.setattr("getpass.getpass", lambda prompt: "typed")

        cli.main(["set", "token", "--env", "dev"])

        assert seen == {"value": "typed"}

    def test_set_empty_value_is_usage_error(self, configured, capsys):
        assert _run(["set", "token", "--env", "dev", "--value", "   "]) == 2

    def test_list_table(self, configured, monkeypatch, capsys):
        monkeypatch.setattr(
            "ksecret.secrets.workflows.secret_operations.list_secrets",
            lambda config, env: [
                SecretInfo("db-password", "dev", "2024-03-04 05:06:07 UTC"),
                SecretInfo("api", "dev"),
            ],
        )

        cli.main(["list", "--env", "dev"])

        out = capsys.readouterr().out
        assert "db-password" in out
        assert "2024-03-04 05:06:07" in out
        assert "Total: 2 secret(s)" in out

    def test_list_json(self, configured, monkeypatch, capsys):
        monkeypatch.setattr(
            "ksecret.secrets.workflows.secret_operations.list_secrets",
            lambda config, env: [SecretInfo("api", "dev")],
        )

        cli.main(["list", "--env", "dev", "-o", "json"])

        assert json.loads(capsys.readouterr().out) == [
            {"name": "api", "environment": "dev", "created_at": None}
        ]

    def test_delete_aborted(self, configured, monkeypatch, capsys):
        """Test answering anything but 'y' leaves the secret alone."""
        called = []
        monkeypatch.setattr(
            "ksecret.secrets.workflows.secret_operations.delete_secret",
            lambda *args: called.append(args),
        )
        monkeypatch.setattr("builtins.input", lambda prompt: "n")

        cli.main(["delete", "token", "--env", "dev"])

        assert called == []
        assert "Aborted." in capsys.readouterr().out

    def test_delete_forced(self, configured, monkeypatch, capsys):
        called = []
        monkeypatch.setattr(
            "ksecret.secrets.workflows.secret_operations.delete_secret",
            lambda config, env, name: called.append((env, name)),
        )

        cli.main(["delete", "token", "--env", "dev", "--force"])

        assert called == [("dev", "token")]

    def test_cache_clear(self, configured, capsys):
        cli.main(["cache", "clear"])
        assert "Cache cleared (0 entries removed)" in capsys.readouterr().out


class TestStatusCommand:
    """Test suite for the status command."""

    def test_lists_managed(self, monkeypatch, capsys):
        class FakeKube:
            def __init__(self, context):
                self.context = context

            def namespace_exists(self, namespace):
                return True

            def list_managed_secrets(self, namespace):
                return ["a", "b"]

        monkeypatch.setattr("ksecret.secrets.domains.k8s_client.KubeClient", FakeKube)

        cli.cmd_status(Namespace(environment="dev", namespace=None, context=None))

        out = capsys.readouterr().out
        assert "namespace 'dev'" in out
        assert "Total: 2 secret(s)" in out

    def test_missing_namespace(self, monkeypatch):
        class FakeKube:
            def __init__(self, context):
                pass

            def namespace_exists(self, namespace):
                return False

        monkeypatch.setattr("ksecret.secrets.domains.k8s_client.KubeClient", FakeKube)

        with pytest.raises(NamespaceNotFoundError):
            cli.cmd_status(Namespace(environment="dev", namespace="other", context=None))


class TestValidators:
    """Test suite for CLI argument validation."""

    def test_valid_parts_pass(self):
        validate_secret_name("db-password")
        validate_environment("prod_eu")
        validate_secret_value("x")

    @pytest.mark.parametrize("name", ["api.key", "MY SECRET", "test@prod"])
    def test_invalid_name_explains_id_shape(self, name, capsys):
        """Test a rejected name exits 2 and shows how the Secret Manager id is built."""
        with pytest.raises(SystemExit) as exc_info:
            validate_secret_name(name)

        assert exc_info.value.code == 2
        err = capsys.readouterr().err
        assert f"Invalid secret name '{name}'" in err
        assert "{prefix}-{env}-{name}" in err

    def test_empty_name(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            validate_secret_name("")
        assert exc_info.value.code == 2
        assert "Secret name cannot be empty" in capsys.readouterr().err

    @pytest.mark.parametrize("environment", ["", "dev.eu", "prod/1"])
    def test_invalid_environment(self, environment, capsys):
        with pytest.raises(SystemExit) as exc_info:
            validate_environment(environment)
        assert exc_info.value.code == 2
        assert "Invalid environment" in capsys.readouterr().err

    @pytest.mark.parametrize("value", ["", "   \n"])
    def test_blank_value(self, value, capsys):
        with pytest.raises(SystemExit) as exc_info:
            validate_secret_value(value)
        assert exc_info.value.code == 2
        assert "Secret value cannot be empty" in capsys.readouterr().err
