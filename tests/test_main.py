"""Unit tests for the main entry point.

Tests the main() function including:
- CLI argument parsing
- Log level priority (CLI > env > config)
- Manual job runs and the test email mode
- Daemon mode startup and shutdown
- Exit code handling
"""

import json
from unittest.mock import Mock, patch

import pytest

from devlink.config.environment import EnvironmentConfig
from devlink.config.models import AppConfig
from devlink.jobs import JobRunResult
from devlink.main import build_parser, build_services, load_runtime_config, main
from devlink.notifications import EmailDeliveryError
from devlink.persistence import PersistenceError

from tests.helpers.factories import FIXED_NOW


@pytest.fixture
def cli_env(required_env, monkeypatch, tmp_path):
    """Required variables, an in-memory database, and no stray config.yaml or .env."""
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.chdir(tmp_path)
    with patch("devlink.main.load_dotenv"), patch("devlink.main.configure_logging"):
        yield


def env_with_level(level=None):
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user=None,
        smtp_pass=None,
        from_email="noreply@devlink.example.com",
        app_base_url="https://devlink.example.com",
        log_level=level,
    )


class TestLoadRuntimeConfig:
    """Test suite for load_runtime_config helper."""

    def test_cli_wins(self):
        with patch("devlink.main.load_config", return_value=(AppConfig(), env_with_level("WARNING"))):
            _, env = load_runtime_config(None, "DEBUG")

        assert env.log_level == "DEBUG"

    def test_environment_beats_config(self):
        app_config = AppConfig.model_validate({"logging": {"level": "ERROR"}})

        with patch("devlink.main.load_config", return_value=(app_config, env_with_level("WARNING"))):
            _, env = load_runtime_config(None, None)

        assert env.log_level == "WARNING"

    def test_config_file_level_as_fallback(self):
        app_config = AppConfig.model_validate({"logging": {"level": "ERROR"}})

        with patch("devlink.main.load_config", return_value=(app_config, env_with_level())):
            _, env = load_runtime_config(None, None)

        assert env.log_level == "ERROR"


class TestParser:
    def test_run_job_choices(self):
        args = build_parser().parse_args(["--run-job", "re_engagement"])

        assert args.run_job == "re_engagement"
        assert args.send_test_email is None

    def test_unknown_job_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--run-job", "hourly_digest"])

    def test_modes_are_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--run-job", "weekly_digest", "--send-test-email", "a@b.co"])


class TestBuildServices:
    def test_wires_base_url_and_workers(self):
        app_config = AppConfig.model_validate({"email": {"bulk_max_workers": 3}})
        smtp_client = Mock()

        service, jobs = build_services(app_config, env_with_level(), smtp_client=smtp_client)

        assert service.links.dashboard() == "https://devlink.example.com/dashboard"
        assert service.bulk_max_workers == 3
        assert service.mailer.smtp_client is smtp_client
        assert jobs.notifications is service


class TestMain:
    def test_configuration_error_exits_1(self, cli_env, monkeypatch, capsys):
        monkeypatch.delenv("SMTP_HOST")

        assert main(["--run-job", "weekly_digest"]) == 1
        assert "Configuration Error" in capsys.readouterr().err

    def test_missing_config_file_exits_1(self, cli_env, capsys):
        assert main(["--config", "missing.yaml", "--run-job", "weekly_digest"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_run_job_prints_summary(self, cli_env, capsys):
        exit_code = main(["--run-job", "weekly_digest"])

        assert exit_code == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["success"] is True
        assert summary["job"] == "weekly_digest"
        assert summary["sent"] == 0
        assert summary["total"] == 0

    def test_failed_job_exits_1(self, cli_env, capsys):
        jobs = Mock()
        jobs.run.side_effect = PersistenceError("database is locked")

        with patch("devlink.main.build_services", return_value=(Mock(), jobs)):
            exit_code = main(["--run-job", "collaboration_reminders"])

        assert exit_code == 1
        output = json.loads(capsys.readouterr().out)
        assert output == {
            "success": False,
            "job": "collaboration_reminders",
            "error": "database is locked",
        }

    def test_run_job_summary_with_failures(self, cli_env, capsys):
        result = JobRunResult(job_name="re_engagement", run_started_at=FIXED_NOW, run_finished_at=FIXED_NOW)
        result.sent = result.total = 1
        jobs = Mock()
        jobs.run.return_value = result

        with patch("devlink.main.build_services", return_value=(Mock(), jobs)):
            assert main(["--run-job", "re_engagement"]) == 0

        jobs.run.assert_called_once_with("re_engagement")
        assert json.loads(capsys.readouterr().out)["total"] == 1

    def test_send_test_email(self, cli_env, capsys):
        service = Mock()

        with patch("devlink.main.build_services", return_value=(service, Mock())):
            exit_code = main(["--send-test-email", "ops@example.com"])

        assert exit_code == 0
        service.send_test_email.assert_called_once_with("ops@example.com")
        assert "Test email sent to ops@example.com" in capsys.readouterr().out

    def test_send_test_email_failure(self, cli_env, capsys):
        service = Mock()
        service.send_test_email.side_effect = EmailDeliveryError("connection refused")

        with patch("devlink.main.build_services", return_value=(service, Mock())):
            exit_code = main(["--send-test-email", "ops@example.com"])

        assert exit_code == 1
        assert "connection refused" in capsys.readouterr().err

    def test_daemon_mode_starts_scheduler(self, cli_env):
        def fake_scheduler(scheduled_jobs, jobs_config, shutdown_event):
            scheduler = Mock()
            scheduler.start.side_effect = shutdown_event.set
            return scheduler

        with patch("devlink.main.SchedulerService", side_effect=fake_scheduler) as scheduler_cls, \
                patch("devlink.main.signal.signal") as register_signal:
            exit_code = main([])

        assert exit_code == 0
        assert scheduler_cls.call_count == 1
        assert register_signal.call_count == 2

    def test_database_closed_on_exit(self, cli_env):
        with patch("devlink.main.close_database") as close:
            main(["--run-job", "weekly_digest"])

        close.assert_called_once()
