"""Tests for configuration loading, validation and duration parsing."""

import warnings
from pathlib import Path

import pytest

from devlink.config import (
    AppConfig,
    ConfigurationError,
    JobName,
    load_config,
    load_environment_config,
    parse_config_file,
)
from devlink.config.duration import DurationParseError, format_duration, parse_duration
from devlink.config.environment import DEFAULT_DATABASE_URL
from devlink.config.models import JobSchedule
from devlink.config.validators import check_for_warnings

EXAMPLE_CONFIG = Path(__file__).parent.parent / "config.example.yaml"


def write_config(tmp_path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text)
    return path


class TestConfigurationLoading:
    """Test configuration loading from YAML files."""

    def test_example_config_matches_defaults(self, required_env):
        """The shipped example documents exactly the built-in defaults."""
        app_config, _ = load_config(EXAMPLE_CONFIG)

        assert app_config == AppConfig()

    def test_no_file_uses_defaults(self, required_env, tmp_path, monkeypatch):
        """Without --config and without a config.yaml the defaults apply."""
        monkeypatch.chdir(tmp_path)

        app_config, env_config = load_config()

        assert app_config.jobs.weekly_digest.cron == "0 9 * * mon"
        assert app_config.cohorts.re_engagement_batch_size == 100
        assert env_config.smtp_host == "smtp.example.com"

    def test_config_yaml_in_working_directory_is_found(self, required_env, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        write_config(tmp_path, "cohorts:\n  digest_window: 14d\n")

        app_config, _ = load_config()

        assert app_config.cohorts.seconds("digest_window") == 14 * 86400

    def test_explicit_missing_file_is_an_error(self, required_env):
        with pytest.raises(ConfigurationError) as exc_info:
            load_config(Path("does-not-exist.yaml"))

        assert "not found" in str(exc_info.value).lower()

    def test_empty_file_means_defaults(self, tmp_path):
        assert parse_config_file(write_config(tmp_path, "")) == AppConfig()

    def test_partial_job_override(self, tmp_path):
        """Overriding one job leaves the others at their defaults."""
        path = write_config(
            tmp_path,
            "jobs:\n"
            "  testimonial_reminders:\n"
            "    cron: '0 8 * * *'\n"
            "    resend_after: 3d\n",
        )

        config = parse_config_file(path)

        assert config.jobs.testimonial_reminders.cron == "0 8 * * *"
        assert config.jobs.testimonial_reminders.resend_after_seconds == 3 * 86400
        assert config.jobs.weekly_digest.resend_after_seconds is None

    def test_invalid_yaml_syntax(self, tmp_path):
        path = write_config(tmp_path, "jobs:\n  weekly_digest: [unclosed\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert "parse" in str(exc_info.value).lower()

    def test_top_level_must_be_mapping(self, tmp_path):
        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(write_config(tmp_path, "- one\n- two\n"))

        assert "mapping" in str(exc_info.value)


class TestConfigurationValidation:
    """Test schema validation errors."""

    def test_unknown_setting(self, tmp_path):
        path = write_config(tmp_path, "cohorts:\n  digest_windw: 7d\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert "Unknown setting: cohorts -> digest_windw" in exc_info.value.errors

    def test_unknown_job(self, tmp_path):
        path = write_config(tmp_path, "jobs:\n  daily_digest:\n    cron: '0 9 * * *'\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert any("daily_digest" in error for error in exc_info.value.errors)

    def test_job_without_cron(self, tmp_path):
        path = write_config(tmp_path, "jobs:\n  re_engagement:\n    enabled: false\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert "Missing required field: jobs -> re_engagement -> cron" in exc_info.value.errors

    def test_invalid_cron(self, tmp_path):
        path = write_config(tmp_path, "jobs:\n  weekly_digest:\n    cron: 'every monday'\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert "Invalid cron expression" in str(exc_info.value)

    @pytest.mark.parametrize("cron", ["0 9 * * 1", "0 9 * * 1-5", "0 9 * * */2"])
    def test_numeric_day_of_week_rejected(self, tmp_path, cron):
        path = write_config(tmp_path, f"jobs:\n  weekly_digest:\n    cron: '{cron}'\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert "day of week must use names" in str(exc_info.value)

    @pytest.mark.parametrize("cron", ["0 9 * * mon", "0 9 * * mon-fri", "0 9 1 * *"])
    def test_named_day_of_week_accepted(self, cron):
        assert JobSchedule(cron=cron).cron == cron

    def test_invalid_duration(self, tmp_path):
        path = write_config(tmp_path, "cohorts:\n  inactivity_threshold: 30 days\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert "inactivity_threshold" in str(exc_info.value)

    def test_invalid_type(self, tmp_path):
        path = write_config(tmp_path, "cohorts:\n  re_engagement_batch_size: lots\n")

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert any(error.startswith("Invalid type for") for error in exc_info.value.errors)

    def test_out_of_range_batch_size(self, tmp_path):
        path = write_config(tmp_path, "cohorts:\n  re_engagement_batch_size: 0\n")

        with pytest.raises(ConfigurationError):
            parse_config_file(path)

    def test_all_errors_reported_together(self, tmp_path):
        path = write_config(
            tmp_path,
            "cohorts:\n  digest_window: soon\n  unknown: 1\n",
        )

        with pytest.raises(ConfigurationError) as exc_info:
            parse_config_file(path)

        assert len(exc_info.value.errors) == 2


class TestJobsConfig:
    """Test job lookup helpers."""

    def test_all_jobs_enabled_by_default(self):
        assert set(AppConfig().jobs.enabled_jobs()) == set(JobName)

    def test_disabled_job_is_not_listed(self):
        config = AppConfig.model_validate(
            {"jobs": {"re_engagement": {"enabled": False, "cron": "0 14 * * thu"}}}
        )

        enabled = config.jobs.enabled_jobs()

        assert JobName.RE_ENGAGEMENT not in enabled
        assert len(enabled) == 4

    def test_get_accepts_string_names(self):
        assert AppConfig().jobs.get("collaboration_reminders").cron == "0 15 * * *"

    def test_cron_is_stripped(self):
        assert JobSchedule(cron="  0 9 * * mon ").cron == "0 9 * * mon"


class TestConfigWarnings:
    """Test non-fatal configuration warnings."""

    def test_defaults_produce_no_warnings(self):
        assert check_for_warnings({}) == []

    def test_disabled_job_warns(self):
        messages = check_for_warnings(
            {"jobs": {"weekly_digest": {"enabled": False, "cron": "0 9 * * mon"}}}
        )

        assert messages == ["Job 'weekly_digest' is disabled and will not be scheduled"]

    def test_every_minute_without_resend_after_warns(self):
        messages = check_for_warnings({"jobs": {"re_engagement": {"cron": "* * * * *"}}})

        assert len(messages) == 1
        assert "every minute" in messages[0]

    def test_every_minute_with_resend_after_is_fine(self):
        config = {"jobs": {"re_engagement": {"cron": "* * * * *", "resend_after": "30d"}}}

        assert check_for_warnings(config) == []

    def test_cohort_warnings(self):
        messages = check_for_warnings(
            {
                "cohorts": {
                    "re_engagement_batch_size": 5000,
                    "re_engagement_delay_ms": 0,
                    "profile_reminder_window": "2d",
                }
            }
        )

        assert len(messages) == 3

    def test_warnings_are_emitted_on_load(self, tmp_path):
        path = write_config(tmp_path, "cohorts:\n  re_engagement_delay_ms: 0\n")

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            parse_config_file(path)

        assert any("re_engagement_delay_ms" in str(w.message) for w in caught)


class TestDurationParsing:
    """Test duration string parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("30s", 30),
            ("15m", 900),
            ("1h", 3600),
            ("7d", 604800),
            ("2w", 1209600),
            ("1d12h", 129600),
            ("PT15M", 900),
            ("P3D", 259200),
            ("P1DT12H", 129600),
            ("p7d", 604800),
        ],
    )
    def test_valid_durations(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "   ", "7 days", "3x", "P", "PT", "0d", "P0D"])
    def test_invalid_durations(self, value):
        with pytest.raises(DurationParseError):
            parse_duration(value)

    def test_non_string_rejected(self):
        with pytest.raises(DurationParseError):
            parse_duration(7)

    def test_format_duration(self):
        assert format_duration(604800) == "7 days"
        assert format_duration(3600) == "1 hour"
        assert format_duration(5400) == "90 minutes"
        assert format_duration(45) == "45 seconds"


class TestEnvironmentVariables:
    """Test environment variable loading."""

    def test_required_only(self, required_env):
        env = load_environment_config()

        assert env.smtp_port == 587
        assert env.smtp_user is None
        assert env.smtp_sender_name == "DevLink"
        assert env.database_url == DEFAULT_DATABASE_URL
        assert env.app_base_url == "https://devlink.example.com"

    def test_trailing_slash_stripped_from_base_url(self, required_env, monkeypatch):
        monkeypatch.setenv("NEXTAUTH_URL", "https://devlink.example.com/")

        assert load_environment_config().app_base_url == "https://devlink.example.com"

    def test_optional_values(self, required_env, monkeypatch):
        monkeypatch.setenv("SMTP_USER", "mailer")
        monkeypatch.setenv("SMTP_PASS", "secret")
        monkeypatch.setenv("SMTP_SENDER_NAME", "DevLink Team")
        monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        env = load_environment_config()

        assert env.smtp_user == "mailer"
        assert env.smtp_sender_name == "DevLink Team"
        assert env.database_url == "sqlite:///:memory:"
        assert env.log_level == "DEBUG"

    def test_missing_variables_all_reported(self, required_env, monkeypatch):
        monkeypatch.delenv("SMTP_HOST")
        monkeypatch.delenv("NEXTAUTH_URL")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert exc_info.value.errors == [
            "Missing required environment variable: SMTP_HOST",
            "Missing required environment variable: NEXTAUTH_URL",
        ]

    @pytest.mark.parametrize("port", ["smtp", "0", "70000"])
    def test_invalid_smtp_port(self, required_env, monkeypatch, port):
        monkeypatch.setenv("SMTP_PORT", port)

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "Invalid SMTP_PORT" in str(exc_info.value)

    def test_invalid_from_email(self, required_env, monkeypatch):
        monkeypatch.setenv("FROM_EMAIL", "not-an-email")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "Invalid FROM_EMAIL" in str(exc_info.value)

    @pytest.mark.parametrize("url", ["devlink.example.com", "ftp://devlink.example.com"])
    def test_invalid_base_url(self, required_env, monkeypatch, url):
        monkeypatch.setenv("NEXTAUTH_URL", url)

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "Invalid NEXTAUTH_URL" in str(exc_info.value)

    def test_invalid_log_level(self, required_env, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "Invalid LOG_LEVEL" in str(exc_info.value)

    def test_user_without_password(self, required_env, monkeypatch):
        monkeypatch.setenv("SMTP_USER", "mailer")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "SMTP_USER is set but SMTP_PASS is not" in str(exc_info.value)

    def test_password_without_user(self, required_env, monkeypatch):
        monkeypatch.setenv("SMTP_PASS", "secret")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        assert "SMTP_PASS is set but SMTP_USER is not" in str(exc_info.value)

    def test_error_message_lists_suggestions(self, required_env, monkeypatch):
        monkeypatch.delenv("FROM_EMAIL")

        with pytest.raises(ConfigurationError) as exc_info:
            load_environment_config()

        message = str(exc_info.value)
        assert "Validation Errors:" in message
        assert "Suggestions:" in message
