"""Tests for the two-layer configuration."""

from jobmonitor.config import AppConfig, ImportConfig, NotificationConfig, Settings


def test_yaml_file_from_environment(tmp_path, monkeypatch):
    config_file = tmp_path / "monitor.yml"
    config_file.write_text(
        "import:\n"
        "  interval_minutes: 2\n"
        "  hourly_sweep: false\n"
        "notifications:\n"
        "  failure_watermark: false\n"
    )
    monkeypatch.setenv("CONFIG_FILE", str(config_file))

    config = AppConfig()

    assert config.config_path == config_file
    assert config.importer.interval_minutes == 2
    assert config.importer.hourly_sweep is False
    assert config.importer.grace_period_seconds == 1.0
    assert config.notifications.failure_watermark is False


def test_missing_yaml_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "absent.yml"))

    config = AppConfig()

    assert config.importer.interval_minutes == 5
    assert config.importer.max_page_size == 200
    assert config.notifications.failure_watermark is True


def test_empty_yaml_uses_defaults(tmp_path, monkeypatch):
    config_file = tmp_path / "empty.yml"
    config_file.write_text("")
    monkeypatch.setenv("CONFIG_FILE", str(config_file))

    assert AppConfig().importer.recent_failure_hours == 24


def test_import_config_keys():
    config = ImportConfig({"force_polling": True, "default_page_size": 50})

    assert config.force_polling is True
    assert config.default_page_size == 50


class TestNotificationConfig:
    def test_environment_switch_overrides_yaml(self):
        settings = Settings(notifications_enabled=False)

        assert NotificationConfig({"enabled": True}, settings).enabled is False

    def test_mock_mode_from_either_layer(self):
        assert NotificationConfig({"mock_mode": True}, Settings()).mock_mode is True
        assert NotificationConfig({}, Settings(notification_mock_mode=True)).mock_mode is True

    def test_credentials_come_from_settings(self):
        settings = Settings(
            resend_api_key="re_test",
            notification_webhook_url="https://hooks.example.com/jobs",
        )

        config = NotificationConfig({}, settings)

        assert config.resend_api_key == "re_test"
        assert config.webhook_url == "https://hooks.example.com/jobs"
