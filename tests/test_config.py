import logging
from pathlib import Path

from portfolio.shared import load_config

TEST_CONFIG = Path(__file__).parent / "config.toml"


def test_load_from_environment():
    config = load_config()
    assert config.database.path == "sqlite://"
    assert config.portfolio.owner_email == "owner@example.com"


def test_log_level_names_are_converted():
    config = load_config(TEST_CONFIG)
    assert config.logging.level == logging.DEBUG


def test_defaults_fill_optional_settings():
    config = load_config(TEST_CONFIG)
    assert config.auth.jwt_algorithm == "HS256"
    assert config.mail.port == 587
    assert config.network.allow_origins == ["*"]


def test_specific_file_overrides_sections(tmp_path):
    override = tmp_path / "override.toml"
    override.write_text(
        '[portfolio]\ndashboard_url = "https://dash.example.com"\n\n'
        '[logging]\nlevel = "warning"\n'
    )

    config = load_config(TEST_CONFIG, override)

    assert config.portfolio.dashboard_url == "https://dash.example.com"
    assert config.portfolio.owner_email == ""
    assert config.logging.level == logging.WARNING
    assert config.database.path == "sqlite://"
