"""Config loading and profile overlay."""

from predledger.config import get_settings


def test_defaults_when_no_config(tmp_path):
    settings = get_settings(config_dir=tmp_path)
    assert settings.authority == "admin"
    assert settings.db_path == "data/predledger.duckdb"
    assert settings.api_port == 8000
    assert settings.logging_level == "INFO"


def test_profile_overlay_deep_merges(tmp_path):
    (tmp_path / "default.toml").write_text(
        '[ledger]\nauthority = "oracle"\n\n[storage]\ndb_path = "a.duckdb"\n\n[logging]\nlevel = "info"\nformat = "json"\n'
    )
    (tmp_path / "dev.toml").write_text('[logging]\nlevel = "debug"\n')
    settings = get_settings("dev", config_dir=tmp_path)
    assert settings.authority == "oracle"
    assert settings.db_path == "a.duckdb"
    assert settings.logging_level == "DEBUG"
    assert settings.logging_format == "json"
    assert settings.logging_level_num == 10
