"""TOML config loading and profile overlay."""

from bucketball.config import Settings, get_settings, load_config


def test_defaults_without_config():
    s = Settings()
    assert s.db_path == "data/bucketball.duckdb"
    assert s.exposure_cap_ratio == 0.20
    assert s.admin_skim_min == 0.02
    assert s.admin_skim_max == 0.04
    assert s.max_balls_per_bet == 4
    assert s.rng_seed is None
    assert s.sweeper_enabled


def test_profile_overlays_default(tmp_path):
    (tmp_path / "default.toml").write_text(
        '[storage]\ndb_path = "a.duckdb"\n[game]\nmin_total_bet = 10.0\nstale_round_minutes = 30\n'
    )
    (tmp_path / "dev.toml").write_text("[game]\nstale_round_minutes = 5\nrng_seed = 7\n")
    raw = load_config("dev", tmp_path)
    assert raw["storage"]["db_path"] == "a.duckdb"
    assert raw["game"]["min_total_bet"] == 10.0
    s = get_settings("dev", tmp_path)
    assert s.stale_round_minutes == 5
    assert s.rng_seed == 7


def test_missing_profile_file_uses_default(tmp_path):
    (tmp_path / "default.toml").write_text("[api]\nport = 9001\n")
    assert get_settings("nope", tmp_path).api_port == 9001


def test_missing_config_dir_gives_empty(tmp_path):
    assert load_config(None, tmp_path) == {}
