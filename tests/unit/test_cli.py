"""Tests for the command-line entry point."""

import json
from pathlib import Path
from textwrap import dedent

import pytest

from main import load_profile, main, parse_args
from scheme_finder.core.db import init_db, upsert_scheme
from scheme_finder.core.schemas import Scheme


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    db_path = tmp_path / "schemes.db"
    conn = init_db(db_path)
    upsert_scheme(conn, Scheme(
        id=1,
        slug="punjab-kisan-support",
        name="Punjab Kisan Support",
        level="State",
        state="Punjab",
        category="Agriculture",
        details="Income support for farmer families",
        eligibility="Farmers aged 18 to 60, must be resident of Punjab",
    ))
    conn.close()

    p = tmp_path / "settings.yaml"
    p.write_text(f"database:\n  path: {db_path}\nembedding:\n  enabled: false\n")
    return p


@pytest.fixture()
def profile_path(tmp_path: Path) -> Path:
    p = tmp_path / "profile.yaml"
    p.write_text(dedent("""\
        age: 45
        isFarmer: true
        state: Punjab
    """))
    return p


class TestParseArgs:
    def test_search_with_filters(self) -> None:
        args = parse_args(["search", "farmer subsidy", "--category", "Agriculture", "--limit", "5"])
        assert args.command == "search"
        assert args.text == "farmer subsidy"
        assert args.category == "Agriculture"
        assert args.limit == 5
        assert args.config == "config/settings.yaml"

    def test_check_requires_profile(self) -> None:
        with pytest.raises(SystemExit):
            parse_args(["check", "1"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            parse_args([])


class TestLoadProfile:
    def test_camel_case_yaml(self, profile_path: Path) -> None:
        profile = load_profile(profile_path)
        assert profile.age == 45
        assert profile.is_farmer is True

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Profile file not found"):
            load_profile(tmp_path / "none.yaml")


class TestMain:
    def test_search_prints_results(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["search", "farmer support", "--config", str(config_path)])
        out = capsys.readouterr().out
        assert "Punjab Kisan Support" in out

    def test_search_export_json(
        self, config_path: Path, profile_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        main([
            "search", "farmer", "--config", str(config_path),
            "--profile", str(profile_path), "--export", "json",
        ])
        data = json.loads(capsys.readouterr().out)
        assert data["results"][0]["eligibility"]["status"] == "eligible"

    def test_check(self, config_path: Path, profile_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        main(["check", "1", "--profile", str(profile_path), "--config", str(config_path)])
        out = capsys.readouterr().out
        assert "eligible" in out
        assert "+ Resident of Punjab" in out

    def test_check_unknown_scheme(
        self, config_path: Path, profile_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["check", "99", "--profile", str(profile_path), "--config", str(config_path)])
        assert exc_info.value.code == 1
        assert "Error: Scheme 99 not found" in capsys.readouterr().err

    def test_save_profile_then_recommend(
        self, config_path: Path, profile_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        main(["save-profile", "u1", "--profile", str(profile_path), "--config", str(config_path)])
        main(["recommend", "u1", "--config", str(config_path)])
        out = capsys.readouterr().out
        assert "Profile stored for 'u1'" in out
        assert "Punjab Kisan Support" in out

    def test_recommend_unknown_user_gets_general_results(
        self, config_path: Path, capsys: pytest.CaptureFixture[str],
    ) -> None:
        main(["recommend", "ghost", "--config", str(config_path)])
        assert "no profile stored for 'ghost'" in capsys.readouterr().out

    def test_missing_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit):
            main(["search", "farmer", "--config", str(tmp_path / "nope.yaml")])
        assert "Error loading config" in capsys.readouterr().err
