import json
import sys
from pathlib import Path

import pytest

import main
from cli import parse_cli


def _write_config(tmp_path: Path, ytdlp: Path | str = "", **overrides) -> Path:
    movies = tmp_path / "movies"
    movies.mkdir(exist_ok=True)
    cfg = {
        "downloader": {"ytdlp_path": str(ytdlp)},
        "trailers": {"delay_seconds": 0, "retry_delay_seconds": 0},
        "host": {"type": "filesystem", "libraries": [{"name": "Movies", "type": "movies", "paths": [str(movies)]}]},
        "paths": {"data_dir": str(tmp_path / "data")},
    }
    cfg.update(overrides)
    path = tmp_path / "config.json"
    path.write_text(json.dumps(cfg), encoding="utf-8")
    return path


def _fake_ytdlp(tmp_path: Path) -> Path:
    path = tmp_path / "bin" / "yt-dlp"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        '#!/bin/sh\nif [ "$1" = "--version" ]; then echo "2025.01.15"; exit 0; fi\nprintf data > "$2"\n',
        encoding="utf-8",
    )
    path.chmod(0o755)
    return path


def test_parse_cli_defaults_to_run(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    options = parse_cli([])
    assert options.command == "run"
    assert options.config_path is None


def test_parse_cli_run_flags() -> None:
    options = parse_cli(["--log-level", "debug", "run", "--max", "3", "--library", "Movies,Kids", "--library", "Anime", "--no-fallback"])
    assert options.log_level == "DEBUG"
    assert options.max_trailers == 3
    assert options.libraries == ["Movies", "Kids", "Anime"]
    assert options.no_fallback is True


def test_parse_cli_rejects_negative_max() -> None:
    with pytest.raises(SystemExit) as exc:
        parse_cli(["run", "--max", "-1"])
    assert exc.value.code == 2


def test_missing_config_is_usage_error(tmp_path: Path) -> None:
    assert main.main(["--config", str(tmp_path / "nope.json"), "stats"]) == 2


def test_invalid_config_is_usage_error(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{broken", encoding="utf-8")
    assert main.main(["--config", str(path), "stats"]) == 2


def test_jellyfin_without_api_key_is_usage_error(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("JELLYFIN_API_KEY", raising=False)
    cfg = _write_config(tmp_path, host={"type": "jellyfin", "url": "http://jf:8096"})
    assert main.main(["--config", str(cfg), "run"]) == 2


def test_stats_json_output(tmp_path: Path, capsys) -> None:
    cfg = _write_config(tmp_path)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "stats.json").write_text(
        json.dumps({"totalDownloaded": 2, "foldersWithTrailer": 5, "runs": []}), encoding="utf-8"
    )

    assert main.main(["--config", str(cfg), "stats", "--json"]) == 0

    stats = json.loads(capsys.readouterr().out)
    assert stats["totalDownloaded"] == 5
    assert stats["foldersWithTrailer"] == 5
    assert stats["lastRunDate"] is None


def test_stats_text_and_reset(tmp_path: Path, capsys) -> None:
    cfg = _write_config(tmp_path)
    (tmp_path / "data").mkdir()
    (tmp_path / "data" / "stats.json").write_text(json.dumps({"totalFailed": 3}), encoding="utf-8")

    assert main.main(["--config", str(cfg), "stats"]) == 0
    assert "Total failed:         3" in capsys.readouterr().out

    assert main.main(["--config", str(cfg), "reset-stats"]) == 0
    saved = json.loads((tmp_path / "data" / "stats.json").read_text(encoding="utf-8"))
    assert saved["totalFailed"] == 0


@pytest.mark.skipif(sys.platform.startswith("win"), reason="fake yt-dlp is a POSIX shell script")
def test_check_command(tmp_path: Path, capsys) -> None:
    cfg = _write_config(tmp_path, _fake_ytdlp(tmp_path))
    assert main.main(["--config", str(cfg), "check"]) == 0
    assert "yt-dlp OK: 2025.01.15" in capsys.readouterr().out


@pytest.mark.skipif(sys.platform.startswith("win"), reason="fake yt-dlp is a POSIX shell script")
def test_check_command_flags_invalid_options(tmp_path: Path, capsys) -> None:
    cfg = _write_config(tmp_path, _fake_ytdlp(tmp_path), YtDlpOptionsJson="{oops")
    assert main.main(["--config", str(cfg), "check"]) == 1
    assert "not a valid JSON object" in capsys.readouterr().out


@pytest.mark.skipif(sys.platform.startswith("win"), reason="fake yt-dlp is a POSIX shell script")
def test_run_command_downloads_missing_trailers(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    cfg = _write_config(tmp_path, _fake_ytdlp(tmp_path))
    movies = tmp_path / "movies"
    (movies / "Heat (1995)").mkdir()
    (movies / "Arrival (2016)").mkdir()
    (movies / "Arrival (2016)" / "trailer.mp4").write_text("existing", encoding="utf-8")

    assert main.main(["--config", str(cfg), "run"]) == 0

    assert (movies / "Heat (1995)" / "trailer.mp4").read_text() == "data"
    assert (movies / "Arrival (2016)" / "trailer.mp4").read_text() == "existing"
    stats = json.loads((tmp_path / "data" / "stats.json").read_text(encoding="utf-8"))
    assert (stats["totalFolders"], stats["foldersWithTrailer"], stats["totalDownloaded"]) == (2, 1, 1)


@pytest.mark.skipif(sys.platform.startswith("win"), reason="fake yt-dlp is a POSIX shell script")
def test_run_command_library_filter_and_failures(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("TMDB_API_KEY", raising=False)
    failing = tmp_path / "bin" / "yt-dlp"
    failing.parent.mkdir(parents=True)
    failing.write_text("#!/bin/sh\nexit 1\n", encoding="utf-8")
    failing.chmod(0o755)
    cfg = _write_config(tmp_path, failing)
    (tmp_path / "movies" / "Heat (1995)").mkdir()

    assert main.main(["--config", str(cfg), "run", "--library", "Other"]) == 0
    assert main.main(["--config", str(cfg), "run", "--library", "movies", "--no-fallback"]) == 1


def test_remove_trailers_command(tmp_path: Path) -> None:
    cfg = _write_config(tmp_path)
    folder = tmp_path / "movies" / "Heat (1995)"
    folder.mkdir()
    (folder / "trailer.mp4").write_text("x", encoding="utf-8")

    assert main.main(["--config", str(cfg), "remove-trailers"]) == 0
    assert not (folder / "trailer.mp4").exists()


def test_fetch_ytdlp_command(tmp_path: Path, monkeypatch) -> None:
    cfg = _write_config(tmp_path)
    seen = []
    monkeypatch.setattr(main, "download_ytdlp", lambda data_dir: (seen.append(data_dir) or (data_dir / "yt-dlp", True)))

    assert main.main(["--config", str(cfg), "fetch-ytdlp"]) == 0
    assert seen == [tmp_path / "data"]
