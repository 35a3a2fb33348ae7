import sys
import threading
from pathlib import Path

import pytest

from config.models import DownloaderConfig
from core.entries import CandidateEntry, ContentType
from ytdlp.process import InvokeStatus, run_process
from ytdlp.runner import YtDlpRunner

pytestmark = pytest.mark.skipif(sys.platform.startswith("win"), reason="fake yt-dlp is a POSIX shell script")


def _script(tmp_path: Path, body: str, name: str = "yt-dlp", executable: bool = True) -> Path:
    path = tmp_path / "bin" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(0o755 if executable else 0o644)
    return path


def _runner(tmp_path: Path, exe, **kwargs) -> YtDlpRunner:
    cfg = DownloaderConfig(ytdlp_path=str(exe), **kwargs)
    return YtDlpRunner(cfg, tmp_path / "data", bootstrap=None)


def _entry(tmp_path: Path) -> CandidateEntry:
    folder = tmp_path / "movies" / "Inception (2010)"
    folder.mkdir(parents=True, exist_ok=True)
    return CandidateEntry(
        path=str(folder),
        content_type=ContentType.MOVIE,
        discovered_at="t",
        title="Inception",
        year=2010,
    )


def test_download_one_passes_search_query_and_writes_file(tmp_path: Path) -> None:
    args_file = tmp_path / "args.txt"
    exe = _script(tmp_path, f'printf "%s\\n" "$@" > "{args_file}"\nprintf data > "$2"\n')
    entry = _entry(tmp_path)
    output = str(Path(entry.path) / "trailer.mp4")

    ok = _runner(tmp_path, exe, quality="480p", options={"format": "bestaudio", "exec": "rm -rf /"}).download_one(
        entry, output
    )

    assert ok is True
    assert Path(output).read_text() == "data"
    assert args_file.read_text().splitlines() == [
        "-o",
        output,
        "--merge-output-format",
        "mp4",
        "-f",
        "best[height<=480]",
        "--no-warnings",
        "--no-progress",
        "ytsearch1:Inception 2010 trailer",
        "--format=bestaudio",
    ]


def test_exit_zero_without_output_file_is_failure(tmp_path: Path) -> None:
    exe = _script(tmp_path, "exit 0\n")
    entry = _entry(tmp_path)
    assert _runner(tmp_path, exe).download_one(entry, str(Path(entry.path) / "trailer.mp4")) is False


def test_nonzero_exit_is_failure_and_partials_are_removed(tmp_path: Path) -> None:
    exe = _script(tmp_path, 'printf x > "$2.part"\nprintf x > "$2.ytdl"\necho "ERROR: no video" >&2\nexit 1\n')
    entry = _entry(tmp_path)
    output = Path(entry.path) / "trailer.mp4"

    assert _runner(tmp_path, exe).download_one(entry, str(output)) is False
    assert not (Path(entry.path) / "trailer.mp4.part").exists()
    assert not (Path(entry.path) / "trailer.mp4.ytdl").exists()


def test_download_from_url_rejects_blank_url_without_running(tmp_path: Path) -> None:
    marker = tmp_path / "ran"
    exe = _script(tmp_path, f'touch "{marker}"\n')
    runner = _runner(tmp_path, exe)

    assert runner.download_from_url("   ", str(tmp_path / "trailer.mp4")) is False
    assert runner.download_from_url("", str(tmp_path / "trailer.mp4")) is False
    assert not marker.exists()


def test_download_from_url_uses_literal_url(tmp_path: Path) -> None:
    args_file = tmp_path / "args.txt"
    exe = _script(tmp_path, f'printf "%s\\n" "$@" > "{args_file}"\nprintf data > "$2"\n')
    output = tmp_path / "trailer.mp4"

    assert _runner(tmp_path, exe).download_from_url(" https://youtu.be/abc ", str(output)) is True
    assert "https://youtu.be/abc" in args_file.read_text().splitlines()


def test_verify_downloads_rejects_unplayable_file(tmp_path: Path) -> None:
    exe = _script(tmp_path, 'printf "not an mp4" > "$2"\n')
    output = tmp_path / "trailer.mp4"

    ok = _runner(tmp_path, exe, verify_downloads=True).download_from_url("https://youtu.be/abc", str(output))

    assert ok is False
    assert not output.exists()


def test_check_available_reports_version(tmp_path: Path) -> None:
    exe = _script(tmp_path, 'echo "2025.01.15"\n')
    assert _runner(tmp_path, exe).check_available() == (True, "2025.01.15")


def test_check_available_truncates_long_output(tmp_path: Path) -> None:
    exe = _script(tmp_path, f'echo "{"v" * 120}"\n')
    ok, message = _runner(tmp_path, exe).check_available()
    assert ok is True
    assert len(message) == 80
    assert message.endswith("...")


def test_check_available_explains_missing_python(tmp_path: Path) -> None:
    exe = _script(tmp_path, "echo \"/usr/bin/env: 'python3': No such file or directory\" >&2\nexit 127\n")
    ok, message = _runner(tmp_path, exe).check_available()
    assert ok is False
    assert "python3" in message
    assert "standalone binary" in message


def test_check_available_reports_stderr(tmp_path: Path) -> None:
    exe = _script(tmp_path, 'echo "boom" >&2\nexit 2\n')
    assert _runner(tmp_path, exe).check_available() == (False, "boom")


def test_check_available_file_not_executable(tmp_path: Path) -> None:
    exe = _script(tmp_path, "echo 1\n", executable=False)
    ok, message = _runner(tmp_path, exe).check_available()
    assert ok is False
    assert "could not be run" in message


def test_check_available_missing_absolute_path(tmp_path: Path) -> None:
    ok, message = _runner(tmp_path, tmp_path / "nope" / "yt-dlp").check_available()
    assert ok is False
    assert "file not found" in message


def test_check_available_unknown_bare_name(tmp_path: Path) -> None:
    ok, message = _runner(tmp_path, "definitely-not-a-real-yt-dlp").check_available()
    assert ok is False
    assert message.startswith("Leave ytdlp_path empty")


def test_resolve_executable_fetches_managed_copy_once(tmp_path: Path) -> None:
    calls = []

    def fake_bootstrap(data_dir: Path):
        calls.append(data_dir)
        target = data_dir / "yt-dlp"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text('#!/bin/sh\necho "2025.02.01"\n', encoding="utf-8")
        target.chmod(0o755)
        return target, True

    runner = YtDlpRunner(DownloaderConfig(), tmp_path / "data", bootstrap=fake_bootstrap)

    assert runner.resolve_executable() == str(tmp_path / "data" / "yt-dlp")
    assert runner.check_available() == (True, "2025.02.01")
    assert calls == [tmp_path / "data"]


def test_check_available_when_managed_copy_cannot_be_fetched(tmp_path: Path) -> None:
    runner = YtDlpRunner(DownloaderConfig(), tmp_path / "data", bootstrap=lambda d: (d / "yt-dlp", False))
    ok, message = runner.check_available()
    assert ok is False
    assert "Could not download yt-dlp" in message


def test_failed_fetch_is_not_retried(tmp_path: Path) -> None:
    calls = []

    def offline_bootstrap(data_dir: Path):
        calls.append(data_dir)
        return data_dir / "yt-dlp", False

    runner = YtDlpRunner(DownloaderConfig(), tmp_path / "data", bootstrap=offline_bootstrap)
    entry = _entry(tmp_path)

    assert runner.check_available()[0] is False
    assert runner.download_one(entry, str(Path(entry.path) / "trailer.mp4")) is False
    assert runner.download_from_url("https://example.com/v", str(Path(entry.path) / "trailer.mp4")) is False
    assert runner.check_available()[1].startswith("Could not download yt-dlp")
    assert calls == [tmp_path / "data"]


def test_run_process_statuses(tmp_path: Path) -> None:
    assert run_process([str(tmp_path / "missing")]).status is InvokeStatus.NOT_FOUND
    not_exec = _script(tmp_path, "exit 0\n", name="plain", executable=False)
    assert run_process([str(not_exec)]).status is InvokeStatus.NOT_EXECUTABLE
    failing = _script(tmp_path, "exit 3\n", name="failing")
    result = run_process([str(failing)])
    assert result.status is InvokeStatus.OK
    assert result.returncode == 3
    assert result.succeeded is False


def test_run_process_stops_on_cancel(tmp_path: Path) -> None:
    slow = _script(tmp_path, "exec sleep 30\n", name="slow")
    cancel = threading.Event()
    timer = threading.Timer(0.2, cancel.set)
    timer.start()
    try:
        result = run_process([str(slow)], cancel=cancel, poll_interval=0.05)
    finally:
        timer.cancel()
    assert result.status is InvokeStatus.CANCELLED


def test_download_one_returns_false_when_already_cancelled(tmp_path: Path) -> None:
    marker = tmp_path / "ran"
    exe = _script(tmp_path, f'touch "{marker}"\nprintf data > "$2"\n')
    entry = _entry(tmp_path)
    cancel = threading.Event()
    cancel.set()

    assert _runner(tmp_path, exe).download_one(entry, str(Path(entry.path) / "trailer.mp4"), cancel) is False
    assert not marker.exists()
