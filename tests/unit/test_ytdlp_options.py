from ytdlp.options import (
    ALLOWED_OPTION_NAMES,
    FLAG_OPTION_NAMES,
    build_download_args,
    build_extra_args,
    format_for_quality,
    search_target,
)


def test_format_for_quality_table() -> None:
    assert format_for_quality("best") == "best"
    assert format_for_quality("1080p") == "best[height<=1080]"
    assert format_for_quality("720P") == "best[height<=720]"
    assert format_for_quality("480p") == "best[height<=480]"
    assert format_for_quality("8k") == "best[height<=720]"
    assert format_for_quality(None) == "best[height<=720]"


def test_exec_style_options_never_reach_the_command_line() -> None:
    args = build_extra_args(
        {
            "exec": "rm -rf /",
            "--exec-before-download": "touch /tmp/x",
            "postprocessor-args": "-y",
            "output": "/etc/passwd",
            "format": "bestaudio",
        }
    )
    assert args == ["--format=bestaudio"]
    assert "rm -rf /" not in args


def test_flag_option_values_cannot_smuggle_extra_arguments() -> None:
    args = build_extra_args(
        {
            "no-playlist": "--exec=rm -rf /",
            "force-ipv4": "--exec",
            "geo-bypass": "true",
            "ignore-errors": True,
        }
    )
    assert args == ["--geo-bypass", "--ignore-errors"]
    assert not any(a.startswith("--exec") for a in args)


def test_value_options_are_single_arguments() -> None:
    args = build_extra_args({"user-agent": "--exec=rm -rf /", "retries": "3"})
    assert args == ["--user-agent=--exec=rm -rf /", "--retries=3"]


def test_value_options_without_a_value_are_skipped() -> None:
    assert build_extra_args({"proxy": True, "retries": False}) == []


def test_option_names_are_case_insensitive_and_dash_tolerant() -> None:
    assert build_extra_args({"--Proxy": "http://p:3128", "RETRIES": "3"}) == [
        "--proxy=http://p:3128",
        "--retries=3",
    ]


def test_boolean_options_become_flags() -> None:
    assert build_extra_args({"no-playlist": True, "force-ipv4": False}) == ["--no-playlist"]


def test_allowlist_excludes_command_execution() -> None:
    for name in ("exec", "exec-before-download", "postprocessor-args", "output", "batch-file", "config-locations"):
        assert name not in ALLOWED_OPTION_NAMES
    assert FLAG_OPTION_NAMES <= ALLOWED_OPTION_NAMES


def test_build_download_args_shape() -> None:
    args = build_download_args(
        search_target("Inception 2010 trailer"),
        "/movies/Inception (2010)/trailer.mp4",
        "1080p",
        {"format": "bestaudio", "exec": "x"},
    )
    assert args == [
        "-o",
        "/movies/Inception (2010)/trailer.mp4",
        "--merge-output-format",
        "mp4",
        "-f",
        "best[height<=1080]",
        "--no-warnings",
        "--no-progress",
        "ytsearch1:Inception 2010 trailer",
        "--format=bestaudio",
    ]
