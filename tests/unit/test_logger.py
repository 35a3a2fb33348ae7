import io

from logger import Logger


def test_level_filtering_and_prefixes() -> None:
    stream = io.StringIO()
    log = Logger(level="warning", stream=stream)

    log.debug("hidden")
    log.info("hidden too")
    log.warn("careful")
    log.error("broken")

    assert stream.getvalue().splitlines() == ["WARN: careful", "ERROR: broken"]
    assert log.is_enabled("ERROR") is True
    assert log.is_enabled("INFO") is False


def test_unknown_level_defaults_to_info() -> None:
    stream = io.StringIO()
    log = Logger(level="chatty", stream=stream)
    log.debug("no")
    log.info("yes")
    assert stream.getvalue() == "yes\n"
