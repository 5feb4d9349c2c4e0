import logging

from support_bridge.logging_config import DailyFileHandler, LocalTimezoneFormatter


def test_rotated_files_are_named_by_day(tmp_path):
    handler = DailyFileHandler(tmp_path / "bridge.log", when="midnight", encoding="utf-8")
    try:
        rotated = handler.rotation_filename(str(tmp_path / "bridge.log.2026-01-31"))
    finally:
        handler.close()

    assert rotated == str(tmp_path / "bridge-2026-01-31.log")


def test_formatter_uses_configured_timezone():
    formatter = LocalTimezoneFormatter("%(asctime)s %(message)s", timezone_name="UTC")
    record = logging.LogRecord("support_bridge", logging.INFO, __file__, 1, "hi", None, None)
    record.created = 0

    assert formatter.formatTime(record) == "1970-01-01T00:00:00.000+00:00"
    assert formatter.formatTime(record, "%Y") == "1970"


def test_unknown_timezone_falls_back_to_local():
    formatter = LocalTimezoneFormatter(timezone_name="Not/AZone")
    record = logging.LogRecord("support_bridge", logging.INFO, __file__, 1, "hi", None, None)

    assert formatter.format(record).endswith("hi")
