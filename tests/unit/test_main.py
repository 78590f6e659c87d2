"""Tests for the calendardigest command line entry."""

import pytest

from calendardigest.__main__ import _create_parser, main

pytestmark = [pytest.mark.unit, pytest.mark.fast]

QUIZ = "SUMMARY:Quiz night\nDTSTART:20251003T190000Z\nDTEND:20251003T210000Z"
FIXED = ["--now", "2025-10-01T00:00:00Z", "--timezone", "UTC"]


def run_cli(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestParser:
    def test_parser_when_options_given_then_parsed(self) -> None:
        args = _create_parser().parse_args(
            ["a.ics", "b.ics", "--window-weeks", "2", "--on-error", "skip", "--width", "72"]
        )

        assert args.files == ["a.ics", "b.ics"]
        assert args.window_weeks == 2
        assert args.on_error == "skip"
        assert args.width == 72
        assert args.debug is False

    def test_parser_when_no_files_then_usage_error(self) -> None:
        assert run_cli([]) == 2

    def test_parser_when_bad_on_error_then_usage_error(self) -> None:
        assert run_cli(["a.ics", "--on-error", "ignore"]) == 2


class TestMain:
    def test_main_when_document_good_then_report_printed(self, write_ics, capsys) -> None:
        path = write_ics("club.ics", QUIZ)

        assert run_cli([str(path), *FIXED]) == 0
        assert capsys.readouterr().out == "3rd Oct (Fri)   19:00 - 21:00, Quiz night.\n"

    def test_main_when_file_missing_and_abort_then_nothing_printed(
        self, write_ics, tmp_path, capsys
    ) -> None:
        good = write_ics("club.ics", QUIZ)

        assert run_cli([str(tmp_path / "missing.ics"), str(good), *FIXED]) == 1
        assert capsys.readouterr().out == ""

    def test_main_when_file_missing_and_skip_then_rest_printed(self, write_ics, tmp_path, capsys) -> None:
        good = write_ics("club.ics", QUIZ)

        status = run_cli([str(tmp_path / "missing.ics"), str(good), *FIXED, "--on-error", "skip"])

        assert status == 1
        assert "Quiz night." in capsys.readouterr().out

    def test_main_when_now_invalid_then_usage_status(self, write_ics) -> None:
        path = write_ics("club.ics", QUIZ)

        assert run_cli([str(path), "--now", "soon", "--timezone", "UTC"]) == 2

    def test_main_when_timezone_unknown_then_error_status(self, write_ics) -> None:
        path = write_ics("club.ics", QUIZ)

        assert run_cli([str(path), "--timezone", "Atlantis/Capital"]) == 1

    def test_main_when_window_weeks_small_then_later_events_dropped(self, write_ics, capsys) -> None:
        later = "SUMMARY:Bonfire\nDTSTART:20251105T190000Z\nDTEND:20251105T220000Z"
        path = write_ics("club.ics", QUIZ, later)

        assert run_cli([str(path), *FIXED, "--window-weeks", "1"]) == 0
        out = capsys.readouterr().out
        assert "Quiz night." in out
        assert "Bonfire" not in out

    def test_main_when_report_timezone_given_then_times_local(self, write_ics, capsys) -> None:
        path = write_ics("club.ics", QUIZ)

        run_cli([str(path), "--now", "2025-10-01T00:00:00Z", "--timezone", "Europe/London"])

        assert "20:00 - 22:00, Quiz night." in capsys.readouterr().out

    def test_main_when_config_file_then_settings_applied(self, write_ics, tmp_path, capsys) -> None:
        later = "SUMMARY:Bonfire\nDTSTART:20251105T190000Z\nDTEND:20251105T220000Z"
        path = write_ics("club.ics", QUIZ, later)
        config = tmp_path / "digest.yaml"
        config.write_text("window_weeks: 1\ntimezone: UTC\n", encoding="utf-8")

        assert run_cli([str(path), "--now", "2025-10-01T00:00:00Z", "--config", str(config)]) == 0
        assert "Bonfire" not in capsys.readouterr().out

    def test_main_when_env_settings_then_applied_and_flags_win(
        self, write_ics, monkeypatch, capsys
    ) -> None:
        path = write_ics("club.ics", QUIZ)
        monkeypatch.setenv("CALENDARDIGEST_TIMEZONE", "Europe/London")
        monkeypatch.setenv("CALENDARDIGEST_TEST_TIME", "2025-10-01T00:00:00Z")

        assert run_cli([str(path)]) == 0
        assert "20:00 - 22:00" in capsys.readouterr().out

        assert run_cli([str(path), "--timezone", "UTC"]) == 0
        assert "19:00 - 21:00" in capsys.readouterr().out

    def test_main_when_nothing_in_window_then_empty_output(self, write_ics, capsys) -> None:
        path = write_ics("club.ics", "SUMMARY:Old\nDTSTART:20240101T100000Z")

        assert run_cli([str(path), *FIXED]) == 0
        assert capsys.readouterr().out == ""
