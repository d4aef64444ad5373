from __future__ import annotations

import io
from typing import Iterator

import pytest
from rich.console import Console

from kira_dependencies.utils import console as console_module
from kira_dependencies.utils.console import (
    KIRA_THEME,
    RESULT_STYLES,
    build_summary_table,
    finish_progress,
    get_console,
    print_error,
    print_info,
    print_success,
    print_summary,
    print_warning,
    reconfigure_console,
    start_progress,
)


@pytest.fixture
def output() -> Iterator[io.StringIO]:
    """Route console output into a buffer."""
    buffer = io.StringIO()
    reconfigure_console()
    console_module._console = Console(
        file=buffer, theme=KIRA_THEME, no_color=True, width=200
    )
    yield buffer
    reconfigure_console()


@pytest.mark.unit
class TestConsoleLifecycle:
    def test_console_is_shared(self) -> None:
        reconfigure_console()
        assert get_console() is get_console()

    def test_reconfigure_drops_console(self) -> None:
        first = get_console()
        reconfigure_console()
        assert get_console() is not first

    def test_no_color_env_is_respected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        reconfigure_console()
        assert get_console().no_color is True
        reconfigure_console()


@pytest.mark.unit
class TestStatusMessages:
    def test_prefixes(self, output: io.StringIO) -> None:
        print_info("Parsing dependencies information")
        print_success("Done")
        print_warning("2 dependencies failed to update")
        print_error("Missing DEPENDABOT_PROJECT_PATH")

        assert output.getvalue().splitlines() == [
            "Parsing dependencies information",
            "[OK] Done",
            "[WARNING] 2 dependencies failed to update",
            "[ERROR] Missing DEPENDABOT_PROJECT_PATH",
        ]

    def test_markup_is_not_interpreted(self, output: io.StringIO) -> None:
        print_info("rich[socks]>=13")
        assert output.getvalue() == "rich[socks]>=13\n"


@pytest.mark.unit
class TestProgressLines:
    def test_suffix_completes_the_line(self, output: io.StringIO) -> None:
        start_progress("  - Updating rich (from 13.0.0)…")
        finish_progress("submitted")

        assert output.getvalue() == "  - Updating rich (from 13.0.0)… submitted\n"

    def test_finish_without_start_prints_nothing(self, output: io.StringIO) -> None:
        finish_progress("failed")
        assert output.getvalue() == ""

    def test_status_message_closes_open_line(self, output: io.StringIO) -> None:
        start_progress("  - Updating rich…")
        print_warning("careful")
        finish_progress("late")

        lines = output.getvalue().splitlines()
        assert lines[0].startswith("  - Updating rich…")
        assert lines[1] == "[WARNING] careful"
        assert len(lines) == 2


@pytest.mark.unit
class TestSummary:
    ROWS = [
        {"Dependency": "rich", "From": "13.0", "To": "13.7", "Result": "created", "Detail": "https://gl/mr/1"},
        {"Dependency": "click", "From": "8.1", "To": "-", "Result": "skipped", "Detail": "up_to_date"},
        {"Dependency": "httpx", "From": "0.25", "To": "-", "Result": "failed", "Detail": "boom"},
    ]

    def test_rows_are_styled_by_result(self) -> None:
        table = build_summary_table(self.ROWS, title="Dependency updates")

        assert [c.header for c in table.columns] == [
            "Dependency", "From", "To", "Result", "Detail",
        ]
        assert table.row_count == 3
        assert [row.style for row in table.rows] == [
            RESULT_STYLES["created"],
            RESULT_STYLES["skipped"],
            RESULT_STYLES["failed"],
        ]

    def test_print_summary_renders_table(self, output: io.StringIO) -> None:
        print_summary(self.ROWS, title="Dependency updates")

        text = output.getvalue()
        assert "Dependency updates" in text
        assert "https://gl/mr/1" in text
        assert "up_to_date" in text

    def test_empty_summary(self, output: io.StringIO) -> None:
        print_summary([])
        assert output.getvalue() == "No dependencies to report\n"
