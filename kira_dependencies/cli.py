"""
Command-line entry point for kira-dependencies.

The run itself is configured entirely through environment variables (see
:mod:`kira_dependencies.config`); command-line options only shape the
output. One invocation performs one update run and exits.

Exit codes:
    0   the run completed, even if some dependencies failed
    1   configuration error, fetch/parse failure or unexpected error
    2   command-line usage error
    130 interrupted
"""

from __future__ import annotations

import os
import sys
import logging

import click

from kira_dependencies.config import RunConfig, load_config
from kira_dependencies.__version__ import __version__
from kira_dependencies.core.runner import UpdateRunner
from kira_dependencies.exceptions import KiraError
from kira_dependencies.models.outcome import RunSummary
from kira_dependencies.utils.logger import (
    get_logger,
    level_for_verbosity,
    register_secret,
    setup_logging,
)
from kira_dependencies.utils.console import (
    print_error,
    print_info,
    print_success,
    print_summary,
    print_warning,
    reconfigure_console,
)

logger = get_logger("cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-v",
    "--verbose",
    count=True,
    help="Show log messages: -v for progress details, -vv for debugging.",
)
@click.option(
    "--color/--no-color",
    default=True,
    envvar="KIRA_COLOR",
    help="Colorize console output (honours NO_COLOR).",
)
@click.version_option(
    __version__,
    "-V",
    "--version",
    prog_name="kira-dependencies",
    message="%(prog)s %(version)s",
)
def cli(verbose: int, color: bool) -> None:
    """Open GitLab merge requests for outdated dependencies.

    \b
    Configuration comes from the environment, for example:
      DEPENDABOT_PROJECT_PATH=group/app PACKAGE_MANAGER=pip \\
        KIRA_GITLAB_PERSONAL_TOKEN=... kira-dependencies -v
    """
    _apply_color(color)
    _configure_logging(verbose)

    config = load_config()
    for secret in config.secrets():
        register_secret(secret)
    logger.debug("kira-dependencies %s, config: %s", __version__, config.to_log_dict())

    with UpdateRunner(config) as runner:
        summary = runner.run()
        print_summary(runner.summary_rows(summary), title="Dependency updates")

    _report(summary, config)


def _apply_color(color: bool) -> None:
    # Rich and the log formatter both read NO_COLOR
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()


def _configure_logging(verbose: int) -> None:
    level = level_for_verbosity(verbose)
    setup_logging(level=level)
    logger.debug("Log level set to %s", logging.getLevelName(level))


def _report(summary: RunSummary, config: RunConfig) -> None:
    if summary.stopped_early:
        print_info(
            f"Stopped after {summary.merge_request_count} merge request(s) "
            f"(limit {config.max_merge_requests})"
        )
    if summary.dashboard_url:
        print_info(f"Dashboard: {summary.dashboard_url}")
    if summary.failures:
        print_warning(f"{len(summary.failures)} dependencies failed to update")
    print_success("Done")


def main() -> int:
    """Run the CLI and translate the outcome into an exit code."""
    try:
        result = cli(standalone_mode=False)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except KiraError as exc:
        print_error(str(exc))
        logger.debug("Run aborted, details: %s", exc.details, exc_info=True)
        return EXIT_ERROR
    except (KeyboardInterrupt, click.Abort):
        print_warning("Interrupted")
        return EXIT_INTERRUPTED
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception")
        return EXIT_ERROR
    return result if isinstance(result, int) else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
