"""Tests for CLI date filter helpers."""

from datetime import date

import click
import pytest
from click.testing import CliRunner

from profitrack.cli.date_filters import PERIOD_OPTIONS, date_range_options, resolve_cli_date_range
from profitrack.utils.date_parser import get_date_range


def _ctx() -> click.Context:
    return click.Context(click.Command("test"))


def _flags(**set_flags) -> dict[str, bool]:
    """Period flags as click passes them: every flag present, most False."""
    flags = {period.replace("-", "_"): False for period in PERIOD_OPTIONS}
    flags.update(set_flags)
    return flags


def test_rejects_multiple_periods(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date=None,
            end_date=None,
            period_flags=_flags(this_month=True, last_quarter=True),
        )

    assert excinfo.value.exit_code == 1
    assert "Only one period option" in capsys.readouterr().err


def test_rejects_period_with_explicit_dates(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(),
            start_date=None,
            end_date="2024-01-31",
            period_flags=_flags(this_year=True),
        )

    assert excinfo.value.exit_code == 1
    assert "cannot be combined" in capsys.readouterr().err


@pytest.mark.parametrize("period", PERIOD_OPTIONS)
def test_period_flag_resolves_named_range(period):
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date=None,
        end_date=None,
        period_flags=_flags(**{period.replace("-", "_"): True}),
    )

    assert (start, end) == get_date_range(period)


def test_period_flag_wins_over_default_range():
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date=None,
        end_date=None,
        period_flags=_flags(last_year=True),
        default_range=(date(2020, 1, 1), date(2020, 1, 31)),
    )

    assert (start, end) == get_date_range("last-year")


def test_explicit_dates_are_parsed():
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date="2024-01-02",
        end_date="January 5, 2024",
        period_flags=_flags(),
    )

    assert start == date(2024, 1, 2)
    assert end == date(2024, 1, 5)


def test_open_ended_range_keeps_missing_bound():
    start, end = resolve_cli_date_range(
        _ctx(),
        start_date="2024-03-01",
        end_date=None,
        period_flags=_flags(),
        default_range=(date(2020, 1, 1), date(2020, 1, 31)),
    )

    assert start == date(2024, 3, 1)
    assert end is None


def test_default_range_applies_without_filters():
    default_range = (date(2020, 1, 1), date(2020, 1, 31))

    assert (
        resolve_cli_date_range(
            _ctx(), start_date=None, end_date=None, period_flags=_flags(), default_range=default_range
        )
        == default_range
    )
    assert resolve_cli_date_range(_ctx(), start_date=None, end_date=None, period_flags=_flags()) == (
        None,
        None,
    )


def test_invalid_end_date(capsys):
    with pytest.raises(click.exceptions.Exit) as excinfo:
        resolve_cli_date_range(
            _ctx(), start_date=None, end_date="not-a-date", period_flags=_flags()
        )

    assert excinfo.value.exit_code == 1
    assert "Invalid end date" in capsys.readouterr().err


def test_decorator_passes_flags_as_keyword_arguments():
    received = {}

    @click.command()
    @date_range_options
    def command(start_date, end_date, **period_flags):
        received.update(period_flags)
        received["start_date"] = start_date

    result = CliRunner().invoke(command, ["--last-quarter", "--start-date", "2024-01-01"])

    assert result.exit_code == 0
    assert received["last_quarter"] is True
    assert received["this_month"] is False
    assert received["start_date"] == "2024-01-01"
    assert len(received) == len(PERIOD_OPTIONS) + 1
