"""Unit tests for the command-line interface."""

from __future__ import annotations

import json

import pytest

from watchlist_router.cli import main
from watchlist_router.routing import RuleBuilder


@pytest.fixture
def comedy_rule(services):
    return services.rules.create_rule(
        RuleBuilder.create_rule(
            "Comedy", RuleBuilder.genre("Comedy"), target_type="radarr", target_instance_id=5, order=60
        )
    )


@pytest.fixture
def item_file(tmp_path, movie, movie_context):
    path = tmp_path / "item.json"
    path.write_text(
        json.dumps({"item": movie.model_dump(mode="json"), "context": movie_context.model_dump(mode="json")}),
        encoding="utf-8",
    )
    return path


def test_requires_a_command(services) -> None:
    """Test the CLI exits without a command."""
    with pytest.raises(SystemExit):
        main([], services=services)


def test_rules_list(services, comedy_rule, capsys) -> None:
    """Test listing rules."""
    assert main(["rules", "list"], services=services) == 0

    out = capsys.readouterr().out
    assert comedy_rule.id in out
    assert "radarr:5" in out


def test_rules_fields(services, capsys) -> None:
    """Test listing routable fields."""
    assert main(["rules", "fields"], services=services) == 0

    out = capsys.readouterr().out
    assert "Genre Router (priority 80)" in out
    assert "year:" in out


def test_route(services, comedy_rule, item_file, capsys) -> None:
    """Test routing an item from a JSON file."""
    assert main(["route", str(item_file)], services=services) == 0

    assert "radarr:5" in capsys.readouterr().out


def test_route_and_submit(services, comedy_rule, item_file, execution, capsys) -> None:
    """Test routing and submitting through the gate."""
    assert main(["route", str(item_file), "--submit"], services=services) == 0

    assert "Gate: executed" in capsys.readouterr().out
    assert len(execution.calls) == 1


def test_route_missing_file(services, tmp_path, capsys) -> None:
    """Test routing with a missing input file."""
    assert main(["route", str(tmp_path / "nope.json")], services=services) == 1
    assert "Error:" in capsys.readouterr().err


def test_approve_unknown_request(services, capsys) -> None:
    """Test approving an unknown request from the CLI."""
    assert main(["approvals", "approve", "missing", "--admin-id", "1"], services=services) == 1
    assert "Unknown approval request" in capsys.readouterr().err


def test_approvals_stats(services, capsys) -> None:
    """Test printing approval stats."""
    assert main(["approvals", "stats"], services=services) == 0
    assert "Total: 0" in capsys.readouterr().out


def test_maintenance(services, capsys) -> None:
    """Test running maintenance."""
    assert main(["maintenance"], services=services) == 0

    out = capsys.readouterr().out
    assert "Expired: 0" in out
    assert "Deleted requests: 0" in out
