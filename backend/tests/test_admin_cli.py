"""Tests for the counter administration CLI."""

import asyncio
from pathlib import Path

import pytest
from click.testing import CliRunner
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from sqlmodel import SQLModel

from permit_trust.scripts import admin_cli
from permit_trust.services.sequence import SequenceCounterService

from tests.helpers import sqlite_url

Sessions = async_sessionmaker[AsyncSession]


@pytest.fixture
def cli_sessions(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Sessions:
    # Every command runs its own event loop, so connections must not be pooled across them
    engine = create_async_engine(sqlite_url(tmp_path / "cli.db"), poolclass=NullPool)

    async def create_schema() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)

    asyncio.run(create_schema())
    sessions = async_sessionmaker(engine, expire_on_commit=False)
    monkeypatch.setattr(admin_cli, "async_session_maker", sessions)
    return sessions


def issue(sessions: Sessions, period: int, count: int) -> None:
    async def run() -> None:
        async with sessions() as session:
            service = SequenceCounterService(session)
            for _ in range(count):
                await service.issue_next(period)

    asyncio.run(run())


def last_issued(sessions: Sessions, period: int) -> int:
    async def run() -> int:
        async with sessions() as session:
            return (await SequenceCounterService(session).get_info(period)).last_issued

    return asyncio.run(run())


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def test_list_without_counters(runner: CliRunner, cli_sessions: Sessions) -> None:
    result = runner.invoke(admin_cli.cli, ["counters", "list"])

    assert result.exit_code == 0
    assert "No counters yet." in result.output


def test_list_counters(runner: CliRunner, cli_sessions: Sessions) -> None:
    issue(cli_sessions, 2024, 3)
    issue(cli_sessions, 2025, 1)

    result = runner.invoke(admin_cli.cli, ["counters", "list"])

    assert result.exit_code == 0
    lines = [line for line in result.output.splitlines() if "  last=" in line]
    assert lines[0].startswith("2025  last=1  next=2")
    assert lines[1].startswith("2024  last=3  next=4")


def test_show_counter(runner: CliRunner, cli_sessions: Sessions) -> None:
    issue(cli_sessions, 2024, 2)

    result = runner.invoke(admin_cli.cli, ["counters", "show", "2024"])

    assert result.exit_code == 0
    assert "Exists:        yes" in result.output
    assert "Next number:   2024/0003/SMKT/OPR" in result.output


def test_show_missing_counter(runner: CliRunner, cli_sessions: Sessions) -> None:
    result = runner.invoke(admin_cli.cli, ["counters", "show", "2030"])

    assert result.exit_code == 0
    assert "Exists:        no" in result.output
    assert "Next number:   2030/0001/SMKT/OPR" in result.output


def test_reset_with_yes(runner: CliRunner, cli_sessions: Sessions) -> None:
    issue(cli_sessions, 2024, 5)

    result = runner.invoke(
        admin_cli.cli,
        ["counters", "reset", "2024", "--to", "2", "--actor", "ops@example.com", "--reason", "test data", "--yes"],
    )

    assert result.exit_code == 0, result.output
    assert "Counter 2024 reset from 5 to 2 by ops@example.com." in result.output
    assert last_issued(cli_sessions, 2024) == 2

    async def resets() -> list[tuple[int, int, str, str]]:
        async with cli_sessions() as session:
            rows = await SequenceCounterService(session).list_resets(2024)
            return [(r.previous_value, r.reset_to, r.reset_by, r.reason) for r in rows]

    assert asyncio.run(resets()) == [(5, 2, "ops@example.com", "test data")]


def test_reset_asks_for_confirmation(runner: CliRunner, cli_sessions: Sessions) -> None:
    issue(cli_sessions, 2024, 5)
    args = ["counters", "reset", "2024", "--to", "0", "--actor", "ops", "--reason", "cleanup"]

    declined = runner.invoke(admin_cli.cli, args, input="n\n")
    assert declined.exit_code == 1
    assert last_issued(cli_sessions, 2024) == 5

    confirmed = runner.invoke(admin_cli.cli, args, input="y\n")
    assert confirmed.exit_code == 0
    assert last_issued(cli_sessions, 2024) == 0


def test_reset_requires_reason(runner: CliRunner, cli_sessions: Sessions) -> None:
    result = runner.invoke(
        admin_cli.cli, ["counters", "reset", "2024", "--to", "0", "--actor", "ops", "--reason", "   ", "--yes"]
    )

    assert result.exit_code == 2
    assert "reason" in result.output


def test_reset_rejects_negative_values(runner: CliRunner, cli_sessions: Sessions) -> None:
    result = runner.invoke(
        admin_cli.cli, ["counters", "reset", "2024", "--to", "-1", "--actor", "ops", "--reason", "x", "--yes"]
    )

    assert result.exit_code == 2
