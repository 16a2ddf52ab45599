"""Pytest configuration and fixtures."""

import pytest

from lucky_draw.realtime.hub import RealtimeHub
from lucky_draw.schemas.sheets import SheetTable
from lucky_draw.services.draw_machine import DrawStateMachine
from lucky_draw.sheets.cache import RosterCache
from tests.fakes import FakeLoader, FakeWriteBack


@pytest.fixture
def participants():
    return SheetTable(
        columns=["id", "name", "team", "dept"],
        rows=[
            {"id": "1", "name": "Ann", "team": "Red", "dept": "Sales"},
            {"id": "2", "name": "Bo", "team": "Blue", "dept": "Ops"},
            {"id": "3", "name": "Chai", "team": "Red", "dept": "IT"},
        ],
    )


@pytest.fixture
def loader(participants):
    return FakeLoader({
        "participants": participants,
        "prizes": SheetTable(
            columns=["prize_id", "prize_name"],
            rows=[{"prize_id": "P1", "prize_name": "TV"}],
        ),
        "winners": SheetTable(columns=["participant_id"], rows=[]),
    })


@pytest.fixture
def roster(loader):
    return RosterCache(loader, ttl=60)


@pytest.fixture
def write_back():
    return FakeWriteBack()


@pytest.fixture
def machine(roster, write_back):
    return DrawStateMachine(roster, write_back, salt="")


@pytest.fixture
def hub(machine):
    return RealtimeHub(machine, send_timeout=1.0)
