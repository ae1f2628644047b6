"""
Test Configuration and Fixtures

Shared fixtures for the chatgraph test suite.
"""

import os

import pytest

from tests.support.fake_gateway import FakeGateway

os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("WAHA_URL", "http://waha.test")


def pytest_collection_modifyitems(config, items):
    """
    Auto-assign tier markers so we can run:
    - pytest -m unit
    - pytest -m integration

    Convention:
    - tests/integration/** => integration
    - everything else      => unit
    """
    for item in items:
        path = str(getattr(item, "fspath", ""))
        if item.get_closest_marker("integration") or item.get_closest_marker("unit"):
            continue
        if "/tests/integration/" in path:
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def fast_sleep():
    """Backoff sleep that returns immediately."""
    return no_sleep


@pytest.fixture
def gateway():
    """A small account: two overlapping groups, two direct chats."""
    return FakeGateway(
        self_payload={"id": "100@c.us", "pushName": "Owner"},
        contacts=[
            {"id": {"server": "c.us", "user": "201", "_serialized": "201@c.us"}, "name": "Alice", "number": "201", "isMyContact": True},
            {"id": "202@c.us", "name": "Bob", "number": "202", "isMyContact": True},
            {"id": "203@c.us", "number": "203", "isMyContact": False},
            {"id": "299@c.us", "name": "Dormant", "number": "299", "isMyContact": True},
            {"id": "900@g.us", "name": "Group contact", "isGroup": True},
        ],
        chats=[
            {
                "id": "900@g.us",
                "name": "Family",
                "isGroup": True,
                "groupMetadata": {"participants": [{"id": "100@c.us"}, {"id": "201@c.us"}, {"id": "202@c.us"}]},
            },
            {
                "id": {"_serialized": "901@g.us"},
                "name": "Climbing",
                "isGroup": True,
                "participants": ["201@c.us", "203:7@s.whatsapp.net", "204@c.us"],
            },
            {"id": "201@c.us", "name": "Alice", "isGroup": False},
            {"id": "203@c.us", "isGroup": False},
        ],
        messages={
            "900@g.us": [{"timestamp": 1_700_000_300, "participant": "201@c.us"}],
            "901@g.us": [
                {"timestamp": 1_700_000_200, "participant": "204@c.us", "_data": {"notifyName": "Dana"}},
            ],
            "201@c.us": [{"timestamp": 1_700_000_100 + i, "from": "201@c.us"} for i in range(40)],
            "203@c.us": [
                {"timestamp": 1_699_000_000, "from": "203@c.us", "notifyName": "Carl"},
                {"timestamp": 1_699_000_050, "from": "100@c.us", "fromMe": True, "notifyName": "Owner"},
            ],
        },
    )
