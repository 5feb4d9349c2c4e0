"""
Shared pytest configuration.

This file ensures the project root is on sys.path so that
`import support_bridge` works consistently in all tests, and provides a
bridge wired to in-memory fakes of Telegram and the visitor channel.
"""

import sys
from pathlib import Path

import pytest


# Ensure project root is importable for test modules.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from support_bridge.bridge import build_bridge  # noqa: E402
from tests.utils import (  # noqa: E402
    GROUP_ID,
    LOGS_THREAD_ID,
    REQUESTS_THREAD_ID,
    FakeWorkspace,
    RecordingHub,
    sequential_ids,
)


@pytest.fixture
def workspace() -> FakeWorkspace:
    return FakeWorkspace()


@pytest.fixture
def hub() -> RecordingHub:
    return RecordingHub()


@pytest.fixture
def bridge(workspace, hub):
    return build_bridge(
        workspace,
        group_id=GROUP_ID,
        requests_thread_id=REQUESTS_THREAD_ID,
        logs_thread_id=LOGS_THREAD_ID,
        hub=hub,
        session_id_factory=sequential_ids(),
    )


@pytest.fixture
def registry(bridge):
    return bridge.registry


@pytest.fixture
def lifecycle(bridge):
    return bridge.lifecycle


@pytest.fixture
def router(bridge):
    return bridge.router
