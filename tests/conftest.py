"""Shared pytest fixtures for testcase-sync tests."""

import itertools

import pytest

from testcase_sync.config import Config
from testcase_sync.document import AutomationStatus, Document, Step
from testcase_sync.steps import StepIdMinter

LOGIN_NOTATION = """\
title: Login Test
priority: 1
tags: smoke, auth

action: Open login page
expected: Form is visible

// action: This step is disabled
action: Submit credentials
expected: User redirected to dashboard
"""


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep tests independent of the developer's env vars and config files."""
    for name in (
        "TESTCASE_SYNC_CONFIG",
        "TESTCASE_SYNC_COMMENT_MARKER",
        "TESTCASE_SYNC_PAD_EMPTY_STEPS",
        "TESTCASE_SYNC_PRIORITY_MIN",
        "TESTCASE_SYNC_PRIORITY_MAX",
        "TESTCASE_SYNC_STRATEGY",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def minter():
    """A minter whose clock ticks 1000, 1001, 1002, ..."""
    return StepIdMinter(clock=itertools.count(1000).__next__)


@pytest.fixture
def login_notation():
    return LOGIN_NOTATION


@pytest.fixture
def base_document():
    """A fully populated document used as the common ancestor."""
    return Document(
        title="Login Test",
        description="Checks the login form",
        precondition="User exists",
        tags=["smoke", "auth"],
        priority=2,
        automation_status=AutomationStatus.NOT_AUTOMATED,
        assigned_to="alice@example.com",
        area_path="Web\\Auth",
        steps=[
            Step(
                action="Open login page",
                expected_result="Form is visible",
                stable_id="step_ado_1",
            ),
            Step(
                action="Submit credentials",
                expected_result="Dashboard shown",
                stable_id="step_ado_2",
            ),
        ],
    )


@pytest.fixture
def default_config():
    return Config()
