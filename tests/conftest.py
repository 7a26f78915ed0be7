"""Pytest configuration and shared fixtures."""

import logging

import logfire
import pytest


logger = logging.getLogger(__name__)


@pytest.fixture(scope="session", autouse=True)
def offline_logfire() -> None:
    """Configure Logfire so spans work without sending anything."""
    logfire.configure(send_to_logfire=False, console=False)
