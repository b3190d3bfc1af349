"""
Pytest configuration and shared fixtures.
"""

import sys
from pathlib import Path

import pytest
from rich.console import Console

# Make the module importable without installing the project
PROJ_ROOT = Path(__file__).resolve().parent.parent
if str(PROJ_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJ_ROOT))

import tempinbox  # noqa: E402

from tests.fakes import FakeSession, mailtm_routes  # noqa: E402


@pytest.fixture(autouse=True)
def config_dir(tmp_path, monkeypatch):
    """Keep config and credentials inside the test's temporary directory."""
    home = tmp_path / "tempinbox"
    monkeypatch.setattr(tempinbox, "CONFIG_DIR", home)
    monkeypatch.setattr(tempinbox, "CONFIG_FILE", home / "config.json")
    monkeypatch.setattr(tempinbox, "ACCOUNT_FILE", home / "account.json")
    return home


@pytest.fixture
def sample_messages():
    """Two listing entries as mail.tm returns them, newest first."""
    return [
        {
            "id": "65a1f0c2e4b0a1b2c3d4e5f6",
            "from": {"address": "noreply@service.example", "name": "Service"},
            "subject": "Verify your address",
            "intro": "Your code is 852 559",
            "createdAt": "2025-03-01T12:30:00+00:00",
            "seen": False,
        },
        {
            "id": "65a1f0c2e4b0a1b2c3d4e5f7",
            "from": {"address": "hello@news.example", "name": "News"},
            "subject": "Welcome",
            "intro": "Thanks for signing up",
            "createdAt": "2025-03-01T12:00:00+00:00",
            "seen": True,
        },
    ]


@pytest.fixture
def fake_session(sample_messages):
    return FakeSession(mailtm_routes(messages=sample_messages))


@pytest.fixture
def client(fake_session):
    return tempinbox.MailTmClient("mail.tm", timeout=5, session=fake_session)


@pytest.fixture
def stored_account():
    """A mailbox already persisted on disk."""
    account = tempinbox.Account(
        address="userabc123@example.com",
        password="passabcdefabcdef",
        token="tok-stored",
    )
    tempinbox.save_account(account)
    return account


@pytest.fixture
def rich_console(monkeypatch):
    """Swap the shared console for a wide, colourless recording one."""
    recording = Console(theme=tempinbox.custom_theme, record=True, width=200, color_system=None)
    monkeypatch.setattr(tempinbox, "console", recording)
    return recording
