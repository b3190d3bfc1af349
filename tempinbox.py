#!/usr/bin/env python3
# ─────────────────────────────────────────────────────────────────────────────
# Temp Inbox - A Disposable Email Client for the Terminal
# Copyright © 2024‑2025  zebbern  <https://github.com/zebbern>
# ─────────────────────────────────────────────────────────────────────────────
# Provisions a throw‑away mailbox on mail.tm (or its mirror mail.gw), keeps
# the credentials locally, polls the inbox on a fixed interval and flags
# newly arrived mail. Messages can be read in the terminal or in a browser.
# ─────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import argparse
import html
import json
import logging
import os
import platform
import random
import re
import string
import sys
import tempfile
import threading
import webbrowser
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import pyperclip
import requests
from bs4 import BeautifulSoup
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.theme import Theme

__version__ = "1.0.0"

# Set up rich console with custom theme
custom_theme = Theme({
    "info": "cyan",
    "warning": "yellow",
    "error": "bold red",
    "success": "bold green",
    "email_from": "bold blue",
    "email_subject": "bold yellow",
    "email_date": "magenta",
    "email_body": "white",
    "header": "bold cyan",
    "new": "bold black on green",
})

console = Console(theme=custom_theme)

LOGGER = logging.getLogger("tempinbox")


def setup_logging(verbose: bool = False) -> None:
    """Route log records through rich on the shared console."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
        force=True,
    )
    # urllib3 is chatty at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def clear_screen():
    """Clear the terminal screen based on the operating system."""
    if platform.system() == "Windows":
        os.system("cls")
    else:
        os.system("clear")

##############################################################################
# Configuration and state management
##############################################################################

PROVIDERS: Dict[str, str] = {
    "mail.tm": "https://api.mail.tm",
    # identical API to mail.tm, hosted elsewhere
    "mail.gw": "https://api.mail.gw",
}
DEFAULT_PROVIDER = "mail.tm"

DEFAULT_CONFIG: Dict[str, Any] = {
    "provider": DEFAULT_PROVIDER,
    "poll_interval": 5,
    "display_mode": "rich",
    "timeout": 15,
}

CONFIG_DIR = Path(os.environ.get("TEMPINBOX_HOME") or Path.home() / ".config" / "tempinbox")
CONFIG_FILE = CONFIG_DIR / "config.json"
ACCOUNT_FILE = CONFIG_DIR / "account.json"


def ensure_config_dir() -> None:
    """Ensure the configuration directory exists."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)


def load_config() -> Dict[str, Any]:
    """Load configuration from file, filling missing keys with defaults."""
    config = dict(DEFAULT_CONFIG)
    if not CONFIG_FILE.exists():
        return config

    try:
        with open(CONFIG_FILE, "r") as f:
            stored = json.load(f)
    except (OSError, ValueError) as e:
        LOGGER.warning(f"Failed to load config: {e}. Using defaults.")
        return config

    if isinstance(stored, dict):
        config.update(stored)
    if config.get("provider") not in PROVIDERS:
        config["provider"] = DEFAULT_PROVIDER
    return config


def save_config(config: Dict[str, Any]) -> None:
    """Save configuration to file."""
    ensure_config_dir()
    try:
        with open(CONFIG_FILE, "w") as f:
            json.dump(config, f, indent=2)
    except OSError as e:
        LOGGER.error(f"Failed to save config: {e}")

##############################################################################
# Data model
##############################################################################


@dataclass
class Account:
    """A provisioned mailbox and the credentials needed to reach it."""

    address: str
    password: str
    token: str
    provider: str = DEFAULT_PROVIDER

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> Optional["Account"]:
        """Build an account from a stored blob, or None if it is unusable."""
        if not isinstance(data, dict) or not data.get("address") or not data.get("token"):
            return None
        provider = data.get("provider") or DEFAULT_PROVIDER
        return cls(
            address=str(data["address"]),
            password=str(data.get("password") or ""),
            token=str(data["token"]),
            provider=provider if provider in PROVIDERS else DEFAULT_PROVIDER,
        )


@dataclass
class MessageSummary:
    """One entry of the provider's message listing."""

    id: str
    sender: Optional[str] = None
    subject: Optional[str] = None
    intro: str = ""
    created_at: Optional[str] = None
    seen: bool = False

    @staticmethod
    def _common(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": str(data.get("id", "")),
            "sender": (data.get("from") or {}).get("address"),
            "subject": data.get("subject"),
            "intro": data.get("intro") or "",
            "created_at": data.get("createdAt"),
            "seen": bool(data.get("seen", False)),
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "MessageSummary":
        return cls(**cls._common(data))


@dataclass
class MessageDetail(MessageSummary):
    """A full message as returned by the message-detail endpoint."""

    text: str = ""
    html: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "MessageDetail":
        parts = data.get("html") or []
        if isinstance(parts, str):
            parts = [parts]
        return cls(text=data.get("text") or "", html=list(parts), **cls._common(data))

##############################################################################
# Credential store
##############################################################################


def load_stored_account() -> Optional[Account]:
    """Return the persisted account, or None if there is no usable one."""
    if not ACCOUNT_FILE.exists():
        return None
    try:
        with open(ACCOUNT_FILE, "r") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        LOGGER.warning(f"Ignoring unreadable account file: {e}")
        return None
    return Account.from_dict(data)


def save_account(account: Account) -> None:
    """Persist the account credentials, readable by the owner only."""
    ensure_config_dir()
    fd = os.open(ACCOUNT_FILE, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w") as f:
        json.dump(account.to_dict(), f, indent=2)
    # an older file keeps its mode through O_TRUNC
    os.chmod(ACCOUNT_FILE, 0o600)


def clear_stored_account() -> None:
    try:
        ACCOUNT_FILE.unlink()
    except FileNotFoundError:
        pass

##############################################################################
# Errors
##############################################################################


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class NetworkError(ProviderError):
    """Network-related errors."""
    pass


class APIError(ProviderError):
    """API response errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SessionExpiredError(APIError):
    """The provider rejected the bearer token."""
    pass


class MailboxError(Exception):
    """Base exception for local mailbox misuse."""
    pass


class NoAccountError(MailboxError):
    pass


class StateError(MailboxError):
    pass

##############################################################################
# Utility helpers
##############################################################################


def _rand_string(n: int = 10) -> str:
    """Generate a random alphanumeric string of length n."""
    return "".join(random.choice(string.ascii_lowercase + string.digits) for _ in range(n))


def _format_timestamp(timestamp: Optional[str]) -> str:
    """Format a provider timestamp as local time in a human-readable way."""
    if not timestamp:
        return "unknown time"

    normalized = timestamp[:-1] + "+00:00" if timestamp.endswith("Z") else timestamp
    try:
        dt = datetime.fromisoformat(normalized)
    except ValueError:
        dt = None
        for fmt in ("%Y-%m-%dT%H:%M:%S.%fZ", "%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%d %H:%M:%S"):
            try:
                dt = datetime.strptime(timestamp, fmt)
                break
            except ValueError:
                continue
        if dt is None:
            return timestamp

    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def html_to_text(markup: str) -> str:
    """Flatten an HTML mail part into readable plain text."""
    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    lines = [line.strip() for line in text.splitlines()]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()


def message_body_text(message: MessageDetail) -> str:
    """Best plain-text rendition of a message: text, then HTML, then intro."""
    if message.text.strip():
        return message.text.strip()
    if message.html:
        flattened = html_to_text(message.html[0])
        if flattened:
            return flattened
    return message.intro or "(no content)"


def _collection(data: Any) -> List[Dict[str, Any]]:
    """Members of a collection response, JSON-LD envelope or bare array."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        return data.get("hydra:member", [])
    return []


def make_requests_session() -> requests.Session:
    """Create a requests session with proper headers."""
    session = requests.Session()
    session.headers.update({
        "User-Agent": f"TempInbox/{__version__} (https://github.com/zebbern)",
    })
    return session

##############################################################################
# Provider client – mail.tm compatible REST API
##############################################################################


class MailTmClient:
    """Client for the mail.tm account/token/message endpoints."""

    def __init__(
        self,
        provider: str = DEFAULT_PROVIDER,
        timeout: int = 15,
        session: Optional[requests.Session] = None,
    ):
        if provider not in PROVIDERS:
            raise ValueError(f"Unknown provider: {provider}")
        self.provider = provider
        self.base_url = PROVIDERS[provider]
        self.timeout = timeout
        self.session = session or make_requests_session()

    def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"

        url = f"{self.base_url}{path}"
        LOGGER.debug(f"{method} {url}")
        try:
            res = self.session.request(method, url, headers=headers, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"Network error: {e}") from e

        if not res.ok:
            detail = res.text or res.reason
            error_cls = SessionExpiredError if res.status_code == 401 else APIError
            raise error_cls(f"HTTP {res.status_code}: {detail}", status_code=res.status_code)

        # DELETE answers 204 with no body
        content_type = res.headers.get("content-type", "")
        if "json" not in content_type:
            return None
        try:
            return res.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON from {path}: {e}", status_code=res.status_code) from e

    def get_domains(self) -> List[Dict[str, Any]]:
        return _collection(self._request("GET", "/domains?page=1"))

    def create_account(self) -> Account:
        """Create a random mailbox on the first available domain and log in."""
        domains = self.get_domains()
        if not domains:
            raise APIError("No mail domains available")

        domain = domains[0].get("domain") if isinstance(domains[0], dict) else None
        if not domain:
            raise APIError("Malformed domain list from provider")
        address = f"user{_rand_string(6)}@{domain}"
        password = f"pass{_rand_string(12)}"
        credentials = {"address": address, "password": password}

        self._request("POST", "/accounts", payload=credentials)
        token_res = self._request("POST", "/token", payload=credentials)
        token = token_res.get("token") if isinstance(token_res, dict) else None
        if not token:
            raise APIError("Failed to get auth token after account creation.")

        LOGGER.info(f"Created mailbox {address} on {self.provider}")
        return Account(address=address, password=password, token=token, provider=self.provider)

    def get_me(self, token: str) -> Optional[Dict[str, Any]]:
        return self._request("GET", "/me", token=token)

    def delete_account(self, account: Optional[Account]) -> bool:
        """Delete the remote mailbox. Best effort: failures are only logged."""
        if not account or not account.token:
            return False
        try:
            me = self.get_me(account.token)
            if not me or not me.get("id"):
                return False
            self._request("DELETE", f"/accounts/{me['id']}", token=account.token)
        except ProviderError as e:
            LOGGER.warning(f"Failed to delete remote account, token might be expired: {e}")
            return False
        LOGGER.info(f"Deleted mailbox {account.address}")
        return True

    def list_messages(self, token: str) -> List[MessageSummary]:
        data = self._request("GET", "/messages", token=token)
        return [MessageSummary.from_api(m) for m in _collection(data)]

    def get_message(self, token: str, message_id: str) -> MessageDetail:
        data = self._request("GET", f"/messages/{message_id}", token=token)
        if not data:
            raise APIError(f"Empty response for message {message_id}")
        return MessageDetail.from_api(data)

##############################################################################
# Inbox diffing and polling
##############################################################################


class InboxTracker:
    """Remembers the message ids of the previous poll.

    The first update after a reset only establishes the baseline; later
    updates report the ids that were not part of the previous poll. The
    baseline is replaced on every update, so a message that disappears and
    comes back is reported again.
    """

    def __init__(self):
        self._seen: Optional[Set[str]] = None
        self.changed = False

    @property
    def has_baseline(self) -> bool:
        return self._seen is not None

    @property
    def seen(self) -> Set[str]:
        return set(self._seen or ())

    def reset(self) -> None:
        self._seen = None
        self.changed = False

    def update(self, ids: Iterable[str]) -> Set[str]:
        incoming = set(ids)
        previous, self._seen = self._seen, incoming
        if previous is None:
            self.changed = True
            return set()
        self.changed = incoming != previous
        return incoming - previous


@dataclass
class InboxSnapshot:
    messages: List[MessageSummary]
    new_ids: Set[str] = field(default_factory=set)
    changed: bool = True

    @property
    def has_new(self) -> bool:
        return bool(self.new_ids)


class AutoPoller:
    """A single recurring timer running ``callback`` every ``interval`` seconds."""

    def __init__(self, interval: float, callback: Callable[[], None], join_timeout: float = 1.0):
        self.interval = interval
        self.callback = callback
        self.join_timeout = join_timeout
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        self.stop()
        self._stop_event = threading.Event()
        self._thread = threading.Thread(
            target=self._run, args=(self._stop_event,), name="tempinbox-poller", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        if self._stop_event is None:
            return
        self._stop_event.set()
        thread = self._thread
        self._thread = None
        self._stop_event = None
        # stop() may be called by the callback itself (session expiry)
        if thread is not None and thread is not threading.current_thread():
            thread.join(self.join_timeout)

    def _run(self, stop_event: threading.Event) -> None:
        while not stop_event.wait(self.interval):
            self.callback()

##############################################################################
# Account lifecycle
##############################################################################


class AccountState(Enum):
    IDLE = "idle"
    CREATING = "creating"
    ACTIVE = "active"
    DELETING = "deleting"


class MailboxSession:
    """Drives the idle -> creating -> active -> deleting lifecycle of one mailbox.

    Listeners are plain callables so the terminal layer can render state
    changes, inbox snapshots and polling errors as they happen.
    """

    def __init__(
        self,
        client: MailTmClient,
        poll_interval: float = 5,
        auto_poll: bool = False,
        on_state: Optional[Callable[[AccountState, Optional[Account]], None]] = None,
        on_inbox: Optional[Callable[[InboxSnapshot], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self.client = client
        self.state = AccountState.IDLE
        self.account: Optional[Account] = None
        self.tracker = InboxTracker()
        self.on_state = on_state
        self.on_inbox = on_inbox
        self.on_error = on_error
        self._poller = AutoPoller(poll_interval, self._poll) if auto_poll else None
        self._idle = threading.Event()
        self._idle.set()

    @property
    def is_active(self) -> bool:
        return self.state is AccountState.ACTIVE and self.account is not None

    @property
    def polling(self) -> bool:
        return self._poller is not None and self._poller.running

    def _client_for(self, account: Account) -> MailTmClient:
        if account.provider == self.client.provider:
            return self.client
        return MailTmClient(account.provider, timeout=self.client.timeout, session=self.client.session)

    def _set_state(self, state: AccountState) -> None:
        self.state = state
        LOGGER.debug(f"Mailbox state -> {state.value}")
        if state is AccountState.IDLE:
            self._idle.set()
        else:
            self._idle.clear()
        if self.on_state:
            self.on_state(state, self.account)

    def _activate(self, account: Account) -> None:
        self.account = account
        self.tracker.reset()
        self._set_state(AccountState.ACTIVE)
        if self._poller:
            self._poller.start()

    def _deactivate(self) -> None:
        if self._poller:
            self._poller.stop()
        self.account = None
        self.tracker.reset()
        self._set_state(AccountState.IDLE)

    def _require_account(self) -> Account:
        if self.account is None or self.state is not AccountState.ACTIVE:
            raise NoAccountError("No account. Generate first.")
        return self.account

    def resume(self) -> Optional[Account]:
        """Pick up the stored mailbox, if there is one."""
        account = load_stored_account()
        if account:
            self._activate(account)
        else:
            self._deactivate()
        return account

    def generate(self) -> Account:
        """Replace the current mailbox (if any) with a freshly created one."""
        if self.state in (AccountState.CREATING, AccountState.DELETING):
            raise StateError(f"Cannot create a mailbox while {self.state.value}")

        previous = self.account
        if self._poller:
            self._poller.stop()
        self._set_state(AccountState.CREATING)
        if previous:
            self._client_for(previous).delete_account(previous)

        try:
            account = self.client.create_account()
            save_account(account)
        except Exception:
            # the previous mailbox is gone remotely, so its credential is useless
            clear_stored_account()
            self._deactivate()
            raise

        self._activate(account)
        return account

    def delete(self) -> bool:
        """Tear down the current mailbox remotely and locally."""
        if self.account is None:
            return False
        if self.state is not AccountState.ACTIVE:
            raise StateError(f"Cannot delete a mailbox while {self.state.value}")

        account = self.account
        if self._poller:
            self._poller.stop()
        self._set_state(AccountState.DELETING)
        self._client_for(account).delete_account(account)
        clear_stored_account()
        self._deactivate()
        return True

    def expire(self) -> None:
        """Forget a mailbox whose token the provider no longer accepts."""
        if self.account is not None:
            LOGGER.warning(f"Session expired for {self.account.address}")
        clear_stored_account()
        self._deactivate()

    def refresh(self) -> InboxSnapshot:
        """List the inbox and diff it against the previous poll."""
        account = self._require_account()
        try:
            messages = self._client_for(account).list_messages(account.token)
        except SessionExpiredError as e:
            if self.account is account:
                self.expire()
            raise SessionExpiredError(
                "Session expired. Please generate a new email.", status_code=e.status_code
            ) from e

        if self.account is not account:
            # mailbox replaced while the request was in flight
            return InboxSnapshot(messages, set(), False)

        new_ids = self.tracker.update(m.id for m in messages)
        if new_ids:
            LOGGER.debug(f"{len(new_ids)} new message(s) for {account.address}")
        return InboxSnapshot(messages, new_ids, self.tracker.changed)

    def read(self, message_id: str) -> MessageDetail:
        account = self._require_account()
        try:
            return self._client_for(account).get_message(account.token, message_id)
        except SessionExpiredError as e:
            if self.account is account:
                self.expire()
            raise SessionExpiredError(
                "Session expired. Please generate a new email.", status_code=e.status_code
            ) from e

    def _poll(self) -> None:
        try:
            snapshot = self.refresh()
        except (ProviderError, MailboxError) as e:
            LOGGER.warning(f"Error during polling: {e}")
            if self.on_error:
                self.on_error(e)
            return
        except Exception as e:
            LOGGER.exception(f"Unexpected error during polling: {e}")
            if self.on_error:
                self.on_error(e)
            return
        if self.on_inbox:
            self.on_inbox(snapshot)

    def wait_until_idle(self, tick: float = 0.5) -> None:
        """Block until the mailbox is gone. Short waits keep Ctrl+C responsive."""
        while not self._idle.wait(tick):
            pass

    def close(self) -> None:
        if self._poller:
            self._poller.stop()

##############################################################################
# Rendering
##############################################################################


def print_status(account: Optional[Account], state: AccountState = AccountState.ACTIVE) -> None:
    if account is None or state is AccountState.IDLE:
        console.print("[bold]Status:[/] Idle. Run [bold]tempinbox new[/] to create an address.")
        return
    if state is AccountState.ACTIVE:
        console.print(f"[success]✓[/] Address: [bold]{escape(account.address)}[/] [dim]({account.provider})[/]")
        console.print("[bold]Status:[/] Monitoring inbox... (Password saved locally)")
    else:
        console.print(f"[bold]Status:[/] {state.value}...")


def print_new_tag(count: int) -> None:
    console.print(f"[new] NEW [/] [success]{count} new message(s) arrived[/]")


def _print_inbox_plain(messages: List[MessageSummary], new_ids: Set[str]) -> None:
    print("─" * 60)
    for idx, m in enumerate(messages, 1):
        marker = "NEW" if m.id in new_ids else ("   " if m.seen else " * ")
        print(f"{idx:>3} {marker} {_format_timestamp(m.created_at)}  {m.sender or '(unknown)'}")
        print(f"        {m.subject or '(no subject)'}")
        if m.intro:
            print(f"        {m.intro}")
    print(flush=True)


def _print_inbox_rich(messages: List[MessageSummary], new_ids: Set[str]) -> None:
    table = Table(title="Inbox", title_justify="left", header_style="header", expand=True)
    table.add_column("#", style="cyan bold", no_wrap=True)
    table.add_column("From", style="email_from", overflow="fold")
    table.add_column("Subject", style="email_subject", overflow="fold")
    table.add_column("Preview", style="email_body", overflow="ellipsis")
    table.add_column("Received", style="email_date", no_wrap=True)

    for idx, m in enumerate(messages, 1):
        index = f"{idx}" if m.seen else f"{idx}●"
        subject = escape(m.subject or "(no subject)")
        if m.id in new_ids:
            subject = f"[new] NEW [/] {subject}"
        table.add_row(
            index,
            escape(m.sender or "(unknown)"),
            subject,
            escape(m.intro or ""),
            _format_timestamp(m.created_at),
        )
    console.print(table)


def print_inbox(snapshot: InboxSnapshot, display_mode: str = "rich") -> None:
    """Print the message list with the configured display format."""
    if not snapshot.messages:
        console.print("[info]No messages yet.[/]")
        return
    if display_mode == "rich":
        _print_inbox_rich(snapshot.messages, snapshot.new_ids)
    else:
        _print_inbox_plain(snapshot.messages, snapshot.new_ids)


def _print_email_rich(message: MessageDetail) -> None:
    """Print an email using rich formatting."""
    email_info = [
        f"[bold]From:[/] [email_from]{escape(message.sender or '(unknown)')}[/]",
        f"[bold]Subject:[/] [email_subject]{escape(message.subject or '(no subject)')}[/]",
    ]
    if message.created_at:
        email_info.append(f"[bold]Date:[/] [email_date]{_format_timestamp(message.created_at)}[/]")

    email_header = "\n".join(email_info)

    panel = Panel(
        f"{email_header}\n\n{escape(message_body_text(message))}",
        title=f"Message {escape(message.id)}",
        title_align="left",
        border_style="cyan",
    )
    console.print(panel)


def _print_email_plain(message: MessageDetail) -> None:
    """Print an email in plain text format."""
    print("─" * 60)
    print(f"From:    {message.sender or '(unknown)'}")
    print(f"Subject: {message.subject or '(no subject)'}")
    if message.created_at:
        print(f"Date:    {_format_timestamp(message.created_at)}")
    print()
    print(message_body_text(message))
    print(flush=True)


def print_message(message: MessageDetail, display_mode: str = "rich") -> None:
    """Print a full message with the configured display format."""
    if display_mode == "rich":
        _print_email_rich(message)
    else:
        _print_email_plain(message)


def render_message_page(message: MessageDetail) -> str:
    """Build a standalone HTML page showing the message.

    Sender and subject are escaped; an HTML part is embedded as-is on a
    light background, a plain-text body is escaped inside a <pre> block on
    the dark theme.
    """
    sender = html.escape(message.sender or "(unknown)")
    subject = html.escape(message.subject or "(no subject)")
    if message.html:
        content = message.html[0]
        colors = "background:#fff;color:#000"
    else:
        body = html.escape(message.text or message.intro or "(no content)")
        content = f'<pre style="white-space:pre-wrap">{body}</pre>'
        colors = "background:#030305;color:#e6faff"

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>{subject}</title>
</head>
<body style="{colors};font-family:monospace;padding:24px">
  <div style="max-width: 800px; margin: auto;">
    <h3>From: {sender}</h3>
    <h4>Subject: {subject}</h4>
    <hr style="border-color: #333;">
    <div style="margin-top: 20px; font-size: 1.1rem; line-height: 1.6;">
      {content}
    </div>
  </div>
</body>
</html>
"""


def open_message_in_browser(message: MessageDetail) -> Path:
    """Write the message page to a temporary file and open it in the browser."""
    with tempfile.NamedTemporaryFile(
        "w", prefix="tempinbox-", suffix=".html", delete=False, encoding="utf-8"
    ) as f:
        f.write(render_message_page(message))
        path = Path(f.name)
    webbrowser.open(path.as_uri())
    return path

##############################################################################
# Commands
##############################################################################


def _spinner(text: str) -> Progress:
    progress = Progress(
        SpinnerColumn(),
        TextColumn(f"[bold cyan]{text}"),
        console=console,
        transient=True,
    )
    progress.add_task("work", total=None)
    return progress


def open_session(config: Dict[str, Any], **kwargs: Any) -> MailboxSession:
    client = MailTmClient(config["provider"], timeout=int(config.get("timeout", 15)))
    return MailboxSession(client, poll_interval=float(config["poll_interval"]), **kwargs)


def _active_session(config: Dict[str, Any], **kwargs: Any) -> MailboxSession:
    session = open_session(config, **kwargs)
    if session.resume() is None:
        raise NoAccountError("No account. Generate first.")
    return session


def cmd_new(config: Dict[str, Any], args: argparse.Namespace) -> int:
    session = open_session(config)
    session.resume()
    with _spinner("Requesting new email..."):
        account = session.generate()
    console.print(f"[success]✓[/] Email address ready: [bold]{escape(account.address)}[/]")
    return 0


def cmd_status(config: Dict[str, Any], args: argparse.Namespace) -> int:
    session = open_session(config)
    account = session.resume()
    print_status(account, session.state)
    return 0


def cmd_inbox(config: Dict[str, Any], args: argparse.Namespace) -> int:
    session = _active_session(config)
    with _spinner("Loading messages..."):
        snapshot = session.refresh()
    print_inbox(snapshot, config["display_mode"])
    return 0


def resolve_message_ref(session: MailboxSession, ref: str) -> str:
    """Turn a 1-based inbox position into a message id; ids pass through."""
    if not ref.isdigit():
        return ref
    messages = session.refresh().messages
    position = int(ref)
    if 1 <= position <= len(messages):
        return messages[position - 1].id
    return ref


def cmd_read(config: Dict[str, Any], args: argparse.Namespace) -> int:
    session = _active_session(config)
    with _spinner("Loading message..."):
        message_id = resolve_message_ref(session, args.ref)
        message = session.read(message_id)
    if args.browser:
        path = open_message_in_browser(message)
        console.print(f"[info]Opened message in browser ({path})[/]")
    else:
        print_message(message, config["display_mode"])
    return 0


def cmd_copy(config: Dict[str, Any], args: argparse.Namespace) -> int:
    session = _active_session(config)
    try:
        pyperclip.copy(session.account.address)
    except pyperclip.PyperclipException as e:
        console.print(f"[error]Failed to copy: {e}[/]")
        return 1
    console.print("[success]Copied to clipboard![/]")
    return 0


def cmd_delete(config: Dict[str, Any], args: argparse.Namespace) -> int:
    session = open_session(config)
    account = session.resume()
    if account is None:
        console.print("[warning]No account to delete.[/]")
        return 0

    if not args.yes:
        confirm = console.input(
            "[bold red]Are you sure you want to delete this temp email? This cannot be undone. (y/N): [/]"
        )
        if confirm.strip().lower() != "y":
            console.print("[info]Operation cancelled.[/]")
            return 0

    with _spinner("Deleting..."):
        session.delete()
    console.print(f"[success]Deleted {escape(account.address)}.[/]")
    return 0


def cmd_watch(config: Dict[str, Any], args: argparse.Namespace) -> int:
    display_mode = config["display_mode"]

    def on_inbox(snapshot: InboxSnapshot) -> None:
        if snapshot.has_new:
            print_new_tag(len(snapshot.new_ids))
        if snapshot.changed:
            print_inbox(snapshot, display_mode)

    def on_error(error: Exception) -> None:
        console.print(f"[error]{escape(str(error))}[/]")

    session = open_session(config, auto_poll=True, on_inbox=on_inbox, on_error=on_error)
    try:
        if args.new or session.resume() is None:
            with _spinner("Requesting new email..."):
                session.generate()
        print_status(session.account, session.state)
        console.print(
            f"Polling every [bold]{config['poll_interval']}s[/] for new messages. Press [bold]Ctrl+C[/] to stop.\n"
        )
        print_inbox(session.refresh(), display_mode)
        session.wait_until_idle()
    except KeyboardInterrupt:
        console.print("[info]Stopped listening; goodbye![/]")
        return 0
    finally:
        session.close()

    # only reached when the session expired under the poller
    console.print("[warning]Mailbox is no longer active.[/]")
    return 1


COMMANDS: Dict[str, Callable[[Dict[str, Any], argparse.Namespace], int]] = {
    "new": cmd_new,
    "status": cmd_status,
    "inbox": cmd_inbox,
    "read": cmd_read,
    "copy": cmd_copy,
    "delete": cmd_delete,
    "watch": cmd_watch,
}

##############################################################################
# CLI - argument parsing, interactive menu, dispatcher
##############################################################################

MENU = [
    ("Generate new address", "new"),
    ("Show inbox", "inbox"),
    ("Read a message", "read"),
    ("Copy address to clipboard", "copy"),
    ("Delete address", "delete"),
    ("Watch inbox", "watch"),
]


def print_banner() -> None:
    console.print(Panel.fit(
        f"[header]Temp Inbox[/] v{__version__}\nDisposable mailboxes from your terminal",
        border_style="cyan",
    ))


def interactive_menu(config: Dict[str, Any]) -> int:
    """Drive the commands from a numbered menu until the user quits."""
    print_banner()
    cmd_status(config, argparse.Namespace())

    while True:
        console.print()
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column(style="cyan bold")
        table.add_column()
        for idx, (label, _) in enumerate(MENU, 1):
            table.add_row(f"{idx})", label)
        table.add_row("q)", "Quit")
        console.print(table)

        choice = console.input(f"[bold]Action[/] [1-{len(MENU)}/q]: ").strip().lower()
        if choice in ("q", "quit", ""):
            return 0
        if not (choice.isdigit() and 1 <= int(choice) <= len(MENU)):
            console.print(f"[warning]Invalid selection. Please enter a number between 1 and {len(MENU)}.[/]")
            continue

        command = MENU[int(choice) - 1][1]
        args = argparse.Namespace(yes=False, new=False, browser=False, ref="")
        if command == "read":
            args.ref = console.input("[bold]Message number or id[/]: ").strip()
            if not args.ref:
                continue
            args.browser = console.input("[bold]Open in browser?[/] (y/N): ").strip().lower() == "y"

        try:
            COMMANDS[command](config, args)
        except (ProviderError, MailboxError) as e:
            console.print(f"[error]{escape(str(e))}[/]")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="tempinbox",
        description="Temp Inbox - disposable email addresses from the terminal.",
    )
    parser.add_argument(
        "--provider",
        choices=list(PROVIDERS.keys()),
        help="Provider used for new addresses (saved as default).",
    )
    parser.add_argument(
        "--poll", "-p",
        type=int,
        help="Polling interval in seconds for 'watch' (saved as default).",
    )
    parser.add_argument(
        "--display", "-d",
        choices=["rich", "plain"],
        help="Display mode (saved as default).",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"Temp Inbox v{__version__}",
    )

    sub = parser.add_subparsers(dest="command", metavar="COMMAND")
    sub.add_parser("new", help="Create a new address, deleting the current one.")
    sub.add_parser("status", help="Show the current address.")
    sub.add_parser("inbox", help="List messages once.")
    read = sub.add_parser("read", help="Show a full message.")
    read.add_argument("ref", help="Message number from 'inbox' or message id.")
    read.add_argument("--browser", "-b", action="store_true", help="Open the message in a web browser.")
    sub.add_parser("copy", help="Copy the address to the clipboard.")
    delete = sub.add_parser("delete", help="Delete the address remotely and locally.")
    delete.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation.")
    watch = sub.add_parser("watch", help="Poll the inbox and flag new mail.")
    watch.add_argument("--new", "-n", action="store_true", help="Start with a fresh address.")

    args = parser.parse_args(argv)
    if args.poll is not None and args.poll <= 0:
        parser.error("--poll must be a positive number of seconds")
    return args


def apply_cli_options(config: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    """Merge explicitly given CLI options into the config and save them."""
    updates = {
        "provider": args.provider,
        "poll_interval": args.poll,
        "display_mode": args.display,
    }
    updates = {key: value for key, value in updates.items() if value is not None}
    if updates:
        config.update(updates)
        save_config(config)
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(args.verbose)
    config = apply_cli_options(load_config(), args)

    try:
        if args.command is None:
            clear_screen()
            code = interactive_menu(config)
        else:
            code = COMMANDS[args.command](config, args)
    except NetworkError as e:
        LOGGER.error(f"Network error: {e}")
        console.print("[error]Failed to connect to the service. Please check your internet connection.[/]")
        sys.exit(1)
    except SessionExpiredError as e:
        console.print(f"[error]{escape(str(e))}[/]")
        sys.exit(1)
    except APIError as e:
        LOGGER.error(f"API error: {e}")
        console.print("[error]The service API returned an error. The service might be down or has changed.[/]")
        sys.exit(1)
    except MailboxError as e:
        console.print(f"[error]{escape(str(e))}[/]")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[info]Stopped by user. Goodbye![/]")
        sys.exit(0)
    except Exception as e:
        LOGGER.error(f"Unexpected error: {e}")
        console.print(f"[error]An unexpected error occurred: {escape(str(e))}[/]")
        if os.environ.get("DEBUG"):
            console.print_exception()
        sys.exit(1)
    sys.exit(code)

##############################################################################
# Entry point
##############################################################################

if __name__ == "__main__":
    main()
