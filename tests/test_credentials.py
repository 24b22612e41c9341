"""Tests for netrc-backed Basic auth resolution."""

from pathlib import Path

import pytest

from snipbin.auth.credentials import authenticate, lookup_host


@pytest.fixture
def netrc_file(tmp_path, monkeypatch) -> Path:
    """netrc with one machine entry, configured as the credentials file."""
    path = tmp_path / "netrc"
    path.write_text(
        "machine paste.example.com login alice password secret\n"
        "machine other.example.com\n  login bob\n  password hunter2\n"
    )
    monkeypatch.setenv("SNIPBIN_NETRC_PATH", str(path))
    return path


def test_lookup_host_found(netrc_file) -> None:
    """Entries are found per machine, also across lines."""
    assert lookup_host("paste.example.com") == ("alice", "secret")
    assert lookup_host("other.example.com", netrc_file) == ("bob", "hunter2")


def test_lookup_host_unknown(netrc_file) -> None:
    """Unknown host has no credentials."""
    assert lookup_host("nowhere.example.com") is None


def test_lookup_host_missing_file(tmp_path) -> None:
    """A missing netrc file means no credentials, not an error."""
    assert lookup_host("paste.example.com", tmp_path / "absent") is None


def test_lookup_host_unparsable_file(tmp_path) -> None:
    """A broken netrc file is treated like a missing one."""
    path = tmp_path / "netrc"
    path.write_text("machine\n")
    assert lookup_host("paste.example.com", path) is None


def test_authenticate(netrc_file) -> None:
    """Only the exact login/password for the host authenticates."""
    assert authenticate("paste.example.com", "alice", "secret") is True
    assert authenticate("paste.example.com", "alice", "wrong") is False
    assert authenticate("paste.example.com", "bob", "hunter2") is False
    assert authenticate("nowhere.example.com", "alice", "secret") is False
