"""Tests for attach-interface and attach-mode resolution."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from hpx.deploy.interfaces import resolve_interface, xdp_attach_mode
from hpx.errors import Cancelled, ConfigurationError
from hpx.policy.models import DEFAULT_INTERFACE


@pytest.mark.parametrize(
    "flags, mode",
    [("generic", "xdpgeneric"), ("native", "xdpdrv"), ("Offloaded", "xdpoffload")],
)
def test_attach_modes(flags: str, mode: str):
    assert xdp_attach_mode(flags) == mode


def test_unknown_attach_flags():
    with pytest.raises(ConfigurationError, match="Unknown XDP flags"):
        xdp_attach_mode("turbo")


def test_configured_interface_used_without_request():
    confirm = MagicMock()
    assert resolve_interface("eth1", None, confirm) == "eth1"
    confirm.assert_not_called()


def test_default_interface_fallback():
    assert resolve_interface(None, None, MagicMock()) == DEFAULT_INTERFACE


def test_differing_request_needs_confirmation():
    confirm = MagicMock(return_value=True)
    assert resolve_interface("eth1", "eth2", confirm) == "eth2"
    confirm.assert_called_once()


def test_declined_confirmation_cancels():
    with pytest.raises(Cancelled):
        resolve_interface("eth1", "eth2", MagicMock(return_value=False))


def test_no_confirm_skips_prompt():
    confirm = MagicMock()
    assert resolve_interface("eth1", "eth2", confirm, no_confirm=True) == "eth2"
    confirm.assert_not_called()


def test_matching_request_needs_no_confirmation():
    confirm = MagicMock()
    assert resolve_interface("eth1", "eth1", confirm) == "eth1"
    confirm.assert_not_called()
