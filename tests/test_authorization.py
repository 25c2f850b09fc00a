"""
Tests for authorization decisions
"""
import itertools

import pytest

from filegate.models.configuration import FolderEntry, GateConfiguration
from filegate.models.write import Identity
from filegate.services.authorization import AuthorizationDecision, keys_match

KEY = "configured-key"
ADMIN = Identity(user_id="a", is_admin=True)
USER = Identity(user_id="u", is_admin=False)


class _Store:
    """Minimal configuration holder"""

    def __init__(self, configuration):
        self.configuration = configuration

    def get(self):
        return self.configuration


def _decision(global_allow=False, api_key=KEY, legacy=False):
    config = GateConfiguration(api_key=api_key, allow_non_admin=global_allow)
    return AuthorizationDecision(_Store(config), legacy_fallback=legacy)


def _folder(allow):
    return FolderEntry(name="logs", relative_path="logs", allow_non_admin=allow)


COMBINATIONS = list(itertools.product([True, False], repeat=3))


def test_keys_match():
    assert keys_match("abc", "abc")
    assert not keys_match("abc", "abd")
    assert not keys_match(None, "abc")
    assert not keys_match("abc", None)
    assert not keys_match("", "")


def test_admin_always_allowed():
    decision = _decision(api_key=None)
    assert decision.decide(ADMIN, None).allowed
    assert decision.decide(ADMIN, None, _folder(False)).allowed


@pytest.mark.parametrize("key_valid", [True, False])
def test_global_write_requires_valid_key(key_valid):
    decision = _decision(global_allow=True)
    allowed, reason = decision.decide(USER, KEY if key_valid else "wrong")
    assert allowed is key_valid
    if not key_valid:
        assert reason.startswith("Unauthorized")


@pytest.mark.parametrize("key_valid,global_allow,folder_allow", COMBINATIONS)
def test_folder_write_strict(key_valid, global_allow, folder_allow):
    """Without the legacy fallback only a valid key authorizes a non-admin"""
    decision = _decision(global_allow=global_allow)
    allowed, _ = decision.decide(USER, KEY if key_valid else "wrong", _folder(folder_allow))
    assert allowed is key_valid


@pytest.mark.parametrize("key_valid,global_allow,folder_allow", COMBINATIONS)
def test_folder_write_legacy(key_valid, global_allow, folder_allow):
    """Legacy fallback: both flags plus a configured key authorize even a wrong key"""
    decision = _decision(global_allow=global_allow, legacy=True)
    allowed, _ = decision.decide(USER, KEY if key_valid else "wrong", _folder(folder_allow))
    assert allowed is (key_valid or (global_allow and folder_allow))


def test_legacy_fallback_needs_configured_key():
    decision = _decision(global_allow=True, api_key=None, legacy=True)
    assert not decision.decide(USER, "anything", _folder(True)).allowed


def test_legacy_fallback_not_used_for_global_writes():
    decision = _decision(global_allow=True, legacy=True)
    assert not decision.decide(USER, "wrong").allowed


def test_missing_authorization_reason():
    allowed, reason = _decision(api_key=None).decide(None, None)
    assert not allowed
    assert "missing authorization" in reason


def test_anonymous_with_valid_key():
    assert _decision().decide(None, KEY).allowed


def test_key_without_configured_key():
    allowed, reason = _decision(api_key=None).decide(None, "something")
    assert not allowed
    assert "not enabled" in reason
