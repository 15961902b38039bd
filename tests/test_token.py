"""Tests for unsigned token claim decoding."""

import pytest

from core.exceptions import TokenDecodeError
from core.session_state import SessionState, SessionStateManager
from core.token import decode_claims, get_expiry, is_token_expired
from events import EventBus
from storage import InMemoryKeyValueStore
from tests.fakes import FakeClock, FakeLoginApi, make_raw_token, make_token

NOW = 1_800_000_000


class TestDecodeClaims:

    def test_reads_payload_claims(self):
        claims = decode_claims(make_token(NOW + 60, sub="maria"))
        assert claims["sub"] == "maria"
        assert claims["exp"] == NOW + 60

    @pytest.mark.parametrize("token", [
        "",
        "not-a-token",
        "a.b",
        "a.b.c.d",
        "header.%%%.sig",
        "header.bm90IGpzb24.sig",  # "not json"
        "header.WzEsMl0.sig",  # [1,2]
    ])
    def test_rejects_malformed_tokens(self, token):
        with pytest.raises(TokenDecodeError):
            decode_claims(token)


class TestExpiry:

    def test_future_expiry_is_not_expired(self):
        assert not is_token_expired(make_token(NOW + 1), NOW)

    def test_expiry_equal_to_now_is_expired(self):
        assert is_token_expired(make_token(NOW), NOW)

    def test_past_expiry_is_expired(self):
        assert is_token_expired(make_token(NOW - 3600), NOW)

    def test_missing_exp_counts_as_expired(self):
        token = make_token(None)
        with pytest.raises(TokenDecodeError):
            get_expiry(token)
        assert is_token_expired(token, NOW)

    def test_boolean_exp_is_not_a_timestamp(self):
        assert is_token_expired(make_token(True), 0)

    def test_string_exp_is_not_a_timestamp(self):
        assert is_token_expired(make_token(str(NOW + 60)), NOW)

    def test_garbage_counts_as_expired_without_raising(self):
        assert is_token_expired("garbage", NOW)

    def test_float_exp_is_accepted(self):
        assert get_expiry(make_token(NOW + 0.5)) == NOW + 0.5

    @pytest.mark.parametrize("exp", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_exp_counts_as_expired(self, exp):
        token = make_token(exp)
        with pytest.raises(TokenDecodeError):
            get_expiry(token)
        assert is_token_expired(token, NOW)

    def test_oversized_integer_exp_counts_as_expired(self):
        token = make_raw_token('{"exp": 1' + "0" * 400 + "}")
        assert is_token_expired(token, NOW)

    def test_deeply_nested_payload_counts_as_expired(self):
        depth = 200_000
        token = make_raw_token('{"exp": ' + "[" * depth + "]" * depth + "}")
        with pytest.raises(TokenDecodeError):
            decode_claims(token)
        assert is_token_expired(token, NOW)


class TestSessionWithInvalidExpiry:

    def test_nan_exp_is_not_authenticated(self):
        store = InMemoryKeyValueStore({"auth_token": make_token(float("nan")), "username": "admin"})
        manager = SessionStateManager(store=store, login_request=FakeLoginApi("t").login,
                                      clock=FakeClock(NOW), bus=EventBus())
        assert manager.is_authenticated() is False
        assert manager.initialize() is SessionState.UNAUTHENTICATED
