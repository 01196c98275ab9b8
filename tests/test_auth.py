"""Tests for webhook secret-token authentication.

RULES:
- Only POST with the exact SHA-256(token) secret authenticates
- Header lookup is case-insensitive
- Secrets never appear in log output
"""

from __future__ import annotations

import hashlib
import logging

import pytest

from voice_relay.core.auth import authenticate, expected_secret_for, verify_request
from voice_relay.errors import AuthError, RelayError

from fakes import BOT_TOKEN

HEADER = "X-Telegram-Bot-Api-Secret-Token"


class TestExpectedSecret:

    def test_is_sha256_hex_of_token(self):
        assert expected_secret_for(BOT_TOKEN) == hashlib.sha256(BOT_TOKEN.encode()).hexdigest()

    def test_is_stable(self):
        assert expected_secret_for("abc") == expected_secret_for("abc")
        assert expected_secret_for("abc") != expected_secret_for("abd")


class TestAuthenticate:

    def test_post_with_matching_secret(self, secret):
        assert authenticate("POST", {HEADER: secret}, secret) is True

    def test_header_name_is_case_insensitive(self, secret):
        assert authenticate("POST", {HEADER.lower(): secret}, secret) is True
        assert authenticate("post", {HEADER.upper(): secret}, secret) is True

    def test_missing_header_fails(self, secret):
        assert authenticate("POST", {"Content-Type": "application/json"}, secret) is False

    def test_empty_header_fails(self, secret):
        assert authenticate("POST", {HEADER: ""}, secret) is False

    def test_wrong_secret_fails(self, secret):
        assert authenticate("POST", {HEADER: "0" * 64}, secret) is False

    def test_raw_token_is_not_the_secret(self, secret):
        assert authenticate("POST", {HEADER: BOT_TOKEN}, secret) is False

    def test_non_post_methods_fail_even_with_secret(self, secret):
        for method in ("GET", "PUT", "DELETE", "PATCH"):
            assert authenticate(method, {HEADER: secret}, secret) is False

    def test_secret_values_are_not_logged(self, secret, caplog):
        wrong = "f" * 64
        with caplog.at_level(logging.DEBUG, logger="voice_relay.core.auth"):
            authenticate("POST", {HEADER: wrong}, secret)
        assert caplog.records
        assert secret not in caplog.text
        assert wrong not in caplog.text


class TestVerifyRequest:

    def test_accepts_matching_secret(self, secret):
        assert verify_request("POST", {HEADER: secret}, secret) is None

    def test_raises_auth_error(self, secret):
        with pytest.raises(AuthError):
            verify_request("POST", {HEADER: "nope"}, secret)
        with pytest.raises(AuthError):
            verify_request("HEAD", {HEADER: secret}, secret)

    def test_auth_error_is_a_relay_error(self):
        assert issubclass(AuthError, RelayError)
