"""Testes de validação de host e secret token."""

from __future__ import annotations

import pytest

from api.connectors.telegram.security import verify_host, verify_secret_token


class TestVerifySecretToken:
    def test_disabled_when_not_configured(self) -> None:
        assert verify_secret_token(None, "")
        assert verify_secret_token("anything", None)

    def test_matching_secret(self) -> None:
        assert verify_secret_token("s3cret", "s3cret")

    @pytest.mark.parametrize("received", [None, "", "s3cre", "s3cret ", "S3CRET"])
    def test_mismatching_secret(self, received: str | None) -> None:
        assert not verify_secret_token(received, "s3cret")

    def test_non_ascii_secret(self) -> None:
        assert verify_secret_token("ação", "ação")
        assert not verify_secret_token("acao", "ação")


class TestVerifyHost:
    def test_disabled_when_not_configured(self) -> None:
        assert verify_host(None, "")
        assert verify_host("evil.example.com", None)

    @pytest.mark.parametrize(
        "host",
        ["bot.example.com", "BOT.example.com", "bot.example.com:8443", " bot.example.com "],
    )
    def test_matching_host(self, host: str) -> None:
        assert verify_host(host, "bot.example.com")

    @pytest.mark.parametrize(
        "host",
        [None, "", "evil.example.com", "bot.example.com.evil.io", "bot.example.com:abc"],
    )
    def test_mismatching_host(self, host: str | None) -> None:
        assert not verify_host(host, "bot.example.com")
