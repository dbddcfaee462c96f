"""Tests for Paraşüt credential loading and OAuth token handling."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from parasut_mcp.auth import EXPIRY_BUFFER, AuthenticationManager, Credentials
from parasut_mcp.errors import AuthError, ConfigError

class StubAsyncClient:
    """Minimal async client surface used by `AuthenticationManager`."""

    def __init__(self, handler: Callable[[dict[str, str]], httpx.Response]) -> None:
        self._handler = handler
        self.calls: list[dict[str, Any]] = []

    async def post(self, url: str, *, data: dict[str, str], timeout: float) -> httpx.Response:
        self.calls.append({"url": url, "data": data, "timeout": timeout})
        await asyncio.sleep(0)
        return self._handler(data)


class Clock:
    def __init__(self) -> None:
        self.now = 1_000.0

    def __call__(self) -> float:
        return self.now


def _token_response(
    access: str, refresh: str = "refresh-1", expires_in: int = 7200
) -> httpx.Response:
    return httpx.Response(
        200,
        json={
            "access_token": access,
            "refresh_token": refresh,
            "expires_in": expires_in,
            "token_type": "bearer",
        },
    )


def _write_secrets(tmp_path: Path, body: str) -> Path:
    secrets = tmp_path / "secrets.yml"
    secrets.write_text(body)
    return secrets


class TestCredentials:
    def test_from_file_normalizes_keys(self, tmp_path: Path) -> None:
        """Given a YAML file with lower-case keys, when `from_file()` loads it,
        then values are mapped onto the credentials model."""
        secrets = _write_secrets(
            tmp_path,
            "parasut_company_id: 42\n"
            "parasut_client_id: cid\n"
            "parasut_client_secret: csecret\n"
            "parasut_username: me@example.com\n"
            "parasut_password: pw\n"
            "parasut_timeout: 12.5\n",
        )

        credentials = Credentials.from_file(secrets)

        assert credentials.company_id == 42
        assert credentials.has_oauth
        assert credentials.timeout == 12.5
        assert credentials.base_url == "https://api.parasut.com/v4"

    def test_env_path_overrides_argument(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        secrets = _write_secrets(
            tmp_path, "PARASUT_COMPANY_ID: 7\nPARASUT_ACCESS_TOKEN: static-token\n"
        )
        monkeypatch.setenv("PARASUT_CONFIG_PATH", str(secrets))

        credentials = Credentials.from_file(tmp_path / "does-not-exist.yml")

        assert credentials.company_id == 7
        assert credentials.access_token == "static-token"
        assert not credentials.has_oauth

    def test_missing_file_is_config_error(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Secrets file not found"):
            Credentials.from_file(tmp_path / "missing.yml")

    def test_incomplete_oauth_set_is_config_error(self, tmp_path: Path) -> None:
        secrets = _write_secrets(tmp_path, "PARASUT_COMPANY_ID: 7\nPARASUT_CLIENT_ID: cid\n")

        with pytest.raises(ConfigError, match="PARASUT_CLIENT_SECRET"):
            Credentials.from_file(secrets)

    def test_non_positive_company_id_is_config_error(self) -> None:
        with pytest.raises(ConfigError):
            Credentials.from_env({"PARASUT_COMPANY_ID": "-1", "PARASUT_ACCESS_TOKEN": "t"})

    def test_from_env_ignores_unrelated_variables(self) -> None:
        credentials = Credentials.from_env(
            {
                "PARASUT_COMPANY_ID": "9",
                "PARASUT_ACCESS_TOKEN": "tok",
                "PARASUT_BASE_URL": "https://sandbox.parasut.test/v4",
                "HOME": "/root",
            }
        )

        assert credentials.company_id == 9
        assert credentials.base_url == "https://sandbox.parasut.test/v4"


class TestAuthenticationManager:
    def test_password_grant_then_cache(self, credentials: Credentials) -> None:
        """Given no cached token, when `ensure_token()` runs twice, then the
        password grant is requested once and the token is reused."""

        async def scenario() -> None:
            client = StubAsyncClient(lambda data: _token_response("access-1"))
            manager = AuthenticationManager(client, credentials)  # type: ignore[arg-type]

            assert await manager.ensure_token() == "access-1"
            assert await manager.ensure_token() == "access-1"

            assert len(client.calls) == 1
            call = client.calls[0]
            assert call["url"] == credentials.token_url
            assert call["data"]["grant_type"] == "password"
            assert call["data"]["username"] == "user@example.com"
            assert call["data"]["redirect_uri"] == "urn:ietf:wg:oauth:2.0:oob"

        asyncio.run(scenario())

    def test_expired_token_is_refreshed(self, credentials: Credentials) -> None:
        async def scenario() -> None:
            clock = Clock()
            responses = iter(
                [_token_response("access-1", expires_in=120), _token_response("access-2")]
            )
            client = StubAsyncClient(lambda data: next(responses))
            manager = AuthenticationManager(
                client, credentials, clock=clock  # type: ignore[arg-type]
            )

            await manager.ensure_token()
            clock.now += 120 - EXPIRY_BUFFER

            assert await manager.ensure_token() == "access-2"
            assert client.calls[1]["data"]["grant_type"] == "refresh_token"
            assert client.calls[1]["data"]["refresh_token"] == "refresh-1"

        asyncio.run(scenario())

    def test_token_without_expiry_is_reused(self, credentials: Credentials) -> None:
        """Given a token response with no `expires_in`, when time passes, then
        the cached token keeps being used without a new grant."""

        async def scenario() -> None:
            clock = Clock()
            client = StubAsyncClient(
                lambda data: httpx.Response(200, json={"access_token": "forever"})
            )
            manager = AuthenticationManager(
                client, credentials, clock=clock  # type: ignore[arg-type]
            )

            assert await manager.ensure_token() == "forever"
            clock.now += 86_400

            assert await manager.ensure_token() == "forever"
            assert len(client.calls) == 1

        asyncio.run(scenario())

    def test_failed_refresh_falls_back_to_password_grant(self, credentials: Credentials) -> None:
        async def scenario() -> None:
            clock = Clock()
            responses = iter(
                [
                    _token_response("access-1", expires_in=0),
                    httpx.Response(400, json={"error": "invalid_grant"}),
                    _token_response("access-3"),
                ]
            )
            client = StubAsyncClient(lambda data: next(responses))
            manager = AuthenticationManager(
                client, credentials, clock=clock  # type: ignore[arg-type]
            )

            await manager.ensure_token()

            assert await manager.ensure_token() == "access-3"
            assert [call["data"]["grant_type"] for call in client.calls] == [
                "password",
                "refresh_token",
                "password",
            ]

        asyncio.run(scenario())

    def test_rejected_credentials_raise_auth_error(self, credentials: Credentials) -> None:
        async def scenario() -> None:
            client = StubAsyncClient(
                lambda data: httpx.Response(
                    401, json={"error": "invalid_grant", "error_description": "Bad password"}
                )
            )
            manager = AuthenticationManager(client, credentials)  # type: ignore[arg-type]

            with pytest.raises(AuthError) as excinfo:
                await manager.ensure_token()

            assert excinfo.value.status == 401
            assert excinfo.value.errors[0].detail == "Bad password"

        asyncio.run(scenario())

    def test_concurrent_callers_share_one_request(self, credentials: Credentials) -> None:
        async def scenario() -> None:
            client = StubAsyncClient(lambda data: _token_response("access-1"))
            manager = AuthenticationManager(client, credentials)  # type: ignore[arg-type]

            tokens = await asyncio.gather(*(manager.ensure_token() for _ in range(5)))

            assert set(tokens) == {"access-1"}
            assert len(client.calls) == 1

        asyncio.run(scenario())

    def test_clear_token_forces_new_grant(self, credentials: Credentials) -> None:
        async def scenario() -> None:
            responses = iter([_token_response("access-1"), _token_response("access-2")])
            client = StubAsyncClient(lambda data: next(responses))
            manager = AuthenticationManager(client, credentials)  # type: ignore[arg-type]

            await manager.ensure_token()
            manager.clear_token()

            assert manager.token is None
            assert await manager.ensure_token() == "access-2"

        asyncio.run(scenario())

    def test_static_access_token_needs_no_http(self) -> None:
        async def scenario() -> None:
            def handler(data: dict[str, str]) -> httpx.Response:
                raise AssertionError("HTTP should not be called with a static token")

            credentials = Credentials(company_id=1, access_token="static")
            client = StubAsyncClient(handler)
            manager = AuthenticationManager(client, credentials)  # type: ignore[arg-type]

            assert await manager.ensure_token() == "static"

        asyncio.run(scenario())

    def test_manager_requires_some_credentials(self) -> None:
        with pytest.raises(ConfigError):
            AuthenticationManager(
                StubAsyncClient(lambda data: _token_response("x")),  # type: ignore[arg-type]
                Credentials(company_id=1),
            )
