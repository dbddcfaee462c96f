"""Credential loading and OAuth token management for the Paraşüt API."""

from __future__ import annotations

import asyncio
import math
import os
import time
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any

import httpx
from loguru import logger
from omegaconf import OmegaConf
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import AuthError, ConfigError, ErrorDetail, NetworkError
from .transport import DEFAULT_BASE_URL, DEFAULT_TIMEOUT

DEFAULT_TOKEN_URL = "https://api.parasut.com/oauth/token"
OOB_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
EXPIRY_BUFFER = 60.0

_OAUTH_KEYS = (
    "PARASUT_CLIENT_ID",
    "PARASUT_CLIENT_SECRET",
    "PARASUT_USERNAME",
    "PARASUT_PASSWORD",
)


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _candidate_paths(raw: Path) -> tuple[Path, ...]:
    if raw.is_absolute():
        return (raw,)
    return (Path.cwd() / raw, _repo_root() / raw)


def _existing_unique_paths(candidates: tuple[Path, ...]) -> tuple[Path, ...]:
    existing: dict[Path, None] = {}
    for candidate in candidates:
        if candidate.exists():
            existing.setdefault(candidate.resolve(), None)
    return tuple(existing)


def _resolve_secrets_location(location: Path | str, *, source: str) -> Path:
    raw = Path(location).expanduser()
    candidates = _candidate_paths(raw)
    existing = _existing_unique_paths(candidates)
    if len(existing) == 1:
        return existing[0]
    if not existing:
        checked = "\n".join(str(candidate) for candidate in candidates)
        raise ConfigError(f"Secrets file not found for {source}: {raw}\nChecked:\n{checked}")
    joined = ", ".join(str(path) for path in existing)
    raise ConfigError(f"Multiple secrets files found for {source}: {raw}. Candidates: {joined}")


def _load_normalized_secrets(location: Path) -> dict[str, Any]:
    config = OmegaConf.to_container(OmegaConf.load(location), resolve=True)
    if not isinstance(config, dict):
        raise ConfigError("Secrets file must contain a mapping of credential keys.")
    return {str(key).upper(): value for key, value in config.items()}


def _optional_str(normalized: Mapping[str, Any], key: str) -> str | None:
    value = normalized.get(key)
    return str(value) if value not in (None, "") else None


def _credentials_from_mapping(normalized: Mapping[str, Any]) -> Credentials:
    if not normalized.get("PARASUT_COMPANY_ID"):
        raise ConfigError("Missing Paraşüt secrets: PARASUT_COMPANY_ID")

    if not normalized.get("PARASUT_ACCESS_TOKEN"):
        missing = [key for key in _OAUTH_KEYS if not normalized.get(key)]
        if missing:
            raise ConfigError(
                "Missing Paraşüt secrets: "
                + ", ".join(missing)
                + " (or provide PARASUT_ACCESS_TOKEN)"
            )

    kwargs: dict[str, Any] = {
        "company_id": normalized["PARASUT_COMPANY_ID"],
        "client_id": _optional_str(normalized, "PARASUT_CLIENT_ID"),
        "client_secret": _optional_str(normalized, "PARASUT_CLIENT_SECRET"),
        "username": _optional_str(normalized, "PARASUT_USERNAME"),
        "password": _optional_str(normalized, "PARASUT_PASSWORD"),
        "access_token": _optional_str(normalized, "PARASUT_ACCESS_TOKEN"),
    }
    for field, key in (
        ("base_url", "PARASUT_BASE_URL"),
        ("token_url", "PARASUT_TOKEN_URL"),
        ("timeout", "PARASUT_TIMEOUT"),
    ):
        if normalized.get(key) not in (None, ""):
            kwargs[field] = normalized[key]

    try:
        return Credentials(**kwargs)
    except PydanticValidationError as exc:
        raise ConfigError(f"Invalid Paraşüt configuration: {exc}", cause=exc) from exc


class Credentials(BaseModel):
    """Validated Paraşüt API credentials.

    Read from ``conf/secrets.yml`` (or ``PARASUT_CONFIG_PATH``) at runtime, or
    from the process environment with :meth:`from_env`.
    """

    company_id: int = Field(gt=0, description="Paraşüt company (firm) id", examples=[123456])
    client_id: str | None = Field(default=None, description="OAuth client id")
    client_secret: str | None = Field(default=None, description="OAuth client secret")
    username: str | None = Field(default=None, description="Paraşüt login e-mail")
    password: str | None = Field(default=None, description="Paraşüt login password")
    access_token: str | None = Field(
        default=None,
        description="Pre-issued bearer token; skips the OAuth password grant when set",
    )
    base_url: str = Field(default=DEFAULT_BASE_URL, description="API root including version")
    token_url: str = Field(default=DEFAULT_TOKEN_URL, description="OAuth token endpoint")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")

    @property
    def has_oauth(self) -> bool:
        return all((self.client_id, self.client_secret, self.username, self.password))

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> Credentials:
        """Create credentials from a YAML secrets file located under ``conf/`` by default."""
        env_path = os.environ.get("PARASUT_CONFIG_PATH")
        if env_path:
            location = _resolve_secrets_location(env_path, source="PARASUT_CONFIG_PATH")
        elif path is not None:
            location = _resolve_secrets_location(path, source="path")
        else:
            location = _resolve_secrets_location("conf/secrets.yml", source="default")

        return _credentials_from_mapping(_load_normalized_secrets(location))

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Credentials:
        source = os.environ if environ is None else environ
        return _credentials_from_mapping(
            {key: value for key, value in source.items() if key.startswith("PARASUT_")}
        )


class Token(BaseModel):
    access_token: str
    refresh_token: str | None = None
    expires_at: float = math.inf
    token_type: str = "bearer"


class AuthenticationManager:
    """Hand out valid bearer tokens, refreshing or re-authenticating as needed.

    Concurrent callers share a single in-flight token request.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        credentials: Credentials,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if credentials.access_token is None and not credentials.has_oauth:
            raise ConfigError("Credentials need either an access token or the full OAuth set")
        self._client = client
        self._credentials = credentials
        self._clock = clock
        self._token: Token | None = None
        self._lock = asyncio.Lock()

    @property
    def token(self) -> Token | None:
        return self._token

    def _is_valid(self, token: Token | None) -> bool:
        return token is not None and self._clock() < token.expires_at - EXPIRY_BUFFER

    async def ensure_token(self) -> str:
        """Return a cached valid token or acquire a new one."""
        if self._is_valid(self._token):
            return self._token.access_token  # type: ignore[union-attr]

        async with self._lock:
            if self._is_valid(self._token):
                return self._token.access_token  # type: ignore[union-attr]

            if not self._credentials.has_oauth:
                self._token = Token(access_token=str(self._credentials.access_token))
                return self._token.access_token

            previous = self._token
            if previous is not None and previous.refresh_token:
                try:
                    self._token = await self._refresh(previous.refresh_token)
                    return self._token.access_token
                except (AuthError, NetworkError) as exc:
                    logger.warning(f"Token refresh failed ({exc.message}); using password grant")

            self._token = await self._password_grant()
            return self._token.access_token

    def clear_token(self) -> None:
        self._token = None

    async def _password_grant(self) -> Token:
        logger.debug("Requesting Paraşüt token via password grant")
        return await self._request_token(
            {
                "grant_type": "password",
                "client_id": str(self._credentials.client_id),
                "client_secret": str(self._credentials.client_secret),
                "username": str(self._credentials.username),
                "password": str(self._credentials.password),
                "redirect_uri": OOB_REDIRECT_URI,
            }
        )

    async def _refresh(self, refresh_token: str) -> Token:
        logger.debug("Refreshing Paraşüt token")
        return await self._request_token(
            {
                "grant_type": "refresh_token",
                "client_id": str(self._credentials.client_id),
                "client_secret": str(self._credentials.client_secret),
                "refresh_token": refresh_token,
            }
        )

    async def _request_token(self, form: dict[str, str]) -> Token:
        try:
            response = await self._client.post(
                self._credentials.token_url,
                data=form,
                timeout=self._credentials.timeout,
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Token request failed: {exc}", cause=exc) from exc

        if not response.is_success:
            raise AuthError(
                "Authentication failed",
                status=response.status_code,
                errors=[ErrorDetail(title="Authentication Failed", detail=_oauth_error(response))],
                raw_body=response.text,
            )

        try:
            payload = response.json()
            expires_in = payload.get("expires_in")
            return Token(
                access_token=str(payload["access_token"]),
                refresh_token=payload.get("refresh_token"),
                # no expires_in: keep the token until the API rejects it
                expires_at=(
                    math.inf if expires_in is None else self._clock() + float(expires_in)
                ),
                token_type=str(payload.get("token_type", "bearer")),
            )
        except (ValueError, KeyError, TypeError) as exc:
            raise AuthError(
                "Token endpoint returned an unexpected payload",
                status=response.status_code,
                raw_body=response.text,
                cause=exc,
            ) from exc


def _oauth_error(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        return str(payload.get("error_description") or payload.get("error") or response.text)
    return response.text
