"""Tests for the shared pydantic models and enums."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from flickrkit.exceptions import ConfigError
from flickrkit.models import (
    CacheEntry,
    CacheStore,
    Credentials,
    HTTPMethod,
    RequestConfig,
    ResponseFormat,
)


class TestResponseFormat:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("rest", ResponseFormat.REST),
            ("XML", ResponseFormat.REST),
            (" json ", ResponseFormat.JSON),
            ("php", ResponseFormat.PHP_SERIAL),
            ("php_serial", ResponseFormat.PHP_SERIAL),
            (ResponseFormat.JSON, ResponseFormat.JSON),
        ],
    )
    def test_parse(self, name, expected) -> None:
        assert ResponseFormat.parse(name) is expected

    def test_parse_unknown(self) -> None:
        with pytest.raises(ConfigError, match="yaml"):
            ResponseFormat.parse("yaml")

    def test_wire_values(self) -> None:
        assert [f.value for f in ResponseFormat] == ["rest", "json", "php_serial"]


class TestHTTPMethod:
    def test_parse_case_insensitive(self) -> None:
        assert HTTPMethod.parse("post") is HTTPMethod.POST

    def test_parse_unknown(self) -> None:
        with pytest.raises(ConfigError):
            HTTPMethod.parse("PUT")

    @pytest.mark.parametrize(
        ("method", "body"),
        [("GET", False), ("HEAD", False), ("DELETE", False), ("POST", True), ("PATCH", True)],
    )
    def test_sends_body(self, method: str, body: bool) -> None:
        assert HTTPMethod(method).sends_body is body


class TestCredentials:
    def test_frozen(self) -> None:
        creds = Credentials(key="k", secret="s")
        with pytest.raises(ValidationError):
            creds.key = "other"  # type: ignore[misc]

    def test_empty_key_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Credentials(key="", secret="s")

    def test_repr_hides_secrets(self) -> None:
        text = repr(Credentials(key="k", secret="hush", token="t", token_secret="also-hush"))
        assert "hush" not in text
        assert "k" in text


class TestRequestConfig:
    def test_defaults(self) -> None:
        config = RequestConfig()
        assert config.format is ResponseFormat.REST
        assert config.http_method is HTTPMethod.GET
        assert config.endpoint_url == "https://api.flickr.com/services/rest/"
        assert config.timeout == 30

    def test_assignment_validated(self) -> None:
        config = RequestConfig()
        config.format = "json"
        assert config.format is ResponseFormat.JSON
        with pytest.raises(ValidationError):
            config.http_method = "BREW"


class TestCacheModels:
    def test_entry_expiry(self) -> None:
        entry = CacheEntry(key="k", payload="p", format="rest", expires_at=100.0)
        assert not entry.is_expired(99.9)
        assert entry.is_expired(100.0)
        assert not CacheEntry(key="k", payload="p", format="rest").is_expired(1e12)

    def test_store_rejects_unknown_fields(self) -> None:
        with pytest.raises(ValidationError):
            CacheStore.model_validate({"version": 1, "entries": {}, "extra": 1})

    @pytest.mark.parametrize("version", [0, 2, 99])
    def test_store_rejects_unknown_version(self, version: int) -> None:
        with pytest.raises(ValidationError):
            CacheStore.model_validate({"version": version, "entries": {}})

    def test_store_version_defaults_to_one(self) -> None:
        assert CacheStore().version == 1
        assert '"version":1' in CacheStore().model_dump_json()

    def test_store_json_round_trip(self) -> None:
        store = CacheStore(entries={"k": CacheEntry(key="k", payload="p", format="json")})
        assert CacheStore.model_validate_json(store.model_dump_json()) == store
