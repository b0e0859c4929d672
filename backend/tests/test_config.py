"""
Tests for settings, bearer tokens and tracing setup.
"""

import os
from datetime import timedelta

import pytest
from pydantic import ValidationError

from mindcoach.core.config import DEFAULT_CORS_HEADERS, Settings
from mindcoach.core.security import create_access_token, verify_access_token
from mindcoach.observability.langsmith import build_trace_config, initialize_langsmith

TRACING_VARS = [
    "LANGSMITH_TRACING", "LANGCHAIN_TRACING_V2",
    "LANGSMITH_API_KEY", "LANGCHAIN_API_KEY",
    "LANGSMITH_ENDPOINT", "LANGCHAIN_ENDPOINT",
    "LANGSMITH_PROJECT", "LANGCHAIN_PROJECT",
]


class TestSettings:
    def test_difficulty_defaults(self):
        defaults = Settings()
        assert defaults.BASE_DIFFICULTY == 3
        assert defaults.CORRECT_SCORE_THRESHOLD == 70
        assert defaults.STREAK_UP_THRESHOLD == 3
        assert defaults.STREAK_DOWN_THRESHOLD == 2
        assert defaults.ROLLING_WINDOW == 5

    def test_base_difficulty_must_be_on_scale(self):
        with pytest.raises(ValidationError):
            Settings(BASE_DIFFICULTY=6)

    def test_average_band_must_be_ordered(self):
        with pytest.raises(ValidationError):
            Settings(LOW_AVERAGE_THRESHOLD=90, HIGH_AVERAGE_THRESHOLD=80)

    def test_unknown_repository_backend_rejected(self):
        with pytest.raises(ValidationError):
            Settings(REPOSITORY_BACKEND="redis")

    def test_log_level_normalised(self):
        assert Settings(LOG_LEVEL=" debug ").LOG_LEVEL == "DEBUG"

    def test_cors_lists(self):
        configured = Settings(CORS_ORIGINS="http://a.test, ,http://b.test", CORS_ALLOW_HEADERS="*")
        assert configured.cors_origins_list == ["http://a.test", "http://b.test"]
        assert configured.cors_allow_headers_list == DEFAULT_CORS_HEADERS

        explicit = Settings(CORS_ALLOW_HEADERS="content-type,authorization")
        assert explicit.cors_allow_headers_list == ["content-type", "authorization"]


class TestAccessTokens:
    def test_claims_round_trip(self):
        claims = verify_access_token(create_access_token("u-7", name="Grace", profile={"logic": 71.5}))
        assert claims["sub"] == "u-7"
        assert claims["name"] == "Grace"
        assert claims["profile"] == {"logic": 71.5}

    def test_optional_claims_omitted(self):
        claims = verify_access_token(create_access_token("u-7"))
        assert "name" not in claims
        assert "profile" not in claims

    def test_expired_token_rejected(self):
        token = create_access_token("u-7", expires_delta=timedelta(minutes=-1))
        assert verify_access_token(token) is None

    def test_tampered_token_rejected(self):
        token = create_access_token("u-7")
        assert verify_access_token(token[:-2] + ("AA" if not token.endswith("AA") else "BB")) is None


class TestTracing:
    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        for name in TRACING_VARS:
            monkeypatch.setenv(name, "")

    def test_disabled_without_api_key(self):
        assert initialize_langsmith(Settings(LANGSMITH_TRACING=True, LANGSMITH_API_KEY=" ")) is False
        assert os.environ["LANGSMITH_TRACING"] == "false"
        assert os.environ["LANGCHAIN_TRACING_V2"] == "false"

    def test_enabled_exports_both_names(self):
        configured = Settings(LANGSMITH_TRACING=True, LANGSMITH_API_KEY="ls-key", LANGSMITH_PROJECT="coach-dev")
        assert initialize_langsmith(configured) is True
        assert os.environ["LANGCHAIN_TRACING_V2"] == "true"
        assert os.environ["LANGSMITH_API_KEY"] == os.environ["LANGCHAIN_API_KEY"] == "ls-key"
        assert os.environ["LANGCHAIN_PROJECT"] == "coach-dev"

    def test_trace_config_groups_by_session(self):
        config = build_trace_config("s-1", "warmup", user_id="u-1")
        assert config["configurable"] == {"thread_id": "s-1"}
        assert config["tags"] == ["mindcoach", "phase:warmup"]
        assert config["metadata"] == {"session_id": "s-1", "phase": "warmup", "user_id": "u-1"}
        assert "user_id" not in build_trace_config("s-2", "main")["metadata"]
