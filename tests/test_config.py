from __future__ import annotations

from trivia_engine.config import DEFAULT_TRIVIA_MODEL, Settings, get_settings


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("TRIVIA_MODEL", raising=False)
    monkeypatch.delenv("OPENROUTER_MODEL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.TRIVIA_MODEL == DEFAULT_TRIVIA_MODEL
    assert settings.BANK_COOLDOWN_SECONDS == 60.0
    assert settings.GENERATION_MIN_INTERVAL_SECONDS == 1.0


def test_openrouter_model_is_accepted_as_model_source(monkeypatch) -> None:
    monkeypatch.delenv("TRIVIA_MODEL", raising=False)
    monkeypatch.setenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")
    assert Settings(_env_file=None).TRIVIA_MODEL == "openai/gpt-4o-mini"


def test_trivia_model_wins_over_openrouter_model(monkeypatch) -> None:
    monkeypatch.setenv("TRIVIA_MODEL", "anthropic/claude-3-haiku")
    monkeypatch.setenv("OPENROUTER_MODEL", "openai/gpt-4o-mini")
    assert Settings(_env_file=None).TRIVIA_MODEL == "anthropic/claude-3-haiku"


def test_keyword_overrides_environment(monkeypatch) -> None:
    monkeypatch.setenv("BANK_REFILL_SIZE", "9")
    assert Settings(_env_file=None).BANK_REFILL_SIZE == 9
    assert get_settings(BANK_REFILL_SIZE=4).BANK_REFILL_SIZE == 4


def test_chat_api_key_follows_provider() -> None:
    settings = Settings(
        _env_file=None,
        CHAT_PROVIDER="gemini",
        OPENROUTER_API_KEY="router-key",
        GEMINI_API_KEY=" gem-key ",
    )
    assert settings.chat_api_key == "gem-key"
    assert Settings(_env_file=None, OPENROUTER_API_KEY="", GEMINI_API_KEY="x").chat_api_key is None


def test_mirror_needs_url_and_key() -> None:
    assert Settings(_env_file=None, SUPABASE_URL="https://x.supabase.co", SUPABASE_ANON_KEY=None).mirror_enabled is False
    assert Settings(_env_file=None, SUPABASE_URL="https://x.supabase.co", SUPABASE_ANON_KEY="k").mirror_enabled is True
