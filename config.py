import os
import secrets
from dataclasses import dataclass

from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    api_key: str | None = None
    image_model: str = "imagen-4.0-generate-001"
    edit_model: str = "gemini-2.5-flash-image"
    text_model: str = "gemini-2.5-flash"
    pro_model: str = "gemini-2.5-pro"
    thinking_budget: int = 32768
    timeout_ms: int = 300_000
    secret_key: str = ""
    max_upload_mb: int = 20
    max_sessions: int = 100
    session_ttl: int = 3600
    port: int = 5001
    debug: bool = False
    log_level: str = "INFO"


def _int(env, name, default):
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def load_settings(env=None) -> Settings:
    """Build settings from the environment, loading `.env` first when reading os.environ."""
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        api_key=env.get("GEMINI_API_KEY") or None,
        image_model=env.get("BANANA_IMAGE_MODEL") or Settings.image_model,
        edit_model=env.get("BANANA_EDIT_MODEL") or Settings.edit_model,
        text_model=env.get("BANANA_TEXT_MODEL") or Settings.text_model,
        pro_model=env.get("BANANA_PRO_MODEL") or Settings.pro_model,
        thinking_budget=_int(env, "BANANA_THINKING_BUDGET", Settings.thinking_budget),
        timeout_ms=_int(env, "BANANA_TIMEOUT_MS", Settings.timeout_ms),
        # sessions do not outlive the process, so a per-process key is enough
        secret_key=env.get("BANANA_SECRET_KEY") or secrets.token_hex(32),
        max_upload_mb=_int(env, "BANANA_MAX_UPLOAD_MB", Settings.max_upload_mb),
        max_sessions=_int(env, "BANANA_MAX_SESSIONS", Settings.max_sessions),
        session_ttl=_int(env, "BANANA_SESSION_TTL", Settings.session_ttl),
        port=_int(env, "BANANA_PORT", Settings.port),
        debug=env.get("BANANA_DEBUG", "").strip().lower() in _TRUE_VALUES,
        log_level=(env.get("BANANA_LOG_LEVEL") or Settings.log_level).upper(),
    )
