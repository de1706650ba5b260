"""Load settings.yaml into frozen dataclasses. Environment overrides are read once, here."""

import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from arena.models import Persona

logger = logging.getLogger(__name__)

_SETTINGS_PATH = Path(__file__).parent / "settings.yaml"

_DIAGNOSTIC_ENVIRONMENTS = {"emulator", "development", "dev", "test"}
_MODEL_SEPARATOR = re.compile(r"[,|\n]")


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    sdk: str
    models: tuple[str, ...]
    api_key: str = field(repr=False)
    timeout_sec: int
    max_tokens: int
    base_url: str | None = None
    temperature: float | None = None
    system_instruction: str | None = None

    @property
    def available(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class LimitsConfig:
    daily_limit: int
    max_topic_chars: int
    min_topic_chars: int = 5
    max_source_links: int = 12
    max_source_mentions: int = 16
    max_mention_chars: int = 120


@dataclass(frozen=True)
class DefaultsConfig:
    language: str
    debate_timeout_sec: int
    environment: str = "production"


@dataclass(frozen=True)
class PromptsConfig:
    turn: str
    summary_verdict: str
    history_line: str
    empty_history: str
    languages: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class AppConfig:
    defaults: DefaultsConfig
    limits: LimitsConfig
    providers: Mapping[str, ProviderConfig]
    provider_order: tuple[str, ...]
    prompts: PromptsConfig
    personas: Mapping[str, Persona]

    @property
    def available_providers(self) -> tuple[str, ...]:
        """Provider names with credentials, in priority order."""
        return tuple(n for n in self.provider_order if self.providers[n].available)

    @property
    def expose_error_details(self) -> bool:
        return self.defaults.environment in _DIAGNOSTIC_ENVIRONMENTS


def _normalize_secret(value: str | None) -> str:
    if not value:
        return ""
    value = value.strip()
    return re.sub(r"^['\"]|['\"]$", "", value)


def _first_env(environ: Mapping[str, str], names: list[str]) -> str:
    for name in names:
        value = _normalize_secret(environ.get(name))
        if value:
            return value
    return ""


def _parse_model_candidates(raw: str, defaults: list[str]) -> tuple[str, ...]:
    """Env-supplied models first, then defaults, first occurrence wins."""
    parsed = [m.strip() for m in _MODEL_SEPARATOR.split(raw or "") if m.strip()]
    return tuple(dict.fromkeys([*parsed, *defaults]))


def _resolve_provider_order(raw: str, defaults: list[str]) -> tuple[str, ...]:
    requested = [p.strip().lower() for p in (raw or "").split(",")]
    requested = [p for p in requested if p in defaults]
    return tuple(dict.fromkeys([*requested, *defaults]))


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = (environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r (not an integer), using %d", name, raw, default)
        return default


def _resolve_environment(environ: Mapping[str, str], default: str) -> str:
    if environ.get("FUNCTIONS_EMULATOR") == "true" or environ.get("FIREBASE_EMULATOR_HUB"):
        return "emulator"
    return (environ.get("ARENA_ENV") or default).strip().lower()


def _load_provider(
    name: str,
    raw: dict,
    environ: Mapping[str, str],
) -> ProviderConfig:
    key_envs = list(raw.get("api_key_env", []))
    model_envs = list(raw.get("model_env", []))
    model_override = ",".join(environ.get(n, "") for n in model_envs)

    base_url = raw.get("base_url")
    if raw.get("base_url_env"):
        override = (environ.get(raw["base_url_env"]) or "").strip().rstrip("/")
        base_url = override or base_url

    temperature = raw.get("temperature")
    return ProviderConfig(
        name=name,
        sdk=str(raw["sdk"]),
        models=_parse_model_candidates(model_override, list(raw["models"])),
        api_key=_first_env(environ, key_envs),
        timeout_sec=int(raw["timeout_sec"]),
        max_tokens=int(raw["max_tokens"]),
        base_url=base_url,
        temperature=float(temperature) if temperature is not None else None,
        system_instruction=raw.get("system_instruction"),
    )


def load_config(
    settings_path: Path = _SETTINGS_PATH,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load and validate configuration from settings.yaml plus environment overrides.

    Raises FileNotFoundError if settings file missing.
    Logs which providers have credentials but does not raise when none do;
    the generation pipeline reports that as a configuration error.
    """
    if environ is None:
        environ = os.environ
    if not settings_path.exists():
        raise FileNotFoundError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    defaults_raw = raw["defaults"]
    defaults = DefaultsConfig(
        language=str(defaults_raw["language"]),
        debate_timeout_sec=_env_int(
            environ, "AI_DEBATE_TIMEOUT_SEC", int(defaults_raw["debate_timeout_sec"])
        ),
        environment=_resolve_environment(environ, str(defaults_raw.get("environment", "production"))),
    )

    limits_raw = raw["limits"]
    limits = LimitsConfig(
        daily_limit=_env_int(environ, "AI_DAILY_LIMIT", int(limits_raw["daily_limit"])),
        max_topic_chars=_env_int(environ, "AI_MAX_TOPIC_CHARS", int(limits_raw["max_topic_chars"])),
        min_topic_chars=int(limits_raw["min_topic_chars"]),
        max_source_links=int(limits_raw["max_source_links"]),
        max_source_mentions=int(limits_raw["max_source_mentions"]),
        max_mention_chars=int(limits_raw["max_mention_chars"]),
    )

    providers_raw = dict(raw["providers"])
    default_order = [str(p) for p in providers_raw.pop("order")]
    provider_order = _resolve_provider_order(environ.get("AI_PROVIDER_ORDER", ""), default_order)

    providers: dict[str, ProviderConfig] = {}
    for provider_name in provider_order:
        provider_cfg = _load_provider(provider_name, providers_raw[provider_name], environ)
        providers[provider_name] = provider_cfg
        if provider_cfg.available:
            logger.info("Provider available: %s (%d models)", provider_name, len(provider_cfg.models))
        else:
            logger.info(
                "Provider skipped (no API key): %s (set %s in .env)",
                provider_name,
                " or ".join(providers_raw[provider_name].get("api_key_env", [])),
            )

    prompts_raw = raw["prompts"]
    prompts = PromptsConfig(
        turn=prompts_raw["turn"],
        summary_verdict=prompts_raw["summary_verdict"],
        history_line=prompts_raw["history_line"],
        empty_history=prompts_raw["empty_history"],
        languages={k: str(v) for k, v in raw.get("languages", {}).items()},
    )

    personas = {
        persona_id: Persona(
            id=persona_id,
            name=str(p["name"]),
            description=str(p["description"]),
            style=str(p["style"]),
        )
        for persona_id, p in raw["personas"].items()
    }

    return AppConfig(
        defaults=defaults,
        limits=limits,
        providers=providers,
        provider_order=provider_order,
        prompts=prompts,
        personas=personas,
    )
