from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from chavruta.backend import constants


_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
	openai_api_key: str = ""
	openai_model: str = constants.DEFAULT_OPENAI_MODEL
	openai_timeout_s: float = constants.DEFAULT_OPENAI_TIMEOUT_S
	temperature: float = constants.DEFAULT_TEMPERATURE
	history_turns: int = constants.DEFAULT_HISTORY_TURNS
	force_offline: bool = False
	cors_allow_origins: List[str] = field(default_factory=lambda: list(constants.DEFAULT_CORS_ALLOW_ORIGINS))
	trusted_hosts: List[str] = field(default_factory=lambda: list(constants.DEFAULT_TRUSTED_HOSTS))
	log_level: str = constants.DEFAULT_LOG_LEVEL

	@property
	def model_available(self) -> bool:
		return bool(self.openai_api_key.strip()) and not self.force_offline


def _raw(environ: Mapping[str, str], name: str) -> str:
	return (environ.get(name) or "").strip()


def _int_env(environ: Mapping[str, str], name: str, default: int, minimum: int = 1) -> int:
	raw = _raw(environ, name)
	if not raw:
		return default
	try:
		value = int(raw)
	except ValueError:
		return default
	return value if value >= minimum else default


def _float_env(environ: Mapping[str, str], name: str, default: float, *, allow_zero: bool = False) -> float:
	raw = _raw(environ, name)
	if not raw:
		return default
	try:
		value = float(raw)
	except ValueError:
		return default
	if value > 0 or (allow_zero and value == 0):
		return value
	return default


def _list_env(environ: Mapping[str, str], name: str, default: List[str]) -> List[str]:
	raw = _raw(environ, name)
	items = [item.strip() for item in raw.split(",") if item.strip()]
	return items or list(default)


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
	"""Build settings once from the process environment (or a given mapping)."""
	env = os.environ if environ is None else environ
	return Settings(
		openai_api_key=_raw(env, "OPENAI_API_KEY"),
		openai_model=_raw(env, "CHAVRUTA_OPENAI_MODEL") or constants.DEFAULT_OPENAI_MODEL,
		openai_timeout_s=_float_env(env, "CHAVRUTA_OPENAI_TIMEOUT_S", constants.DEFAULT_OPENAI_TIMEOUT_S),
		temperature=_float_env(env, "CHAVRUTA_TEMPERATURE", constants.DEFAULT_TEMPERATURE, allow_zero=True),
		history_turns=_int_env(env, "CHAVRUTA_HISTORY_TURNS", constants.DEFAULT_HISTORY_TURNS),
		force_offline=_raw(env, "CHAVRUTA_OFFLINE").lower() in _TRUTHY,
		cors_allow_origins=_list_env(env, "CHAVRUTA_CORS_ORIGINS", constants.DEFAULT_CORS_ALLOW_ORIGINS),
		trusted_hosts=_list_env(env, "CHAVRUTA_TRUSTED_HOSTS", constants.DEFAULT_TRUSTED_HOSTS),
		log_level=(_raw(env, "CHAVRUTA_LOG_LEVEL") or constants.DEFAULT_LOG_LEVEL).upper(),
	)
