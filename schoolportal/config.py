"""Configuration for the school portal backend connection."""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .const import REST_PATH, STORAGE_OBJECT_PATH, STORAGE_PUBLIC_PATH
from .exceptions import PortalConfigError

_LOGGER = logging.getLogger(__name__)

ENV_URL = "SUPABASE_URL"
ENV_ANON_KEY = "SUPABASE_ANON_KEY"

# Names used by the browser build
VITE_PREFIX = "VITE_"


def _lookup(env: Mapping[str, str], name: str) -> Optional[str]:
	value = env.get(name) or env.get(f"{VITE_PREFIX}{name}")
	if value:
		value = value.strip()
	return value or None


@dataclass(frozen=True)
class PortalConfig:
	"""Connection settings for the hosted backend."""
	url: str
	anon_key: str
	
	def __post_init__(self) -> None:
		if not self.url or not self.anon_key:
			raise PortalConfigError("Missing Supabase environment variables. Please check your .env file.")
		object.__setattr__(self, "url", self.url.rstrip("/"))
	
	@classmethod
	def from_env(cls, env_file: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> "PortalConfig":
		"""Build configuration from a .env file and the process environment.
		
		Args:
			env_file: Optional path to a .env file. Defaults to python-dotenv's search.
			env: Mapping to read instead of os.environ (mainly for tests).
		"""
		if env is None:
			if load_dotenv(env_file):
				_LOGGER.debug("Loaded environment from %s", env_file or ".env")
			env = os.environ
		
		return cls(
			url=_lookup(env, ENV_URL) or "",
			anon_key=_lookup(env, ENV_ANON_KEY) or "",
		)
	
	@property
	def rest_url(self) -> str:
		return f"{self.url}{REST_PATH}"
	
	@property
	def storage_url(self) -> str:
		return f"{self.url}{STORAGE_OBJECT_PATH}"
	
	@property
	def public_storage_url(self) -> str:
		return f"{self.url}{STORAGE_PUBLIC_PATH}"
