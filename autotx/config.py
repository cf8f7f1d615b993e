import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv, set_key

from .errors import ConfigError

logger = logging.getLogger(__name__)

DAILY_LIMIT = 3500

DEFAULT_RPC_URL = "https://tea-sepolia.g.alchemy.com/public"
DEFAULT_CHAIN_ID = 10218
DEFAULT_EXPLORER_URL = "https://sepolia.tea.xyz"
DEFAULT_NETWORK_NAME = "tea-sepolia"

FALLBACK_FIRST = "first"
FALLBACK_FAIL = "fail"


def parse_rpc_urls(value: str) -> List[str]:
    return [url.strip() for url in value.split(",") if url.strip()]


@dataclass
class Settings:
    private_key: str
    rpc_urls: List[str]
    chain_id: int = DEFAULT_CHAIN_ID
    network_name: str = DEFAULT_NETWORK_NAME
    explorer_url: str = DEFAULT_EXPLORER_URL
    explorer_api_url: str = DEFAULT_EXPLORER_URL + "/api"
    explorer_api_key: str = "empty"
    contract_address: Optional[str] = None
    state_dir: Path = field(default_factory=lambda: Path("."))
    env_file: Path = field(default_factory=lambda: Path(".env"))
    rpc_fallback: str = FALLBACK_FIRST
    confirmation_timeout: float = 600.0
    daily_limit: int = DAILY_LIMIT

    @classmethod
    def from_env(cls, env_file=".env", environ=None, **overrides):
        """Load settings from `env_file` (if present) and the process environment.

        Keyword overrides win over environment values; `None` overrides are ignored.
        """
        if environ is None:
            load_dotenv(env_file)
            environ = os.environ

        private_key = environ.get("MAIN_PRIVATE_KEY", "").strip()
        if not private_key:
            raise ConfigError("Environment variable MAIN_PRIVATE_KEY not set")

        rpc_urls = parse_rpc_urls(environ.get("RPC_URL", DEFAULT_RPC_URL))
        if not rpc_urls:
            raise ConfigError("RPC_URL does not contain any endpoint")

        fallback = environ.get("RPC_FALLBACK", FALLBACK_FIRST).strip().lower()
        if fallback not in (FALLBACK_FIRST, FALLBACK_FAIL):
            raise ConfigError(f"RPC_FALLBACK must be '{FALLBACK_FIRST}' or '{FALLBACK_FAIL}', got {fallback!r}")

        try:
            chain_id = int(environ.get("CHAIN_ID", DEFAULT_CHAIN_ID))
            confirmation_timeout = float(environ.get("CONFIRMATION_TIMEOUT", 600))
        except ValueError as e:
            raise ConfigError(f"Invalid numeric setting: {e}") from e

        explorer_url = environ.get("EXPLORER_URL", DEFAULT_EXPLORER_URL).rstrip("/")
        settings = cls(
            private_key=private_key,
            rpc_urls=rpc_urls,
            chain_id=chain_id,
            network_name=environ.get("NETWORK_NAME", DEFAULT_NETWORK_NAME),
            explorer_url=explorer_url,
            explorer_api_url=environ.get("EXPLORER_API_URL", explorer_url + "/api"),
            explorer_api_key=environ.get("EXPLORER_API_KEY", "empty"),
            contract_address=environ.get("CONTRACT_ADDRESS", "").strip() or None,
            state_dir=Path(environ.get("STATE_DIR", ".")),
            env_file=Path(env_file),
            rpc_fallback=fallback,
            confirmation_timeout=confirmation_timeout,
        )
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(settings, **overrides) if overrides else settings

    def tx_url(self, tx_hash: str) -> Optional[str]:
        if not self.explorer_url:
            return None
        return f"{self.explorer_url}/tx/{tx_hash}"


def persist_env(env_file, key: str, value: str) -> None:
    """Write `key=value` into the .env file, replacing an existing entry."""
    path = Path(env_file)
    path.touch(exist_ok=True)
    set_key(str(path), key, value, quote_mode="never")
    os.environ[key] = value
    logger.info(f".env file updated: {key}={value}")
