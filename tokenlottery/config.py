from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from .constants import DEFAULT_LOTTERY_SEED


@dataclass(frozen=True)
class Settings:
    db_url: Optional[str]
    chain_fqdn: Optional[str]
    chain_timeout: int
    lottery_seed: str
    log_level: str

    @staticmethod
    def from_env(db_url_override: Optional[str] = None) -> "Settings":
        load_dotenv()

        timeout_raw = os.getenv("BLOCKCHAIN_TIMEOUT", "45").strip()
        try:
            timeout = int(timeout_raw)
        except ValueError:
            raise RuntimeError(
                f"BLOCKCHAIN_TIMEOUT must be an integer number of seconds, got {timeout_raw!r}"
            ) from None

        return Settings(
            # None lets tokenlottery.db.engine fall back to its resolved default.
            db_url=db_url_override or os.getenv("DB_URL") or None,
            chain_fqdn=os.getenv("BLOCKCHAIN_BASE_FQDN") or None,
            chain_timeout=timeout,
            lottery_seed=os.getenv("LOTTERY_SEED", "").strip() or DEFAULT_LOTTERY_SEED,
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )
