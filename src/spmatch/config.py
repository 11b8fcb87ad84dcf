from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()

def _env(key: str, default: str) -> str:
    v = os.getenv(key)
    return default if v is None or v == "" else v

def _env_flag(key: str, default: bool) -> bool:
    return _env(key, "1" if default else "0").strip().lower() in {"1", "true", "yes", "on"}

@dataclass(frozen=True)
class Config:
    log_level: str = _env("SPM_LOG_LEVEL", "INFO")

    top_k: int = int(_env("SPM_TOP_K", "10"))
    # 0 means one less than the number of CPUs
    workers: int = int(_env("SPM_WORKERS", "0"))
    mp_start: str = _env("SPM_MP_START", "spawn")

    chunksize: int = int(_env("SPM_CHUNKSIZE", "100000"))
    compression: str = _env("SPM_COMPRESSION", "gzip")
    check_order: bool = _env_flag("SPM_CHECK_ORDER", True)

CFG = Config()
