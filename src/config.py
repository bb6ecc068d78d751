from __future__ import annotations
import os
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache

def _env(name: str, default=None, cast=str):
    val = os.getenv(name, default)
    if val is None:
        return None
    if cast is bool:
        return str(val).strip().lower() in {"1", "true", "yes", "on"}
    if cast in (int, float):
        try:
            return cast(val)
        except (TypeError, ValueError):
            return cast(default) if default is not None else None
    return str(val)

BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(_env("PAIN_DATA_DIR", str(BASE_DIR / "data")))

@dataclass(frozen=True)
class ApiConfig:
    host: str = _env("PAIN_API_HOST", "0.0.0.0")
    port: int = _env("PAIN_API_PORT", 8000, int)
    debug: bool = _env("PAIN_DEBUG", False, bool)
    max_request_mb: int = _env("PAIN_MAX_REQUEST_MB", 5, int)

@dataclass(frozen=True)
class SchemeConfig:
    #codes injected into every PmtTpInf / CdtrSchmeId block
    service_level: str = _env("PAIN_SERVICE_LEVEL", "SEPA")
    local_instrument: str = _env("PAIN_LOCAL_INSTRUMENT", "Core")
    sequence_type: str = _env("PAIN_SEQUENCE_TYPE", "FRST")
    charge_bearer: str = _env("PAIN_CHARGE_BEARER", "SLEV")
    scheme_name: str = _env("PAIN_SCHEME_NAME", "SEPA")

@dataclass(frozen=True)
class VersionConfig:
    direct_debit: str = _env("PAIN_DD_VERSION", "pain.008.001.08")
    credit_transfer: str = _env("PAIN_CT_VERSION", "pain.001.001.03")

@dataclass(frozen=True)
class PathsConfig:
    BASE_DIR: Path = BASE_DIR
    DATA_DIR: Path = DATA_DIR

@dataclass(frozen=True)
class AppConfig:
    api: "ApiConfig" = field(default_factory=lambda: ApiConfig())
    scheme: "SchemeConfig" = field(default_factory=lambda: SchemeConfig())
    versions: "VersionConfig" = field(default_factory=lambda: VersionConfig())
    paths: "PathsConfig" = field(default_factory=lambda: PathsConfig())

@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    return AppConfig()

config = get_config()
