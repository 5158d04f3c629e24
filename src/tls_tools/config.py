# config.py (import this early in your app)
import os
from datetime import timedelta
from typing import List, Optional

from dotenv import load_dotenv, find_dotenv

# Loads ${workspace}/.env if present; doesn't overwrite existing env by default
load_dotenv(find_dotenv(), override=False)


def split_list(value: Optional[str]) -> List[str]:
    """'1.1.1.1, ::1,,' -> ['1.1.1.1', '::1']"""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


# 14 months, same as the RPC daemon's autogenerated certs
DEFAULT_AUTOGEN_VALIDITY = timedelta(days=14 * 30)
DEFAULT_COMMON_NAME = "tls-tools autogenerated cert"

TLS_CERT_PATH     = os.getenv("TLS_CERT_PATH", "tls.cert")
TLS_KEY_PATH      = os.getenv("TLS_KEY_PATH", "tls.key")
TLS_COMMON_NAME   = os.getenv("TLS_COMMON_NAME", DEFAULT_COMMON_NAME)
TLS_EXTRA_IPS     = split_list(os.getenv("TLS_EXTRA_IPS"))
TLS_EXTRA_DOMAINS = split_list(os.getenv("TLS_EXTRA_DOMAINS"))
TLS_VALIDITY_DAYS = int(os.getenv("TLS_VALIDITY_DAYS", str(DEFAULT_AUTOGEN_VALIDITY.days)))
TLS_KEY_TYPE      = os.getenv("TLS_KEY_TYPE", "ec")
TLS_DISABLE_AUTOFILL = _env_flag("TLS_DISABLE_AUTOFILL")

RPC_HOST = os.getenv("RPC_HOST", "127.0.0.1")
RPC_PORT = int(os.getenv("RPC_PORT", "10009"))
