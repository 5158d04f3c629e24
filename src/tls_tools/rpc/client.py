# Talks to the local RPC server, trusting only our own self-signed cert

from __future__ import annotations
import ipaddress
from typing import Dict

import requests

from tls_tools import config
from tls_tools.store import PathLike

TIMEOUT = 10


class RpcClient:
    def __init__(self, host: str = config.RPC_HOST, port: int = config.RPC_PORT, cert_path: PathLike = config.TLS_CERT_PATH):
        self.host = host
        self.port = port
        # requests verifies the server against this file instead of the system CA store
        self.cert_path = str(cert_path)

    @property
    def base_url(self) -> str:
        host = self.host
        try:
            if ipaddress.ip_address(host).version == 6:
                host = f"[{host}]"
        except ValueError:
            pass  # hostname, use as-is
        return f"https://{host}:{self.port}"

    def status(self) -> Dict:
        r = requests.get(f"{self.base_url}/status", verify=self.cert_path, timeout=TIMEOUT)
        r.raise_for_status()
        return r.json()
