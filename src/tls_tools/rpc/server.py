# Local RPC status server, served over TLS with the autogenerated cert
# Routes:
#   /        -> short description
#   /status  -> JSON with the cert currently being served

from __future__ import annotations
import logging
from datetime import timedelta
from typing import Iterable

from flask import Flask, jsonify

from tls_tools import config
from tls_tools.cert import ensure_cert, load_cert
from tls_tools.errors import CertError
from tls_tools.store import PathLike

log = logging.getLogger(__name__)


def create_app(cert_path: PathLike, key_path: PathLike) -> Flask:
    app = Flask(__name__)

    @app.get("/")
    def index():
        return f"tls-tools RPC server. Cert: {cert_path}\n", 200, {"Content-Type": "text/plain"}

    @app.get("/status")
    def status():
        # re-read every time so a regenerated cert shows up without a restart
        _key_pair, record = load_cert(cert_path, key_path)
        body = {"status": "ok"}
        body.update(record.to_dict())
        return jsonify(body)

    @app.errorhandler(CertError)
    def cert_error(e: CertError):
        log.error("status failed: %s", e)
        return jsonify({"status": "error", "error": str(e)}), 500

    return app


def run(
    host: str = config.RPC_HOST,
    port: int = config.RPC_PORT,
    cert_path: PathLike = config.TLS_CERT_PATH,
    key_path: PathLike = config.TLS_KEY_PATH,
    *,
    common_name: str = config.TLS_COMMON_NAME,
    ips: Iterable[str] = (),
    dns: Iterable[str] = (),
    validity: timedelta = timedelta(days=config.TLS_VALIDITY_DAYS),
    key_type: str = config.TLS_KEY_TYPE,
) -> None:
    _key_pair, record, regenerated = ensure_cert(
        cert_path, key_path,
        common_name=common_name, ips=ips, dns=dns, validity=validity, key_type=key_type,
    )
    if regenerated:
        log.info("serving freshly generated cert %r", record.common_name)

    app = create_app(cert_path, key_path)
    app.run(host=host, port=port, ssl_context=(str(cert_path), str(key_path)))
