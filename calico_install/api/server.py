"""
Uvicorn server entrypoint for the calico-install API.
"""

from __future__ import annotations

import argparse
import os

import uvicorn

from calico_install.cli.lib.config import CONFIG_PATH_ENV, load_config

APP = "calico_install.api.main:app"
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="calico-install-api", description="Installation validation and defaulting REST API server"
    )
    parser.add_argument("--config", default=None, help=f"Config file path (default: ${CONFIG_PATH_ENV} or system path)")
    parser.add_argument("--host", default=None, help="Bind host (default: from [api] config or 127.0.0.1)")
    parser.add_argument("--port", type=int, default=None, help="Bind port (default: from [api] config or 8080)")
    parser.add_argument("--log-level", default="info", choices=LOG_LEVELS, help="Uvicorn log level (default: info)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.config:
        # Pool defaults are read per request, so the handlers must see the same file.
        os.environ[CONFIG_PATH_ENV] = args.config
    cfg = load_config()
    host = args.host if args.host is not None else cfg.api_host
    port = args.port if args.port is not None else cfg.api_port
    uvicorn.run(APP, host=host, port=port, log_level=args.log_level)
    return 0
