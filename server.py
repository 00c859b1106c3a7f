#!/usr/bin/env python3
"""
Motionbridge Server: MCP Tool-Call Bridge
==========================================

Architecture:
- Transport: one multiplexed MCP endpoint (/mcp) with per-client sessions
- Tools: catalog discovered from the remote tool bridge, or the built-in fallback
- Dispatch: argument guard → static route table → device backend (httpx)
- Long-running operations: inline status polling (device discovery)
- Chat: two-phase completion against an OpenAI-compatible service

Usage:
    python server.py              # Start server on localhost:8040
    python server.py --port 9000  # Custom port
"""

import argparse
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from motionbridge.api.chat import chat_router
from motionbridge.core.config import BridgeConfig
from motionbridge.mcp.protocol import SESSION_HEADER
from motionbridge.mcp.transport import mcp_router
from motionbridge.services import BridgeServices
from motionbridge.version import __version__

logger = logging.getLogger("Motionbridge")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(config: BridgeConfig) -> None:
    handlers = [logging.StreamHandler()]
    if config.server.log_file:
        handlers.append(logging.FileHandler(config.server.log_file, mode="a"))
    logging.basicConfig(
        level=getattr(logging, config.server.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )


def create_app(config: Optional[BridgeConfig] = None, services: Optional[BridgeServices] = None) -> FastAPI:
    config = config or (services.config if services else BridgeConfig.from_env())

    # --- Application Lifecycle ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Motionbridge Server starting...")
        bridge = services or BridgeServices(config)
        app.state.services = bridge
        try:
            await bridge.start()
            yield
        finally:
            logger.info("Shutting down Motionbridge Server...")
            await bridge.close()
            app.state.services = None
            logger.info("Motionbridge Server stopped.")

    app = FastAPI(
        title="Motionbridge",
        description="Session-based MCP tool-call bridge for motion-control backends",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.services = None

    # --- CORS ---
    # The mcp-session-id header must be readable by browser clients.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", SESSION_HEADER, "mcp-protocol-version"],
        expose_headers=[SESSION_HEADER],
    )

    app.include_router(mcp_router)
    app.include_router(chat_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        bridge = app.state.services
        if bridge is None:
            return {"status": "initializing", "version": __version__}
        provenance = bridge.registry.provenance
        return {
            "status": "ok",
            "version": __version__,
            "sessions": bridge.sessions.count(),
            "tools": bridge.registry.count(),
            "provenance": provenance.value if provenance else None,
        }

    return app


app = create_app()


# --- Main ---

def main(argv=None) -> int:
    config = BridgeConfig.from_env()

    parser = argparse.ArgumentParser(description="Motionbridge MCP tool-call bridge")
    parser.add_argument("--host", default=config.server.host, help="Host to bind to")
    parser.add_argument("--port", type=int, default=config.server.port, help="Port to bind to")
    parser.add_argument("--config", default=None, help="Optional YAML config file")
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable hot reload (environment configuration only, not combinable with --config)",
    )
    args = parser.parse_args(argv)
    # The reloader re-imports server:app, which is built from the environment.
    if args.reload and args.config:
        parser.error("--reload cannot be combined with --config; set MOTIONBRIDGE_* variables instead")

    if args.config:
        config = BridgeConfig.from_yaml(args.config)
    configure_logging(config)
    logger.info("Starting Motionbridge on %s:%d", args.host, args.port)

    try:
        if args.reload:
            uvicorn.run("server:app", host=args.host, port=args.port, reload=True, log_level=config.server.log_level)
        else:
            uvicorn.run(create_app(config), host=args.host, port=args.port, log_level=config.server.log_level)
    except OSError as e:
        if e.errno in (98, 10048):
            logger.error("Failed to start server on port %d. Port is likely in use.", args.port)
            print(f"\n[ERROR] Port {args.port} is already in use.")
            print("Stop the other instance or pass --port to choose a different one.")
            return 1
        raise
    return 0


if __name__ == "__main__":
    sys.exit(main())
