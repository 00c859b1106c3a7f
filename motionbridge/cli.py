"""
Motionbridge CLI: operational utilities for the bridge server.

Usage:
    python -m motionbridge.cli serve [options]
    python -m motionbridge.cli chat "Which devices are connected?"
    python -m motionbridge.cli tools
    python -m motionbridge.cli status
    python -m motionbridge.cli call startHoming --args '{"deviceRef": "line3-axis-7"}'

Commands:
    serve     Run the bridge server with uvicorn.
    chat      Ask a question through the two-phase chat surface.
    tools     List the registered tools.
    status    Report bridge health and tool-bridge reachability.
    call      Execute one tool directly, without the language model.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Optional

from motionbridge.sdk.client import MotionbridgeClient
from motionbridge.sdk.errors import MotionbridgeError, MotionbridgeToolError

_DEFAULT_SERVER_URL = "http://127.0.0.1:8040"


def _resolve_server_url(server_url: Optional[str]) -> str:
    """
    Return canonical server URL.

    Resolution order:
      1. Explicit --server-url argument
      2. MOTIONBRIDGE_SERVER_URL environment variable
      3. http://127.0.0.1:8040
    """
    if server_url:
        return server_url.strip()
    env_url = os.environ.get("MOTIONBRIDGE_SERVER_URL")
    if env_url and env_url.strip():
        return env_url.strip()
    return _DEFAULT_SERVER_URL


def _client(args: argparse.Namespace) -> MotionbridgeClient:
    return MotionbridgeClient(_resolve_server_url(args.server_url), timeout=args.timeout_seconds)


def _emit(args: argparse.Namespace, payload: Any, text: str) -> None:
    if args.json:
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(text)


# ─────────────────────────────────────────────────────────────────────────────
# Commands
# ─────────────────────────────────────────────────────────────────────────────

def cmd_serve(args: argparse.Namespace) -> int:
    import server

    argv = ["--host", args.host, "--port", str(args.port)] if args.host else ["--port", str(args.port)]
    if args.config:
        argv += ["--config", args.config]
    return server.main(argv)


def cmd_chat(args: argparse.Namespace) -> int:
    with _client(args) as client:
        reply = client.chat(args.question)
    tools = ", ".join(reply.get("toolsUsed") or []) or "none"
    _emit(args, reply, f"{reply.get('answer', '')}\n\n[tools used: {tools}]")
    return 0


def cmd_tools(args: argparse.Namespace) -> int:
    with _client(args) as client:
        tools = client.list_tools()
    lines = [f"{t['name']:<30} {t.get('description', '')}" for t in tools]
    lines.append(f"\n{len(tools)} tools")
    _emit(args, tools, "\n".join(lines))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    with _client(args) as client:
        health = client.health()
        status = client.mcp_status()
    payload = {"health": health, "mcp": status}
    text = (
        f"Server: {health.get('status')} (version {health.get('version')})\n"
        f"Live sessions: {health.get('sessions')}\n"
        f"Tool bridge reachable: {'yes' if status.get('mcpServerAvailable') else 'no'} ({status.get('discoveryUrl')})\n"
        f"Tools registered: {status.get('toolsAvailable')} ({status.get('provenance')})"
    )
    _emit(args, payload, text)
    return 0


def cmd_call(args: argparse.Namespace) -> int:
    try:
        tool_args = json.loads(args.args) if args.args else {}
    except ValueError as exc:
        print(f"[ERROR] --args is not valid JSON: {exc}", file=sys.stderr)
        return 1
    if not isinstance(tool_args, dict):
        print("[ERROR] --args must be a JSON object", file=sys.stderr)
        return 1
    try:
        with _client(args) as client:
            result = client.execute_tool(args.tool, tool_args)
    except MotionbridgeToolError as exc:
        print(f"[ERROR] {args.tool}: {exc.detail}", file=sys.stderr)
        if exc.hint:
            print(f"[HINT] {exc.hint}", file=sys.stderr)
        return 1
    text = result if isinstance(result, str) else json.dumps(result, indent=2, default=str)
    _emit(args, result, text)
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Argument parser
# ─────────────────────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="motionbridge",
        description="Motionbridge CLI: operational utilities for the bridge server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Examples:\n"
               "  motionbridge serve --port 8040\n"
               "  motionbridge status\n"
               "  motionbridge tools --json\n"
               "  motionbridge call getCia402State --args '{\"deviceRef\": \"line3-axis-7\"}'\n",
    )
    parser.add_argument(
        "--server-url",
        type=str,
        default=None,
        metavar="URL",
        help="Bridge server URL (default: MOTIONBRIDGE_SERVER_URL or local default).",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=180.0,
        help="HTTP timeout for requests to the bridge.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        default=False,
        help="Print raw JSON instead of readable text.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the bridge server.")
    serve.add_argument("--host", default=None, help="Host to bind to.")
    serve.add_argument("--port", type=int, default=8040, help="Port to bind to.")
    serve.add_argument("--config", default=None, metavar="PATH", help="Optional YAML config file.")

    chat = subparsers.add_parser("chat", help="Ask a question through the chat surface.")
    chat.add_argument("question", help="Question to ask.")

    subparsers.add_parser("tools", help="List registered tools.")
    subparsers.add_parser("status", help="Report bridge and tool-bridge status.")

    call = subparsers.add_parser("call", help="Execute one tool directly.")
    call.add_argument("tool", help="Tool name.")
    call.add_argument("--args", default=None, metavar="JSON", help="Tool arguments as a JSON object.")
    return parser


_COMMANDS = {
    "serve": cmd_serve,
    "chat": cmd_chat,
    "tools": cmd_tools,
    "status": cmd_status,
    "call": cmd_call,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = _COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return handler(args)
    except MotionbridgeError as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
