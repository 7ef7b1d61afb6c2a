"""Exercise a running server: initialize, list, read, and call every tool."""

from __future__ import annotations

import argparse
import itertools
import json
import sys
from typing import Any

import httpx

_IDS = itertools.count(1)


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke-test a dad jokes MCP server.")
    parser.add_argument(
        "--url",
        default="http://localhost:3000/mcp",
        help="Protocol endpoint (default: http://localhost:3000/mcp).",
    )
    parser.add_argument(
        "--joke-id",
        type=int,
        default=0,
        help="Index passed to tell-me-a-joke (default: 0).",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        default=10.0,
        help="Per-request timeout in seconds (default: 10).",
    )
    return parser.parse_args()


def _call(client: httpx.Client, url: str, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
    envelope: dict[str, Any] = {"jsonrpc": "2.0", "id": next(_IDS), "method": method}
    if params is not None:
        envelope["params"] = params
    response = client.post(
        url,
        json=envelope,
        headers={"Accept": "application/json, text/event-stream"},
    )
    response.raise_for_status()
    return response.json()


def _show(label: str, reply: dict[str, Any]) -> bool:
    print(f"--- {label}")
    print(json.dumps(reply.get("result", reply.get("error")), indent=2))
    return "error" not in reply


def main() -> int:
    args = _parse_args()
    ok = True
    with httpx.Client(timeout=args.timeout_seconds) as client:
        ok &= _show(
            "initialize",
            _call(
                client,
                args.url,
                "initialize",
                {
                    "protocolVersion": "2025-06-18",
                    "capabilities": {},
                    "clientInfo": {"name": "smoke-client", "version": "0.1"},
                },
            ),
        )
        tools = _call(client, args.url, "tools/list")
        ok &= _show("tools/list", tools)
        resources = _call(client, args.url, "resources/list")
        ok &= _show("resources/list", resources)
        for resource in resources.get("result", {}).get("resources", []):
            ok &= _show(
                f"resources/read {resource['uri']}",
                _call(client, args.url, "resources/read", {"uri": resource["uri"]}),
            )
        ok &= _show(
            "tools/call tell-me-a-joke",
            _call(
                client,
                args.url,
                "tools/call",
                {"name": "tell-me-a-joke", "arguments": {"id": args.joke_id}},
            ),
        )
        ok &= _show(
            "tools/call tell-me-a-random-joke",
            _call(client, args.url, "tools/call", {"name": "tell-me-a-random-joke", "arguments": {}}),
        )
    print("\n=== Smoke summary ===")
    print("OK" if ok else "FAILED")
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
