"""Wire-level integration tests for the MCP stdio server.

Each test starts ``python -m pagescope.server`` and speaks JSON-RPC over its
stdin/stdout. Only requests that fail before any network access are used.
"""

from __future__ import annotations

import json
import subprocess
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

_INITIALIZE = [
    {
        "jsonrpc": "2.0",
        "id": 1,
        "method": "initialize",
        "params": {
            "protocolVersion": "2025-11-25",
            "capabilities": {},
            "clientInfo": {"name": "pytest", "version": "0"},
        },
    },
    {"jsonrpc": "2.0", "method": "notifications/initialized"},
]


def _run_mcp_exchange(env: dict[str, str], cwd: Path, messages: list[dict]) -> dict[int, dict]:
    proc = subprocess.Popen(
        [sys.executable, "-m", "pagescope.server"],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
        cwd=cwd,
    )
    assert proc.stdin is not None
    assert proc.stdout is not None
    assert proc.stderr is not None

    for message in [*_INITIALIZE, *messages]:
        proc.stdin.write(json.dumps(message) + "\n")
    proc.stdin.flush()

    # Keep stdin open until every request is answered; closing it early ends
    # the session before in-flight tool calls have replied.
    expected_ids = {1} | {msg["id"] for msg in messages if "id" in msg}
    responses: dict[int, dict] = {}
    while not expected_ids <= responses.keys():
        line = proc.stdout.readline()
        if not line:
            break
        if line.strip():
            response = json.loads(line)
            if response.get("id") is not None:
                responses[response["id"]] = response

    proc.stdin.close()
    proc.stderr.read()
    proc.wait(timeout=10)
    proc.stdout.close()
    proc.stderr.close()
    return responses


def _call(request_id: int, arguments: dict) -> dict:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "tools/call",
        "params": {"name": "fetch_and_analyze", "arguments": arguments},
    }


def _error_payload(response: dict) -> dict:
    result = response["result"]
    assert result["isError"] is True
    text = result["content"][0]["text"]
    assert "Error executing tool" not in text
    return json.loads(text)["error"]


def test_initialize_reports_server_name(subprocess_env: dict[str, str], tmp_path: Path) -> None:
    responses = _run_mcp_exchange(subprocess_env, tmp_path, [])
    assert responses[1]["result"]["serverInfo"]["name"] == "pagescope"


def test_tool_is_listed(subprocess_env: dict[str, str], tmp_path: Path) -> None:
    responses = _run_mcp_exchange(
        subprocess_env, tmp_path, [{"jsonrpc": "2.0", "id": 2, "method": "tools/list"}]
    )
    tools = {tool["name"]: tool for tool in responses[2]["result"]["tools"]}
    assert "fetch_and_analyze" in tools
    schema = tools["fetch_and_analyze"]["inputSchema"]
    assert schema["required"] == ["url"]
    assert {"url", "question", "use_cache"} <= schema["properties"].keys()


def test_errors_serialize_to_structured_envelope(
    subprocess_env: dict[str, str], tmp_path: Path
) -> None:
    responses = _run_mcp_exchange(
        subprocess_env,
        tmp_path,
        [
            _call(2, {"url": "http://127.0.0.1/admin"}),
            _call(3, {"url": "ftp://example.com/file"}),
            _call(4, {"url": ""}),
        ],
    )

    blocked = _error_payload(responses[2])
    assert blocked["code"] == "ADDRESS_BLOCKED"
    assert blocked["recoverable"] is False
    assert blocked["suggestion"]

    scheme = _error_payload(responses[3])
    assert scheme["code"] == "SCHEME_NOT_ALLOWED"

    invalid = _error_payload(responses[4])
    assert invalid["code"] == "INVALID_INPUT"
    assert "url must not be empty" in invalid["message"]
