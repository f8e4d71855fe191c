"""Minimal line-delimited JSON-RPC server used by the stdio tests."""

import json
import sys


def handle(message):
    method = message["method"]
    if method == "initialize":
        return {
            "protocolVersion": message["params"]["protocolVersion"],
            "capabilities": {"tools": {}},
            "serverInfo": {"name": "echo-server", "version": "1.0.0"},
        }
    if method == "tools/list":
        return {"tools": [{"name": "echo", "description": "Echo the input"}]}
    return {"method": method, "params": message.get("params")}


def main():
    sys.stderr.write("echo server ready\n")
    sys.stderr.flush()

    while True:
        line = sys.stdin.readline()
        if not line:
            break
        line = line.strip()
        if not line:
            continue

        message = json.loads(line)
        if "id" not in message or "method" not in message:
            continue

        if message["method"] == "fail":
            reply = {"jsonrpc": "2.0", "id": message["id"], "error": {"code": -32603, "message": "boom"}}
        else:
            reply = {"jsonrpc": "2.0", "id": message["id"], "result": handle(message)}
        sys.stdout.write(json.dumps(reply) + "\n")
        sys.stdout.flush()


if __name__ == "__main__":
    main()
