#!/usr/bin/env python3
"""Local stand-in for the Supabase auth and storage endpoints the API calls."""

from __future__ import annotations

import argparse
import json
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, urlparse

_USERS = {
    "admin-token": {
        "id": "11111111-1111-1111-1111-111111111111",
        "email": "admin@dolks.local",
        "password": "admin-password",
    },
    "company-token": {
        "id": "22222222-2222-2222-2222-222222222222",
        "email": "company@dolks.local",
        "password": "company-password",
    },
    "crew-token": {
        "id": "33333333-3333-3333-3333-333333333333",
        "email": "crew@dolks.local",
        "password": "crew-password",
    },
}


def _user_payload_for_token(token: str) -> dict[str, object] | None:
    user = _USERS.get(token)
    if user is None:
        return None
    return {"id": user["id"], "email": user["email"], "app_metadata": {}, "user_metadata": {}}


def _session_for_credentials(email: str, password: str) -> dict[str, object] | None:
    for token, user in _USERS.items():
        if user["email"] == email and user["password"] == password:
            return {
                "access_token": token,
                "refresh_token": f"refresh-{token}",
                "token_type": "bearer",
                "user": _user_payload_for_token(token),
            }
    return None


class MockSupabaseHandler(BaseHTTPRequestHandler):
    server_version = "MockSupabase/1.0"

    def do_GET(self) -> None:  # noqa: N802 - stdlib handler signature
        if self.path == "/healthz":
            self._write_json(HTTPStatus.OK, {"status": "ok"})
            return

        if self.path != "/auth/v1/user":
            self._write_json(HTTPStatus.NOT_FOUND, {"msg": "not found"})
            return

        user = _user_payload_for_token(self._bearer_token())
        if user is None:
            self._write_json(HTTPStatus.UNAUTHORIZED, {"msg": "invalid token"})
            return
        self._write_json(HTTPStatus.OK, user)

    def do_POST(self) -> None:  # noqa: N802 - stdlib handler signature
        parsed = urlparse(self.path)
        body = self._read_body()

        if parsed.path == "/auth/v1/token" and parse_qs(parsed.query).get("grant_type") == ["password"]:
            try:
                credentials = json.loads(body or b"{}")
            except json.JSONDecodeError:
                credentials = {}
            session = _session_for_credentials(str(credentials.get("email")), str(credentials.get("password")))
            if session is None:
                self._write_json(
                    HTTPStatus.BAD_REQUEST,
                    {"error": "invalid_grant", "error_description": "Invalid login credentials"},
                )
                return
            self._write_json(HTTPStatus.OK, session)
            return

        if parsed.path.startswith("/storage/v1/object/"):
            key = parsed.path.removeprefix("/storage/v1/object/")
            self._write_json(HTTPStatus.OK, {"Key": key, "size": len(body)})
            return

        self._write_json(HTTPStatus.NOT_FOUND, {"msg": "not found"})

    def do_DELETE(self) -> None:  # noqa: N802 - stdlib handler signature
        if not self.path.startswith("/auth/v1/admin/users/"):
            self._write_json(HTTPStatus.NOT_FOUND, {"msg": "not found"})
            return
        user_id = self.path.rsplit("/", maxsplit=1)[-1]
        if not any(user["id"] == user_id for user in _USERS.values()):
            self._write_json(HTTPStatus.NOT_FOUND, {"msg": "User not found"})
            return
        self._write_json(HTTPStatus.OK, {})

    def log_message(self, _: str, *args: object) -> None:
        # Keep logs terse for test runs.
        if args:
            print("mock-supabase:", *args)

    def _bearer_token(self) -> str:
        authorization = self.headers.get("Authorization", "")
        if not authorization.lower().startswith("bearer "):
            return ""
        return authorization.split(" ", maxsplit=1)[1].strip()

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _write_json(self, status: HTTPStatus, payload: dict[str, object]) -> None:
        raw = json.dumps(payload).encode("utf-8")
        self.send_response(status.value)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


def main() -> None:
    parser = argparse.ArgumentParser(description="Mock Supabase auth and storage endpoints.")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=54321)
    args = parser.parse_args()

    server = ThreadingHTTPServer((args.host, args.port), MockSupabaseHandler)
    print(f"mock-supabase listening on http://{args.host}:{args.port}", flush=True)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
