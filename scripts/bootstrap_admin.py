#!/usr/bin/env python3
"""Emit deterministic SQL that grants a DOLKS console role through ``user_roles``."""

from __future__ import annotations

import argparse


def _quote_sql(value: str) -> str:
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_sql(*, role: str, user_id: str | None, email: str | None) -> str:
    role_value = _quote_sql(role)

    if user_id:
        target_select = f"select {_quote_sql(user_id)}::uuid as user_id"
    else:
        assert email is not None
        target_select = f"select id as user_id from auth.users where email = {_quote_sql(email)}"

    return f"""-- DOLKS role bootstrap SQL
-- Run this in the Supabase SQL editor (or equivalent privileged Postgres session).

insert into public.user_roles (user_id, role)
select target.user_id, {role_value}::app_role
from ({target_select}) as target
where not exists (
  select 1 from public.user_roles ur
  where ur.user_id = target.user_id and ur.role = {role_value}::app_role
);
"""


def main() -> None:
    parser = argparse.ArgumentParser(description="Emit SQL to grant a DOLKS console role.")
    parser.add_argument(
        "--role",
        choices=["user", "moderator", "admin"],
        default="admin",
        help="Role inserted into public.user_roles",
    )
    identity_group = parser.add_mutually_exclusive_group(required=True)
    identity_group.add_argument("--user-id", help="Supabase auth.users id (UUID)")
    identity_group.add_argument("--email", help="Supabase auth.users email")
    args = parser.parse_args()

    print(render_sql(role=args.role, user_id=args.user_id, email=args.email))


if __name__ == "__main__":
    main()
