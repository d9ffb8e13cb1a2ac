from __future__ import annotations

import argparse
import asyncio

import oauth2_accounts.db as db
from oauth2_accounts.db.models import Base, OpenIdIdentity
from oauth2_accounts.db.repos import OpenIdIdentityRepository, UserRepository
from oauth2_accounts.services import list_identities, remove_identity


async def _init_db() -> None:
    async with db.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _list_identities(user_id: int) -> int:
    async with db.SessionMaker() as session:
        user = await UserRepository(session).get_by_id(user_id)
        if user is None:
            print(f"No user with id {user_id}")
            return 1
        for identity in await list_identities(session, user):
            print(identity.identity)
    return 0


async def _unlink_identity(user_id: int, provider: str, uid: str) -> int:
    async with db.SessionMaker() as session:
        user = await UserRepository(session).get_by_id(user_id)
        if user is None:
            print(f"No user with id {user_id}")
            return 1
        removed = await remove_identity(session, user, provider, uid)
    print("Removed 1 identity" if removed else "No matching identity")
    return 0


async def _import_openid_identity(user_id: int, identity: str) -> int:
    async with db.SessionMaker() as session:
        if await UserRepository(session).get_by_id(user_id) is None:
            print(f"No user with id {user_id}")
            return 1
        repo = OpenIdIdentityRepository(session)
        if await repo.get_by_identity(identity) is not None:
            print(f"OpenID identity '{identity}' already recorded")
            return 1
        await repo.add(OpenIdIdentity(user_id=user_id, identity=identity), flush=False)
        await session.commit()
    print(f"Recorded legacy OpenID identity for user {user_id}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(prog="oauth2-accounts")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("init-db")

    list_cmd = sub.add_parser("list-identities")
    list_cmd.add_argument("user_id", type=int)

    unlink_cmd = sub.add_parser("unlink-identity")
    unlink_cmd.add_argument("user_id", type=int)
    unlink_cmd.add_argument("provider")
    unlink_cmd.add_argument("uid")

    import_cmd = sub.add_parser("import-openid-identity")
    import_cmd.add_argument("user_id", type=int)
    import_cmd.add_argument("identity")

    args = parser.parse_args()

    if args.cmd == "init-db":
        asyncio.run(_init_db())
    elif args.cmd == "list-identities":
        raise SystemExit(asyncio.run(_list_identities(args.user_id)))
    elif args.cmd == "unlink-identity":
        raise SystemExit(asyncio.run(_unlink_identity(args.user_id, args.provider, args.uid)))
    elif args.cmd == "import-openid-identity":
        raise SystemExit(asyncio.run(_import_openid_identity(args.user_id, args.identity)))
    else:
        raise SystemExit(2)
