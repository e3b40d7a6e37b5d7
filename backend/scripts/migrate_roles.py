"""
Role migration: give every authorized volunteer a role and a deleted flag.

Usage (from backend/):
    python -m scripts.migrate_roles --root-email someone@example.com [--yes]

Existing roles are kept. The volunteer whose email matches --root-email
becomes 'root' if they have no role yet.
"""

import argparse
import asyncio
import sys
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boxtracker.core.config import settings
from boxtracker.core.logging import setup_logging
from boxtracker.core.time_utils import get_utc_now
from boxtracker.db.session import build_engine, build_sessionmaker
from boxtracker.models.volunteer import AuthorizedVolunteer, VolunteerRole


@dataclass
class MigrationResult:
    total: int = 0
    changed: int = 0
    root_found: bool = False


async def migrate_volunteers(session: AsyncSession, root_email: str) -> MigrationResult:
    result = MigrationResult()
    volunteers = (await session.execute(select(AuthorizedVolunteer))).scalars().all()
    root_email = root_email.strip().lower()
    now = get_utc_now()

    for volunteer in volunteers:
        result.total += 1
        is_root = bool(root_email) and (volunteer.email or "").lower() == root_email
        if is_root:
            result.root_found = True

        role = volunteer.role or (VolunteerRole.ROOT if is_root else VolunteerRole.VOLUNTEER)
        deleted = volunteer.deleted if volunteer.deleted is not None else False
        if role != volunteer.role or deleted != volunteer.deleted:
            volunteer.role = role
            volunteer.deleted = deleted
            volunteer.modified_at = now
            result.changed += 1
        print(f"  {volunteer.display_name or volunteer.email or volunteer.uid} -> {VolunteerRole(role).value}")

    await session.commit()
    return result


async def main(root_email: str) -> int:
    engine = build_engine(settings.DATABASE_URL)
    sessionmaker = build_sessionmaker(engine)
    try:
        async with sessionmaker() as session:
            result = await migrate_volunteers(session, root_email)
    finally:
        await engine.dispose()

    print(f"\nVolunteers: {result.total} checked, {result.changed} updated")
    if not result.root_found:
        print(f"WARNING: root user {root_email} not found among authorized volunteers.")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--root-email", required=True)
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    args = parser.parse_args()

    setup_logging()
    if settings.ENVIRONMENT == "production" and not args.yes:
        answer = input("This will modify PRODUCTION data. Continue? (yes/no): ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Migration cancelled.")
            sys.exit(0)
    sys.exit(asyncio.run(main(args.root_email)))
