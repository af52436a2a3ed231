"""
Initial data seed (async, idempotent)
- Permission catalogue and page registry
- System settings singleton
- Optional bootstrap administrator
Run:  python scripts/seed/init_data.py [--admin <username> <email>]
"""

import os, sys
import asyncio
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..")))

from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.core.database import async_session_maker, engine
from elitetime.models import Base
from elitetime.models.shared.enums import UserRole
from elitetime.schemas.auth.user_schema import UserCreate
from elitetime.services.auth.navigation_service import NavigationService
from elitetime.services.auth.permission_service import PermissionService
from elitetime.services.auth.user_service import UserService
from elitetime.services.system.settings_service import SettingsService

# ----------------------------------------------------------------------
# SEED LOGIC
# ----------------------------------------------------------------------

async def seed_admin(db: AsyncSession, username: str, email: str):
    users = UserService(db)
    existing = await users.get_user_by_username(username)
    if existing:
        print(f"✓ Admin '{username}' already exists - skipping")
        return existing
    admin = await users.create_user(UserCreate(username=username, email=email, role=UserRole.ADMIN))
    print(f"✓ Admin '{admin.username}' created")
    return admin


async def seed(db: AsyncSession, admin=None):
    # 1) Permissions
    result = await PermissionService(db).seed_permissions()
    print(f"✓ Permissions ready: {result['created']} created, {result['updated']} updated")

    # 2) Pages and their permission links
    result = await NavigationService(db).seed_pages()
    print(f"✓ Pages ready: {result['created']} created, {result['updated']} updated")

    # 3) Settings singleton
    settings_row = await SettingsService(db).get_settings()
    print(f"✓ Settings ready: work {settings_row.work_start_time}-{settings_row.work_end_time}")

    # 4) Bootstrap admin
    if admin:
        await seed_admin(db, *admin)
        result = await PermissionService(db).grant_all_permissions_to_admins()
        print(f"✓ Admin permissions: {result}")

# ----------------------------------------------------------------------
# ASYNC ENTRY POINT
# ----------------------------------------------------------------------

def parse_admin(argv):
    if "--admin" not in argv:
        return None
    index = argv.index("--admin")
    try:
        return argv[index + 1], argv[index + 2]
    except IndexError:
        raise SystemExit("Usage: init_data.py --admin <username> <email>")


async def main(argv):
    admin = parse_admin(argv)

    # Create tables (safe if already created)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as db:
        try:
            await seed(db, admin)
            print("✅ Initial seed completed successfully!")
        except Exception as ex:
            await db.rollback()
            print(f"❌ Seed failed: {ex}")
            raise

if __name__ == "__main__":
    asyncio.run(main(sys.argv[1:]))
