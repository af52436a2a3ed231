from dataclasses import asdict
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from elitetime.api.dependencies import require_role
from elitetime.core.database import get_async_session
from elitetime.models.auth.user import User
from elitetime.models.shared.enums import UserRole
from elitetime.schemas.system.settings_schema import LdapSyncResponse
from elitetime.services.directory.ldap_client import DirectoryClient, get_directory_client
from elitetime.services.system.ldap_sync_service import LdapSyncService

router = APIRouter()


@router.post("/sync", response_model=LdapSyncResponse)
async def sync_directory(
    session: AsyncSession = Depends(get_async_session),
    directory: DirectoryClient = Depends(get_directory_client),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    """Import directory accounts; refused while the sync interval has not elapsed"""
    result = await LdapSyncService(session, directory).sync(actor_id=current_user.id)
    return LdapSyncResponse(**result)


@router.get("/users")
async def list_directory_users(
    directory: DirectoryClient = Depends(get_directory_client),
    current_user: User = Depends(require_role(UserRole.ADMIN)),
):
    entries = await directory.search_users()
    return {"success": True, "count": len(entries), "users": [asdict(e) for e in entries]}
