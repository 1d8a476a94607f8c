from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from cotillion.database import get_db
from cotillion.models.api.participants import MembersResponse
from cotillion.services.directory_service import DirectoryService

router = APIRouter()


@router.get("/members", response_model=MembersResponse)
async def list_members(db: AsyncSession = Depends(get_db)) -> MembersResponse:
    """
    List every participant.

    Each member carries partnerId/partnerName when paired, null otherwise.
    """
    service = DirectoryService(db)
    return MembersResponse(members=await service.list_participants())
