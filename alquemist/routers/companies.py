from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from alquemist.core.auth import current_active_user
from alquemist.db.database import get_async_session, Company as CompanyModel
from alquemist.db.users import User
from alquemist.schemas.companies import CompanyCreate, CompanyRead

router = APIRouter()


@router.post("/", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreate,
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    """Create the caller's company and attach the caller to it."""
    if user.company_id is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User already belongs to a company")

    m = CompanyModel(**payload.model_dump())
    db.add(m)
    await db.flush()

    # The auth dependency may have loaded the user in another session.
    db_user = (await db.execute(select(User).where(User.id == user.id))).scalar_one()
    db_user.company_id = m.id

    await db.commit()
    await db.refresh(m)
    return CompanyRead(**m.to_schema)


@router.get("/me", response_model=CompanyRead)
async def get_my_company(
    user: User = Depends(current_active_user),
    db: AsyncSession = Depends(get_async_session),
):
    if user.company_id is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User has no company")
    res = await db.execute(select(CompanyModel).where(CompanyModel.id == user.company_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return CompanyRead(**m.to_schema)
