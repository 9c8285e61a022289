from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from content_api.database import get_db
from content_api.dependencies import PaginationParams, get_current_user
from content_api.schemas import LoginResponse, UserLogin, UserPage, UserRegister, UserResponse, UserUpdate
from content_api.services import user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])

# --- Public ---

@router.post("/register", status_code=201, response_model=UserResponse)
async def register(data: UserRegister, db: AsyncSession = Depends(get_db)):
    return await user_service.register_user(db, data)

@router.post("/login", response_model=LoginResponse)
async def login(data: UserLogin, db: AsyncSession = Depends(get_db)):
    return await user_service.login(db, data)

# --- Bearer token required ---

@router.get("", response_model=UserPage, dependencies=[Depends(get_current_user)])
async def list_users(pagination: PaginationParams = Depends(), db: AsyncSession = Depends(get_db)):
    return await user_service.get_users(db, pagination.limit, pagination.offset)

@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(get_current_user)])
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_user(db, user_id)

@router.put("/{user_id}", response_model=UserResponse, dependencies=[Depends(get_current_user)])
async def update_user(user_id: int, data: UserUpdate, db: AsyncSession = Depends(get_db)):
    return await user_service.update_user(db, user_id, data)

@router.delete("/{user_id}", status_code=204, dependencies=[Depends(get_current_user)])
async def delete_user(user_id: int, db: AsyncSession = Depends(get_db)):
    await user_service.delete_user(db, user_id)
    return Response(status_code=204)
