"""User registration and profile routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from welltrack.api.deps import get_current_user, get_db
from welltrack.db.supabase import DatabaseService
from welltrack.models.user import User, UserCreate, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=User, status_code=201)
async def register_user(request: UserCreate, db: DatabaseService = Depends(get_db)):
    if db.get_user_by_email(request.email):
        raise HTTPException(status_code=409, detail="User with this email already exists")

    user = db.create_user(request)
    logger.info("Registered user %s", user.id)
    return user


@router.get("/me", response_model=User)
async def get_me(user: User = Depends(get_current_user)):
    return user


@router.patch("/me", response_model=User)
async def update_me(
    request: UserUpdate,
    user: User = Depends(get_current_user),
    db: DatabaseService = Depends(get_db),
):
    if request.email and request.email.lower() != user.email:
        existing = db.get_user_by_email(request.email)
        if existing and existing.id != user.id:
            raise HTTPException(status_code=409, detail="User with this email already exists")
    return db.update_user(user.id, request)
