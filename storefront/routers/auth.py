import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import auth, models, schemas
from ..database import get_db
from ..errors import Conflict, InvalidInput, NotFound
from ..ratelimit import auth_limit

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/register", response_model=schemas.MessageOut, dependencies=[Depends(auth_limit)])
async def register(user: schemas.RegisterIn, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(models.User).where(models.User.email == user.email))
    if result.scalar_one_or_none():
        raise Conflict("Duplicated Email")
    result = await db.execute(select(models.User).where(models.User.name == user.name))
    if result.scalar_one_or_none():
        raise InvalidInput("The name is already in use")

    new_user = models.User(
        email=user.email,
        name=user.name,
        password=auth.get_password_hash(user.password),
    )
    db.add(new_user)
    await db.commit()
    logger.info("Registered user %s", new_user.email)
    return {"message": "Register successful"}


@router.post("/login", response_model=schemas.LoginOut, dependencies=[Depends(auth_limit)])
async def login(credentials: schemas.LoginIn, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(models.User).where(models.User.email == credentials.email))
    user = result.scalar_one_or_none()
    if not user:
        raise NotFound("User not found")
    if not user.enabled:
        raise InvalidInput("User is banned")
    if not auth.verify_password(credentials.password, user.password):
        raise InvalidInput("Invalid Password")

    payload = {"id": user.id, "email": user.email, "role": user.role}
    token = auth.create_access_token(data=payload)
    return {"message": "Login successful", "user": payload, "token": token}


async def _current_user_out(current_user: schemas.CurrentUser, db: AsyncSession):
    user = await db.get(models.User, current_user.id)
    if not user:
        raise NotFound("User not found")
    return {"user": user}


@router.get("/current-user", response_model=schemas.CurrentUserOut)
async def current_user(
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.get_current_user),
):
    return await _current_user_out(current_user, db)


@router.get("/current-admin", response_model=schemas.CurrentUserOut)
async def current_admin(
    db: AsyncSession = Depends(get_db),
    current_user: schemas.CurrentUser = Depends(auth.require_admin),
):
    return await _current_user_out(current_user, db)
