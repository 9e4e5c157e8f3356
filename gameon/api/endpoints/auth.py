from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm

from gameon.core import security
from gameon.schemas import auth_schemas, user_schemas
from gameon.services.user_service import UserService
from gameon.api.dependencies import get_user_service

router = APIRouter()

@router.post("/register", response_model=user_schemas.UserRead, status_code=status.HTTP_201_CREATED)
async def register_endpoint(
    user_in: user_schemas.UserCreate,
    user_service: UserService = Depends(get_user_service),
):
    return user_service.register(user_in)

@router.post("/login", response_model=auth_schemas.Token)
async def login_endpoint(
    form_data: OAuth2PasswordRequestForm = Depends(),
    user_service: UserService = Depends(get_user_service),
):
    user = user_service.authenticate(form_data.username, form_data.password)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    # 'sub' carries the user id; services only ever see that id.
    access_token = security.create_access_token(data={"sub": str(user.id)})
    return {"access_token": access_token, "token_type": "bearer"}

@router.get("/session", response_model=user_schemas.UserRead)
async def session_endpoint(
    current_user_id: int = Depends(security.get_current_user_id),
    user_service: UserService = Depends(get_user_service),
):
    return user_service.get_user(current_user_id)
