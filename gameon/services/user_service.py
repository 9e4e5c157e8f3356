from typing import Optional

from gameon.core import security
from gameon.core.errors import NotFoundError, ValidationError
from gameon.models import User
from gameon.repositories.base import GameRepository
from gameon.schemas import user_schemas

class UserService:
    def __init__(self, repository: GameRepository):
        self.repository = repository

    def register(self, user_in: user_schemas.UserCreate) -> User:
        if self.repository.get_user_by_username(user_in.username):
            raise ValidationError("Username already exists")
        if self.repository.get_user_by_email(user_in.email):
            raise ValidationError("Email already exists")

        return self.repository.create_user(
            username=user_in.username,
            password_hash=security.get_password_hash(user_in.password),
            email=user_in.email,
            full_name=user_in.full_name,
            avatar_url=str(user_in.avatar_url) if user_in.avatar_url else None,
        )

    def authenticate(self, username: str, password: str) -> Optional[User]:
        user = self.repository.get_user_by_username(username)
        if not user or not security.verify_password(password, user.password):
            return None
        return user

    def get_user(self, user_id: int) -> User:
        user = self.repository.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
