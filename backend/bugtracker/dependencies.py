"""
Bug Tracker Backend: Request Dependencies
===========================================

What:  FastAPI dependencies shared by the bug routes: the authenticated
       caller, the process-wide TagGenerator and the per-request services.
How:   Everything process-wide lives on `app.state` (set by create_app), so
       tests can build an app with their own settings and tag generator and
       override get_db_session to point at a test database.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bugtracker.config import Settings
from bugtracker.database import get_db_session
from bugtracker.exceptions import AuthenticationError, DatabaseError
from bugtracker.models.user import User
from bugtracker.security import decode_access_token
from bugtracker.services.bug_mutation_service import BugMutationService
from bugtracker.services.bug_query_service import BugQueryService
from bugtracker.services.tag_generator import TagGenerator

# auto_error=False: a missing header becomes our 401 body instead of
# FastAPI's default 403
bearer_scheme = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.config


def get_tag_generator(request: Request) -> TagGenerator:
    return request.app.state.tag_generator


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    config: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    """
    Resolve the bearer token to an existing user.

    Raises:
        AuthenticationError: no token, invalid token, or unknown user
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Not authorized, no token")

    user_id = decode_access_token(
        credentials.credentials,
        secret=config.jwt_secret_key,
        algorithm=config.jwt_algorithm,
    )
    try:
        user = await db.get(User, user_id)
    except SQLAlchemyError as e:
        raise DatabaseError(context={"error_type": type(e).__name__}) from e
    if user is None:
        raise AuthenticationError("User not found")
    return user


def get_query_service(db: AsyncSession = Depends(get_db_session)) -> BugQueryService:
    return BugQueryService(db)


def get_mutation_service(
    db: AsyncSession = Depends(get_db_session),
    tag_generator: TagGenerator = Depends(get_tag_generator),
) -> BugMutationService:
    return BugMutationService(db, tag_generator)
