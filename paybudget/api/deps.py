"""
FastAPI dependencies (DB session, current user, error translation)
"""
from fastapi import Depends, Request, HTTPException, status
from sqlalchemy.orm import Session

from paybudget.application.errors import (
    BudgetError, NotFoundError, BudgetValidationError, AlreadyInitializedError, StorageFailure,
)
from paybudget.infrastructure.db.session import get_db as _get_db
from paybudget.infrastructure.db.models import User


# Re-export get_db for routers
get_db = _get_db


def current_user_id(request: Request) -> int:
    """
    Id of the signed-in user (session cookie holds `user_id`)

    Raises:
        HTTPException(401): if nobody is signed in
    """
    user_id = request.session.get("user_id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    return int(user_id)


def get_current_user(
    user_id: int = Depends(current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """
    Signed-in user row

    Raises:
        HTTPException(401): if the session points at a missing user
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found"
        )
    return user


_STATUS_BY_ERROR = (
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (BudgetValidationError, status.HTTP_400_BAD_REQUEST),
    (AlreadyInitializedError, status.HTTP_409_CONFLICT),
    (StorageFailure, status.HTTP_503_SERVICE_UNAVAILABLE),
)


def to_http_exception(error: BudgetError) -> HTTPException:
    """Translate a use-case error into the matching HTTP status"""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return HTTPException(status_code=status_code, detail=str(error))
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))
