import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Request, status
from sqlalchemy.orm import Session

from userdata.core.results import ErrorKind, Failure, Success
from userdata.database import Database
from userdata.queries import users as user_queries
from userdata.queries.users import MAX_ID
from userdata.schemas.user_schemas import UserResponse

router = APIRouter(tags=['users'])

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONSTRAINT: status.HTTP_409_CONFLICT,
    ErrorKind.CONSISTENCY: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.STORAGE: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(database: Database = Depends(get_database)):
    db = database.new_session()
    try:
        yield db
    finally:
        db.close()


def unwrap(result: Success | Failure) -> Any:
    if result.ok:
        return result.value

    if result.payload:
        logger.info('Request failed with %s: %s', result.error.value, result.payload)
    raise HTTPException(
        status_code=STATUS_BY_ERROR[result.error],
        detail=result.model_dump(mode='json', exclude={'payload'}),
    )


@router.post('', response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(payload: Any = Body(...), db: Session = Depends(get_db)):
    return unwrap(user_queries.create_user(db, payload))


@router.get('', response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return unwrap(user_queries.list_users(db))


@router.get('/search', response_model=list[UserResponse])
def search_users(
    first_name: str = Query(default='%'),
    last_name: str = Query(default='%'),
    db: Session = Depends(get_db),
):
    return unwrap(user_queries.get_users_with_name_like(db, first_name, last_name))


@router.get('/by-email', response_model=UserResponse)
def get_user_by_email(email: str = Query(...), db: Session = Depends(get_db)):
    return unwrap(user_queries.get_user_by_email(db, email))


@router.get('/{user_id}', response_model=UserResponse)
def get_user(user_id: int = Path(..., ge=1, le=MAX_ID), db: Session = Depends(get_db)):
    return unwrap(user_queries.get_user_by_id(db, user_id))


@router.patch('/{user_id}', response_model=UserResponse)
def rename_user(
    user_id: int = Path(..., ge=1, le=MAX_ID),
    payload: dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
):
    return unwrap(
        user_queries.update_user_names(
            db,
            user_id,
            first_name=payload.get('first_name'),
            last_name=payload.get('last_name'),
        )
    )


@router.delete('', status_code=status.HTTP_204_NO_CONTENT)
def delete_user(email: str = Query(...), db: Session = Depends(get_db)):
    unwrap(user_queries.delete_user_by_email(db, email))
