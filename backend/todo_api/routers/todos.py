"""Todo CRUD endpoints scoped to the authenticated user."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.orm import Session

from todo_api.core.deps import get_current_identity
from todo_api.core.rate_limit import rate_limit
from todo_api.db.session import get_db
from todo_api.schemas.todo import TodoCreate, TodoListOut, TodoOut, TodoSort, TodoStatusFilter, TodoUpdate
from todo_api.services.sessions import Identity
from todo_api.services.todos import create_todo, delete_todo, get_todo_for_user, list_todos, update_todo

router = APIRouter(dependencies=[Depends(rate_limit())])

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
# Keeps (page - 1) * limit inside a signed 64-bit OFFSET.
MAX_PAGE = 1_000_000


def _parse_int(value: str | None) -> int | None:
    if value is None or len(value) > 20:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _page_number(value: str | None) -> int:
    page = _parse_int(value)
    if page is None or page < 1:
        return 1
    return min(page, MAX_PAGE)


def _page_size(value: str | None) -> int:
    limit = _parse_int(value)
    if limit is None or limit < 1 or limit > MAX_PAGE_SIZE:
        return DEFAULT_PAGE_SIZE
    return limit


def _status_filter(value: str | None) -> TodoStatusFilter | None:
    try:
        return TodoStatusFilter(value) if value else None
    except ValueError:
        return None


def _sort_key(value: str | None) -> TodoSort:
    try:
        return TodoSort(value) if value else TodoSort.created_at
    except ValueError:
        return TodoSort.created_at


@router.get("", response_model=TodoListOut)
def get_todos(
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    status_filter: str | None = Query(default=None, alias="status"),
    sort_by: str | None = Query(default=None),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> TodoListOut:
    page_number = _page_number(page)
    page_size = _page_size(limit)
    items, total = list_todos(
        db,
        user_id=identity.user_id,
        page=page_number,
        limit=page_size,
        status=_status_filter(status_filter),
        sort_by=_sort_key(sort_by),
    )
    return TodoListOut(
        data=[TodoOut.model_validate(item) for item in items],
        page=page_number,
        limit=page_size,
        total=total,
    )


@router.post("", response_model=TodoOut, status_code=status.HTTP_201_CREATED)
def post_todo(
    payload: TodoCreate,
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> TodoOut:
    return TodoOut.model_validate(create_todo(db, user_id=identity.user_id, data=payload))


@router.get("/{todo_id}", response_model=TodoOut)
def get_todo(
    todo_id: int = Path(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> TodoOut:
    return TodoOut.model_validate(get_todo_for_user(db, todo_id=todo_id, user_id=identity.user_id))


@router.put("/{todo_id}", response_model=TodoOut)
def put_todo(
    payload: TodoUpdate,
    todo_id: int = Path(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> TodoOut:
    todo = update_todo(db, todo_id=todo_id, user_id=identity.user_id, data=payload)
    return TodoOut.model_validate(todo)


@router.delete("/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_todo(
    todo_id: int = Path(...),
    db: Session = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
) -> Response:
    delete_todo(db, todo_id=todo_id, user_id=identity.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
