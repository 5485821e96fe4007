"""Service helpers for per-user todo CRUD, pagination and filtering."""

from __future__ import annotations

from sqlalchemy.orm import Session

from todo_api.core.exceptions import ForbiddenError, NotFoundError
from todo_api.models.todo import Todo
from todo_api.schemas.todo import TodoCreate, TodoSort, TodoStatusFilter, TodoUpdate

_ORDERINGS = {
    TodoSort.created_at: (Todo.created_at.desc(), Todo.id.desc()),
    TodoSort.title: (Todo.title.asc(), Todo.id.asc()),
    TodoSort.updated_at: (Todo.updated_at.desc(), Todo.id.desc()),
}


def list_todos(
    db: Session,
    *,
    user_id: int,
    page: int = 1,
    limit: int = 10,
    status: TodoStatusFilter | None = None,
    sort_by: TodoSort = TodoSort.created_at,
) -> tuple[list[Todo], int]:
    query = db.query(Todo).filter(Todo.user_id == user_id)
    if status == TodoStatusFilter.completed:
        query = query.filter(Todo.completed.is_(True))
    elif status == TodoStatusFilter.pending:
        query = query.filter(Todo.completed.is_(False))

    total = query.count()
    items = query.order_by(*_ORDERINGS[sort_by]).offset((page - 1) * limit).limit(limit).all()
    return items, total


def create_todo(db: Session, *, user_id: int, data: TodoCreate) -> Todo:
    todo = Todo(user_id=user_id, title=data.title, description=data.description)
    db.add(todo)
    db.commit()
    db.refresh(todo)
    return todo


def get_todo_for_user(db: Session, *, todo_id: int, user_id: int) -> Todo:
    todo = db.get(Todo, todo_id)
    if not todo:
        raise NotFoundError("todo_not_found")
    if todo.user_id != user_id:
        raise ForbiddenError()
    return todo


def update_todo(db: Session, *, todo_id: int, user_id: int, data: TodoUpdate) -> Todo:
    todo = get_todo_for_user(db, todo_id=todo_id, user_id=user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(todo, field, value)
    db.add(todo)
    db.commit()
    db.refresh(todo)
    return todo


def delete_todo(db: Session, *, todo_id: int, user_id: int) -> None:
    deleted = (
        db.query(Todo)
        .filter(Todo.id == todo_id, Todo.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    if not deleted:
        raise NotFoundError("todo_not_found")
