"""Task endpoints: create, list (own / all), fetch, update, delete."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from taskapi.api.v1.auth import authenticate, require_admin
from taskapi.core.database import get_db
from taskapi.schemas.auth import CurrentUser
from taskapi.schemas.task import (
    TaskCreateRequest,
    TaskListResponse,
    TaskOut,
    TaskResponse,
    TaskUpdateRequest,
)
from taskapi.services import tasks as task_store

router = APIRouter()


def _list_query(
    page: Annotated[str | None, Query(description="Page number, 1-based (default 1)")] = None,
    limit: Annotated[str | None, Query(description="Page size, 1-100 (default 10)")] = None,
    search: Annotated[str | None, Query(description="Case-insensitive title substring")] = None,
    sort: Annotated[str | None, Query(description="field:asc|desc (default createdAt:desc)")] = None,
) -> task_store.TaskQuery:
    """Query parameters are taken as strings so bad values fall back instead of failing."""
    return task_store.TaskQuery.from_params(page=page, limit=limit, search=search, sort=sort)


def _list_response(result: task_store.TaskPage) -> TaskListResponse:
    return TaskListResponse(
        data=[TaskOut.from_task(t) for t in result.items],
        page=result.page,
        limit=result.limit,
        total=result.total,
        total_pages=result.total_pages,
        message="Tasks fetched successfully.",
    )


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskCreateRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(authenticate)],
) -> TaskResponse:
    """Create a task owned by the caller."""
    task = task_store.create_task(
        db,
        owner_id=user.id,
        title=body.title,
        description=body.description,
        status=body.status,
    )
    return TaskResponse(data=TaskOut.from_task(task), message="Task created successfully.")


@router.get("", response_model=TaskListResponse)
def list_my_tasks(
    query: Annotated[task_store.TaskQuery, Depends(_list_query)],
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(authenticate)],
) -> TaskListResponse:
    """
    List the caller's tasks, paginated.

    Query: page, limit (max 100), search (title substring), sort (e.g. title:asc).
    """
    return _list_response(task_store.list_owned(db, user.id, query))


@router.get("/all", response_model=TaskListResponse)
def list_all_tasks(
    query: Annotated[task_store.TaskQuery, Depends(_list_query)],
    db: Annotated[Session, Depends(get_db)],
    _admin: Annotated[CurrentUser, Depends(require_admin)],
) -> TaskListResponse:
    """List tasks across all users (admin only). Same query parameters as GET /tasks."""
    return _list_response(task_store.list_all(db, query))


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: str,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(authenticate)],
) -> TaskResponse:
    task = task_store.get_owned(db, user.id, task_id)
    return TaskResponse(data=TaskOut.from_task(task), message="Task fetched successfully.")


@router.put("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: str,
    body: TaskUpdateRequest,
    db: Annotated[Session, Depends(get_db)],
    user: Annotated[CurrentUser, Depends(authenticate)],
) -> TaskResponse:
    """Partial update: only title, description and status present in the body change."""
    task = task_store.update_owned(db, user.id, task_id, body.supplied_fields())
    return TaskResponse(data=TaskOut.from_task(task), message="Task updated successfully.")


@router.delete("/{task_id}", response_model=TaskResponse)
def delete_task(
    task_id: str,
    db: Annotated[Session, Depends(get_db)],
    admin: Annotated[CurrentUser, Depends(require_admin)],
) -> TaskResponse:
    """Delete any task by id (admin only); returns the deleted task."""
    task = task_store.delete_as_admin(db, admin, task_id)
    return TaskResponse(data=TaskOut.from_task(task), message="Task deleted successfully.")
