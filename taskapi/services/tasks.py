"""
Task store: ownership-scoped CRUD plus the shared list query (search, sort, paginate).

Listing for one owner and listing across all owners run the same query builder; the only
difference is the optional created_by filter.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from taskapi.core.errors import (
    ForbiddenError,
    InvalidIdError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from taskapi.models import Task
from taskapi.schemas.auth import CurrentUser

logger = logging.getLogger(__name__)

TASK_STATUSES: tuple[str, ...] = ("pending", "completed")
DEFAULT_STATUS = "pending"

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
# Upper bound on page size; larger requests are clamped, not rejected.
MAX_LIMIT = 100
# Largest OFFSET a 64-bit database integer can carry; pages past it are empty.
MAX_OFFSET = 2**63 - 1

DEFAULT_SORT_FIELD = "createdAt"
# API field name -> column. Anything else sorts by createdAt.
SORTABLE_COLUMNS = {
    "createdAt": Task.created_at,
    "updatedAt": Task.updated_at,
    "title": Task.title,
    "description": Task.description,
    "status": Task.status,
}

UPDATABLE_FIELDS = ("title", "description", "status")


@dataclass(frozen=True)
class TaskQuery:
    """Normalized list parameters."""

    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: str = ""
    sort_field: str = DEFAULT_SORT_FIELD
    descending: bool = True

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @classmethod
    def from_params(
        cls,
        page: Any = None,
        limit: Any = None,
        search: str | None = None,
        sort: str | None = None,
    ) -> "TaskQuery":
        """Build a query from raw query-string values; bad values fall back, never fail."""
        sort_field, descending = parse_sort(sort)
        return cls(
            page=parse_page(page),
            limit=parse_limit(limit),
            search=search.strip() if isinstance(search, str) else "",
            sort_field=sort_field,
            descending=descending,
        )


@dataclass
class TaskPage:
    items: list[Task]
    page: int
    limit: int
    total: int
    total_pages: int


def _to_number(raw: Any) -> float:
    """Loose numeric parse of a query value; NaN when it is not a finite number."""
    if raw is None:
        return math.nan
    if isinstance(raw, bool):
        return float(raw)
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        text = str(raw).strip()
        if text == "":
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return math.nan
    return value if math.isfinite(value) else math.nan


def parse_page(raw: Any) -> int:
    """Page number >= 1; missing, non-numeric or < 1 becomes 1."""
    if raw is None:
        return DEFAULT_PAGE
    value = _to_number(raw)
    if math.isnan(value) or value < 1:
        return DEFAULT_PAGE
    return math.floor(value)


def parse_limit(raw: Any) -> int:
    """Page size in [1, MAX_LIMIT]; missing, non-numeric or < 1 becomes the default."""
    if raw is None:
        return DEFAULT_LIMIT
    value = _to_number(raw)
    if math.isnan(value) or value < 1:
        return DEFAULT_LIMIT
    return min(math.floor(value), MAX_LIMIT)


def parse_sort(raw: str | None) -> tuple[str, bool]:
    """Parse "field:direction". Returns (field, descending); only "asc" sorts ascending."""
    text = raw.strip() if isinstance(raw, str) else ""
    if not text:
        return DEFAULT_SORT_FIELD, True
    field, _, direction = text.partition(":")
    field = field.strip()
    if field not in SORTABLE_COLUMNS:
        field = DEFAULT_SORT_FIELD
    return field, direction.strip().lower() != "asc"


def total_pages_for(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit))


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _parse_uuid(raw: Any, message: str) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (ValueError, TypeError, AttributeError) as e:
        raise InvalidIdError(message) from e


def parse_task_id(raw: Any) -> uuid.UUID:
    if raw is None or raw == "":
        raise ValidationError("Task ID is required.")
    return _parse_uuid(raw, "Invalid task ID format.")


def parse_owner_id(raw: Any) -> uuid.UUID:
    if not raw:
        raise UnauthenticatedError("User not authenticated.")
    return _parse_uuid(raw, "Invalid user id.")


def _run_list_query(session: Session, query: TaskQuery, owner_id: uuid.UUID | None) -> TaskPage:
    filters = []
    if owner_id is not None:
        filters.append(Task.created_by == owner_id)
    if query.search:
        filters.append(Task.title.ilike(f"%{_escape_like(query.search)}%", escape="\\"))

    column = SORTABLE_COLUMNS[query.sort_field]
    order = column.desc() if query.descending else column.asc()

    # Count and page are separate reads; under concurrent writes they may disagree.
    total = session.query(Task).filter(*filters).count()
    if query.offset > MAX_OFFSET:
        items: list[Task] = []
    else:
        items = (
            session.query(Task)
            .options(joinedload(Task.owner))
            .filter(*filters)
            .order_by(order, Task.id)
            .offset(query.offset)
            .limit(query.limit)
            .all()
        )
    return TaskPage(
        items=items,
        page=query.page,
        limit=query.limit,
        total=total,
        total_pages=total_pages_for(total, query.limit),
    )


def list_all(session: Session, query: TaskQuery) -> TaskPage:
    """Tasks across every owner."""
    return _run_list_query(session, query, owner_id=None)


def list_owned(session: Session, owner_id: Any, query: TaskQuery) -> TaskPage:
    """Tasks created by owner_id only."""
    return _run_list_query(session, query, owner_id=parse_owner_id(owner_id))


def _find_owned(session: Session, owner: uuid.UUID, task: uuid.UUID) -> Task | None:
    return (
        session.query(Task)
        .options(joinedload(Task.owner))
        .filter(Task.id == task, Task.created_by == owner)
        .first()
    )


def get_owned(session: Session, owner_id: Any, task_id: Any) -> Task:
    """
    Fetch one task belonging to owner_id.

    A task owned by someone else is reported exactly like a missing one.
    """
    owner = parse_owner_id(owner_id)
    task = _find_owned(session, owner, parse_task_id(task_id))
    if task is None:
        raise NotFoundError("Task not found or you don't have permission to view it.")
    return task


def _validate_status(status: str) -> str:
    if status not in TASK_STATUSES:
        raise ValidationError("Status must be either 'pending' or 'completed'.")
    return status


def create_task(
    session: Session,
    owner_id: Any,
    title: str | None,
    description: str | None = None,
    status: str | None = None,
) -> Task:
    """Create a task owned by owner_id. Title is required after trimming."""
    owner = parse_owner_id(owner_id)
    if not title or not title.strip():
        raise ValidationError("Title is required to create a task.")

    task = Task(
        title=title.strip(),
        description=description.strip() if description else "",
        status=_validate_status(status) if status else DEFAULT_STATUS,
        created_by=owner,
    )
    session.add(task)
    try:
        session.commit()
    except IntegrityError as e:
        # Token outlived its user.
        session.rollback()
        raise UnauthenticatedError("User not found. Please log in again.") from e
    logger.info("Created task id=%s owner=%s", task.id, owner)
    return task


def update_owned(session: Session, owner_id: Any, task_id: Any, fields: dict[str, Any]) -> Task:
    """
    Partial update of a task belonging to owner_id.

    Only keys present in fields (title, description, status) are written. Title and
    description are trimmed; description may be set to "" but title may not.
    """
    owner = parse_owner_id(owner_id)
    task_uuid = parse_task_id(task_id)

    changes = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
    if not changes:
        raise ValidationError(
            "Please provide at least one field to update (title, description, or status)."
        )
    if "status" in changes:
        changes["status"] = _validate_status(changes["status"])
    if "title" in changes:
        changes["title"] = changes["title"].strip()
        if not changes["title"]:
            raise ValidationError("Title cannot be empty.")
    if "description" in changes:
        changes["description"] = changes["description"].strip()

    task = _find_owned(session, owner, task_uuid)
    if task is None:
        raise NotFoundError("Task not found or you don't have permission to update it.")

    for key, value in changes.items():
        setattr(task, key, value)
    session.commit()
    logger.info("Updated task id=%s fields=%s", task.id, sorted(changes))
    return task


def delete_as_admin(session: Session, actor: CurrentUser | None, task_id: Any) -> Task:
    """
    Delete any task by id, regardless of owner. The caller must be an admin.

    Returns the deleted task (owner loaded) so it can be echoed back.
    """
    if actor is None or actor.role != "admin":
        raise ForbiddenError("Access denied. Admins only.")
    task_uuid = parse_task_id(task_id)

    task = (
        session.query(Task)
        .options(joinedload(Task.owner))
        .filter(Task.id == task_uuid)
        .first()
    )
    if task is None:
        raise NotFoundError("Task not found or you don't have permission to delete it.")

    session.delete(task)
    session.commit()
    logger.info("Deleted task id=%s by admin=%s", task_uuid, actor.id)
    return task
