"""API endpoints for task management.

Listing and reading are READ operations and are never gated. Creating,
updating and deleting are WRITE operations and pass through the unlock gate.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from .deps import gated, get_request_context, get_services
from ..licensing import Identity, Operation
from ..logging import bind_context, get_logger

logger = get_logger("api.tasks")

router = APIRouter(prefix="/tasks", tags=["tasks"])


# --- Request/Response Models ---

class CreateTaskRequest(BaseModel):
    """Request body for creating a task."""
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None


class UpdateTaskRequest(BaseModel):
    """Request body for updating a task."""
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = None
    completed: Optional[bool] = None


class TaskResponse(BaseModel):
    """Response model for a task."""
    id: str
    user_id: str
    title: str
    description: Optional[str]
    completed: bool
    created_at: str
    updated_at: str


def _owner(identity: Identity) -> UUID:
    try:
        return UUID(identity.user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Account id is not a valid UUID")


# --- Task Endpoints ---

@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    request: Request,
    completed: Optional[bool] = None,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    identity: Identity = Depends(gated(Operation.READ)),
):
    """List the caller's tasks."""
    tasks = await get_services(request).tasks.list(
        _owner(identity),
        completed=completed,
        limit=limit,
        offset=offset,
    )
    return [task.to_dict() for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID,
    request: Request,
    identity: Identity = Depends(gated(Operation.READ)),
):
    """Get one of the caller's tasks."""
    task = await get_services(request).tasks.get(_owner(identity), task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task.to_dict()


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    body: CreateTaskRequest,
    request: Request,
    identity: Identity = Depends(gated(Operation.WRITE)),
):
    """Create a new task."""
    task = await get_services(request).tasks.create(
        _owner(identity),
        title=body.title,
        description=body.description,
    )
    bind_context(logger, get_request_context(request)).info(f"Task created: {task.id}")
    return task.to_dict()


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    body: UpdateTaskRequest,
    request: Request,
    identity: Identity = Depends(gated(Operation.WRITE)),
):
    """Update a task."""
    task = await get_services(request).tasks.update(
        _owner(identity),
        task_id,
        title=body.title,
        description=body.description,
        completed=body.completed,
    )
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task.to_dict()


@router.delete("/{task_id}")
async def delete_task(
    task_id: UUID,
    request: Request,
    identity: Identity = Depends(gated(Operation.WRITE)),
):
    """Delete a task."""
    deleted = await get_services(request).tasks.delete(_owner(identity), task_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Task not found")
    bind_context(logger, get_request_context(request)).info(f"Task deleted: {task_id}")
    return {"message": "Task deleted"}
