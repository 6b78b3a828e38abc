"""Assignment routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..access import Actor
from ..auth import get_current_actor
from ..database import get_db
from ..schemas import AssignmentCreate, AssignmentDetail, AssignmentResponse, AssignmentUpdate
from .service import AssignmentService

router = APIRouter(prefix="/api/assignments", tags=["Assignments"])


def get_assignment_service(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> AssignmentService:
    return AssignmentService(db, actor)


@router.get("", response_model=List[AssignmentResponse])
def list_assignments(
    class_id: Optional[int] = Query(default=None, alias="classId"),
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.list_assignments(class_id)


@router.post("", response_model=AssignmentResponse, status_code=status.HTTP_201_CREATED)
def create_assignment(data: AssignmentCreate, service: AssignmentService = Depends(get_assignment_service)):
    return service.create_assignment(data)


@router.get("/{assignment_id}", response_model=AssignmentDetail)
def get_assignment(assignment_id: int, service: AssignmentService = Depends(get_assignment_service)):
    return service.assignment_detail(assignment_id)


@router.patch("/{assignment_id}", response_model=AssignmentResponse)
def update_assignment(
    assignment_id: int,
    data: AssignmentUpdate,
    service: AssignmentService = Depends(get_assignment_service),
):
    return service.update_assignment(assignment_id, data)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_assignment(assignment_id: int, service: AssignmentService = Depends(get_assignment_service)):
    service.hide_assignment(assignment_id)
