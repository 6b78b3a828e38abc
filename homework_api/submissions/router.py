"""Submission routes: upload, AI review, teacher edits and comments."""
import os
from functools import lru_cache
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from homework_processor import HomeworkProcessor

from ..access import Actor
from ..auth import get_current_actor
from ..database import get_db
from ..schemas import (
    CommentCreate,
    CommentResponse,
    ReviewResponse,
    SubmissionResponse,
    SubmissionUpdate,
)
from ..storage import BlobStore, blob_store_from_env
from .pipeline import Processor
from .service import SubmissionService

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

router = APIRouter(prefix="/api/submissions", tags=["Submissions"])


@lru_cache
def get_processor() -> Processor:
    """Dependency to get the shared homework processor."""
    return HomeworkProcessor.from_env(max_image_bytes=MAX_UPLOAD_BYTES)


@lru_cache
def get_blob_store() -> BlobStore:
    return blob_store_from_env()


def get_submission_service(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    processor: Processor = Depends(get_processor),
) -> SubmissionService:
    return SubmissionService(db, actor, blob_store, processor)


@router.get("", response_model=List[SubmissionResponse])
def list_submissions(
    assignment_id: Optional[int] = Query(default=None, alias="assignmentId"),
    service: SubmissionService = Depends(get_submission_service),
):
    return service.list_submissions(assignment_id)


@router.post("/upload", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def upload_submission(
    file: UploadFile = File(...),
    assignment_id: int = Form(..., alias="assignmentId"),
    student_id: Optional[int] = Form(default=None, alias="studentId"),
    service: SubmissionService = Depends(get_submission_service),
):
    """Upload a homework image for a student."""
    # One byte past the limit is enough for validation to reject the body
    data = await file.read(MAX_UPLOAD_BYTES + 1)
    return await run_in_threadpool(
        service.upload, assignment_id, student_id, data, file.content_type, file.filename or "upload"
    )


@router.post("/{assignment_id}/review", response_model=ReviewResponse)
async def review_assignment(assignment_id: int, service: SubmissionService = Depends(get_submission_service)):
    """Run every uploaded submission of an assignment through AI review."""
    result = await service.review_assignment(assignment_id)
    return ReviewResponse(
        assignment_id=result.assignment_id,
        processed=result.processed,
        succeeded=result.succeeded,
        failed=result.failed,
    )


@router.post("/{submission_id}/reprocess", response_model=SubmissionResponse)
async def reprocess_submission(submission_id: int, service: SubmissionService = Depends(get_submission_service)):
    """Force a submission back through AI review, whatever its status."""
    return await service.reprocess(submission_id)


@router.get("/{submission_id}", response_model=SubmissionResponse)
def get_submission(submission_id: int, service: SubmissionService = Depends(get_submission_service)):
    return service.get_submission(submission_id)


@router.patch("/{submission_id}", response_model=SubmissionResponse)
def update_submission(
    submission_id: int,
    data: SubmissionUpdate,
    service: SubmissionService = Depends(get_submission_service),
):
    return service.update(submission_id, data)


@router.delete("/{submission_id}")
def delete_submission(submission_id: int, service: SubmissionService = Depends(get_submission_service)):
    removed = service.delete(submission_id)
    return {"message": "Submission deleted", "deletedComments": removed}


@router.get("/{submission_id}/comments", response_model=List[CommentResponse])
def list_comments(submission_id: int, service: SubmissionService = Depends(get_submission_service)):
    return service.list_comments(submission_id)


@router.post("/{submission_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def create_comment(
    submission_id: int,
    data: CommentCreate,
    service: SubmissionService = Depends(get_submission_service),
):
    return service.create_comment(submission_id, data)
