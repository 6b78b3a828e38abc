"""Directory routes: branches, classes, teachers, students and option lists."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from ..access import Actor
from ..auth import get_current_actor
from ..database import get_db
from ..models import AgeGroup, EnglishLevel
from ..schemas import (
    BranchCreate,
    BranchResponse,
    BranchUpdate,
    ClassCreate,
    ClassResponse,
    ClassStudentState,
    ClassTeacherResponse,
    ClassTeacherState,
    ClassTeacherUpdate,
    ClassUpdate,
    OptionCreate,
    OptionResponse,
    TeacherAuthority,
    TeacherAuthorityUpdate,
    TeacherDetail,
    UserCreate,
    UserResponse,
    UserUpdate,
)
from .service import DirectoryService

router = APIRouter(prefix="/api", tags=["Directory"])


def get_directory_service(
    actor: Actor = Depends(get_current_actor),
    db: Session = Depends(get_db),
) -> DirectoryService:
    return DirectoryService(db, actor)


# -------- Branches --------
@router.get("/branches", response_model=List[BranchResponse])
def list_branches(service: DirectoryService = Depends(get_directory_service)):
    return service.list_branches()


@router.post("/branches", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
def create_branch(data: BranchCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_branch(data)


@router.get("/branches/{branch_id}", response_model=BranchResponse)
def get_branch(branch_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_branch(branch_id)


@router.put("/branches/{branch_id}", response_model=BranchResponse)
def update_branch(
    branch_id: int, data: BranchUpdate, service: DirectoryService = Depends(get_directory_service)
):
    return service.update_branch(branch_id, data)


@router.delete("/branches/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_branch(branch_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.hide_branch(branch_id)


# -------- Classes --------
@router.get("/classes", response_model=List[ClassResponse])
def list_classes(
    branch_id: Optional[int] = Query(default=None, alias="branchId"),
    service: DirectoryService = Depends(get_directory_service),
):
    return service.list_classes(branch_id)


@router.post("/classes", response_model=ClassResponse, status_code=status.HTTP_201_CREATED)
def create_class(data: ClassCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_class(data)


@router.get("/classes/{class_id}", response_model=ClassResponse)
def get_class(class_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_class(class_id)


@router.put("/classes/{class_id}", response_model=ClassResponse)
def update_class(
    class_id: int, data: ClassUpdate, service: DirectoryService = Depends(get_directory_service)
):
    return service.update_class(class_id, data)


@router.delete("/classes/{class_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_class(class_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.hide_class(class_id)


@router.get("/classes/{class_id}/teachers", response_model=List[ClassTeacherResponse])
def list_class_teachers(class_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.class_teachers(class_id)


@router.put("/classes/{class_id}/teachers/{teacher_id}", response_model=ClassTeacherState)
def set_class_teacher(
    class_id: int,
    teacher_id: int,
    data: ClassTeacherUpdate,
    service: DirectoryService = Depends(get_directory_service),
):
    """Grant or revoke a teacher's access and lead role on a class."""
    state = service.set_class_teacher(class_id, teacher_id, data.has_access, data.is_lead)
    return ClassTeacherState(
        class_id=class_id, teacher_id=teacher_id, has_access=state.has_access, is_lead=state.is_lead
    )


@router.get("/classes/{class_id}/students", response_model=List[UserResponse])
def list_class_students(class_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.class_students(class_id)


@router.put("/classes/{class_id}/students/{student_id}", response_model=ClassStudentState)
def enroll_student(
    class_id: int, student_id: int, service: DirectoryService = Depends(get_directory_service)
):
    service.enroll_student(class_id, student_id)
    return ClassStudentState(class_id=class_id, student_id=student_id, enrolled=True)


@router.delete("/classes/{class_id}/students/{student_id}", response_model=ClassStudentState)
def unenroll_student(
    class_id: int, student_id: int, service: DirectoryService = Depends(get_directory_service)
):
    service.unenroll_student(class_id, student_id)
    return ClassStudentState(class_id=class_id, student_id=student_id, enrolled=False)


# -------- Teachers --------
@router.get("/teachers", response_model=List[UserResponse])
def list_teachers(service: DirectoryService = Depends(get_directory_service)):
    return service.list_teachers()


@router.post("/teachers", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_teacher(data: UserCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_teacher(data)


@router.get("/teachers/{teacher_id}", response_model=TeacherDetail)
def get_teacher(teacher_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_teacher(teacher_id)


@router.put("/teachers/{teacher_id}", response_model=UserResponse)
def update_teacher(
    teacher_id: int, data: UserUpdate, service: DirectoryService = Depends(get_directory_service)
):
    return service.update_teacher(teacher_id, data)


@router.delete("/teachers/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_teacher(teacher_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.hide_teacher(teacher_id)


@router.put("/teachers/{teacher_id}/authority", response_model=TeacherAuthority)
def update_teacher_authority(
    teacher_id: int,
    data: TeacherAuthorityUpdate,
    service: DirectoryService = Depends(get_directory_service),
):
    """Replace all branch and class grants of a teacher."""
    return service.update_teacher_authority(teacher_id, data.branch_ids, data.class_ids)


# -------- Students --------
@router.get("/students", response_model=List[UserResponse])
def list_students(service: DirectoryService = Depends(get_directory_service)):
    return service.list_students()


@router.post("/students", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_student(data: UserCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_student(data)


@router.get("/students/{student_id}", response_model=UserResponse)
def get_student(student_id: int, service: DirectoryService = Depends(get_directory_service)):
    return service.get_student(student_id)


@router.put("/students/{student_id}", response_model=UserResponse)
def update_student(
    student_id: int, data: UserUpdate, service: DirectoryService = Depends(get_directory_service)
):
    return service.update_student(student_id, data)


@router.delete("/students/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_student(student_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.hide_student(student_id)


# -------- Option lists --------
@router.get("/english-levels", response_model=List[OptionResponse])
def list_english_levels(service: DirectoryService = Depends(get_directory_service)):
    return service.list_options(EnglishLevel)


@router.post("/english-levels", response_model=OptionResponse, status_code=status.HTTP_201_CREATED)
def create_english_level(data: OptionCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_option(EnglishLevel, data)


@router.delete("/english-levels/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_english_level(option_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.hide_option(EnglishLevel, option_id)


@router.get("/age-groups", response_model=List[OptionResponse])
def list_age_groups(service: DirectoryService = Depends(get_directory_service)):
    return service.list_options(AgeGroup)


@router.post("/age-groups", response_model=OptionResponse, status_code=status.HTTP_201_CREATED)
def create_age_group(data: OptionCreate, service: DirectoryService = Depends(get_directory_service)):
    return service.create_option(AgeGroup, data)


@router.delete("/age-groups/{option_id}", status_code=status.HTTP_204_NO_CONTENT)
def hide_age_group(option_id: int, service: DirectoryService = Depends(get_directory_service)):
    service.hide_option(AgeGroup, option_id)
