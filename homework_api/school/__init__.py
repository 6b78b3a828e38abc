"""School directory: branches, classes, staff, students and option lists."""
from .service import DirectoryService
from .router import router as school_router

__all__ = ["DirectoryService", "school_router"]
