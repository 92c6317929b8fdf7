"""Data viewer: read-only listing of onboarding subjects.

Endpoints:
    GET /api/admin/subjects   All subjects, newest first, with display fields
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.deps import require_admin
from app.database import get_db
from app.schemas.admin import SubjectList, SubjectRow
from app.services.record_store import RecordStore
from app.services.subject_view import list_subject_rows

router = APIRouter()


@router.get("/subjects", response_model=SubjectList)
async def list_subjects(
    db: AsyncSession = Depends(get_db),
    _admin: dict = Depends(require_admin),
):
    rows = await list_subject_rows(RecordStore(db))
    return SubjectList(total=len(rows), subjects=[SubjectRow(**row) for row in rows])
