from fastapi import APIRouter, Depends, UploadFile, File, HTTPException, Form, Response
from sqlalchemy.orm import Session
import os

from ..database import get_db
from ..auth import get_current_user
from ..errors import ForestError
from ..rbac import require_resource
from ..services import ingestion
from .. import models, schemas
from .common import http_error

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("/import", response_model=schemas.ImportResult)
async def import_file(
    upload: UploadFile = File(...),
    update_existing: bool = Form(False),
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_resource(user, "file-operations")
    data = await upload.read()
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="File must be UTF-8 encoded CSV")
    filename = os.path.basename(upload.filename or "import.csv")
    try:
        rows = ingestion.parse_csv(text)
    except ForestError as exc:
        raise http_error(db, exc) from exc
    summary = ingestion.import_batch(
        db,
        rows,
        user.id,
        actor_role=user.role,
        update_existing=update_existing,
        filename=filename,
    )
    return schemas.ImportResult(**summary.as_dict())


@router.post("/export")
async def export_file(
    request: schemas.ExportRequest,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_resource(user, "file-operations")
    try:
        filename, content, _ = ingestion.export_batch(
            db,
            user.id,
            status=request.status,
            category=request.category,
            search=request.search,
            include_translations=request.include_translations,
        )
    except ForestError as exc:
        raise http_error(db, exc) from exc
    db.commit()
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=content, media_type="text/csv", headers=headers)


@router.get("/history", response_model=list[schemas.FileHistoryOut])
async def list_file_history(
    limit: int = 50,
    offset: int = 0,
    file_type: str | None = None,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_resource(user, "file-operations")
    return ingestion.list_file_history(db, limit=limit, offset=offset, file_type=file_type)
