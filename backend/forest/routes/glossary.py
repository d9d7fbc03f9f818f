from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from ..errors import ForestError
from ..rbac import require_resource, require_text_operation
from ..services import glossary
from .. import models, schemas
from .common import http_error


def build_router(kind: str, create_model, update_model, out_model) -> APIRouter:
    """CRUD routes for one glossary table; reads need read_texts, writes need the resource kind."""

    router = APIRouter(prefix=f"/api/{kind}", tags=[kind])

    @router.get("/", response_model=list[out_model])
    async def list_items(
        search: str | None = None,
        db: Session = Depends(get_db),
        user: models.User = Depends(get_current_user),
    ):
        require_text_operation(user, "read", "original")
        return glossary.list_items(db, kind, search)

    @router.get("/{item_id}", response_model=out_model)
    async def get_item(
        item_id: UUID,
        db: Session = Depends(get_db),
        user: models.User = Depends(get_current_user),
    ):
        require_text_operation(user, "read", "original")
        try:
            return glossary.get_item(db, kind, item_id)
        except ForestError as exc:
            raise http_error(db, exc) from exc

    @router.post("/", response_model=out_model)
    async def create_item(
        payload: create_model,
        db: Session = Depends(get_db),
        user: models.User = Depends(get_current_user),
    ):
        require_resource(user, kind)
        try:
            item = glossary.create_item(db, kind, payload.model_dump(), user.id)
        except ForestError as exc:
            raise http_error(db, exc) from exc
        db.commit()
        db.refresh(item)
        return item

    @router.put("/{item_id}", response_model=out_model)
    async def update_item(
        item_id: UUID,
        payload: update_model,
        db: Session = Depends(get_db),
        user: models.User = Depends(get_current_user),
    ):
        require_resource(user, kind)
        try:
            item = glossary.update_item(db, kind, item_id, payload.model_dump(exclude_unset=True), user.id)
        except ForestError as exc:
            raise http_error(db, exc) from exc
        db.commit()
        db.refresh(item)
        return item

    @router.delete("/{item_id}")
    async def delete_item(
        item_id: UUID,
        db: Session = Depends(get_db),
        user: models.User = Depends(get_current_user),
    ):
        require_resource(user, kind)
        try:
            glossary.delete_item(db, kind, item_id)
        except ForestError as exc:
            raise http_error(db, exc) from exc
        db.commit()
        return {"detail": "deleted"}

    return router


characters_router = build_router(
    "characters", schemas.CharacterCreate, schemas.CharacterUpdate, schemas.CharacterOut
)
tags_router = build_router("tags", schemas.TagCreate, schemas.TagUpdate, schemas.TagOut)
forbidden_words_router = build_router(
    "forbidden-words",
    schemas.ForbiddenWordCreate,
    schemas.ForbiddenWordUpdate,
    schemas.ForbiddenWordOut,
)
proper_nouns_router = build_router(
    "proper-nouns", schemas.ProperNounCreate, schemas.ProperNounUpdate, schemas.ProperNounOut
)
styles_router = build_router("styles", schemas.StyleCreate, schemas.StyleUpdate, schemas.StyleOut)


@forbidden_words_router.post("/check", response_model=list[schemas.ForbiddenWordMatch])
async def check_forbidden_words(
    payload: schemas.ForbiddenWordCheck,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    require_text_operation(user, "read", "original")
    return glossary.find_forbidden_words(db, payload.text)


routers = [
    characters_router,
    tags_router,
    forbidden_words_router,
    proper_nouns_router,
    styles_router,
]
