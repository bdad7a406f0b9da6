"""
Lists router.

GET    /lists        — All lists, default first
POST   /lists        — Create a list
PATCH  /lists/{id}   — Rename a list
DELETE /lists/{id}   — Delete a list; its streaks move to the default list
"""
from fastapi import APIRouter, Depends, status

from streakflame.routers.deps import get_engine
from streakflame.schemas.common import ErrorResponse
from streakflame.schemas.streak import CreateListRequest, RenameListRequest, StreakList
from streakflame.services.streak_engine import StreakEngine

router = APIRouter(prefix="/lists", tags=["lists"])


@router.get("", response_model=list[StreakList], summary="List streak lists")
def get_lists(engine: StreakEngine = Depends(get_engine)):
    return engine.get_lists()


@router.post(
    "",
    response_model=StreakList,
    status_code=status.HTTP_201_CREATED,
    summary="Create a list",
    responses={409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def create_list(payload: CreateListRequest, engine: StreakEngine = Depends(get_engine)):
    return engine.create_list(payload.name, payload.color)


@router.patch(
    "/{list_id}",
    response_model=StreakList,
    summary="Rename a list",
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
def rename_list(list_id: str, payload: RenameListRequest, engine: StreakEngine = Depends(get_engine)):
    return engine.rename_list(list_id, payload.name)


@router.delete(
    "/{list_id}",
    summary="Delete a list",
    responses={
        200: {"description": "List deleted; `moved` streaks were reassigned to the default list."},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse, "description": "The default list cannot be deleted."},
    },
)
def delete_list(list_id: str, engine: StreakEngine = Depends(get_engine)):
    moved = engine.delete_list(list_id)
    return {"deleted": list_id, "moved": moved}
