from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from guestbook.db.session import Database, get_database
from guestbook.errors import EntryStoreError
from guestbook.models.schemas import EntryOut, ErrorResponse
from guestbook.services.entry_service import list_entries, to_output

router = APIRouter(tags=["entries"])

ENTRIES_ERROR_MESSAGE = "Failed to fetch guestbook entries"


@router.get(
    "/entries",
    response_model=list[EntryOut],
    responses={500: {"model": ErrorResponse}},
)
def get_entries(database: Database = Depends(get_database)) -> list[EntryOut] | JSONResponse:
    try:
        with database.connection() as conn:
            entries = list_entries(conn)
    except EntryStoreError as exc:
        structlog.get_logger("entries").error("entries.list_failed", error=str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=ENTRIES_ERROR_MESSAGE).model_dump(),
        )

    return [to_output(e) for e in entries]
