from __future__ import annotations

from pathlib import Path

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from guestbook.db.session import Database, get_database
from guestbook.errors import EntryStoreError
from guestbook.services.entry_service import ANONYMOUS_EMAIL, list_entries, record_visit, to_output

router = APIRouter(tags=["pages"])
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

PAGE_ERROR_MESSAGE = "Internal server error while processing the request."


@router.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    email: str | None = None,
    database: Database = Depends(get_database),
) -> Response:
    visitor = email or ANONYMOUS_EMAIL
    try:
        # Upsert and read-back share one pooled connection.
        with database.connection() as conn:
            record_visit(conn, visitor)
            entries = list_entries(conn)
    except EntryStoreError as exc:
        structlog.get_logger("pages").error("page.render_failed", error=str(exc), exc_info=True)
        return PlainTextResponse(PAGE_ERROR_MESSAGE, status_code=500)

    return templates.TemplateResponse(
        request,
        "index.html",
        {"entries": [to_output(e) for e in entries]},
    )
