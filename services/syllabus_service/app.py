"""
FastAPI service for the syllabus-to-Notion pipeline.

Endpoints cover the multi-file upload, recurrence re-expansion, delivery to
Notion, a natural-language Notion action, and the three-step account-link
flow (connect -> link -> callback). External collaborators are provided
through dependencies so they can be swapped with ``app.dependency_overrides``.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
import uuid
from contextlib import asynccontextmanager

from fastapi import Cookie, Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, RedirectResponse

from notion_broker.actions import CREATE_DATABASE, apply_plan, deliver_submission, plan_from_prompt
from notion_broker.client import BrokerClient
from planner.session import WorkingSession
from services.shared.models import (
    NotionActionRequest,
    NotionActionResponse,
    ParsedSyllabus as PydanticParsedSyllabus,
    ParseSyllabusResponse,
    ResolveRecurrenceRequest,
    SendToNotionRequest,
    SendToNotionResponse,
    StepResult as PydanticStepResult,
)
from settings import Settings, load_settings
from settings.log import configure_logging
from syllabus_server.batch import TextExtractor, UploadedSyllabus, parse_uploads
from syllabus_server.errors import (BrokerConnectionError, CompletionError, ConfigError, ProtocolParseError,
                                    RemoteActionError)
from syllabus_server.extraction import Completer, OpenAICompleter
from syllabus_server.models import SemesterRange
from syllabus_server.text_extract import extract_text

logger = logging.getLogger(__name__)

USER_COOKIE = "composio_user_id"
CONNECTION_COOKIE = "composio_connection_request_id"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize logging on startup."""
    configure_logging()
    yield


app = FastAPI(
    title="Syllabus Service",
    description="Extract assignments from syllabi and deliver them to Notion",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(ConfigError)
async def config_error_handler(request: Request, exc: ConfigError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# -----------------------------
# Dependencies
# -----------------------------

def get_settings() -> Settings:
    return load_settings()


def get_completer(settings: Settings = Depends(get_settings)) -> Completer:
    settings.require("llm_api_key")
    return OpenAICompleter(api_key=settings.llm_api_key, model=settings.llm_model, base_url=settings.llm_base_url)


def get_broker(settings: Settings = Depends(get_settings)) -> t.Optional[BrokerClient]:
    """Broker client, or None when no API key is configured."""
    if not settings.composio_api_key:
        return None
    return BrokerClient(api_key=settings.composio_api_key, base_url=settings.composio_base_url)


def get_text_extractor() -> TextExtractor:
    return extract_text


def _require_broker(broker: t.Optional[BrokerClient]) -> BrokerClient:
    if broker is None:
        raise ConfigError("Missing configuration: COMPOSIO_API_KEY")
    return broker


def _require_user(user_id: t.Optional[str]) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="User not connected. Please connect to Notion first.")
    return user_id


def _semester_range(start: t.Optional[str], end: t.Optional[str]) -> t.Optional[SemesterRange]:
    if not (start and end):
        return None
    try:
        return SemesterRange.from_iso(start, end)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid semester range: {e}")


def _session_for(results: list[PydanticParsedSyllabus]) -> WorkingSession:
    """Working set exactly as the client holds it, manual edits included."""
    return WorkingSession(syllabi=[r.to_data() for r in results])


def _response_for(session: WorkingSession) -> ParseSyllabusResponse:
    return ParseSyllabusResponse(results=[PydanticParsedSyllabus.from_data(s) for s in session.syllabi])


def _home(request: Request, query: str) -> str:
    return f"{request.base_url}?{query}"


# -----------------------------
# Syllabus endpoints
# -----------------------------

@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "syllabus-service"}


@app.post("/parse-syllabus", response_model=ParseSyllabusResponse)
async def parse_syllabus(
        files: t.Optional[list[UploadFile]] = File(None),
        semester_start: t.Optional[str] = Form(None),
        semester_end: t.Optional[str] = Form(None),
        complete: Completer = Depends(get_completer),
        extractor: TextExtractor = Depends(get_text_extractor),
) -> ParseSyllabusResponse:
    """
    Parse uploaded PDF/DOCX syllabi, one file at a time.

    A file that fails comes back as an "Error parsing file" placeholder; the
    rest of the batch is unaffected. Recurring due dates are expanded when a
    semester range is given.
    """
    if not files:
        raise HTTPException(status_code=400, detail="No files provided")

    session = WorkingSession(semester_range=_semester_range(semester_start, semester_end))
    uploads = [UploadedSyllabus(file_name=f.filename or "upload", content=await f.read()) for f in files]
    results = await asyncio.to_thread(parse_uploads, uploads, complete, extractor)
    session.load(results)
    return _response_for(session)


@app.post("/resolve-recurrence", response_model=ParseSyllabusResponse)
async def resolve_recurrence(request: ResolveRecurrenceRequest) -> ParseSyllabusResponse:
    """Re-expand recurring due dates over a (new) semester range."""
    session = _session_for(request.results)
    session.semester_range = _semester_range(request.semester_start, request.semester_end)
    session.resolve_recurrence()
    return _response_for(session)


# -----------------------------
# Notion endpoints
# -----------------------------

@app.post("/send-to-notion", response_model=SendToNotionResponse)
async def send_to_notion(
        request: SendToNotionRequest,
        composio_user_id: t.Optional[str] = Cookie(None),
        broker: t.Optional[BrokerClient] = Depends(get_broker),
        settings: Settings = Depends(get_settings),
) -> SendToNotionResponse:
    """
    Assemble submission records from the working set and deliver them.

    Rows are inserted one at a time; failed rows only show up in the counts.
    """
    user_id = _require_user(composio_user_id)
    broker = _require_broker(broker)

    records = _session_for(request.results).build_submission()
    if not records:
        raise HTTPException(status_code=400, detail="No results provided")

    try:
        report = await asyncio.to_thread(
            deliver_submission, broker, user_id, records, settings.tool_version, request.database_name
        )
    except RemoteActionError as e:
        logger.error("Delivery failed: %s", e)
        return SendToNotionResponse(success=False, message=str(e), total=len(records))

    return SendToNotionResponse(
        success=True,
        message=report.message,
        created=report.created,
        failed=report.failed,
        total=report.total,
        database_url=report.database_url,
    )


@app.post("/notion-action", response_model=NotionActionResponse)
async def notion_action(
        request: NotionActionRequest,
        composio_user_id: t.Optional[str] = Cookie(None),
        broker: t.Optional[BrokerClient] = Depends(get_broker),
        complete: Completer = Depends(get_completer),
        settings: Settings = Depends(get_settings),
) -> NotionActionResponse:
    """
    Turn a natural-language request into a Notion database and rows.
    """
    user_id = _require_user(composio_user_id)
    broker = _require_broker(broker)
    if not request.prompt:
        raise HTTPException(status_code=400, detail="Prompt is required")

    logger.info("Processing prompt for user %s", user_id)
    try:
        plan = await asyncio.to_thread(plan_from_prompt, request.prompt, complete)
    except (CompletionError, ProtocolParseError) as e:
        logger.error("Could not interpret prompt: %s", e)
        return NotionActionResponse(success=False, message="No usable response from AI", error=str(e))

    if plan.action != CREATE_DATABASE:
        return NotionActionResponse(success=True, message=f"Nothing to execute for action '{plan.action}'")

    try:
        report = await asyncio.to_thread(apply_plan, broker, user_id, plan, settings.tool_version)
    except RemoteActionError as e:
        logger.error("Notion action failed: %s", e)
        return NotionActionResponse(success=False, message="Database operations failed", error=str(e))

    return NotionActionResponse(
        success=True,
        message=report.message,
        results=[PydanticStepResult(**vars(step)) for step in report.steps],
    )


# -----------------------------
# Account-link flow
# -----------------------------

@app.get("/composio/connect-notion")
async def connect_notion(request: Request, settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Mint a user id, remember it in a cookie, and continue to the link step."""
    settings.require("composio_api_key")

    user_id = f"user-{uuid.uuid4().hex[:13]}"
    target = request.url_for("link_account").include_query_params(userId=user_id)
    response = RedirectResponse(str(target))
    response.set_cookie(
        USER_COOKIE,
        user_id,
        max_age=settings.cookie_max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@app.get("/composio/link")
async def link_account(
        request: Request,
        user_id: t.Optional[str] = Query(None, alias="userId"),
        broker: t.Optional[BrokerClient] = Depends(get_broker),
        settings: Settings = Depends(get_settings),
):
    """Start the OAuth-style connection and send the user to the broker."""
    settings.require("composio_auth_config_id")
    broker = _require_broker(broker)
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID required")

    callback_url = str(request.url_for("oauth_callback"))
    logger.info("Initiating connection for user %s (callback %s)", user_id, callback_url)
    try:
        connection = await asyncio.to_thread(
            broker.initiate_connection, user_id, settings.composio_auth_config_id, callback_url
        )
    except BrokerConnectionError as e:
        logger.error("Error linking account: %s", e)
        return JSONResponse(status_code=500, content={"error": "Failed to link account", "details": str(e)})

    response = RedirectResponse(connection.redirect_url)
    response.set_cookie(
        CONNECTION_COOKIE,
        connection.id,
        max_age=settings.cookie_max_age,
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


@app.get("/composio/callback")
async def oauth_callback(
        request: Request,
        composio_connection_request_id: t.Optional[str] = Cookie(None),
        broker: t.Optional[BrokerClient] = Depends(get_broker),
) -> RedirectResponse:
    """
    Finish the connection and send the user home.

    A failed or timed-out handshake still redirects with ``connected=true``:
    the account may well be linked already.
    """
    if broker is None:
        return RedirectResponse(_home(request, "error=config_error"))

    if not composio_connection_request_id:
        logger.info("No connection request id cookie; assuming already connected")
        return RedirectResponse(_home(request, "connected=true"))

    try:
        account = await asyncio.to_thread(broker.wait_for_connection, composio_connection_request_id)
    except BrokerConnectionError as e:
        logger.warning("Error waiting for connection: %s", e)
        return RedirectResponse(_home(request, "connected=true"))

    logger.info("Connection established: %s (%s)", account.id, account.status)
    response = RedirectResponse(_home(request, "connected=true"))
    response.delete_cookie(CONNECTION_COOKIE)
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
