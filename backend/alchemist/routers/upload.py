import hashlib
import re
import uuid
from datetime import UTC, datetime
from pathlib import Path

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from pydantic import ValidationError

from alchemist.config import settings
from alchemist.models.analysis import AnalysisParams
from alchemist.models.session import Session, SessionResponse
from alchemist.services.pipeline import start_analysis
from alchemist.storage.file_manager import file_manager
from alchemist.storage.session_store import session_store

router = APIRouter(prefix="/api/sessions", tags=["sessions"])

_SAFE_SUFFIX = re.compile(r"^\.[a-z0-9]{1,5}$")


def _stored_filename(upload_name: str | None) -> str:
    suffix = Path(upload_name or "").suffix.lower()
    return f"original{suffix if _SAFE_SUFFIX.match(suffix) else '.bin'}"


@router.post("/upload", response_model=SessionResponse)
async def upload_file(
    file: UploadFile = File(...),
    sensitivity: float | None = Form(None),
    attack_ms: float | None = Form(None),
    release_ms: float | None = Form(None),
    threshold: float | None = Form(None),
    min_length_ms: float | None = Form(None),
):
    """Store an uploaded recording and start analyzing it in the background."""
    try:
        params = AnalysisParams(
            sensitivity=settings.default_sensitivity if sensitivity is None else sensitivity,
            attack_ms=settings.default_attack_ms if attack_ms is None else attack_ms,
            release_ms=settings.default_release_ms if release_ms is None else release_ms,
            threshold=threshold,
            min_length_ms=settings.default_min_length_ms if min_length_ms is None else min_length_ms,
        )
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    content = await file.read()
    session_id = str(uuid.uuid4())
    session = Session(
        id=session_id,
        title=file.filename or "upload",
        filename=_stored_filename(file.filename),
        created_at=datetime.now(UTC).isoformat(),
        params=params,
        audio_hash=hashlib.sha256(content).hexdigest(),
    )

    file_manager.audio_path(session_id, session.filename).write_bytes(content)
    session_store.create(session)

    start_analysis(session_id)

    return SessionResponse(**session.model_dump())
