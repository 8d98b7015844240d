import asyncio

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from alchemist.config import settings
from alchemist.errors import AnalysisError, ExportError, SelectionError
from alchemist.models.export import BatchExportRequest, ExportSettings
from alchemist.models.sample import (
    InstrumentLabel,
    MergeRequest,
    Sample,
    SampleType,
    SampleUpdateRequest,
    SplitRequest,
    TagRequest,
)
from alchemist.services import sample_editor
from alchemist.services.exporter import bundle_zip, export_batch, export_filename, export_sample_entity
from alchemist.storage.session_store import session_store

router = APIRouter(prefix="/api/sessions/{session_id}/samples", tags=["samples"])


class SampleResponse(BaseModel):
    id: str
    name: str
    type: SampleType
    instrument: InstrumentLabel
    start: float
    duration: float
    tags: list[str]
    favorite: bool
    has_audio: bool


def _to_response(sample: Sample) -> SampleResponse:
    return SampleResponse(**sample.model_dump(), has_audio=sample.source is not None)


def _get_samples_or_404(session_id: str) -> list[Sample]:
    if session_store.get(session_id) is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session_store.get_samples(session_id)


def _get_sample_or_404(session_id: str, sample_id: str) -> Sample:
    _get_samples_or_404(session_id)
    sample = session_store.get_sample(session_id, sample_id)
    if sample is None:
        raise HTTPException(status_code=404, detail="Sample not found")
    return sample


def _attachment(data: bytes, media_type: str, filename: str) -> Response:
    return Response(
        content=data,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/", response_model=list[SampleResponse])
async def list_samples(session_id: str):
    """Samples of a session in detection order."""
    return [_to_response(s) for s in _get_samples_or_404(session_id)]


@router.get("/{sample_id}", response_model=SampleResponse)
async def get_sample(session_id: str, sample_id: str):
    return _to_response(_get_sample_or_404(session_id, sample_id))


@router.patch("/{sample_id}", response_model=SampleResponse)
async def update_sample(session_id: str, sample_id: str, req: SampleUpdateRequest):
    """Rename, re-tag or (un)favorite a sample."""
    sample = _get_sample_or_404(session_id, sample_id)
    try:
        sample_editor.apply_update(sample, req)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    session_store.save_samples(session_id, session_store.get_samples(session_id))
    return _to_response(sample)


@router.post("/{sample_id}/tags", response_model=SampleResponse)
async def add_tag(session_id: str, sample_id: str, req: TagRequest):
    sample = _get_sample_or_404(session_id, sample_id)
    try:
        sample_editor.add_tag(sample, req.tag)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    session_store.save_samples(session_id, session_store.get_samples(session_id))
    return _to_response(sample)


@router.delete("/{sample_id}/tags/{tag}", response_model=SampleResponse)
async def remove_tag(session_id: str, sample_id: str, tag: str):
    sample = _get_sample_or_404(session_id, sample_id)
    sample_editor.remove_tag(sample, tag)
    session_store.save_samples(session_id, session_store.get_samples(session_id))
    return _to_response(sample)


@router.post("/{sample_id}/split", response_model=list[SampleResponse])
async def split_sample(session_id: str, sample_id: str, req: SplitRequest):
    """Replace a sample with the two halves on either side of ``at``."""
    sample = _get_sample_or_404(session_id, sample_id)
    try:
        parts = await asyncio.to_thread(sample_editor.split_sample, sample, req.at, settings.spectrum_mode)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except AnalysisError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    samples = sample_editor.replace_samples(session_store.get_samples(session_id), {sample.id}, parts)
    session_store.save_samples(session_id, samples)
    return [_to_response(s) for s in parts]


@router.post("/merge", response_model=SampleResponse)
async def merge_samples(session_id: str, req: MergeRequest):
    """Replace the selected samples with one spanning all of them."""
    selected = [_get_sample_or_404(session_id, sid) for sid in dict.fromkeys(req.sample_ids)]
    try:
        merged = await asyncio.to_thread(sample_editor.merge_samples, selected, settings.spectrum_mode)
    except SelectionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except AnalysisError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e

    removed = {s.id for s in selected}
    samples = sample_editor.replace_samples(session_store.get_samples(session_id), removed, [merged])
    session_store.save_samples(session_id, samples)
    return _to_response(merged)


@router.post("/export")
async def export_samples(session_id: str, req: BatchExportRequest):
    """Export a selection as a ZIP of audio files."""
    selected = [_get_sample_or_404(session_id, sid) for sid in req.sample_ids]
    try:
        results = await asyncio.to_thread(export_batch, selected, req.settings)
    except SelectionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    if not any(r.ok for r in results):
        raise HTTPException(status_code=422, detail=[r.error for r in results])

    data = await asyncio.to_thread(bundle_zip, results)
    return _attachment(data, "application/zip", f"samples_{session_id[:8]}.zip")


@router.post("/{sample_id}/export")
async def export_sample(session_id: str, sample_id: str, export_settings: ExportSettings):
    """Render one sample to an audio file."""
    sample = _get_sample_or_404(session_id, sample_id)
    try:
        audio = await asyncio.to_thread(export_sample_entity, sample, export_settings)
    except ExportError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    return _attachment(audio.data, audio.media_type, export_filename(sample, export_settings, 1))
