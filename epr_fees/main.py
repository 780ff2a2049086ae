from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from . import aggregate, processor
from .config import configure_logging, load_settings
from .fees import simulate_fee
from .files import (
    ReferenceDataError,
    UnsupportedFileType,
    issues_to_csv,
    load_registry,
    read_table,
    records_to_csv,
    sha256_hex,
)
from .models import (
    BatchRequest,
    FeeSimulation,
    FeeSummary,
    HealthResponse,
    OverviewStats,
    ProcessedRecord,
    ReferenceCounts,
    ReviewResponse,
    ReviewSummary,
    RowReview,
    SimulationRequest,
    SubmitResponse,
    ValidationIssue,
    VendorTotal,
)
from .processor import SubmissionState
from .registry import ReferenceRegistry
from .validation import review_rows

settings = load_settings()
configure_logging(settings)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="epr-fees",
    description="EPR packaging submission validation and fee calculation",
    version="0.1.0",
)


@dataclass
class Session:
    registry: ReferenceRegistry
    state: SubmissionState = field(default_factory=SubmissionState)


_session: Optional[Session] = None


def get_session() -> Session:
    """The process-wide session; reference data is loaded on first use."""
    global _session
    if _session is None:
        try:
            registry = load_registry(settings.reference_dir)
        except ReferenceDataError as e:
            logger.error("reference data unavailable: %s", e)
            raise HTTPException(status_code=503, detail=str(e))
        _session = Session(registry=registry)
    return _session


async def _read_upload(file: UploadFile) -> List[Dict[str, Any]]:
    raw = await file.read()
    try:
        return read_table(file.filename or "", raw)
    except UnsupportedFileType as e:
        raise HTTPException(status_code=422, detail=str(e))


def _review_response(reviews: List[RowReview]) -> ReviewResponse:
    return ReviewResponse(
        summary=ReviewSummary(
            rows=len(reviews),
            valid=sum(1 for r in reviews if r.is_valid),
            warnings=sum(1 for r in reviews if r.status == "warning"),
            errors=sum(1 for r in reviews if r.status == "error"),
        ),
        rows=reviews,
    )


@app.get("/health", response_model=HealthResponse)
def health():
    return {"ok": True}


@app.get("/reference", response_model=ReferenceCounts)
def reference(session: Session = Depends(get_session)):
    reg = session.registry
    return ReferenceCounts(
        materials=len(reg.materials),
        fees=len(reg.fees),
        vendors=len(reg.vendors),
        products=len(reg.products),
    )


@app.post("/submissions/review", response_model=ReviewResponse)
async def review_upload(file: UploadFile = File(...), session: Session = Depends(get_session)):
    rows = await _read_upload(file)
    return _review_response(review_rows(rows, session.registry))


@app.post("/submissions/upload", response_model=SubmitResponse)
async def submit_upload(file: UploadFile = File(...), session: Session = Depends(get_session)):
    rows = await _read_upload(file)
    reviews = review_rows(rows, session.registry)
    submitted = processor.submit_reviewed(reviews, session.registry, session.state)
    return SubmitResponse(review=_review_response(reviews), submitted=submitted, records=session.state.records)


@app.post("/submissions/batch", response_model=List[ProcessedRecord])
def submit_batch(body: BatchRequest, session: Session = Depends(get_session)):
    processor.process_batch(body.rows, session.registry, session.state)
    return session.state.records


@app.post("/submissions", response_model=ProcessedRecord)
def add_submission(row: Dict[str, Any], session: Session = Depends(get_session)):
    seen = len(session.state.issues)
    record = processor.add_record(row, session.registry, session.state)
    if record is None:
        raise HTTPException(status_code=422, detail=[i.model_dump() for i in session.state.issues[seen:]])
    return record


@app.get("/submissions", response_model=List[ProcessedRecord])
def list_submissions(session: Session = Depends(get_session)):
    return session.state.records


@app.patch("/submissions/{index}", response_model=ProcessedRecord)
def edit_submission(index: int, changes: Dict[str, Any], session: Session = Depends(get_session)):
    if index < 0 or index >= len(session.state.records):
        raise HTTPException(status_code=404, detail=f"No submission at index {index}")
    record = processor.reprocess_record(session.state, index, changes, session.registry)
    if record is None:
        raise HTTPException(status_code=422, detail="Edited submission was rejected; see /issues")
    return record


@app.delete("/submissions", status_code=204)
def clear_submissions(session: Session = Depends(get_session)):
    processor.clear_all(session.state)
    return Response(status_code=204)


@app.delete("/submissions/{sku_id}/{material_name}", status_code=204)
def delete_submission(sku_id: str, material_name: str, session: Session = Depends(get_session)):
    if not processor.remove_record(session.state, sku_id, material_name):
        raise HTTPException(status_code=404, detail="Submission not found")
    return Response(status_code=204)


@app.get("/issues", response_model=List[ValidationIssue])
def list_issues(session: Session = Depends(get_session)):
    return session.state.issues


@app.get("/summary/overview", response_model=OverviewStats)
def summary_overview(session: Session = Depends(get_session)):
    return aggregate.overview_stats(session.state.records)


@app.get("/summary/top-skus", response_model=List[FeeSummary])
def summary_top_skus(
    limit: int = Query(default=settings.top_sku_limit, ge=1),
    session: Session = Depends(get_session),
):
    return aggregate.top_skus_by_fee(session.state.records, session.registry, limit)


@app.get("/summary/vendors", response_model=List[VendorTotal])
def summary_vendors(session: Session = Depends(get_session)):
    return aggregate.vendor_totals(session.state.records, session.registry)


@app.post("/simulate", response_model=FeeSimulation)
def simulate(body: SimulationRequest, session: Session = Depends(get_session)):
    index = processor.find_record(session.state, body.sku_id, body.material_name)
    if index is None:
        raise HTTPException(status_code=404, detail="Submission not found")
    result = simulate_fee(
        session.state.records[index],
        session.registry,
        body.new_material,
        body.new_weight,
        body.new_weight_unit,
        body.new_case_size,
    )
    if result is None:
        raise HTTPException(status_code=404, detail="Selected material not found in fee database")
    return result


def _csv_response(data: bytes, filename: str) -> Response:
    return Response(
        content=data,
        media_type="text/csv; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Content-SHA256": sha256_hex(data),
        },
    )


@app.get("/export/records.csv")
def export_records(session: Session = Depends(get_session)):
    return _csv_response(records_to_csv(session.state.records), "epr_records.csv")


@app.get("/export/issues.csv")
def export_issues(session: Session = Depends(get_session)):
    return _csv_response(issues_to_csv(session.state.issues), "epr_issues.csv")
