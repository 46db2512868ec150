from fastapi import APIRouter, Response
from starlette.concurrency import run_in_threadpool

from app.schemas.report import GenerateReportRequest
from app.services.report import render_report

router = APIRouter()

REPORT_FILENAME = "resume-analysis-report.pdf"

@router.post("/generate-report", response_class=Response)
async def generate_report(request: GenerateReportRequest):
    """Render an analysis result as a downloadable PDF"""
    pdf = await run_in_threadpool(render_report, request.resume_file_name, request.analysis_result)

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={REPORT_FILENAME}"},
    )
