import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from starlette.concurrency import run_in_threadpool

from app.api.deps import get_analysis_service, get_file_store
from app.core.config import settings
from app.core.errors import ValidationError
from app.schemas.analysis import AnalysisResult
from app.schemas.resume import ResumeUpload
from app.services.ai_service import AnalysisService
from app.services.parser import SUPPORTED_EXTENSIONS, extract_text
from app.services.storage import EphemeralFileStore

logger = logging.getLogger(__name__)

router = APIRouter()


def validate_upload(resume: Optional[UploadFile], content: bytes, max_bytes: int) -> ResumeUpload:
    """Check an upload's presence, type and size"""
    if resume is None or not resume.filename:
        raise ValidationError("No resume file uploaded")

    upload = ResumeUpload(
        file_name=resume.filename,
        file_type=resume.content_type or "application/octet-stream",
        file_size=len(content),
    )
    if upload.extension not in SUPPORTED_EXTENSIONS:
        raise ValidationError("Invalid file type. Only PDF, DOC, and DOCX files are allowed.")
    if upload.file_size > max_bytes:
        raise ValidationError(f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB.")
    return upload


def run_analysis(
    store: EphemeralFileStore,
    analysis_service: AnalysisService,
    content: bytes,
    upload: ResumeUpload,
    job_description: str,
) -> AnalysisResult:
    """Store, extract and analyze in one worker thread; the upload is always deleted"""
    with store.hold(content, upload.file_name) as stored:
        resume_text = extract_text(stored.path, upload.extension)
        return analysis_service.analyze(resume_text, job_description)


@router.post("/analyze", response_model=AnalysisResult)
async def analyze_resume(
    resume: Optional[UploadFile] = File(None),
    job_description: Optional[str] = Form(None, alias="jobDescription"),
    store: EphemeralFileStore = Depends(get_file_store),
    analysis_service: AnalysisService = Depends(get_analysis_service),
):
    """
    Analyze a resume against a job description

    - **resume**: .pdf, .doc or .docx file, at most 5MB
    - **jobDescription**: text of the job posting
    """
    # read one byte past the limit so oversized files are detected without reading them whole
    content = await resume.read(settings.max_upload_bytes + 1) if resume is not None else b""
    upload = validate_upload(resume, content, settings.max_upload_bytes)

    if not job_description or not job_description.strip():
        raise ValidationError("Job description is required")

    logger.info("Analyzing %s (%s, %d bytes)", upload.file_name, upload.file_type, upload.file_size)

    return await run_in_threadpool(
        run_analysis, store, analysis_service, content, upload, job_description
    )
