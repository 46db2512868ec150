from fastapi import Request

from app.services.ai_service import AnalysisService
from app.services.storage import EphemeralFileStore


def get_file_store(request: Request) -> EphemeralFileStore:
    """The upload store created in the app lifespan"""
    return request.app.state.file_store


def get_analysis_service(request: Request) -> AnalysisService:
    return request.app.state.analysis_service
