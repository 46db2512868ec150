from pydantic import Field

from app.schemas.analysis import AnalysisResult, CamelModel

class GenerateReportRequest(CamelModel):
    resume_file_name: str = Field(min_length=1)
    analysis_result: AnalysisResult
