from pathlib import Path
from pydantic import Field
from typing import Optional

from app.schemas.analysis import CamelModel

class ResumeUpload(CamelModel):
    """Descriptive view of an uploaded resume"""
    file_name: str
    file_type: str
    file_size: int = Field(ge=0)
    content: Optional[str] = None

    @property
    def extension(self) -> str:
        return Path(self.file_name).suffix.lower()
