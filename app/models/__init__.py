from app.models.user import User
from app.models.analysis import Analysis

__all__ = [
    "User",
    "Analysis",
]
