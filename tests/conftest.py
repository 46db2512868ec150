import json
import os
import tempfile
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock

# settings are read at import time, so point them somewhere disposable first
_TEST_DIR = Path(tempfile.mkdtemp(prefix="resume-optimizer-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["UPLOAD_DIR"] = str(_TEST_DIR / "uploads")
os.environ["OPENAI_API_KEY"] = ""
os.environ["DEMO_MODE"] = "false"

import pytest
from docx import Document
from fastapi.testclient import TestClient
from reportlab.lib.pagesizes import LETTER
from reportlab.pdfgen import canvas

from app.api.deps import get_analysis_service
from app.main import app
from app.services.ai_service import AnalysisService


def completion(content):
    """Shape of an OpenAI chat completion, as far as AnalysisService reads it"""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
    )


def fake_openai(content=None, side_effect=None) -> MagicMock:
    client = MagicMock()
    if side_effect is not None:
        client.chat.completions.create.side_effect = side_effect
    else:
        client.chat.completions.create.return_value = completion(content)
    return client


@pytest.fixture
def analysis_payload():
    return {
        "matchPercentage": 62,
        "missingSkills": [
            {
                "skill": "Kubernetes",
                "priority": "high",
                "explanation": "The role deploys services on Kubernetes.",
                "recommendation": "Add any container orchestration experience.",
                "suggestedText": "Deployed Go services to Kubernetes with Helm.",
            },
            {
                "skill": "Terraform",
                "priority": "low",
                "explanation": "Infrastructure is managed as code.",
                "recommendation": "Mention infrastructure-as-code tools you know.",
            },
        ],
        "experienceReframing": [
            {
                "title": "Backend services",
                "explanation": "Your API work maps to the platform team's needs.",
                "recommendation": "Lead with throughput and reliability numbers.",
                "suggestedText": "Built Go APIs serving 2k requests/second.",
            }
        ],
        "strengths": [
            {
                "title": "Go",
                "explanation": "Go is the team's primary language.",
                "recommendation": "Move Go to the top of your skills list.",
            }
        ],
        "suggestedSections": [
            {"title": "Technical Skills", "content": "Go, Rust, Docker, PostgreSQL"}
        ],
    }


@pytest.fixture
def make_docx(tmp_path):
    def _make(*paragraphs: str, name: str = "resume.docx") -> Path:
        doc = Document()
        for text in paragraphs:
            doc.add_paragraph(text)
        path = tmp_path / name
        doc.save(str(path))
        return path
    return _make


@pytest.fixture
def make_pdf(tmp_path):
    def _make(*lines: str, name: str = "resume.pdf") -> Path:
        path = tmp_path / name
        c = canvas.Canvas(str(path), pagesize=LETTER)
        y = 720
        for line in lines:
            c.drawString(72, y, line)
            y -= 18
        c.showPage()
        c.save()
        return path
    return _make


@pytest.fixture
def openai_client(analysis_payload):
    return fake_openai(json.dumps(analysis_payload))


@pytest.fixture
def client(openai_client):
    service = AnalysisService(api_key="sk-test", client=openai_client)
    app.dependency_overrides[get_analysis_service] = lambda: service
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
