import json

import pytest
from fastapi.testclient import TestClient

from mockexam.config import Settings
from mockexam.main import app
from mockexam.models.catalog import Section
from mockexam.services.catalog_service import CatalogService
from mockexam.services.exam_service import ExamService, get_exam_service
from mockexam.services.feedback_service import FeedbackService, get_feedback_service
from mockexam.services.live_session_service import (
    LiveSessionService,
    get_live_session_service,
)

QUICK_CATALOGS = [
    {
        "code": "quick",
        "title": "Quick two-section exam",
        "test_type": "ielts",
        "sections": [
            {"id": "reading", "title": "Reading", "duration_seconds": 2, "question_count": 3},
            {"id": "writing", "title": "Writing", "duration_seconds": 1, "question_count": 1},
        ],
        "tasks": [
            {
                "section_id": "writing",
                "question_number": 1,
                "mode": "writing",
                "task_type": "task2",
                "prompt": "Discuss remote work.",
                "target_word_count": 100,
            }
        ],
    }
]


@pytest.fixture
def ielts_sections():
    return [
        Section(id="listening", title="Listening", duration_seconds=1800, question_count=40),
        Section(id="reading", title="Reading", duration_seconds=3600, question_count=40),
        Section(id="writing", title="Writing", duration_seconds=3600, question_count=2),
        Section(id="speaking", title="Speaking", duration_seconds=900, question_count=3),
    ]


@pytest.fixture
def quick_catalog_path(tmp_path):
    path = tmp_path / "quick_catalogs.json"
    path.write_text(json.dumps(QUICK_CATALOGS), encoding="utf-8")
    return path


@pytest.fixture
def offline_settings():
    return Settings(openai_api_key=None)


def _build_client(catalog_service, settings, tick_interval):
    exam_service = ExamService(catalog_service)
    feedback_service = FeedbackService(settings=settings)
    live_service = LiveSessionService(exam_service, tick_interval=tick_interval)

    app.dependency_overrides[get_exam_service] = lambda: exam_service
    app.dependency_overrides[get_feedback_service] = lambda: feedback_service
    app.dependency_overrides[get_live_session_service] = lambda: live_service
    return TestClient(app), exam_service


@pytest.fixture
def client(offline_settings):
    test_client, _ = _build_client(CatalogService(), offline_settings, tick_interval=60)
    yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def quick_client(quick_catalog_path, offline_settings):
    test_client, _ = _build_client(
        CatalogService(quick_catalog_path), offline_settings, tick_interval=0.01
    )
    yield test_client
    app.dependency_overrides.clear()
