import logging
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables from backend/.env before importing routes
BASE_DIR = Path(__file__).resolve().parent.parent  # backend/mockexam -> backend
load_dotenv(BASE_DIR / ".env")

from mockexam.api.routes import exam, feedback, live  # noqa: E402
from mockexam.config import get_settings  # noqa: E402

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Language Test Mock Exam Simulator", version="1.0.0")

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,  # React dev servers by default
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(exam.router, prefix="/api/exam", tags=["exam"])
app.include_router(feedback.router, prefix="/api/feedback", tags=["feedback"])
app.include_router(live.router, prefix="/api/live", tags=["live"])


@app.get("/")
def root():
    return {"message": "Language Test Mock Exam Simulator API"}


@app.get("/health")
def health():
    return {"status": "healthy"}


def run():
    uvicorn.run("mockexam.main:app", host="0.0.0.0", port=8000)
