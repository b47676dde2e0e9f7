# backend/main.py
from core.env import load_env

load_env()

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import auth, companies, interviews, questions
from core.config import settings
from core.logging import setup_json_logging
from core.request_id import RequestIDMiddleware
from db.init_db import init_db

setup_json_logging(settings.log_level)
log = logging.getLogger("main")

app = FastAPI(title="Interview Ledger API")

app.include_router(auth.router)
app.include_router(interviews.router)
app.include_router(companies.router)
app.include_router(questions.router)

app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

init_db()


@app.get("/health")
def health():
    return {"ok": True}
