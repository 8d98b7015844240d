import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from alchemist.config import settings
from alchemist.routers import samples, sessions, upload

logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Sample Alchemist API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upload.router)
app.include_router(sessions.router)
app.include_router(samples.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
