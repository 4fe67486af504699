# Run from project root: uvicorn swasth.main:app --reload

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from swasth.api.routes import router
from swasth.core.config import CLIENT_URL

logging.basicConfig(level=logging.INFO)
# httpx logs full request URLs at INFO, and the Gemini key rides in the query string
logging.getLogger("httpx").setLevel(logging.WARNING)


app = FastAPI(title="Swasth Bharat API")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CLIENT_URL],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["*"],
    allow_credentials=True,
)
app.include_router(router)
