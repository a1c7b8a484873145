# main.py
# Entry point for the portfolio builder service.
# - Initializes FastAPI app and logging
# - Registers API routes (portfolios, templates, public pages)
# - Provides root health-check endpoint
# - Run with: uvicorn main:app --reload --app-dir backend/src
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import portfolio_router, public_router, template_router
from config.settings import get_settings

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Portfolio Builder API",
    description="Build, preview and publish personal portfolios",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"status": "healthy", "message": "Portfolio Builder API is running"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


# Register API routes
app.include_router(portfolio_router)
app.include_router(template_router)
app.include_router(public_router)
