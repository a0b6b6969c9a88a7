# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for Nanopore Intake Extraction

Provides REST API for form extraction and the service's operational
endpoints (health, metrics, circuit breaker reset, cache clear).
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from nanopore_intake.config import base_settings
from nanopore_intake.extractors.text_extractor import DocumentInput
from nanopore_intake.resilience.service import (
    ResilientExtractionService,
    build_extraction_service,
)
from nanopore_intake.utils.logging import setup_logging_from_settings

logger = logging.getLogger(__name__)


def create_app(service: Optional[ResilientExtractionService] = None) -> FastAPI:
    """
    Build the app. A service passed in is used as is (tests); otherwise one
    is wired from settings at startup and closed at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        if owned:
            setup_logging_from_settings()
            app.state.service = build_extraction_service()
            logger.info("Extraction service initialized")
        else:
            app.state.service = service
        try:
            yield
        finally:
            if owned:
                await app.state.service.close()

    app = FastAPI(
        title="Nanopore Intake Extraction API",
        description="Extracts sample-submission fields from intake forms",
        version="1.0.0",
        lifespan=lifespan,
    )

    # CORS for the intake frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    async def health(request: Request):
        """Breaker state, external reachability and metrics."""
        return await request.app.state.service.check_service_health()

    @app.post("/api/extract")
    async def extract(request: Request, file: UploadFile = File(...)):
        """
        Extract form fields from an uploaded PDF or text file.

        Input errors come back as 400; a run where every fallback tier
        failed comes back as 422.
        """
        content = await file.read()
        if not content:
            raise HTTPException(status_code=400, detail="Uploaded file is empty")
        if len(content) > base_settings.MAX_UPLOAD_BYTES:
            raise HTTPException(status_code=413, detail="Uploaded file is too large")

        document = DocumentInput(
            filename=file.filename or "upload",
            content=content,
            content_type=file.content_type or "",
        )
        response = await request.app.state.service.extract_form_data(document)

        if not response.success:
            status_code = 422 if response.fallback_used else 400
            raise HTTPException(status_code=status_code, detail=response.error)

        return response.to_dict()

    @app.get("/api/metrics")
    async def metrics(request: Request):
        return request.app.state.service.get_metrics().to_dict()

    @app.post("/api/circuit-breaker/reset")
    async def reset_circuit_breaker(request: Request):
        service = request.app.state.service
        service.reset_circuit_breaker()
        return {"status": "reset", "circuit_breaker": service.resilience.breaker.snapshot().to_dict()}

    @app.delete("/api/cache")
    async def clear_cache(request: Request):
        request.app.state.service.clear_cache()
        return {"status": "cleared"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
