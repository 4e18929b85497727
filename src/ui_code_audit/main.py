"""FastAPI application for ui-code-audit."""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .errors import ConfigError
from .models import AuditRequest, AuditResponse
from .orchestrator import run_audit

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="UI Code Audit",
    description="Accessibility, ESLint, Stylelint, security and performance audits for front-end projects",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8000",
    ],
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}


@app.post("/audit", response_model=AuditResponse)
async def audit(request: AuditRequest) -> AuditResponse:
    """
    Audit a front-end project.

    - **path** / **repo_url**: local directory or git repository to audit
    - **categories**: any of accessibility, eslint, stylelint, security, performance
    - **project_type**: selects the bundled ESLint ruleset
    - **urls**: live pages for page-level accessibility checks
    - **ci**: evaluate quality-gate thresholds and write CI artifacts
    """
    if not request.path and not request.repo_url:
        raise HTTPException(status_code=400, detail="Provide either 'path' or 'repo_url'")

    try:
        logger.info(f"Auditing {request.path or request.repo_url} ({', '.join(request.categories)})")
        return await run_audit(request)
    except (ConfigError, ValueError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Audit failed: {e}")
        raise HTTPException(status_code=500, detail=f"Audit failed: {str(e)}")
