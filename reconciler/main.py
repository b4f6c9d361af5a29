# reconciler/main.py

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from reconciler.config import get_settings
from reconciler.routers import health, statements, transactions, reconcile, evidence

settings = get_settings()

# ============================================
# Logging
# ============================================

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# ============================================
# Create FastAPI app
# ============================================

app = FastAPI(
    title=settings.app_name,
    description="Bank statement import and receipt / purchase order reconciliation",
    version="1.0.0",
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)

# ============================================
# CORS middleware
# ============================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        settings.frontend_url,
        "http://localhost:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ============================================
# Include routers
# ============================================

app.include_router(health.router, tags=["Health"])
app.include_router(statements.router, prefix="/statements", tags=["Statements"])
app.include_router(transactions.router, prefix="/statements", tags=["Transactions"])
app.include_router(reconcile.router, prefix="/statements", tags=["Reconciliation"])
app.include_router(evidence.router, prefix="/evidence", tags=["Evidence"])

# ============================================
# Root endpoint
# ============================================

@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs" if settings.debug else None,
    }
