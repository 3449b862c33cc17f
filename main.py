#!/usr/bin/env python3
"""
ncryptsec Key Service
Local API for password-encrypted private keys and device-link QR payloads.
"""

import logging
import os
import sys
from datetime import datetime

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config.key_profiles import KeyProfileConfig
from services.ncryptsec.key_routes import router as ncryptsec_router


# ============================================================================
# Configuration
# ============================================================================

class Config:
    """Service configuration"""
    VERSION = "1.0.0"

    HOST: str = os.getenv("NCRYPTSEC_HOST", "127.0.0.1")
    PORT: int = int(os.getenv("NCRYPTSEC_PORT", "8095"))

    DEBUG: bool = os.getenv("NCRYPTSEC_DEBUG", "false").lower() == "true"
    LOG_FILE: str = os.getenv("NCRYPTSEC_LOG_FILE", "")


config = Config()


# ============================================================================
# Logging
# ============================================================================

def setup_logging():
    """Configure the logging system"""
    handlers = [logging.StreamHandler(sys.stdout)]

    if config.LOG_FILE:
        handlers.append(logging.FileHandler(config.LOG_FILE, encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if config.DEBUG else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    return logging.getLogger(__name__)

logger = setup_logging()


# ============================================================================
# FastAPI Application
# ============================================================================

app = FastAPI(
    title="ncryptsec Key Service API",
    version=config.VERSION,
    description="Password-encrypted private keys (NIP-49) and device-link payloads"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
    expose_headers=["X-Link-Pin"],
)

app.include_router(ncryptsec_router)


@app.get("/api/health")
def health_check():
    """Service health check"""
    return {
        "status": "healthy",
        "version": config.VERSION,
        "profiles": KeyProfileConfig.as_dict(),
        "timestamp": datetime.now().isoformat(),
    }


if __name__ == "__main__":
    print("=" * 70)
    print(f"ncryptsec Key Service v{config.VERSION}")
    print("=" * 70)
    print(f"Address:  http://{config.HOST}:{config.PORT}")
    print(f"API docs: http://{config.HOST}:{config.PORT}/docs")
    print(f"Storage profile: logn={KeyProfileConfig.STORAGE_LOGN}")
    print(f"Link profile:    logn={KeyProfileConfig.LINK_LOGN}, pin_length={KeyProfileConfig.PIN_LENGTH}")
    print("=" * 70)

    logger.info(f"Starting ncryptsec key service on {config.HOST}:{config.PORT}")
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level="debug" if config.DEBUG else "info",
        access_log=False
    )
