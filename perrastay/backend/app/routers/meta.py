# backend/app/routers/meta.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..auth import get_settings
from ..config import Settings
from ..db import get_db

router = APIRouter(tags=["meta"])


@router.get("/health", response_model=dict)
def health(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"ok": True}


@router.get("/meta/version", response_model=dict)
def version(cfg: Settings = Depends(get_settings)):
    return {"name": cfg.app_name, "version": cfg.app_version, "env": cfg.app_env}
