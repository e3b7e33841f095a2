# backend/app/routers/listings.py
from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal, require_host
from ..clock import get_now
from ..db import get_db
from ..models import Listing
from ..schemas import ListingCreate, ListingOut
from ..services.ownership import must_get_listing

router = APIRouter(prefix="/listings", tags=["listings"])


@router.post("", response_model=ListingOut, status_code=201)
def create_listing(
    payload: ListingCreate,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    p: Principal = Depends(require_host),
):
    row = Listing(host_id=p.account_id, created_at=now, **payload.model_dump())
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


@router.get("", response_model=list[ListingOut])
def list_listings(limit: int = 100, db: Session = Depends(get_db)):
    limit = max(1, min(int(limit), 500))
    return db.scalars(select(Listing).order_by(Listing.id.desc()).limit(limit)).all()


@router.get("/{listing_id}", response_model=ListingOut)
def get_listing(listing_id: int, db: Session = Depends(get_db)):
    return must_get_listing(db, listing_id=listing_id)
