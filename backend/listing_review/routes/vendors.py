from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..auth import get_current_user
from .. import errors, models, schemas

# purpose: read-only views of live vendor and service rows; writes go through drafts
# status: active

router = APIRouter(prefix="/api/vendors", tags=["vendors"])
services_router = APIRouter(prefix="/api/services", tags=["services"])


@router.get("/mine", response_model=List[schemas.VendorOut])
def list_my_vendors(
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    return (
        db.query(models.Vendor)
        .filter(models.Vendor.owner_id == user.id)
        .order_by(models.Vendor.created_at.asc())
        .all()
    )


@router.get("/{vendor_id}", response_model=schemas.VendorOut)
def get_vendor(
    vendor_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    vendor = db.get(models.Vendor, vendor_id)
    if vendor is None:
        raise errors.NotFoundError("Vendor not found")
    return vendor


@router.get("/{vendor_id}/services", response_model=List[schemas.ServiceOut])
def list_vendor_services(
    vendor_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    if db.get(models.Vendor, vendor_id) is None:
        raise errors.NotFoundError("Vendor not found")
    return (
        db.query(models.Service)
        .filter(models.Service.vendor_id == vendor_id)
        .order_by(models.Service.created_at.asc())
        .all()
    )


@services_router.get("/{service_id}", response_model=schemas.ServiceOut)
def get_service(
    service_id: UUID,
    db: Session = Depends(get_db),
    user: models.User = Depends(get_current_user),
):
    service = db.get(models.Service, service_id)
    if service is None:
        raise errors.NotFoundError("Service not found")
    return service
