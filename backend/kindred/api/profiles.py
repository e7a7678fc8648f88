"""
Brand and supplier profile endpoints for the current user.
"""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import EmailStr
from sqlalchemy.orm import Session

from kindred.api.schemas import CamelModel
from kindred.core.auth import require_role
from kindred.core.database import get_db
from kindred.core.responses import success_response
from kindred.models.user import User, UserRole
from kindred.services.profiles import create_brand, create_supplier, get_user_brand, get_user_supplier
from kindred.services.serializers import brand_dict, supplier_dict

router = APIRouter()


class CreateBrandRequest(CamelModel):
    name: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None


class CreateSupplierRequest(CamelModel):
    company_name: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    description: Optional[str] = None


@router.get("/brand")
async def get_my_brand(
    current_user: User = Depends(require_role(UserRole.BRAND, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    brand = get_user_brand(db, current_user.id)
    if not brand:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Brand profile not found")
    return success_response(brand_dict(brand))


@router.post("/brand")
async def create_my_brand(
    request: CreateBrandRequest,
    current_user: User = Depends(require_role(UserRole.BRAND, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    brand = create_brand(db, current_user, request.name, request.category, request.description, request.logo_url)
    return success_response(brand_dict(brand), status_code=status.HTTP_201_CREATED)


@router.get("/supplier")
async def get_my_supplier(
    current_user: User = Depends(require_role(UserRole.SUPPLIER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    supplier = get_user_supplier(db, current_user.id)
    if not supplier:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Supplier profile not found")
    return success_response(supplier_dict(supplier))


@router.post("/supplier")
async def create_my_supplier(
    request: CreateSupplierRequest,
    current_user: User = Depends(require_role(UserRole.SUPPLIER, UserRole.ADMIN)),
    db: Session = Depends(get_db),
):
    supplier = create_supplier(db, current_user, request.company_name, request.contact_email, request.description)
    return success_response(supplier_dict(supplier), status_code=status.HTTP_201_CREATED)
