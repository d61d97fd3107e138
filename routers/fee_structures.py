from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from database import get_db
from routers.auth import get_current_user
from schemas.fees import FeeStructureCreate, FeeStructureUpdate, FeeStructureCopy, FeeStructureOut
from services import fee_structures as builder
from typing import List, Optional

router = APIRouter(prefix="/api/v1/fee-structures", tags=["Fee Structures"])


@router.get("", response_model=List[FeeStructureOut])
def get_fee_structures(academic_year_id: Optional[int] = None, class_id: Optional[int] = None,
                       include_inactive: bool = False, db: Session = Depends(get_db),
                       user: dict = Depends(get_current_user)):
    return builder.list_fee_structures(db, academic_year_id, class_id, include_inactive)


@router.get("/{structure_id}", response_model=FeeStructureOut)
def get_fee_structure(structure_id: int, db: Session = Depends(get_db),
                      user: dict = Depends(get_current_user)):
    return builder.get_fee_structure(db, structure_id)


@router.post("", response_model=FeeStructureOut, status_code=201)
def create_fee_structure(data: FeeStructureCreate, db: Session = Depends(get_db),
                         user: dict = Depends(get_current_user)):
    return builder.create_fee_structure(
        db,
        academic_year_id=data.academic_year_id,
        class_id=data.class_id,
        name=data.name,
        fee_items=[item.model_dump() for item in data.fee_items],
        scholarship_items=[item.model_dump() for item in data.scholarship_items],
        description=data.description,
        created_by=user["username"],
    )


@router.put("/{structure_id}", response_model=FeeStructureOut)
def update_fee_structure(structure_id: int, data: FeeStructureUpdate, db: Session = Depends(get_db),
                         user: dict = Depends(get_current_user)):
    """Re-prices the structure only; existing enrollments keep their lines"""
    return builder.update_fee_structure(db, structure_id, data.model_dump(exclude_unset=True))


@router.post("/{structure_id}/deactivate", response_model=FeeStructureOut)
def deactivate_fee_structure(structure_id: int, db: Session = Depends(get_db),
                             user: dict = Depends(get_current_user)):
    return builder.deactivate_fee_structure(db, structure_id)


@router.post("/{structure_id}/copy", response_model=FeeStructureOut, status_code=201)
def copy_fee_structure(structure_id: int, data: FeeStructureCopy, db: Session = Depends(get_db),
                       user: dict = Depends(get_current_user)):
    return builder.copy_fee_structure(
        db, structure_id, data.academic_year_id, data.class_id, data.name, created_by=user["username"]
    )
