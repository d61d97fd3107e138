from pydantic import BaseModel, confloat
from datetime import date
from typing import Dict, List, Optional

# NaN and Infinity are refused at the edge
Amount = confloat(allow_inf_nan=False)


# ==================
# TEMPLATES
# ==================

class FeeTemplateCreate(BaseModel):
    name: str
    category: str = "REGULAR"
    order: int = 0
    is_active: bool = True

class FeeTemplateUpdate(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None

class FeeTemplateOut(BaseModel):
    id: int
    name: str
    category: str
    order: int
    is_active: bool
    class Config:
        from_attributes = True


class ScholarshipTemplateCreate(BaseModel):
    name: str
    type: str = "GENERAL"
    order: int = 0
    is_active: bool = True

class ScholarshipTemplateUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None

class ScholarshipTemplateOut(BaseModel):
    id: int
    name: str
    type: str
    order: int
    is_active: bool
    class Config:
        from_attributes = True


# ==================
# FEE STRUCTURES
# ==================

class FeeItemInput(BaseModel):
    id: Optional[str] = None  # existing line id, keeps the line on update
    template_id: int
    amount: Amount
    is_compulsory: Optional[bool] = None
    is_editable_during_enrollment: Optional[bool] = None
    order: Optional[int] = None

class ScholarshipItemInput(BaseModel):
    id: Optional[str] = None
    template_id: int
    amount: Amount
    is_auto_applied: Optional[bool] = None
    is_editable_during_enrollment: Optional[bool] = None
    order: Optional[int] = None

class FeeStructureCreate(BaseModel):
    academic_year_id: int
    class_id: int
    name: Optional[str] = None
    description: Optional[str] = None
    fee_items: List[FeeItemInput] = []
    scholarship_items: List[ScholarshipItemInput] = []

class FeeStructureUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
    fee_items: Optional[List[FeeItemInput]] = None
    scholarship_items: Optional[List[ScholarshipItemInput]] = None

class FeeStructureCopy(BaseModel):
    academic_year_id: int
    class_id: int
    name: Optional[str] = None


class FeeItemOut(BaseModel):
    id: str
    template_id: int
    template_name: str
    template_category: str
    amount: float
    is_compulsory: bool
    is_editable_during_enrollment: bool
    order: int

class ScholarshipItemOut(BaseModel):
    id: str
    template_id: int
    template_name: str
    template_type: str
    amount: float
    is_auto_applied: bool
    is_editable_during_enrollment: bool
    order: int

class FeeStructureOut(BaseModel):
    id: int
    academic_year_id: int
    class_id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    academic_year: Dict
    class_info: Dict
    fee_items: List[FeeItemOut]
    scholarship_items: List[ScholarshipItemOut]
    total_fees: Dict[str, float]
    total_scholarships: Dict[str, float]
    created_by: Optional[str] = None
    created_at: Optional[date] = None
    class Config:
        from_attributes = True
