import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import config
from database import engine, Base
from errors import FeeLedgerError

# --- IMPORT ROUTERS (APIs) ---
from routers import auth, masters, students, fee_templates, fee_structures, enrollments, payments, reports

# --- IMPORT MODELS (registers tables on Base) ---
from models.masters import ClassMaster, AcademicYear
from models.students import Student
from models.fee_models import FeeTemplate, ScholarshipTemplate, FeeStructure
from models.enrollment import StudentEnrollment
from models.payments import Payment, ReceiptCounter

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# --- CREATE DATABASE TABLES ---
Base.metadata.create_all(bind=engine)

app = FastAPI(title="School Fee Ledger")


@app.exception_handler(FeeLedgerError)
async def fee_ledger_error_handler(request: Request, exc: FeeLedgerError):
    content = {"detail": exc.message}
    if exc.retryable:
        content["retryable"] = True
    logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=content)


# ==========================================
# CORS MIDDLEWARE
# ==========================================
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- REGISTER ROUTERS ---
app.include_router(auth.router)
app.include_router(masters.router)
app.include_router(students.router)
app.include_router(fee_templates.router)
app.include_router(fee_structures.router)
app.include_router(enrollments.router)
app.include_router(payments.router)
app.include_router(reports.router)


@app.get("/")
def health():
    return {"status": "ok", "app": "School Fee Ledger"}
