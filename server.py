"""
PediCare Web Server

FastAPI-based API over the clinic core: patients, appointments, the ledger,
growth analysis and the clinical assistant. Every list is narrowed to the
viewer's access scope; every appointment mutation goes through the
synchronizer.
"""

import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Setup paths
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from src.auth import get_current_user, get_admin_user
from src.config import get_config
from src.core import ClinicService, Collection, SyncPlan
from src.core.reports import filter_transactions
from src.db.provider import get_repositories
from src.db.repositories import RepositorySet
from src.errors import (
    AccessDeniedError,
    ClinicError,
    ConsistencyLookupAmbiguity,
    DuplicateKeyError,
    NotFoundError,
    PartialCascadeFailure,
    ValidationError,
)
from src.llm import AssistMode, ClinicalAssistant
from src.models import (
    Appointment,
    AppointmentStatus,
    Patient,
    Sex,
    Transaction,
    TransactionType,
    User,
)

logging.basicConfig(
    level=get_config().log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# Create FastAPI app
app = FastAPI(
    title="PediCare",
    description="PediCare - Pediatric practice records API",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_service(repos: RepositorySet = Depends(get_repositories)) -> ClinicService:
    return ClinicService(repos)


def get_assistant() -> ClinicalAssistant:
    return ClinicalAssistant()


# =============================================================================
# ERROR MAPPING
# =============================================================================

ERROR_STATUS: list[tuple[type[ClinicError], int]] = [
    (ValidationError, 400),
    (AccessDeniedError, 403),
    (NotFoundError, 404),
    (DuplicateKeyError, 409),
    (ConsistencyLookupAmbiguity, 409),
    (PartialCascadeFailure, 500),
]


@app.exception_handler(ClinicError)
async def clinic_error_handler(request: Request, exc: ClinicError):
    status_code = next((code for kind, code in ERROR_STATUS if isinstance(exc, kind)), 400)
    content = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, PartialCascadeFailure):
        logger.error("Partial cascade on %s %s: %s", request.method, request.url.path, exc)
        content["applied"] = [str(w) for w in exc.applied]
        content["pending"] = [str(w) for w in [exc.failed, *exc.pending]]
    return JSONResponse(status_code=status_code, content=content)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class PatientRequest(BaseModel):
    """Patient fields a doctor can edit; ownership and growth history are server-side."""
    name: str
    birth_date: date
    sex: Sex
    parent_name: str = ""
    parent_phone: str = ""
    email: Optional[str] = None
    allergies: list[str] = Field(default_factory=list)
    blood_type: str = ""
    notes: str = ""
    doctor_id: Optional[str] = Field(None, description="Owning doctor; admins only")


class AppointmentRequest(BaseModel):
    """Appointment or consultation as submitted by the agenda screen."""
    patient_id: Optional[str] = None
    date_time: datetime
    reason: str = ""
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    cost: Optional[float] = None
    symptoms: Optional[str] = None
    physical_exam: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    doctor_id: Optional[str] = Field(None, description="Owning doctor; must match the patient's doctor")


class TransactionRequest(BaseModel):
    """A manual ledger entry."""
    date: date
    type: TransactionType
    category: str
    description: str = ""
    amount: float = Field(ge=0)
    doctor_id: Optional[str] = Field(None, description="Owning doctor; admins only")


class AssistRequest(BaseModel):
    text: str = Field(min_length=1)
    mode: AssistMode = AssistMode.SUMMARY


def _owner(user: User, requested: Optional[str]) -> str:
    """Doctors always own what they create; admins must name a doctor."""
    if not user.is_admin:
        return user.id
    if not requested:
        raise HTTPException(status_code=400, detail="doctor_id is required for admin requests")
    return requested


def _plan_response(plan: SyncPlan) -> dict:
    return {
        "writes": [str(w) for w in plan.writes],
        "orphaned": plan.orphaned,
    }


# =============================================================================
# ROUTES
# =============================================================================


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/api/auth/me")
async def get_me(user: User = Depends(get_current_user)):
    return user.model_dump(mode="json")


# -----------------------------------------------------------------------------
# Patients
# -----------------------------------------------------------------------------


@app.get("/api/patients")
async def list_patients(
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
):
    """List the patients in the viewer's scope."""
    patients = service.patients_for(user)
    if search:
        patients = [p for p in patients if search.lower() in p.name.lower()]
    return {
        "total": len(patients),
        "patients": [p.model_dump(mode="json") for p in patients],
    }


@app.post("/api/patients", status_code=201)
async def create_patient(
    request: PatientRequest,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    data = request.model_dump(exclude={"doctor_id"})
    patient = Patient(doctor_id=_owner(user, request.doctor_id), **data)
    return service.add_patient(patient).model_dump(mode="json")


@app.get("/api/patients/{patient_id}")
async def get_patient(
    patient_id: str,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    return service.get_for(user, Collection.PATIENTS, patient_id).model_dump(mode="json")


@app.put("/api/patients/{patient_id}")
async def update_patient(
    patient_id: str,
    request: PatientRequest,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    """Edit demographics. Growth history and ownership are kept."""
    existing = service.get_for(user, Collection.PATIENTS, patient_id)
    updated = existing.model_copy(update=request.model_dump(exclude={"doctor_id"}))
    return service.update_patient(updated).model_dump(mode="json")


@app.delete("/api/patients/{patient_id}")
async def delete_patient(
    patient_id: str,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    service.get_for(user, Collection.PATIENTS, patient_id)
    service.delete_patient(patient_id)
    return {"status": "deleted", "id": patient_id}


@app.get("/api/patients/{patient_id}/growth")
async def get_patient_growth(
    patient_id: str,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    """Current growth classification plus the full trend for charting."""
    analysis, series = service.growth_for(user, patient_id)
    return {
        "patient_id": patient_id,
        "analysis": analysis.to_dict() if analysis else None,
        "series": [
            {
                "date": p.date.isoformat(),
                "age_months": p.age_months,
                "weight": p.weight,
                "height": p.height,
                "head_circumference": p.head_circumference,
            }
            for p in series
        ],
    }


# -----------------------------------------------------------------------------
# Appointments
# -----------------------------------------------------------------------------


def _build_appointment(
    service: ClinicService,
    user: User,
    request: AppointmentRequest,
    appointment_id: Optional[str] = None,
    doctor_id: Optional[str] = None,
) -> Appointment:
    """
    Attach ownership and the patient-name snapshot to a submitted appointment.

    The owner is the patient's doctor; a different `doctor_id` in the request
    is refused.
    """
    patient_name = "Desconocido"
    if request.patient_id:
        patient = service.get_for(user, Collection.PATIENTS, request.patient_id)
        patient_name = patient.name
        if request.doctor_id and request.doctor_id != patient.doctor_id:
            raise HTTPException(
                status_code=400,
                detail=f"Patient {patient.id} belongs to {patient.doctor_id}",
            )
        doctor_id = patient.doctor_id

    data = request.model_dump(exclude={"doctor_id"})
    if appointment_id:
        data["id"] = appointment_id
    return Appointment(
        doctor_id=doctor_id or _owner(user, request.doctor_id),
        patient_name=patient_name,
        **data,
    )


@app.get("/api/appointments")
async def list_appointments(
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
    on: Optional[date] = Query(None, description="Only appointments on this day"),
):
    appointments = service.appointments_for(user)
    if on:
        appointments = [a for a in appointments if a.visit_date == on]
    return {
        "total": len(appointments),
        "appointments": [a.model_dump(mode="json") for a in appointments],
    }


@app.post("/api/appointments", status_code=201)
async def create_appointment(
    request: AppointmentRequest,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    """Create an appointment; its income entry is recorded alongside."""
    appointment = _build_appointment(service, user, request)
    plan = service.create_appointment(appointment)
    return {"appointment": appointment.model_dump(mode="json"), **_plan_response(plan)}


@app.put("/api/appointments/{appointment_id}")
async def update_appointment(
    appointment_id: str,
    request: AppointmentRequest,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    existing = service.get_for(user, Collection.APPOINTMENTS, appointment_id)
    appointment = _build_appointment(service, user, request, appointment_id, existing.doctor_id)
    plan = service.update_appointment(appointment)
    return {"appointment": appointment.model_dump(mode="json"), **_plan_response(plan)}


@app.delete("/api/appointments/{appointment_id}")
async def delete_appointment(
    appointment_id: str,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    service.get_for(user, Collection.APPOINTMENTS, appointment_id)
    plan = service.delete_appointment(appointment_id)
    return {"status": "deleted", "id": appointment_id, **_plan_response(plan)}


# -----------------------------------------------------------------------------
# Ledger
# -----------------------------------------------------------------------------


@app.get("/api/transactions")
async def list_transactions(
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
    transaction_type: Optional[TransactionType] = Query(None, alias="type", description="INCOME or EXPENSE"),
):
    transactions = filter_transactions(service.transactions_for(user), transaction_type)
    return {
        "total": len(transactions),
        "transactions": [t.model_dump(mode="json") for t in transactions],
    }


@app.post("/api/transactions", status_code=201)
async def create_transaction(
    request: TransactionRequest,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    """Record a manual income or expense entry."""
    data = request.model_dump(exclude={"doctor_id"})
    transaction = Transaction(doctor_id=_owner(user, request.doctor_id), **data)
    return service.add_transaction(transaction).model_dump(mode="json")


@app.delete("/api/transactions/{transaction_id}")
async def delete_transaction(
    transaction_id: str,
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    service.get_for(user, Collection.TRANSACTIONS, transaction_id)
    service.delete_transaction(transaction_id)
    return {"status": "deleted", "id": transaction_id}


@app.get("/api/ledger/summary")
async def ledger_summary(
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    return service.ledger_for(user).to_dict()


@app.get("/api/dashboard")
async def dashboard(
    user: User = Depends(get_current_user),
    service: ClinicService = Depends(get_service),
):
    return service.dashboard_for(user).to_dict()


# -----------------------------------------------------------------------------
# Users (admin)
# -----------------------------------------------------------------------------


@app.get("/api/users")
async def list_users(
    admin: User = Depends(get_admin_user),
    repos: RepositorySet = Depends(get_repositories),
):
    return {"users": [u.model_dump(mode="json") for u in repos.users.all()]}


@app.post("/api/users", status_code=201)
async def create_user(
    user: User,
    admin: User = Depends(get_admin_user),
    service: ClinicService = Depends(get_service),
):
    return service.add_user(user).model_dump(mode="json")


@app.put("/api/users/{user_id}")
async def update_user(
    user_id: str,
    user: User,
    admin: User = Depends(get_admin_user),
    service: ClinicService = Depends(get_service),
):
    """Edit a user's profile. The role is fixed at creation."""
    updated = user.model_copy(update={"id": user_id})
    return service.update_user(updated).model_dump(mode="json")


@app.delete("/api/users/{user_id}")
async def delete_user(
    user_id: str,
    admin: User = Depends(get_admin_user),
    service: ClinicService = Depends(get_service),
):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="Cannot delete the current user")
    service.delete_user(user_id)
    return {"status": "deleted", "id": user_id}


# -----------------------------------------------------------------------------
# Assistant
# -----------------------------------------------------------------------------


@app.post("/api/assistant")
async def assist(
    request: AssistRequest,
    user: User = Depends(get_current_user),
    assistant: ClinicalAssistant = Depends(get_assistant),
):
    """Summarize a note or analyze symptoms. Always returns text."""
    return {"mode": request.mode.value, "text": assistant.run(request.text, request.mode)}


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the server."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
