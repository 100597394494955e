from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from booking_api.core.exceptions import InternalError
from booking_api.database import SessionLocal, ensure_appointment_schema
from booking_api.services.appointment_service import AppointmentService

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    date: str | None = None
    time: str | None = None
    student: str | None = None
    notes: str = ''

    @field_validator('student')
    @classmethod
    def strip_student(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip()

    @field_validator('notes', mode='before')
    @classmethod
    def normalize_notes(cls, value: str | None) -> str:
        if value is None:
            return ''
        return value.strip() if isinstance(value, str) else value


class DeleteAppointmentRequest(BaseModel):
    id: int | None = None


class AppointmentView(BaseModel):
    id: int
    time: str
    student: str
    notes: str = ''
    created_at: datetime | None = Field(default=None, alias='createdAt')

    class Config:
        populate_by_name = True


class AppointmentSnapshot(AppointmentView):
    date: str


class CreateAppointmentResponse(BaseModel):
    success: bool = True
    id: int
    message: str


class DeleteAppointmentResponse(BaseModel):
    success: bool = True
    message: str
    deleted: AppointmentSnapshot


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise InternalError(f'database unavailable: {exc}') from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@router.get('', response_model=dict[str, list[AppointmentView]])
def list_appointments(
    date: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    return AppointmentService(db).list_appointments(date_filter=date)


@router.get('/{appointment_id}', response_model=AppointmentSnapshot)
def get_appointment(appointment_id: int, db: Session = Depends(get_db)):
    ensure_database_ready()

    return AppointmentService(db).get_appointment(appointment_id)


@router.post('', response_model=CreateAppointmentResponse)
def create_appointment(data: CreateAppointmentRequest | None = None, db: Session = Depends(get_db)):
    data = data or CreateAppointmentRequest()

    ensure_database_ready()

    created = AppointmentService(db).create_appointment(
        date=data.date,
        time=data.time,
        student=data.student,
        notes=data.notes,
    )
    return CreateAppointmentResponse(id=created['id'], message=created['message'])


@router.delete('', response_model=DeleteAppointmentResponse)
def delete_appointment(data: DeleteAppointmentRequest | None = None, db: Session = Depends(get_db)):
    data = data or DeleteAppointmentRequest()

    ensure_database_ready()

    result = AppointmentService(db).delete_appointment(data.id)
    return DeleteAppointmentResponse(message='deleted', deleted=AppointmentSnapshot(**result['deleted']))


@router.options('', status_code=status.HTTP_200_OK)
def appointments_options():
    return Response(status_code=status.HTTP_200_OK)
