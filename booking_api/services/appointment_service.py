import logging
import re
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from booking_api.core import config
from booking_api.core.exceptions import ConflictError, InternalError, NotFoundError, ValidationError
from booking_api.models.appointment import Appointment

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r'[0-9]{4}-[0-9]{2}-[0-9]{2}')
TIME_PATTERN = re.compile(r'[0-9]{2}:[0-9]{2}')

# Signed 64-bit range of the id column; anything outside it cannot exist.
MAX_STORED_ID = 2**63 - 1
MIN_STORED_ID = -(2**63)


def is_storable_id(appointment_id: int) -> bool:
    return MIN_STORED_ID <= appointment_id <= MAX_STORED_ID


def to_stored_time(slot_time: str) -> str:
    return f'{slot_time}:00'


def to_display_time(stored_time: str) -> str:
    return (stored_time or '')[:5]


def to_view(appointment: Appointment) -> dict:
    return {
        'id': appointment.id,
        'time': to_display_time(appointment.appointment_time),
        'student': appointment.student_name,
        'notes': appointment.notes or '',
        'createdAt': appointment.created_at,
    }


def to_snapshot(appointment: Appointment) -> dict:
    return {'date': appointment.appointment_date, **to_view(appointment)}


def group_by_date(appointments: list[Appointment]) -> dict[str, list[dict]]:
    grouped: dict[str, list[dict]] = {}
    for appointment in appointments:
        grouped.setdefault(appointment.appointment_date, []).append(to_view(appointment))
    return grouped


class AppointmentService:
    """Create, read and delete riding lesson appointments.

    Holds nothing but the session it was given, so one instance per request
    is enough. A slot is the exact ``(date, time)`` pair; the store's unique
    constraint on it is the final word on double bookings.
    """

    def __init__(self, db: Session):
        self.db = db

    def list_appointments(self, date_filter: str | None = None, today: date | None = None) -> dict[str, list[dict]]:
        try:
            query = self.db.query(Appointment)
            if date_filter:
                query = query.filter(Appointment.appointment_date == date_filter).order_by(
                    Appointment.appointment_time.asc()
                )
            else:
                window_start = (today or date.today()) - timedelta(days=config.LIST_WINDOW_DAYS)
                query = query.filter(Appointment.appointment_date >= window_start.isoformat()).order_by(
                    Appointment.appointment_date.asc(),
                    Appointment.appointment_time.asc(),
                )

            return group_by_date(query.all())
        except SQLAlchemyError as exc:
            logger.exception('Listing appointments failed.')
            raise InternalError(f'could not fetch appointments: {exc}') from exc

    def get_appointment(self, appointment_id: int) -> dict:
        if not is_storable_id(appointment_id):
            raise NotFoundError()

        try:
            appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        except SQLAlchemyError as exc:
            logger.exception('Loading appointment %s failed.', appointment_id)
            raise InternalError(f'could not fetch appointment: {exc}') from exc

        if appointment is None:
            raise NotFoundError()

        return to_snapshot(appointment)

    def create_appointment(
        self,
        date: str | None,
        time: str | None,
        student: str | None,
        notes: str | None = None,
    ) -> dict:
        slot_date = date or ''
        slot_time = time or ''
        student_name = (student or '').strip()
        notes = (notes or '').strip()

        if not slot_date.strip() or not slot_time.strip() or not student_name:
            raise ValidationError('missing required fields')

        if not DATE_PATTERN.fullmatch(slot_date):
            raise ValidationError('invalid date format')

        if not TIME_PATTERN.fullmatch(slot_time):
            raise ValidationError('invalid time format')

        stored_time = to_stored_time(slot_time)

        try:
            existing = self.db.query(Appointment.id).filter(
                Appointment.appointment_date == slot_date,
                Appointment.appointment_time == stored_time,
            ).first()
            if existing:
                raise ConflictError('slot already booked')

            appointment = Appointment(
                appointment_date=slot_date,
                appointment_time=stored_time,
                student_name=student_name,
                notes=notes,
            )
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
        except IntegrityError as exc:
            # Another request took the slot between the check and the insert.
            self.db.rollback()
            raise ConflictError('slot already booked') from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Creating appointment on %s %s failed.', slot_date, slot_time)
            raise InternalError(f'could not create appointment: {exc}') from exc

        logger.info('Booked appointment %s on %s at %s.', appointment.id, slot_date, slot_time)
        return {'id': appointment.id, 'message': 'created'}

    def delete_appointment(self, appointment_id: int | None) -> dict:
        if not appointment_id:
            raise ValidationError('id required')

        if not is_storable_id(appointment_id):
            raise NotFoundError()

        try:
            appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
            if appointment is None:
                raise NotFoundError()

            snapshot = to_snapshot(appointment)
            self.db.delete(appointment)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Deleting appointment %s failed.', appointment_id)
            raise InternalError(f'could not delete appointment: {exc}') from exc

        logger.info('Deleted appointment %s.', appointment_id)
        return {'deleted': snapshot}
