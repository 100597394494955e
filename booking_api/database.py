from threading import Lock

from sqlalchemy import Column, Index, MetaData, String, Table, create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from booking_api.core import config


connect_args = {"check_same_thread": False} if config.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(config.DATABASE_URL, echo=config.DATABASE_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

SLOT_COLUMNS = ('appointment_date', 'appointment_time')
SLOT_INDEX_NAME = 'uq_appointments_slot'

_schema_lock = Lock()
_appointment_schema_checked = False


def has_unique_slot(inspector) -> bool:
    slot_columns = set(SLOT_COLUMNS)
    for constraint in inspector.get_unique_constraints('appointments'):
        if set(constraint['column_names']) == slot_columns:
            return True
    for index in inspector.get_indexes('appointments'):
        if index.get('unique') and set(index['column_names']) == slot_columns:
            return True
    return False


def build_slot_index() -> Index:
    # Detached from the ORM metadata so create_all never emits it twice.
    slot_table = Table(
        'appointments',
        MetaData(),
        *(Column(column_name, String(10)) for column_name in SLOT_COLUMNS),
    )
    return Index(SLOT_INDEX_NAME, *(slot_table.c[column_name] for column_name in SLOT_COLUMNS), unique=True)


def ensure_appointment_schema(bind=None) -> None:
    """Bring an existing appointments table up to the current layout.

    Older tables may lack the notes/created_at columns and the slot
    uniqueness index. Creating the unique index fails if duplicate slots
    were already stored; the error propagates to the caller.
    """
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    bind = bind or engine

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(bind)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes TEXT'),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
        ]
        slot_is_unique = has_unique_slot(inspector)

        with bind.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            if not slot_is_unique:
                build_slot_index().create(connection)

        _appointment_schema_checked = True


def reset_schema_check() -> None:
    global _appointment_schema_checked
    _appointment_schema_checked = False
