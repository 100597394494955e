import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')

from booking_api.database import Base  # noqa: E402
from booking_api.models.appointment import Appointment  # noqa: E402


@pytest.fixture
def appointment_engine():
    engine = create_engine(
        'sqlite:///:memory:',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[Appointment.__table__])
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine, tables=[Appointment.__table__])
        engine.dispose()


@pytest.fixture
def appointment_db(appointment_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=appointment_engine)
    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
