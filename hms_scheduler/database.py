from threading import Lock
from weakref import WeakSet

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from hms_scheduler.core import config


def build_engine(database_url: str, timeout_seconds: float = config.STORE_TIMEOUT_SECONDS) -> Engine:
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            echo=config.DATABASE_ECHO,
            connect_args={"timeout": timeout_seconds, "check_same_thread": False},
        )

    connect_args = {}
    if database_url.startswith("postgresql"):
        connect_args["options"] = f"-c statement_timeout={int(timeout_seconds * 1000)}"

    return create_engine(
        database_url,
        echo=config.DATABASE_ECHO,
        pool_pre_ping=True,
        pool_timeout=timeout_seconds,
        connect_args=connect_args,
    )


engine = build_engine(config.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_checked_engines: "WeakSet[Engine]" = WeakSet()


def ensure_scheduling_schema(bind: Engine | None = None) -> None:
    bind = bind or engine

    if bind in _checked_engines:
        return

    with _schema_lock:
        if bind in _checked_engines:
            return

        table_names = set(inspect(bind).get_table_names())

        with bind.begin() as connection:
            if 'schedule_days' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_schedule_days_doctor_date ON schedule_days(doctor_id, date)')
                )
            if 'schedule_slots' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_schedule_slots_day_booked ON schedule_slots(schedule_day_id, is_booked)')
                )
            if 'appointments' in table_names:
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_slot_key ON appointments(doctor_id, date, time)')
                )
                connection.execute(
                    text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_status ON appointments(patient_id, status)')
                )

        _checked_engines.add(bind)
