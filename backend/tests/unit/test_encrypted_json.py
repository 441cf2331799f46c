from __future__ import annotations

import json

from cryptography.fernet import Fernet
from sqlalchemy import Column, Integer, create_engine, text
from sqlalchemy.orm import Session, declarative_base
from sqlalchemy.pool import StaticPool

from dashboard_api.db.types import EncryptedJSON

Base = declarative_base()


class Secret(Base):
    __tablename__ = "secrets"
    id = Column(Integer, primary_key=True)
    payload = Column(EncryptedJSON, nullable=True)


def _engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    return engine


def test_encrypted_json_roundtrip():
    engine = _engine()
    with Session(engine) as session:
        rec = Secret(payload={"client_email": "svc@acme", "n": 7})
        session.add(rec)
        session.commit()
        session.expire_all()

        assert session.get(Secret, rec.id).payload == {"client_email": "svc@acme", "n": 7}

    with engine.connect() as conn:
        stored = conn.execute(text("SELECT payload FROM secrets")).scalar_one()
    assert "ciphertext" in stored
    assert "svc@acme" not in stored


def test_plain_strings_are_sealed_too():
    engine = _engine()
    with Session(engine) as session:
        session.add(Secret(id=1, payload="hunter2"))
        session.commit()
        session.expire_all()
        assert session.get(Secret, 1).payload == "hunter2"


def test_encrypted_json_legacy_value():
    engine = _engine()
    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO secrets (id, payload) VALUES (:id, :payload)"),
            {"id": 1, "payload": json.dumps({"plain": True})},
        )
    with Session(engine) as session:
        assert session.get(Secret, 1).payload == {"plain": True}


def test_null_stays_null():
    engine = _engine()
    with Session(engine) as session:
        session.add(Secret(id=1, payload=None))
        session.commit()
        session.expire_all()
        assert session.get(Secret, 1).payload is None


def test_secret_sealed_under_a_retired_key_reads_as_missing():
    engine = _engine()
    foreign = Fernet(Fernet.generate_key()).encrypt(b'{"project_id": "other"}').decode()
    with engine.begin() as conn:
        conn.execute(
            text("INSERT INTO secrets (id, payload) VALUES (:id, :payload)"),
            {"id": 1, "payload": json.dumps({"ciphertext": foreign})},
        )
    with Session(engine) as session:
        assert session.get(Secret, 1).payload is None


def test_already_sealed_values_are_not_sealed_twice():
    engine = _engine()
    with Session(engine) as session:
        session.add(Secret(id=1, payload="hunter2"))
        session.commit()
    with engine.connect() as conn:
        stored = json.loads(conn.execute(text("SELECT payload FROM secrets")).scalar_one())

    with Session(engine) as session:
        session.add(Secret(id=2, payload=stored))
        session.commit()
        session.expire_all()
        assert session.get(Secret, 2).payload == "hunter2"
