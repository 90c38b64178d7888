import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from servicehub.core.errors import ForbiddenError, NotFoundError, ValidationError
from servicehub.models import Base
from servicehub.models.principal import Admin, Customer, Mechanic
from servicehub.models.service_request import ServiceRequest
from servicehub.models.vehicle import Vehicle
from servicehub.services import service_requests as lifecycle


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


def _principals(db):
    alice = Customer(username="alice", email="alice@x.com", password_hash="x", status="approved")
    mike = Mechanic(username="mike", email="mike@x.com", password_hash="x", status="approved")
    other = Mechanic(username="otto", email="otto@x.com", password_hash="x", status="approved")
    db.add_all([alice, mike, other])
    db.commit()
    return alice, mike, other


def _payload(**overrides):
    payload = {
        "vehicle_data": {"make": "Toyota", "model": "Camry", "year": 2020},
        "description": "Engine makes a knocking noise",
        "service_type": "repair",
    }
    payload.update(overrides)
    return payload


def test_create_resolves_vehicle_and_populates_detail():
    db = _make_session()
    alice, mike, _ = _principals(db)

    req = lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=mike.id))
    assert req.status == "pending"
    assert req.priority == "medium"
    assert req.location == "customer_location"
    assert req.customer.username == "alice"
    assert req.mechanic.username == "mike"
    assert req.vehicle.is_primary is True

    again = lifecycle.create_service_request(
        db, alice.id, _payload(vehicle_data={"make": "toyota", "model": "CAMRY", "year": 2020})
    )
    assert again.vehicle_id == req.vehicle_id
    assert db.query(Vehicle).count() == 1


def test_create_is_atomic_when_mechanic_is_invalid():
    db = _make_session()
    alice, _, _ = _principals(db)
    with pytest.raises(ValidationError):
        lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=alice.id))
    assert db.query(Vehicle).count() == 0
    assert db.query(ServiceRequest).count() == 0


def test_create_requires_customer_and_vehicle_info():
    db = _make_session()
    alice, mike, _ = _principals(db)
    with pytest.raises(ForbiddenError):
        lifecycle.create_service_request(db, mike.id, _payload())
    with pytest.raises(ValidationError) as exc:
        lifecycle.create_service_request(db, alice.id, {"description": "", "service_type": "polish"})
    assert "Description is required" in exc.value.errors
    assert "Vehicle information is required" in exc.value.errors
    assert any(m.startswith("Service type must be one of") for m in exc.value.errors)


def test_create_with_vehicle_id_must_be_owned():
    db = _make_session()
    alice, _, _ = _principals(db)
    bob = Customer(username="bob", email="bob@x.com", password_hash="x", status="approved")
    db.add(bob)
    db.commit()
    bobs_car = Vehicle(customer_id=bob.id, make="Ford", model="Focus", year=2015, is_primary=True)
    db.add(bobs_car)
    db.commit()

    with pytest.raises(ValidationError):
        lifecycle.create_service_request(db, alice.id, _payload(vehicle_data=None, vehicle_id=bobs_car.id))
    req = lifecycle.create_service_request(db, bob.id, _payload(vehicle_data=None, vehicle_id=bobs_car.id))
    assert req.vehicle_id == bobs_car.id


def test_only_assigned_mechanic_may_update():
    db = _make_session()
    alice, mike, otto = _principals(db)
    req = lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=mike.id))

    with pytest.raises(ForbiddenError):
        lifecycle.update_service_request(db, req.id, otto.id, status="accepted")
    with pytest.raises(NotFoundError):
        lifecycle.update_service_request(db, "missing", mike.id, status="accepted")


def test_full_lifecycle_appends_notes_and_stamps_completion():
    db = _make_session()
    alice, mike, _ = _principals(db)
    req = lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=mike.id))

    for status in ("accepted", "question", "accepted", "in_progress", "completed"):
        req = lifecycle.update_service_request(db, req.id, mike.id, status=status)

    assert req.status == "completed"
    assert req.completed_at is not None
    assert req.vehicle.last_service_date == req.completed_at
    assert [n.text for n in req.notes] == [
        "Status changed from pending to accepted",
        "Status changed from accepted to question",
        "Status changed from question to accepted",
        "Status changed from accepted to in_progress",
        "Status changed from in_progress to completed",
    ]
    assert all(n.author_id == mike.id for n in req.notes)

    with pytest.raises(ValidationError):
        lifecycle.update_service_request(db, req.id, mike.id, status="accepted")


def test_illegal_and_unknown_transitions_are_rejected():
    db = _make_session()
    alice, mike, _ = _principals(db)
    req = lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=mike.id))

    with pytest.raises(ValidationError) as exc:
        lifecycle.update_service_request(db, req.id, mike.id, status="completed")
    assert exc.value.detail == "Cannot change status from pending to completed"
    with pytest.raises(ValidationError):
        lifecycle.update_service_request(db, req.id, mike.id, status="teleported")

    unchanged = lifecycle.update_service_request(db, req.id, mike.id, status="pending", question="Which oil?")
    assert unchanged.status == "pending"
    assert unchanged.question == "Which oil?"
    assert unchanged.notes == []


def test_assign_mechanic_only_by_owner_while_pending():
    db = _make_session()
    alice, mike, otto = _principals(db)
    req = lifecycle.create_service_request(db, alice.id, _payload())

    with pytest.raises(ForbiddenError):
        lifecycle.assign_mechanic(db, req.id, otto.id, mike.id)
    with pytest.raises(ValidationError):
        lifecycle.assign_mechanic(db, req.id, alice.id, alice.id)

    req = lifecycle.assign_mechanic(db, req.id, alice.id, mike.id)
    assert req.mechanic_id == mike.id
    assert req.notes[-1].text == "Assigned to mechanic"

    lifecycle.update_service_request(db, req.id, mike.id, status="accepted")
    with pytest.raises(ValidationError):
        lifecycle.assign_mechanic(db, req.id, alice.id, otto.id)


def test_visibility_and_read_paths():
    db = _make_session()
    alice, mike, otto = _principals(db)
    admin = Admin(username="boss", email="boss@x.com", password_hash="x", status="approved")
    db.add(admin)
    db.commit()

    first = lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=mike.id))
    second = lifecycle.create_service_request(db, alice.id, _payload(mechanic_id=mike.id, service_type="inspection"))
    lifecycle.update_service_request(db, first.id, mike.id, status="accepted")

    assert lifecycle.get_service_request(db, first.id, viewer_id=alice.id, viewer_role="customer").id == first.id
    assert lifecycle.get_service_request(db, first.id, viewer_id=admin.id, viewer_role="admin").id == first.id
    with pytest.raises(ForbiddenError):
        lifecycle.get_service_request(db, first.id, viewer_id=otto.id, viewer_role="mechanic")

    assert [r.id for r in lifecycle.list_by_customer(db, alice.id)] == [second.id, first.id]
    assert [r.id for r in lifecycle.mechanic_queue(db, mike.id)] == [second.id]
    assert [r.id for r in lifecycle.mechanic_appointments(db, mike.id)] == [first.id]
    assert [r.id for r in lifecycle.list_by_status(db, "accepted")] == [first.id]
    assert [r.id for r in lifecycle.list_by_vehicle(db, first.vehicle_id)] == [second.id, first.id]
    with pytest.raises(ValidationError):
        lifecycle.list_by_status(db, "bogus")


def test_description_and_question_length_limits():
    db = _make_session()
    alice, mike, _ = _principals(db)

    req = lifecycle.create_service_request(
        db, alice.id, _payload(mechanic_id=mike.id, description="d" * 1000, question="q" * 500)
    )
    assert len(req.description) == 1000
    assert len(req.question) == 500

    with pytest.raises(ValidationError) as exc:
        lifecycle.create_service_request(db, alice.id, _payload(description="d" * 1001, question="q" * 501))
    assert "Description cannot exceed 1000 characters" in exc.value.errors
    assert "Question cannot exceed 500 characters" in exc.value.errors

    updated = lifecycle.update_service_request(db, req.id, mike.id, question="w" * 500)
    assert updated.question == "w" * 500
    with pytest.raises(ValidationError):
        lifecycle.update_service_request(db, req.id, mike.id, question="w" * 501)
