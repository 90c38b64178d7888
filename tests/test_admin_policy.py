import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from servicehub.core.errors import (
    ForbiddenError,
    InsufficientClearanceError,
    NotFoundError,
    SelfActionError,
    ValidationError,
)
from servicehub.models import Base
from servicehub.models.principal import Admin, Customer, Mechanic, Principal
from servicehub.models.service_request import ServiceRequest, ServiceRequestNote
from servicehub.models.vehicle import Vehicle
from servicehub.services import admin_policy
from servicehub.services import service_requests as lifecycle


def _make_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    return SessionLocal()


def _admin(db, name: str, clearance: str, status: str = "approved") -> Admin:
    admin = Admin(
        username=name,
        email=f"{name}@x.com",
        password_hash="x",
        status=status,
        clearance_level=clearance,
    )
    db.add(admin)
    db.commit()
    return admin


def _customer(db, name: str = "alice") -> Customer:
    customer = Customer(username=name, email=f"{name}@x.com", password_hash="x")
    db.add(customer)
    db.commit()
    return customer


def test_equal_clearance_cannot_modify_admin():
    db = _make_session()
    sup_a = _admin(db, "supa", "supervisor")
    sup_b = _admin(db, "supb", "supervisor")
    with pytest.raises(InsufficientClearanceError) as exc:
        admin_policy.update_user_status(db, sup_a.id, sup_b.id, "banned")
    assert exc.value.detail == "Cannot modify admin accounts with equal or higher clearance level"
    db.refresh(sup_b)
    assert sup_b.status == "approved"


def test_higher_clearance_can_modify_admin():
    db = _make_session()
    director = _admin(db, "dir", "director")
    sup = _admin(db, "sup", "supervisor")
    target = admin_policy.update_user_status(db, director.id, sup.id, "banned")
    assert target.status == "banned"

    other_sup = _admin(db, "sup2", "supervisor")
    with pytest.raises(InsufficientClearanceError):
        admin_policy.authorize_admin_action(db, other_sup.id, director.id, "modify")


def test_self_action_always_refused():
    db = _make_session()
    director = _admin(db, "dir", "director")
    with pytest.raises(SelfActionError) as exc:
        admin_policy.update_user_status(db, director.id, director.id, "banned")
    assert exc.value.detail == "Cannot modify your own account"
    with pytest.raises(SelfActionError):
        admin_policy.delete_user(db, director.id, director.id)


def test_any_approved_admin_may_act_on_non_admins():
    db = _make_session()
    basic = _admin(db, "basic", "basic")
    alice = _customer(db)
    target = admin_policy.update_user_status(db, basic.id, alice.id, "approved")
    assert target.status == "approved"


def test_unapproved_or_missing_actor_is_refused():
    db = _make_session()
    pending_admin = _admin(db, "newbie", "director", status="pending")
    alice = _customer(db)
    with pytest.raises(ForbiddenError):
        admin_policy.update_user_status(db, pending_admin.id, alice.id, "approved")
    with pytest.raises(NotFoundError) as exc:
        admin_policy.authorize_admin_action(db, "ghost", alice.id, "modify")
    assert exc.value.detail == "Admin user not found"
    director = _admin(db, "dir", "director")
    with pytest.raises(NotFoundError) as exc:
        admin_policy.authorize_admin_action(db, director.id, "ghost", "modify")
    assert exc.value.detail == "Target user not found"


def test_invalid_status_rejected():
    db = _make_session()
    director = _admin(db, "dir", "director")
    alice = _customer(db)
    with pytest.raises(ValidationError):
        admin_policy.update_user_status(db, director.id, alice.id, "vip")


def test_admins_are_never_deleted():
    db = _make_session()
    director = _admin(db, "dir", "director")
    basic = _admin(db, "basic", "basic")
    with pytest.raises(ForbiddenError) as exc:
        admin_policy.delete_user(db, director.id, basic.id)
    assert exc.value.detail == "Admin users cannot be deleted"
    assert db.get(Principal, basic.id) is not None


def test_customer_delete_cascades_requests_and_vehicles():
    db = _make_session()
    director = _admin(db, "dir", "director")
    alice = _customer(db)
    mike = Mechanic(username="mike", email="mike@x.com", password_hash="x", status="approved")
    db.add(mike)
    db.commit()
    req = lifecycle.create_service_request(
        db,
        alice.id,
        {
            "vehicle_data": {"make": "Toyota", "model": "Camry", "year": 2020},
            "description": "Oil change",
            "service_type": "maintenance",
            "mechanic_id": mike.id,
        },
    )
    lifecycle.update_service_request(db, req.id, mike.id, status="accepted")
    alice_id = alice.id

    admin_policy.delete_user(db, director.id, alice_id)
    db.expire_all()

    assert db.get(Principal, alice_id) is None
    assert db.query(Vehicle).filter(Vehicle.customer_id == alice_id).count() == 0
    assert db.query(ServiceRequest).filter(ServiceRequest.customer_id == alice_id).count() == 0
    assert db.query(ServiceRequestNote).count() == 0


def test_mechanic_delete_detaches_requests():
    db = _make_session()
    director = _admin(db, "dir", "director")
    alice = _customer(db)
    mike = Mechanic(username="mike", email="mike@x.com", password_hash="x", status="approved")
    db.add(mike)
    db.commit()
    req = lifecycle.create_service_request(
        db,
        alice.id,
        {
            "vehicle_data": {"make": "Toyota", "model": "Camry", "year": 2020},
            "description": "Brake check",
            "service_type": "inspection",
            "mechanic_id": mike.id,
        },
    )
    req_id = req.id

    admin_policy.delete_user(db, director.id, mike.id)
    db.expire_all()

    survivor = db.get(ServiceRequest, req_id)
    assert survivor is not None
    assert survivor.mechanic_id is None


def test_list_users_filters_and_paginates():
    db = _make_session()
    _admin(db, "dir", "director")
    for i in range(12):
        _customer(db, f"cust{i:02d}")

    users, pagination = admin_policy.list_users(db, user_type="customer", page=2, limit=5)
    assert len(users) == 5
    assert all(u.role == "customer" for u in users)
    assert pagination == {
        "current_page": 2,
        "total_pages": 3,
        "total_count": 12,
        "has_next": True,
        "has_prev": True,
        "limit": 5,
    }
    newest_first, _ = admin_policy.list_users(db, user_type="customer", limit=1)
    assert newest_first[0].username == "cust11"

    approved, _ = admin_policy.list_users(db, status="approved")
    assert [u.username for u in approved] == ["dir"]
    with pytest.raises(ValidationError):
        admin_policy.list_users(db, user_type="robot")
