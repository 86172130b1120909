import pytest

from coachapp.access import (
    require_auth,
    require_client_access,
    require_conversation_access,
    require_role,
)
from coachapp.exceptions import AccessDenied, NotFound, Unauthorized
from coachapp.models import Conversation


@pytest.fixture
def conversation(db, patient, coach):
    conversation = Conversation(client_id=patient.id, coach_id=coach.id)
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    return conversation


def test_require_auth_resolves_user(db, coach):
    assert require_auth(db, coach.email).id == coach.id


@pytest.mark.parametrize("email", [None, "", "nobody@example.com"])
def test_require_auth_rejects_unknown_identity(db, email):
    with pytest.raises(Unauthorized):
        require_auth(db, email)


def test_require_auth_rejects_inactive_user(db, make_user):
    user = make_user("client", is_active=False)
    with pytest.raises(Unauthorized):
        require_auth(db, user.email)


def test_require_role(patient, coach, admin):
    assert require_role(coach, {"coach", "admin"}) is coach
    assert require_role(admin, {"coach", "admin"}) is admin
    with pytest.raises(AccessDenied):
        require_role(patient, {"coach", "admin"})


def test_admin_can_access_any_client(db, admin, patient):
    assert require_client_access(db, admin, patient.id) is admin
    assert require_client_access(db, admin, 9999) is admin


def test_coach_needs_assignment(db, coach, other_coach, patient):
    assert require_client_access(db, coach, patient.id) is coach
    with pytest.raises(AccessDenied):
        require_client_access(db, other_coach, patient.id)
    with pytest.raises(AccessDenied):
        require_client_access(db, coach, 9999)


def test_client_can_only_access_self(db, make_user, patient):
    stranger = make_user("client")
    assert require_client_access(db, patient, patient.id) is patient
    with pytest.raises(AccessDenied):
        require_client_access(db, stranger, patient.id)


def test_conversation_access(db, conversation, patient, coach, other_coach, admin):
    assert require_conversation_access(db, patient, conversation.id).id == conversation.id
    assert require_conversation_access(db, coach, conversation.id).id == conversation.id
    assert require_conversation_access(db, admin, conversation.id).id == conversation.id
    with pytest.raises(AccessDenied):
        require_conversation_access(db, other_coach, conversation.id)


def test_conversation_access_missing(db, admin):
    with pytest.raises(NotFound):
        require_conversation_access(db, admin, 9999)
