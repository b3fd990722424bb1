import sqlite3

import pytest

from sweekar.auth import AuthSession, Identity, NotSignedInError
from sweekar.engagement import ERROR, INFO, SUCCESS, ResourceInteractions
from sweekar.places_client import PlaceDetail
from sweekar.store import Store

CLINIC = PlaceDetail(place_id="pA", name="City Women's Clinic", address="12 MG Road", lat=20.59, lng=78.96)


class SwitchableProvider:
    def __init__(self, identity):
        self.identity = identity

    def sign_in(self):
        return self.identity

    def sign_out(self):
        return None


@pytest.fixture
def env():
    store = Store(":memory:")
    provider = SwitchableProvider(Identity(uid="u1", display_name="Asha"))
    auth = AuthSession(provider, store)
    interactions = ResourceInteractions(auth, store)
    notices = []
    interactions.notices.subscribe(notices.append)
    yield interactions, auth, provider, store, notices
    store.close()


def test_like_requires_sign_in(env):
    interactions, _, _, store, notices = env
    assert interactions.toggle_like(CLINIC) is None
    assert notices[-1].level == INFO
    assert notices[-1].message == "Please Log In To Like This Resource."
    assert store.get_likes("pA").count == 0


def test_toggle_like_twice(env):
    interactions, auth, _, store, notices = env
    auth.sign_in()

    state = interactions.toggle_like(CLINIC)
    assert state.users == ["u1"]
    assert interactions.is_liked(CLINIC)
    assert notices[-1].message == "You Liked This Resource!"

    state = interactions.toggle_like(CLINIC)
    assert state.count == 0
    assert not interactions.is_liked(CLINIC)
    assert notices[-1].message == "You Unliked This Resource!"
    assert notices[-1].level == SUCCESS


def test_likes_from_two_users(env):
    interactions, auth, provider, _, _ = env
    auth.sign_in()
    interactions.toggle_like(CLINIC)
    provider.identity = Identity(uid="u2", display_name="Meera")
    auth.sign_in()
    interactions.toggle_like(CLINIC)
    assert interactions.likes_for(CLINIC).users == ["u1", "u2"]


def test_like_store_failure_becomes_error_notice(env, monkeypatch):
    interactions, auth, _, store, notices = env
    auth.sign_in()

    def broken(*args, **kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "set_likes", broken)
    assert interactions.toggle_like(CLINIC) is None
    assert notices[-1].level == ERROR
    assert notices[-1].message == "Error Liking Resource: database is locked"


def test_like_read_failure_becomes_error_notice(env, monkeypatch):
    interactions, auth, _, store, notices = env
    auth.sign_in()

    def broken(*args, **kwargs):
        raise sqlite3.DatabaseError("file is not a database")

    monkeypatch.setattr(store, "get_likes", broken)
    assert interactions.toggle_like(CLINIC) is None
    assert notices[-1].level == ERROR
    assert notices[-1].message == "Error Liking Resource: file is not a database"


def test_comment_requires_sign_in_and_text(env):
    interactions, auth, _, store, notices = env
    assert interactions.submit_comment(CLINIC, "hello") is None
    assert notices[-1].message == "Please LogIn To Submit A Comment."

    auth.sign_in()
    assert interactions.submit_comment(CLINIC, "   ") is None
    assert notices[-1].message == "Comment Cannot Be Empty."
    assert store.list_comments("pA") == []


def test_comment_add_edit_delete(env):
    interactions, auth, _, _, notices = env
    auth.sign_in()

    comment = interactions.submit_comment(CLINIC, "  Kind staff  ")
    assert comment.comment == "Kind staff"
    assert comment.user_name == "Asha"
    assert notices[-1].message == "Comment Added Successfully!"

    edited = interactions.submit_comment(CLINIC, "Kind and quick", comment_id=comment.id)
    assert edited.comment == "Kind and quick"
    assert notices[-1].message == "Comment Updated Successfully!"
    assert [c.comment for c in interactions.comments_for(CLINIC)] == ["Kind and quick"]

    assert interactions.delete_comment(CLINIC, comment.id) is True
    assert notices[-1].message == "Comment Deleted Successfully!"
    assert interactions.comments_for(CLINIC) == []


def test_only_author_can_edit_or_delete(env):
    interactions, auth, provider, _, notices = env
    auth.sign_in()
    comment = interactions.submit_comment(CLINIC, "mine")

    provider.identity = Identity(uid="u2", display_name="Meera")
    auth.sign_in()

    assert interactions.submit_comment(CLINIC, "hijack", comment_id=comment.id) is None
    assert notices[-1].level == ERROR
    assert interactions.delete_comment(CLINIC, comment.id) is False
    assert [c.comment for c in interactions.comments_for(CLINIC)] == ["mine"]


def test_editing_missing_comment_reports_error(env):
    interactions, auth, _, _, notices = env
    auth.sign_in()
    assert interactions.submit_comment(CLINIC, "text", comment_id="missing") is None
    assert notices[-1].level == ERROR
    assert notices[-1].message.startswith("Failed To Update Comment:")


def test_profile_summary(env):
    interactions, auth, _, _, _ = env
    with pytest.raises(NotSignedInError):
        interactions.profile_summary()

    auth.sign_in()
    interactions.toggle_like(CLINIC)
    interactions.submit_comment(CLINIC, "Helpful")

    summary = interactions.profile_summary()
    assert summary.profile.display_name == "Asha"
    assert [r.name for r in summary.liked_resources] == ["City Women's Clinic"]
    assert [c.comment for c in summary.comments] == ["Helpful"]
