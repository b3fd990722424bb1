import pytest

from sweekar.store import LikeState, Store, StoreError


@pytest.fixture
def store():
    s = Store(":memory:")
    yield s
    s.close()


def test_profile_upsert_and_read(store):
    store.upsert_profile("u1", "Asha", email="asha@example.com")
    store.upsert_profile("u1", "Asha R", avatar_url="https://img/u1.png")

    profile = store.get_profile("u1")
    assert profile.display_name == "Asha R"
    assert profile.email == ""
    assert profile.avatar_url == "https://img/u1.png"
    assert store.get_profile("missing") is None
    with pytest.raises(StoreError):
        store.upsert_profile("", "nobody")


def test_likes_are_unique_per_user(store):
    state = store.set_likes("pA", ["u1", "u2", "u1", ""], name="Clinic")
    assert state == LikeState(count=2, users=["u1", "u2"])
    assert store.get_likes("pA").liked_by("u2")
    assert not store.get_likes("pA").liked_by(None)
    assert store.get_likes("unknown") == LikeState()


def test_liked_by_lists_resources(store):
    store.set_likes("pA", ["u1"], name="Clinic")
    store.set_likes("pB", ["u2"], name="Shelter")
    store.set_likes("pC", ["u1", "u2"], name="Centre")
    store.set_likes("pC", ["u1", "u2"])

    liked = {r.place_id: r for r in store.liked_by("u1")}
    assert set(liked) == {"pA", "pC"}
    assert liked["pC"].name == "Centre"
    assert liked["pC"].count == 2
    assert set(store.all_likes()) == {"pA", "pB", "pC"}


def test_comment_lifecycle(store):
    first = store.add_comment("pA", "u1", "Asha", "Very helpful staff")
    second = store.add_comment("pA", "u2", "Meera", "Open late")
    store.add_comment("pB", "u1", "Asha", "Elsewhere")

    assert [c.id for c in store.list_comments("pA")] == [first.id, second.id]

    updated = store.update_comment("pA", first.id, "Helpful and kind", "Asha")
    assert updated.comment == "Helpful and kind"
    assert updated.id == first.id

    store.delete_comment("pA", second.id)
    assert [c.comment for c in store.list_comments("pA")] == ["Helpful and kind"]
    assert [c.place_id for c in store.comments_by("u1")] == ["pA", "pB"]


def test_missing_comment_raises(store):
    with pytest.raises(StoreError):
        store.update_comment("pA", "nope", "text", "name")
    with pytest.raises(StoreError):
        store.delete_comment("pA", "nope")
    with pytest.raises(StoreError):
        store.add_comment("", "u1", "Asha", "text")


def test_listeners_get_snapshot_then_changes(store):
    store.set_likes("pA", ["u1"])
    seen = []
    sub = store.listen("likes/pA", seen.append)
    store.set_likes("pA", ["u1", "u2"])
    sub.unsubscribe()
    store.set_likes("pA", [])

    assert [s.count for s in seen] == [1, 2]


def test_comment_listener(store):
    seen = []
    store.listen("comments/pA", seen.append)
    store.add_comment("pA", "u1", "Asha", "hello")
    store.add_comment("pB", "u1", "Asha", "other place")
    assert [len(s) for s in seen] == [0, 1]


def test_all_likes_listener(store):
    seen = []
    store.listen("likes", seen.append)
    store.set_likes("pA", ["u1"])
    assert seen[0] == {}
    assert seen[-1]["pA"].count == 1


def test_unknown_listener_path(store):
    with pytest.raises(ValueError):
        store.listen("profiles/u1", lambda _: None)


def test_store_persists_to_disk(tmp_path):
    path = str(tmp_path / "sweekar.db")
    s = Store(path, commit_every=10)
    s.set_likes("pA", ["u1"])
    s.close()

    reopened = Store(path)
    assert reopened.get_likes("pA").users == ["u1"]
    reopened.close()
