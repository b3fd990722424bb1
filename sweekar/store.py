"""SQLite store for user profiles, likes and comments, with path listeners."""
from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from .observable import Observable, Subscription

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    pass


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat()


@dataclass(frozen=True)
class Profile:
    uid: str
    display_name: str
    email: str = ""
    avatar_url: str = ""
    updated_at: str = ""


@dataclass(frozen=True)
class LikeState:
    count: int = 0
    users: List[str] = field(default_factory=list)

    def liked_by(self, uid: Optional[str]) -> bool:
        return bool(uid) and uid in self.users


@dataclass(frozen=True)
class LikedResource:
    place_id: str
    name: str
    count: int


@dataclass(frozen=True)
class Comment:
    id: str
    place_id: str
    uid: str
    user_name: str
    comment: str
    time: str


class Store:
    def __init__(self, db_path: str, commit_every: int = 1) -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self._pending_writes = 0
        self._commit_every = max(1, int(commit_every))
        self._listeners: Dict[str, Observable[Any]] = {}
        self._configure_conn()
        self._init_db()

    def _configure_conn(self) -> None:
        cur = self.conn.cursor()
        try:
            cur.execute("PRAGMA journal_mode=WAL")
            cur.fetchone()
        except sqlite3.DatabaseError:
            logger.debug("WAL journal mode unavailable for %s", self.db_path)
        cur.execute("PRAGMA synchronous=NORMAL")

    def _init_db(self) -> None:
        cur = self.conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS profiles (
                uid TEXT PRIMARY KEY,
                display_name TEXT,
                email TEXT,
                avatar_url TEXT,
                updated_at TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS likes (
                place_id TEXT PRIMARY KEY,
                name TEXT,
                users_json TEXT,
                count INTEGER,
                updated_at TEXT
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS comments (
                id TEXT PRIMARY KEY,
                place_id TEXT,
                uid TEXT,
                user_name TEXT,
                comment TEXT,
                created_at TEXT,
                updated_at TEXT
            )
            """
        )
        cur.execute("CREATE INDEX IF NOT EXISTS comments_by_place ON comments (place_id, created_at)")
        cur.execute("CREATE INDEX IF NOT EXISTS comments_by_user ON comments (uid)")
        self.conn.commit()

    def _mark_dirty(self) -> None:
        self._pending_writes += 1
        if self._pending_writes >= self._commit_every:
            self.commit()

    def commit(self) -> None:
        if self._pending_writes:
            self.conn.commit()
            self._pending_writes = 0

    def close(self) -> None:
        self.commit()
        self.conn.close()

    # --- profiles ---

    def upsert_profile(self, uid: str, display_name: str, email: str = "", avatar_url: str = "") -> Profile:
        if not uid:
            raise StoreError("Profile needs a uid")
        now = utc_now_iso()
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO profiles (uid, display_name, email, avatar_url, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(uid) DO UPDATE SET
                display_name = excluded.display_name,
                email = excluded.email,
                avatar_url = excluded.avatar_url,
                updated_at = excluded.updated_at
            """,
            (uid, display_name, email, avatar_url, now),
        )
        self._mark_dirty()
        return Profile(uid, display_name, email, avatar_url, now)

    def get_profile(self, uid: str) -> Optional[Profile]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM profiles WHERE uid = ?", (uid,))
        row = cur.fetchone()
        if not row:
            return None
        return Profile(
            uid=row["uid"],
            display_name=row["display_name"] or "",
            email=row["email"] or "",
            avatar_url=row["avatar_url"] or "",
            updated_at=row["updated_at"] or "",
        )

    # --- likes ---

    def get_likes(self, place_id: str) -> LikeState:
        cur = self.conn.cursor()
        cur.execute("SELECT users_json FROM likes WHERE place_id = ?", (place_id,))
        row = cur.fetchone()
        if not row:
            return LikeState()
        users = json.loads(row["users_json"] or "[]")
        return LikeState(count=len(users), users=users)

    def set_likes(self, place_id: str, users: Iterable[str], name: str = "") -> LikeState:
        if not place_id:
            raise StoreError("Likes need a place_id")
        unique_users = list(dict.fromkeys(u for u in users if u))
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO likes (place_id, name, users_json, count, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(place_id) DO UPDATE SET
                name = COALESCE(NULLIF(excluded.name, ''), likes.name),
                users_json = excluded.users_json,
                count = excluded.count,
                updated_at = excluded.updated_at
            """,
            (place_id, name, json.dumps(unique_users), len(unique_users), utc_now_iso()),
        )
        self._mark_dirty()
        state = LikeState(count=len(unique_users), users=unique_users)
        self._notify("likes")
        self._notify(f"likes/{place_id}")
        return state

    def all_likes(self) -> Dict[str, LikeState]:
        cur = self.conn.cursor()
        cur.execute("SELECT place_id, users_json FROM likes")
        likes: Dict[str, LikeState] = {}
        for row in cur.fetchall():
            users = json.loads(row["users_json"] or "[]")
            likes[row["place_id"]] = LikeState(count=len(users), users=users)
        return likes

    def liked_by(self, uid: str) -> List[LikedResource]:
        cur = self.conn.cursor()
        cur.execute("SELECT place_id, name, users_json FROM likes ORDER BY updated_at DESC, place_id")
        liked: List[LikedResource] = []
        for row in cur.fetchall():
            users = json.loads(row["users_json"] or "[]")
            if uid in users:
                liked.append(LikedResource(row["place_id"], row["name"] or "", len(users)))
        return liked

    # --- comments ---

    def add_comment(self, place_id: str, uid: str, user_name: str, text: str) -> Comment:
        if not place_id:
            raise StoreError("Comments need a place_id")
        comment_id = uuid.uuid4().hex
        now = utc_now_iso()
        cur = self.conn.cursor()
        cur.execute(
            """
            INSERT INTO comments (id, place_id, uid, user_name, comment, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (comment_id, place_id, uid, user_name, text, now, now),
        )
        self._mark_dirty()
        self._notify(f"comments/{place_id}")
        return Comment(comment_id, place_id, uid, user_name, text, now)

    def get_comment(self, place_id: str, comment_id: str) -> Optional[Comment]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM comments WHERE place_id = ? AND id = ?", (place_id, comment_id))
        row = cur.fetchone()
        return _comment_from_row(row) if row else None

    def update_comment(self, place_id: str, comment_id: str, text: str, user_name: str) -> Comment:
        now = utc_now_iso()
        cur = self.conn.cursor()
        cur.execute(
            "UPDATE comments SET comment = ?, user_name = ?, updated_at = ? WHERE place_id = ? AND id = ?",
            (text, user_name, now, place_id, comment_id),
        )
        if cur.rowcount == 0:
            raise StoreError(f"Comment {comment_id} not found for {place_id}")
        self._mark_dirty()
        self._notify(f"comments/{place_id}")
        updated = self.get_comment(place_id, comment_id)
        if updated is None:
            raise StoreError(f"Comment {comment_id} vanished during update")
        return updated

    def delete_comment(self, place_id: str, comment_id: str) -> None:
        cur = self.conn.cursor()
        cur.execute("DELETE FROM comments WHERE place_id = ? AND id = ?", (place_id, comment_id))
        if cur.rowcount == 0:
            raise StoreError(f"Comment {comment_id} not found for {place_id}")
        self._mark_dirty()
        self._notify(f"comments/{place_id}")

    def list_comments(self, place_id: str) -> List[Comment]:
        cur = self.conn.cursor()
        cur.execute(
            "SELECT * FROM comments WHERE place_id = ? ORDER BY created_at, rowid",
            (place_id,),
        )
        return [_comment_from_row(row) for row in cur.fetchall()]

    def comments_by(self, uid: str) -> List[Comment]:
        cur = self.conn.cursor()
        cur.execute("SELECT * FROM comments WHERE uid = ? ORDER BY created_at, rowid", (uid,))
        return [_comment_from_row(row) for row in cur.fetchall()]

    # --- listeners ---

    def listen(self, path: str, callback: Callable[[Any], None]) -> Subscription:
        """Subscribe to a path; the callback gets the current snapshot, then every change."""
        observable = self._listeners.get(path)
        if observable is None:
            snapshot = self._snapshot(path)
            observable = Observable(path)
            self._listeners[path] = observable
            observable.publish(snapshot)
        return observable.subscribe(callback)

    def _notify(self, path: str) -> None:
        observable = self._listeners.get(path)
        if observable is None:
            return
        if observable.subscriber_count == 0:
            del self._listeners[path]
            return
        observable.publish(self._snapshot(path))

    def _snapshot(self, path: str) -> Any:
        parts = path.strip("/").split("/")
        if parts == ["likes"]:
            return self.all_likes()
        if len(parts) == 2 and parts[0] == "likes" and parts[1]:
            return self.get_likes(parts[1])
        if len(parts) == 2 and parts[0] == "comments" and parts[1]:
            return self.list_comments(parts[1])
        raise ValueError(f"Unsupported store path: {path}")


def _comment_from_row(row: sqlite3.Row) -> Comment:
    return Comment(
        id=row["id"],
        place_id=row["place_id"],
        uid=row["uid"] or "",
        user_name=row["user_name"] or "",
        comment=row["comment"] or "",
        time=row["updated_at"] or row["created_at"] or "",
    )
