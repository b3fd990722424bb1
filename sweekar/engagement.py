"""Likes, comments and the profile view, reported to the user as notices."""
from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass, field
from typing import List, Optional

from .auth import AuthSession, Identity
from .observable import Observable
from .places_client import PlaceDetail
from .store import Comment, LikedResource, LikeState, Profile, Store, StoreError

logger = logging.getLogger(__name__)

INFO = "info"
SUCCESS = "success"
ERROR = "error"

# Store failures surface as error notices instead of exceptions.
STORE_FAILURES = (StoreError, sqlite3.Error)


@dataclass(frozen=True)
class Notice:
    level: str
    message: str


@dataclass
class ProfileSummary:
    profile: Optional[Profile]
    liked_resources: List[LikedResource] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)


class ResourceInteractions:
    def __init__(
        self,
        auth: AuthSession,
        store: Store,
        notices: Optional[Observable[Notice]] = None,
    ) -> None:
        self.auth = auth
        self.store = store
        self.notices: Observable[Notice] = notices if notices is not None else Observable("notices")

    def _notify(self, level: str, message: str) -> None:
        self.notices.publish(Notice(level, message))

    def _user_or_notice(self, message: str) -> Optional[Identity]:
        user = self.auth.current_user
        if user is None:
            self._notify(INFO, message)
        return user

    def likes_for(self, resource: PlaceDetail) -> LikeState:
        return self.store.get_likes(resource.place_id)

    def is_liked(self, resource: PlaceDetail) -> bool:
        user = self.auth.current_user
        return self.likes_for(resource).liked_by(user.uid if user else None)

    def toggle_like(self, resource: PlaceDetail) -> Optional[LikeState]:
        user = self._user_or_notice("Please Log In To Like This Resource.")
        if user is None:
            return None

        unlike = False
        try:
            current = self.store.get_likes(resource.place_id)
            unlike = user.uid in current.users
            if unlike:
                users = [uid for uid in current.users if uid != user.uid]
            else:
                users = current.users + [user.uid]
            state = self.store.set_likes(resource.place_id, users, name=resource.name)
        except STORE_FAILURES as exc:
            action = "Unliking" if unlike else "Liking"
            logger.error("Like update failed: place_id=%s error=%s", resource.place_id, exc)
            self._notify(ERROR, f"Error {action} Resource: {exc}")
            return None

        self._notify(SUCCESS, "You Unliked This Resource!" if unlike else "You Liked This Resource!")
        return state

    def comments_for(self, resource: PlaceDetail) -> List[Comment]:
        return self.store.list_comments(resource.place_id)

    def submit_comment(
        self, resource: PlaceDetail, text: str, comment_id: Optional[str] = None
    ) -> Optional[Comment]:
        user = self._user_or_notice("Please LogIn To Submit A Comment.")
        if user is None:
            return None
        text = (text or "").strip()
        if not text:
            self._notify(INFO, "Comment Cannot Be Empty.")
            return None

        user_name = user.display_name or "Anonymous"
        try:
            if comment_id:
                existing = self.store.get_comment(resource.place_id, comment_id)
                if existing is not None and existing.uid and existing.uid != user.uid:
                    self._notify(ERROR, "You Can Only Edit Your Own Comments.")
                    return None
                comment = self.store.update_comment(resource.place_id, comment_id, text, user_name)
            else:
                comment = self.store.add_comment(resource.place_id, user.uid, user_name, text)
        except STORE_FAILURES as exc:
            verb = "Update" if comment_id else "Add"
            logger.error("Comment write failed: place_id=%s error=%s", resource.place_id, exc)
            self._notify(ERROR, f"Failed To {verb} Comment: {exc}")
            return None

        self._notify(SUCCESS, "Comment Updated Successfully!" if comment_id else "Comment Added Successfully!")
        return comment

    def delete_comment(self, resource: PlaceDetail, comment_id: str) -> bool:
        user = self._user_or_notice("Please LogIn To Delete A Comment.")
        if user is None:
            return False
        existing = self.store.get_comment(resource.place_id, comment_id)
        if existing is not None and existing.uid and existing.uid != user.uid:
            self._notify(ERROR, "You Can Only Delete Your Own Comments.")
            return False
        try:
            self.store.delete_comment(resource.place_id, comment_id)
        except STORE_FAILURES as exc:
            logger.error("Comment delete failed: place_id=%s error=%s", resource.place_id, exc)
            self._notify(ERROR, f"Error Deleting Comment: {exc}")
            return False
        self._notify(SUCCESS, "Comment Deleted Successfully!")
        return True

    def profile_summary(self, uid: Optional[str] = None) -> ProfileSummary:
        if uid is None:
            uid = self.auth.require_user().uid
        return ProfileSummary(
            profile=self.store.get_profile(uid),
            liked_resources=self.store.liked_by(uid),
            comments=self.store.comments_by(uid),
        )
