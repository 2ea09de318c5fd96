"""
Identity lookups.

Authentication is external; the core only needs to know that a caller id
was supplied and how to print a user's name.
"""

from typing import Dict, Iterable, Optional
from sqlalchemy.orm import Session

from models.entities import User
from .errors import Unauthenticated

UNKNOWN_USER = "Unknown User"


def require_caller(caller_id: Optional[str]) -> str:
    """Return caller_id, or raise Unauthenticated when it is missing."""
    if not caller_id:
        raise Unauthenticated()
    return caller_id


class IdentityProvider:
    """Resolves user ids to display names."""

    def __init__(self, session: Session):
        self.session = session

    def display_name(self, user_id: Optional[str]) -> str:
        if not user_id:
            return UNKNOWN_USER
        user = self.session.get(User, user_id)
        return user.display_name if user else UNKNOWN_USER

    def display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Batch lookup; ids without a profile map to UNKNOWN_USER."""
        ids = {uid for uid in user_ids if uid}
        names = {uid: UNKNOWN_USER for uid in ids}
        if ids:
            for user in self.session.query(User).filter(User.id.in_(ids)).all():
                names[user.id] = user.display_name
        return names

    def find_by_username(self, username: str) -> Optional[User]:
        return self.session.query(User).filter(User.username == username).first()
