"""Persistence for users and login sessions."""

from backend.models.session import UserSession
from backend.models.user import User
from backend.stores.base import BaseStore, store_operation


class CredentialStore(BaseStore):

    @store_operation
    def get_user(self, userid: str) -> User | None:
        return self.db.query(User).filter(User.userid == userid).first()

    @store_operation
    def create_user(self, user: User) -> User:
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    @store_operation
    def update_user(self, userid: str, patch: dict) -> None:
        self.db.query(User).filter(User.userid == userid).update(patch, synchronize_session='fetch')
        self.db.commit()

    @store_operation
    def get_user_by_email(self, email: str) -> User | None:
        return self.db.query(User).filter(User.email == email).first()

    @store_operation
    def get_user_by_verify_key(self, key_hash: str) -> User | None:
        return self.db.query(User).filter(User.verify_key == key_hash).first()

    @store_operation
    def get_user_by_reset_key(self, key_hash: str) -> User | None:
        return self.db.query(User).filter(User.reset_key == key_hash).first()

    @store_operation
    def update_password(self, userid: str, password_hash: str) -> None:
        self.db.query(User).filter(User.userid == userid).update(
            {User.password_hash: password_hash, User.reset_key: None},
            synchronize_session='fetch',
        )
        self.db.commit()

    @store_operation
    def mark_verified(self, userid: str) -> None:
        self.db.query(User).filter(User.userid == userid).update(
            {User.verified: True, User.verify_key: None},
            synchronize_session='fetch',
        )
        self.db.commit()

    @store_operation
    def create_session(self, session: UserSession) -> UserSession:
        self.db.add(session)
        self.db.commit()
        self.db.refresh(session)
        return session

    @store_operation
    def get_session(self, key: str) -> UserSession | None:
        return self.db.query(UserSession).filter(UserSession.key == key).first()

    @store_operation
    def delete_session(self, key: str) -> None:
        self.db.query(UserSession).filter(UserSession.key == key).delete(synchronize_session='fetch')
        self.db.commit()

    @store_operation
    def clear_csrf_token(self, key: str) -> None:
        self.db.query(UserSession).filter(UserSession.key == key).update(
            {UserSession.csrf_token: None},
            synchronize_session='fetch',
        )
        self.db.commit()
