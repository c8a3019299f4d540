"""Create a verified staff account; registration only ever creates students.

Usage:
    python -m backend.create_staff_user 90000001 "Queue Officer" 'Passw0rd!' 55550000
"""
import sys

from backend.core import config
from backend.database import Database
from backend.models.user import User, UserRole
from backend.services import validation
from backend.services.auth_engine import hash_secret
from backend.stores.credential_store import CredentialStore


def create_staff_user(credentials: CredentialStore, userid: str, name: str, password: str, phone: str) -> User:
    email = validation.institutional_email(userid)
    reason = validation.validate_registration(userid, name, password, email, phone, 'Staff')
    if reason is not None:
        raise ValueError(reason)
    if credentials.get_user(userid) is not None:
        raise ValueError(f'User {userid} already exists')

    return credentials.create_user(
        User(
            userid=userid,
            name=name,
            password_hash=hash_secret(password),
            email=email,
            phone=phone,
            major='Staff',
            role=UserRole.STAFF,
            verified=True,
        )
    )


def main(argv: list[str]) -> int:
    if len(argv) != 4:
        print(__doc__, file=sys.stderr)
        return 2

    database = Database(config.DATABASE_URL)
    database.connect()
    database.create_schema()
    db = database.session()
    try:
        user = create_staff_user(CredentialStore(db), *argv)
    except ValueError as exc:
        print(f'Could not create staff user: {exc}', file=sys.stderr)
        return 1
    finally:
        db.close()
        database.close()

    print(f'Created staff user {user.userid} <{user.email}>')
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
