import pytest

from backend.models.request import RequestCategory
from backend.services import validation


def test_valid_registration_passes() -> None:
    assert validation.validate_registration(
        '60012345', 'Amna Khalid', 'Passw0rd!', '60012345@udst.edu.qa', '55551234', 'Computing'
    ) is None


@pytest.mark.parametrize(
    'password',
    ['Passw0rd!', 'a1@aaaaa', 'ZZZZZZ9$', 'longer1&password'],
)
def test_password_policy_accepts(password: str) -> None:
    assert validation.check_password(password) is None


@pytest.mark.parametrize(
    'password',
    ['', 'Pa0!', 'password!', '12345678!', 'Password1', 'Passw0rd!#', 'Pass w0rd!'],
)
def test_password_policy_rejects(password: str) -> None:
    assert validation.check_password(password) is not None


@pytest.mark.parametrize('userid', ['1234567', '123456789', 'abcdefgh', '1234 678', None])
def test_userid_must_be_eight_digits(userid) -> None:
    assert validation.check_userid(userid) == 'UserID must be exactly 8 digits'


def test_email_is_derived_from_userid() -> None:
    assert validation.institutional_email('60012345') == '60012345@udst.edu.qa'
    assert validation.check_email('60012345', '60012345@udst.edu.qa') is None
    assert validation.check_email('60012345', '60012346@udst.edu.qa') is not None


def test_checks_run_in_fixed_order() -> None:
    reason = validation.validate_registration('60012345', 'Amna', 'weak', 'wrong@example.com', '1', 'CS!')

    assert reason.startswith('Password must be at least 8 characters')


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('CourseRegistration', RequestCategory.COURSE_REGISTRATION),
        (' Capstone ', RequestCategory.CAPSTONE),
        (RequestCategory.OTHER, RequestCategory.OTHER),
        ('Complaint', RequestCategory.COMPLAINT),
        ('Course Registration', None),
        ('Unknown', None),
        ('', None),
        (None, None),
    ],
)
def test_parse_category(raw, expected) -> None:
    assert validation.parse_category(raw) is expected
