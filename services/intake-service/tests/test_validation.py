import pytest

from app.schemas import BookingRequest
from app.validation import validate


def _req(**kw):
    base = {"name": "Asha", "slug": "lakeview", "phone": "+911234567890"}
    base.update(kw)
    return BookingRequest.model_validate(base)


def test_valid_request_passes():
    assert validate(_req()).valid


def test_email_only_contact_is_enough():
    assert validate(_req(phone=None, email="asha@example.com")).valid


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"name": None}, "name"),
        ({"name": "   "}, "name"),
        ({"name": "x" * 101}, "name"),
        ({"slug": None}, "slug"),
        ({"phone": None, "email": None}, "contact"),
        ({"email": "not-an-email"}, "email"),
        ({"phone": "12ab"}, "phone"),
        ({"phone": "1" * 21}, "phone"),
        ({"phone": "-------"}, "phone"),
        ({"phone": "(  ) . ( )"}, "phone"),
    ],
)
def test_rejections_name_the_field(overrides, field):
    result = validate(_req(**overrides))
    assert not result.valid
    assert result.field == field
    assert result.reason


def test_name_of_exactly_100_chars_is_allowed():
    assert validate(_req(name="y" * 100)).valid


def test_none_request_is_a_result_not_an_exception():
    result = validate(None)
    assert not result.valid
    assert result.field == "body"


def test_numeric_phone_is_accepted_as_text():
    req = BookingRequest.model_validate({"name": "Asha", "slug": "lakeview", "phone": 9876543210})
    assert req.phone == "9876543210"
    assert validate(req).valid
