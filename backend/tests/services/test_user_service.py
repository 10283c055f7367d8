from pydantic import ValidationError
import pytest

from marketplace.core.exceptions import ConflictException
from marketplace.models.user import User
from marketplace.schemas.user import UserProfileUpdate
from marketplace.services.user_service import UserService


class TestUpdateProfile:
    def test_updates_given_fields(self, db, customer):
        user = UserService(db).update_profile(
            customer, UserProfileUpdate(full_name="Lina H. Haddad", email="Lina.New@Example.com", phone="0790000001")
        )

        db.expire_all()
        stored = db.get(User, user.id)
        assert stored.full_name == "Lina H. Haddad"
        assert stored.email == "lina.new@example.com"
        assert stored.phone == "0790000001"

    def test_blank_fields_keep_current_values(self, db, customer):
        UserService(db).update_profile(customer, UserProfileUpdate(full_name="   "))

        db.expire_all()
        assert db.get(User, customer.id).full_name == "Lina Haddad"

    def test_same_email_in_other_case_is_not_a_conflict(self, db, customer):
        user = UserService(db).update_profile(customer, UserProfileUpdate(email="LINA@example.com"))

        assert user.email == "lina@example.com"

    def test_email_taken(self, db, customer, other_customer):
        with pytest.raises(ConflictException) as exc_info:
            UserService(db).update_profile(
                customer, UserProfileUpdate(full_name="Changed", email="omar@example.com")
            )

        assert exc_info.value.code == "EMAIL_TAKEN"
        db.expire_all()
        stored = db.get(User, customer.id)
        assert stored.email == "lina@example.com"
        assert stored.full_name == "Lina Haddad"

    def test_phone_taken(self, db, customer, other_customer):
        other_customer.phone = "0790000002"
        db.commit()

        with pytest.raises(ConflictException) as exc_info:
            UserService(db).update_profile(customer, UserProfileUpdate(phone="0790000002"))

        assert exc_info.value.code == "PHONE_TAKEN"


@pytest.mark.parametrize(
    "values",
    [{"email": "not-an-email"}, {"full_name": "x" * 101}, {"phone": "0" * 21}, {"role": "admin"}],
)
def test_profile_update_validation(values):
    with pytest.raises(ValidationError):
        UserProfileUpdate(**values)
