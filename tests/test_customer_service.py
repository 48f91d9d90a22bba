"""Customer loyalty ledger."""
import pytest

import customer_service
import settings_service
from errors import NotFoundError, ValidationError


class TestUpsertFromOrder:
    def test_first_order_creates_customer(self, store):
        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 250)

        customer = customer_service.get_customer(store, customer_id)
        assert customer.total_orders == 1
        assert customer.total_spent == 250
        assert customer.loyalty_points == 25
        assert customer.last_visit is not None

    def test_second_order_accumulates(self, store):
        first_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 250)

        second_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 37)

        customer = customer_service.get_customer(store, first_id)
        assert second_id == first_id
        assert customer.total_orders == 2
        assert customer.total_spent == 287
        assert customer.loyalty_points == 28

    def test_spend_keeps_cents(self, store):
        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 10.1)
        customer_service.upsert_from_order(store, "9876543210", "Meera", 10.2)

        assert customer_service.get_customer(store, customer_id).total_spent == 20.3

    def test_name_phone_and_email_are_trimmed(self, store):
        customer_id = customer_service.upsert_from_order(store, " 9876543210 ", " Meera ", 10, " m@example.com ")

        customer = customer_service.get_customer(store, customer_id)
        assert customer.name == "Meera"
        assert customer.phone == "9876543210"
        assert customer.email == "m@example.com"

    def test_blank_email_is_not_stored(self, store):
        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 10, "  ")

        assert customer_service.get_customer(store, customer_id).email is None

    def test_other_restaurant_customer_is_not_reused(self, store):
        other = store.for_tenant("other_restaurant")
        other_id = customer_service.upsert_from_order(other, "9876543210", "Meera", 100)

        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 100)

        assert customer_id != other_id
        assert customer_service.get_customer(other, other_id).total_orders == 1


class TestLoyaltyPoints:
    @pytest.mark.parametrize("amount, points", [(0, 0), (9.99, 0), (10, 1), (269, 26), (1000, 100)])
    def test_one_point_per_ten(self, amount, points):
        assert customer_service.loyalty_points(amount) == points

    def test_ratio_from_settings(self, monkeypatch):
        monkeypatch.setenv("LOYALTY_POINTS_RATIO", "20")

        assert customer_service.loyalty_points(250) == 12

    def test_disabled(self, monkeypatch):
        monkeypatch.setenv("ENABLE_LOYALTY_POINTS", "false")

        assert customer_service.loyalty_points(250) == 0

    def test_never_negative(self):
        assert customer_service.loyalty_points(-50) == 0


class TestLookup:
    def test_find_by_phone_trims(self, store):
        customer_service.upsert_from_order(store, "9876543210", "Meera", 10)

        assert customer_service.find_by_phone(store, "  9876543210 ").name == "Meera"

    def test_blank_phone(self, store):
        assert customer_service.find_by_phone(store, "   ") is None

    def test_unknown_phone(self, store):
        assert customer_service.find_by_phone(store, "9000000000") is None

    def test_update_stats_for_missing_customer(self, store):
        with pytest.raises(NotFoundError):
            customer_service.update_customer_stats(store, "64b000000000000000000000", 10)


class TestRestaurantLoyaltyRules:
    def test_stored_ratio_is_used(self, store):
        settings_service.update_restaurant_settings(store, {"loyalty_points_ratio": 50})

        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 250)

        assert customer_service.get_customer(store, customer_id).loyalty_points == 5

    def test_stored_toggle_disables_points(self, store):
        settings_service.update_restaurant_settings(store, {"enable_loyalty_points": False})

        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 250)

        customer = customer_service.get_customer(store, customer_id)
        assert customer.loyalty_points == 0
        assert customer.total_spent == 250


class TestCustomerRecords:
    def test_create_starts_with_empty_ledger(self, store):
        customer_id = customer_service.create_customer(store, " Kavya ", "9123456780", address=" ")

        customer = customer_service.get_customer(store, customer_id)
        assert customer.name == "Kavya"
        assert (customer.total_orders, customer.total_spent, customer.loyalty_points) == (0, 0, 0)
        assert customer.address is None

    def test_create_rejects_known_phone(self, store):
        customer_service.upsert_from_order(store, "9876543210", "Meera", 100)

        with pytest.raises(ValidationError):
            customer_service.create_customer(store, "Someone", "9876543210")

    def test_create_requires_phone(self, store):
        with pytest.raises(ValidationError):
            customer_service.create_customer(store, "Kavya", "  ")

    def test_update_keeps_loyalty_figures(self, store):
        customer_id = customer_service.upsert_from_order(store, "9876543210", "Meera", 250)

        customer_service.update_customer(store, customer_id, {
            "name": "Meera Iyer", "email": "meera@example.com", "loyalty_points": 999,
        })

        customer = customer_service.get_customer(store, customer_id)
        assert customer.name == "Meera Iyer"
        assert customer.email == "meera@example.com"
        assert customer.loyalty_points == 25

    def test_update_to_taken_phone(self, store):
        customer_service.create_customer(store, "Kavya", "9123456780")
        other_id = customer_service.create_customer(store, "Rahul", "9988776655")

        with pytest.raises(ValidationError):
            customer_service.update_customer(store, other_id, {"phone": "9123456780"})

    def test_delete(self, store):
        customer_id = customer_service.create_customer(store, "Kavya", "9123456780")

        customer_service.delete_customer(store, customer_id)

        assert customer_service.list_customers(store) == []

    def test_delete_unknown(self, store):
        with pytest.raises(NotFoundError):
            customer_service.delete_customer(store, "64b000000000000000000000")


class TestSearchCustomers:
    @pytest.fixture
    def customers(self, store):
        customer_service.create_customer(store, "Kavya Rao", "9123456780")
        customer_service.create_customer(store, "Rahul Mehta", "9988776655")

    @pytest.mark.parametrize("query, names", [
        ("kavya", ["Kavya Rao"]),
        ("MEHTA", ["Rahul Mehta"]),
        ("99887", ["Rahul Mehta"]),
        ("", ["Kavya Rao", "Rahul Mehta"]),
        ("zzz", []),
    ])
    def test_by_name_or_phone(self, store, customers, query, names):
        assert [c.name for c in customer_service.search_customers(store, query)] == names
