"""Integration tests for the sweets endpoints via TestClient."""
import pytest

from sweetshop import crud
from tests.conftest import make_sweet

SWEET = {"name": "Chocolate Bar", "category": "Chocolate", "price": 5.99, "quantity": 100}


@pytest.fixture()
def sweet(app_session):
    return make_sweet(app_session, quantity=50)


def _quantity(app_session, sweet_id):
    app_session.expire_all()
    return crud.get_sweet(app_session, sweet_id).quantity


class TestCreateSweet:

    def test_create(self, client, user_headers):
        response = client.post("/api/sweets", json=SWEET, headers=user_headers)
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Sweet created successfully"
        assert body["sweet"]["name"] == "Chocolate Bar"
        assert body["sweet"]["price"] == 5.99
        assert body["sweet"]["quantity"] == 100
        assert body["sweet"]["id"]

    def test_quantity_defaults_to_zero(self, client, user_headers):
        payload = {key: SWEET[key] for key in ("name", "category", "price")}
        response = client.post("/api/sweets", json=payload, headers=user_headers)
        assert response.status_code == 201
        assert response.json()["sweet"]["quantity"] == 0

    def test_requires_authentication(self, client):
        response = client.post("/api/sweets", json=SWEET)
        assert response.status_code == 401
        assert "error" in response.json()

    @pytest.mark.parametrize("override", [
        {"name": ""},
        {"name": "   "},
        {"name": "x" * 101},
        {"category": "x" * 51},
        {"price": -1},
        {"price": 1.005},
        {"price": 1e9},
        {"price": 100000000},
        {"quantity": -1},
        {"quantity": 1.5},
        {"quantity": 2**31},
    ])
    def test_validation(self, client, user_headers, override):
        response = client.post("/api/sweets", json={**SWEET, **override}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"


class TestListSweets:

    @pytest.fixture()
    def catalogue(self, app_session):
        make_sweet(app_session, name="Chocolate Bar", category="Candy", price="2.50")
        make_sweet(app_session, name="Gummy Bears", category="Candy", price="1.00")
        make_sweet(app_session, name="Truffle", category="Chocolate", price="9.00")

    def test_list_all(self, client, user_headers, catalogue):
        response = client.get("/api/sweets", headers=user_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 3
        assert len(body["sweets"]) == 3

    def test_requires_authentication(self, client, catalogue):
        assert client.get("/api/sweets").status_code == 401

    def test_filter_by_name(self, client, user_headers, catalogue):
        response = client.get("/api/sweets/search", params={"name": "choc"}, headers=user_headers)
        sweets = response.json()["sweets"]
        assert [s["name"] for s in sweets] == ["Chocolate Bar"]

    def test_filter_by_category(self, client, user_headers, catalogue):
        response = client.get("/api/sweets/search", params={"category": "candy"}, headers=user_headers)
        sweets = response.json()["sweets"]
        assert len(sweets) == 2
        assert all(s["category"] == "Candy" for s in sweets)

    def test_filter_by_price_range(self, client, user_headers, catalogue):
        response = client.get(
            "/api/sweets", params={"minPrice": 1, "maxPrice": 2.5}, headers=user_headers
        )
        names = {s["name"] for s in response.json()["sweets"]}
        assert names == {"Chocolate Bar", "Gummy Bears"}

    def test_bad_price_filter(self, client, user_headers):
        response = client.get("/api/sweets", params={"minPrice": "cheap"}, headers=user_headers)
        assert response.status_code == 400


class TestGetSweet:

    def test_get(self, client, user_headers, sweet):
        response = client.get(f"/api/sweets/{sweet.id}", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["sweet"]["id"] == sweet.id

    def test_not_found(self, client, user_headers):
        response = client.get("/api/sweets/507f1f77bcf86cd799439011", headers=user_headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Sweet not found", "reason": "NotFound"}


class TestUpdateSweet:

    def test_update_by_user(self, client, user_headers, sweet):
        response = client.put(
            f"/api/sweets/{sweet.id}", json={"name": "Dark Chocolate", "price": 6.49}, headers=user_headers
        )
        assert response.status_code == 200
        body = response.json()["sweet"]
        assert body["name"] == "Dark Chocolate"
        assert body["price"] == 6.49
        assert body["quantity"] == 50

    def test_not_found(self, client, user_headers):
        response = client.put("/api/sweets/missing", json={"name": "X"}, headers=user_headers)
        assert response.status_code == 404

    @pytest.mark.parametrize("price", [1.005, 1e9])
    def test_price_outside_column(self, client, user_headers, sweet, price):
        response = client.put(f"/api/sweets/{sweet.id}", json={"price": price}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "ValidationError"

    def test_negative_quantity(self, client, user_headers, sweet):
        response = client.put(f"/api/sweets/{sweet.id}", json={"quantity": -5}, headers=user_headers)
        assert response.status_code == 400


class TestDeleteSweet:

    def test_delete_by_admin(self, client, admin_headers, sweet, app_session):
        response = client.delete(f"/api/sweets/{sweet.id}", headers=admin_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Sweet deleted successfully"
        assert body["sweet"]["id"] == sweet.id
        assert body["sweet"]["quantity"] == 50
        assert client.get(f"/api/sweets/{sweet.id}", headers=admin_headers).status_code == 404

    def test_forbidden_for_user(self, client, user_headers, sweet):
        response = client.delete(f"/api/sweets/{sweet.id}", headers=user_headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "Forbidden"

    def test_not_found(self, client, admin_headers):
        response = client.delete("/api/sweets/missing", headers=admin_headers)
        assert response.status_code == 404


class TestPurchaseSweet:

    def test_purchase(self, client, user_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/purchase", json={"quantity": 5}, headers=user_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Purchase successful"
        assert response.json()["sweet"]["quantity"] == 45

    def test_defaults_to_one_with_empty_body(self, client, user_headers, app_session):
        sweet = make_sweet(app_session, quantity=49)
        response = client.post(f"/api/sweets/{sweet.id}/purchase", json={}, headers=user_headers)
        assert response.status_code == 200
        assert response.json()["sweet"]["quantity"] == 48

    def test_defaults_to_one_without_body(self, client, user_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/purchase", headers=user_headers)
        assert response.status_code == 200
        assert response.json()["sweet"]["quantity"] == 49

    def test_out_of_stock(self, client, user_headers, app_session):
        sweet = make_sweet(app_session, quantity=0)
        response = client.post(f"/api/sweets/{sweet.id}/purchase", json={"quantity": 1}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "OutOfStock"
        assert "stock" in response.json()["error"]

    def test_insufficient_quantity(self, client, user_headers, sweet, app_session):
        response = client.post(f"/api/sweets/{sweet.id}/purchase", json={"quantity": 100}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "InsufficientQuantity"
        assert "Insufficient" in response.json()["error"]
        assert _quantity(app_session, sweet.id) == 50

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_non_positive_quantity(self, client, user_headers, sweet, quantity):
        response = client.post(
            f"/api/sweets/{sweet.id}/purchase", json={"quantity": quantity}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidArgument"

    def test_oversize_quantity(self, client, user_headers, sweet, app_session):
        response = client.post(
            f"/api/sweets/{sweet.id}/purchase", json={"quantity": 10**20}, headers=user_headers
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidArgument"
        assert _quantity(app_session, sweet.id) == 50

    def test_non_integer_quantity(self, client, user_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/purchase", json={"quantity": "2"}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "ValidationError"

    def test_not_found(self, client, user_headers):
        response = client.post("/api/sweets/missing/purchase", json={"quantity": 1}, headers=user_headers)
        assert response.status_code == 404

    def test_admin_can_purchase(self, client, admin_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/purchase", json={"quantity": 1}, headers=admin_headers)
        assert response.status_code == 200


class TestRestockSweet:

    def test_restock_by_admin(self, client, admin_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/restock", json={"quantity": 25}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Restock successful"
        assert response.json()["sweet"]["quantity"] == 75

    def test_forbidden_for_user(self, client, user_headers, sweet, app_session):
        response = client.post(f"/api/sweets/{sweet.id}/restock", json={"quantity": 25}, headers=user_headers)
        assert response.status_code == 403
        assert _quantity(app_session, sweet.id) == 50

    def test_missing_quantity(self, client, admin_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/restock", json={}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidArgument"

    def test_missing_body(self, client, admin_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/restock", headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidArgument"

    def test_zero_quantity(self, client, admin_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/restock", json={"quantity": 0}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidArgument"

    def test_forbidden_for_user_with_zero_quantity(self, client, user_headers, sweet):
        response = client.post(f"/api/sweets/{sweet.id}/restock", json={"quantity": 0}, headers=user_headers)
        assert response.status_code == 403
        assert response.json()["reason"] == "Forbidden"

    @pytest.mark.parametrize("quantity", [2**31, 10**20])
    def test_oversize_quantity(self, client, admin_headers, sweet, app_session, quantity):
        response = client.post(
            f"/api/sweets/{sweet.id}/restock", json={"quantity": quantity}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidArgument"
        assert _quantity(app_session, sweet.id) == 50

    def test_stock_past_column_range(self, client, admin_headers, sweet, app_session):
        response = client.post(
            f"/api/sweets/{sweet.id}/restock", json={"quantity": 2**31 - 1}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["reason"] == "ValidationError"
        assert _quantity(app_session, sweet.id) == 50

    def test_not_found(self, client, admin_headers):
        response = client.post("/api/sweets/missing/restock", json={"quantity": 5}, headers=admin_headers)
        assert response.status_code == 404


class TestStockScenario:

    def test_purchase_then_restock_round(self, client, user_headers, admin_headers, app_session):
        sweet = make_sweet(app_session, quantity=3)
        url = f"/api/sweets/{sweet.id}"

        assert client.post(f"{url}/purchase", json={"quantity": 3}, headers=user_headers).status_code == 200
        second = client.post(f"{url}/purchase", json={"quantity": 3}, headers=user_headers)
        assert second.json()["reason"] == "OutOfStock"

        restocked = client.post(f"{url}/restock", json={"quantity": 10}, headers=admin_headers)
        assert restocked.json()["sweet"]["quantity"] == 10
        assert _quantity(app_session, sweet.id) == 10
