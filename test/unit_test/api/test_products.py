from datetime import date, timedelta
from decimal import Decimal

from farmmarket.models.farmer import Farmer
from farmmarket.models.notification import Notification
from farmmarket.models.order import Order, OrderItem
from farmmarket.models.product import Product

NEW_PRODUCT = {
    "name": "Fresh Strawberries",
    "description": "Sweet, juicy strawberries picked at peak ripeness.",
    "price": 4.49,
    "quantity": 75,
    "unit": "lb",
    "category": "fruits",
    "images": ["https://cdn.example.com/strawberries.jpg"],
    "organic": True,
}


class TestCreateProduct:
    """Listing new products."""

    def test_farmer_creates_product(self, client, db_session, farmer_user, farm, headers_for):
        response = client.post("/api/products", json=NEW_PRODUCT, headers=headers_for(farmer_user))

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Fresh Strawberries"
        assert data["farmer_id"] == farm.id
        assert data["farmer_name"] == "Green Acres Farm"
        assert data["available"] is True
        assert data["is_own_product"] is True
        assert data["like_count"] == 0

        notification = db_session.query(Notification).filter(Notification.user_id == farmer_user.id).one()
        assert notification.title == "Product Listed Successfully"
        assert notification.product_id == data["id"]

    def test_farmer_without_profile_gets_one(self, client, db_session, farmer_user, headers_for):
        response = client.post("/api/products", json=NEW_PRODUCT, headers=headers_for(farmer_user))

        assert response.status_code == 201
        farm = db_session.query(Farmer).filter(Farmer.user_id == farmer_user.id).one()
        assert response.json()["farmer_id"] == farm.id

    def test_customer_cannot_create_product(self, client, customer, headers_for):
        response = client.post("/api/products", json=NEW_PRODUCT, headers=headers_for(customer))

        assert response.status_code == 403
        assert response.json()["detail"] == "Farmer access required"

    def test_anonymous_cannot_create_product(self, client):
        response = client.post("/api/products", json=NEW_PRODUCT)

        assert response.status_code == 401

    def test_rejects_non_http_image_urls(self, client, farmer_user, farm, headers_for):
        body = dict(NEW_PRODUCT, images=["javascript:alert(1)"])

        response = client.post("/api/products", json=body, headers=headers_for(farmer_user))

        assert response.status_code == 422

    def test_rejects_future_harvest_date(self, client, farmer_user, farm, headers_for):
        body = dict(NEW_PRODUCT, harvest_date=(date.today() + timedelta(days=3)).isoformat())

        response = client.post("/api/products", json=body, headers=headers_for(farmer_user))

        assert response.status_code == 422

    def test_rejects_unknown_category(self, client, farmer_user, farm, headers_for):
        body = dict(NEW_PRODUCT, category="jewellery")

        response = client.post("/api/products", json=body, headers=headers_for(farmer_user))

        assert response.status_code == 422

    def test_rejects_non_positive_price(self, client, farmer_user, farm, headers_for):
        body = dict(NEW_PRODUCT, price=0)

        response = client.post("/api/products", json=body, headers=headers_for(farmer_user))

        assert response.status_code == 422


class TestListProducts:
    """Browsing the market."""

    def test_anonymous_sees_only_available_products(self, client, farm, make_product):
        make_product(farm, name="Organic Tomatoes")
        make_product(farm, name="Old Carrots", available=False)

        response = client.get("/api/products")

        assert response.status_code == 200
        data = response.json()
        assert [item["name"] for item in data["items"]] == ["Organic Tomatoes"]
        assert data["total"] == 1
        assert data["page"] == 1
        assert data["has_prev"] is False

    def test_filters_by_category_and_organic(self, client, farm, make_product):
        make_product(farm, name="Organic Tomatoes", organic=True)
        make_product(farm, name="Grass-Fed Beef", category="meat", organic=False)
        make_product(farm, name="Blueberries", category="fruits", organic=True)

        by_category = client.get("/api/products", params={"category": "meat"}).json()
        organic = client.get("/api/products", params={"organic_only": True}).json()

        assert [item["name"] for item in by_category["items"]] == ["Grass-Fed Beef"]
        assert {item["name"] for item in organic["items"]} == {"Organic Tomatoes", "Blueberries"}

    def test_search_and_price_range(self, client, farm, make_product):
        make_product(farm, name="Organic Tomatoes", price="3.99")
        make_product(farm, name="Grass-Fed Beef", price="12.99", description="High-quality beef")
        make_product(farm, name="Raw Honey", price="8.99", description="Pure honey")

        search = client.get("/api/products", params={"search": "honey"}).json()
        ranged = client.get("/api/products", params={"min_price": 4, "max_price": 10}).json()

        assert [item["name"] for item in search["items"]] == ["Raw Honey"]
        assert [item["name"] for item in ranged["items"]] == ["Raw Honey"]

    def test_sort_by_price_ascending(self, client, farm, make_product):
        make_product(farm, name="Grass-Fed Beef", price="12.99")
        make_product(farm, name="Organic Lettuce", price="2.99")
        make_product(farm, name="Raw Honey", price="8.99")

        response = client.get("/api/products", params={"sort_by": "price", "sort_order": "asc"})

        assert [item["price"] for item in response.json()["items"]] == [2.99, 8.99, 12.99]

    def test_pagination(self, client, farm, make_product):
        for index in range(3):
            make_product(farm, name=f"Product {index}")

        response = client.get("/api/products", params={"page": 2, "limit": 2})

        data = response.json()
        assert len(data["items"]) == 1
        assert data["total"] == 3
        assert data["total_pages"] == 2
        assert data["has_next"] is False
        assert data["has_prev"] is True

    def test_invalid_sort_field(self, client):
        response = client.get("/api/products", params={"sort_by": "popularity"})

        assert response.status_code == 400

    def test_invalid_price_range(self, client):
        response = client.get("/api/products", params={"min_price": 10, "max_price": 5})

        assert response.status_code == 400
        assert response.json()["detail"] == "min_price cannot be greater than max_price"

    def test_limit_is_capped(self, client):
        response = client.get("/api/products", params={"limit": 51})

        assert response.status_code == 422

    def test_farmer_does_not_see_own_products_in_market(
        self, client, farmer_user, farm, other_farm, make_product, headers_for
    ):
        make_product(farm, name="Organic Tomatoes")
        make_product(other_farm, name="Blueberries", category="fruits")

        response = client.get("/api/products", headers=headers_for(farmer_user))

        assert [item["name"] for item in response.json()["items"]] == ["Blueberries"]

    def test_farmer_lists_own_products_including_unavailable(
        self, client, farmer_user, farm, other_farm, make_product, headers_for
    ):
        make_product(farm, name="Organic Tomatoes")
        make_product(farm, name="Old Carrots", available=False)
        make_product(other_farm, name="Blueberries", category="fruits")

        response = client.get("/api/products", params={"farmer": True}, headers=headers_for(farmer_user))

        items = response.json()["items"]
        assert {item["name"] for item in items} == {"Organic Tomatoes", "Old Carrots"}
        assert all(item["is_own_product"] for item in items)

    def test_own_products_listing_requires_farmer(self, client, customer, headers_for):
        response = client.get("/api/products", params={"farmer": True}, headers=headers_for(customer))

        assert response.status_code == 403


class TestReadProduct:
    """Product detail."""

    def test_detail_includes_farm_information(self, client, product):
        response = client.get(f"/api/products/{product.id}")

        assert response.status_code == 200
        data = response.json()
        assert data["farmer_name"] == "Green Acres Farm"
        assert data["farmer_description"] == "Organic vegetables"
        assert data["farmer_location"] == "Countryside, CA"
        assert data["is_own_product"] is False

    def test_detail_marks_own_product(self, client, farmer_user, product, headers_for):
        response = client.get(f"/api/products/{product.id}", headers=headers_for(farmer_user))

        assert response.json()["is_own_product"] is True

    def test_missing_product(self, client):
        response = client.get("/api/products/9999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Product not found"


class TestUpdateProduct:
    """Editing listings."""

    def test_owner_updates_product(self, client, farmer_user, product, headers_for):
        response = client.put(
            f"/api/products/{product.id}",
            json={"price": 4.25, "quantity": 20},
            headers=headers_for(farmer_user),
        )

        assert response.status_code == 200
        assert response.json()["price"] == 4.25
        assert response.json()["quantity"] == 20
        assert response.json()["name"] == "Organic Tomatoes"

    def test_other_farmer_cannot_update(self, client, other_farmer_user, other_farm, product, headers_for):
        response = client.put(
            f"/api/products/{product.id}", json={"price": 1.0}, headers=headers_for(other_farmer_user)
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "You can only modify your own products"

    def test_admin_updates_any_product(self, client, admin, product, headers_for):
        response = client.put(f"/api/products/{product.id}", json={"available": False}, headers=headers_for(admin))

        assert response.status_code == 200
        assert response.json()["available"] is False


class TestDeleteProduct:
    """Removing listings."""

    def test_delete_product_without_orders(self, client, db_session, farmer_user, product, headers_for):
        response = client.delete(f"/api/products/{product.id}", headers=headers_for(farmer_user))

        assert response.status_code == 200
        assert response.json()["message"] == "Product deleted successfully"
        db_session.expire_all()
        assert db_session.query(Product).filter(Product.id == product.id).first() is None

    def test_product_with_orders_is_delisted(
        self, client, db_session, customer, farmer_user, farm, product, headers_for
    ):
        order = Order(customer_id=customer.id, farmer_id=farm.id, total_amount=Decimal("3.99"))
        order.items = [OrderItem(product_id=product.id, quantity=1, price=Decimal("3.99"))]
        db_session.add(order)
        db_session.commit()

        response = client.delete(f"/api/products/{product.id}", headers=headers_for(farmer_user))

        assert response.status_code == 200
        assert response.json()["message"] == "Product has existing orders and was marked unavailable"
        db_session.expire_all()
        assert db_session.get(Product, product.id).available is False

    def test_customer_cannot_delete(self, client, customer, product, headers_for):
        response = client.delete(f"/api/products/{product.id}", headers=headers_for(customer))

        assert response.status_code == 403
        assert response.json()["detail"] == "Farmer or admin access required"


class TestDecrementQuantity:
    """Taking stock out of inventory."""

    def test_decrement(self, client, farmer_user, farm, make_product, headers_for):
        product = make_product(farm, quantity=10)

        response = client.patch(
            f"/api/products/{product.id}/quantity", json={"quantity": 4}, headers=headers_for(farmer_user)
        )

        assert response.status_code == 200
        assert response.json()["quantity"] == 6
        assert response.json()["available"] is True

    def test_selling_out_delists_product(self, client, farmer_user, farm, make_product, headers_for):
        product = make_product(farm, quantity=3)

        response = client.patch(
            f"/api/products/{product.id}/quantity", json={"quantity": 3}, headers=headers_for(farmer_user)
        )

        assert response.json()["quantity"] == 0
        assert response.json()["available"] is False

    def test_insufficient_stock(self, client, db_session, farmer_user, farm, make_product, headers_for):
        product = make_product(farm, quantity=2)

        response = client.patch(
            f"/api/products/{product.id}/quantity", json={"quantity": 5}, headers=headers_for(farmer_user)
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Insufficient stock"
        db_session.expire_all()
        assert db_session.get(Product, product.id).quantity == 2
