from farmmarket.models.notification import Notification


class TestLikeProduct:
    """Liking and unliking products."""

    def test_like_notifies_farmer(self, client, db_session, customer, farmer_user, product, headers_for):
        response = client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))

        assert response.status_code == 200
        assert response.json() == {"liked": True, "like_count": 1}
        notification = db_session.query(Notification).filter(Notification.user_id == farmer_user.id).one()
        assert notification.title == "Product Liked"
        assert notification.type == "product_available"
        assert notification.message == 'Someone liked your product "Organic Tomatoes". Keep up the great work!'

    def test_liking_twice_is_rejected(self, client, customer, product, headers_for):
        client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))

        response = client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))

        assert response.status_code == 400
        assert response.json()["detail"] == "Product already liked"

    def test_farmer_liking_own_product_is_not_notified(
        self, client, db_session, farmer_user, product, headers_for
    ):
        response = client.post(f"/api/products/{product.id}/like", headers=headers_for(farmer_user))

        assert response.status_code == 200
        assert db_session.query(Notification).count() == 0

    def test_like_missing_product(self, client, customer, headers_for):
        response = client.post("/api/products/9999/like", headers=headers_for(customer))

        assert response.status_code == 404

    def test_like_requires_authentication(self, client, product):
        response = client.post(f"/api/products/{product.id}/like")

        assert response.status_code == 401

    def test_unlike(self, client, customer, product, headers_for):
        client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))

        response = client.delete(f"/api/products/{product.id}/like", headers=headers_for(customer))

        assert response.status_code == 200
        assert response.json() == {"liked": False, "like_count": 0}

    def test_unlike_without_like(self, client, customer, product, headers_for):
        response = client.delete(f"/api/products/{product.id}/like", headers=headers_for(customer))

        assert response.status_code == 404
        assert response.json()["detail"] == "Like not found"


class TestLikeQueries:
    """Like counts, status and the liked products list."""

    def test_count_is_public(self, client, customer, admin, product, headers_for):
        client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))
        client.post(f"/api/products/{product.id}/like", headers=headers_for(admin))

        response = client.get(f"/api/products/{product.id}/like/count")

        assert response.status_code == 200
        assert response.json() == {"product_id": product.id, "like_count": 2}

    def test_status_for_current_user(self, client, customer, admin, product, headers_for):
        client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))

        mine = client.get(f"/api/products/{product.id}/like/status", headers=headers_for(customer))
        theirs = client.get(f"/api/products/{product.id}/like/status", headers=headers_for(admin))

        assert mine.json() == {"liked": True, "like_count": 1}
        assert theirs.json() == {"liked": False, "like_count": 1}

    def test_status_requires_authentication(self, client, product):
        response = client.get(f"/api/products/{product.id}/like/status")

        assert response.status_code == 401

    def test_liked_products(self, client, customer, farm, make_product, headers_for):
        tomatoes = make_product(farm, name="Organic Tomatoes")
        make_product(farm, name="Grass-Fed Beef", category="meat")
        client.post(f"/api/products/{tomatoes.id}/like", headers=headers_for(customer))

        response = client.get("/api/likes", headers=headers_for(customer))

        assert response.status_code == 200
        assert [item["name"] for item in response.json()] == ["Organic Tomatoes"]
        assert response.json()[0]["like_count"] == 1

    def test_product_listing_reports_like_counts(self, client, customer, product, headers_for):
        client.post(f"/api/products/{product.id}/like", headers=headers_for(customer))

        response = client.get("/api/products")

        assert response.json()["items"][0]["like_count"] == 1
