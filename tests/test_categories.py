from sap_awards.models import AwardCategory


def category_body(**overrides):
    body = {
        "name": "Community Impact",
        "description": "Leaders whose work lifts entire communities",
        "icon": "🤝",
        "iconName": "users",
    }
    body.update(overrides)
    return body


def test_list_categories_with_counts(client, db, category, make_nomination):
    make_nomination(status="approved")
    make_nomination(status="pending")
    db.add(AwardCategory(name="Hidden", description="Inactive category text", is_active=False))
    db.commit()

    response = client.get("/api/awards/categories")

    assert response.status_code == 200
    categories = response.json()["data"]["categories"]
    assert [c["name"] for c in categories] == ["Innovation Excellence"]
    assert categories[0]["totalNominations"] == 2
    assert categories[0]["approvedNominations"] == 1
    assert categories[0]["iconName"] == "lightbulb"


def test_list_categories_cached_until_write(client, admin_client, category):
    assert "cached" not in client.get("/api/awards/categories").json()
    assert client.get("/api/awards/categories").json()["cached"] is True

    admin_client.post("/api/awards/categories", json=category_body())

    body = client.get("/api/awards/categories").json()
    assert "cached" not in body
    assert len(body["data"]["categories"]) == 2


def test_create_category(admin_client):
    response = admin_client.post("/api/awards/categories", json=category_body())

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Award category created successfully"
    assert body["data"]["category"]["name"] == "Community Impact"
    assert body["data"]["category"]["isActive"] is True


def test_create_category_defaults_icon(admin_client):
    response = admin_client.post(
        "/api/awards/categories",
        json={"name": "Rising Star", "description": "Young professionals making waves"},
    )

    category = response.json()["data"]["category"]
    assert category["icon"] == "🏆"
    assert category["iconName"] == "trophy"


def test_create_category_duplicate_name(admin_client, category):
    response = admin_client.post(
        "/api/awards/categories", json=category_body(name="innovation excellence")
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Category with this name already exists"


def test_create_category_validation(admin_client):
    assert admin_client.post("/api/awards/categories", json=category_body(name="A")).status_code == 400
    assert admin_client.post("/api/awards/categories", json=category_body(description="short")).status_code == 400
    assert admin_client.post("/api/awards/categories", json=category_body(iconName="dragon")).status_code == 400


def test_create_category_requires_admin(client):
    assert client.post("/api/awards/categories", json=category_body()).status_code == 401


def test_update_category(admin_client, category):
    response = admin_client.put(
        f"/api/awards/categories/{category.id}", json={"description": "Updated description text", "isActive": False}
    )

    assert response.status_code == 200
    updated = response.json()["data"]["category"]
    assert updated["description"] == "Updated description text"
    assert updated["isActive"] is False
    assert updated["name"] == "Innovation Excellence"


def test_update_category_rename_conflict(admin_client, category):
    other = admin_client.post("/api/awards/categories", json=category_body()).json()["data"]["category"]

    response = admin_client.put(f"/api/awards/categories/{other['id']}", json={"name": "Innovation Excellence"})

    assert response.status_code == 400


def test_update_missing_category(admin_client):
    response = admin_client.put("/api/awards/categories/999", json={"name": "Nothing Here"})

    assert response.status_code == 404
    assert response.json()["message"] == "Category not found"


def test_delete_category_in_use(admin_client, category, make_nomination):
    make_nomination()
    make_nomination()

    response = admin_client.delete(f"/api/awards/categories/{category.id}")

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Cannot delete category. It has 2 nomination(s). Please reassign or delete the nominations first."
    )


def test_delete_category(admin_client, db, category):
    response = admin_client.delete(f"/api/awards/categories/{category.id}")

    assert response.status_code == 200
    assert response.json()["message"] == "Award category deleted successfully"
    db.expire_all()
    assert db.query(AwardCategory).count() == 0
