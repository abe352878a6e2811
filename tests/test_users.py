from bson import ObjectId


def test_read_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "App is running"


def test_get_unknown_user_returns_404(client):
    response = client.get("/users/nobody@example.com")
    assert response.status_code == 404
    assert response.json() == {"detail": "User not found"}


def test_create_then_get_user(client, db):
    response = client.post("/users", json={"email": "a@x.com", "name": "Ana"})
    assert response.status_code == 200
    ack = response.json()
    assert ack["acknowledged"] is True
    assert ObjectId.is_valid(ack["insertedId"])

    response = client.get("/users/a@x.com")
    assert response.status_code == 200
    user = response.json()
    assert user["_id"] == ack["insertedId"]
    assert user["email"] == "a@x.com"
    assert user["name"] == "Ana"
    assert db.arts_users.count_documents({}) == 1


def test_create_user_does_not_enforce_unique_email(client, db):
    client.post("/users", json={"email": "a@x.com"})
    response = client.post("/users", json={"email": "a@x.com"})
    assert response.status_code == 200
    assert db.arts_users.count_documents({"email": "a@x.com"}) == 2


def test_create_user_requires_email(client, db):
    response = client.post("/users", json={"name": "No Email"})
    assert response.status_code == 400
    assert response.json() == {"detail": "email is required"}
    assert db.arts_users.count_documents({}) == 0


def test_user_favorites_serialize_as_strings(client, db):
    art_id = ObjectId()
    db.arts_users.insert_one({"email": "a@x.com", "user_fav_list": [art_id]})
    response = client.get("/users/a@x.com")
    assert response.json()["user_fav_list"] == [str(art_id)]


def test_create_user_ignores_client_id(client, db):
    chosen = str(ObjectId())
    first = client.post("/users", json={"_id": chosen, "email": "a@x.com"})
    second = client.post("/users", json={"_id": chosen, "email": "b@x.com"})

    assert first.status_code == 200
    assert second.status_code == 200
    ids = {first.json()["insertedId"], second.json()["insertedId"]}
    assert len(ids) == 2
    assert chosen not in ids
    assert db.arts_users.count_documents({}) == 2
