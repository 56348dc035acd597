from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import make_settings, register
from main import create_app


def borrow(client, headers, book_id):
    return client.post("/borrow", json={"book_id": book_id}, headers=headers)


def test_borrow(client, member, make_book):
    user_id, headers = member
    book = make_book(quantity=2)

    response = borrow(client, headers, book["id"])
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Book borrowed successfully"
    transaction = body["data"]
    assert transaction["status"] == "borrowed"
    assert transaction["return_date"] is None
    assert transaction["user"] == {"id": user_id, "username": "alice"}
    assert transaction["book"] == {"id": book["id"], "title": "Dune", "author": "Frank Herbert"}
    due = datetime.fromisoformat(transaction["due_date"])
    borrowed = datetime.fromisoformat(transaction["borrow_date"])
    assert due - borrowed == timedelta(days=7)
    assert client.get(f"/books/{book['id']}").json()["data"]["quantity"] == 1


def test_borrow_requires_login(client, make_book):
    book = make_book()
    response = client.post("/borrow", json={"book_id": book["id"]})
    assert response.status_code == 401


@pytest.mark.parametrize("payload", [{}, {"book_id": "abc"}, {"book_id": 0}])
def test_borrow_validates_body(client, member, payload):
    _, headers = member
    response = client.post("/borrow", json=payload, headers=headers)
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_borrow_missing_book(client, member):
    _, headers = member
    response = borrow(client, headers, 999)
    assert response.status_code == 404
    assert response.json()["message"] == "Book not found"


def test_borrow_out_of_stock(client, member, make_book, admin):
    _, headers = member
    _, admin_headers = admin
    book = make_book(quantity=0)

    response = borrow(client, headers, book["id"])
    assert response.status_code == 409
    assert response.json()["message"] == "This book is out of stock"
    assert client.get("/admin/borrowed-books", headers=admin_headers).json()["count"] == 0


def test_borrow_same_book_twice(client, member, make_book):
    _, headers = member
    book = make_book(quantity=3)
    borrow(client, headers, book["id"])

    response = borrow(client, headers, book["id"])
    assert response.status_code == 409
    assert response.json()["message"] == "You have already borrowed this book"
    assert client.get(f"/books/{book['id']}").json()["data"]["quantity"] == 2


def test_last_copy_scenario(client, make_book):
    book = make_book(quantity=1)
    _, alice = register(client, "alice")
    _, bob = register(client, "bob")

    transaction = borrow(client, alice, book["id"]).json()["data"]
    assert client.get(f"/books/{book['id']}").json()["data"]["quantity"] == 0

    rejected = borrow(client, bob, book["id"])
    assert rejected.status_code == 409
    assert client.get(f"/books/{book['id']}").json()["data"]["quantity"] == 0

    response = client.post("/return", json={"transaction_id": transaction["id"]}, headers=alice)
    assert response.status_code == 200
    returned = response.json()["data"]
    assert returned["status"] == "returned"
    assert returned["return_date"] is not None
    assert response.json()["message"] == "Book returned successfully"
    book_after = client.get(f"/books/{book['id']}").json()["data"]
    assert book_after["quantity"] == 1
    assert book_after["is_available"] is True


def test_return_twice(client, member, make_book):
    _, headers = member
    book = make_book()
    transaction = borrow(client, headers, book["id"]).json()["data"]
    client.post("/return", json={"transaction_id": transaction["id"]}, headers=headers)

    response = client.post("/return", json={"transaction_id": transaction["id"]}, headers=headers)
    assert response.status_code == 409
    assert response.json()["message"] == "This book has already been returned"
    assert client.get(f"/books/{book['id']}").json()["data"]["quantity"] == 1


def test_return_missing_transaction(client, member):
    _, headers = member
    response = client.post("/return", json={"transaction_id": 999}, headers=headers)
    assert response.status_code == 404


def test_any_member_can_return_by_default(client, make_book):
    book = make_book()
    _, alice = register(client, "alice")
    _, bob = register(client, "bob")
    transaction = borrow(client, alice, book["id"]).json()["data"]

    response = client.post("/return", json={"transaction_id": transaction["id"]}, headers=bob)
    assert response.status_code == 200


def test_owner_only_return_policy(tmp_path):
    settings = make_settings(tmp_path, RETURN_POLICY="owner")
    with TestClient(create_app(settings)) as c:
        _, admin_headers = register(c, "admin", role="admin")
        book = c.post("/books", json={"title": "Dune", "author": "Frank Herbert"}, headers=admin_headers)
        _, alice = register(c, "alice")
        _, bob = register(c, "bob")
        transaction = borrow(c, alice, book.json()["data"]["id"]).json()["data"]

        response = c.post("/return", json={"transaction_id": transaction["id"]}, headers=bob)
        assert response.status_code == 403
        assert response.json()["message"] == "You are not allowed to return this book"
        assert c.post("/return", json={"transaction_id": transaction["id"]}, headers=admin_headers).status_code == 403
        assert c.post("/return", json={"transaction_id": transaction["id"]}, headers=alice).status_code == 200


def test_my_borrowed(client, member, make_book):
    _, headers = member
    first = make_book(title="First")
    second = make_book(title="Second")
    t1 = borrow(client, headers, first["id"]).json()["data"]
    borrow(client, headers, second["id"])
    client.post("/return", json={"transaction_id": t1["id"]}, headers=headers)

    response = client.get("/my-borrowed", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["data"][0]["book"]["title"] == "Second"


def test_history(client, member, make_book):
    user_id, headers = member
    first = make_book(title="First")
    second = make_book(title="Second")
    t1 = borrow(client, headers, first["id"]).json()["data"]
    borrow(client, headers, second["id"])
    client.post("/return", json={"transaction_id": t1["id"]}, headers=headers)

    response = client.get(f"/history/{user_id}", headers=headers)
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 2
    assert [t["status"] for t in body["data"]] == ["borrowed", "returned"]


def test_history_of_another_member_is_forbidden(client, member):
    _, headers = member
    bob_id, _ = register(client, "bob")
    response = client.get(f"/history/{bob_id}", headers=headers)
    assert response.status_code == 403
    assert response.json()["message"] == "You are not allowed to view this history"


def test_admin_can_read_any_history(client, admin, member, make_book):
    _, admin_headers = admin
    user_id, headers = member
    borrow(client, headers, make_book()["id"])

    response = client.get(f"/history/{user_id}", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["count"] == 1


def test_history_keeps_records_of_deleted_books(client, admin, member, make_book):
    _, admin_headers = admin
    user_id, headers = member
    book = make_book()
    borrow(client, headers, book["id"])
    client.delete(f"/books/{book['id']}", headers=admin_headers)

    transaction = client.get(f"/history/{user_id}", headers=headers).json()["data"][0]
    assert transaction["book_id"] is None
    assert transaction["book"] is None


def test_admin_borrowed_books(client, admin, make_book):
    _, admin_headers = admin
    book = make_book(quantity=2)
    _, alice = register(client, "alice")
    _, bob = register(client, "bob")
    t1 = borrow(client, alice, book["id"]).json()["data"]
    borrow(client, bob, book["id"])
    client.post("/return", json={"transaction_id": t1["id"]}, headers=alice)

    everything = client.get("/admin/borrowed-books", headers=admin_headers).json()
    outstanding = client.get("/admin/borrowed-books", params={"status": "borrowed"}, headers=admin_headers).json()
    returned = client.get("/admin/borrowed-books", params={"status": "returned"}, headers=admin_headers).json()

    assert everything["count"] == 2
    assert [t["user"]["username"] for t in outstanding["data"]] == ["bob"]
    assert [t["user"]["username"] for t in returned["data"]] == ["alice"]


def test_admin_borrowed_books_rejects_unknown_status(client, admin):
    _, admin_headers = admin
    response = client.get("/admin/borrowed-books", params={"status": "lost"}, headers=admin_headers)
    assert response.status_code == 400


def test_member_cannot_see_all_transactions(client, member):
    _, headers = member
    assert client.get("/admin/borrowed-books", headers=headers).status_code == 403


def test_stats(client, admin, make_book):
    _, admin_headers = admin
    book = make_book(quantity=2)
    make_book(title="Other")
    _, alice = register(client, "alice")
    register(client, "bob")
    t1 = borrow(client, alice, book["id"]).json()["data"]
    client.post("/return", json={"transaction_id": t1["id"]}, headers=alice)
    borrow(client, alice, book["id"])

    response = client.get("/admin/stats", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {
        "total_books": 2,
        "total_members": 2,
        "active_borrows": 1,
        "total_transactions": 2,
    }


def test_member_cannot_see_stats(client, member):
    _, headers = member
    response = client.get("/admin/stats", headers=headers)
    assert response.status_code == 403


@pytest.mark.parametrize("book_id", [2**63, 2**70])
def test_borrow_rejects_out_of_range_book_id(client, member, book_id):
    _, headers = member
    response = borrow(client, headers, book_id)
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid input: book_id")


def test_return_rejects_out_of_range_transaction_id(client, member):
    _, headers = member
    response = client.post("/return", json={"transaction_id": 2**70}, headers=headers)
    assert response.status_code == 400
    assert response.json()["message"].startswith("Invalid input: transaction_id")


def test_history_rejects_out_of_range_user_id(client, admin):
    _, admin_headers = admin
    response = client.get(f"/history/{2**70}", headers=admin_headers)
    assert response.status_code == 400
