from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from visitrack.errors import ConflictError, NotFoundError, register_exception_handlers


class Item(BaseModel):
    name: str
    quantity: int


def _app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/missing")
    def missing():
        raise NotFoundError("Visitor not found", visitor_id=5)

    @app.get("/conflict")
    def conflict():
        raise ConflictError()

    @app.post("/items")
    def create_item(item: Item):
        return item

    return TestClient(app)


def test_api_error_body():
    response = _app().get("/missing")

    assert response.status_code == 404
    assert response.json() == {
        "message": "Visitor not found",
        "error": "not_found",
        "context": {"visitor_id": 5},
    }


def test_default_message():
    response = _app().get("/conflict")

    assert response.status_code == 409
    assert response.json() == {"message": "Resource already exists", "error": "conflict"}


def test_validation_errors_are_bad_requests():
    response = _app().post("/items", json={"quantity": "many"})

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert "name: Field required" in body["message"]
    assert "quantity:" in body["message"]


def test_unknown_route_keeps_shape():
    response = _app().get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {"message": "Not Found", "error": "not_found"}
