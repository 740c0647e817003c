from venuehq.config import VENUE_NAME


def test_root_names_the_venue(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"message": f"VenueHQ API is running for {VENUE_NAME}"}


def test_validation_errors_are_flattened(client, admin_headers):
    response = client.post("/customers", json={"first_name": "Sam", "mobile_number": "123"}, headers=admin_headers)
    assert response.status_code == 422
    body = response.json()
    assert body["detail"] == "Validation error"
    assert body["errors"] == [{"field": "mobile_number", "message": "Invalid phone number"}]
