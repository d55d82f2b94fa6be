import pytest

from conftest import USER_ADDRESS, make_settings

PERSON_VALUES = {
    "full_name": "Maria Fernanda Lopez",
    "date_of_birth": "1990-04-17",
    "nationality": "CO",
    "id_type": "passport",
    "id_number": "AB1234567",
    "id_front": "uploads/id-front.pdf",
    "email": "maria@example.com",
    "phone": "+573001234567",
    "residential_address": "Cra 7 # 71-21, Bogota",
    "annual_income_usd": "45000",
    "source_of_funds": ["salary", "savings"],
    "is_pep": "no",
}


async def test_get_person_form(client):
    response = await client.get("/api/forms/person")

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "PERSON"
    assert body["title"] == "natural person Verification Form"
    assert body["schema"]["actor"] == "natural_person"
    assert body["schema"]["categories"][0] == "Identity:Basic"
    assert body["groups"][0]["title"] == "Identity - Basic"

    controls = {c["field_key"]: c for g in body["groups"] for c in g["controls"]}
    assert controls["id_front"]["control"] == "file"
    assert controls["nationality"]["control"] == "select"
    assert controls["phone"]["input_type"] == "tel"


async def test_get_institution_form(client):
    response = await client.get("/api/forms/INSTITUTION")

    assert response.status_code == 200
    assert response.json()["schema"]["actor"] == "legal_entity"


async def test_unknown_kind(client):
    response = await client.get("/api/forms/company")
    assert response.status_code == 404


async def test_validate(client):
    response = await client.post("/api/forms/PERSON/validate", json={
        "values": {**PERSON_VALUES, "email": "maria", "phone": "3001234567", "full_name": ""},
    })

    assert response.status_code == 200
    assert response.json() == {
        "valid": False,
        "errors": {
            "full_name": "Full legal name is required",
            "email": "Invalid email format",
            "phone": "Invalid phone format (use E.164 format)",
        },
    }


async def test_validate_passes(client):
    response = await client.post("/api/forms/PERSON/validate", json={"values": PERSON_VALUES})
    assert response.json() == {"valid": True, "errors": {}}


@pytest.mark.parametrize("count", ["inf", "nan", "1.5"])
async def test_validate_unparsable_integer(client, count):
    response = await client.post("/api/forms/INSTITUTION/validate", json={"values": {"employee_count": count}})

    assert response.status_code == 200
    body = response.json()
    assert body["valid"] is False
    # optional field: an unparsable value is simply absent
    assert "employee_count" not in body["errors"]


async def test_submit_creates_verification_request(client, notifier):
    response = await client.post("/api/forms/PERSON/submit", json={
        "address": USER_ADDRESS,
        "values": PERSON_VALUES,
    })

    assert response.status_code == 200, response.text
    body = response.json()
    assert body["success"] is True
    assert body["status"] == "PENDING"

    listing = await client.get("/api/verification", params={"address": USER_ADDRESS})
    [request] = listing.json()["requests"]
    assert request["id"] == body["requestId"]
    assert request["kind"] == "PERSON"
    assert request["fields"]["annual_income_usd"] == 45000.0
    assert request["fields"]["source_of_funds"] == ["salary", "savings"]
    assert len(notifier.messages) == 1


async def test_submit_with_field_errors(client, notifier):
    response = await client.post("/api/forms/PERSON/submit", json={
        "address": USER_ADDRESS,
        "values": {"full_name": "Maria"},
    })

    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "email" in errors
    assert "full_name" not in errors
    assert notifier.messages == []


async def test_submit_with_bad_address(client):
    response = await client.post("/api/forms/PERSON/submit", json={"address": "0x1", "values": PERSON_VALUES})

    assert response.status_code == 400
    assert response.json() == {"detail": "Invalid Ethereum address"}


class TestBrokenSchemaDirectory:

    @pytest.fixture
    def settings(self, tmp_path):
        (tmp_path / "personas.csv").write_text("not,a,schema\n1,2,3\n", encoding="utf-8")
        return make_settings(FORM_SCHEMA_DIR=str(tmp_path))

    async def test_unparseable_schema(self, client):
        response = await client.get("/api/forms/PERSON")

        assert response.status_code == 500
        assert response.json() == {"detail": "Failed to parse form schema"}

    async def test_missing_schema_document(self, client):
        response = await client.get("/api/forms/INSTITUTION")

        assert response.status_code == 500
