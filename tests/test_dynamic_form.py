import pytest

from dynamic_form import DynamicForm, render_control
from form_schema_service import FormField, FormSchema


@pytest.fixture
def schema():
    fields = [
        FormField("full_name", "Full name", "text", required=True, example="Ana Gomez", category="Identity:Basic"),
        FormField("country", "Country", "enum", required=True, options=["CO", "US"], category="Identity:Basic"),
        FormField("id_front", "ID front", "text", required=True, upload=True, category="Identity:Document"),
        FormField("email", "Email", "email", required=True, category="Contact"),
        FormField("phone", "Phone", "phone", category="Contact"),
        FormField("employees", "Employees", "integer", required=True, category="Profile"),
        FormField("income", "Income", "number", category="Profile"),
        FormField("funds", "Source of funds", "array", required=True, options=["salary", "savings"],
                  category="Profile"),
        FormField("birth_date", "Birth date", "date", category="Profile"),
    ]
    return FormSchema(
        actor="natural_person",
        fields=fields,
        categories=["Identity:Basic", "Identity:Document", "Contact", "Profile"],
    )


@pytest.fixture
def valid_values():
    return {
        "full_name": "Ana Gomez",
        "country": "CO",
        "id_front": "id-front.pdf",
        "email": "ana@example.com",
        "phone": "+573001234567",
        "employees": "12",
        "funds": ["salary"],
    }


class TestRender:

    def test_title(self, schema):
        assert DynamicForm(schema).title == "natural person Verification Form"

    def test_groups_follow_schema_order(self, schema):
        groups = DynamicForm(schema).render()

        assert [g["category"] for g in groups] == ["Identity:Basic", "Identity:Document", "Contact", "Profile"]
        assert groups[0]["title"] == "Identity - Basic"
        assert [c["field_key"] for c in groups[3]["controls"]] == ["employees", "income", "funds", "birth_date"]

    def test_controls(self, schema):
        controls = {f.field_key: render_control(f) for f in schema.fields}

        assert controls["full_name"]["control"] == "input"
        assert controls["full_name"]["input_type"] == "text"
        assert controls["full_name"]["placeholder"] == "Ana Gomez"
        assert controls["country"]["control"] == "select"
        assert controls["country"]["options"][0] == {"value": "", "label": "Select Country"}
        assert [o["value"] for o in controls["country"]["options"][1:]] == ["CO", "US"]
        assert controls["id_front"]["control"] == "file"
        assert controls["email"]["input_type"] == "email"
        assert controls["phone"]["input_type"] == "tel"
        assert controls["employees"]["step"] == "1"
        assert controls["income"]["step"] == "0.01"
        assert controls["funds"] == {
            "field_key": "funds",
            "label": "Source of funds",
            "required": True,
            "description": "",
            "placeholder": "",
            "control": "checkbox_group",
            "options": ["salary", "savings"],
        }
        assert controls["birth_date"]["input_type"] == "date"

    def test_upload_overrides_declared_type(self):
        control = render_control(FormField("logo", "Logo", "enum", options=["a"], upload=True))
        assert control["control"] == "file"
        assert "options" not in control


class TestValues:

    @pytest.mark.parametrize("field_key,raw,expected", [
        ("employees", "12", 12),
        ("employees", "12.7", None),
        ("employees", "1.5", None),
        ("employees", "12.0", 12),
        ("employees", 40.0, 40),
        ("employees", "inf", None),
        ("employees", "-inf", None),
        ("employees", "nan", None),
        ("employees", "1e400", None),
        ("employees", float("inf"), None),
        ("income", "inf", None),
        ("income", "nan", None),
        ("income", float("inf"), None),
        ("employees", "twelve", None),
        ("income", "3.5", 3.5),
        ("income", "", None),
        ("income", 0, 0.0),
    ])
    def test_set_number(self, schema, field_key, raw, expected):
        form = DynamicForm(schema)
        form.set_number(field_key, raw)
        assert form.values[field_key] == expected

    def test_toggle_option_keeps_selection_order(self, schema):
        form = DynamicForm(schema)

        form.toggle_option("funds", "savings", True)
        form.toggle_option("funds", "salary", True)
        form.toggle_option("funds", "savings", True)
        assert form.values["funds"] == ["savings", "salary"]

        form.toggle_option("funds", "savings", False)
        assert form.values["funds"] == ["salary"]

    def test_attach_file_keeps_handle(self, schema):
        handle = object()
        form = DynamicForm(schema)
        form.attach_file("id_front", handle)
        assert form.values["id_front"] is handle

    def test_setting_a_value_clears_its_error(self, schema):
        form = DynamicForm(schema)
        form.validate()
        assert "full_name" in form.errors

        form.set_value("full_name", "Ana")

        assert "full_name" not in form.errors
        assert "email" in form.errors

    def test_fill_routes_typed_fields(self, schema):
        form = DynamicForm(schema)
        form.fill({"employees": "7", "funds": "salary", "unknown": "kept"})

        assert form.values == {"employees": 7, "funds": ["salary"], "unknown": "kept"}


class TestValidate:

    def test_valid(self, schema, valid_values):
        form = DynamicForm(schema)
        form.fill(valid_values)
        assert form.validate() == {}

    def test_required(self, schema):
        form = DynamicForm(schema)
        form.set_value("full_name", "")

        errors = form.validate()

        assert errors["full_name"] == "Full name is required"
        assert errors["email"] == "Email is required"
        assert "phone" not in errors
        assert "income" not in errors

    def test_zero_and_empty_list_count_as_present(self, schema, valid_values):
        form = DynamicForm(schema)
        form.fill({**valid_values, "employees": 0, "funds": []})

        errors = form.validate()

        assert "employees" not in errors
        assert "funds" not in errors

    @pytest.mark.parametrize("email", ["a@b.c", "ana.gomez+kyc@mail.example.co"])
    def test_email_accepted(self, schema, valid_values, email):
        form = DynamicForm(schema)
        form.fill({**valid_values, "email": email})
        assert form.validate() == {}

    @pytest.mark.parametrize("email", ["abc", "ana", "ana@example", "ana @example.com"])
    def test_email_format(self, schema, valid_values, email):
        form = DynamicForm(schema)
        form.fill({**valid_values, "email": email})
        assert form.validate() == {"email": "Invalid email format"}

    @pytest.mark.parametrize("phone", ["+15551234567", "+573001234567", "+44"])
    def test_phone_accepted(self, schema, valid_values, phone):
        form = DynamicForm(schema)
        form.fill({**valid_values, "phone": phone})
        assert form.validate() == {}

    @pytest.mark.parametrize("phone", ["5551234567", "3001234567", "+0123456", "+57 300 123 4567", "+1234567890123456"])
    def test_phone_format(self, schema, valid_values, phone):
        form = DynamicForm(schema)
        form.fill({**valid_values, "phone": phone})
        assert form.validate() == {"phone": "Invalid phone format (use E.164 format)"}


class TestSubmit:

    async def test_errors_skip_callback(self, schema):
        calls = []

        async def callback(values):
            calls.append(values)

        result = await DynamicForm(schema).submit(callback)

        assert result.submitted is False
        assert result.failed is False
        assert "full_name" in result.errors
        assert calls == []

    async def test_success(self, schema, valid_values):
        form = DynamicForm(schema)
        form.fill(valid_values)

        async def callback(values):
            return {"received": values}

        result = await form.submit(callback)

        assert result.submitted is True
        assert result.result["received"]["employees"] == 12

    async def test_callback_failure(self, schema, valid_values):
        form = DynamicForm(schema)
        form.fill(valid_values)
        error = RuntimeError("database down")

        async def callback(values):
            raise error

        result = await form.submit(callback)

        assert result.submitted is False
        assert result.failed is True
        assert result.exception is error
