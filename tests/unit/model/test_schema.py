"""Tests for JSON Schema validation."""

import pytest

from commonmeta.core.exceptions import SchemaValidationError
from commonmeta.model.record import Contributor, Record
from commonmeta.model.schema import check, get_validator, validate


class TestValidate:
    """Tests for validate() and check()."""

    def test_valid_record(self) -> None:
        record = Record(
            id="https://doi.org/10.7554/elife.01567",
            type="JournalArticle",
            contributors=[Contributor(given_name="Martin", family_name="Fenner")],
        )
        assert validate(record.to_dict()) == []

    def test_invalid_type_reports_pointer(self) -> None:
        errors = validate({"id": "https://doi.org/10.1/a", "type": "Blog"})
        assert errors
        assert errors[0][0] == "/type"

    def test_missing_required(self) -> None:
        errors = validate({"type": "Dataset"})
        assert errors == [("/", "'id' is a required property")]

    def test_check_raises_with_output(self) -> None:
        with pytest.raises(SchemaValidationError) as exc_info:
            check({"type": "Dataset"}, output=b"{}")
        assert exc_info.value.output == b"{}"
        assert exc_info.value.errors

    def test_unknown_schema(self) -> None:
        with pytest.raises(ValueError):
            get_validator("unknown")

    @pytest.mark.parametrize("schema", ["commonmeta_v0.16", "csl-data", "datacite-v4.5", "invenio-rdm-v0.1"])
    def test_bundled_schemas_compile(self, schema: str) -> None:
        assert get_validator(schema) is not None
