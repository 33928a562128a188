"""
Tests for sponsor document validation.
"""

import pytest
from sponsormatch.schema import is_active_document, sponsor_from_document, validate_sponsor_document


class TestValidateSponsorDocument:
    """Test basic validation function."""

    def test_valid_document(self, sponsor_documents):
        """Fixture documents should have no errors."""
        for doc in sponsor_documents:
            assert validate_sponsor_document(doc) == []

    def test_missing_required_field(self):
        """Missing required field should error."""
        errors = validate_sponsor_document({"_id": "s-1"})
        assert len(errors) > 0
        assert any("companyname" in err.lower() for err in errors)

    def test_missing_id(self):
        errors = validate_sponsor_document({"companyName": "Acme"})
        assert any("_id" in err for err in errors)

    def test_empty_name(self):
        """Empty company name should error."""
        errors = validate_sponsor_document({"_id": "s-1", "companyName": "   "})
        assert len(errors) > 0

    @pytest.mark.parametrize("doc_id", ["", True, 1.5, ["s-1"]])
    def test_invalid_id_types(self, doc_id):
        errors = validate_sponsor_document({"_id": doc_id, "companyName": "Acme"})
        assert any("_id" in err for err in errors)

    def test_integer_id_allowed(self):
        assert validate_sponsor_document({"_id": 42, "companyName": "Acme"}) == []

    def test_searchable_names_must_be_strings(self):
        doc = {"_id": "s-1", "companyName": "Acme", "searchableNames": ["acme", 3]}
        errors = validate_sponsor_document(doc)
        assert any("searchableNames" in err for err in errors)

    def test_active_flags_must_be_boolean(self):
        doc = {"_id": "s-1", "companyName": "Acme", "isActive": "yes", "h1bData": {"isActive": 1}}
        errors = validate_sponsor_document(doc)
        assert len(errors) == 2

    def test_h1b_data_must_be_object(self):
        errors = validate_sponsor_document({"_id": "s-1", "companyName": "Acme", "h1bData": []})
        assert any("h1bData" in err for err in errors)

    def test_non_object(self):
        assert validate_sponsor_document(["s-1"]) == ["Sponsor document must be an object"]


class TestActiveDocuments:
    """Test the activity rule."""

    def test_defaults_to_active(self):
        assert is_active_document({"_id": "s-1", "companyName": "Acme"})

    def test_inactive_record(self):
        assert not is_active_document({"isActive": False})

    def test_inactive_sponsorship_data(self):
        assert not is_active_document({"isActive": True, "h1bData": {"isActive": False}})


class TestSponsorFromDocument:
    def test_conversion(self, sponsor_documents):
        sponsor = sponsor_from_document(sponsor_documents[0])

        assert sponsor.id == "s-acme"
        assert sponsor.name == "Acme Corporation"
        assert sponsor.secondary_names == ("acme corporation", "acme")
        assert sponsor.active is True

    def test_without_secondary_names(self, sponsor_documents):
        assert sponsor_from_document(sponsor_documents[0], include_secondary=False).secondary_names == ()

    def test_inactive_flag_carried(self, sponsor_documents):
        assert sponsor_from_document(sponsor_documents[3]).active is False
