"""Tests for the shared base models and log formatting."""
import json
import logging
import sys

import pytest

from campaigns.models import Campaign
from core.logging import JSONFormatter
from opportunities.models import Opportunity


# ---------------------------------------------------------------------------
# Soft delete
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestSoftDelete:
    def test_delete_stamps_instead_of_removing(self, campaign):
        campaign.delete()

        assert campaign.is_deleted
        assert not Campaign.objects.filter(pk=campaign.pk).exists()
        assert Campaign.all_objects.get(pk=campaign.pk).deleted_at is not None

    def test_second_delete_is_a_noop(self, campaign):
        assert campaign.delete() == (1, {"campaigns.Campaign": 1})
        stamp = campaign.deleted_at

        assert campaign.delete() == (0, {})
        assert Campaign.all_objects.get(pk=campaign.pk).deleted_at == stamp

    def test_unsaved_instance_cannot_be_deleted(self, owner):
        with pytest.raises(ValueError):
            Campaign(user=owner, name="Draft").delete()

    def test_alive_and_deleted_filters(self, owner):
        kept = Campaign.objects.create(user=owner, name="Kept")
        gone = Campaign.objects.create(user=owner, name="Gone")
        gone.delete()

        assert list(Campaign.all_objects.alive()) == [kept]
        assert list(Campaign.all_objects.deleted()) == [gone]

    def test_manager_has_no_bulk_delete(self):
        assert not hasattr(Campaign.objects, "delete")


# ---------------------------------------------------------------------------
# Validated models
# ---------------------------------------------------------------------------


@pytest.mark.django_db
class TestValidatedModel:
    def test_from_params_keeps_model_fields_only(self, owner):
        opportunity = Opportunity.from_params(
            {"user": owner, "name": "Picky", "notes": "n", "users": [1], "id": 42, "deleted_at": "x"},
        )
        assert opportunity.name == "Picky"
        assert opportunity.notes == "n"
        assert opportunity.pk is None
        assert opportunity.deleted_at is None

    def test_from_params_routes_raw_ids_to_the_column(self, owner, campaign):
        opportunity = Opportunity.from_params({"user": str(owner.pk), "campaign": campaign})

        assert opportunity.user_id == str(owner.pk)
        assert opportunity.campaign == campaign

    def test_errors_reset_on_each_validation(self, owner):
        opportunity = Opportunity(user=owner, name="")
        assert opportunity.validate() is False
        assert "name" in opportunity.errors

        opportunity.name = "Now valid"
        assert opportunity.validate() is True
        assert opportunity.errors == {}

    def test_missing_owner_is_a_field_error(self):
        opportunity = Opportunity(name="Ownerless")
        assert opportunity.validate() is False
        assert "user" in opportunity.errors


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


class TestJSONFormatter:
    def test_formats_one_json_object(self):
        record = logging.LogRecord(
            name="crm",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="Opportunity %s created",
            args=(7,),
            exc_info=None,
        )
        payload = json.loads(JSONFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "crm"
        assert payload["message"] == "Opportunity 7 created"
        assert "timestamp" in payload
        assert "exception" not in payload

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("crm", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())
        payload = json.loads(JSONFormatter().format(record))

        assert "RuntimeError: boom" in payload["exception"]
