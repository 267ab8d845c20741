import pytest

from contacts.models import Contact
from leads.models import Lead
from opportunities.models import Opportunity
from permissions.models import Access, Permission


@pytest.mark.django_db
class TestPermissionGrants:
    def test_asset_kind_names_the_record_type(self, owner, colleague):
        contact = Contact(user=owner, last_name="Kind", access=Access.SHARED)
        assert contact.save_with_permissions([colleague])

        permission = Permission.objects.for_asset(contact).get()
        assert permission.asset_kind == "contacts.contact"
        assert permission.asset == contact
        assert permission.user == colleague

    def test_grants_are_scoped_to_asset_kind(self, owner, colleague):
        lead = Lead(user=owner, last_name="Twin", access=Access.SHARED)
        assert lead.save_with_permissions([colleague])
        opportunity = Opportunity(user=owner, name="Twin", access=Access.SHARED)
        assert opportunity.save_with_permissions([colleague])

        assert Permission.objects.for_asset(lead).count() == 1
        assert Permission.objects.for_asset(opportunity).count() == 1
        assert Permission.objects.for_user(colleague).count() == 2

    def test_user_ids_in_any_form_are_deduplicated(self, owner, colleague):
        opportunity = Opportunity(user=owner, name="Dedup", access=Access.SHARED)
        assert opportunity.save_with_permissions([colleague, colleague.pk, str(colleague.pk)])
        assert opportunity.permissions.count() == 1

    def test_resharing_adds_only_new_users(self, owner, colleague, manager):
        opportunity = Opportunity(user=owner, name="Reshare", access=Access.SHARED)
        assert opportunity.save_with_permissions([colleague])

        assert opportunity.save_with_permissions([colleague, manager])

        assert set(opportunity.permissions.values_list("user_id", flat=True)) == {colleague.pk, manager.pk}

    def test_existing_grants_satisfy_shared_access(self, owner, colleague):
        opportunity = Opportunity(user=owner, name="Already shared", access=Access.SHARED)
        assert opportunity.save_with_permissions([colleague])

        opportunity.notes = "Edited later"
        assert opportunity.persist()

    def test_pending_grants_are_kept_when_validation_fails(self, owner, colleague):
        opportunity = Opportunity(user=owner, name="", access=Access.SHARED)
        assert opportunity.save_with_permissions([colleague]) is False
        assert Permission.objects.count() == 0

        opportunity.name = "Fixed"
        assert opportunity.persist()
        assert opportunity.permissions.count() == 1

    def test_private_record_ignores_users(self, owner, colleague):
        lead = Lead(user=owner, last_name="Private")
        assert lead.save_with_permissions([colleague])
        assert lead.permissions.count() == 0


@pytest.mark.django_db
class TestSharedAccessScope:
    def test_my_works_for_every_shared_record_type(self, owner, colleague):
        lead = Lead(user=owner, last_name="Visible", access=Access.SHARED)
        assert lead.save_with_permissions([colleague])
        hidden = Lead(user=owner, last_name="Invisible")
        assert hidden.persist()

        assert list(Lead.objects.my(colleague)) == [lead]
        assert list(Lead.objects.my(owner)) == [hidden, lead]
