import pytest

from accounts.models import Account
from campaigns.models import Campaign
from contacts.models import Contact
from leads.models import Lead
from users.models import User


@pytest.fixture
def owner(db):
    return User.objects.create_user(
        email="owner@test.com",
        password="testpass123",
        first_name="Olivia",
        last_name="Owner",
    )


@pytest.fixture
def colleague(db):
    return User.objects.create_user(
        email="colleague@test.com",
        password="testpass123",
        first_name="Carl",
        last_name="Colleague",
    )


@pytest.fixture
def manager(db):
    return User.objects.create_user(
        email="manager@test.com",
        password="testpass123",
        first_name="Maya",
        last_name="Manager",
    )


@pytest.fixture
def outsider(db):
    return User.objects.create_user(
        email="outsider@test.com",
        password="testpass123",
        first_name="Oscar",
        last_name="Outsider",
    )


@pytest.fixture
def account(owner):
    return Account.objects.create(
        user=owner,
        name="Acme Corp",
        website="https://acme.test",
    )


@pytest.fixture
def contact(owner):
    return Contact.objects.create(
        user=owner,
        first_name="Jane",
        last_name="Doe",
        email="jane.doe@acme.test",
    )


@pytest.fixture
def campaign(owner):
    return Campaign.objects.create(
        user=owner,
        name="Spring trade show",
    )


@pytest.fixture
def shared_lead(owner, colleague, manager):
    lead = Lead(
        user=owner,
        first_name="Lee",
        last_name="Prospect",
        company="Prospect Ltd",
        access="Shared",
    )
    assert lead.save_with_permissions([colleague.pk, manager.pk])
    return lead
