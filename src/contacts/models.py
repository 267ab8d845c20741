"""Models for the contacts app."""
from django.db import models

from core.models import SoftDeleteModel, TimeStampedModel, UUIDModel
from permissions.models import SharedAccessManager, SharedAccessModel, SharedAccessQuerySet


class Contact(SharedAccessModel, SoftDeleteModel, UUIDModel, TimeStampedModel):
    """A person at a customer account."""

    lead = models.ForeignKey(
        "leads.Lead",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="contacts",
    )
    first_name = models.CharField(max_length=64, blank=True, default="")
    last_name = models.CharField(
        max_length=64,
        error_messages={"blank": "Please specify the contact's last name."},
    )
    title = models.CharField(max_length=64, blank=True, default="")
    email = models.EmailField(max_length=64, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")

    objects = SharedAccessManager()
    all_objects = SharedAccessQuerySet.as_manager()

    class Meta:
        ordering = ["-id"]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name
