"""Models for the leads app."""
from django.db import models

from core.models import SoftDeleteModel, TimeStampedModel, UUIDModel
from permissions.models import SharedAccessManager, SharedAccessModel, SharedAccessQuerySet


class Lead(SharedAccessModel, SoftDeleteModel, UUIDModel, TimeStampedModel):
    """A prospective customer; converted into contacts, accounts and opportunities."""

    class Status(models.TextChoices):
        NEW = "new", "New"
        CONTACTED = "contacted", "Contacted"
        CONVERTED = "converted", "Converted"
        REJECTED = "rejected", "Rejected"

    campaign = models.ForeignKey(
        "campaigns.Campaign",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="leads",
    )
    first_name = models.CharField(max_length=64, blank=True, default="")
    last_name = models.CharField(
        max_length=64,
        error_messages={"blank": "Please specify the lead's last name."},
    )
    company = models.CharField(max_length=64, blank=True, default="")
    email = models.EmailField(max_length=64, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    source = models.CharField(max_length=32, blank=True, default="")
    status = models.CharField(max_length=32, choices=Status.choices, default=Status.NEW)

    objects = SharedAccessManager()
    all_objects = SharedAccessQuerySet.as_manager()

    class Meta:
        ordering = ["-id"]

    @property
    def full_name(self):
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name
