"""Models for the campaigns app."""
from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from core.models import SoftDeleteModel, TimeStampedModel, UUIDModel


class Campaign(SoftDeleteModel, UUIDModel, TimeStampedModel):
    """Marketing campaign that leads and opportunities can be attributed to."""

    class Status(models.TextChoices):
        PLANNED = "planned", "Planned"
        STARTED = "started", "Started"
        COMPLETED = "completed", "Completed"
        ON_HOLD = "on_hold", "On hold"
        CALLED_OFF = "called_off", "Called off"

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="campaigns_owned",
    )
    name = models.CharField(max_length=64)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PLANNED)
    starts_on = models.DateField(null=True, blank=True)
    ends_on = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-id"]

    def __str__(self):
        return self.name

    def clean(self):
        if self.starts_on and self.ends_on and self.ends_on < self.starts_on:
            raise ValidationError({"ends_on": "ends_on must be >= starts_on."})
