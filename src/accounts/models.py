"""Models for the accounts app (customer companies)."""
from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from core.models import SoftDeleteModel, TimeStampedModel, UUIDModel
from permissions.models import (
    INHERIT_FROM_LEAD,
    SharedAccessManager,
    SharedAccessModel,
    SharedAccessQuerySet,
)

logger = logging.getLogger("crm")


class Account(SharedAccessModel, SoftDeleteModel, UUIDModel, TimeStampedModel):
    """A customer company that contacts and opportunities belong to."""

    name = models.CharField(
        max_length=64,
        error_messages={"blank": "Please specify the account name."},
    )
    website = models.CharField(max_length=64, blank=True, default="")
    phone = models.CharField(max_length=32, blank=True, default="")
    email = models.EmailField(max_length=64, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    objects = SharedAccessManager()
    all_objects = SharedAccessQuerySet.as_manager()

    integrity_error_field = "name"

    class Meta:
        ordering = ["-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["name"],
                condition=Q(deleted_at__isnull=True),
                name="uniq_live_account_name",
            ),
        ]

    def __str__(self):
        return self.name

    def clean(self):
        errors = {}
        try:
            super().clean()
        except ValidationError as exc:
            errors = exc.update_error_dict(errors)
        if self.name and Account.objects.filter(name=self.name).exclude(pk=self.pk).exists():
            errors.setdefault("name", []).append(
                ValidationError("An account with this name already exists.", code="taken"),
            )
        if errors:
            raise ValidationError(errors)

    @classmethod
    def create_or_select_for(cls, subject, params, users=None) -> Account:
        """Resolve the account a form submitted next to ``subject``.

        ``params`` either selects an existing account by ``id`` or describes a
        new one.  The returned account may be unsaved and carry errors; no
        exception is raised.  A blank reference resolves to an empty, unsaved
        account without errors.
        """
        params = dict(params or {})
        account_id = params.pop("id", None)
        if account_id:
            try:
                account = cls.objects.filter(pk=account_id).first()
            except (TypeError, ValueError):
                account = None
            if account is None:
                account = cls()
                account.add_error("id", "The selected account does not exist.", "not_found")
            return account

        if not params.get("name"):
            return cls()

        account = cls.from_params(params)
        if account.user_id is None and subject is not None:
            account.user_id = subject.user_id
        if account.access != INHERIT_FROM_LEAD or subject is None:
            account.save_with_permissions(users)
        else:
            account.save_with_model_permissions(subject)
        if account.pk:
            logger.info("Account %s created by %s (access=%s)", account.pk, account.user_id, account.access)
        return account
