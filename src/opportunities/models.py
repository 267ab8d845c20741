"""Models for the opportunities app."""
from __future__ import annotations

import logging
import uuid

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Q

from accounts.models import Account
from core.models import SoftDeleteModel, TimeStampedModel, UUIDModel
from permissions.models import (
    INHERIT_FROM_LEAD,
    SharedAccessManager,
    SharedAccessModel,
    SharedAccessQuerySet,
)

logger = logging.getLogger("crm")


class Opportunity(SharedAccessModel, SoftDeleteModel, UUIDModel, TimeStampedModel):
    """A sales deal in progress.

    New opportunities are created through ``create_for()`` or
    ``save_with_account_and_permissions()``, which attach the account link and
    the permission grants in memory and write them with the opportunity in a
    single transaction.  Deleting an opportunity is a soft delete.
    """

    class Stage(models.TextChoices):
        PROSPECTING = "prospecting", "Prospecting"
        ANALYSIS = "analysis", "Analysis"
        PRESENTATION = "presentation", "Presentation"
        PROPOSAL = "proposal", "Proposal"
        NEGOTIATION = "negotiation", "Negotiation"
        FINAL_REVIEW = "final_review", "Final review"
        WON = "won", "Closed/won"
        LOST = "lost", "Closed/lost"

    class Source(models.TextChoices):
        CAMPAIGN = "campaign", "Campaign"
        COLD_CALL = "cold_call", "Cold call"
        CONFERENCE = "conference", "Conference"
        ONLINE = "online", "Online marketing"
        REFERRAL = "referral", "Referral"
        SELF = "self", "Self generated"
        WEB = "web", "Website"
        WORD_OF_MOUTH = "word_of_mouth", "Word of mouth"
        OTHER = "other", "Other"

    campaign = models.ForeignKey(
        "campaigns.Campaign",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="opportunities",
    )
    name = models.CharField(
        max_length=64,
        default="",
        error_messages={
            "null": "Please specify the opportunity name.",
            "blank": "Please specify the opportunity name.",
        },
    )
    source = models.CharField(max_length=32, choices=Source.choices, blank=True, default="")
    stage = models.CharField(max_length=32, choices=Stage.choices, blank=True, default="")
    probability = models.IntegerField(null=True, blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    closes_on = models.DateField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")
    contacts = models.ManyToManyField(
        "contacts.Contact",
        through="ContactOpportunity",
        related_name="opportunities",
        blank=True,
    )

    objects = SharedAccessManager()
    all_objects = SharedAccessQuerySet.as_manager()

    integrity_error_field = "name"

    class Meta:
        verbose_name = "opportunity"
        verbose_name_plural = "opportunities"
        ordering = ["-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "name"],
                condition=Q(deleted_at__isnull=True),
                name="uniq_live_opportunity_name_per_user",
            ),
        ]
        indexes = [
            models.Index(fields=["assigned_to", "deleted_at"]),
            models.Index(fields=["stage", "closes_on"]),
        ]

    def __str__(self):
        return self.name

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def weighted_amount(self) -> float:
        """Amount scaled by the win probability; missing values count as 0."""
        return float(self.amount or 0) * (self.probability or 0) / 100.0

    @property
    def account(self):
        pending = self.__dict__.get("_pending_account")
        if pending is not None:
            return pending
        if self.pk is None:
            return None
        link = (
            AccountOpportunity.objects.select_related("account")
            .filter(opportunity=self, account__deleted_at__isnull=True)
            .first()
        )
        return link.account if link else None

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def clean(self):
        errors = {}
        try:
            super().clean()
        except ValidationError as exc:
            errors = exc.update_error_dict(errors)

        if self.name and not self.name.strip():
            errors.setdefault("name", []).append(
                ValidationError(self._meta.get_field("name").error_messages["blank"], code="blank"),
            )
        # user_id keeps the raw submitted value when clean_fields() rejected it.
        elif self.name and isinstance(self.user_id, uuid.UUID) and (
            Opportunity.objects.filter(user_id=self.user_id, name=self.name).exclude(pk=self.pk).exists()
        ):
            errors.setdefault("name", []).append(
                ValidationError("An opportunity with this name already exists.", code="taken"),
            )

        if errors:
            raise ValidationError(errors)

    # ------------------------------------------------------------------
    # Related records
    # ------------------------------------------------------------------

    def link_account(self, account) -> None:
        """Attach ``account``; the link is written by the next ``persist()``."""
        self.__dict__["_pending_account"] = account

    def attach_contact(self, contact, role=""):
        link, _created = ContactOpportunity.objects.get_or_create(
            contact=contact,
            opportunity=self,
            defaults={"role": role},
        )
        return link

    def save_related(self):
        account = self.__dict__.get("_pending_account")
        if account is not None:
            AccountOpportunity.objects.update_or_create(
                opportunity=self,
                defaults={"account": account},
            )
        super().save_related()
        self.__dict__.pop("_pending_account", None)

    # ------------------------------------------------------------------
    # Creation paths
    # ------------------------------------------------------------------

    def save_with_account_and_permissions(self, params) -> bool:
        """Backend of the "create new opportunity" form.

        ``params["account"]`` selects or describes the account and
        ``params["users"]`` lists the users to share the opportunity with.
        """
        users = params.get("users")
        account = Account.create_or_select_for(self, params.get("account"), users)
        if account.pk:
            self.link_account(account)
        saved = self.save_with_permissions(users)
        if saved:
            logger.info("Opportunity %s saved by %s (access=%s)", self.pk, self.user_id, self.access)
        return saved

    @classmethod
    def create_for(cls, model, account, params, users) -> Opportunity:
        """Create an opportunity from a form or while converting ``model`` (a lead).

        The opportunity is written only when it has a name and ``account``
        carries no errors.  Access ``"Lead"`` with a ``model`` copies the
        model's access and grants; every other case fans out to ``users``.
        The instance is returned in every case; callers check ``pk`` and
        ``errors``.
        """
        opportunity = cls.from_params(params)

        account_errors = account.errors if account is not None else None
        if (opportunity.name or "").strip() and not account_errors:
            if account is not None and account.pk:
                opportunity.link_account(account)
            if opportunity.access != INHERIT_FROM_LEAD or model is None:
                opportunity.save_with_permissions(users)
            else:
                opportunity.save_with_model_permissions(model)
        else:
            opportunity.validate()

        if opportunity.pk:
            logger.info(
                "Opportunity %s created by %s from %s",
                opportunity.pk, opportunity.user_id, model._meta.label if model is not None else "form",
            )
        return opportunity

    # ------------------------------------------------------------------
    # Deletion
    # ------------------------------------------------------------------

    def delete(self, using=None, keep_parents=False):
        """Remove the account link and contact links, then soft-delete."""
        with transaction.atomic(using=using):
            AccountOpportunity.objects.filter(opportunity=self).delete()
            ContactOpportunity.objects.filter(opportunity=self).delete()
            return super().delete(using=using, keep_parents=keep_parents)


class AccountOpportunity(TimeStampedModel):
    """Join record linking an opportunity to its (single) account."""

    account = models.ForeignKey(
        "accounts.Account",
        on_delete=models.CASCADE,
        related_name="account_opportunities",
    )
    opportunity = models.OneToOneField(
        Opportunity,
        on_delete=models.CASCADE,
        related_name="account_opportunity",
    )

    class Meta:
        verbose_name = "account opportunity"
        verbose_name_plural = "account opportunities"

    def __str__(self):
        return f"{self.account_id} / {self.opportunity_id}"


class ContactOpportunity(TimeStampedModel):
    """Join record between contacts and opportunities."""

    contact = models.ForeignKey(
        "contacts.Contact",
        on_delete=models.CASCADE,
        related_name="contact_opportunities",
    )
    opportunity = models.ForeignKey(
        Opportunity,
        on_delete=models.CASCADE,
        related_name="contact_opportunities",
    )
    role = models.CharField(max_length=32, blank=True, default="")

    class Meta:
        verbose_name = "contact opportunity"
        verbose_name_plural = "contact opportunities"
        constraints = [
            models.UniqueConstraint(
                fields=["contact", "opportunity"],
                name="uniq_contact_opportunity",
            ),
        ]

    def __str__(self):
        return f"{self.contact_id} / {self.opportunity_id}"
