"""Shared-access control list: per-user grants on CRM records."""
from __future__ import annotations

import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.contenttypes.fields import GenericForeignKey, GenericRelation
from django.contrib.contenttypes.models import ContentType
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q

from core.models import SoftDeleteManager, SoftDeleteQuerySet, TimeStampedModel, ValidatedModel

logger = logging.getLogger("crm")


class Access(models.TextChoices):
    PRIVATE = "Private", "Private"
    PUBLIC = "Public", "Public"
    SHARED = "Shared", "Shared"


# Access value submitted when a record converted from a lead keeps the
# lead's own access level and grants.
INHERIT_FROM_LEAD = "Lead"


def default_access():
    return settings.CRM_DEFAULT_ACCESS


class PermissionQuerySet(models.QuerySet):
    def for_asset(self, asset):
        return self.filter(
            content_type=ContentType.objects.get_for_model(asset),
            object_id=asset.pk,
        )

    def for_user(self, user):
        return self.filter(user=user)


class Permission(TimeStampedModel):
    """Authorizes one user on one asset.

    The asset is a tagged reference: ``content_type`` names the kind of record
    (account, contact, lead, opportunity) and ``object_id`` its id.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="asset_permissions",
    )
    content_type = models.ForeignKey(ContentType, on_delete=models.CASCADE)
    object_id = models.PositiveBigIntegerField()
    asset = GenericForeignKey("content_type", "object_id")

    objects = PermissionQuerySet.as_manager()

    class Meta:
        verbose_name = "permission"
        verbose_name_plural = "permissions"
        constraints = [
            models.UniqueConstraint(
                fields=["user", "content_type", "object_id"],
                name="uniq_permission_user_asset",
            ),
        ]
        indexes = [
            models.Index(fields=["content_type", "object_id"]),
        ]

    def __str__(self):
        return f"{self.user_id} -> {self.asset_kind}#{self.object_id}"

    @property
    def asset_kind(self) -> str:
        return f"{self.content_type.app_label}.{self.content_type.model}"


class SharedAccessQuerySet(SoftDeleteQuerySet):
    def my(self, user):
        """Records the user created, is assigned to, or was granted, newest first."""
        return (
            self.filter(Q(user=user) | Q(assigned_to=user) | Q(permissions__user=user))
            .distinct()
            .order_by("-id")
        )


class SharedAccessManager(SoftDeleteManager.from_queryset(SharedAccessQuerySet)):
    pass


class SharedAccessModel(ValidatedModel):
    """Ownership, access level and permission fan-out for a CRM record.

    Grants are attached in memory with ``grant()`` and written together with
    the record by ``persist()``.  A ``Shared`` record must carry at least one
    grant when it is validated.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="%(class)s_owned",
    )
    assigned_to = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="%(class)s_assigned",
    )
    access = models.CharField(max_length=8, choices=Access.choices, default=default_access)
    permissions = GenericRelation(Permission)

    class Meta:
        abstract = True

    @property
    def pending_permissions(self) -> list:
        return self.__dict__.setdefault("_pending_permissions", [])

    @property
    def rejected_grantees(self) -> list:
        return self.__dict__.setdefault("_rejected_grantees", [])

    def grant(self, user) -> Permission | None:
        """Attach an unsaved grant for ``user`` (a user or a user id).

        A malformed id is kept aside and reported by the next validation.
        """
        if isinstance(user, models.Model):
            user_id = user.pk
        else:
            try:
                user_id = get_user_model()._meta.pk.to_python(user)
            except ValidationError:
                self.rejected_grantees.append(user)
                return None
        permission = Permission(user_id=user_id)
        self.pending_permissions.append(permission)
        return permission

    def has_grantees(self) -> bool:
        if self.pending_permissions:
            return True
        return self.pk is not None and self.permissions.exists()

    def unknown_grantees(self) -> list:
        """Submitted grantees that are malformed or match no user."""
        unknown = [str(user) for user in self.rejected_grantees]
        pending = {permission.user_id for permission in self.pending_permissions}
        if pending:
            known = set(
                get_user_model()._default_manager.filter(pk__in=pending).values_list("pk", flat=True),
            )
            unknown.extend(sorted(str(user_id) for user_id in pending - known))
        return unknown

    def validate_shared_access(self):
        errors = []
        unknown = self.unknown_grantees()
        if unknown:
            errors.append(ValidationError(
                "Cannot share the %(name)s with unknown users: %(users)s.",
                code="invalid",
                params={"name": self._meta.verbose_name, "users": ", ".join(unknown)},
            ))
        if self.access == Access.SHARED and not self.has_grantees():
            errors.append(ValidationError(
                "Please specify users to share the %(name)s with.",
                code="no_grantees",
                params={"name": self._meta.verbose_name},
            ))
        if errors:
            raise ValidationError({"access": errors})

    def clean(self):
        super().clean()
        self.validate_shared_access()

    def save_related(self):
        super().save_related()
        pending = self.pending_permissions
        if not pending:
            return
        granted = set(self.permissions.values_list("user_id", flat=True))
        fresh = []
        for permission in pending:
            if permission.user_id in granted:
                continue
            granted.add(permission.user_id)
            permission.asset = self
            fresh.append(permission)
        Permission.objects.bulk_create(fresh)
        pending.clear()
        logger.info(
            "%s %s shared with %d user(s)",
            self._meta.label, self.pk, len(fresh),
        )

    # ------------------------------------------------------------------
    # Permission fan-out
    # ------------------------------------------------------------------

    def save_with_permissions(self, users) -> bool:
        """Grant each of ``users`` when the record is shared, then persist it."""
        if users and self.access == Access.SHARED:
            for user in users:
                self.grant(user)
        return self.persist()

    def save_with_model_permissions(self, model) -> bool:
        """Copy access level and grants from ``model`` (e.g. a lead), then persist."""
        self.access = model.access
        if model.access == Access.SHARED:
            for permission in Permission.objects.for_asset(model):
                self.grant(permission.user_id)
        return self.persist()
