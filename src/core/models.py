"""Abstract base models shared by every CRM app."""
import logging
import uuid

from django.core.exceptions import NON_FIELD_ERRORS, ValidationError
from django.db import IntegrityError, models, transaction
from django.utils import timezone

logger = logging.getLogger("crm")


class TimeStampedModel(models.Model):
    """Adds ``created_at`` / ``updated_at`` maintained on every write."""

    created_at = models.DateTimeField("created at", auto_now_add=True)
    updated_at = models.DateTimeField("updated at", auto_now=True)

    class Meta:
        abstract = True


class UUIDModel(models.Model):
    """Externally exposable identifier, distinct from the surrogate ``id``."""

    uuid = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    class Meta:
        abstract = True


# ---------------------------------------------------------------------------
# Soft delete
# ---------------------------------------------------------------------------

class SoftDeleteQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)

    def delete(self):
        """Soft-delete every row through its own ``delete()``.

        Row-level ``delete()`` may cascade to join records, so rows are not
        stamped with a single UPDATE.
        """
        count = 0
        with transaction.atomic():
            for obj in self:
                obj.delete()
                count += 1
        return count, {self.model._meta.label: count}

    delete.queryset_only = True


class SoftDeleteManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    """Default manager: rows carrying a deletion timestamp are hidden."""

    def get_queryset(self):
        return super().get_queryset().filter(deleted_at__isnull=True)


class SoftDeleteModel(models.Model):
    """Rows are marked deleted with a timestamp and never physically removed.

    ``objects`` only returns live rows; ``all_objects`` returns everything and
    is the way to look a deleted row up by id.
    """

    deleted_at = models.DateTimeField("deleted at", null=True, blank=True, editable=False, db_index=True)

    objects = SoftDeleteManager()
    all_objects = SoftDeleteQuerySet.as_manager()

    class Meta:
        abstract = True

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def delete(self, using=None, keep_parents=False):
        if self.pk is None:
            raise ValueError(f"{self._meta.object_name} object can't be deleted because its id is None.")
        if self.is_deleted:
            return 0, {}
        self.deleted_at = timezone.now()
        update_fields = ["deleted_at"]
        if any(f.name == "updated_at" for f in self._meta.concrete_fields):
            update_fields.append("updated_at")
        self.save(using=using, update_fields=update_fields)
        logger.info("%s %s soft-deleted", self._meta.label, self.pk)
        return 1, {self._meta.label: 1}


# ---------------------------------------------------------------------------
# Explicit validation
# ---------------------------------------------------------------------------

class ValidatedModel(models.Model):
    """Collects validation errors on the instance instead of raising them.

    ``validate()`` runs Django's field, model and unique checks and stores the
    result in ``errors`` (``{field: [ValidationError, ...]}``).  ``persist()``
    only writes when validation passes and reports the outcome as a bool.
    """

    integrity_error_field = None

    class Meta:
        abstract = True

    @classmethod
    def from_params(cls, params):
        """Build an unsaved instance from submitted values, ignoring unknown keys."""
        fields = {}
        for field in cls._meta.concrete_fields:
            if field.editable and not field.primary_key:
                fields[field.name] = fields[field.attname] = field
        values = {}
        for key, value in (params or {}).items():
            field = fields.get(key)
            if field is None:
                continue
            # Raw ids go through the column so full_clean() can reject them.
            if field.is_relation and key == field.name and not isinstance(value, field.related_model):
                key = field.attname
            values[key] = value
        return cls(**values)

    @property
    def errors(self) -> dict:
        return self.__dict__.setdefault("_validation_errors", {})

    @property
    def error_codes(self) -> dict:
        return {field: [error.code for error in errors] for field, errors in self.errors.items()}

    def add_error(self, field, message, code) -> None:
        self.errors.setdefault(field or NON_FIELD_ERRORS, []).append(ValidationError(message, code=code))

    def validate(self) -> bool:
        self.errors.clear()
        try:
            # Database constraints are checked explicitly in clean() and
            # backed by the storage layer on write.
            self.full_clean(validate_constraints=False)
        except ValidationError as exc:
            for field, errors in exc.error_dict.items():
                self.errors.setdefault(field, []).extend(errors)
        return not self.errors

    def persist(self) -> bool:
        if not self.validate():
            logger.info(
                "%s rejected by validation: %s",
                self._meta.label, self.error_codes,
            )
            return False

        adding = self._state.adding
        try:
            with transaction.atomic():
                self.save()
                self.save_related()
        except IntegrityError as exc:
            logger.warning("%s %s write conflict: %s", self._meta.label, self.pk, exc)
            if adding:
                self.pk = None
                self._state.adding = True
            self.add_error(self.integrity_error_field, "This record conflicts with an existing one.", "conflict")
            return False
        return True

    def save_related(self) -> None:
        """Write records attached in memory before the save; runs in the same transaction."""
