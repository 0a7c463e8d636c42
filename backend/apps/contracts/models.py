"""Contract models."""
from datetime import date

from django.conf import settings
from django.db import models

from apps.core.models import ActorStampedModel, TenantModel

from .status import ContractStatus


class ContractType(TenantModel):
    """A tenant-defined category whose defaults apply to contracts created under it."""

    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    color = models.CharField(max_length=7, default="#007bff")
    icon = models.CharField(max_length=50, blank=True)
    is_active = models.BooleanField(default=True)
    default_duration_days = models.PositiveIntegerField(null=True, blank=True)
    requires_approval = models.BooleanField(default=True)
    supports_renewal = models.BooleanField(default=True)
    default_reminder_days = models.PositiveIntegerField(default=30)
    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = "contract_types"
        ordering = ["sort_order", "name"]
        unique_together = ["tenant", "name"]

    def __str__(self):
        return self.name if self.is_active else f"{self.name} (Inactive)"


class Contract(ActorStampedModel):
    """A legal agreement tracked through its status workflow."""

    Status = ContractStatus

    class BillingFrequency(models.TextChoices):
        MONTHLY = "monthly", "Monthly"
        QUARTERLY = "quarterly", "Quarterly"
        SEMI_ANNUAL = "semi_annual", "Semi-annual"
        ANNUALLY = "annually", "Annually"
        ONE_TIME = "one_time", "One-time"

    class Priority(models.IntegerChoices):
        HIGH = 1, "High"
        MEDIUM = 2, "Medium"
        NORMAL = 3, "Normal"
        LOW = 4, "Low"

    contract_number = models.CharField(max_length=50)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    contract_type = models.ForeignKey(
        ContractType,
        on_delete=models.PROTECT,
        related_name="contracts",
    )
    status = models.CharField(
        max_length=20,
        choices=ContractStatus.choices,
        default=ContractStatus.DRAFT,
    )
    priority = models.PositiveSmallIntegerField(
        choices=Priority.choices,
        default=Priority.NORMAL,
    )
    start_date = models.DateField()
    end_date = models.DateField(
        null=True,
        blank=True,
        help_text="Null for open-ended contracts, which never expire.",
    )
    signed_date = models.DateTimeField(null=True, blank=True)
    value = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, blank=True)
    billing_frequency = models.CharField(
        max_length=20,
        choices=BillingFrequency.choices,
        blank=True,
    )
    auto_renewal = models.BooleanField(default=False)
    renewal_reminder_days = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Defaults to the contract type's reminder days when not given.",
    )
    auto_renewal_duration_days = models.PositiveIntegerField(null=True, blank=True)
    terms = models.TextField(blank=True)
    internal_notes = models.TextField(blank=True)
    tags = models.CharField(max_length=500, blank=True)
    department = models.CharField(max_length=100, blank=True)
    project_code = models.CharField(max_length=50, blank=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_contracts",
    )
    parent_contract = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="child_contracts",
    )
    notifications_enabled = models.BooleanField(default=True)

    # Approval
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    approved_date = models.DateTimeField(null=True, blank=True)
    approval_notes = models.TextField(null=True, blank=True)

    # Status bookkeeping
    last_status_change_date = models.DateTimeField(null=True, blank=True)
    last_status_changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    status_change_reason = models.TextField(null=True, blank=True)

    # Soft delete
    is_deleted = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "contracts"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["tenant", "contract_number"],
                name="unique_contract_number_per_tenant",
            ),
        ]
        indexes = [
            models.Index(fields=["tenant", "status"], name="contracts_tenant_status_idx"),
            models.Index(fields=["tenant", "end_date"], name="contracts_tenant_end_idx"),
        ]

    def __str__(self):
        return f"{self.contract_number} - {self.title}"

    @property
    def is_expired(self) -> bool:
        if self.end_date is None:
            return False
        return date.today() > self.end_date and self.status != ContractStatus.RENEWED

    @property
    def days_until_expiration(self) -> int | None:
        """Days until the end date, negative once it has passed."""
        if self.end_date is None:
            return None
        return (self.end_date - date.today()).days

    @property
    def is_expiring_soon(self) -> bool:
        if self.end_date is None or self.is_expired:
            return False
        return self.days_until_expiration <= (self.renewal_reminder_days or 0)

    @property
    def duration_days(self) -> int | None:
        if self.end_date is None:
            return None
        return (self.end_date - self.start_date).days

    @property
    def is_fully_signed(self) -> bool:
        """True when at least one party must sign and all such parties have."""
        required = [p for p in self.parties.all() if p.requires_signature]
        return bool(required) and all(p.is_signed for p in required)

    @property
    def primary_counterparty(self):
        for party in self.parties.all():
            if party.party_type == ContractParty.PartyType.EXTERNAL:
                return party
        return None

    @property
    def tags_list(self) -> list[str]:
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]


class ContractParty(ActorStampedModel):
    """A counterparty, witness, or signatory owned by exactly one contract."""

    class PartyType(models.TextChoices):
        INTERNAL = "internal", "Internal"
        EXTERNAL = "external", "External"
        WITNESS = "witness", "Witness"
        LEGAL_REPRESENTATIVE = "legal_representative", "Legal Representative"

    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name="parties",
    )
    party_type = models.CharField(max_length=30, choices=PartyType.choices)
    name = models.CharField(max_length=200)
    legal_name = models.CharField(max_length=200, blank=True)
    contact_person_name = models.CharField(max_length=100, blank=True)
    contact_person_title = models.CharField(max_length=100, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=50, blank=True)
    address_line1 = models.CharField(max_length=200, blank=True)
    address_line2 = models.CharField(max_length=200, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=100, blank=True)
    tax_id = models.CharField(max_length=50, blank=True)
    registration_number = models.CharField(max_length=50, blank=True)
    website = models.URLField(blank=True)
    requires_signature = models.BooleanField(default=True)
    signed_date = models.DateTimeField(null=True, blank=True)
    signed_by_name = models.CharField(max_length=200, blank=True)
    signed_by_title = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        db_table = "contract_parties"
        ordering = ["sort_order", "id"]
        verbose_name_plural = "contract parties"

    def __str__(self):
        return f"{self.display_name} ({self.get_party_type_display()})"

    @property
    def is_signed(self) -> bool:
        return self.signed_date is not None

    @property
    def display_name(self) -> str:
        return self.legal_name or self.name

    @property
    def formatted_address(self) -> str:
        city_line = " ".join(part for part in [self.postal_code, self.city] if part)
        parts = [self.address_line1, self.address_line2, city_line, self.state, self.country]
        return ", ".join(part for part in parts if part)
