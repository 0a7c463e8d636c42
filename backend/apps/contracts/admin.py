from django import forms
from django.contrib import admin

from .exceptions import ContractError
from .models import Contract, ContractParty, ContractType
from .services import ContractLifecycleService
from .status import is_editable


class ContractAdminForm(forms.ModelForm):
    """Applies the lifecycle date rules to edits made in the admin."""

    class Meta:
        model = Contract
        fields = "__all__"

    def clean(self):
        cleaned_data = super().clean()
        start_date = cleaned_data.get("start_date")
        end_date = cleaned_data.get("end_date")
        try:
            if start_date:
                ContractLifecycleService._validate_dates(start_date, end_date)
            ContractLifecycleService._validate_auto_renewal(cleaned_data.get("auto_renewal", False), end_date)
        except ContractError as e:
            raise forms.ValidationError(e.message) from e
        return cleaned_data


class ContractPartyInline(admin.TabularInline):
    model = ContractParty
    extra = 0
    can_delete = False
    fields = ["party_type", "name", "email", "requires_signature", "signed_date", "signed_by_name", "sort_order"]
    readonly_fields = ["signed_date", "signed_by_name"]

    def has_add_permission(self, request, obj=None):
        return obj is not None and is_editable(obj.status)

    def get_readonly_fields(self, request, obj=None):
        if obj is None or not is_editable(obj.status):
            return self.fields
        return self.readonly_fields


@admin.register(ContractType)
class ContractTypeAdmin(admin.ModelAdmin):
    list_display = ["name", "tenant", "is_active", "requires_approval", "supports_renewal", "default_reminder_days"]
    list_filter = ["tenant", "is_active"]
    search_fields = ["name"]


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    """Contracts are created, numbered and transitioned through the API; the admin only edits drafts."""

    form = ContractAdminForm
    list_display = ["contract_number", "title", "tenant", "status", "start_date", "end_date"]
    list_filter = ["tenant", "status", "contract_type"]
    search_fields = ["contract_number", "title"]
    inlines = [ContractPartyInline]
    readonly_fields = [
        "tenant",
        "contract_number",
        "status",
        "parent_contract",
        "signed_date",
        "approved_by",
        "approved_date",
        "last_status_change_date",
        "last_status_changed_by",
        "status_change_reason",
        "is_deleted",
        "deleted_at",
        "deleted_by",
    ]

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and not is_editable(obj.status):
            return [field.name for field in Contract._meta.fields]
        return self.readonly_fields
